"""CLI 入口模块 -- python -m dispatchboard.core <command>

支持的命令：
  init-db  初始化数据库表结构
  sweep    执行一次定时清理（供外部定时器调用）
"""

import asyncio
import sys

from .clock import utc_now
from .config import get_db_path

_COMMANDS = {
    "init-db": "初始化数据库表结构",
    "sweep": "执行一次定时清理",
}


def _print_usage() -> None:
    print("用法: python -m dispatchboard.core <command>")
    print("命令:")
    for name, help_text in _COMMANDS.items():
        print(f"  {name:<8} {help_text}")


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        _print_usage()
        sys.exit(1)

    command = sys.argv[1]

    if command == "init-db":
        asyncio.run(init_database())
    elif command == "sweep":
        asyncio.run(run_sweep())
    else:
        print(f"未知命令: {command}")
        print(f"可用命令: {', '.join(_COMMANDS)}")
        sys.exit(1)


async def init_database() -> None:
    """创建数据库文件与表结构（幂等）"""
    from .store import create_store_group
    from .store.sqlite_init import verify_wal_mode

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")

    store_group = await create_store_group(db_path)
    try:
        wal = await verify_wal_mode(store_group.conn)
        print(f"初始化完成，WAL 模式: {'已启用' if wal else '未启用'}")
    finally:
        await store_group.conn.close()


async def run_sweep() -> None:
    """执行一次清理

    CLI 进程没有连接中的客户端，不发布广播事件；
    在线客户端会在下一次读取列表时看到结果。
    """
    from .store import create_store_group
    from .sweep import sweep_expired

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")
    print("开始清理...")

    store_group = await create_store_group(db_path)
    try:
        outcome = await sweep_expired(store_group, utc_now())
        report = outcome.report
        print(
            f"清理完成：归档 {report.history_purged} 条，"
            f"驳回任务 {report.rejections_purged} 条，"
            f"残留任务 {report.leftovers_reconciled} 条"
        )
    finally:
        await store_group.conn.close()


if __name__ == "__main__":
    main()
