"""SC-2 持久性集成测试

进程重启后活跃任务与归档完整。
"""

import os
from pathlib import Path

from dispatchboard.core.models import Role
from dispatchboard.core.store import create_store_group
from dispatchboard.gateway.services.sse_hub import SSEHub
from httpx import ASGITransport, AsyncClient

HEADERS = {"X-Actor-Id": "so-1", "X-Actor-Role": Role.STORE_OFFICE.value}


class TestSC2Durability:
    async def test_tasks_survive_restart(self, tmp_path: Path):
        db_path = str(tmp_path / "durable.db")
        os.environ["DISPATCHBOARD_DB_PATH"] = db_path
        os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

        try:
            from dispatchboard.gateway.main import create_app

            # 第一次启动：创建两个任务，完成其中一个
            app1 = create_app()
            sg1 = await create_store_group(db_path)
            app1.state.store_group = sg1
            app1.state.sse_hub = SSEHub()

            async with AsyncClient(
                transport=ASGITransport(app=app1), base_url="http://test"
            ) as c1:
                body = {"signature": "ab", "description": "labels", "urgency": "today",
                        "category": "label"}
                kept = (await c1.post("/api/tasks", json=body, headers=HEADERS)).json()["task"]
                done = (await c1.post("/api/tasks", json=body, headers=HEADERS)).json()["task"]
                await c1.patch(f"/api/tasks/{kept['task_id']}/assign", json={"fleet_id": "B"},
                               headers=HEADERS)
                await c1.patch(f"/api/tasks/{done['task_id']}/state",
                               json={"state": "in_progress"}, headers=HEADERS)
                resp = await c1.patch(f"/api/tasks/{done['task_id']}/state",
                                      json={"state": "completed"}, headers=HEADERS)
                assert resp.status_code == 200

            await sg1.conn.close()

            # 第二次启动：数据仍在
            app2 = create_app()
            sg2 = await create_store_group(db_path)
            app2.state.store_group = sg2
            app2.state.sse_hub = SSEHub()
            try:
                async with AsyncClient(
                    transport=ASGITransport(app=app2), base_url="http://test"
                ) as c2:
                    tasks = (await c2.get("/api/tasks", headers=HEADERS)).json()["tasks"]
                    assert [t["task_id"] for t in tasks] == [kept["task_id"]]
                    assert tasks[0]["assigned_to"] == "B"

                    history = (await c2.get("/api/tasks/history", headers=HEADERS)).json()
                    assert [r["original_task_id"] for r in history["records"]] == [
                        done["task_id"]
                    ]
            finally:
                await sg2.conn.close()
        finally:
            os.environ.pop("DISPATCHBOARD_DB_PATH", None)
            os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)
