"""完成归档与定时清理测试

测试内容：
1. 完成后任务从活跃列表消失，恰好一条归档和一条 deleted 事件
2. 归档快照是完成前的任务
3. 归档查询：月份/年份筛选，只给月份时不筛选
4. 清理为被移出的任务发布 deleted 事件
5. 进程内清理循环
"""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from dispatchboard.core.exceptions import (
    TaskNotFoundError,
    TaskStateConflictError,
    TaskValidationError,
)
from dispatchboard.core.models import Actor, EventAction, Role, TaskDraft, TaskState
from dispatchboard.gateway.services.archival import ArchivalEngine, run_periodic_sweep
from dispatchboard.gateway.services.task_service import TaskService, history_range
from httpx import AsyncClient

OFFICE = Actor(actor_id="office-1", role=Role.OFFICE)
TRIAGE = Actor(actor_id="so-1", role=Role.STORE_OFFICE)
DRIVER = Actor(actor_id="driver-a1", role=Role.DRIVER_CROWN)


@pytest_asyncio.fixture
async def service(store_group, sse_hub, clock) -> TaskService:
    return TaskService(store_group, sse_hub, clock=clock)


async def _started_task(service: TaskService):
    task = await service.create_task(
        TaskDraft(signature="kl", description="carton 40x30", urgency="now", category="carton"),
        OFFICE,
    )
    return await service.set_state(task.task_id, TaskState.IN_PROGRESS, DRIVER)


class TestCompletion:
    async def test_complete_moves_task_to_history(self, service, store_group, sse_hub, clock):
        running = await _started_task(service)
        sub = await sse_hub.subscribe(OFFICE)

        clock.advance(minutes=30)
        completed = await service.set_state(running.task_id, TaskState.COMPLETED, DRIVER)

        assert completed.state == TaskState.COMPLETED
        assert await store_group.task_store.get_task(running.task_id) is None
        assert await service.list_tasks(OFFICE) == []

        records = await store_group.history_store.list_history()
        assert len(records) == 1
        record = records[0]
        assert record.original_task_id == running.task_id
        assert record.task_snapshot == running
        assert record.completed_at == clock.now
        assert record.delete_after == clock.now + timedelta(days=180)

        event = sub.queue.get_nowait()
        assert event.action == EventAction.DELETED
        assert event.task_id == running.task_id
        assert event.task is None
        assert sub.queue.empty()

    async def test_second_completion_not_found(self, service, store_group):
        running = await _started_task(service)
        await service.set_state(running.task_id, TaskState.COMPLETED, DRIVER)
        # 活跃行已删除
        with pytest.raises(TaskNotFoundError):
            await service.set_state(running.task_id, TaskState.COMPLETED, DRIVER)
        assert len(await store_group.history_store.list_history()) == 1

    async def test_stale_archive_rolls_back_snapshot(self, service, store_group, clock):
        """活跃行已不在 in_progress 时快照不落盘"""
        running = await _started_task(service)
        await service.set_state(running.task_id, TaskState.PAUSED, DRIVER)

        with pytest.raises(TaskStateConflictError):
            await service.archival.archive_completed(running.task_id, clock.now)

        assert await store_group.history_store.get_by_task_id(running.task_id) is None
        assert (await store_group.task_store.get_task(running.task_id)).state == TaskState.PAUSED

    async def test_snapshot_includes_concurrent_assignment(self, service, store_group):
        """与完成并发提交的指派必须出现在快照中，或者指派因任务已归档而失败"""
        running = await _started_task(service)
        assert running.assigned_to == DRIVER.actor_id

        completed, assigned = await asyncio.gather(
            service.set_state(running.task_id, TaskState.COMPLETED, DRIVER),
            service.assign(running.task_id, "B", TRIAGE),
            return_exceptions=True,
        )

        record = await store_group.history_store.get_by_task_id(running.task_id)
        assert completed.state == TaskState.COMPLETED
        assert completed.assigned_to == record.task_snapshot.assigned_to
        if isinstance(assigned, TaskNotFoundError):
            assert record.task_snapshot.assigned_to == DRIVER.actor_id
        else:
            assert assigned.assigned_to == "B"
            assert record.task_snapshot.assigned_to == "B"
        assert await store_group.task_store.get_task(running.task_id) is None

    async def test_archive_missing_task_not_found(self, service, store_group, clock):
        with pytest.raises(TaskNotFoundError):
            await service.archival.archive_completed("01J0000000000000000000000Z", clock.now)
        assert await store_group.history_store.list_history() == []


class TestHistoryQuery:
    def test_month_range(self):
        start, end = history_range(12, 2025)
        assert start == datetime(2025, 12, 1, tzinfo=UTC)
        assert end == datetime(2026, 1, 1, tzinfo=UTC)

    def test_year_range(self):
        assert history_range(None, 2026) == (
            datetime(2026, 1, 1, tzinfo=UTC),
            datetime(2027, 1, 1, tzinfo=UTC),
        )

    def test_no_filter(self):
        assert history_range(None, None) == (None, None)

    def test_lone_month_ignored(self):
        assert history_range(3, None) == (None, None)

    @pytest.mark.parametrize("month,year", [(0, 2026), (13, 2026)])
    def test_invalid_filters(self, month, year):
        with pytest.raises(TaskValidationError):
            history_range(month, year)

    async def test_history_api(self, client: AsyncClient, as_actor, app, clock):
        service = TaskService(app.state.store_group, app.state.sse_hub, clock=clock)
        march = await _started_task(service)
        await service.set_state(march.task_id, TaskState.COMPLETED, DRIVER)
        clock.now = datetime(2026, 4, 2, 8, 0, tzinfo=UTC)
        april = await _started_task(service)
        await service.set_state(april.task_id, TaskState.COMPLETED, DRIVER)

        resp = await client.get("/api/tasks/history?month=3&year=2026", headers=as_actor())
        assert resp.status_code == 200
        records = resp.json()["records"]
        assert [r["original_task_id"] for r in records] == [march.task_id]
        assert records[0]["task"]["state"] == "in_progress"

        resp = await client.get("/api/tasks/history?year=2026", headers=as_actor())
        assert [r["original_task_id"] for r in resp.json()["records"]] == [
            april.task_id,
            march.task_id,
        ]

        resp = await client.get("/api/tasks/history?month=3", headers=as_actor())
        assert resp.status_code == 200
        assert len(resp.json()["records"]) == 2

        resp = await client.get("/api/tasks/history?month=13&year=2026", headers=as_actor())
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "VALIDATION_FAILED"


class TestSweep:
    async def test_sweep_publishes_deletions(self, service, sse_hub, clock, store_group):
        task = await service.create_task(
            TaskDraft(signature="mn", description="tape", urgency="today", category="material"),
            OFFICE,
        )
        await service.reject(task.task_id, "duplicate request", TRIAGE)
        sub = await sse_hub.subscribe(OFFICE)

        clock.advance(hours=2)
        report = await service.sweep()

        assert report.rejections_purged == 1
        assert await store_group.task_store.get_task(task.task_id) is None
        event = sub.queue.get_nowait()
        assert event.action == EventAction.DELETED
        assert event.task_id == task.task_id

    async def test_periodic_sweep_loop(self, store_group, sse_hub):
        calls = []

        class CountingEngine(ArchivalEngine):
            async def sweep(self, now=None):
                calls.append(now)
                return await super().sweep(now)

        engine = CountingEngine(store_group, sse_hub)
        loop_task = asyncio.create_task(run_periodic_sweep(engine, 0.01))
        await asyncio.sleep(0.05)
        loop_task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await loop_task
        assert len(calls) >= 1
