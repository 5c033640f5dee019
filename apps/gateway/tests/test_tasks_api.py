"""任务创建与查询 API 测试

测试内容：
1. 创建任务：签名格式化、deadline 计算、created 事件
2. 输入校验失败返回结构化 422，且不写入
3. 身份缺失返回 401
4. 活跃列表排序与单任务查询
"""

from datetime import datetime, timedelta

from dispatchboard.core.models import Actor, EventAction, Role
from httpx import AsyncClient


def _actor(role: Role) -> Actor:
    return Actor(actor_id=f"{role.value}-listener", role=role)


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


async def _create(client, as_actor, new_task_body, **overrides) -> dict:
    resp = await client.post("/api/tasks", json=new_task_body(**overrides), headers=as_actor())
    assert resp.status_code == 201, resp.text
    return resp.json()["task"]


class TestCreateTask:
    async def test_create_formats_signature_and_deadline(
        self, client: AsyncClient, as_actor, new_task_body, clock, sse_hub
    ):
        sub = await sse_hub.subscribe(_actor(Role.OFFICE))
        resp = await client.post(
            "/api/tasks",
            json=new_task_body(signature="jd", urgency="15min"),
            headers=as_actor(Role.OFFICE, "office-7"),
        )

        assert resp.status_code == 201
        task = resp.json()["task"]
        assert task["signature"] == "J.D"
        assert task["state"] == "requested"
        assert task["created_by"] == "office-7"
        assert task["assigned_to"] is None
        assert task["rejection_reason"] is None
        assert _ts(task["deadline"]) == clock.now + timedelta(minutes=15)
        assert len(task["task_id"]) == 26

        event = sub.queue.get_nowait()
        assert event.action == EventAction.CREATED
        assert event.task_id == task["task_id"]
        assert sub.queue.empty()

    async def test_create_with_initial_assignment(
        self, client: AsyncClient, as_actor, new_task_body
    ):
        task = await _create(client, as_actor, new_task_body, assigned_to="A")
        assert task["assigned_to"] == "A"
        assert task["state"] == "requested"

    async def test_invalid_signature_rejected_without_write(
        self, client: AsyncClient, as_actor, new_task_body, store_group
    ):
        resp = await client.post(
            "/api/tasks", json=new_task_body(signature="jdx"), headers=as_actor()
        )
        assert resp.status_code == 422
        error = resp.json()["error"]
        assert error["code"] == "VALIDATION_FAILED"
        assert error["category"] == "validation"
        assert error["retryable"] is False
        assert error["message"].startswith("signature")
        assert await store_group.task_store.list_tasks() == []

    async def test_missing_category_rejected(self, client: AsyncClient, as_actor, new_task_body):
        body = new_task_body()
        del body["category"]
        resp = await client.post("/api/tasks", json=body, headers=as_actor())
        assert resp.status_code == 422
        assert resp.json()["error"]["message"].startswith("category")

    async def test_unknown_urgency_rejected(self, client: AsyncClient, as_actor, new_task_body):
        resp = await client.post(
            "/api/tasks", json=new_task_body(urgency="tomorrow"), headers=as_actor()
        )
        assert resp.status_code == 422


class TestAuthentication:
    async def test_missing_identity_is_401(self, client: AsyncClient):
        resp = await client.get("/api/tasks")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "UNAUTHENTICATED"

    async def test_unknown_role_is_401(self, client: AsyncClient):
        resp = await client.get(
            "/api/tasks", headers={"X-Actor-Id": "u1", "X-Actor-Role": "admin"}
        )
        assert resp.status_code == 401


class TestListTasks:
    async def test_list_uses_canonical_order(
        self, client: AsyncClient, as_actor, new_task_body, clock
    ):
        today = await _create(client, as_actor, new_task_body, urgency="today")
        now = await _create(client, as_actor, new_task_body, urgency="now")
        running = await _create(client, as_actor, new_task_body, urgency="today")
        resp = await client.patch(
            f"/api/tasks/{running['task_id']}/state",
            json={"state": "in_progress"},
            headers=as_actor(Role.DRIVER_CROWN),
        )
        assert resp.status_code == 200

        resp = await client.get("/api/tasks", headers=as_actor())
        assert resp.status_code == 200
        ids = [t["task_id"] for t in resp.json()["tasks"]]
        assert ids == [running["task_id"], now["task_id"], today["task_id"]]

    async def test_get_single_task(self, client: AsyncClient, as_actor, new_task_body):
        created = await _create(client, as_actor, new_task_body)
        resp = await client.get(f"/api/tasks/{created['task_id']}", headers=as_actor())
        assert resp.status_code == 200
        assert resp.json()["task"] == created

    async def test_get_missing_task_is_404(self, client: AsyncClient, as_actor):
        resp = await client.get("/api/tasks/01JNONEXISTENT0000000000000", headers=as_actor())
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "TASK_NOT_FOUND"

    async def test_board_partition(self, client: AsyncClient, as_actor, new_task_body):
        unassigned = await _create(client, as_actor, new_task_body)
        fleet_a = await _create(client, as_actor, new_task_body, assigned_to="A")
        fleet_b = await _create(client, as_actor, new_task_body, assigned_to="B")

        resp = await client.get("/api/tasks/board", headers=as_actor())
        assert resp.status_code == 200
        board = resp.json()
        assert [t["task_id"] for t in board["unassigned"]] == [unassigned["task_id"]]
        assert [t["task_id"] for t in board["fleet_a"]] == [fleet_a["task_id"]]
        assert [t["task_id"] for t in board["fleet_b"]] == [fleet_b["task_id"]]
        assert board["other"] == []
