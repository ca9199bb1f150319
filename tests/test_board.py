"""
Board endpoint tests.
Covers: column view, cross/intra-column moves, no-op moves, move validation,
renumbering failures.
"""
from __future__ import annotations

from typing import Any

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from sprintboard.crud.task import crud_task

pytestmark = pytest.mark.asyncio


async def _create_task(client: AsyncClient, sprint_id: str, title: str, **kwargs: Any) -> dict:
    response = await client.post(
        "/api/v1/tasks", json={"sprint_id": sprint_id, "title": title, **kwargs}
    )
    assert response.status_code == 201, response.text
    return response.json()


async def _column(client: AsyncClient, sprint_id: str) -> list[dict]:
    response = await client.get("/api/v1/board")
    assert response.status_code == 200, response.text
    for column in response.json():
        if column["sprint"]["id"] == sprint_id:
            return column["tasks"]
    raise AssertionError(f"sprint {sprint_id} is not on the board")


async def _move(client: AsyncClient, task_id: str, sprint_id: str, index: int):
    return await client.post(
        "/api/v1/board/moves",
        json={"task_id": task_id, "target_sprint_id": sprint_id, "target_index": index},
    )


class TestBoardView:
    async def test_columns_follow_sprint_order(
        self, client: AsyncClient, default_sprints: list, sprint: dict
    ) -> None:
        response = await client.get("/api/v1/board")
        assert response.status_code == 200
        names = [column["sprint"]["name"] for column in response.json()]
        assert names == ["Priority Sprint", "Sprint 1", "Backlog"]

    async def test_tasks_are_appended_in_creation_order(
        self, client: AsyncClient, sprint: dict
    ) -> None:
        for title in ("First", "Second", "Third"):
            await _create_task(client, sprint["id"], title)

        tasks = await _column(client, sprint["id"])
        assert [t["title"] for t in tasks] == ["First", "Second", "Third"]
        assert [t["order_index"] for t in tasks] == [0, 1, 2]

    async def test_hidden_sprints_are_left_out(
        self, client: AsyncClient, sprint: dict, other_sprint: dict
    ) -> None:
        await client.patch(f"/api/v1/sprints/{other_sprint['id']}", json={"is_hidden": True})

        response = await client.get("/api/v1/board")
        ids = [column["sprint"]["id"] for column in response.json()]
        assert other_sprint["id"] not in ids

        response = await client.get("/api/v1/board?include_hidden=true")
        ids = [column["sprint"]["id"] for column in response.json()]
        assert other_sprint["id"] in ids


class TestMoveTask:
    async def test_move_to_front_of_other_column(
        self, client: AsyncClient, sprint: dict, other_sprint: dict
    ) -> None:
        a = await _create_task(client, sprint["id"], "A")
        await _create_task(client, sprint["id"], "B")
        await _create_task(client, other_sprint["id"], "C")
        await _create_task(client, other_sprint["id"], "D")

        response = await _move(client, a["id"], other_sprint["id"], 0)
        assert response.status_code == 200, response.text
        data = response.json()
        assert data["changed"] is True
        assert data["task"]["sprint_id"] == other_sprint["id"]
        assert data["task"]["order_index"] == 0

        target = await _column(client, other_sprint["id"])
        assert [t["title"] for t in target] == ["A", "C", "D"]
        assert [t["order_index"] for t in target] == [0, 1, 2]

        source = await _column(client, sprint["id"])
        assert [t["title"] for t in source] == ["B"]
        assert [t["order_index"] for t in source] == [0]

    async def test_move_within_column(self, client: AsyncClient, sprint: dict) -> None:
        tasks = [await _create_task(client, sprint["id"], t) for t in ("A", "B", "C", "D")]

        response = await _move(client, tasks[0]["id"], sprint["id"], 2)
        assert response.status_code == 200, response.text
        assert response.json()["writes"] == 3

        column = await _column(client, sprint["id"])
        assert [t["title"] for t in column] == ["B", "C", "A", "D"]
        assert [t["order_index"] for t in column] == [0, 1, 2, 3]

    async def test_move_to_column_length_means_last(
        self, client: AsyncClient, sprint: dict
    ) -> None:
        tasks = [await _create_task(client, sprint["id"], t) for t in ("A", "B", "C")]

        response = await _move(client, tasks[0]["id"], sprint["id"], 3)
        assert response.status_code == 200, response.text

        column = await _column(client, sprint["id"])
        assert [t["title"] for t in column] == ["B", "C", "A"]

    async def test_same_position_is_a_no_op(self, client: AsyncClient, sprint: dict) -> None:
        await _create_task(client, sprint["id"], "A")
        b = await _create_task(client, sprint["id"], "B")

        response = await _move(client, b["id"], sprint["id"], 1)
        assert response.status_code == 200
        data = response.json()
        assert data["changed"] is False
        assert data["writes"] == 0
        assert data["task"]["updated_at"] == b["updated_at"]

    async def test_indices_stay_strict_after_many_moves(
        self, client: AsyncClient, sprint: dict, other_sprint: dict
    ) -> None:
        ids = [(await _create_task(client, sprint["id"], f"T{n}"))["id"] for n in range(5)]
        moves = [
            (ids[4], other_sprint["id"], 0),
            (ids[0], other_sprint["id"], 1),
            (ids[2], sprint["id"], 0),
            (ids[4], sprint["id"], 2),
            (ids[1], other_sprint["id"], 1),
        ]
        for task_id, sprint_id, index in moves:
            response = await _move(client, task_id, sprint_id, index)
            assert response.status_code == 200, response.text

        for sprint_id in (sprint["id"], other_sprint["id"]):
            indices = [t["order_index"] for t in await _column(client, sprint_id)]
            assert indices == list(range(len(indices)))


class TestMoveValidation:
    async def test_index_past_column_end(
        self, client: AsyncClient, sprint: dict, other_sprint: dict
    ) -> None:
        a = await _create_task(client, sprint["id"], "A")
        await _create_task(client, other_sprint["id"], "C")

        response = await _move(client, a["id"], other_sprint["id"], 2)
        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"

    async def test_negative_index(self, client: AsyncClient, sprint: dict) -> None:
        a = await _create_task(client, sprint["id"], "A")
        response = await _move(client, a["id"], sprint["id"], -1)
        assert response.status_code == 422

    async def test_unknown_target_sprint(self, client: AsyncClient, sprint: dict) -> None:
        a = await _create_task(client, sprint["id"], "A")
        response = await _move(client, a["id"], "00000000-0000-0000-0000-000000000000", 0)
        assert response.status_code == 422

    async def test_hidden_target_sprint(
        self, client: AsyncClient, sprint: dict, other_sprint: dict
    ) -> None:
        a = await _create_task(client, sprint["id"], "A")
        await client.patch(f"/api/v1/sprints/{other_sprint['id']}", json={"is_hidden": True})

        response = await _move(client, a["id"], other_sprint["id"], 0)
        assert response.status_code == 422

    async def test_archived_task_cannot_move(self, client: AsyncClient, sprint: dict) -> None:
        a = await _create_task(client, sprint["id"], "A")
        await client.post(f"/api/v1/archive/tasks/{a['id']}", json={"archived_by": "tester"})

        response = await _move(client, a["id"], sprint["id"], 0)
        assert response.status_code == 422

    async def test_unknown_task(self, client: AsyncClient, sprint: dict) -> None:
        response = await _move(
            client, "00000000-0000-0000-0000-000000000000", sprint["id"], 0
        )
        assert response.status_code == 404


class TestRenumberFailures:
    async def test_failure_after_first_write_is_partial(
        self,
        client: AsyncClient,
        sprint: dict,
        other_sprint: dict,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        a = await _create_task(client, sprint["id"], "A")
        await _create_task(client, sprint["id"], "B")
        await _create_task(client, other_sprint["id"], "C")

        original = crud_task.set_position
        calls = 0

        async def flaky_set_position(db, **kwargs):
            nonlocal calls
            calls += 1
            if calls == 2:
                raise OperationalError("UPDATE tasks", {}, Exception("connection lost"))
            await original(db, **kwargs)

        monkeypatch.setattr(crud_task, "set_position", flaky_set_position)

        response = await _move(client, a["id"], other_sprint["id"], 0)
        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "PARTIAL_RENUMBER"
        assert "1 of 3" in body["detail"]

        monkeypatch.setattr(crud_task, "set_position", original)
        source = await _column(client, sprint["id"])
        assert [(t["title"], t["order_index"]) for t in source] == [("A", 0), ("B", 1)]
        target = await _column(client, other_sprint["id"])
        assert [(t["title"], t["order_index"]) for t in target] == [("C", 0)]

    async def test_failure_before_any_write_is_store_unavailable(
        self,
        client: AsyncClient,
        sprint: dict,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        a = await _create_task(client, sprint["id"], "A")
        await _create_task(client, sprint["id"], "B")

        async def broken_set_position(db, **kwargs):
            raise OperationalError("UPDATE tasks", {}, Exception("connection refused"))

        monkeypatch.setattr(crud_task, "set_position", broken_set_position)

        response = await _move(client, a["id"], sprint["id"], 1)
        assert response.status_code == 503
        assert response.json()["error"] == "STORE_UNAVAILABLE"

        monkeypatch.undo()
        column = await _column(client, sprint["id"])
        assert [(t["title"], t["order_index"]) for t in column] == [("A", 0), ("B", 1)]
