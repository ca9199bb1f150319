"""
Archive endpoint tests.
Covers: archive/restore round trip, state conflicts, permanent deletion,
filtered listing, bulk archival, tag listing.
"""
from __future__ import annotations

import os
from typing import Any

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def _create_task(client: AsyncClient, sprint_id: str, title: str, **kwargs: Any) -> dict:
    response = await client.post(
        "/api/v1/tasks", json={"sprint_id": sprint_id, "title": title, **kwargs}
    )
    assert response.status_code == 201, response.text
    return response.json()


async def _archive(client: AsyncClient, task_id: str, reason: str | None = None):
    return await client.post(
        f"/api/v1/archive/tasks/{task_id}",
        json={"archived_by": "tester", "reason": reason},
    )


class TestArchiveTask:
    async def test_archive_sets_provenance(self, client: AsyncClient, sprint: dict) -> None:
        task = await _create_task(client, sprint["id"], "Old work")

        response = await _archive(client, task["id"], reason="done with it")
        assert response.status_code == 200, response.text
        data = response.json()
        assert data["archived_at"] is not None
        assert data["archived_by"] == "tester"
        assert data["archive_reason"] == "done with it"

        board = (await client.get("/api/v1/board")).json()
        assert all(task["id"] != t["id"] for column in board for t in column["tasks"])

    async def test_archive_twice_conflicts(self, client: AsyncClient, sprint: dict) -> None:
        task = await _create_task(client, sprint["id"], "Old work")
        await _archive(client, task["id"])
        response = await _archive(client, task["id"])
        assert response.status_code == 409

    async def test_archive_requires_actor(self, client: AsyncClient, sprint: dict) -> None:
        task = await _create_task(client, sprint["id"], "Old work")
        response = await client.post(f"/api/v1/archive/tasks/{task['id']}", json={})
        assert response.status_code == 422


class TestRestoreTask:
    async def test_restore_appends_to_column_and_keeps_fields(
        self, client: AsyncClient, sprint: dict
    ) -> None:
        task = await _create_task(
            client,
            sprint["id"],
            "Fix login bug",
            description="users get logged out",
            priority="high",
            tags=["auth-team"],
        )
        await _create_task(client, sprint["id"], "Second")
        await _create_task(client, sprint["id"], "Third")
        await _archive(client, task["id"])

        response = await client.post(f"/api/v1/archive/tasks/{task['id']}/restore")
        assert response.status_code == 200, response.text
        restored = response.json()

        assert restored["order_index"] == 3
        assert restored["archived_at"] is None
        assert restored["archived_by"] is None
        assert restored["archive_reason"] is None
        for field in ("title", "description", "priority", "status", "tags", "sprint_id"):
            assert restored[field] == task[field]

    async def test_restore_into_empty_column_starts_at_zero(
        self, client: AsyncClient, sprint: dict
    ) -> None:
        task = await _create_task(client, sprint["id"], "Solo")
        await _archive(client, task["id"])
        restored = (await client.post(f"/api/v1/archive/tasks/{task['id']}/restore")).json()
        assert restored["order_index"] == 0

    async def test_restore_visible_task_conflicts(self, client: AsyncClient, sprint: dict) -> None:
        task = await _create_task(client, sprint["id"], "Visible")
        response = await client.post(f"/api/v1/archive/tasks/{task['id']}/restore")
        assert response.status_code == 409


class TestDeleteTask:
    async def test_delete_archived_task(self, client: AsyncClient, sprint: dict) -> None:
        task = await _create_task(client, sprint["id"], "Gone soon")
        await _archive(client, task["id"])

        response = await client.delete(f"/api/v1/archive/tasks/{task['id']}")
        assert response.status_code == 204

        assert (await client.get(f"/api/v1/tasks/{task['id']}")).status_code == 404
        assert (await client.get("/api/v1/archive")).json()["total"] == 0
        assert (await client.get("/api/v1/archive?search=Gone")).json()["total"] == 0

    async def test_delete_visible_task_conflicts(self, client: AsyncClient, sprint: dict) -> None:
        task = await _create_task(client, sprint["id"], "Still here")
        response = await client.delete(f"/api/v1/archive/tasks/{task['id']}")
        assert response.status_code == 409

    async def test_delete_removes_image_blobs(
        self, client: AsyncClient, sprint: dict, storage
    ) -> None:
        task = await _create_task(client, sprint["id"], "With picture")
        upload = await client.post(
            "/api/v1/images",
            files={"file": ("shot.png", b"\x89PNG fake", "image/png")},
            data={"task_id": task["id"]},
        )
        assert upload.status_code == 201, upload.text
        stored_name = upload.json()["url"].rsplit("/", 1)[-1]

        await _archive(client, task["id"])
        await client.delete(f"/api/v1/archive/tasks/{task['id']}")

        assert not os.path.exists(os.path.join(storage.upload_dir, stored_name))


class TestListArchived:
    async def _seed(self, client: AsyncClient, sprint: dict, other_sprint: dict) -> None:
        specs = [
            (sprint, "Fix payment crash", {"priority": "high", "tags": ["payments"]}),
            (sprint, "Write onboarding guide", {"priority": "low"}),
            (other_sprint, "Tune cache", {"priority": "high", "description": "redis latency"}),
        ]
        for owner, title, extra in specs:
            task = await _create_task(client, owner["id"], title, **extra)
            await _archive(client, task["id"])

    async def test_newest_first_with_sprint_name(
        self, client: AsyncClient, sprint: dict, other_sprint: dict
    ) -> None:
        await self._seed(client, sprint, other_sprint)
        data = (await client.get("/api/v1/archive")).json()
        assert data["total"] == 3
        names = {item["title"]: item["sprint_name"] for item in data["items"]}
        assert names["Tune cache"] == "Sprint 2"
        assert names["Fix payment crash"] == "Sprint 1"

    async def test_filters_are_combined(
        self, client: AsyncClient, sprint: dict, other_sprint: dict
    ) -> None:
        await self._seed(client, sprint, other_sprint)

        high = (await client.get("/api/v1/archive?priority=high")).json()
        assert {i["title"] for i in high["items"]} == {"Fix payment crash", "Tune cache"}

        both = (
            await client.get(f"/api/v1/archive?priority=high&sprint_id={sprint['id']}")
        ).json()
        assert [i["title"] for i in both["items"]] == ["Fix payment crash"]

    async def test_search_matches_title_description_and_tags(
        self, client: AsyncClient, sprint: dict, other_sprint: dict
    ) -> None:
        await self._seed(client, sprint, other_sprint)

        by_description = (await client.get("/api/v1/archive?search=REDIS")).json()
        assert [i["title"] for i in by_description["items"]] == ["Tune cache"]

        by_tag = (await client.get("/api/v1/archive?search=paym")).json()
        assert [i["title"] for i in by_tag["items"]] == ["Fix payment crash"]

        exact_tag = (await client.get("/api/v1/archive?tag=docs")).json()
        assert [i["title"] for i in exact_tag["items"]] == ["Write onboarding guide"]

    async def test_pagination(
        self, client: AsyncClient, sprint: dict, other_sprint: dict
    ) -> None:
        await self._seed(client, sprint, other_sprint)
        page = (await client.get("/api/v1/archive?page=2&size=2")).json()
        assert page["total"] == 3
        assert page["pages"] == 2
        assert len(page["items"]) == 1
        assert page["has_next"] is False

    async def test_archive_tags(
        self, client: AsyncClient, sprint: dict, other_sprint: dict
    ) -> None:
        await self._seed(client, sprint, other_sprint)
        tags = (await client.get("/api/v1/archive/tags")).json()
        assert tags == sorted(tags)
        assert {"payments", "bug", "docs", "performance"} <= set(tags)


class TestBulkArchive:
    async def test_archive_completed_of_sprint(self, client: AsyncClient, sprint: dict) -> None:
        await _create_task(client, sprint["id"], "Done one", status="completed")
        await _create_task(client, sprint["id"], "Open one")

        response = await client.post(
            f"/api/v1/sprints/{sprint['id']}/archive-completed",
            json={"archived_by": "lead"},
        )
        assert response.status_code == 200
        assert response.json()["archived_tasks"] == 1

        item = (await client.get("/api/v1/archive")).json()["items"][0]
        assert item["archive_reason"] == "Sprint completion archival from Sprint 1"

    async def test_archive_completed_without_completed_tasks(
        self, client: AsyncClient, sprint: dict
    ) -> None:
        await _create_task(client, sprint["id"], "Open one")
        response = await client.post(
            f"/api/v1/sprints/{sprint['id']}/archive-completed",
            json={"archived_by": "lead"},
        )
        assert response.status_code == 400

    async def test_archive_all(
        self, client: AsyncClient, sprint: dict, other_sprint: dict
    ) -> None:
        await _create_task(client, sprint["id"], "One")
        await _create_task(client, other_sprint["id"], "Two")

        response = await client.post("/api/v1/archive/all", json={"archived_by": "lead"})
        assert response.status_code == 200
        assert response.json()["archived_tasks"] == 2

        board = (await client.get("/api/v1/board")).json()
        assert all(column["tasks"] == [] for column in board)

        again = await client.post("/api/v1/archive/all", json={"archived_by": "lead"})
        assert again.status_code == 400
