"""
Sprint execution tests.
Covers: prompt rendering, completion detection, the execution endpoints and
reconciliation of submitted responses.
"""
from __future__ import annotations

import uuid
from types import SimpleNamespace
from typing import Any

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from sprintboard.crud.execution_log import crud_execution_log
from sprintboard.services.execution_service import find_completed, render_prompt


def _task(title: str, **kwargs: Any) -> SimpleNamespace:
    fields = {"id": uuid.uuid4(), "description": None, "priority": "medium", "tags": []}
    fields.update(kwargs)
    return SimpleNamespace(title=title, **fields)


async def _create_task(client: AsyncClient, sprint_id: str, title: str, **kwargs: Any) -> dict:
    response = await client.post(
        "/api/v1/tasks", json={"sprint_id": sprint_id, "title": title, **kwargs}
    )
    assert response.status_code == 201, response.text
    return response.json()


async def _start(client: AsyncClient, sprint_id: str, **kwargs: Any) -> dict:
    response = await client.post(
        "/api/v1/executions", json={"sprint_id": sprint_id, **kwargs}
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestRenderPrompt:
    def test_tasks_are_numbered_with_details(self) -> None:
        tasks = [
            _task("Fix login bug", priority="high", description="Session expires", tags=["bug"]),
            _task("Polish footer", priority="low"),
        ]
        prompt = render_prompt("Sprint 7", tasks)

        assert prompt.startswith("Sprint Execution: Sprint 7\n\n")
        assert (
            "1. **Fix login bug** (Priority: high)\n"
            "   Description: Session expires\n"
            "   Tags: bug\n\n"
            "2. **Polish footer** (Priority: low)\n"
            "   No description provided"
        ) in prompt
        assert prompt.rstrip().endswith("completion status.")


class TestFindCompleted:
    def test_title_before_keyword(self) -> None:
        task = _task("Fix login bug")
        assert find_completed("Task 'Fix login bug' completed successfully", [task]) == [task.id]

    def test_keyword_before_title(self) -> None:
        task = _task("Add dark mode")
        assert find_completed("Finished: **Add dark mode**", [task]) == [task.id]

    def test_case_is_ignored(self) -> None:
        task = _task("Add dark mode")
        assert find_completed("add DARK mode - DONE", [task]) == [task.id]

    def test_title_without_keyword_is_not_completion(self) -> None:
        task = _task("Fix login bug")
        assert find_completed("I looked at Fix login bug but it needs more work", [task]) == []

    def test_keyword_must_be_a_whole_word(self) -> None:
        task = _task("Fix login bug")
        assert find_completed("Fix login bug undone", [task]) == []

    def test_titles_with_regex_characters(self) -> None:
        task = _task("Support C++ (beta)")
        assert find_completed("Support C++ (beta) implemented", [task]) == [task.id]

    def test_result_follows_task_order(self) -> None:
        first, second = _task("Alpha"), _task("Beta")
        response = "Beta done. Alpha done."
        assert find_completed(response, [first, second]) == [first.id, second.id]

    def test_empty_response(self) -> None:
        assert find_completed("", [_task("Alpha")]) == []


@pytest.mark.asyncio
class TestStartExecution:
    async def test_prompt_follows_board_order(self, client: AsyncClient, sprint: dict) -> None:
        await _create_task(client, sprint["id"], "Fix login bug", priority="high")
        await _create_task(client, sprint["id"], "Polish footer", priority="low")

        log = await _start(client, sprint["id"], model_used="gpt-test")
        assert log["sprint_id"] == sprint["id"]
        assert log["model_used"] == "gpt-test"
        assert log["ai_response"] is None
        assert log["completed_task_ids"] is None
        assert log["prompt_sent"].index("**Fix login bug**") < log["prompt_sent"].index(
            "**Polish footer**"
        )

    async def test_archived_tasks_are_left_out(self, client: AsyncClient, sprint: dict) -> None:
        await _create_task(client, sprint["id"], "Keep me")
        gone = await _create_task(client, sprint["id"], "Old stuff")
        await client.post(
            f"/api/v1/archive/tasks/{gone['id']}", json={"archived_by": "tester"}
        )

        log = await _start(client, sprint["id"])
        assert "Keep me" in log["prompt_sent"]
        assert "Old stuff" not in log["prompt_sent"]
        assert log["model_used"] == "external"

    async def test_sprint_without_tasks(self, client: AsyncClient, sprint: dict) -> None:
        response = await client.post("/api/v1/executions", json={"sprint_id": sprint["id"]})
        assert response.status_code == 422

    async def test_unknown_sprint(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/executions",
            json={"sprint_id": "00000000-0000-0000-0000-000000000000"},
        )
        assert response.status_code == 404


@pytest.mark.asyncio
class TestSubmitResponse:
    async def test_marks_mentioned_tasks_completed(
        self, client: AsyncClient, sprint: dict
    ) -> None:
        fix = await _create_task(client, sprint["id"], "Fix login bug")
        mode = await _create_task(client, sprint["id"], "Add dark mode")
        log = await _start(client, sprint["id"])

        response = await client.post(
            f"/api/v1/executions/{log['id']}/response",
            json={
                "ai_response": "Task 'Fix login bug' completed successfully. "
                "Add dark mode still needs design input."
            },
        )
        assert response.status_code == 200, response.text
        data = response.json()
        assert data["completed_task_ids"] == [fix["id"]]
        assert data["unchanged_task_ids"] == [mode["id"]]
        assert data["log"]["completed_task_ids"] == [fix["id"]]
        assert data["log"]["ai_response"].startswith("Task 'Fix login bug'")

        assert (await client.get(f"/api/v1/tasks/{fix['id']}")).json()["status"] == "completed"
        assert (await client.get(f"/api/v1/tasks/{mode['id']}")).json()["status"] == "todo"

    async def test_no_match_keeps_response(self, client: AsyncClient, sprint: dict) -> None:
        await _create_task(client, sprint["id"], "Fix login bug")
        log = await _start(client, sprint["id"])

        response = await client.post(
            f"/api/v1/executions/{log['id']}/response",
            json={"ai_response": "Nothing finished yet."},
        )
        assert response.status_code == 200
        assert response.json()["completed_task_ids"] == []

        stored = (await client.get(f"/api/v1/executions/{log['id']}")).json()
        assert stored["ai_response"] == "Nothing finished yet."
        assert stored["completed_task_ids"] == []

    async def test_already_completed_tasks_are_unchanged(
        self, client: AsyncClient, sprint: dict
    ) -> None:
        done = await _create_task(client, sprint["id"], "Write guide", status="completed")
        log = await _start(client, sprint["id"])

        response = await client.post(
            f"/api/v1/executions/{log['id']}/response",
            json={"ai_response": "Write guide: done"},
        )
        data = response.json()
        assert data["completed_task_ids"] == []
        assert data["unchanged_task_ids"] == [done["id"]]

    async def test_second_response_conflicts(self, client: AsyncClient, sprint: dict) -> None:
        await _create_task(client, sprint["id"], "Fix login bug")
        log = await _start(client, sprint["id"])
        url = f"/api/v1/executions/{log['id']}/response"

        assert (await client.post(url, json={"ai_response": "first"})).status_code == 200
        again = await client.post(url, json={"ai_response": "second"})
        assert again.status_code == 409

    async def test_blank_response_rejected(self, client: AsyncClient, sprint: dict) -> None:
        await _create_task(client, sprint["id"], "Fix login bug")
        log = await _start(client, sprint["id"])
        url = f"/api/v1/executions/{log['id']}/response"

        assert (await client.post(url, json={"ai_response": ""})).status_code == 422
        assert (await client.post(url, json={"ai_response": "   "})).status_code == 422

        stored = (await client.get(f"/api/v1/executions/{log['id']}")).json()
        assert stored["ai_response"] is None

    async def test_store_failure_leaves_log_open_for_retry(
        self, client: AsyncClient, sprint: dict, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        fix = await _create_task(client, sprint["id"], "Fix login bug")
        log = await _start(client, sprint["id"])
        url = f"/api/v1/executions/{log['id']}/response"

        async def broken_update_fields(db, **kwargs):
            raise OperationalError("UPDATE execution_logs", {}, Exception("connection lost"))

        monkeypatch.setattr(crud_execution_log, "update_fields", broken_update_fields)
        response = await client.post(url, json={"ai_response": "Fix login bug: done"})
        assert response.status_code == 503
        assert response.json()["error"] == "STORE_UNAVAILABLE"

        assert (await client.get(f"/api/v1/tasks/{fix['id']}")).json()["status"] == "todo"
        stored = (await client.get(f"/api/v1/executions/{log['id']}")).json()
        assert stored["ai_response"] is None

        monkeypatch.undo()
        retry = await client.post(url, json={"ai_response": "Fix login bug: done"})
        assert retry.status_code == 200, retry.text
        assert retry.json()["completed_task_ids"] == [fix["id"]]


@pytest.mark.asyncio
class TestExecutionHistory:
    async def test_list_report_and_delete(
        self, client: AsyncClient, sprint: dict, other_sprint: dict
    ) -> None:
        await _create_task(client, sprint["id"], "One")
        await _create_task(client, other_sprint["id"], "Two")
        first = await _start(client, sprint["id"], model_used="model-a")
        await _start(client, sprint["id"])
        await _start(client, other_sprint["id"])

        listing = (await client.get(f"/api/v1/executions?sprint_id={sprint['id']}")).json()
        assert listing["total"] == 2

        report = (await client.get(f"/api/v1/executions/report/{sprint['id']}")).json()
        assert report["sprint_name"] == "Sprint 1"
        assert report["total_executions"] == 2
        assert report["latest_execution"] is not None
        assert set(report["models_used"]) == {"model-a", "external"}

        response = await client.delete(f"/api/v1/executions/{first['id']}")
        assert response.status_code == 204
        assert (await client.get(f"/api/v1/executions/{first['id']}")).status_code == 404
        assert (await client.get("/api/v1/executions")).json()["total"] == 2

    async def test_report_without_executions(self, client: AsyncClient, sprint: dict) -> None:
        report = (await client.get(f"/api/v1/executions/report/{sprint['id']}")).json()
        assert report["total_executions"] == 0
        assert report["latest_execution"] is None
        assert report["models_used"] == []
