from datetime import datetime

import pytest
from httpx import AsyncClient

from config import config

pytestmark = pytest.mark.asyncio


def _parse(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@pytest.fixture
async def project_id(async_client: AsyncClient, auth_headers: dict, bob, carol):
    resp = await async_client.post(
        "/api/projects",
        json={"name": "Kitchen Renovation", "member_ids": ["bob_id", "carol_id"]},
        headers=auth_headers,
    )
    return resp.json()["id"]


async def _create_task(client, project_id, headers, **payload):
    payload.setdefault("title", "Paint wall")
    resp = await client.post(f"/api/projects/{project_id}/tasks", json=payload, headers=headers)
    assert resp.status_code == 201
    return resp.json()


async def test_create_task(async_client: AsyncClient, auth_headers: dict, project_id: str):
    """Task comes back pending, with subtasks and attachments attached."""
    data = await _create_task(
        async_client, project_id, auth_headers,
        assignee_ids=["bob_id"],
        notes="Two coats",
        subtasks=[{"title": "Prime", "assignee_ids": ["carol_id"]}, {"title": "  "}],
        attachments=[{"type": "document", "file_name": "colours.pdf", "file_size": 245000}],
    )
    assert data["status"] == "pending"
    assert data["created_by"]["id"] == "alice_id"
    assert [u["id"] for u in data["assignees"]] == ["bob_id"]
    assert [s["title"] for s in data["subtasks"]] == ["Prime"]
    assert data["attachments"][0]["uploaded_by"]["id"] == "alice_id"
    assert data["subtask_progress"] == {"done": 0, "total": 1}
    assert data["is_new"] is False


async def test_create_task_validation(async_client: AsyncClient, auth_headers: dict, project_id: str):
    resp = await async_client.post(f"/api/projects/{project_id}/tasks", json={"title": "  "}, headers=auth_headers)
    assert resp.status_code == 400

    resp = await async_client.post(
        f"/api/projects/{project_id}/tasks", json={"title": "X", "assignee_ids": ["ghost"]}, headers=auth_headers
    )
    assert resp.status_code == 400


async def test_new_task_for_assignee(
    async_client: AsyncClient, auth_headers: dict, bob_headers: dict, carol_headers: dict, project_id: str
):
    task = await _create_task(async_client, project_id, auth_headers, assignee_ids=["bob_id"])

    bob_view = (await async_client.get(f"/api/projects/{project_id}/tasks/{task['id']}", headers=bob_headers)).json()
    assert bob_view["is_new"] is True

    detail = (await async_client.get(f"/api/projects/{project_id}", headers=carol_headers)).json()
    assert detail["unread_task_ids"] == [task["id"]]


async def test_accept_then_decline(
    async_client: AsyncClient, auth_headers: dict, bob_headers: dict, project_id: str
):
    """Accepting clears 'new' for good, even after declining."""
    task = await _create_task(async_client, project_id, auth_headers, assignee_ids=["bob_id"])
    base = f"/api/projects/{project_id}/tasks/{task['id']}"

    resp = await async_client.post(f"{base}/accept", json={"message": "On it"}, headers=bob_headers)
    assert resp.status_code == 200
    assert resp.json()["is_new"] is False
    assert resp.json()["acknowledged_by"] == ["bob_id"]

    resp = await async_client.post(f"{base}/decline", json={"reason": "Out sick"}, headers=bob_headers)
    assert resp.status_code == 200
    assert resp.json()["assignees"] == []
    assert resp.json()["acknowledged_by"] == ["bob_id"]

    messages = (await async_client.get(f"/api/projects/{project_id}/messages", headers=auth_headers)).json()
    assert [m["content"] for m in messages] == [
        'created task "Paint wall"',
        "✓ Accepted: On it",
        "✗ Declined: Out sick",
    ]


async def test_accept_without_body(async_client: AsyncClient, auth_headers: dict, bob_headers: dict, project_id: str):
    task = await _create_task(async_client, project_id, auth_headers, assignee_ids=["bob_id"])
    resp = await async_client.post(f"/api/projects/{project_id}/tasks/{task['id']}/accept", headers=bob_headers)
    assert resp.status_code == 200


async def test_toggle_status(async_client: AsyncClient, auth_headers: dict, bob_headers: dict, project_id: str):
    task = await _create_task(async_client, project_id, auth_headers)
    base = f"/api/projects/{project_id}/tasks/{task['id']}"

    done = (await async_client.post(f"{base}/toggle", headers=bob_headers)).json()
    assert done["status"] == "done"
    reopened = (await async_client.post(f"{base}/toggle", headers=bob_headers)).json()
    assert reopened["status"] == "pending"
    assert _parse(reopened["last_activity"]) > _parse(done["last_activity"])

    resp = await async_client.post(f"/api/projects/{project_id}/tasks/missing/toggle", headers=bob_headers)
    assert resp.status_code == 404


async def test_mark_task_read(async_client: AsyncClient, auth_headers: dict, bob_headers: dict, project_id: str):
    task = await _create_task(async_client, project_id, auth_headers)
    resp = await async_client.post(f"/api/projects/{project_id}/tasks/{task['id']}/read", headers=bob_headers)
    assert resp.status_code == 200

    detail = (await async_client.get(f"/api/projects/{project_id}", headers=bob_headers)).json()
    assert detail["unread_task_ids"] == []
    assert detail["unread_count"] == 0


async def test_update_task_partial(async_client: AsyncClient, auth_headers: dict, project_id: str):
    task = await _create_task(async_client, project_id, auth_headers, due_date="2026-03-10T00:00:00Z", notes="x")
    base = f"/api/projects/{project_id}/tasks/{task['id']}"

    resp = await async_client.patch(base, json={"title": "Paint ceiling"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["title"] == "Paint ceiling"
    assert resp.json()["due_date"] is not None
    assert resp.json()["notes"] == "x"

    resp = await async_client.patch(base, json={"due_date": None}, headers=auth_headers)
    assert resp.json()["due_date"] is None

    resp = await async_client.patch(base, json={"title": " "}, headers=auth_headers)
    assert resp.status_code == 400


async def test_edit_task_permission_enforced(
    async_client: AsyncClient, auth_headers: dict, bob_headers: dict, project_id: str, monkeypatch
):
    monkeypatch.setattr(config, "ENFORCE_PERMISSIONS", True)
    task = await _create_task(async_client, project_id, auth_headers)

    resp = await async_client.patch(
        f"/api/projects/{project_id}/tasks/{task['id']}", json={"title": "Mine now"}, headers=bob_headers
    )
    assert resp.status_code == 403


async def test_toggle_assignee(async_client: AsyncClient, auth_headers: dict, carol_headers: dict, project_id: str):
    task = await _create_task(async_client, project_id, auth_headers)
    await async_client.post(f"/api/projects/{project_id}/tasks/{task['id']}/read", headers=carol_headers)
    url = f"/api/projects/{project_id}/tasks/{task['id']}/assignees"

    resp = await async_client.post(url, json={"user_id": "carol_id"}, headers=auth_headers)
    assert [u["id"] for u in resp.json()["assignees"]] == ["carol_id"]

    detail = (await async_client.get(f"/api/projects/{project_id}", headers=carol_headers)).json()
    assert detail["unread_task_ids"] == [task["id"]]

    resp = await async_client.post(url, json={"user_id": "carol_id"}, headers=auth_headers)
    assert resp.json()["assignees"] == []

    resp = await async_client.post(url, json={"user_id": "ghost"}, headers=auth_headers)
    assert resp.status_code == 400


async def test_ask_question(async_client: AsyncClient, auth_headers: dict, bob_headers: dict, project_id: str):
    task = await _create_task(async_client, project_id, auth_headers)
    url = f"/api/projects/{project_id}/tasks/{task['id']}/question"

    resp = await async_client.post(url, json={"message": "Which colour?"}, headers=bob_headers)
    assert resp.status_code == 200

    resp = await async_client.post(url, json={"message": ""}, headers=bob_headers)
    assert resp.status_code == 400

    messages = (await async_client.get(f"/api/projects/{project_id}/messages", headers=bob_headers)).json()
    assert messages[-1]["referenced_task"]["task_id"] == task["id"]
    assert messages[-1]["is_from_current_user"] is True


async def test_non_string_fields_are_rejected(
    async_client: AsyncClient, auth_headers: dict, bob_headers: dict, project_id: str
):
    """Wrongly typed bodies get a validation error and change nothing."""
    task = await _create_task(async_client, project_id, auth_headers)
    base = f"/api/projects/{project_id}/tasks/{task['id']}"

    assert (await async_client.post(f"{base}/question", json={"message": 5}, headers=bob_headers)).status_code == 422
    assert (await async_client.post(f"{base}/accept", json={"message": ["ok"]}, headers=bob_headers)).status_code == 422
    assert (await async_client.post(f"{base}/decline", json={"reason": 1}, headers=bob_headers)).status_code == 422
    assert (await async_client.post(f"{base}/assignees", json={"user_id": 7}, headers=auth_headers)).status_code == 422
    resp = await async_client.post(f"/api/projects/{project_id}/members", json={"user_id": 7}, headers=auth_headers)
    assert resp.status_code == 422

    messages = (await async_client.get(f"/api/projects/{project_id}/messages", headers=bob_headers)).json()
    assert [m["content"] for m in messages] == [f"created task \"{task['title']}\""]


async def test_delete_task(async_client: AsyncClient, auth_headers: dict, bob_headers: dict, project_id: str):
    task = await _create_task(async_client, project_id, auth_headers)
    resp = await async_client.delete(f"/api/projects/{project_id}/tasks/{task['id']}", headers=auth_headers)
    assert resp.status_code == 200

    resp = await async_client.get(f"/api/projects/{project_id}/tasks/{task['id']}", headers=auth_headers)
    assert resp.status_code == 404

    detail = (await async_client.get(f"/api/projects/{project_id}", headers=bob_headers)).json()
    assert detail["unread_task_ids"] == []


async def test_task_attachments(async_client: AsyncClient, auth_headers: dict, bob_headers: dict, project_id: str):
    task = await _create_task(async_client, project_id, auth_headers, subtasks=[{"title": "Prime"}])
    base = f"/api/projects/{project_id}/tasks/{task['id']}/attachments"
    subtask_id = task["subtasks"][0]["id"]

    resp = await async_client.post(
        base,
        json={"type": "image", "category": "work", "file_name": "primed.jpg", "linked_subtask_id": subtask_id},
        headers=bob_headers,
    )
    assert resp.status_code == 201
    attachment = resp.json()
    assert attachment["uploaded_by"]["id"] == "bob_id"

    resp = await async_client.post(
        base, json={"type": "image", "file_name": "x.jpg", "linked_subtask_id": "ghost"}, headers=bob_headers
    )
    assert resp.status_code == 400

    resp = await async_client.delete(f"{base}/{attachment['id']}", headers=bob_headers)
    assert resp.status_code == 200
    resp = await async_client.delete(f"{base}/{attachment['id']}", headers=bob_headers)
    assert resp.status_code == 404


async def test_subtask_lifecycle(async_client: AsyncClient, auth_headers: dict, bob_headers: dict, project_id: str):
    task = await _create_task(async_client, project_id, auth_headers)
    base = f"/api/projects/{project_id}/tasks/{task['id']}/subtasks"

    resp = await async_client.post(base, json={"title": "Sand", "assignee_ids": ["bob_id"]}, headers=auth_headers)
    assert resp.status_code == 201
    subtask = resp.json()

    resp = await async_client.post(base, json={"title": " "}, headers=auth_headers)
    assert resp.status_code == 400

    resp = await async_client.patch(
        f"{base}/{subtask['id']}",
        json={"description": "120 grit", "assignee_ids": ["bob_id", "carol_id"]},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["description"] == "120 grit"
    assert [u["id"] for u in resp.json()["assignees"]] == ["bob_id", "carol_id"]

    resp = await async_client.post(f"{base}/{subtask['id']}/toggle", headers=bob_headers)
    assert resp.json()["is_done"] is True

    messages = (await async_client.get(f"/api/projects/{project_id}/messages", headers=auth_headers)).json()
    assert messages[-1]["kind"] == {
        "kind": "subtask_completed",
        "subtask": {"subtask_id": subtask["id"], "subtask_title": "Sand"},
    }
    assert messages[-1]["content"] == 'completed "Sand"'

    resp = await async_client.post(f"{base}/{subtask['id']}/assignees", json={"user_id": "carol_id"}, headers=auth_headers)
    assert [u["id"] for u in resp.json()["assignees"]] == ["bob_id"]

    resp = await async_client.post(f"{base}/{subtask['id']}/question", json={"message": "Which grit?"}, headers=bob_headers)
    assert resp.status_code == 200

    resp = await async_client.delete(f"{base}/{subtask['id']}", headers=auth_headers)
    assert resp.status_code == 200
    resp = await async_client.post(f"{base}/{subtask['id']}/toggle", headers=bob_headers)
    assert resp.status_code == 404
