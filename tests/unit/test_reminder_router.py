"""Tests for the reminder trigger endpoint."""

import asyncio
from collections.abc import Callable, Generator
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from src.core.cache_client import InMemoryStore
from src.core.config import settings
from src.core.errors import StoreError
from src.domain.task import Task
from src.interface.line_sender import SendMessageResult
from src.services.reminder_service import DispatchReport
from src.services.task_repository import TaskRepository
from tests.unit.mocks import USER_ID, DurableInMemoryStore, local


SECRET = "cron-secret"


@pytest.fixture(autouse=True)
def configured() -> Generator[None, None, None]:
    with (
        patch.object(settings, "reminder_secret", SECRET),
        patch.object(settings, "allowed_line_user_id", USER_ID),
    ):
        yield


@pytest.mark.unit
def test_missing_secret_is_rejected(client: TestClient) -> None:
    response = client.get("/api/reminders")

    assert response.status_code == 401


@pytest.mark.unit
def test_wrong_secret_is_rejected(client: TestClient) -> None:
    response = client.get("/api/reminders", params={"secret": "guess"})

    assert response.status_code == 403


@pytest.mark.unit
def test_no_op_without_durable_store(client: TestClient, memory_store: InMemoryStore) -> None:
    with patch("src.services.reminder_service.get_store", return_value=memory_store):
        response = client.get("/api/reminders", params={"secret": SECRET})

    assert response.status_code == 200
    assert response.json() == {"status": "skipped", "reason": "No durable store configured"}


@pytest.mark.unit
def test_no_op_without_allowed_user(client: TestClient) -> None:
    with patch.object(settings, "allowed_line_user_id", ""):
        response = client.get("/api/reminders", params={"secret": SECRET})

    assert response.status_code == 200
    assert response.json()["status"] == "skipped"


@pytest.mark.unit
def test_sends_due_reminders(
    client: TestClient, durable_store: DurableInMemoryStore, make_task: Callable[..., Task]
) -> None:
    seeded = TaskRepository(durable_store)
    asyncio.run(seeded.add_task(USER_ID, make_task(task_id="task-1", deadline="10月20日")))

    with (
        patch("src.services.reminder_service.get_store", return_value=durable_store),
        patch("src.services.reminder_service.utc_now", return_value=local(2026, 10, 17, 8, 3)),
        patch("src.interface.line_sender.push_message", new_callable=AsyncMock) as mock_push,
    ):
        mock_push.return_value = SendMessageResult(success=True)
        response = client.get("/api/reminders", params={"secret": SECRET})

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "tasks_checked": 1, "sent": 1, "failed": 0}
    assert asyncio.run(seeded.get_tasks(USER_ID))[0].sent_slots == ["2026-10-17-8"]


@pytest.mark.unit
def test_store_failure_returns_500(client: TestClient) -> None:
    with patch(
        "src.services.reminder_service.dispatch_for_allowed_user",
        new_callable=AsyncMock,
        side_effect=StoreError("Redis GET failed"),
    ):
        response = client.get("/api/reminders", params={"secret": SECRET})

    assert response.status_code == 500


@pytest.mark.unit
def test_reports_failures(client: TestClient) -> None:
    report = DispatchReport.model_validate(
        {"tasks_checked": 2, "sent": [], "failed": [{"task_id": "task-1", "label": "30m", "error": "Client error 400"}]}
    )
    with patch("src.services.reminder_service.dispatch_for_allowed_user", new_callable=AsyncMock, return_value=report):
        response = client.get("/api/reminders", params={"secret": SECRET})

    assert response.json() == {"status": "ok", "tasks_checked": 2, "sent": 0, "failed": 1}
