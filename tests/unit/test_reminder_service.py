"""Tests for the reminder dispatch loop."""

from collections.abc import Callable
from unittest.mock import AsyncMock, patch

import pytest

from src.core.cache_client import InMemoryStore
from src.core.errors import StoreError
from src.domain.task import Task
from src.interface.line_sender import SendMessageResult
from src.services import reminder_service
from src.services.reminder_service import run_reminders
from src.services.task_repository import TaskRepository
from tests.unit.mocks import USER_ID, RecordingTransport, local


# Near mode, local hour 8: priority 1 fires, priority 2 and 3 do not
NOW = local(2026, 10, 17, 8, 3)


class TestRunReminders:
    """Test sending and marking of due slots."""

    async def test_sends_and_marks_due_slot(
        self, repository: TaskRepository, make_task: Callable[..., Task]
    ) -> None:
        await repository.add_task(USER_ID, make_task(task_id="task-1", name="Write report", deadline="10月20日"))
        transport = RecordingTransport()

        report = await run_reminders(repository=repository, user_id=USER_ID, now=NOW, transport=transport)

        assert [(sent.task_id, sent.label) for sent in report.sent] == [("task-1", "2026-10-17-8")]
        assert report.failed == []
        assert report.tasks_checked == 1
        assert transport.sent == [(USER_ID, "⏰ Reminder: Write report\nPriority 1, due 10月20日\n3 days left")]

        tasks = await repository.get_tasks(USER_ID)
        assert tasks[0].sent_slots == ["2026-10-17-8"]

    async def test_second_run_in_same_window_sends_nothing(
        self, repository: TaskRepository, make_task: Callable[..., Task]
    ) -> None:
        await repository.add_task(USER_ID, make_task(deadline="10月20日"))
        transport = RecordingTransport()

        await run_reminders(repository=repository, user_id=USER_ID, now=NOW, transport=transport)
        report = await run_reminders(
            repository=repository, user_id=USER_ID, now=local(2026, 10, 17, 8, 40), transport=transport
        )

        assert report.sent == []
        assert len(transport.sent) == 1

    async def test_failed_push_is_not_marked_and_batch_continues(
        self, repository: TaskRepository, make_task: Callable[..., Task]
    ) -> None:
        await repository.add_task(USER_ID, make_task(task_id="task-1", name="Flaky", deadline="10月20日"))
        await repository.add_task(USER_ID, make_task(task_id="task-2", name="Fine", deadline="10月21日"))
        transport = RecordingTransport(fail_on=("Flaky",))

        report = await run_reminders(repository=repository, user_id=USER_ID, now=NOW, transport=transport)

        assert [failed.task_id for failed in report.failed] == ["task-1"]
        assert [sent.task_id for sent in report.sent] == ["task-2"]

        tasks = {task.id: task for task in await repository.get_tasks(USER_ID)}
        assert tasks["task-1"].sent_slots == []
        assert tasks["task-2"].sent_slots == ["2026-10-17-8"]

    async def test_push_exception_is_not_fatal(
        self, repository: TaskRepository, make_task: Callable[..., Task]
    ) -> None:
        await repository.add_task(USER_ID, make_task(task_id="task-1", name="Broken", deadline="10月20日"))
        await repository.add_task(USER_ID, make_task(task_id="task-2", name="Fine", deadline="10月21日"))
        transport = RecordingTransport(raise_on=("Broken",))

        report = await run_reminders(repository=repository, user_id=USER_ID, now=NOW, transport=transport)

        assert report.failed[0].task_id == "task-1"
        assert "connection reset" in report.failed[0].error
        assert [sent.task_id for sent in report.sent] == ["task-2"]

    async def test_failed_slot_is_retried_on_next_run(
        self, repository: TaskRepository, make_task: Callable[..., Task]
    ) -> None:
        await repository.add_task(USER_ID, make_task(task_id="task-1", name="Flaky", deadline="10月20日"))

        await run_reminders(
            repository=repository, user_id=USER_ID, now=NOW, transport=RecordingTransport(fail_on=("Flaky",))
        )
        report = await run_reminders(
            repository=repository, user_id=USER_ID, now=local(2026, 10, 17, 8, 8), transport=RecordingTransport()
        )

        assert [sent.label for sent in report.sent] == ["2026-10-17-8"]

    async def test_nothing_due(self, repository: TaskRepository, make_task: Callable[..., Task]) -> None:
        await repository.add_task(USER_ID, make_task(priority=3, deadline="10月20日"))
        transport = RecordingTransport()

        report = await run_reminders(repository=repository, user_id=USER_ID, now=NOW, transport=transport)

        assert report.sent == []
        assert transport.attempts == 0

    async def test_defaults_to_line_push(self, repository: TaskRepository, make_task: Callable[..., Task]) -> None:
        await repository.add_task(USER_ID, make_task(deadline="10月20日"))

        with patch("src.interface.line_sender.push_message", new_callable=AsyncMock) as mock_push:
            mock_push.return_value = SendMessageResult(success=True)
            report = await run_reminders(repository=repository, user_id=USER_ID, now=NOW)

        assert len(report.sent) == 1
        assert mock_push.call_args.kwargs["to_user_id"] == USER_ID

    async def test_store_error_propagates(self) -> None:
        store = AsyncMock()
        store.get.side_effect = StoreError("Redis GET failed")

        with pytest.raises(StoreError):
            await run_reminders(
                repository=TaskRepository(store), user_id=USER_ID, now=NOW, transport=RecordingTransport()
            )


class TestDispatchForAllowedUser:
    """Test the configured-user entry point used by the trigger endpoint."""

    async def test_skipped_without_allowed_user(self) -> None:
        with patch.object(reminder_service.settings, "allowed_line_user_id", ""):
            report = await reminder_service.dispatch_for_allowed_user()

        assert report.skipped_reason == "No allowed user configured"

    async def test_skipped_without_durable_store(self, memory_store: InMemoryStore) -> None:
        with (
            patch.object(reminder_service.settings, "allowed_line_user_id", USER_ID),
            patch("src.services.reminder_service.get_store", return_value=memory_store),
        ):
            report = await reminder_service.dispatch_for_allowed_user()

        assert report.skipped_reason == "No durable store configured"

    async def test_in_process_run_accepts_memory_store(
        self, memory_store: InMemoryStore, make_task: Callable[..., Task]
    ) -> None:
        await TaskRepository(memory_store).add_task(USER_ID, make_task(deadline="10月20日"))

        with (
            patch.object(reminder_service.settings, "allowed_line_user_id", USER_ID),
            patch("src.services.reminder_service.get_store", return_value=memory_store),
            patch("src.interface.line_sender.push_message", new_callable=AsyncMock) as mock_push,
        ):
            mock_push.return_value = SendMessageResult(success=True)
            report = await reminder_service.dispatch_for_allowed_user(require_durable=False, now=NOW)

        assert report.skipped_reason is None
        assert len(report.sent) == 1
