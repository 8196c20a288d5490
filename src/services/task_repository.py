"""Per-user task list and conversation state persistence over a key-value store."""

import json
import logging
from collections.abc import Callable
from typing import Protocol

from pydantic import TypeAdapter, ValidationError

from src.core.config import Constants
from src.core.logging import span
from src.domain.conversation import ConversationState, IdleState, conversation_state_adapter, dump_state
from src.domain.task import Task, sort_by_priority


logger = logging.getLogger(__name__)

_task_list_adapter: TypeAdapter[list[Task]] = TypeAdapter(list[Task])


class KeyValueStore(Protocol):
    """Minimal store interface shared by RedisClient and InMemoryStore."""

    is_durable: bool

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None: ...


def _decode(raw: str | bytes | None) -> object | None:
    if raw is None:
        return None
    try:
        value = json.loads(raw)
        # Values written by JSON-serializing REST clients arrive double-encoded
        if isinstance(value, str):
            value = json.loads(value)
    except (TypeError, ValueError):
        return None
    return value


class TaskRepository:
    """Read-modify-write access to one store for any number of user keys.

    Nothing here is atomic: concurrent writers for the same user race, and the
    last write wins.
    """

    def __init__(self, store: KeyValueStore, *, key_prefix: str = Constants.KEY_PREFIX) -> None:
        self._store = store
        self._key_prefix = key_prefix

    @property
    def is_durable(self) -> bool:
        """Whether the backing store outlives this process."""
        return bool(getattr(self._store, "is_durable", False))

    def _state_key(self, user_id: str) -> str:
        return f"{self._key_prefix}:state:{user_id}"

    def _tasks_key(self, user_id: str) -> str:
        return f"{self._key_prefix}:tasks:{user_id}"

    async def get_state(self, user_id: str) -> ConversationState:
        """Get the user's conversation state; anything unreadable is idle."""
        payload = _decode(await self._store.get(self._state_key(user_id)))
        if payload is None:
            return IdleState()

        try:
            return conversation_state_adapter.validate_python(payload)
        except ValidationError as e:
            logger.warning(
                "Malformed conversation state, defaulting to idle",
                extra={"user_id": user_id, "error": str(e)},
            )
            return IdleState()

    async def set_state(self, user_id: str, state: ConversationState) -> None:
        """Persist the user's conversation state."""
        await self._store.set(self._state_key(user_id), dump_state(state))

    async def get_tasks(self, user_id: str) -> list[Task]:
        """Get the user's task list; anything unreadable is an empty list."""
        payload = _decode(await self._store.get(self._tasks_key(user_id)))
        if payload is None:
            return []

        try:
            return _task_list_adapter.validate_python(payload)
        except ValidationError as e:
            logger.warning(
                "Malformed task list, defaulting to empty",
                extra={"user_id": user_id, "error": str(e)},
            )
            return []

    async def save_tasks(self, user_id: str, tasks: list[Task]) -> None:
        """Persist the task list as given."""
        payload = json.dumps([task.to_store() for task in tasks], ensure_ascii=False)
        await self._store.set(self._tasks_key(user_id), payload)

    async def add_task(self, user_id: str, task: Task) -> list[Task]:
        """Append a task and re-sort by priority.

        Returns:
            The stored list
        """
        with span("task_repository.add_task"):
            tasks = sort_by_priority([*await self.get_tasks(user_id), task])
            await self.save_tasks(user_id, tasks)
            logger.info("Task added", extra={"user_id": user_id, "task_id": task.id, "priority": task.priority})
            return tasks

    async def remove_task_by_index(self, user_id: str, index: int) -> Task | None:
        """Remove the task at a 1-based index.

        Returns:
            The removed task, or None if the index is out of range
        """
        with span("task_repository.remove_task_by_index"):
            tasks = await self.get_tasks(user_id)
            if not 1 <= index <= len(tasks):
                return None

            removed = tasks.pop(index - 1)
            await self.save_tasks(user_id, tasks)
            logger.info("Task removed", extra={"user_id": user_id, "task_id": removed.id})
            return removed

    async def update_task(self, user_id: str, task_id: str, mutator: Callable[[Task], Task | None]) -> Task | None:
        """Apply a mutator to one task and re-sort the list.

        The mutator may modify the task in place and return None, or return a
        replacement task.

        Returns:
            The updated task, or None if no task has that ID
        """
        tasks = await self.get_tasks(user_id)
        for position, task in enumerate(tasks):
            if task.id == task_id:
                updated = mutator(task) or task
                tasks[position] = updated
                break
        else:
            return None

        await self.save_tasks(user_id, sort_by_priority(tasks))
        return updated
