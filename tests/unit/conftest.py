"""Pytest configuration and fixtures for unit tests."""

from collections.abc import Callable

import pytest

from src.core.cache_client import InMemoryStore
from src.domain.task import Task
from src.services.task_repository import TaskRepository
from tests.unit.mocks import DurableInMemoryStore


@pytest.fixture
def memory_store() -> InMemoryStore:
    """Provides a fresh in-memory store for each test."""
    return InMemoryStore()


@pytest.fixture
def durable_store() -> DurableInMemoryStore:
    """Provides a fresh store that the reminder trigger treats as durable."""
    return DurableInMemoryStore()


@pytest.fixture
def repository(memory_store: InMemoryStore) -> TaskRepository:
    """Provides a task repository over the in-memory store."""
    return TaskRepository(memory_store)


@pytest.fixture
def make_task() -> Callable[..., Task]:
    """Factory for tasks with sensible defaults."""
    counter = iter(range(1, 10_000))

    def _make_task(
        name: str = "Write report",
        priority: int = 1,
        deadline: str = "12月25日",
        sent_slots: list[str] | None = None,
        task_id: str | None = None,
    ) -> Task:
        return Task(
            id=task_id or f"task-{next(counter)}",
            name=name,
            priority=priority,
            deadline=deadline,
            sent_slots=sent_slots or [],
        )

    return _make_task
