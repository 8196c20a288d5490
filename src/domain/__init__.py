"""Domain models and DTOs."""

from src.domain.conversation import (
    AddingTaskState,
    AddTaskStep,
    CompletingTaskState,
    ConversationState,
    DeletingTaskState,
    IdleState,
    StateType,
)
from src.domain.task import Deadline, Task, sort_by_priority


__all__ = [
    "AddTaskStep",
    "AddingTaskState",
    "CompletingTaskState",
    "ConversationState",
    "Deadline",
    "DeletingTaskState",
    "IdleState",
    "StateType",
    "Task",
    "sort_by_priority",
]
