"""Conversation state variants (one per user)."""

from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class StateType(StrEnum):
    """Discriminator for conversation states."""

    IDLE = "idle"
    ADDING_TASK = "task_add"
    COMPLETING_TASK = "task_complete"
    DELETING_TASK = "task_delete"


class AddTaskStep(StrEnum):
    """Steps of the add-task flow."""

    NAME = "task_name"
    PRIORITY = "priority"
    DEADLINE = "deadline"


INDEX_STEP = "asking_index"


class IdleState(BaseModel):
    """No flow in progress."""

    type: Literal["idle"] = "idle"

    @property
    def step(self) -> None:
        return None


class AddingTaskState(BaseModel):
    """Add-task flow with its draft fields."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["task_add"] = "task_add"
    step: AddTaskStep = AddTaskStep.NAME
    draft_name: str | None = Field(default=None, alias="taskName")
    draft_priority: int | None = Field(default=None, ge=1, le=4, alias="priority")


class CompletingTaskState(BaseModel):
    """Waiting for the number of the task that was finished."""

    type: Literal["task_complete"] = "task_complete"
    step: Literal["asking_index"] = INDEX_STEP


class DeletingTaskState(BaseModel):
    """Waiting for the number of the task to delete."""

    type: Literal["task_delete"] = "task_delete"
    step: Literal["asking_index"] = INDEX_STEP


ConversationState = Annotated[
    IdleState | AddingTaskState | CompletingTaskState | DeletingTaskState,
    Field(discriminator="type"),
]

conversation_state_adapter: TypeAdapter[ConversationState] = TypeAdapter(ConversationState)


def dump_state(state: ConversationState) -> str:
    """Serialize a state to the JSON stored per user."""
    return conversation_state_adapter.dump_json(state, by_alias=True, exclude_none=True).decode()
