"""Conversation state machine.

A pure decision function over (current state, incoming text, task list) that
returns the next state, the reply text, and the task-list mutation to apply.
Each call consumes exactly one user turn. Persisting the state and applying
the mutation is left to the caller (see task_service).
"""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from src.core import message_templates
from src.core.clock import utc_now
from src.core.config import Constants
from src.core.deadline_parser import parse_deadline
from src.domain.conversation import (
    INDEX_STEP,
    AddingTaskState,
    AddTaskStep,
    CompletingTaskState,
    ConversationState,
    DeletingTaskState,
    IdleState,
    StateType,
)
from src.domain.task import Task


logger = logging.getLogger(__name__)

CANCEL_WORDS = frozenset({"cancel", "キャンセル", "やめる", "中止"})
ADD_TASK_COMMANDS = frozenset({"add task", "タスク追加"})
LIST_TASKS_COMMANDS = frozenset({"list tasks", "タスク", "タスク一覧"})
COMPLETE_TASK_COMMANDS = frozenset({"complete task", "タスク完了"})
DELETE_TASK_COMMANDS = frozenset({"delete task", "タスク削除"})

UNTITLED_TASK_NAME = "Untitled"


@dataclass(frozen=True)
class AddTask:
    """Append a task (the list is re-sorted by priority)."""

    task: Task


@dataclass(frozen=True)
class RemoveTask:
    """Remove the task at a 1-based index of the current list."""

    index: int


TaskMutation = AddTask | RemoveTask


@dataclass(frozen=True)
class Transition:
    """Result of handling one turn."""

    state: ConversationState
    reply: str
    mutation: TaskMutation | None = None


def new_task_id() -> str:
    """Generate a fresh, never-reused task ID."""
    return f"task-{uuid.uuid4().hex}"


@dataclass(frozen=True)
class _Turn:
    text: str
    tasks: list[Task]
    now: datetime
    new_task_id: Callable[[], str]


_Handler = Callable[[ConversationState, _Turn], Transition]


def _parse_int(text: str) -> int | None:
    try:
        return int(text)
    except ValueError:
        return None


def _handle_idle(state: ConversationState, turn: _Turn) -> Transition:
    text = turn.text

    if text in ADD_TASK_COMMANDS:
        return Transition(AddingTaskState(step=AddTaskStep.NAME), message_templates.ASK_TASK_NAME)

    if text in LIST_TASKS_COMMANDS:
        return Transition(state, message_templates.task_list(turn.tasks))

    if text in COMPLETE_TASK_COMMANDS:
        if not turn.tasks:
            return Transition(state, message_templates.NO_TASKS)
        return Transition(CompletingTaskState(), message_templates.ask_completed_index(turn.tasks))

    if text in DELETE_TASK_COMMANDS:
        if not turn.tasks:
            return Transition(state, message_templates.NO_TASKS)
        return Transition(DeletingTaskState(), message_templates.ask_deleted_index(turn.tasks))

    # Anything else is echoed back
    return Transition(state, text)


def _handle_task_name(state: ConversationState, turn: _Turn) -> Transition:
    if not turn.text:
        return Transition(state, message_templates.ASK_TASK_NAME)
    return Transition(
        AddingTaskState(step=AddTaskStep.PRIORITY, draft_name=turn.text),
        message_templates.ASK_PRIORITY,
    )


def _handle_priority(state: AddingTaskState, turn: _Turn) -> Transition:
    priority = _parse_int(turn.text)
    if priority is None or not Constants.MIN_PRIORITY <= priority <= Constants.MAX_PRIORITY:
        return Transition(state, message_templates.INVALID_PRIORITY)

    return Transition(
        AddingTaskState(step=AddTaskStep.DEADLINE, draft_name=state.draft_name, draft_priority=priority),
        message_templates.ASK_DEADLINE,
    )


def _handle_deadline(state: AddingTaskState, turn: _Turn) -> Transition:
    deadline = parse_deadline(turn.text, turn.now)
    if deadline is None:
        return Transition(state, message_templates.INVALID_DEADLINE)

    task = Task(
        id=turn.new_task_id(),
        name=state.draft_name or UNTITLED_TASK_NAME,
        priority=state.draft_priority or Constants.MIN_PRIORITY,
        deadline=deadline.render(),
    )
    return Transition(IdleState(), message_templates.TASK_ADDED, AddTask(task))


def _select_index(
    state: ConversationState,
    turn: _Turn,
    *,
    prompt: Callable[[list[Task]], str],
    done_reply: str,
) -> Transition:
    # The list may have been emptied by another event since the prompt was shown
    if not turn.tasks:
        return Transition(IdleState(), message_templates.NO_TASKS)

    index = _parse_int(turn.text)
    if index is None or not 1 <= index <= len(turn.tasks):
        return Transition(state, message_templates.invalid_index(prompt(turn.tasks)))

    return Transition(IdleState(), done_reply, RemoveTask(index))


def _handle_completed_index(state: ConversationState, turn: _Turn) -> Transition:
    return _select_index(
        state,
        turn,
        prompt=message_templates.ask_completed_index,
        done_reply=message_templates.TASK_COMPLETED,
    )


def _handle_deleted_index(state: ConversationState, turn: _Turn) -> Transition:
    return _select_index(
        state,
        turn,
        prompt=message_templates.ask_deleted_index,
        done_reply=message_templates.TASK_DELETED,
    )


# Transition table keyed by (state type, step)
TRANSITIONS: dict[tuple[str, str | None], _Handler] = {
    (StateType.IDLE, None): _handle_idle,
    (StateType.ADDING_TASK, AddTaskStep.NAME): _handle_task_name,
    (StateType.ADDING_TASK, AddTaskStep.PRIORITY): _handle_priority,  # type: ignore[dict-item]
    (StateType.ADDING_TASK, AddTaskStep.DEADLINE): _handle_deadline,  # type: ignore[dict-item]
    (StateType.COMPLETING_TASK, INDEX_STEP): _handle_completed_index,
    (StateType.DELETING_TASK, INDEX_STEP): _handle_deleted_index,
}


def handle(
    state: ConversationState,
    text: str,
    tasks: list[Task],
    *,
    now: datetime | None = None,
    id_factory: Callable[[], str] = new_task_id,
) -> Transition:
    """Interpret one chat message against the current conversation state.

    A cancel word in any non-idle state returns to idle before any in-flow
    parsing happens.

    Args:
        state: Current conversation state for the user
        text: Incoming message text
        tasks: The user's task list as currently stored (priority-sorted)
        now: Current instant, used to resolve relative deadlines
        id_factory: Generates the ID of a newly created task

    Returns:
        Transition with the next state, reply text and optional mutation
    """
    text = text.strip()

    if state.type != StateType.IDLE and text in CANCEL_WORDS:
        return Transition(IdleState(), message_templates.flow_cancelled(state_type=state.type))

    handler = TRANSITIONS.get((state.type, state.step))
    if handler is None:
        logger.warning("No transition for state, resetting to idle", extra={"state_type": state.type})
        state, handler = IdleState(), _handle_idle

    turn = _Turn(text=text, tasks=tasks, now=now or utc_now(), new_task_id=id_factory)
    return handler(state, turn)
