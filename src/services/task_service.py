"""Conversation driver: runs one chat turn against the repository."""

import logging
from datetime import datetime

from src.core.logging import span
from src.services import conversation
from src.services.conversation import AddTask, RemoveTask, Transition
from src.services.task_repository import TaskRepository


logger = logging.getLogger(__name__)


async def _apply_mutation(*, repository: TaskRepository, user_id: str, transition: Transition) -> None:
    mutation = transition.mutation
    if isinstance(mutation, AddTask):
        await repository.add_task(user_id, mutation.task)
    elif isinstance(mutation, RemoveTask):
        removed = await repository.remove_task_by_index(user_id, mutation.index)
        if removed is None:
            logger.warning("Task index vanished before removal", extra={"user_id": user_id, "index": mutation.index})


async def handle_message(
    *,
    repository: TaskRepository,
    user_id: str,
    text: str,
    now: datetime | None = None,
) -> str:
    """Handle one text message from the allow-listed user.

    Loads the user's state and a fresh copy of the task list, runs the state
    machine, applies its mutation, then persists the next state.

    Args:
        repository: Task repository
        user_id: LINE user ID
        text: Message text
        now: Current instant (defaults to the current time)

    Returns:
        Reply text to send back
    """
    with span("task_service.handle_message"):
        state = await repository.get_state(user_id)
        tasks = await repository.get_tasks(user_id)

        transition = conversation.handle(state, text, tasks, now=now)

        await _apply_mutation(repository=repository, user_id=user_id, transition=transition)
        if transition.state != state:
            await repository.set_state(user_id, transition.state)

        logger.info(
            "Conversation turn handled",
            extra={
                "user_id": user_id,
                "from_state": state.type,
                "to_state": transition.state.type,
                "mutation": type(transition.mutation).__name__ if transition.mutation else None,
            },
        )
        return transition.reply
