"""Centralized message templates for LINE replies and reminders.

All user-facing message strings are defined here so wording can be changed
in one place.
"""

from src.domain.task import Task


ASK_TASK_NAME = "What's the task name?"
ASK_PRIORITY = "Priority? (1-4)"
INVALID_PRIORITY = "Please enter a number from 1 to 4. Priority? (1-4)"
ASK_DEADLINE = "When should it be done by? (e.g. tomorrow, 3日後 18時, 12月25日 or 12月25日14時30分)"
INVALID_DEADLINE = (
    "I couldn't understand that date. "
    "Try something like tomorrow, 明日 9時, 12月25日 or 12月25日14時30分."
)
TASK_ADDED = "Understood, reminders will follow by priority."
NO_TASKS = "No tasks."
EMPTY_TASK_LIST = "(no tasks)"
TASK_COMPLETED = "Removed from your task list. Great job!"
TASK_DELETED = "Task deleted."

_FLOW_NAMES = {
    "task_add": "Adding a task",
    "task_complete": "Completing a task",
    "task_delete": "Deleting a task",
}


def format_task_list(tasks: list[Task]) -> str:
    """Render the numbered task list shown to the user."""
    if not tasks:
        return EMPTY_TASK_LIST
    return "\n".join(
        f"{index}. {task.name} (priority {task.priority}, due {task.deadline})" for index, task in enumerate(tasks, 1)
    )


def task_list(tasks: list[Task]) -> str:
    return f"Here are your tasks:\n{format_task_list(tasks)}"


def ask_completed_index(tasks: list[Task]) -> str:
    return f"Which task number did you finish?\n{format_task_list(tasks)}"


def ask_deleted_index(tasks: list[Task]) -> str:
    return f"Which task number should be deleted?\n{format_task_list(tasks)}"


def invalid_index(prompt: str) -> str:
    return f"Invalid number. {prompt}"


def flow_cancelled(*, state_type: str) -> str:
    return f"{_FLOW_NAMES.get(state_type, 'The current step')} was cancelled."


def your_user_id(*, user_id: str | None) -> str:
    if not user_id:
        return "I couldn't read your user ID from this chat."
    return f"Your user ID is:\n{user_id}"


def reminder(*, task: Task, suffix: str) -> str:
    """Build a reminder push message.

    Args:
        task: Task being reminded about
        suffix: Slot-specific wording (e.g. "3 days left")
    """
    return f"⏰ Reminder: {task.name}\nPriority {task.priority}, due {task.deadline}\n{suffix}"
