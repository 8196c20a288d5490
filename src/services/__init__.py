from src.services import (
    conversation,
    reminder_scheduler,
    reminder_service,
    task_service,
)


__all__ = [
    "conversation",
    "reminder_scheduler",
    "reminder_service",
    "task_service",
]
