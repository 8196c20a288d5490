"""Task domain models."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Deadline(BaseModel):
    """Normalized deadline: month/day with an optional time, year-less."""

    model_config = ConfigDict(frozen=True)

    month: int = Field(..., ge=1, le=12, description="Month of year (1-12)")
    day: int = Field(..., ge=1, le=31, description="Day of month (1-31, not checked against month length)")
    hour: int | None = Field(default=None, ge=0, le=23, description="Hour of day (0-23)")
    minute: int | None = Field(default=None, ge=0, le=59, description="Minute (0-59), only rendered with an hour")

    def render(self) -> str:
        """Render to the stored textual form, e.g. ``12月25日 14時30分``."""
        result = f"{self.month}月{self.day}日"
        if self.hour is not None:
            result += f" {self.hour}時"
            if self.minute is not None:
                result += f"{self.minute}分"
        return result


class Task(BaseModel):
    """Task data transfer object.

    Serialized with the store's camelCase field names (``sentSlots``).
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1, description="Opaque unique task ID")
    name: str = Field(..., min_length=1, description="Task label")
    priority: int = Field(..., ge=1, le=4, description="1 = most urgent cadence, 4 = least")
    deadline: str = Field(..., description="Normalized deadline text (e.g. '12月25日 14時30分')")
    sent_slots: list[str] = Field(
        default_factory=list,
        alias="sentSlots",
        description="Reminder slot labels already notified (append-only)",
    )

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Task name must not be blank")
        return value

    def to_store(self) -> dict:
        """Return the JSON-ready dict written to the store."""
        return self.model_dump(by_alias=True)


def sort_by_priority(tasks: list[Task]) -> list[Task]:
    """Stable sort on priority only; insertion order breaks ties."""
    return sorted(tasks, key=lambda task: task.priority)
