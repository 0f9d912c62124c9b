"""Domain models for meal planning requests."""

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class MealRequest:
    """A meal the caller wants on the plan.

    ``meal_type`` is either a meal type id or a name resolved against the
    backend's meal types.
    """

    date: date
    meal_type: int | str
    recipe_id: int | None = None
    title: str | None = None
    servings: float = 1.0
    note: str | None = None

    @property
    def label(self) -> str:
        subject = self.title or (
            f"recipe {self.recipe_id}" if self.recipe_id is not None else "meal"
        )
        return f"{subject} on {self.date.isoformat()}"
