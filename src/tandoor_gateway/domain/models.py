"""Domain models for backend entities used by the gateway."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum


class CredentialSource(StrEnum):
    """Where the live credential came from."""

    LOGIN = "login"
    PRESET_ENVIRONMENT = "preset_environment"


@dataclass(frozen=True)
class Credential:
    """Bearer token used to authorize backend calls."""

    value: str
    obtained_at: datetime
    source: CredentialSource

    @property
    def preview(self) -> str:
        """Return a log-safe prefix of the token."""
        return f"{self.value[:10]}..."


@dataclass(frozen=True)
class Food:
    """Food entity with its pantry flag."""

    id: int
    name: str
    plural_name: str | None = None
    description: str | None = None
    category: str | None = None
    on_hand: bool = False


@dataclass(frozen=True)
class Unit:
    """Measurement unit."""

    id: int
    name: str
    plural_name: str | None = None
    description: str | None = None
    base_unit: str | None = None
    type: str | None = None


@dataclass(frozen=True)
class Keyword:
    """Recipe keyword/tag."""

    id: int
    name: str
    description: str | None = None


@dataclass(frozen=True)
class ShoppingListEntry:
    """Shopping list row."""

    id: int
    food: Food
    amount: float
    unit: Unit | None
    checked: bool
    created_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def unit_id(self) -> int | None:
        return self.unit.id if self.unit else None


@dataclass(frozen=True)
class RecipeIngredient:
    """Ingredient line of a recipe."""

    food: Food | None
    amount: float
    unit: Unit | None = None
    note: str | None = None
    is_header: bool = False
    no_amount: bool = False

    @property
    def countable(self) -> bool:
        """Whether the line represents real demand for a food."""
        return self.food is not None and not self.is_header and not self.no_amount


@dataclass(frozen=True)
class Recipe:
    """Recipe with ingredients flattened across its steps."""

    id: int
    name: str
    description: str | None = None
    servings: int | None = None
    working_time: int = 0
    waiting_time: int = 0
    rating: float | None = None
    keywords: list[str] = field(default_factory=list)
    ingredients: list[RecipeIngredient] = field(default_factory=list)
    instructions: list[str] = field(default_factory=list)
    source_url: str | None = None
    last_cooked: datetime | None = None
    nutrition: dict[str, object] | None = None

    @property
    def total_time(self) -> int:
        return self.working_time + self.waiting_time


@dataclass(frozen=True)
class MealType:
    """Meal slot (breakfast, lunch, ...)."""

    id: int
    name: str
    order: int = 0
    color: str | None = None
    icon: str | None = None


@dataclass(frozen=True)
class MealPlanEntry:
    """Planned meal."""

    id: int
    date: date
    meal_type: MealType
    servings: float
    recipe_id: int | None = None
    recipe_name: str | None = None
    title: str | None = None
    note: str | None = None


@dataclass(frozen=True)
class CookLogEntry:
    """Record of a cooked recipe."""

    id: int
    recipe_id: int
    recipe_name: str | None
    servings: float
    created_at: datetime
    rating: int | None = None
    comment: str | None = None

    @property
    def date(self) -> date:
        return self.created_at.date()


@dataclass(frozen=True)
class RecipeBook:
    """Named collection of recipes."""

    id: int
    name: str
    description: str | None = None


@dataclass(frozen=True)
class UnitConversion:
    """Conversion row: ``base_amount`` of base unit equals ``converted_amount``."""

    base_amount: float
    base_unit_id: int
    converted_amount: float
    converted_unit_id: int
    food_id: int | None = None
