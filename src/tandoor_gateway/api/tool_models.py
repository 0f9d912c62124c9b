"""Pydantic models for tool payloads."""

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field


class EmptyPayload(BaseModel):
    """Payload for tools that take no arguments."""


class SearchRecipesPayload(BaseModel):
    """Recipe search filters."""

    query: str | None = None
    keywords: list[str] | None = None
    limit: int = Field(default=10, ge=1, le=100)
    prefer_available: bool = False
    exclude_recent: bool = False
    recent_days: int | None = Field(default=None, ge=0)


class GetRecipeDetailsPayload(BaseModel):
    """Recipe lookup with optional scaling."""

    id: int
    servings: float | None = Field(default=None, gt=0)


class CreateRecipePayload(BaseModel):
    """New recipe."""

    name: str = Field(min_length=1)
    description: str | None = None
    instructions: str | None = None
    servings: int | None = Field(default=None, gt=0)
    prep_time: int = Field(default=0, ge=0)
    cook_time: int = Field(default=0, ge=0)
    keywords: list[str] | None = None


class UpdateRecipePayload(BaseModel):
    """Partial recipe update."""

    id: int
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    servings: int | None = Field(default=None, gt=0)
    prep_time: int | None = Field(default=None, ge=0)
    cook_time: int | None = Field(default=None, ge=0)
    keywords: list[str] | None = None


class RateRecipePayload(BaseModel):
    """Recipe rating."""

    recipe_id: int
    rating: int = Field(ge=0, le=5)
    comment: str | None = None


class ImportRecipePayload(BaseModel):
    """Recipe import source."""

    url: str = Field(min_length=1)


class ShoppingItemPayload(BaseModel):
    """Structured shopping demand."""

    name: str | None = None
    food_id: int | None = None
    amount: float = Field(default=1.0, ge=0)
    unit: str | None = None
    unit_id: int | None = None


class FromRecipePayload(BaseModel):
    """Shopping demand taken from a recipe."""

    recipe_id: int
    servings: float | None = Field(default=None, gt=0)


class AddToShoppingListPayload(BaseModel):
    """Shopping list additions."""

    items: list[ShoppingItemPayload] | None = None
    request: str | None = None
    from_recipe: FromRecipePayload | None = None
    check_pantry: bool = True


class GetShoppingListPayload(BaseModel):
    """Shopping list layout."""

    format: Literal["flat", "grouped", "category"] = "flat"
    include_checked: bool = True


class CheckShoppingItemsPayload(BaseModel):
    """Entry ids or food names to mark as purchased."""

    items: list[int | str] = Field(min_length=1)


class SearchFoodsPayload(BaseModel):
    """Food search."""

    query: str = Field(min_length=1)
    limit: int = Field(default=20, ge=1, le=100)


class CreateFoodPayload(BaseModel):
    """New food."""

    name: str = Field(min_length=1)
    plural_name: str | None = None
    description: str | None = None
    on_hand: bool = False


class UpdateFoodAvailabilityPayload(BaseModel):
    """Pantry flag for a single food."""

    food: str | None = None
    food_id: int | None = None
    available: bool


class PantryItemPayload(BaseModel):
    """Pantry flag for one food in a batch."""

    food: str | None = None
    food_id: int | None = None
    available: bool
    amount: float | None = Field(default=None, ge=0)


class UpdatePantryPayload(BaseModel):
    """Batch of pantry changes."""

    items: list[PantryItemPayload] = Field(min_length=1)


class SuggestFromInventoryPayload(BaseModel):
    """Pantry-based suggestion options."""

    mode: str = "maximum-use"
    limit: int = Field(default=10, ge=1, le=50)
    exclude_recent: bool = False
    recent_days: int | None = Field(default=None, ge=0)


class GetMealPlansPayload(BaseModel):
    """Meal plan date range."""

    from_date: date
    to_date: date
    meal_type: int | str | None = None


class MealPayload(BaseModel):
    """A meal to plan."""

    date: date
    meal_type: int | str
    recipe_id: int | None = None
    title: str | None = None
    servings: float = Field(default=1, gt=0)
    note: str | None = None


class CreateMealPlanPayload(MealPayload):
    """A single meal plan entry."""


class PlanMealsPayload(BaseModel):
    """Several meals planned in one call."""

    meals: list[MealPayload] = Field(min_length=1)
    add_to_shopping: bool = False
    check_pantry: bool = True


class DeleteMealPlanPayload(BaseModel):
    """Meal plan to delete."""

    id: int


class GetKeywordsPayload(BaseModel):
    """Keyword filter."""

    query: str | None = None


class CreateRecipeBookPayload(BaseModel):
    """New recipe book."""

    name: str = Field(min_length=1)
    description: str | None = None


class AddRecipeToBookPayload(BaseModel):
    """Book (id or name) and recipe to add."""

    book: int | str
    recipe_id: int


class GetCookLogPayload(BaseModel):
    """Cook log filter."""

    recipe_id: int | None = None
    days_back: int = Field(default=30, ge=0)


class LogCookedRecipePayload(BaseModel):
    """Cook log entry."""

    recipe_id: int
    servings: float = Field(default=1, gt=0)
    rating: int | None = Field(default=None, ge=0, le=5)
    comment: str | None = None


class ConvertUnitsPayload(BaseModel):
    """Unit conversion request; units and food by id or name."""

    amount: float = Field(ge=0)
    from_unit: int | str
    to_unit: int | str
    food: int | str | None = None
