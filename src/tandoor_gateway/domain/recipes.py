"""Domain models for recipe scoring and suggestions."""

from dataclasses import dataclass, field
from enum import StrEnum

from tandoor_gateway.domain.models import Recipe


class SuggestionMode(StrEnum):
    """How strictly suggestions must match the pantry."""

    MAXIMUM_USE = "maximum-use"
    EXPIRING = "expiring"
    BALANCED = "balanced"

    @classmethod
    def parse(cls, value: str | None) -> "SuggestionMode":
        """Map free-form mode names; unknown modes use the balanced rule."""
        try:
            return cls((value or cls.MAXIMUM_USE.value).strip().lower())
        except ValueError:
            return cls.BALANCED


@dataclass(frozen=True)
class ScoredRecipe:
    """Recipe annotated with how much of it the pantry covers."""

    recipe: Recipe
    match_score: float
    matched_ingredients: list[str] = field(default_factory=list)
    missing_ingredients: list[str] = field(default_factory=list)

    @property
    def total_ingredients(self) -> int:
        return len(self.matched_ingredients) + len(self.missing_ingredients)

    def to_dict(self) -> dict[str, object]:
        return {
            "recipe_id": self.recipe.id,
            "recipe_name": self.recipe.name,
            "match_score": self.match_score,
            "matching_ingredients": len(self.matched_ingredients),
            "total_ingredients": self.total_ingredients,
            "missing_ingredients": list(self.missing_ingredients),
            "total_time": self.recipe.total_time,
            "rating": self.recipe.rating,
            "keywords": list(self.recipe.keywords),
        }


@dataclass(frozen=True)
class Suggestions:
    """Pantry-based suggestions and the on-hand foods they were built from."""

    mode: SuggestionMode
    recipes: list[ScoredRecipe] = field(default_factory=list)
    available: list[str] = field(default_factory=list)
