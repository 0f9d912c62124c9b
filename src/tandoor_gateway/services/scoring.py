"""Recipe scoring against the pantry and cooking history."""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta

from tandoor_gateway.domain.errors import ValidationError
from tandoor_gateway.domain.models import Recipe
from tandoor_gateway.domain.recipes import ScoredRecipe, SuggestionMode, Suggestions
from tandoor_gateway.services.backend import TandoorBackend
from tandoor_gateway.services.entity_cache import EntityCache

_logger = logging.getLogger(__name__)

# mode -> (minimum match score, maximum missing ingredients)
_MODE_RULES: dict[SuggestionMode, tuple[float, int | None]] = {
    SuggestionMode.MAXIMUM_USE: (0.5, None),
    SuggestionMode.EXPIRING: (0.3, 3),
    SuggestionMode.BALANCED: (0.6, None),
}


def score_recipe(recipe: Recipe, cache: EntityCache | None = None) -> ScoredRecipe:
    """Compute the share of countable ingredients that are on hand.

    The cache holds the current pantry state; the flag embedded in the recipe
    payload is only used for foods the cache does not know.
    """
    matched: list[str] = []
    missing: list[str] = []
    for ingredient in recipe.ingredients:
        if not ingredient.countable or ingredient.food is None:
            continue
        current = cache.food(ingredient.food.id) if cache is not None else None
        on_hand = current.on_hand if current is not None else ingredient.food.on_hand
        if on_hand:
            matched.append(ingredient.food.name)
        else:
            missing.append(ingredient.food.name)
    total = len(matched) + len(missing)
    score = round(len(matched) / total, 4) if total else 0.0
    return ScoredRecipe(
        recipe=recipe,
        match_score=score,
        matched_ingredients=matched,
        missing_ingredients=missing,
    )


def rank(
    scored: Iterable[ScoredRecipe], *, prefer_available: bool
) -> list[ScoredRecipe]:
    """Order by score when requested, otherwise keep the backend's order."""
    if not prefer_available:
        return list(scored)
    return sorted(
        scored,
        key=lambda item: (-item.match_score, item.recipe.total_time, item.recipe.id),
    )


@dataclass
class RecipeScorer:
    """Scores recipes and builds pantry-based suggestions."""

    backend: TandoorBackend
    default_recent_days: int = 7
    candidate_limit: int = 20

    async def score_recipes(
        self,
        recipes: list[Recipe],
        *,
        prefer_available: bool = True,
        exclude_recent: bool = False,
        recent_days: int | None = None,
        today: date | None = None,
        cache: EntityCache | None = None,
    ) -> list[ScoredRecipe]:
        """Score ``recipes``, dropping recently cooked ones when asked.

        The pantry is loaded alongside the recipe details unless ``cache``
        already holds it.
        """
        days = self.recent_window(recent_days)
        if exclude_recent:
            cooked = await self.recently_cooked(days, today=today)
            recipes = [recipe for recipe in recipes if recipe.id not in cooked]
        if cache is None:
            cache, detailed = await asyncio.gather(
                EntityCache.load(self.backend),
                self._with_ingredients(recipes),
            )
        else:
            detailed = await self._with_ingredients(recipes)
        return rank(
            [score_recipe(recipe, cache) for recipe in detailed],
            prefer_available=prefer_available,
        )

    async def recently_cooked(
        self, days: int, *, today: date | None = None
    ) -> set[int]:
        """Return ids of recipes cooked from ``today - days`` onwards."""
        since = (today or date.today()) - timedelta(days=days)
        entries = await self.backend.list_cook_log(since=since)
        return {entry.recipe_id for entry in entries}

    async def suggest(
        self,
        mode: SuggestionMode,
        *,
        limit: int = 10,
        exclude_recent: bool = False,
        recent_days: int | None = None,
        today: date | None = None,
    ) -> Suggestions:
        """Return recipes that use enough of the pantry for ``mode``.

        With nothing on hand no recipe is fetched or scored.
        """
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        threshold, max_missing = _MODE_RULES[mode]
        cache = await EntityCache.load(self.backend)
        available = [food.name for food in cache.foods if food.on_hand]
        if not available:
            _logger.info("No foods on hand, skipping %s suggestions", mode)
            return Suggestions(mode=mode)
        recipes = await self.backend.list_recipes(limit=self.candidate_limit)
        scored = await self.score_recipes(
            recipes,
            prefer_available=True,
            exclude_recent=exclude_recent,
            recent_days=recent_days,
            today=today,
            cache=cache,
        )
        suggestions = [
            item
            for item in scored
            if item.total_ingredients
            and item.match_score >= threshold
            and (max_missing is None or len(item.missing_ingredients) <= max_missing)
        ]
        _logger.info(
            "Suggesting %s of %s recipes in %s mode",
            min(len(suggestions), limit),
            len(scored),
            mode,
        )
        return Suggestions(
            mode=mode, recipes=suggestions[:limit], available=available
        )

    def recent_window(self, recent_days: int | None) -> int:
        """Return the look-back in days, defaulting when none is given."""
        if recent_days is None:
            return self.default_recent_days
        if recent_days < 0:
            raise ValidationError("recent_days must not be negative")
        return recent_days

    async def _with_ingredients(self, recipes: list[Recipe]) -> list[Recipe]:
        # list payloads omit steps, so ingredient-less rows are fetched in full
        return list(
            await asyncio.gather(
                *(
                    self._identity(recipe)
                    if recipe.ingredients
                    else self.backend.get_recipe(recipe.id)
                    for recipe in recipes
                )
            )
        )

    @staticmethod
    async def _identity(recipe: Recipe) -> Recipe:
        return recipe
