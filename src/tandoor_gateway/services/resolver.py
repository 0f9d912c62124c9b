"""Resolution of free-form names to backend entities."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from tandoor_gateway.domain.errors import (
    AmbiguousMatchError,
    NotFoundError,
    ValidationError,
)
from tandoor_gateway.domain.matching import (
    MatchCandidate,
    Resolution,
    ResolutionKind,
    normalize_name,
    resolve_name,
)
from tandoor_gateway.domain.models import Food, Keyword, MealType, Unit
from tandoor_gateway.domain.shopping import UnresolvedItem
from tandoor_gateway.services.backend import TandoorBackend
from tandoor_gateway.services.entity_cache import EntityCache

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedFood:
    """A food the caller's name resolved to."""

    food: Food
    kind: ResolutionKind
    rule: str | None = None

    @property
    def created(self) -> bool:
        return self.kind is ResolutionKind.CREATED


@dataclass
class EntityResolver:
    """Applies the matching policy and creates foods where permitted."""

    backend: TandoorBackend

    def resolve(
        self,
        query: str,
        candidates: Sequence[MatchCandidate],
        *,
        allow_create: bool = False,
    ) -> Resolution:
        """Run the matching policy, rejecting blank queries."""
        if not query or not query.strip():
            raise ValidationError("A name to look up is required")
        return resolve_name(query, candidates, allow_create=allow_create)

    async def resolve_food(
        self,
        cache: EntityCache,
        query: str,
        *,
        allow_create: bool,
        on_hand: bool = False,
    ) -> ResolvedFood:
        """Resolve ``query`` to a food, creating it when permitted.

        Nothing is created, and no miss is reported from a capped listing,
        until a server-side search has also come back empty.
        """
        resolution = self.resolve(
            query, cache.food_candidates(), allow_create=allow_create
        )
        if resolution.kind is ResolutionKind.CREATED or (
            resolution.kind is ResolutionKind.NOT_FOUND and not cache.foods_complete
        ):
            await self.search_foods(cache, query)
            resolution = self.resolve(
                query, cache.food_candidates(), allow_create=allow_create
            )
        if resolution.kind is ResolutionKind.CREATED:
            food = await self.backend.create_food(
                " ".join(query.split()), on_hand=on_hand
            )
            cache.remember_food(food)
            _logger.info("Created food %s (%s) for '%s'", food.name, food.id, query)
            return ResolvedFood(food=food, kind=ResolutionKind.CREATED)
        match = require_match(resolution, "food")
        food = cache.food(match.id)
        if food is None:
            raise NotFoundError(f"Food {match.id} disappeared during the call")
        return ResolvedFood(food=food, kind=resolution.kind, rule=resolution.rule)

    async def search_foods(self, cache: EntityCache, query: str) -> list[Food]:
        """Look ``query`` up on the server and merge the hits into ``cache``."""
        found: dict[int, Food] = {}
        for term in _search_terms(query):
            for food in await self.backend.list_foods(term):
                found[food.id] = food
        for food in found.values():
            cache.remember_food(food)
        _logger.debug("Server search for '%s' found %s foods", query, len(found))
        return list(found.values())

    def resolve_unit(self, cache: EntityCache, name: str) -> Unit:
        match = require_match(self.resolve(name, cache.unit_candidates()), "unit")
        unit = cache.unit(match.id)
        if unit is None:
            raise NotFoundError(f"Unit {match.id} is not available")
        return unit

    def resolve_keyword(self, cache: EntityCache, name: str) -> Keyword:
        match = require_match(
            self.resolve(name, cache.keyword_candidates()), "keyword"
        )
        keyword = cache.keyword(match.id)
        if keyword is None:
            raise NotFoundError(f"Keyword {match.id} is not available")
        return keyword

    def resolve_meal_type(self, meal_types: list[MealType], name: str) -> MealType:
        candidates = [
            MatchCandidate(id=meal_type.id, name=meal_type.name)
            for meal_type in meal_types
        ]
        match = require_match(self.resolve(name, candidates), "meal type")
        return next(item for item in meal_types if item.id == match.id)


def _search_terms(query: str) -> list[str]:
    term = normalize_name(query)
    if term.endswith("s") and len(term) > 1:
        return [term, term[:-1]]
    return [term]


def candidate_payload(candidates: Sequence[MatchCandidate]) -> list[dict[str, object]]:
    """Render candidates for callers that need to disambiguate."""
    return [{"id": candidate.id, "name": candidate.name} for candidate in candidates]


def require_match(resolution: Resolution, label: str) -> MatchCandidate:
    if resolution.kind is ResolutionKind.AMBIGUOUS:
        raise AmbiguousMatchError(
            resolution.query, candidate_payload(resolution.candidates)
        )
    if resolution.match is None:
        raise NotFoundError(f"No {label} matches '{resolution.query}'")
    return resolution.match


def unresolved_item(
    query: str, exc: AmbiguousMatchError | NotFoundError
) -> UnresolvedItem:
    """Describe a failed lookup for batch results that continue past it."""
    if isinstance(exc, AmbiguousMatchError):
        return UnresolvedItem(
            query=exc.query,
            reason="ambiguous",
            message=exc.message,
            candidates=exc.candidates,
        )
    return UnresolvedItem(query=query, reason="not_found", message=exc.message)
