"""Per-call lookup tables for foods, units and keywords."""

import asyncio
from dataclasses import dataclass, field

from tandoor_gateway.domain.matching import MatchCandidate, normalize_name
from tandoor_gateway.domain.models import Food, Keyword, Unit
from tandoor_gateway.services.backend import TandoorBackend


@dataclass
class EntityCache:
    """Backend collections indexed for matching.

    Built fresh for each tool invocation and discarded afterwards; nothing in
    here outlives the call that loaded it. ``foods_complete`` is False when the
    food listing hit the page cap, so a missing name proves nothing.
    """

    foods: list[Food] = field(default_factory=list)
    units: list[Unit] = field(default_factory=list)
    keywords: list[Keyword] = field(default_factory=list)
    foods_complete: bool = True

    def __post_init__(self) -> None:
        self._units_by_id = {unit.id: unit for unit in self.units}
        self._reindex_foods()

    def _reindex_foods(self) -> None:
        self._foods_by_id = {food.id: food for food in self.foods}
        self._foods_by_name: dict[str, list[Food]] = {}
        for food in self.foods:
            for value in (food.name, food.plural_name):
                if value:
                    key = normalize_name(value)
                    bucket = self._foods_by_name.setdefault(key, [])
                    if food not in bucket:
                        bucket.append(food)

    @classmethod
    async def load(
        cls,
        backend: TandoorBackend,
        *,
        foods: bool = True,
        units: bool = False,
        keywords: bool = False,
    ) -> "EntityCache":
        """Fetch the requested collections concurrently."""

        async def _empty() -> list:
            return []

        async def _no_foods() -> tuple[list[Food], bool]:
            return [], True

        (food_rows, complete), unit_rows, keyword_rows = await asyncio.gather(
            backend.food_catalog() if foods else _no_foods(),
            backend.list_units() if units else _empty(),
            backend.list_keywords() if keywords else _empty(),
        )
        return cls(
            foods=food_rows,
            units=unit_rows,
            keywords=keyword_rows,
            foods_complete=complete,
        )

    def food(self, food_id: int) -> Food | None:
        return self._foods_by_id.get(food_id)

    def unit(self, unit_id: int) -> Unit | None:
        return self._units_by_id.get(unit_id)

    def foods_named(self, name: str) -> list[Food]:
        """Return foods whose normalized name or plural equals ``name``."""
        return list(self._foods_by_name.get(normalize_name(name), []))

    def remember_food(self, food: Food) -> None:
        """Record a food created or updated during the current call."""
        existing = self._foods_by_id.get(food.id)
        if existing is not None:
            self.foods[self.foods.index(existing)] = food
        else:
            self.foods.append(food)
        self._reindex_foods()

    def food_candidates(self) -> list[MatchCandidate]:
        return [
            MatchCandidate(
                id=food.id,
                name=food.name,
                aliases=(food.plural_name,) if food.plural_name else (),
            )
            for food in self.foods
        ]

    def unit_candidates(self) -> list[MatchCandidate]:
        return [
            MatchCandidate(
                id=unit.id,
                name=unit.name,
                aliases=(unit.plural_name,) if unit.plural_name else (),
            )
            for unit in self.units
        ]

    def keyword_candidates(self) -> list[MatchCandidate]:
        return [
            MatchCandidate(id=keyword.id, name=keyword.name)
            for keyword in self.keywords
        ]

    def keyword(self, keyword_id: int) -> Keyword | None:
        for keyword in self.keywords:
            if keyword.id == keyword_id:
                return keyword
        return None
