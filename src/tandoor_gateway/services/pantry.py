"""Pantry availability updates."""

import logging
from dataclasses import dataclass

from tandoor_gateway.domain.errors import (
    AmbiguousMatchError,
    AuthError,
    NotFoundError,
    ScopeError,
    UpstreamError,
    ValidationError,
)
from tandoor_gateway.domain.models import Food
from tandoor_gateway.domain.operations import RECOVERABLE_ERRORS, halt_operation
from tandoor_gateway.domain.shopping import PantryChange, PantryLine, PantryResult
from tandoor_gateway.services.backend import TandoorBackend
from tandoor_gateway.services.entity_cache import EntityCache
from tandoor_gateway.services.resolver import EntityResolver, unresolved_item

_logger = logging.getLogger(__name__)


@dataclass
class PantryService:
    """Sets the on-hand flag of foods, creating unknown foods."""

    backend: TandoorBackend
    resolver: EntityResolver

    async def apply(self, changes: list[PantryChange]) -> PantryResult:
        _validate_changes(changes)
        cache = await EntityCache.load(self.backend)
        result = PantryResult()
        try:
            for change in changes:
                await self._apply_one(cache, change, result)
        except (AuthError, ScopeError) as exc:
            halt_operation(result.log, exc, result.to_dict())
        _logger.info("Pantry update finished: %s", result.summary)
        return result

    async def _apply_one(
        self, cache: EntityCache, change: PantryChange, result: PantryResult
    ) -> None:
        label = change.name or f"food {change.food_id}"
        flag = "on hand" if change.available else "not on hand"
        try:
            food, created = await self._food_for(cache, change)
        except (AmbiguousMatchError, NotFoundError) as exc:
            result.unresolved.append(unresolved_item(label, exc))
            return
        except (UpstreamError, ValidationError) as exc:
            result.log.failed_step("create food", label, exc)
            return
        if created:
            result.log.completed_step("create food", food.name, flag)
            result.updated.append(_pantry_line(food, change, created=True))
            return
        try:
            updated = await self.backend.update_food(
                food.id, {"food_onhand": change.available}
            )
        except RECOVERABLE_ERRORS as exc:
            result.log.failed_step("update pantry", food.name, exc)
            return
        cache.remember_food(updated)
        result.log.completed_step("update pantry", updated.name, flag)
        result.updated.append(_pantry_line(updated, change, created=False))

    async def _food_for(
        self, cache: EntityCache, change: PantryChange
    ) -> tuple[Food, bool]:
        if change.food_id is not None:
            food = cache.food(change.food_id)
            if food is None:
                raise NotFoundError(f"Food {change.food_id} does not exist")
            return food, False
        resolved = await self.resolver.resolve_food(
            cache, change.name or "", allow_create=True, on_hand=change.available
        )
        return resolved.food, resolved.created


def _validate_changes(changes: list[PantryChange]) -> None:
    if not changes:
        raise ValidationError("At least one pantry item is required")
    for change in changes:
        if change.food_id is None and not (change.name and change.name.strip()):
            raise ValidationError("Each pantry item needs a food name or food_id")
        if change.amount is not None and change.amount < 0:
            raise ValidationError("Pantry amounts must not be negative")


def _pantry_line(food: Food, change: PantryChange, *, created: bool) -> PantryLine:
    return PantryLine(
        food_id=food.id,
        food=food.name,
        on_hand=food.on_hand,
        created=created,
        amount=change.amount,
    )
