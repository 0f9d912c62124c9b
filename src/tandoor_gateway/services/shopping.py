"""Shopping list consolidation engine."""

import asyncio
import logging
from dataclasses import dataclass, field

from tandoor_gateway.domain.errors import (
    AmbiguousMatchError,
    AuthError,
    NotFoundError,
    ScopeError,
    UpstreamError,
    ValidationError,
)
from tandoor_gateway.domain.matching import MatchCandidate
from tandoor_gateway.domain.models import Food, Recipe, ShoppingListEntry, Unit
from tandoor_gateway.domain.operations import RECOVERABLE_ERRORS, halt_operation
from tandoor_gateway.domain.shopping import (
    CheckedEntry,
    CheckResult,
    ClearResult,
    DemandItem,
    ShoppingAddResult,
    ShoppingLine,
    UnitMismatch,
    UnresolvedItem,
)
from tandoor_gateway.services.backend import TandoorBackend
from tandoor_gateway.services.entity_cache import EntityCache
from tandoor_gateway.services.resolver import (
    EntityResolver,
    require_match,
    unresolved_item,
)

_logger = logging.getLogger(__name__)

PANTRY_SKIP_REASON = "already in pantry"


@dataclass
class _OpenLine:
    """Unchecked demand for one (food, unit) pair, stored or about to be."""

    food: Food
    unit: Unit | None
    amount: float
    entry_id: int | None = None
    lines: list[ShoppingLine] = field(default_factory=list)

    @property
    def pending(self) -> bool:
        return self.entry_id is None

    @property
    def unit_id(self) -> int | None:
        return self.unit.id if self.unit else None


@dataclass
class ShoppingService:
    """Merges demand into the shopping list and restocks the pantry.

    Demand for a ``(food, unit)`` pair that already has an unchecked entry is
    summed into that entry. Demand in another unit is converted to the entry's
    unit when the backend knows a conversion, and otherwise kept as a separate
    entry. Nothing is locked across invocations: two concurrent adds for the
    same food may both read the old amount.
    """

    backend: TandoorBackend
    resolver: EntityResolver

    async def add_items(
        self, items: list[DemandItem], *, check_pantry: bool = True
    ) -> ShoppingAddResult:
        """Add demand to the list, consolidating with unchecked entries."""
        validate_demand(items)
        cache, entries = await asyncio.gather(
            EntityCache.load(self.backend, foods=True, units=True),
            self.backend.list_shopping_entries(checked=False),
        )
        open_lines = [
            _OpenLine(
                food=entry.food,
                unit=entry.unit,
                amount=entry.amount,
                entry_id=entry.id,
            )
            for entry in sorted(entries, key=lambda entry: entry.id)
        ]
        result = ShoppingAddResult()
        try:
            for item in items:
                resolved = await self._resolve_demand(cache, item, result)
                if resolved is None:
                    continue
                food, unit = resolved
                if check_pantry and food.on_hand:
                    result.skipped.append(
                        ShoppingLine(
                            food_id=food.id,
                            food=food.name,
                            amount=item.amount,
                            unit=unit.name if unit else None,
                            reason=PANTRY_SKIP_REASON,
                        )
                    )
                    result.log.skipped_step("add", food.name, PANTRY_SKIP_REASON)
                    continue
                await self._merge(open_lines, food, unit, item.amount, result)
            await self._create_pending(
                [line for line in open_lines if line.pending], result
            )
        except (AuthError, ScopeError) as exc:
            halt_operation(result.log, exc, result.to_dict())
        _logger.info("Shopping add finished: %s", result.summary)
        return result

    async def check_items(self, items: list[int | str]) -> CheckResult:
        """Mark entries as purchased, by entry id or by food name."""
        if not items:
            raise ValidationError("At least one item to check is required")
        for item in items:
            if isinstance(item, str) and not item.strip():
                raise ValidationError("Item names must not be blank")

        entries = sorted(
            await self.backend.list_shopping_entries(checked=False),
            key=lambda entry: entry.id,
        )
        by_food: dict[int, list[ShoppingListEntry]] = {}
        for entry in entries:
            by_food.setdefault(entry.food.id, []).append(entry)
        candidates = [_food_candidate(rows[0].food) for rows in by_food.values()]

        result = CheckResult()
        done: set[int] = set()
        try:
            for item in items:
                if isinstance(item, int):
                    targets = [entry for entry in entries if entry.id == item]
                    if not targets:
                        result.unresolved.append(
                            UnresolvedItem(
                                query=str(item),
                                reason="not_found",
                                message=f"No unchecked shopping entry {item}",
                            )
                        )
                        continue
                else:
                    try:
                        match = require_match(
                            self.resolver.resolve(item, candidates),
                            "shopping list item",
                        )
                    except (AmbiguousMatchError, NotFoundError) as exc:
                        result.unresolved.append(unresolved_item(item, exc))
                        continue
                    targets = by_food[match.id]
                for entry in targets:
                    if entry.id in done:
                        continue
                    done.add(entry.id)
                    await self._check_entry(entry, result)
        except (AuthError, ScopeError) as exc:
            halt_operation(result.log, exc, result.to_dict())
        return result

    async def clear_checked(self) -> ClearResult:
        """Remove checked entries and mark their foods as on hand.

        Each entry is deleted first and its food patched afterwards, once per
        food. A failed patch leaves the deletion in place and is reported.
        """
        entries = sorted(
            await self.backend.list_shopping_entries(checked=True),
            key=lambda entry: entry.id,
        )
        result = ClearResult()
        restocked: set[int] = set()
        try:
            for entry in entries:
                food = entry.food
                try:
                    await self.backend.delete_shopping_entry(entry.id)
                except RECOVERABLE_ERRORS as exc:
                    result.log.failed_step("delete shopping entry", food.name, exc)
                    continue
                result.removed.append(_checked_entry(entry))
                result.log.completed_step(
                    "delete shopping entry", food.name, f"entry {entry.id}"
                )
                if food.id in restocked:
                    continue
                restocked.add(food.id)
                try:
                    await self.backend.update_food(food.id, {"food_onhand": True})
                except RECOVERABLE_ERRORS as exc:
                    result.log.failed_step("mark on hand", food.name, exc)
                    continue
                result.pantry_updates.append(food.name)
                result.log.completed_step("mark on hand", food.name)
        except (AuthError, ScopeError) as exc:
            halt_operation(result.log, exc, result.to_dict())
        _logger.info("Shopping list cleared: %s", result.summary)
        return result

    async def _check_entry(self, entry: ShoppingListEntry, result: CheckResult) -> None:
        try:
            await self.backend.update_shopping_entry(entry.id, {"checked": True})
        except RECOVERABLE_ERRORS as exc:
            result.log.failed_step("check shopping entry", entry.food.name, exc)
            return
        result.checked.append(_checked_entry(entry))
        result.log.completed_step(
            "check shopping entry", entry.food.name, f"entry {entry.id}"
        )

    async def _resolve_demand(
        self, cache: EntityCache, item: DemandItem, result: ShoppingAddResult
    ) -> tuple[Food, Unit | None] | None:
        try:
            unit = self._demand_unit(cache, item)
            food = await self._demand_food(cache, item, result)
        except (AmbiguousMatchError, NotFoundError) as exc:
            result.unresolved.append(unresolved_item(item.label, exc))
            return None
        except (UpstreamError, ValidationError) as exc:
            result.log.failed_step("create food", item.label, exc)
            return None
        return food, unit

    def _demand_unit(self, cache: EntityCache, item: DemandItem) -> Unit | None:
        if item.unit_id is not None:
            unit = cache.unit(item.unit_id)
            if unit is None:
                raise NotFoundError(f"Unit {item.unit_id} does not exist")
            return unit
        if item.unit:
            return self.resolver.resolve_unit(cache, item.unit)
        return None

    async def _demand_food(
        self, cache: EntityCache, item: DemandItem, result: ShoppingAddResult
    ) -> Food:
        if item.food_id is not None:
            food = cache.food(item.food_id)
            if food is None:
                raise NotFoundError(f"Food {item.food_id} does not exist")
            return food
        resolved = await self.resolver.resolve_food(
            cache, item.name or "", allow_create=True
        )
        if resolved.created:
            result.created_foods.append(resolved.food.name)
            result.log.completed_step("create food", resolved.food.name)
        return resolved.food

    async def _merge(
        self,
        open_lines: list[_OpenLine],
        food: Food,
        unit: Unit | None,
        amount: float,
        result: ShoppingAddResult,
    ) -> None:
        unit_id = unit.id if unit else None
        line = ShoppingLine(
            food_id=food.id,
            food=food.name,
            amount=amount,
            unit=unit.name if unit else None,
        )
        same_food = [other for other in open_lines if other.food.id == food.id]
        for other in same_food:
            if other.unit_id == unit_id:
                await self._consolidate(other, line, amount, result)
                return

        for other in same_food:
            if other.pending or other.unit is None or unit is None:
                continue
            try:
                converted = await self.backend.convert_unit(
                    amount, unit.id, other.unit.id, food.id
                )
            except UpstreamError as exc:
                result.log.failed_step("convert unit", food.name, exc)
                return
            if converted is None:
                continue
            line.converted_from = f"{_format_amount(amount)} {unit.name}"
            line.amount = converted
            line.unit = other.unit.name
            await self._consolidate(other, line, converted, result)
            return

        stored = [other for other in same_food if not other.pending]
        if stored:
            existing = stored[0]
            result.unit_mismatches.append(
                UnitMismatch(
                    food=food.name,
                    requested_unit=line.unit,
                    existing_unit=existing.unit.name if existing.unit else None,
                    existing_entry_id=existing.entry_id or 0,
                )
            )
        open_lines.append(
            _OpenLine(food=food, unit=unit, amount=amount, lines=[line])
        )
        result.added.append(line)

    async def _consolidate(
        self,
        target: _OpenLine,
        line: ShoppingLine,
        amount: float,
        result: ShoppingAddResult,
    ) -> None:
        total = target.amount + amount
        if target.pending:
            target.amount = total
            target.lines.append(line)
            line.total_amount = total
            result.consolidated.append(line)
            return
        entry_id = target.entry_id or 0
        try:
            await self.backend.update_shopping_entry(entry_id, {"amount": total})
        except RECOVERABLE_ERRORS as exc:
            result.log.failed_step("update shopping entry", target.food.name, exc)
            return
        target.amount = total
        line.entry_id = entry_id
        line.total_amount = total
        result.consolidated.append(line)
        result.log.completed_step(
            "update shopping entry",
            target.food.name,
            f"entry {entry_id} amount {_format_amount(total)}",
        )

    async def _create_pending(
        self, pending: list[_OpenLine], result: ShoppingAddResult
    ) -> None:
        if not pending:
            return
        try:
            if len(pending) == 1:
                only = pending[0]
                created = [
                    await self.backend.create_shopping_entry(
                        only.food.id, only.amount, only.unit_id
                    )
                ]
            else:
                created = await self.backend.bulk_create_shopping_entries(
                    [(line.food.id, line.amount, line.unit_id) for line in pending]
                )
        except RECOVERABLE_ERRORS as exc:
            for line in pending:
                result.log.failed_step("create shopping entry", line.food.name, exc)
                _discard(result, line.lines)
            return

        unclaimed = list(created)
        for line in pending:
            entry = _claim(unclaimed, line)
            if entry is None:
                result.log.failed_step(
                    "create shopping entry",
                    line.food.name,
                    UpstreamError("Backend did not return the created entry"),
                )
                _discard(result, line.lines)
                continue
            line.entry_id = entry.id
            for shopping_line in line.lines:
                shopping_line.entry_id = entry.id
            line.lines[0].total_amount = entry.amount
            result.log.completed_step(
                "create shopping entry",
                line.food.name,
                f"entry {entry.id} amount {_format_amount(entry.amount)}",
            )


def recipe_demand(recipe: Recipe, servings: float | None = None) -> list[DemandItem]:
    """Expand a recipe's ingredients into demand, scaled to ``servings``."""
    if servings is not None and servings <= 0:
        raise ValidationError("Servings must be positive")
    factor = scale_factor(recipe, servings)
    return [
        DemandItem(
            name=ingredient.food.name,
            food_id=ingredient.food.id,
            amount=round(ingredient.amount * factor, 3),
            unit_id=ingredient.unit.id if ingredient.unit else None,
        )
        for ingredient in recipe.ingredients
        if ingredient.countable and ingredient.food is not None
    ]


def scale_factor(recipe: Recipe, servings: float | None) -> float:
    """Return the multiplier that scales ``recipe`` to ``servings``."""
    if servings is None or not recipe.servings:
        return 1.0
    return servings / recipe.servings


def validate_demand(items: list[DemandItem]) -> None:
    if not items:
        raise ValidationError("At least one item is required")
    for item in items:
        if item.food_id is None and not (item.name and item.name.strip()):
            raise ValidationError("Each item needs a food name or food_id")
        if item.amount < 0:
            raise ValidationError(f"Amount for {item.label} must not be negative")


def _claim(
    created: list[ShoppingListEntry], line: _OpenLine
) -> ShoppingListEntry | None:
    for entry in created:
        if entry.food.id == line.food.id and entry.unit_id == line.unit_id:
            created.remove(entry)
            return entry
    return None


def _discard(result: ShoppingAddResult, lines: list[ShoppingLine]) -> None:
    result.added = [
        line for line in result.added if all(line is not gone for gone in lines)
    ]
    result.consolidated = [
        line
        for line in result.consolidated
        if all(line is not gone for gone in lines)
    ]


def _food_candidate(food: Food) -> MatchCandidate:
    aliases = (food.plural_name,) if food.plural_name else ()
    return MatchCandidate(id=food.id, name=food.name, aliases=aliases)


def _checked_entry(entry: ShoppingListEntry) -> CheckedEntry:
    return CheckedEntry(
        entry_id=entry.id,
        food=entry.food.name,
        amount=entry.amount,
        unit=entry.unit.name if entry.unit else None,
    )


def _format_amount(value: float) -> str:
    return f"{value:g}"
