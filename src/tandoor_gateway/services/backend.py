"""Typed backend operations with the authorization and retry policy."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from typing import TypeVar

from tandoor_gateway.adapters.tandoor_client import JsonValue, Listing, TandoorClient
from tandoor_gateway.adapters.tandoor_parsing import (
    parse_cook_log,
    parse_food,
    parse_keyword,
    parse_meal_plan,
    parse_meal_type,
    parse_recipe,
    parse_recipe_book,
    parse_shopping_entry,
    parse_unit,
    parse_unit_conversion,
)
from tandoor_gateway.domain.errors import TokenRejectedError, UpstreamError
from tandoor_gateway.domain.models import (
    CookLogEntry,
    Credential,
    Food,
    Keyword,
    MealPlanEntry,
    MealType,
    Recipe,
    RecipeBook,
    ShoppingListEntry,
    Unit,
    UnitConversion,
)
from tandoor_gateway.services.tokens import TokenManager

_logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class TandoorBackend:
    """Backend operations consumed by the gateway.

    Every call acquires the credential first. A 401 invalidates it and the
    call is re-sent once with the replacement. Idempotent reads are retried
    once on transient failures; mutations never are.
    """

    client: TandoorClient
    tokens: TokenManager
    read_retry_attempts: int = 1
    read_retry_delay_seconds: float = 0.3
    max_pages: int = 20

    # Foods

    async def list_foods(self, query: str | None = None) -> list[Food]:
        rows = await self._list("/api/food/", {"query": query})
        return [parse_food(row) for row in rows]

    async def food_catalog(self) -> tuple[list[Food], bool]:
        """Return every food and whether the listing reached the last page."""
        listing = await self._listing("/api/food/")
        return [parse_food(row) for row in listing.rows], not listing.truncated

    async def create_food(
        self,
        name: str,
        *,
        plural_name: str | None = None,
        description: str | None = None,
        on_hand: bool = False,
    ) -> Food:
        payload: dict[str, object] = {"name": name, "food_onhand": on_hand}
        if plural_name:
            payload["plural_name"] = plural_name
        if description:
            payload["description"] = description
        return parse_food(await self._write("POST", "/api/food/", payload))

    async def update_food(self, food_id: int, patch: dict[str, object]) -> Food:
        return parse_food(await self._write("PATCH", f"/api/food/{food_id}/", patch))

    # Recipes

    async def list_recipes(
        self,
        query: str | None = None,
        *,
        keyword_ids: list[int] | None = None,
        limit: int | None = None,
    ) -> list[Recipe]:
        params: dict[str, object] = {"query": query, "page_size": limit}
        if keyword_ids:
            params["keywords"] = keyword_ids
        if limit is not None:
            payload = await self._read("GET", "/api/recipe/", params)
            rows = _results(payload, "/api/recipe/")[:limit]
        else:
            rows = await self._list("/api/recipe/", params)
        return [parse_recipe(row) for row in rows]

    async def get_recipe(self, recipe_id: int) -> Recipe:
        return parse_recipe(await self._read("GET", f"/api/recipe/{recipe_id}/"))

    async def create_recipe(self, payload: dict[str, object]) -> Recipe:
        return parse_recipe(await self._write("POST", "/api/recipe/", payload))

    async def update_recipe(self, recipe_id: int, patch: dict[str, object]) -> Recipe:
        return parse_recipe(
            await self._write("PATCH", f"/api/recipe/{recipe_id}/", patch)
        )

    async def import_recipe_from_url(self, url: str) -> Recipe:
        payload = await self._write("POST", "/api/recipe-from-source/", {"url": url})
        if isinstance(payload, dict) and isinstance(payload.get("recipe"), dict):
            payload = payload["recipe"]
        return parse_recipe(payload)

    # Shopping list

    async def list_shopping_entries(
        self, *, checked: bool | None = None
    ) -> list[ShoppingListEntry]:
        entries = [
            parse_shopping_entry(row)
            for row in await self._list("/api/shopping-list-entry/")
        ]
        if checked is None:
            return entries
        return [entry for entry in entries if entry.checked is checked]

    async def create_shopping_entry(
        self, food_id: int, amount: float, unit_id: int | None
    ) -> ShoppingListEntry:
        payload = {"food": food_id, "amount": amount, "unit": unit_id}
        return parse_shopping_entry(
            await self._write("POST", "/api/shopping-list-entry/", payload)
        )

    async def bulk_create_shopping_entries(
        self, entries: list[tuple[int, float, int | None]]
    ) -> list[ShoppingListEntry]:
        payload = {
            "entries": [
                {"food": food_id, "amount": amount, "unit": unit_id}
                for food_id, amount, unit_id in entries
            ]
        }
        response = await self._write("POST", "/api/shopping-list-entry/bulk/", payload)
        if isinstance(response, dict):
            response = response.get("entries", response.get("results"))
        if not isinstance(response, list):
            raise UpstreamError("Malformed bulk shopping list response")
        return [parse_shopping_entry(row) for row in response]

    async def update_shopping_entry(
        self, entry_id: int, patch: dict[str, object]
    ) -> ShoppingListEntry:
        return parse_shopping_entry(
            await self._write("PATCH", f"/api/shopping-list-entry/{entry_id}/", patch)
        )

    async def delete_shopping_entry(self, entry_id: int) -> None:
        await self._write("DELETE", f"/api/shopping-list-entry/{entry_id}/")

    # Meal planning

    async def list_meal_plans(
        self, from_date: date, to_date: date
    ) -> list[MealPlanEntry]:
        rows = await self._list(
            "/api/meal-plan/",
            {"from_date": from_date.isoformat(), "to_date": to_date.isoformat()},
        )
        return [parse_meal_plan(row) for row in rows]

    async def create_meal_plan(self, payload: dict[str, object]) -> MealPlanEntry:
        return parse_meal_plan(await self._write("POST", "/api/meal-plan/", payload))

    async def delete_meal_plan(self, plan_id: int) -> None:
        await self._write("DELETE", f"/api/meal-plan/{plan_id}/")

    async def list_meal_types(self) -> list[MealType]:
        return [parse_meal_type(row) for row in await self._list("/api/meal-type/")]

    # Cook log

    async def list_cook_log(
        self, *, recipe_id: int | None = None, since: date | None = None
    ) -> list[CookLogEntry]:
        params = {
            "recipe": recipe_id,
            "from_date": since.isoformat() if since else None,
        }
        rows = await self._list("/api/cook-log/", params)
        entries = [parse_cook_log(row) for row in rows]
        if since is not None:
            entries = [entry for entry in entries if entry.date >= since]
        if recipe_id is not None:
            entries = [entry for entry in entries if entry.recipe_id == recipe_id]
        return entries

    async def create_cook_log(self, payload: dict[str, object]) -> CookLogEntry:
        return parse_cook_log(await self._write("POST", "/api/cook-log/", payload))

    # Keywords, books, units

    async def list_keywords(self, query: str | None = None) -> list[Keyword]:
        rows = await self._list("/api/keyword/", {"query": query})
        return [parse_keyword(row) for row in rows]

    async def list_recipe_books(self) -> list[RecipeBook]:
        return [parse_recipe_book(row) for row in await self._list("/api/recipe-book/")]

    async def create_recipe_book(
        self, name: str, description: str | None = None
    ) -> RecipeBook:
        payload = {"name": name, "description": description or ""}
        return parse_recipe_book(
            await self._write("POST", "/api/recipe-book/", payload)
        )

    async def add_recipe_to_book(self, book_id: int, recipe_id: int) -> int:
        payload = await self._write(
            "POST", "/api/recipe-book-entry/", {"book": book_id, "recipe": recipe_id}
        )
        entry_id = payload.get("id") if isinstance(payload, dict) else None
        if not isinstance(entry_id, int):
            raise UpstreamError("Malformed recipe book entry response")
        return entry_id

    async def list_units(self) -> list[Unit]:
        return [parse_unit(row) for row in await self._list("/api/unit/")]

    async def list_unit_conversions(
        self, food_id: int | None = None
    ) -> list[UnitConversion]:
        rows = await self._list("/api/unit-conversion/", {"food_id": food_id})
        return [parse_unit_conversion(row) for row in rows]

    async def convert_unit(
        self,
        amount: float,
        from_unit_id: int,
        to_unit_id: int,
        food_id: int | None = None,
    ) -> float | None:
        """Convert ``amount`` between units, or return None when incompatible.

        Food-specific conversions win over generic ones. No density is ever
        assumed: without a conversion row the units are incompatible.
        """
        if from_unit_id == to_unit_id:
            return amount
        conversions = await self.list_unit_conversions(food_id)
        ranked = sorted(
            (
                conversion
                for conversion in conversions
                if conversion.food_id in (None, food_id)
            ),
            key=lambda conversion: conversion.food_id is None,
        )
        for conversion in ranked:
            if conversion.base_amount <= 0 or conversion.converted_amount <= 0:
                continue
            if (
                conversion.base_unit_id == from_unit_id
                and conversion.converted_unit_id == to_unit_id
            ):
                return amount * conversion.converted_amount / conversion.base_amount
            if (
                conversion.base_unit_id == to_unit_id
                and conversion.converted_unit_id == from_unit_id
            ):
                return amount * conversion.base_amount / conversion.converted_amount
        return None

    # Plumbing

    async def _list(
        self, path: str, params: dict[str, object] | None = None
    ) -> list[object]:
        return (await self._listing(path, params)).rows

    async def _listing(
        self, path: str, params: dict[str, object] | None = None
    ) -> Listing:
        return await self._authorized(
            lambda token: self._with_read_retry(
                lambda: self.client.list_all(
                    path, token=token, params=params, max_pages=self.max_pages
                ),
                action=f"list {path}",
            )
        )

    async def _read(
        self, method: str, path: str, params: dict[str, object] | None = None
    ) -> JsonValue:
        return await self._authorized(
            lambda token: self._with_read_retry(
                lambda: self.client.request(method, path, token=token, params=params),
                action=f"{method} {path}",
            )
        )

    async def _write(
        self, method: str, path: str, payload: object | None = None
    ) -> JsonValue:
        return await self._authorized(
            lambda token: self.client.request(method, path, token=token, json=payload)
        )

    async def _authorized(self, call: Callable[[str], Awaitable[T]]) -> T:
        credential: Credential = await self.tokens.acquire()
        try:
            result = await call(credential.value)
        except TokenRejectedError:
            # a 401 means the request was not applied, so re-sending is safe
            await self.tokens.invalidate(credential)
            credential = await self.tokens.acquire()
            try:
                result = await call(credential.value)
            except TokenRejectedError:
                await self.tokens.invalidate(credential)
                raise
        self.tokens.confirm(credential)
        return result

    async def _with_read_retry(
        self, func: Callable[[], Awaitable[T]], *, action: str
    ) -> T:
        attempt = 0
        while True:
            try:
                return await func()
            except UpstreamError as exc:
                attempt += 1
                if not exc.transient or attempt > self.read_retry_attempts:
                    raise
                _logger.warning(
                    "Tandoor %s failed (attempt %s/%s): %s",
                    action,
                    attempt,
                    self.read_retry_attempts + 1,
                    exc.message,
                )
                await asyncio.sleep(self.read_retry_delay_seconds)


def _results(payload: JsonValue, path: str) -> list[object]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("results"), list):
        return payload["results"]
    raise UpstreamError(f"Unexpected list response from {path}")
