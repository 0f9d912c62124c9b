"""Gateway facade: one coroutine per tool operation.

Each operation validates its input before touching the backend, runs its
backend calls in order and returns a JSON-safe dictionary. Mutations carry a
``summary`` string. Multi-step mutations that applied only some of their
steps raise ``PartialFailure`` with the step log and the partial result.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from tandoor_gateway.domain.errors import (
    AmbiguousMatchError,
    AuthError,
    NotFoundError,
    PartialFailure,
    ScopeError,
    ValidationError,
)
from tandoor_gateway.domain.matching import (
    MatchCandidate,
    ResolutionKind,
    resolve_name,
)
from tandoor_gateway.domain.models import (
    CookLogEntry,
    Food,
    MealPlanEntry,
    MealType,
    Recipe,
    RecipeBook,
    ShoppingListEntry,
    Unit,
)
from tandoor_gateway.domain.operations import (
    RECOVERABLE_ERRORS,
    OperationLog,
    OperationStatus,
    halt_operation,
)
from tandoor_gateway.domain.planning import MealRequest
from tandoor_gateway.domain.recipes import ScoredRecipe, SuggestionMode
from tandoor_gateway.domain.shopping import (
    DemandItem,
    PantryChange,
    UnresolvedItem,
)
from tandoor_gateway.services.backend import TandoorBackend
from tandoor_gateway.services.entity_cache import EntityCache
from tandoor_gateway.services.pantry import PantryService
from tandoor_gateway.services.resolver import (
    EntityResolver,
    candidate_payload,
    require_match,
)
from tandoor_gateway.services.scoring import RecipeScorer
from tandoor_gateway.services.shopping import (
    ShoppingService,
    recipe_demand,
    scale_factor,
    validate_demand,
)

_logger = logging.getLogger(__name__)

SHOPPING_FORMATS = ("flat", "grouped", "category")
MIN_RATING = 0
MAX_RATING = 5


@dataclass
class Gateway:
    """Entry point for every tool operation."""

    backend: TandoorBackend
    resolver: EntityResolver
    shopping: ShoppingService
    pantry: PantryService
    scorer: RecipeScorer

    @classmethod
    def create(cls, backend: TandoorBackend, *, recent_days: int = 7) -> "Gateway":
        resolver = EntityResolver(backend)
        return cls(
            backend=backend,
            resolver=resolver,
            shopping=ShoppingService(backend, resolver),
            pantry=PantryService(backend, resolver),
            scorer=RecipeScorer(backend, default_recent_days=recent_days),
        )

    # Recipes

    async def search_recipes(
        self,
        query: str | None = None,
        *,
        keywords: list[str] | None = None,
        limit: int = 10,
        prefer_available: bool = False,
        exclude_recent: bool = False,
        recent_days: int | None = None,
    ) -> dict[str, object]:
        _require_positive("limit", limit)
        if recent_days is not None:
            _require_non_negative("recent_days", recent_days)
        keyword_ids: list[int] | None = None
        if keywords:
            cache = await EntityCache.load(self.backend, foods=False, keywords=True)
            keyword_ids = [
                self.resolver.resolve_keyword(cache, name).id for name in keywords
            ]
        cooked: set[int] = set()
        if exclude_recent:
            cooked = await self.scorer.recently_cooked(
                self.scorer.recent_window(recent_days)
            )
        # over-fetch so that dropping cooked recipes still leaves ``limit`` rows
        recipes = await self.backend.list_recipes(
            query, keyword_ids=keyword_ids, limit=limit + len(cooked)
        )
        recipes = [recipe for recipe in recipes if recipe.id not in cooked][:limit]
        if prefer_available or exclude_recent:
            scored = await self.scorer.score_recipes(
                recipes, prefer_available=prefer_available
            )
            rows = [_scored_overview(item) for item in scored]
        else:
            rows = [_recipe_overview(recipe) for recipe in recipes]
        interpretation = f"Found {len(rows)} recipes"
        if query:
            interpretation += f" matching '{query}'"
        return {
            "recipes": rows,
            "total_count": len(rows),
            "search_interpretation": interpretation,
        }

    async def get_recipe_details(
        self, recipe_id: int, *, servings: float | None = None
    ) -> dict[str, object]:
        if servings is not None:
            _require_positive("servings", servings)
        recipe = await self.backend.get_recipe(recipe_id)
        return _recipe_detail(recipe, servings)

    async def create_recipe(
        self,
        name: str,
        *,
        description: str | None = None,
        instructions: str | None = None,
        servings: int | None = None,
        working_time: int = 0,
        waiting_time: int = 0,
        keywords: list[str] | None = None,
    ) -> dict[str, object]:
        _require_text("name", name)
        if servings is not None:
            _require_positive("servings", servings)
        _require_non_negative("working_time", working_time)
        _require_non_negative("waiting_time", waiting_time)
        payload: dict[str, object] = {
            "name": name.strip(),
            "description": description or "",
            "servings": servings or 1,
            "working_time": working_time,
            "waiting_time": waiting_time,
            "keywords": [{"name": keyword} for keyword in keywords or []],
            "steps": [
                {"instruction": instructions or "", "ingredients": [], "order": 0}
            ],
        }
        recipe = await self.backend.create_recipe(payload)
        _logger.info("Created recipe %s (%s)", recipe.name, recipe.id)
        return {
            "recipe": _recipe_overview(recipe),
            "summary": f"Created recipe '{recipe.name}' (id {recipe.id})",
        }

    async def update_recipe(
        self,
        recipe_id: int,
        *,
        name: str | None = None,
        description: str | None = None,
        servings: int | None = None,
        working_time: int | None = None,
        waiting_time: int | None = None,
        keywords: list[str] | None = None,
    ) -> dict[str, object]:
        patch: dict[str, object] = {}
        if name is not None:
            _require_text("name", name)
            patch["name"] = name.strip()
        if description is not None:
            patch["description"] = description
        if servings is not None:
            _require_positive("servings", servings)
            patch["servings"] = servings
        if working_time is not None:
            _require_non_negative("working_time", working_time)
            patch["working_time"] = working_time
        if waiting_time is not None:
            _require_non_negative("waiting_time", waiting_time)
            patch["waiting_time"] = waiting_time
        if keywords is not None:
            patch["keywords"] = [{"name": keyword} for keyword in keywords]
        if not patch:
            raise ValidationError("Nothing to update")
        recipe = await self.backend.update_recipe(recipe_id, patch)
        return {
            "recipe": _recipe_overview(recipe),
            "updated_fields": sorted(patch),
            "summary": f"Updated {', '.join(sorted(patch))} of '{recipe.name}'",
        }

    async def rate_recipe(
        self, recipe_id: int, rating: int, *, comment: str | None = None
    ) -> dict[str, object]:
        """Rate a recipe by recording a cook log entry that carries the rating."""
        _require_rating(rating)
        entry = await self.backend.create_cook_log(
            {
                "recipe": recipe_id,
                "servings": 1,
                "rating": rating,
                "comment": comment or "",
            }
        )
        return {
            "cook_log": _cook_log_dict(entry),
            "summary": f"Rated recipe {recipe_id} with {rating}/{MAX_RATING}",
        }

    async def import_recipe_from_url(self, url: str) -> dict[str, object]:
        cleaned = url.strip()
        if not cleaned.startswith(("http://", "https://")):
            raise ValidationError("url must be an http(s) address")
        recipe = await self.backend.import_recipe_from_url(cleaned)
        return {
            "recipe": _recipe_overview(recipe),
            "source_url": cleaned,
            "summary": f"Imported '{recipe.name}' (id {recipe.id})",
        }

    # Shopping list

    async def add_to_shopping_list(
        self,
        items: list[DemandItem] | None = None,
        *,
        from_recipe_id: int | None = None,
        servings: float | None = None,
        request: str | None = None,
        check_pantry: bool = True,
    ) -> dict[str, object]:
        if request and request.strip():
            raise ValidationError(
                "Free-text requests are not interpreted; send structured items "
                "as {name, amount, unit} objects"
            )
        demand = list(items or [])
        if not demand and from_recipe_id is None:
            raise ValidationError("Provide items or from_recipe")
        if demand:
            validate_demand(demand)
        if servings is not None:
            _require_positive("servings", servings)
        if from_recipe_id is not None:
            recipe = await self.backend.get_recipe(from_recipe_id)
            demand.extend(recipe_demand(recipe, servings))
            if not demand:
                raise ValidationError(f"Recipe '{recipe.name}' has no ingredients")
        result = await self.shopping.add_items(demand, check_pantry=check_pantry)
        return _finish(
            result.to_dict(),
            result.log,
            "Some shopping list changes were not applied",
        )

    async def get_shopping_list(
        self, *, format: str = "flat", include_checked: bool = True
    ) -> dict[str, object]:
        layout = format.strip().lower()
        if layout not in SHOPPING_FORMATS:
            raise ValidationError(
                f"format must be one of {', '.join(SHOPPING_FORMATS)}"
            )
        entries = await self.backend.list_shopping_entries(
            checked=None if include_checked else False
        )
        rows = [
            _entry_dict(entry) for entry in sorted(entries, key=lambda row: row.id)
        ]
        if layout == "grouped":
            return {
                "unchecked_items": [row for row in rows if not row["checked"]],
                "checked_items": [row for row in rows if row["checked"]],
                "total_items": len(rows),
                "format": layout,
            }
        if layout == "category":
            categories: dict[str, list[dict[str, object]]] = {}
            for row in rows:
                key = str(row["category"] or "Uncategorized")
                categories.setdefault(key, []).append(row)
            return {
                "categories": {key: categories[key] for key in sorted(categories)},
                "total_items": len(rows),
                "format": layout,
            }
        return {"items": rows, "total_items": len(rows), "format": layout}

    async def check_shopping_items(self, items: list[int | str]) -> dict[str, object]:
        result = await self.shopping.check_items(items)
        return _finish(result.to_dict(), result.log, "Some items could not be checked")

    async def clear_shopping_list(self) -> dict[str, object]:
        result = await self.shopping.clear_checked()
        return _finish(
            result.to_dict(),
            result.log,
            "Checked items were removed but not every pantry update succeeded",
        )

    # Foods and pantry

    async def search_foods(self, query: str, *, limit: int = 20) -> dict[str, object]:
        _require_text("query", query)
        _require_positive("limit", limit)
        foods = (await self.backend.list_foods(query))[:limit]
        payload: dict[str, object] = {
            "foods": [_food_dict(food) for food in foods],
            "total_count": len(foods),
            "query": query,
            "best_match": None,
        }
        resolution = resolve_name(query, [_food_candidate(food) for food in foods])
        if resolution.kind is ResolutionKind.MATCHED and resolution.match:
            payload["best_match"] = {
                "id": resolution.match.id,
                "name": resolution.match.name,
                "rule": resolution.rule,
            }
        elif resolution.kind is ResolutionKind.AMBIGUOUS:
            payload["ambiguous_candidates"] = candidate_payload(resolution.candidates)
        return payload

    async def create_food(
        self,
        name: str,
        *,
        plural_name: str | None = None,
        description: str | None = None,
        on_hand: bool = False,
    ) -> dict[str, object]:
        _require_text("name", name)
        cache = await EntityCache.load(self.backend)
        existing = cache.foods_named(name)
        if not existing:
            await self.resolver.search_foods(cache, name)
            existing = cache.foods_named(name)
        if existing:
            food = min(existing, key=lambda row: row.id)
            return {
                "food": _food_dict(food),
                "created": False,
                "summary": f"Food '{food.name}' already exists (id {food.id})",
            }
        food = await self.backend.create_food(
            " ".join(name.split()),
            plural_name=plural_name,
            description=description,
            on_hand=on_hand,
        )
        return {
            "food": _food_dict(food),
            "created": True,
            "summary": f"Created food '{food.name}' (id {food.id})",
        }

    async def update_food_availability(
        self,
        food: str | None = None,
        *,
        food_id: int | None = None,
        available: bool,
    ) -> dict[str, object]:
        change = PantryChange(available=available, name=food, food_id=food_id)
        result = await self.pantry.apply([change])
        if result.unresolved:
            raise _unresolved_error(result.unresolved[0])
        payload: dict[str, object] = {
            "food": result.updated[0].to_dict() if result.updated else None,
            "summary": result.summary,
        }
        return _finish(payload, result.log, "The pantry update was not applied")

    async def update_pantry(self, items: list[PantryChange]) -> dict[str, object]:
        result = await self.pantry.apply(items)
        return _finish(
            result.to_dict(), result.log, "Some pantry updates were not applied"
        )

    async def suggest_from_inventory(
        self,
        mode: str = "maximum-use",
        *,
        limit: int = 10,
        exclude_recent: bool = False,
        recent_days: int | None = None,
    ) -> dict[str, object]:
        _require_positive("limit", limit)
        if recent_days is not None:
            _require_non_negative("recent_days", recent_days)
        parsed = SuggestionMode.parse(mode)
        suggestions = await self.scorer.suggest(
            parsed,
            limit=limit,
            exclude_recent=exclude_recent,
            recent_days=recent_days,
        )
        available = suggestions.available
        if available:
            message = (
                f"Found {len(suggestions.recipes)} recipe suggestions using your "
                f"{len(available)} available ingredients"
            )
        else:
            message = "No ingredients found in pantry. Update your inventory first."
        return {
            "suggestions": [
                _suggestion_dict(item, parsed) for item in suggestions.recipes
            ],
            "available_ingredients": list(available),
            "total_available": len(available),
            "mode": str(parsed),
            "message": message,
        }

    # Meal planning

    async def get_meal_plans(
        self, from_date: date, to_date: date, *, meal_type: int | str | None = None
    ) -> dict[str, object]:
        if from_date > to_date:
            raise ValidationError("from_date must not be after to_date")
        plans = await self.backend.list_meal_plans(from_date, to_date)
        if meal_type is not None:
            wanted = self._meal_type(await self.backend.list_meal_types(), meal_type)
            plans = [plan for plan in plans if plan.meal_type.id == wanted.id]
        plans.sort(key=lambda plan: (plan.date, plan.meal_type.order, plan.id))
        return {
            "meal_plans": [_meal_plan_dict(plan) for plan in plans],
            "from_date": from_date.isoformat(),
            "to_date": to_date.isoformat(),
            "total": len(plans),
        }

    async def create_meal_plan(self, meal: MealRequest) -> dict[str, object]:
        _validate_meal(meal)
        meal_type = self._meal_type(
            await self.backend.list_meal_types(), meal.meal_type
        )
        entry = await self.backend.create_meal_plan(_meal_plan_payload(meal, meal_type))
        return {
            "meal_plan": _meal_plan_dict(entry),
            "summary": f"Planned {meal.label} as {meal_type.name}",
        }

    async def plan_meals(
        self,
        meals: list[MealRequest],
        *,
        add_to_shopping: bool = False,
        check_pantry: bool = True,
    ) -> dict[str, object]:
        """Create several meal plans in order, optionally shopping for them."""
        if not meals:
            raise ValidationError("At least one meal is required")
        for meal in meals:
            _validate_meal(meal)
        meal_types = await self.backend.list_meal_types()
        planned = [
            (meal, self._meal_type(meal_types, meal.meal_type)) for meal in meals
        ]

        log = OperationLog()
        created: list[MealPlanEntry] = []
        payload: dict[str, object] = {"meal_plans": [], "shopping": None}
        try:
            for meal, meal_type in planned:
                try:
                    entry = await self.backend.create_meal_plan(
                        _meal_plan_payload(meal, meal_type)
                    )
                except RECOVERABLE_ERRORS as exc:
                    log.failed_step("create meal plan", meal.label, exc)
                    continue
                created.append(entry)
                log.completed_step("create meal plan", meal.label, f"plan {entry.id}")
            payload["meal_plans"] = [_meal_plan_dict(entry) for entry in created]
            if add_to_shopping and created:
                payload["shopping"] = await self._shop_for_plans(
                    created, log, payload, check_pantry=check_pantry
                )
        except (AuthError, ScopeError) as exc:
            halt_operation(log, exc, payload)
        payload["summary"] = f"Planned {len(created)} of {len(meals)} meals"
        return _finish(payload, log, "Some meals were not planned")

    async def delete_meal_plan(self, plan_id: int) -> dict[str, object]:
        await self.backend.delete_meal_plan(plan_id)
        return {"deleted": plan_id, "summary": f"Deleted meal plan {plan_id}"}

    async def get_meal_types(self) -> dict[str, object]:
        meal_types = sorted(
            await self.backend.list_meal_types(),
            key=lambda item: (item.order, item.id),
        )
        return {"meal_types": [_meal_type_dict(item) for item in meal_types]}

    # Keywords and books

    async def get_keywords(self, query: str | None = None) -> dict[str, object]:
        keywords = await self.backend.list_keywords(query)
        return {
            "keywords": [
                {
                    "id": keyword.id,
                    "name": keyword.name,
                    "description": keyword.description,
                }
                for keyword in keywords
            ],
            "total_count": len(keywords),
        }

    async def get_recipe_books(self) -> dict[str, object]:
        books = await self.backend.list_recipe_books()
        return {"recipe_books": [_book_dict(book) for book in books]}

    async def create_recipe_book(
        self, name: str, *, description: str | None = None
    ) -> dict[str, object]:
        _require_text("name", name)
        book = await self.backend.create_recipe_book(name.strip(), description)
        return {
            "recipe_book": _book_dict(book),
            "summary": f"Created recipe book '{book.name}' (id {book.id})",
        }

    async def add_recipe_to_book(
        self, book: int | str, recipe_id: int
    ) -> dict[str, object]:
        if isinstance(book, str):
            _require_text("book", book)
        books = await self.backend.list_recipe_books()
        target = self._book(books, book)
        entry_id = await self.backend.add_recipe_to_book(target.id, recipe_id)
        return {
            "recipe_book": _book_dict(target),
            "recipe_id": recipe_id,
            "entry_id": entry_id,
            "summary": f"Added recipe {recipe_id} to '{target.name}'",
        }

    # Cook log

    async def get_cook_log(
        self,
        *,
        recipe_id: int | None = None,
        days_back: int = 30,
        today: date | None = None,
    ) -> dict[str, object]:
        _require_non_negative("days_back", days_back)
        since = (today or date.today()) - timedelta(days=days_back)
        entries = await self.backend.list_cook_log(recipe_id=recipe_id, since=since)
        entries.sort(key=lambda entry: (entry.created_at, entry.id), reverse=True)
        return {
            "cook_log": [_cook_log_dict(entry) for entry in entries],
            "since": since.isoformat(),
            "total": len(entries),
        }

    async def log_cooked_recipe(
        self,
        recipe_id: int,
        *,
        servings: float = 1,
        rating: int | None = None,
        comment: str | None = None,
    ) -> dict[str, object]:
        _require_positive("servings", servings)
        if rating is not None:
            _require_rating(rating)
        payload: dict[str, object] = {
            "recipe": recipe_id,
            "servings": servings,
            "comment": comment or "",
        }
        if rating is not None:
            payload["rating"] = rating
        entry = await self.backend.create_cook_log(payload)
        return {
            "cook_log": _cook_log_dict(entry),
            "summary": f"Logged recipe {recipe_id} as cooked",
        }

    # Units

    async def get_units(self) -> dict[str, object]:
        units = await self.backend.list_units()
        return {"units": [_unit_dict(unit) for unit in units]}

    async def convert_units(
        self,
        amount: float,
        from_unit: int | str,
        to_unit: int | str,
        *,
        food: int | str | None = None,
    ) -> dict[str, object]:
        _require_non_negative("amount", amount)
        cache = await EntityCache.load(
            self.backend, foods=food is not None, units=True
        )
        source = self._unit(cache, from_unit)
        target = self._unit(cache, to_unit)
        food_row = await self._food(cache, food) if food is not None else None
        converted = await self.backend.convert_unit(
            amount, source.id, target.id, food_row.id if food_row else None
        )
        return {
            "amount": amount,
            "from_unit": source.name,
            "to_unit": target.name,
            "food": food_row.name if food_row else None,
            "converted_amount": round(converted, 4) if converted is not None else None,
            "compatible": converted is not None,
        }

    # Helpers

    async def _shop_for_plans(
        self,
        created: list[MealPlanEntry],
        log: OperationLog,
        payload: dict[str, object],
        *,
        check_pantry: bool,
    ) -> dict[str, object] | None:
        demand: list[DemandItem] = []
        for entry in created:
            if entry.recipe_id is None:
                continue
            try:
                recipe = await self.backend.get_recipe(entry.recipe_id)
            except RECOVERABLE_ERRORS as exc:
                log.failed_step("load recipe", f"recipe {entry.recipe_id}", exc)
                continue
            demand.extend(recipe_demand(recipe, entry.servings))
        if not demand:
            return None
        try:
            result = await self.shopping.add_items(demand, check_pantry=check_pantry)
        except PartialFailure as exc:
            log.steps.extend(exc.log.steps)
            raise PartialFailure(exc.message, log=log, result=payload) from exc
        except RECOVERABLE_ERRORS as exc:
            log.failed_step("add to shopping list", "planned recipes", exc)
            return None
        log.steps.extend(result.log.steps)
        return result.to_dict()

    def _meal_type(self, meal_types: list[MealType], value: int | str) -> MealType:
        if isinstance(value, int):
            for meal_type in meal_types:
                if meal_type.id == value:
                    return meal_type
            raise NotFoundError(f"Meal type {value} does not exist")
        return self.resolver.resolve_meal_type(meal_types, value)

    def _book(self, books: list[RecipeBook], value: int | str) -> RecipeBook:
        if isinstance(value, int):
            for book in books:
                if book.id == value:
                    return book
            raise NotFoundError(f"Recipe book {value} does not exist")
        candidates = [MatchCandidate(id=book.id, name=book.name) for book in books]
        match = require_match(self.resolver.resolve(value, candidates), "recipe book")
        return next(book for book in books if book.id == match.id)

    def _unit(self, cache: EntityCache, value: int | str) -> Unit:
        if isinstance(value, int):
            unit = cache.unit(value)
            if unit is None:
                raise NotFoundError(f"Unit {value} does not exist")
            return unit
        return self.resolver.resolve_unit(cache, value)

    async def _food(self, cache: EntityCache, value: int | str) -> Food:
        if isinstance(value, int):
            food = cache.food(value)
            if food is None:
                raise NotFoundError(f"Food {value} does not exist")
            return food
        resolved = await self.resolver.resolve_food(cache, value, allow_create=False)
        return resolved.food


def _finish(
    payload: dict[str, object], log: OperationLog, message: str
) -> dict[str, object]:
    payload["status"] = str(log.status)
    payload["steps"] = log.to_list()
    if log.status is OperationStatus.PARTIAL_FAILURE:
        raise PartialFailure(message, log=log, result=payload)
    if log.status is OperationStatus.FAILED:
        error = log.first_error()
        if error is not None:
            raise error
    return payload


def _unresolved_error(item: UnresolvedItem) -> AmbiguousMatchError | NotFoundError:
    if item.reason == "ambiguous":
        return AmbiguousMatchError(item.query, list(item.candidates))
    return NotFoundError(item.message)


def _validate_meal(meal: MealRequest) -> None:
    if meal.recipe_id is None and not (meal.title and meal.title.strip()):
        raise ValidationError("Each meal needs a recipe_id or a title")
    _require_positive("servings", meal.servings)
    if isinstance(meal.meal_type, str):
        _require_text("meal_type", meal.meal_type)


def _meal_plan_payload(meal: MealRequest, meal_type: MealType) -> dict[str, object]:
    return {
        "recipe": meal.recipe_id,
        "title": meal.title or "",
        "servings": meal.servings,
        "from_date": meal.date.isoformat(),
        "meal_type": meal_type.id,
        "note": meal.note or "",
    }


def _require_text(field: str, value: str) -> None:
    if not value or not value.strip():
        raise ValidationError(f"{field} must not be blank")


def _require_positive(field: str, value: float) -> None:
    if value <= 0:
        raise ValidationError(f"{field} must be positive")


def _require_non_negative(field: str, value: float) -> None:
    if value < 0:
        raise ValidationError(f"{field} must not be negative")


def _require_rating(rating: int) -> None:
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(
            f"rating must be between {MIN_RATING} and {MAX_RATING}"
        )


def _food_candidate(food: Food) -> MatchCandidate:
    aliases = (food.plural_name,) if food.plural_name else ()
    return MatchCandidate(id=food.id, name=food.name, aliases=aliases)


def _recipe_overview(recipe: Recipe) -> dict[str, object]:
    return {
        "id": recipe.id,
        "name": recipe.name,
        "description": recipe.description,
        "servings": recipe.servings,
        "total_time": recipe.total_time,
        "rating": recipe.rating,
        "keywords": list(recipe.keywords),
        "last_cooked": recipe.last_cooked.isoformat() if recipe.last_cooked else None,
    }


def _scored_overview(item: ScoredRecipe) -> dict[str, object]:
    overview = _recipe_overview(item.recipe)
    overview["match_score"] = item.match_score
    overview["missing_ingredients"] = list(item.missing_ingredients)
    return overview


def _recipe_detail(recipe: Recipe, servings: float | None) -> dict[str, object]:
    factor = scale_factor(recipe, servings)
    ingredients = [
        {
            "food": ingredient.food.name if ingredient.food else None,
            "food_id": ingredient.food.id if ingredient.food else None,
            "amount": round(ingredient.amount * factor, 3),
            "unit": ingredient.unit.name if ingredient.unit else None,
            "note": ingredient.note,
            "is_header": ingredient.is_header,
            "no_amount": ingredient.no_amount,
        }
        for ingredient in recipe.ingredients
    ]
    detail = _recipe_overview(recipe)
    detail.update(
        {
            "servings": servings if servings is not None else recipe.servings,
            "working_time": recipe.working_time,
            "waiting_time": recipe.waiting_time,
            "instructions": list(recipe.instructions),
            "ingredients": ingredients,
            "source_url": recipe.source_url,
            "nutrition": recipe.nutrition,
            "scaling_applied": factor != 1.0,
        }
    )
    return detail


def _suggestion_dict(item: ScoredRecipe, mode: SuggestionMode) -> dict[str, object]:
    percent = item.match_score * 100
    if mode is SuggestionMode.EXPIRING:
        reason = (
            f"Uses {percent:.0f}% of pantry ingredients, only "
            f"{len(item.missing_ingredients)} missing items"
        )
    else:
        reason = f"Uses {percent:.0f}% of available ingredients"
    payload = item.to_dict()
    payload["reason"] = reason
    return payload


def _food_dict(food: Food) -> dict[str, object]:
    return {
        "id": food.id,
        "name": food.name,
        "plural_name": food.plural_name,
        "description": food.description,
        "category": food.category,
        "on_hand": food.on_hand,
    }


def _unit_dict(unit: Unit) -> dict[str, object]:
    return {
        "id": unit.id,
        "name": unit.name,
        "plural_name": unit.plural_name,
        "base_unit": unit.base_unit,
        "type": unit.type,
    }


def _entry_dict(entry: ShoppingListEntry) -> dict[str, object]:
    return {
        "id": entry.id,
        "food_id": entry.food.id,
        "food": entry.food.name,
        "amount": entry.amount,
        "unit": entry.unit.name if entry.unit else None,
        "checked": entry.checked,
        "available": entry.food.on_hand,
        "category": entry.food.category,
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
        "completed": (
            entry.completed_at.isoformat() if entry.completed_at else None
        ),
    }


def _meal_type_dict(meal_type: MealType) -> dict[str, object]:
    return {
        "id": meal_type.id,
        "name": meal_type.name,
        "order": meal_type.order,
        "color": meal_type.color,
        "icon": meal_type.icon,
    }


def _meal_plan_dict(plan: MealPlanEntry) -> dict[str, object]:
    return {
        "id": plan.id,
        "date": plan.date.isoformat(),
        "meal_type": plan.meal_type.name,
        "meal_type_id": plan.meal_type.id,
        "recipe_id": plan.recipe_id,
        "recipe_name": plan.recipe_name,
        "title": plan.title,
        "servings": plan.servings,
        "note": plan.note,
    }


def _book_dict(book: RecipeBook) -> dict[str, object]:
    return {"id": book.id, "name": book.name, "description": book.description}


def _cook_log_dict(entry: CookLogEntry) -> dict[str, object]:
    return {
        "id": entry.id,
        "recipe_id": entry.recipe_id,
        "recipe_name": entry.recipe_name,
        "servings": entry.servings,
        "rating": entry.rating,
        "comment": entry.comment,
        "date": entry.date.isoformat(),
        "created_at": entry.created_at.isoformat(),
    }
