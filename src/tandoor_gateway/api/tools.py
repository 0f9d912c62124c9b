"""Tool registry binding payload models to gateway operations."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import pydantic

from tandoor_gateway.api.tool_models import (
    AddRecipeToBookPayload,
    AddToShoppingListPayload,
    CheckShoppingItemsPayload,
    ConvertUnitsPayload,
    CreateFoodPayload,
    CreateMealPlanPayload,
    CreateRecipeBookPayload,
    CreateRecipePayload,
    DeleteMealPlanPayload,
    EmptyPayload,
    GetCookLogPayload,
    GetKeywordsPayload,
    GetMealPlansPayload,
    GetRecipeDetailsPayload,
    GetShoppingListPayload,
    ImportRecipePayload,
    LogCookedRecipePayload,
    MealPayload,
    PlanMealsPayload,
    RateRecipePayload,
    SearchFoodsPayload,
    SearchRecipesPayload,
    SuggestFromInventoryPayload,
    UpdateFoodAvailabilityPayload,
    UpdatePantryPayload,
    UpdateRecipePayload,
)
from tandoor_gateway.domain.errors import (
    GatewayError,
    NotFoundError,
    PartialFailure,
    ValidationError,
)
from tandoor_gateway.domain.planning import MealRequest
from tandoor_gateway.domain.shopping import DemandItem, PantryChange
from tandoor_gateway.services.gateway import Gateway

_logger = logging.getLogger(__name__)

ToolHandler = Callable[[Gateway, Any], Awaitable[dict[str, object]]]


@dataclass(frozen=True)
class ToolSpec:
    """A callable tool and the model its arguments must satisfy."""

    name: str
    description: str
    payload_model: type[pydantic.BaseModel]
    handler: ToolHandler
    mutating: bool = False

    def describe(self) -> dict[str, object]:
        return {
            "name": self.name,
            "description": self.description,
            "mutating": self.mutating,
            "input_schema": self.payload_model.model_json_schema(),
        }


async def invoke_tool(
    gateway: Gateway, name: str, arguments: dict[str, object] | None
) -> dict[str, object]:
    """Validate ``arguments`` and run the tool, returning a result envelope."""
    spec = TOOLS.get(name)
    if spec is None:
        return _error_envelope(name, NotFoundError(f"Unknown tool '{name}'"))
    try:
        payload = spec.payload_model.model_validate(arguments or {})
    except pydantic.ValidationError as exc:
        error = ValidationError(
            f"Invalid arguments for {name}",
            details={"errors": _validation_errors(exc)},
        )
        return _error_envelope(name, error)
    try:
        result = await spec.handler(gateway, payload)
    except PartialFailure as exc:
        _logger.warning(
            "Tool %s partially applied: completed %s, failed %s",
            name,
            exc.completed,
            exc.failed,
        )
        return {
            "tool": name,
            "status": "partial_failure",
            "result": exc.result,
            "error": exc.to_dict(),
        }
    except GatewayError as exc:
        _logger.warning("Tool %s failed: %s: %s", name, exc.code, exc.message)
        return _error_envelope(name, exc)
    return {"tool": name, "status": "ok", "result": result}


def tool_catalog() -> list[dict[str, object]]:
    """Return every tool with its JSON schema, in name order."""
    return [TOOLS[name].describe() for name in sorted(TOOLS)]


def _error_envelope(name: str, error: GatewayError) -> dict[str, object]:
    return {"tool": name, "status": "error", "error": error.to_dict()}


def _validation_errors(exc: pydantic.ValidationError) -> list[dict[str, object]]:
    return [
        {
            "loc": [str(part) for part in error["loc"]],
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]


def _meal_request(payload: MealPayload) -> MealRequest:
    return MealRequest(
        date=payload.date,
        meal_type=payload.meal_type,
        recipe_id=payload.recipe_id,
        title=payload.title,
        servings=payload.servings,
        note=payload.note,
    )


async def _search_recipes(
    gateway: Gateway, payload: SearchRecipesPayload
) -> dict[str, object]:
    return await gateway.search_recipes(
        payload.query,
        keywords=payload.keywords,
        limit=payload.limit,
        prefer_available=payload.prefer_available,
        exclude_recent=payload.exclude_recent,
        recent_days=payload.recent_days,
    )


async def _get_recipe_details(
    gateway: Gateway, payload: GetRecipeDetailsPayload
) -> dict[str, object]:
    return await gateway.get_recipe_details(payload.id, servings=payload.servings)


async def _create_recipe(
    gateway: Gateway, payload: CreateRecipePayload
) -> dict[str, object]:
    return await gateway.create_recipe(
        payload.name,
        description=payload.description,
        instructions=payload.instructions,
        servings=payload.servings,
        working_time=payload.prep_time,
        waiting_time=payload.cook_time,
        keywords=payload.keywords,
    )


async def _update_recipe(
    gateway: Gateway, payload: UpdateRecipePayload
) -> dict[str, object]:
    return await gateway.update_recipe(
        payload.id,
        name=payload.name,
        description=payload.description,
        servings=payload.servings,
        working_time=payload.prep_time,
        waiting_time=payload.cook_time,
        keywords=payload.keywords,
    )


async def _rate_recipe(
    gateway: Gateway, payload: RateRecipePayload
) -> dict[str, object]:
    return await gateway.rate_recipe(
        payload.recipe_id, payload.rating, comment=payload.comment
    )


async def _import_recipe(
    gateway: Gateway, payload: ImportRecipePayload
) -> dict[str, object]:
    return await gateway.import_recipe_from_url(payload.url)


async def _add_to_shopping_list(
    gateway: Gateway, payload: AddToShoppingListPayload
) -> dict[str, object]:
    items = [
        DemandItem(
            name=item.name,
            food_id=item.food_id,
            amount=item.amount,
            unit=item.unit,
            unit_id=item.unit_id,
        )
        for item in payload.items or []
    ]
    from_recipe = payload.from_recipe
    return await gateway.add_to_shopping_list(
        items,
        from_recipe_id=from_recipe.recipe_id if from_recipe else None,
        servings=from_recipe.servings if from_recipe else None,
        request=payload.request,
        check_pantry=payload.check_pantry,
    )


async def _get_shopping_list(
    gateway: Gateway, payload: GetShoppingListPayload
) -> dict[str, object]:
    return await gateway.get_shopping_list(
        format=payload.format, include_checked=payload.include_checked
    )


async def _check_shopping_items(
    gateway: Gateway, payload: CheckShoppingItemsPayload
) -> dict[str, object]:
    return await gateway.check_shopping_items(payload.items)


async def _clear_shopping_list(
    gateway: Gateway, payload: EmptyPayload
) -> dict[str, object]:
    return await gateway.clear_shopping_list()


async def _search_foods(
    gateway: Gateway, payload: SearchFoodsPayload
) -> dict[str, object]:
    return await gateway.search_foods(payload.query, limit=payload.limit)


async def _create_food(
    gateway: Gateway, payload: CreateFoodPayload
) -> dict[str, object]:
    return await gateway.create_food(
        payload.name,
        plural_name=payload.plural_name,
        description=payload.description,
        on_hand=payload.on_hand,
    )


async def _update_food_availability(
    gateway: Gateway, payload: UpdateFoodAvailabilityPayload
) -> dict[str, object]:
    return await gateway.update_food_availability(
        payload.food, food_id=payload.food_id, available=payload.available
    )


async def _update_pantry(
    gateway: Gateway, payload: UpdatePantryPayload
) -> dict[str, object]:
    changes = [
        PantryChange(
            available=item.available,
            name=item.food,
            food_id=item.food_id,
            amount=item.amount,
        )
        for item in payload.items
    ]
    return await gateway.update_pantry(changes)


async def _suggest_from_inventory(
    gateway: Gateway, payload: SuggestFromInventoryPayload
) -> dict[str, object]:
    return await gateway.suggest_from_inventory(
        payload.mode,
        limit=payload.limit,
        exclude_recent=payload.exclude_recent,
        recent_days=payload.recent_days,
    )


async def _get_meal_plans(
    gateway: Gateway, payload: GetMealPlansPayload
) -> dict[str, object]:
    return await gateway.get_meal_plans(
        payload.from_date, payload.to_date, meal_type=payload.meal_type
    )


async def _plan_meals(gateway: Gateway, payload: PlanMealsPayload) -> dict[str, object]:
    return await gateway.plan_meals(
        [_meal_request(meal) for meal in payload.meals],
        add_to_shopping=payload.add_to_shopping,
        check_pantry=payload.check_pantry,
    )


async def _create_meal_plan(
    gateway: Gateway, payload: CreateMealPlanPayload
) -> dict[str, object]:
    return await gateway.create_meal_plan(_meal_request(payload))


async def _delete_meal_plan(
    gateway: Gateway, payload: DeleteMealPlanPayload
) -> dict[str, object]:
    return await gateway.delete_meal_plan(payload.id)


async def _get_meal_types(gateway: Gateway, payload: EmptyPayload) -> dict[str, object]:
    return await gateway.get_meal_types()


async def _get_keywords(
    gateway: Gateway, payload: GetKeywordsPayload
) -> dict[str, object]:
    return await gateway.get_keywords(payload.query)


async def _get_recipe_books(
    gateway: Gateway, payload: EmptyPayload
) -> dict[str, object]:
    return await gateway.get_recipe_books()


async def _create_recipe_book(
    gateway: Gateway, payload: CreateRecipeBookPayload
) -> dict[str, object]:
    return await gateway.create_recipe_book(
        payload.name, description=payload.description
    )


async def _add_recipe_to_book(
    gateway: Gateway, payload: AddRecipeToBookPayload
) -> dict[str, object]:
    return await gateway.add_recipe_to_book(payload.book, payload.recipe_id)


async def _get_cook_log(
    gateway: Gateway, payload: GetCookLogPayload
) -> dict[str, object]:
    return await gateway.get_cook_log(
        recipe_id=payload.recipe_id, days_back=payload.days_back
    )


async def _log_cooked_recipe(
    gateway: Gateway, payload: LogCookedRecipePayload
) -> dict[str, object]:
    return await gateway.log_cooked_recipe(
        payload.recipe_id,
        servings=payload.servings,
        rating=payload.rating,
        comment=payload.comment,
    )


async def _get_units(gateway: Gateway, payload: EmptyPayload) -> dict[str, object]:
    return await gateway.get_units()


async def _convert_units(
    gateway: Gateway, payload: ConvertUnitsPayload
) -> dict[str, object]:
    return await gateway.convert_units(
        payload.amount, payload.from_unit, payload.to_unit, food=payload.food
    )


_SPECS = [
    ToolSpec(
        "search_recipes",
        "Search recipes, optionally ranked by pantry coverage",
        SearchRecipesPayload,
        _search_recipes,
    ),
    ToolSpec(
        "get_recipe_details",
        "Get a recipe with ingredients scaled to the requested servings",
        GetRecipeDetailsPayload,
        _get_recipe_details,
    ),
    ToolSpec(
        "create_recipe", "Create a recipe", CreateRecipePayload, _create_recipe, True
    ),
    ToolSpec(
        "update_recipe",
        "Update fields of a recipe",
        UpdateRecipePayload,
        _update_recipe,
        True,
    ),
    ToolSpec(
        "rate_recipe",
        "Rate a recipe from 0 to 5",
        RateRecipePayload,
        _rate_recipe,
        True,
    ),
    ToolSpec(
        "import_recipe_from_url",
        "Import a recipe from a web page",
        ImportRecipePayload,
        _import_recipe,
        True,
    ),
    ToolSpec(
        "add_to_shopping_list",
        "Add items or a recipe's ingredients to the shopping list, merging "
        "with existing entries",
        AddToShoppingListPayload,
        _add_to_shopping_list,
        True,
    ),
    ToolSpec(
        "get_shopping_list",
        "Get the shopping list as a flat, grouped or per-category listing",
        GetShoppingListPayload,
        _get_shopping_list,
    ),
    ToolSpec(
        "check_shopping_items",
        "Mark shopping list entries as purchased by id or food name",
        CheckShoppingItemsPayload,
        _check_shopping_items,
        True,
    ),
    ToolSpec(
        "clear_shopping_list",
        "Remove checked entries and mark their foods as on hand",
        EmptyPayload,
        _clear_shopping_list,
        True,
    ),
    ToolSpec(
        "search_foods",
        "Search foods by name",
        SearchFoodsPayload,
        _search_foods,
    ),
    ToolSpec("create_food", "Create a food", CreateFoodPayload, _create_food, True),
    ToolSpec(
        "update_food_availability",
        "Set whether a single food is on hand",
        UpdateFoodAvailabilityPayload,
        _update_food_availability,
        True,
    ),
    ToolSpec(
        "update_pantry",
        "Set the on-hand flag for several foods",
        UpdatePantryPayload,
        _update_pantry,
        True,
    ),
    ToolSpec(
        "suggest_from_inventory",
        "Suggest recipes that use what is on hand",
        SuggestFromInventoryPayload,
        _suggest_from_inventory,
    ),
    ToolSpec(
        "get_meal_plans",
        "List meal plans in a date range",
        GetMealPlansPayload,
        _get_meal_plans,
    ),
    ToolSpec(
        "plan_meals",
        "Plan several meals, optionally adding their ingredients to the "
        "shopping list",
        PlanMealsPayload,
        _plan_meals,
        True,
    ),
    ToolSpec(
        "create_meal_plan",
        "Plan a single meal",
        CreateMealPlanPayload,
        _create_meal_plan,
        True,
    ),
    ToolSpec(
        "delete_meal_plan",
        "Delete a meal plan",
        DeleteMealPlanPayload,
        _delete_meal_plan,
        True,
    ),
    ToolSpec("get_meal_types", "List meal types", EmptyPayload, _get_meal_types),
    ToolSpec("get_keywords", "List recipe keywords", GetKeywordsPayload, _get_keywords),
    ToolSpec("get_recipe_books", "List recipe books", EmptyPayload, _get_recipe_books),
    ToolSpec(
        "create_recipe_book",
        "Create a recipe book",
        CreateRecipeBookPayload,
        _create_recipe_book,
        True,
    ),
    ToolSpec(
        "add_recipe_to_book",
        "Add a recipe to a recipe book",
        AddRecipeToBookPayload,
        _add_recipe_to_book,
        True,
    ),
    ToolSpec(
        "get_cook_log",
        "List recently cooked recipes",
        GetCookLogPayload,
        _get_cook_log,
    ),
    ToolSpec(
        "log_cooked_recipe",
        "Record that a recipe was cooked",
        LogCookedRecipePayload,
        _log_cooked_recipe,
        True,
    ),
    ToolSpec("get_units", "List measurement units", EmptyPayload, _get_units),
    ToolSpec(
        "convert_units",
        "Convert an amount between units",
        ConvertUnitsPayload,
        _convert_units,
    ),
]

TOOLS: dict[str, ToolSpec] = {spec.name: spec for spec in _SPECS}
