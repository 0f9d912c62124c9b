"""Strict parsing of Tandoor JSON payloads into domain models."""

from datetime import date, datetime

from tandoor_gateway.domain.errors import UpstreamError
from tandoor_gateway.domain.models import (
    CookLogEntry,
    Food,
    Keyword,
    MealPlanEntry,
    MealType,
    Recipe,
    RecipeBook,
    RecipeIngredient,
    ShoppingListEntry,
    Unit,
    UnitConversion,
)


def parse_food(raw: object) -> Food:
    data = _mapping(raw, "food")
    category = data.get("supermarket_category")
    if isinstance(category, dict):
        category = category.get("name")
    return Food(
        id=_int(data, "id", "food"),
        name=_str(data, "name", "food"),
        plural_name=_opt_str(data.get("plural_name")),
        description=_opt_str(data.get("description")),
        category=_opt_str(category),
        on_hand=bool(data.get("food_onhand", False)),
    )


def parse_unit(raw: object) -> Unit:
    data = _mapping(raw, "unit")
    return Unit(
        id=_int(data, "id", "unit"),
        name=_str(data, "name", "unit"),
        plural_name=_opt_str(data.get("plural_name")),
        description=_opt_str(data.get("description")),
        base_unit=_opt_str(data.get("base_unit")),
        type=_opt_str(data.get("type")),
    )


def parse_keyword(raw: object) -> Keyword:
    data = _mapping(raw, "keyword")
    name = data.get("name") or data.get("label")
    if not isinstance(name, str) or not name:
        raise UpstreamError("Malformed keyword: missing name or label")
    return Keyword(
        id=_int(data, "id", "keyword"),
        name=name,
        description=_opt_str(data.get("description")),
    )


def parse_shopping_entry(raw: object) -> ShoppingListEntry:
    data = _mapping(raw, "shopping list entry")
    unit = data.get("unit")
    return ShoppingListEntry(
        id=_int(data, "id", "shopping list entry"),
        food=parse_food(data.get("food")),
        amount=_float(data.get("amount"), "shopping list entry amount"),
        unit=parse_unit(unit) if unit else None,
        checked=bool(data.get("checked", False)),
        created_at=_opt_datetime(data.get("created_at") or data.get("created")),
        completed_at=_opt_datetime(data.get("completed")),
    )


def parse_recipe(raw: object) -> Recipe:
    data = _mapping(raw, "recipe")
    ingredients: list[RecipeIngredient] = []
    instructions: list[str] = []
    for step in _list(data.get("steps"), "recipe steps"):
        step_data = _mapping(step, "recipe step")
        instruction = _opt_str(step_data.get("instruction")) or ""
        step_name = _opt_str(step_data.get("name"))
        if instruction:
            instructions.append(
                f"{step_name}: {instruction}" if step_name else instruction
            )
        for ingredient in _list(step_data.get("ingredients"), "step ingredients"):
            ingredients.append(parse_ingredient(ingredient))
    servings = data.get("servings")
    rating = data.get("rating")
    nutrition = data.get("nutrition")
    return Recipe(
        id=_int(data, "id", "recipe"),
        name=_str(data, "name", "recipe"),
        description=_opt_str(data.get("description")),
        servings=int(servings) if isinstance(servings, int | float) else None,
        working_time=_opt_int(data.get("working_time")),
        waiting_time=_opt_int(data.get("waiting_time")),
        rating=float(rating) if isinstance(rating, int | float) else None,
        keywords=[
            parse_keyword(keyword).name
            for keyword in _list(data.get("keywords"), "recipe keywords")
        ],
        ingredients=ingredients,
        instructions=instructions,
        source_url=_opt_str(data.get("source_url")),
        last_cooked=_opt_datetime(data.get("last_cooked")),
        nutrition=nutrition if isinstance(nutrition, dict) else None,
    )


def parse_ingredient(raw: object) -> RecipeIngredient:
    data = _mapping(raw, "ingredient")
    food = data.get("food")
    unit = data.get("unit")
    is_header = bool(data.get("is_header", False))
    amount = data.get("amount", 0)
    return RecipeIngredient(
        food=parse_food(food) if food else None,
        amount=_float(amount if amount is not None else 0, "ingredient amount"),
        unit=parse_unit(unit) if unit else None,
        note=_opt_str(data.get("note")),
        is_header=is_header,
        no_amount=bool(data.get("no_amount", False)),
    )


def parse_meal_type(raw: object) -> MealType:
    data = _mapping(raw, "meal type")
    return MealType(
        id=_int(data, "id", "meal type"),
        name=_str(data, "name", "meal type"),
        order=_opt_int(data.get("order")),
        color=_opt_str(data.get("color")),
        icon=_opt_str(data.get("icon")),
    )


def parse_meal_plan(raw: object) -> MealPlanEntry:
    data = _mapping(raw, "meal plan")
    recipe = data.get("recipe")
    recipe_id: int | None = None
    recipe_name: str | None = None
    if isinstance(recipe, dict):
        recipe_id = _int(recipe, "id", "meal plan recipe")
        recipe_name = _opt_str(recipe.get("name"))
    elif isinstance(recipe, int):
        recipe_id = recipe
    plan_date = data.get("from_date") or data.get("date")
    return MealPlanEntry(
        id=_int(data, "id", "meal plan"),
        date=_date(plan_date, "meal plan date"),
        meal_type=parse_meal_type(data.get("meal_type")),
        servings=_float(data.get("servings", 1), "meal plan servings"),
        recipe_id=recipe_id,
        recipe_name=recipe_name,
        title=_opt_str(data.get("title")),
        note=_opt_str(data.get("note")),
    )


def parse_cook_log(raw: object) -> CookLogEntry:
    data = _mapping(raw, "cook log")
    recipe = data.get("recipe")
    recipe_name: str | None = None
    if isinstance(recipe, dict):
        recipe_id = _int(recipe, "id", "cook log recipe")
        recipe_name = _opt_str(recipe.get("name"))
    elif isinstance(recipe, int):
        recipe_id = recipe
    else:
        raise UpstreamError("Malformed cook log: missing recipe")
    created = _opt_datetime(data.get("created_at") or data.get("created"))
    if created is None:
        raise UpstreamError("Malformed cook log: missing created_at")
    rating = data.get("rating")
    return CookLogEntry(
        id=_int(data, "id", "cook log"),
        recipe_id=recipe_id,
        recipe_name=recipe_name,
        servings=_float(data.get("servings", 1), "cook log servings"),
        created_at=created,
        rating=int(rating) if isinstance(rating, int | float) else None,
        comment=_opt_str(data.get("comment")),
    )


def parse_recipe_book(raw: object) -> RecipeBook:
    data = _mapping(raw, "recipe book")
    return RecipeBook(
        id=_int(data, "id", "recipe book"),
        name=_str(data, "name", "recipe book"),
        description=_opt_str(data.get("description")),
    )


def parse_unit_conversion(raw: object) -> UnitConversion:
    data = _mapping(raw, "unit conversion")
    food = data.get("food")
    food_id: int | None = None
    if isinstance(food, dict):
        food_id = _int(food, "id", "unit conversion food")
    elif isinstance(food, int):
        food_id = food
    return UnitConversion(
        base_amount=_float(data.get("base_amount"), "unit conversion base_amount"),
        base_unit_id=_ref_id(data.get("base_unit"), "unit conversion base_unit"),
        converted_amount=_float(
            data.get("converted_amount"), "unit conversion converted_amount"
        ),
        converted_unit_id=_ref_id(
            data.get("converted_unit"), "unit conversion converted_unit"
        ),
        food_id=food_id,
    )


def _mapping(raw: object, label: str) -> dict[str, object]:
    if not isinstance(raw, dict):
        raise UpstreamError(f"Malformed {label}: expected an object")
    return raw


def _list(raw: object, label: str) -> list[object]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise UpstreamError(f"Malformed {label}: expected a list")
    return raw


def _int(data: dict[str, object], key: str, label: str) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise UpstreamError(f"Malformed {label}: missing integer '{key}'")
    return value


def _str(data: dict[str, object], key: str, label: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise UpstreamError(f"Malformed {label}: missing string '{key}'")
    return value


def _ref_id(value: object, label: str) -> int:
    if isinstance(value, dict):
        return _int(value, "id", label)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    raise UpstreamError(f"Malformed {label}: expected an id")


def _float(value: object, label: str) -> float:
    if isinstance(value, bool):
        raise UpstreamError(f"Malformed {label}: expected a number")
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError as exc:
            raise UpstreamError(f"Malformed {label}: {value!r}") from exc
    raise UpstreamError(f"Malformed {label}: expected a number")


def _opt_int(value: object) -> int:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return int(value)
    return 0


def _opt_str(value: object) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def _opt_datetime(value: object) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise UpstreamError(f"Malformed timestamp: {value!r}") from exc


def _date(value: object, label: str) -> date:
    if not isinstance(value, str):
        raise UpstreamError(f"Malformed {label}: expected a date string")
    try:
        return date.fromisoformat(value[:10])
    except ValueError as exc:
        raise UpstreamError(f"Malformed {label}: {value!r}") from exc
