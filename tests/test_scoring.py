"""Tests for recipe scoring and pantry suggestions."""

import asyncio
from datetime import UTC, datetime, timedelta

from tandoor_gateway.domain.models import Food, Recipe, RecipeIngredient
from tandoor_gateway.domain.recipes import SuggestionMode
from tandoor_gateway.services.entity_cache import EntityCache
from tandoor_gateway.services.scoring import rank, score_recipe
from tests.conftest import FakeTandoor


def _recipe(
    recipe_id: int,
    foods: list[Food],
    *,
    working_time: int = 10,
    extra: list[RecipeIngredient] | None = None,
) -> Recipe:
    ingredients = [RecipeIngredient(food=food, amount=1) for food in foods]
    return Recipe(
        id=recipe_id,
        name=f"Recipe {recipe_id}",
        working_time=working_time,
        ingredients=ingredients + list(extra or []),
    )


def test_two_of_three_on_hand_scores_two_thirds() -> None:
    recipe = _recipe(
        1,
        [
            Food(id=1, name="Pasta", on_hand=True),
            Food(id=2, name="Garlic", on_hand=True),
            Food(id=3, name="Basil", on_hand=False),
        ],
    )

    scored = score_recipe(recipe)

    assert scored.match_score == 0.6667
    assert scored.matched_ingredients == ["Pasta", "Garlic"]
    assert scored.missing_ingredients == ["Basil"]
    assert scored.total_ingredients == 3


def test_headers_and_unmeasured_lines_are_not_counted() -> None:
    recipe = _recipe(
        1,
        [Food(id=1, name="Rice", on_hand=True)],
        extra=[
            RecipeIngredient(food=None, amount=0, is_header=True, note="Sauce"),
            RecipeIngredient(food=Food(id=2, name="Salt"), amount=0, no_amount=True),
        ],
    )

    scored = score_recipe(recipe)

    assert scored.match_score == 1.0
    assert scored.total_ingredients == 1


def test_recipe_without_ingredients_scores_zero() -> None:
    assert score_recipe(_recipe(1, [])).match_score == 0.0


def test_current_pantry_state_overrides_embedded_flag() -> None:
    recipe = _recipe(1, [Food(id=1, name="Milk", on_hand=False)])
    cache = EntityCache(foods=[Food(id=1, name="Milk", on_hand=True)])

    assert score_recipe(recipe, cache).match_score == 1.0


def test_rank_breaks_ties_by_time_then_id() -> None:
    on_hand = Food(id=1, name="Egg", on_hand=True)
    missing = Food(id=2, name="Ham")
    scored = [
        score_recipe(_recipe(3, [on_hand, missing], working_time=30)),
        score_recipe(_recipe(2, [on_hand], working_time=20)),
        score_recipe(_recipe(5, [on_hand, missing], working_time=10)),
        score_recipe(_recipe(4, [on_hand, missing], working_time=10)),
    ]

    ranked = rank(scored, prefer_available=True)
    unranked = rank(scored, prefer_available=False)

    assert [item.recipe.id for item in ranked] == [2, 4, 5, 3]
    assert [item.recipe.id for item in unranked] == [3, 2, 5, 4]


def test_suggestion_mode_parsing() -> None:
    assert SuggestionMode.parse(None) is SuggestionMode.MAXIMUM_USE
    assert SuggestionMode.parse(" Expiring ") is SuggestionMode.EXPIRING
    assert SuggestionMode.parse("whatever") is SuggestionMode.BALANCED


def _seed_pantry(fake: FakeTandoor) -> dict[str, int]:
    pasta = fake.add_food("Pasta", on_hand=True)
    garlic = fake.add_food("Garlic", on_hand=True)
    basil = fake.add_food("Basil")
    rice = fake.add_food("Rice", on_hand=True)
    beans = fake.add_food("Beans")
    lime = fake.add_food("Lime")
    tuna = fake.add_food("Tuna")
    return {
        "Pesto Pasta": fake.add_recipe(
            "Pesto Pasta", [(pasta, 200, None), (garlic, 1, None), (basil, 1, None)]
        ),
        "Rice and Beans": fake.add_recipe(
            "Rice and Beans", [(rice, 1, None), (beans, 1, None)]
        ),
        "Tuna Salad": fake.add_recipe(
            "Tuna Salad",
            [(tuna, 1, None), (lime, 1, None), (beans, 1, None), (garlic, 1, None)],
        ),
        "Lime Water": fake.add_recipe("Lime Water", [(lime, 1, None)]),
    }


def test_suggestions_follow_mode_thresholds(
    gateway, fake_tandoor: FakeTandoor
) -> None:
    _seed_pantry(fake_tandoor)

    def names(mode: str) -> list[str]:
        result = asyncio.run(gateway.suggest_from_inventory(mode))
        return [item["recipe_name"] for item in result["suggestions"]]

    assert names("maximum-use") == ["Pesto Pasta", "Rice and Beans"]
    assert names("balanced") == ["Pesto Pasta"]
    assert names("expiring") == ["Pesto Pasta", "Rice and Beans"]


def test_suggestions_include_reason_and_counts(
    gateway, fake_tandoor: FakeTandoor
) -> None:
    _seed_pantry(fake_tandoor)

    result = asyncio.run(gateway.suggest_from_inventory("maximum-use", limit=1))

    assert result["mode"] == "maximum-use"
    [suggestion] = result["suggestions"]
    assert suggestion["match_score"] == 0.6667
    assert suggestion["matching_ingredients"] == 2
    assert suggestion["missing_ingredients"] == ["Basil"]
    assert suggestion["reason"] == "Uses 67% of available ingredients"


def test_recently_cooked_recipes_are_excluded(
    gateway, fake_tandoor: FakeTandoor
) -> None:
    recipes = _seed_pantry(fake_tandoor)
    now = datetime.now(tz=UTC)
    fake_tandoor.add_cook_log(recipes["Pesto Pasta"], now - timedelta(days=2))
    fake_tandoor.add_cook_log(recipes["Rice and Beans"], now - timedelta(days=30))

    result = asyncio.run(
        gateway.suggest_from_inventory("maximum-use", exclude_recent=True)
    )

    assert [item["recipe_name"] for item in result["suggestions"]] == [
        "Rice and Beans"
    ]


def test_search_ranks_by_pantry_coverage(gateway, fake_tandoor: FakeTandoor) -> None:
    _seed_pantry(fake_tandoor)

    plain = asyncio.run(gateway.search_recipes())
    ranked = asyncio.run(gateway.search_recipes(prefer_available=True))

    assert plain["total_count"] == 4
    assert "match_score" not in plain["recipes"][0]
    assert [row["name"] for row in ranked["recipes"]] == [
        "Pesto Pasta",
        "Rice and Beans",
        "Tuna Salad",
        "Lime Water",
    ]


def test_suggestions_report_available_ingredients(
    gateway, fake_tandoor: FakeTandoor
) -> None:
    _seed_pantry(fake_tandoor)

    result = asyncio.run(gateway.suggest_from_inventory("balanced"))

    assert result["available_ingredients"] == ["Pasta", "Garlic", "Rice"]
    assert result["total_available"] == 3
    assert result["message"] == (
        "Found 1 recipe suggestions using your 3 available ingredients"
    )


def test_empty_pantry_skips_scoring(gateway, fake_tandoor: FakeTandoor) -> None:
    tuna = fake_tandoor.add_food("Tuna")
    fake_tandoor.add_recipe("Tuna Melt", [(tuna, 1, None)])

    result = asyncio.run(gateway.suggest_from_inventory("maximum-use"))

    assert result["suggestions"] == []
    assert result["available_ingredients"] == []
    assert result["total_available"] == 0
    assert result["message"] == (
        "No ingredients found in pantry. Update your inventory first."
    )
    assert fake_tandoor.count("GET", "/api/recipe/") == 0


def test_search_excluding_recent_still_fills_limit(
    gateway, fake_tandoor: FakeTandoor
) -> None:
    stew = fake_tandoor.add_recipe("Stew")
    fake_tandoor.add_recipe("Curry")
    fake_tandoor.add_recipe("Chili")
    fake_tandoor.add_cook_log(stew, datetime.now(tz=UTC) - timedelta(days=1))

    result = asyncio.run(gateway.search_recipes(limit=2, exclude_recent=True))

    assert [row["name"] for row in result["recipes"]] == ["Curry", "Chili"]
    assert result["total_count"] == 2
