"""Shared test fixtures."""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime

import httpx
import pytest

from tandoor_gateway.adapters.tandoor_client import HttpxTandoorClient
from tandoor_gateway.config import Settings
from tandoor_gateway.containers import AppContainer, build_container

BASE_URL = "http://tandoor.test"
COMPLETED_AT = "2026-10-02T18:00:00+00:00"
_EDITABLE = ("name", "description", "servings", "working_time", "waiting_time")


@dataclass
class FakeTandoor:
    """In-memory Tandoor server answering through ``httpx.MockTransport``."""

    username: str = "chef"
    password: str = "secret"
    page_size: int = 100
    login_status: int | None = None
    foods: dict[int, dict[str, object]] = field(default_factory=dict)
    units: dict[int, dict[str, object]] = field(default_factory=dict)
    keywords: dict[int, dict[str, object]] = field(default_factory=dict)
    recipes: dict[int, dict[str, object]] = field(default_factory=dict)
    entries: dict[int, dict[str, object]] = field(default_factory=dict)
    meal_types: dict[int, dict[str, object]] = field(default_factory=dict)
    meal_plans: dict[int, dict[str, object]] = field(default_factory=dict)
    cook_log: dict[int, dict[str, object]] = field(default_factory=dict)
    books: dict[int, dict[str, object]] = field(default_factory=dict)
    book_entries: list[tuple[int, int]] = field(default_factory=list)
    conversions: list[dict[str, object]] = field(default_factory=list)
    valid_tokens: set[str] = field(default_factory=set)
    logins: int = 0
    requests: list[tuple[str, str]] = field(default_factory=list)
    failures: dict[tuple[str, str], list[int]] = field(default_factory=dict)
    _next_id: int = 100

    # Seeding

    def add_food(
        self,
        name: str,
        *,
        plural_name: str | None = None,
        on_hand: bool = False,
        category: str | None = None,
    ) -> int:
        food_id = self._new_id()
        self.foods[food_id] = {
            "id": food_id,
            "name": name,
            "plural_name": plural_name,
            "description": "",
            "supermarket_category": {"name": category} if category else None,
            "food_onhand": on_hand,
        }
        return food_id

    def add_unit(self, name: str, *, plural_name: str | None = None) -> int:
        unit_id = self._new_id()
        self.units[unit_id] = {
            "id": unit_id,
            "name": name,
            "plural_name": plural_name,
            "description": None,
            "base_unit": None,
            "type": None,
        }
        return unit_id

    def add_keyword(self, name: str) -> int:
        keyword_id = self._new_id()
        self.keywords[keyword_id] = {"id": keyword_id, "name": name}
        return keyword_id

    def add_recipe(
        self,
        name: str,
        ingredients: list[tuple[int, float, int | None]] | None = None,
        *,
        servings: int = 2,
        working_time: int = 10,
        waiting_time: int = 0,
        keywords: list[int] | None = None,
        headers: list[str] | None = None,
        nutrition: dict[str, object] | None = None,
    ) -> int:
        recipe_id = self._new_id()
        self.recipes[recipe_id] = {
            "id": recipe_id,
            "name": name,
            "description": "",
            "servings": servings,
            "working_time": working_time,
            "waiting_time": waiting_time,
            "rating": None,
            "keyword_ids": list(keywords or []),
            "ingredients": list(ingredients or []),
            "headers": list(headers or []),
            "instruction": f"Cook the {name.lower()}.",
            "nutrition": nutrition,
        }
        return recipe_id

    def add_entry(
        self,
        food_id: int,
        amount: float,
        unit_id: int | None = None,
        *,
        checked: bool = False,
    ) -> int:
        entry_id = self._new_id()
        self.entries[entry_id] = {
            "id": entry_id,
            "food": food_id,
            "unit": unit_id,
            "amount": amount,
            "checked": checked,
            "completed": COMPLETED_AT if checked else None,
        }
        return entry_id

    def add_meal_type(self, name: str, order: int = 0) -> int:
        meal_type_id = self._new_id()
        self.meal_types[meal_type_id] = {
            "id": meal_type_id,
            "name": name,
            "order": order,
            "color": None,
            "icon": None,
        }
        return meal_type_id

    def add_cook_log(
        self, recipe_id: int, created_at: datetime, rating: int | None = None
    ) -> int:
        log_id = self._new_id()
        self.cook_log[log_id] = {
            "id": log_id,
            "recipe": recipe_id,
            "servings": 1,
            "rating": rating,
            "comment": "",
            "created_at": created_at.isoformat(),
        }
        return log_id

    def add_book(self, name: str) -> int:
        book_id = self._new_id()
        self.books[book_id] = {"id": book_id, "name": name, "description": ""}
        return book_id

    def add_conversion(
        self,
        base_amount: float,
        base_unit: int,
        converted_amount: float,
        converted_unit: int,
        food: int | None = None,
    ) -> None:
        self.conversions.append(
            {
                "base_amount": base_amount,
                "base_unit": {"id": base_unit},
                "converted_amount": converted_amount,
                "converted_unit": {"id": converted_unit},
                "food": {"id": food} if food is not None else None,
            }
        )

    def fail(self, method: str, path: str, status: int, times: int = 1) -> None:
        """Answer the next ``times`` matching requests with ``status``."""
        self.failures.setdefault((method, path), []).extend([status] * times)

    def revoke_tokens(self) -> None:
        self.valid_tokens.clear()

    def entry_amount(self, food_id: int) -> float:
        return sum(
            float(entry["amount"])
            for entry in self.entries.values()
            if entry["food"] == food_id and not entry["checked"]
        )

    def count(self, method: str, path: str) -> int:
        return sum(1 for seen in self.requests if seen == (method, path))

    # Transport

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append((request.method, path))
        body = json.loads(request.content) if request.content else None
        if path == "/api-token-auth/":
            return self._login(body)
        token = request.headers.get("Authorization", "").removeprefix("Bearer ")
        if token not in self.valid_tokens:
            return httpx.Response(401, json={"detail": "Invalid token."})
        queued = self.failures.get((request.method, path))
        if queued:
            status = queued.pop(0)
            return httpx.Response(status, json={"detail": f"injected {status}"})
        return self._route(request, path, body)

    def _login(self, body: dict[str, object] | None) -> httpx.Response:
        self.logins += 1
        if self.login_status is not None:
            return httpx.Response(self.login_status, json={"detail": "nope"})
        if not body or (body.get("username"), body.get("password")) != (
            self.username,
            self.password,
        ):
            return httpx.Response(400, json={"non_field_errors": ["bad login"]})
        token = f"token-{self.logins:04d}-abcdefghij"
        self.valid_tokens.add(token)
        return httpx.Response(200, json={"token": token})

    def _route(  # noqa: PLR0911, PLR0912
        self, request: httpx.Request, path: str, body: dict[str, object] | None
    ) -> httpx.Response:
        method = request.method
        parts = [part for part in path.split("/") if part][1:]
        resource = parts[0] if parts else ""
        item_id = int(parts[1]) if len(parts) > 1 and parts[1].isdigit() else None

        if resource == "food":
            if method == "GET":
                query = (request.url.params.get("query") or "").lower()
                rows = [
                    self._food_json(food_id)
                    for food_id in self.foods
                    if query in str(self.foods[food_id]["name"]).lower()
                ]
                return self._page(request, rows)
            if method == "POST":
                food_id = self.add_food(
                    str(body["name"]),
                    plural_name=body.get("plural_name"),
                    on_hand=bool(body.get("food_onhand", False)),
                )
                return httpx.Response(201, json=self._food_json(food_id))
            if method == "PATCH" and item_id in self.foods:
                self.foods[item_id].update(body or {})
                return httpx.Response(200, json=self._food_json(item_id))
        if resource == "unit" and method == "GET":
            return self._page(request, list(self.units.values()))
        if resource == "keyword" and method == "GET":
            query = (request.url.params.get("query") or "").lower()
            rows = [
                row
                for row in self.keywords.values()
                if query in str(row["name"]).lower()
            ]
            return self._page(request, rows)
        if resource == "unit-conversion" and method == "GET":
            return self._page(request, list(self.conversions))
        if resource == "recipe":
            return self._recipes(request, method, item_id, body)
        if resource == "recipe-from-source" and method == "POST":
            recipe_id = self.add_recipe("Imported Stew")
            self.recipes[recipe_id]["source_url"] = body["url"]
            return httpx.Response(
                201, json={"recipe": self._recipe_json(recipe_id, full=True)}
            )
        if resource == "shopping-list-entry":
            return self._shopping(request, method, parts, item_id, body)
        if resource == "meal-type" and method == "GET":
            return self._page(request, list(self.meal_types.values()))
        if resource == "meal-plan":
            return self._meal_plans(request, method, item_id, body)
        if resource == "cook-log":
            if method == "GET":
                return self._page(request, list(self.cook_log.values()))
            if method == "POST":
                log_id = self._new_id()
                self.cook_log[log_id] = {
                    "id": log_id,
                    "recipe": body["recipe"],
                    "servings": body.get("servings", 1),
                    "rating": body.get("rating"),
                    "comment": body.get("comment", ""),
                    "created_at": datetime.now(tz=UTC).isoformat(),
                }
                return httpx.Response(201, json=self.cook_log[log_id])
        if resource == "recipe-book":
            if method == "GET":
                return self._page(request, list(self.books.values()))
            if method == "POST":
                book_id = self.add_book(str(body["name"]))
                self.books[book_id]["description"] = body.get("description", "")
                return httpx.Response(201, json=self.books[book_id])
        if resource == "recipe-book-entry" and method == "POST":
            self.book_entries.append((int(body["book"]), int(body["recipe"])))
            return httpx.Response(
                201,
                json={"id": len(self.book_entries), **body},
            )
        return httpx.Response(404, json={"detail": "Not found."})

    def _recipes(
        self,
        request: httpx.Request,
        method: str,
        item_id: int | None,
        body: dict[str, object] | None,
    ) -> httpx.Response:
        if method == "GET" and item_id is None:
            query = (request.url.params.get("query") or "").lower()
            wanted = request.url.params.get_list("keywords")
            keyword_ids = {int(value) for value in wanted}
            rows = [
                self._recipe_json(recipe_id, full=False)
                for recipe_id, recipe in self.recipes.items()
                if query in str(recipe["name"]).lower()
                and keyword_ids <= set(recipe["keyword_ids"])
            ]
            return self._page(request, rows)
        if method == "POST" and item_id is None:
            recipe_id = self.add_recipe(
                str(body["name"]),
                servings=int(body.get("servings", 1)),
                working_time=int(body.get("working_time", 0)),
                waiting_time=int(body.get("waiting_time", 0)),
            )
            self.recipes[recipe_id]["keyword_ids"] = [
                self.add_keyword(str(keyword["name"]))
                for keyword in body.get("keywords", [])
            ]
            return httpx.Response(201, json=self._recipe_json(recipe_id, full=True))
        if item_id not in self.recipes:
            return httpx.Response(404, json={"detail": "Not found."})
        if method == "GET":
            return httpx.Response(200, json=self._recipe_json(item_id, full=True))
        if method == "PATCH":
            recipe = self.recipes[item_id]
            recipe.update(
                {key: value for key, value in body.items() if key in _EDITABLE}
            )
            return httpx.Response(200, json=self._recipe_json(item_id, full=True))
        return httpx.Response(405)

    def _shopping(
        self,
        request: httpx.Request,
        method: str,
        parts: list[str],
        item_id: int | None,
        body: dict[str, object] | None,
    ) -> httpx.Response:
        if method == "GET" and item_id is None:
            rows = [self._entry_json(entry_id) for entry_id in self.entries]
            return self._page(request, rows)
        if method == "POST" and parts[1:] == ["bulk"]:
            created = [
                self.add_entry(int(row["food"]), float(row["amount"]), row["unit"])
                for row in body["entries"]
            ]
            return httpx.Response(
                201, json=[self._entry_json(entry_id) for entry_id in created]
            )
        if method == "POST":
            entry_id = self.add_entry(
                int(body["food"]), float(body["amount"]), body.get("unit")
            )
            return httpx.Response(201, json=self._entry_json(entry_id))
        if item_id not in self.entries:
            return httpx.Response(404, json={"detail": "Not found."})
        if method == "PATCH":
            entry = self.entries[item_id]
            entry.update(body or {})
            if "checked" in (body or {}):
                entry["completed"] = COMPLETED_AT if entry["checked"] else None
            return httpx.Response(200, json=self._entry_json(item_id))
        if method == "DELETE":
            del self.entries[item_id]
            return httpx.Response(204)
        return httpx.Response(405)

    def _meal_plans(
        self,
        request: httpx.Request,
        method: str,
        item_id: int | None,
        body: dict[str, object] | None,
    ) -> httpx.Response:
        if method == "GET":
            start = request.url.params.get("from_date") or "0000-00-00"
            end = request.url.params.get("to_date") or "9999-99-99"
            rows = [
                self._plan_json(plan_id)
                for plan_id, plan in self.meal_plans.items()
                if start <= str(plan["from_date"]) <= end
            ]
            return self._page(request, rows)
        if method == "POST":
            if body.get("meal_type") not in self.meal_types:
                return httpx.Response(400, json={"meal_type": ["invalid"]})
            plan_id = self._new_id()
            self.meal_plans[plan_id] = dict(body, id=plan_id)
            return httpx.Response(201, json=self._plan_json(plan_id))
        if method == "DELETE":
            if item_id not in self.meal_plans:
                return httpx.Response(404, json={"detail": "Not found."})
            del self.meal_plans[item_id]
            return httpx.Response(204)
        return httpx.Response(405)

    def _page(self, request: httpx.Request, rows: list[object]) -> httpx.Response:
        size = int(request.url.params.get("page_size") or self.page_size)
        page = int(request.url.params.get("page") or 1)
        chunk = rows[(page - 1) * size : page * size]
        following = None
        if page * size < len(rows):
            following = str(request.url.copy_set_param("page", page + 1))
        return httpx.Response(
            200,
            json={"count": len(rows), "next": following, "results": chunk},
        )

    # JSON views

    def _food_json(self, food_id: int) -> dict[str, object]:
        return dict(self.foods[food_id])

    def _unit_json(self, unit_id: int | None) -> dict[str, object] | None:
        return dict(self.units[unit_id]) if unit_id is not None else None

    def _entry_json(self, entry_id: int) -> dict[str, object]:
        entry = self.entries[entry_id]
        return {
            "id": entry_id,
            "food": self._food_json(int(entry["food"])),
            "unit": self._unit_json(entry["unit"]),
            "amount": entry["amount"],
            "checked": entry["checked"],
            "completed": entry["completed"],
            "created_at": "2026-10-01T09:00:00+00:00",
        }

    def _recipe_json(self, recipe_id: int, *, full: bool) -> dict[str, object]:
        recipe = self.recipes[recipe_id]
        payload: dict[str, object] = {
            key: recipe.get(key)
            for key in (
                "id",
                "name",
                "description",
                "servings",
                "working_time",
                "waiting_time",
                "rating",
                "source_url",
            )
        }
        payload["keywords"] = [
            self.keywords[keyword_id] for keyword_id in recipe["keyword_ids"]
        ]
        if not full:
            return payload
        ingredients: list[dict[str, object]] = [
            {
                "food": None,
                "unit": None,
                "amount": 0,
                "note": header,
                "is_header": True,
            }
            for header in recipe["headers"]
        ]
        ingredients.extend(
            {
                "food": self._food_json(food_id),
                "unit": self._unit_json(unit_id),
                "amount": amount,
                "note": "",
                "is_header": False,
                "no_amount": False,
            }
            for food_id, amount, unit_id in recipe["ingredients"]
        )
        payload["nutrition"] = recipe["nutrition"]
        payload["steps"] = [
            {
                "name": "",
                "instruction": recipe["instruction"],
                "ingredients": ingredients,
            }
        ]
        return payload

    def _plan_json(self, plan_id: int) -> dict[str, object]:
        plan = self.meal_plans[plan_id]
        recipe_id = plan.get("recipe")
        recipe = None
        if recipe_id is not None:
            recipe = {"id": recipe_id, "name": self.recipes[recipe_id]["name"]}
        return {
            "id": plan_id,
            "from_date": plan["from_date"],
            "meal_type": self.meal_types[plan["meal_type"]],
            "servings": plan.get("servings", 1),
            "recipe": recipe,
            "title": plan.get("title", ""),
            "note": plan.get("note", ""),
        }

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id


@pytest.fixture
def fake_tandoor() -> FakeTandoor:
    return FakeTandoor()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        tandoor_base_url=BASE_URL,
        tandoor_username="chef",
        tandoor_password="secret",
        tandoor_auth_token=None,
        read_retry_delay_seconds=0,
        tool_api_token="tool-token",
    )


def make_client(fake: FakeTandoor) -> HttpxTandoorClient:
    return HttpxTandoorClient(
        base_url=BASE_URL,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(fake.handler)),
    )


@pytest.fixture
def container(settings: Settings, fake_tandoor: FakeTandoor) -> AppContainer:
    return build_container(settings, client=make_client(fake_tandoor))


@pytest.fixture
def gateway(container: AppContainer):
    return container.gateway
