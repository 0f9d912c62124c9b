"""Domain models for shopping list consolidation and pantry updates."""

from dataclasses import dataclass, field

from tandoor_gateway.domain.operations import OperationLog, OperationStatus


@dataclass(frozen=True)
class DemandItem:
    """Something the caller wants on the shopping list."""

    name: str | None = None
    food_id: int | None = None
    amount: float = 1.0
    unit: str | None = None
    unit_id: int | None = None

    @property
    def label(self) -> str:
        return self.name or f"food {self.food_id}"


@dataclass
class ShoppingLine:
    """Outcome for one demand item."""

    food_id: int
    food: str
    amount: float
    unit: str | None
    entry_id: int | None = None
    total_amount: float | None = None
    reason: str | None = None
    converted_from: str | None = None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "food_id": self.food_id,
            "food": self.food,
            "amount": self.amount,
            "unit": self.unit,
            "entry_id": self.entry_id,
        }
        if self.total_amount is not None:
            payload["total_amount"] = self.total_amount
        if self.reason:
            payload["reason"] = self.reason
        if self.converted_from:
            payload["converted_from"] = self.converted_from
        return payload


@dataclass(frozen=True)
class UnresolvedItem:
    """A name the gateway could not map to a single entity."""

    query: str
    reason: str
    message: str
    candidates: list[dict[str, object]] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "query": self.query,
            "reason": self.reason,
            "message": self.message,
        }
        if self.candidates:
            payload["candidates"] = list(self.candidates)
        return payload


@dataclass(frozen=True)
class UnitMismatch:
    """Demand kept separate because its unit cannot be converted."""

    food: str
    requested_unit: str | None
    existing_unit: str | None
    existing_entry_id: int

    def to_dict(self) -> dict[str, object]:
        return {
            "food": self.food,
            "requested_unit": self.requested_unit,
            "existing_unit": self.existing_unit,
            "existing_entry_id": self.existing_entry_id,
        }


@dataclass
class ShoppingAddResult:
    """Partition of demand into added, consolidated and skipped lines."""

    added: list[ShoppingLine] = field(default_factory=list)
    consolidated: list[ShoppingLine] = field(default_factory=list)
    skipped: list[ShoppingLine] = field(default_factory=list)
    unresolved: list[UnresolvedItem] = field(default_factory=list)
    unit_mismatches: list[UnitMismatch] = field(default_factory=list)
    created_foods: list[str] = field(default_factory=list)
    log: OperationLog = field(default_factory=OperationLog)

    @property
    def status(self) -> OperationStatus:
        return self.log.status

    @property
    def summary(self) -> str:
        parts = [
            f"Added {len(self.added)} items",
            f"consolidated {len(self.consolidated)}",
            f"skipped {len(self.skipped)} already in pantry",
        ]
        if self.unresolved:
            parts.append(f"{len(self.unresolved)} need clarification")
        if self.log.failed:
            parts.append(f"{len(self.log.failed)} steps failed")
        return ", ".join(parts)

    def to_dict(self) -> dict[str, object]:
        return {
            "added": [line.to_dict() for line in self.added],
            "consolidated": [line.to_dict() for line in self.consolidated],
            "skipped": [line.to_dict() for line in self.skipped],
            "unresolved": [item.to_dict() for item in self.unresolved],
            "unit_mismatches": [item.to_dict() for item in self.unit_mismatches],
            "created_foods": list(self.created_foods),
            "summary": self.summary,
        }


@dataclass(frozen=True)
class CheckedEntry:
    """A shopping list entry marked as purchased."""

    entry_id: int
    food: str
    amount: float
    unit: str | None

    def to_dict(self) -> dict[str, object]:
        return {
            "entry_id": self.entry_id,
            "food": self.food,
            "amount": self.amount,
            "unit": self.unit,
        }


@dataclass
class CheckResult:
    """Outcome of marking shopping list entries as checked."""

    checked: list[CheckedEntry] = field(default_factory=list)
    unresolved: list[UnresolvedItem] = field(default_factory=list)
    log: OperationLog = field(default_factory=OperationLog)

    @property
    def status(self) -> OperationStatus:
        return self.log.status

    @property
    def summary(self) -> str:
        return (
            f"Checked {len(self.checked)} entries, "
            f"{len(self.unresolved)} not matched, {len(self.log.failed)} failed"
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "checked": [entry.to_dict() for entry in self.checked],
            "unresolved": [item.to_dict() for item in self.unresolved],
            "summary": self.summary,
        }


@dataclass
class ClearResult:
    """Outcome of removing checked entries and restocking the pantry."""

    removed: list[CheckedEntry] = field(default_factory=list)
    pantry_updates: list[str] = field(default_factory=list)
    log: OperationLog = field(default_factory=OperationLog)

    @property
    def status(self) -> OperationStatus:
        return self.log.status

    @property
    def summary(self) -> str:
        return (
            f"Removed {len(self.removed)} checked items, "
            f"updated pantry for {len(self.pantry_updates)} items"
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "removed": [entry.to_dict() for entry in self.removed],
            "pantry_updates": list(self.pantry_updates),
            "errors": [step.to_dict() for step in self.log.failed],
            "summary": self.summary,
        }


@dataclass(frozen=True)
class PantryChange:
    """Requested change to a food's pantry flag."""

    available: bool
    name: str | None = None
    food_id: int | None = None
    amount: float | None = None


@dataclass(frozen=True)
class PantryLine:
    """Food whose pantry flag was applied."""

    food_id: int
    food: str
    on_hand: bool
    created: bool = False
    amount: float | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "food_id": self.food_id,
            "food": self.food,
            "on_hand": self.on_hand,
            "created": self.created,
            "amount": self.amount,
        }


@dataclass
class PantryResult:
    """Outcome of a batch of pantry changes."""

    updated: list[PantryLine] = field(default_factory=list)
    unresolved: list[UnresolvedItem] = field(default_factory=list)
    log: OperationLog = field(default_factory=OperationLog)

    @property
    def status(self) -> OperationStatus:
        return self.log.status

    @property
    def summary(self) -> str:
        created = sum(1 for line in self.updated if line.created)
        return (
            f"Updated {len(self.updated)} pantry items ({created} new foods), "
            f"{len(self.unresolved)} not matched, {len(self.log.failed)} failed"
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "updated": [line.to_dict() for line in self.updated],
            "unresolved": [item.to_dict() for item in self.unresolved],
            "summary": self.summary,
        }
