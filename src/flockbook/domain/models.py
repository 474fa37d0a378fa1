from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

TEMP_ID_PREFIX = "temp-"

FEED_UNITS = ("kg", "lbs")
FLOCK_EVENT_TYPES = ("acquisition", "laying_start", "broody", "hatching", "other")


def is_temp_id(value: Optional[str]) -> bool:
    return bool(value) and str(value).startswith(TEMP_ID_PREFIX)


def _first(data: dict, *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def _compact(payload: dict) -> dict:
    return {k: v for k, v in payload.items() if v is not None}


def _str_or_none(value: Any) -> Optional[str]:
    return None if value is None else str(value)


@dataclass(frozen=True)
class EggEntry:
    id: Optional[str]
    date: str
    count: int
    notes: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_wire(cls, data: dict) -> "EggEntry":
        return cls(
            id=_str_or_none(data.get("id")),
            date=str(data["date"])[:10],
            count=int(data.get("count") or 0),
            notes=data.get("notes"),
            created_at=_first(data, "created_at", "createdAt"),
        )

    def to_wire(self) -> dict:
        return _compact({
            "id": self.id,
            "date": self.date,
            "count": self.count,
            "notes": self.notes,
            "created_at": self.created_at,
        })


@dataclass(frozen=True)
class Expense:
    id: Optional[str]
    date: str
    category: str
    description: str
    amount: float
    created_at: Optional[str] = None

    @classmethod
    def from_wire(cls, data: dict) -> "Expense":
        return cls(
            id=_str_or_none(data.get("id")),
            date=str(data["date"])[:10],
            category=str(data.get("category") or ""),
            description=str(data.get("description") or ""),
            amount=float(data.get("amount") or 0),
            created_at=_first(data, "created_at", "createdAt"),
        )

    def to_wire(self) -> dict:
        return _compact({
            "id": self.id,
            "date": self.date,
            "category": self.category,
            "description": self.description,
            "amount": self.amount,
            "created_at": self.created_at,
        })


@dataclass(frozen=True)
class FeedEntry:
    id: Optional[str]
    brand: str
    type: str
    quantity: float
    unit: str
    opened_date: str
    price_per_unit: float
    depleted_date: Optional[str] = None
    batch_number: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return not self.depleted_date

    @classmethod
    def from_wire(cls, data: dict) -> "FeedEntry":
        # partial endpoints return raw column names, the bulk endpoint camelCase
        depleted = _first(data, "depletedDate", "expiry_date")
        batch = _first(data, "batchNumber", "batch_number")
        return cls(
            id=_str_or_none(data.get("id")),
            brand=str(_first(data, "brand", "name", default="")),
            type=str(_first(data, "type", default="Layer Feed")),
            quantity=float(_first(data, "quantity", default=0)),
            unit=str(_first(data, "unit", default="kg")),
            opened_date=str(_first(data, "openedDate", "purchase_date", default=""))[:10],
            price_per_unit=float(_first(data, "pricePerUnit", "cost_per_unit", default=0)),
            depleted_date=str(depleted)[:10] if depleted else None,
            batch_number=batch or None,
            description=data.get("description"),
            created_at=_first(data, "createdAt", "created_at"),
            updated_at=_first(data, "updatedAt", "updated_at"),
        )

    def to_wire(self) -> dict:
        return _compact({
            "id": self.id,
            "brand": self.brand,
            "type": self.type,
            "quantity": self.quantity,
            "unit": self.unit,
            "openedDate": self.opened_date,
            "depletedDate": self.depleted_date,
            "pricePerUnit": self.price_per_unit,
            "batchNumber": self.batch_number,
            "description": self.description,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        })


@dataclass(frozen=True)
class FlockEvent:
    id: Optional[str]
    date: str
    type: str
    description: str
    affected_birds: Optional[int] = None
    notes: Optional[str] = None

    @classmethod
    def from_wire(cls, data: dict) -> "FlockEvent":
        affected = _first(data, "affectedBirds", "affected_birds")
        return cls(
            id=_str_or_none(data.get("id")),
            date=str(data["date"])[:10],
            type=str(data.get("type") or "other"),
            description=str(data.get("description") or ""),
            affected_birds=int(affected) if affected is not None else None,
            notes=data.get("notes"),
        )

    def to_wire(self) -> dict:
        return _compact({
            "id": self.id,
            "date": self.date,
            "type": self.type,
            "description": self.description,
            "affectedBirds": self.affected_birds,
            "notes": self.notes,
        })


@dataclass(frozen=True)
class FlockProfile:
    id: Optional[str]
    hens: int = 0
    roosters: int = 0
    chicks: int = 0
    brooding: int = 0
    breed_types: tuple[str, ...] = ()
    events: tuple[FlockEvent, ...] = ()
    last_updated: Optional[str] = None
    flock_start_date: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_wire(cls, data: dict) -> "FlockProfile":
        breeds = _first(data, "breedTypes", default=None)
        if breeds is None:
            raw = data.get("breed") or ""
            breeds = [b for b in raw.split(", ") if b]
        return cls(
            id=_str_or_none(data.get("id")),
            hens=int(data.get("hens") or 0),
            roosters=int(data.get("roosters") or 0),
            chicks=int(data.get("chicks") or 0),
            brooding=int(data.get("brooding") or 0),
            breed_types=tuple(str(b) for b in breeds),
            events=tuple(FlockEvent.from_wire(e) for e in data.get("events") or []),
            last_updated=_first(data, "lastUpdated", "last_updated"),
            flock_start_date=_first(data, "flockStartDate", "start_date"),
            notes=data.get("notes"),
            created_at=_first(data, "createdAt", "created_at"),
            updated_at=_first(data, "updatedAt", "updated_at"),
        )

    def to_wire(self) -> dict:
        return _compact({
            "id": self.id,
            "hens": self.hens,
            "roosters": self.roosters,
            "chicks": self.chicks,
            "brooding": self.brooding,
            "breedTypes": list(self.breed_types),
            "events": [e.to_wire() for e in self.events],
            "lastUpdated": self.last_updated,
            "flockStartDate": self.flock_start_date,
            "notes": self.notes,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        })


@dataclass(frozen=True)
class FlockBatch:
    id: Optional[str]
    batch_name: str
    breed: str
    acquisition_date: str
    initial_count: int
    current_count: int
    type: str = "hens"
    age_at_acquisition: Optional[str] = None
    expected_laying_start_date: Optional[str] = None
    source: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True

    @classmethod
    def from_wire(cls, data: dict) -> "FlockBatch":
        return cls(
            id=_str_or_none(data.get("id")),
            batch_name=str(_first(data, "batchName", "batch_name", default="")),
            breed=str(data.get("breed") or ""),
            acquisition_date=str(_first(data, "acquisitionDate", "acquisition_date", default=""))[:10],
            initial_count=int(_first(data, "initialCount", "initial_count", default=0)),
            current_count=int(_first(data, "currentCount", "current_count", default=0)),
            type=str(data.get("type") or "hens"),
            age_at_acquisition=_first(data, "ageAtAcquisition", "age_at_acquisition"),
            expected_laying_start_date=_first(data, "expectedLayingStartDate", "expected_laying_start_date"),
            source=data.get("source"),
            notes=data.get("notes"),
            is_active=bool(_first(data, "isActive", "is_active", default=True)),
        )

    def to_wire(self) -> dict:
        return _compact({
            "id": self.id,
            "batchName": self.batch_name,
            "breed": self.breed,
            "acquisitionDate": self.acquisition_date,
            "initialCount": self.initial_count,
            "currentCount": self.current_count,
            "type": self.type,
            "ageAtAcquisition": self.age_at_acquisition,
            "expectedLayingStartDate": self.expected_laying_start_date,
            "source": self.source,
            "notes": self.notes,
            "isActive": self.is_active,
        })


@dataclass(frozen=True)
class DeathRecord:
    id: Optional[str]
    batch_id: str
    date: str
    count: int
    cause: str = "unknown"
    description: str = ""
    notes: Optional[str] = None

    @classmethod
    def from_wire(cls, data: dict) -> "DeathRecord":
        return cls(
            id=_str_or_none(data.get("id")),
            batch_id=str(_first(data, "batchId", "batch_id", default="")),
            date=str(data.get("date") or "")[:10],
            count=int(data.get("count") or 0),
            cause=str(data.get("cause") or "unknown"),
            description=str(data.get("description") or ""),
            notes=data.get("notes"),
        )

    def to_wire(self) -> dict:
        return _compact({
            "id": self.id,
            "batchId": self.batch_id,
            "date": self.date,
            "count": self.count,
            "cause": self.cause,
            "description": self.description,
            "notes": self.notes,
        })


@dataclass(frozen=True)
class Customer:
    id: Optional[str]
    name: str
    phone: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True
    user_id: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_wire(cls, data: dict) -> "Customer":
        return cls(
            id=_str_or_none(data.get("id")),
            name=str(data.get("name") or ""),
            phone=data.get("phone") or None,
            notes=data.get("notes") or None,
            is_active=bool(data.get("is_active", True)),
            user_id=_str_or_none(data.get("user_id")),
            created_at=data.get("created_at"),
        )

    def to_wire(self) -> dict:
        return _compact({
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "notes": self.notes,
            "is_active": self.is_active,
            "user_id": self.user_id,
            "created_at": self.created_at,
        })


@dataclass(frozen=True)
class Sale:
    id: Optional[str]
    customer_id: str
    sale_date: str
    dozen_count: int = 0
    individual_count: int = 0
    total_amount: float = 0.0
    notes: Optional[str] = None
    customer_name: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def egg_count(self) -> int:
        return self.dozen_count * 12 + self.individual_count

    @classmethod
    def from_wire(cls, data: dict) -> "Sale":
        return cls(
            id=_str_or_none(data.get("id")),
            customer_id=str(data.get("customer_id") or ""),
            sale_date=str(data.get("sale_date") or "")[:10],
            dozen_count=int(data.get("dozen_count") or 0),
            individual_count=int(data.get("individual_count") or 0),
            total_amount=float(data.get("total_amount") or 0),
            notes=data.get("notes") or None,
            customer_name=data.get("customer_name") or None,
            user_id=_str_or_none(data.get("user_id")),
            created_at=data.get("created_at"),
        )

    def to_wire(self) -> dict:
        return _compact({
            "id": self.id,
            "customer_id": self.customer_id,
            "sale_date": self.sale_date,
            "dozen_count": self.dozen_count,
            "individual_count": self.individual_count,
            "total_amount": self.total_amount,
            "notes": self.notes,
            "customer_name": self.customer_name,
            "user_id": self.user_id,
            "created_at": self.created_at,
        })


@dataclass(frozen=True)
class ApiResponse:
    success: bool
    data: Any = None
    message: Optional[str] = None


@dataclass(frozen=True)
class AppSnapshot:
    """Last fetched state of every collection. Replaced wholesale, never patched."""

    egg_entries: list[EggEntry] = field(default_factory=list)
    expenses: list[Expense] = field(default_factory=list)
    feed_inventory: list[FeedEntry] = field(default_factory=list)
    flock_profile: Optional[FlockProfile] = None
    flock_events: list[FlockEvent] = field(default_factory=list)
    customers: list[Customer] = field(default_factory=list)
    sales: list[Sale] = field(default_factory=list)
    flock_batches: list[FlockBatch] = field(default_factory=list)
    death_records: list[DeathRecord] = field(default_factory=list)
    summary: Optional[dict] = None

    @classmethod
    def from_wire(cls, data: Optional[dict]) -> "AppSnapshot":
        data = data or {}
        profile = FlockProfile.from_wire(data["flockProfile"]) if data.get("flockProfile") else None
        raw_events = data.get("flockEvents")
        if raw_events is None and profile is not None:
            events = list(profile.events)
        else:
            events = [FlockEvent.from_wire(e) for e in raw_events or []]
        return cls(
            egg_entries=[EggEntry.from_wire(e) for e in data.get("eggEntries") or []],
            expenses=[Expense.from_wire(e) for e in data.get("expenses") or []],
            feed_inventory=[FeedEntry.from_wire(e) for e in data.get("feedInventory") or []],
            flock_profile=profile,
            flock_events=events,
            customers=[Customer.from_wire(c) for c in data.get("customers") or []],
            sales=[Sale.from_wire(s) for s in data.get("sales") or []],
            flock_batches=[FlockBatch.from_wire(b) for b in data.get("flockBatches") or []],
            death_records=[DeathRecord.from_wire(d) for d in data.get("deathRecords") or []],
            summary=data.get("summary") or None,
        )

    def to_wire(self) -> dict:
        return {
            "eggEntries": [e.to_wire() for e in self.egg_entries],
            "expenses": [e.to_wire() for e in self.expenses],
            "feedInventory": [e.to_wire() for e in self.feed_inventory],
            "flockProfile": self.flock_profile.to_wire() if self.flock_profile else None,
            "flockEvents": [e.to_wire() for e in self.flock_events],
            "customers": [c.to_wire() for c in self.customers],
            "sales": [s.to_wire() for s in self.sales],
            "flockBatches": [b.to_wire() for b in self.flock_batches],
            "deathRecords": [d.to_wire() for d in self.death_records],
            "summary": self.summary,
        }


@dataclass(frozen=True)
class Session:
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[float] = None
    user_id: Optional[str] = None
