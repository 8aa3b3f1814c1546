from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Iterator, Mapping, Optional, Sequence, Tuple

from ..core.constants import DEFAULT_ENTRY_STATUS, HISTORY_CAPACITY


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _from_iso(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _to_quantity(value: Any) -> int:
    # Non-integral quantities (1.9, "2.5") become 0, which fails is_complete.
    if isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not number.is_integer():
        return 0
    return int(number)


@dataclass(frozen=True)
class Product:
    name: str
    specification: str
    size: str
    quantity: int

    @property
    def is_complete(self) -> bool:
        return bool(self.name and self.specification and self.size and self.quantity >= 1)

    @classmethod
    def from_dict(cls, raw: Any) -> "Product":
        if not isinstance(raw, Mapping):
            return cls(name="", specification="", size="", quantity=0)
        return cls(
            name=str(raw.get("name") or "").strip(),
            specification=str(raw.get("specification") or "").strip(),
            size=str(raw.get("size") or "").strip(),
            quantity=_to_quantity(raw.get("quantity")),
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "specification": self.specification,
            "size": self.size,
            "quantity": self.quantity,
        }

    def label(self) -> str:
        return f"{self.name} ({self.specification}, {self.size}, Qty: {self.quantity})"


@dataclass(frozen=True)
class HistoryEntry:
    """Immutable snapshot appended to an entry's audit log."""

    status: str
    timestamp: datetime
    remarks: Optional[str] = None
    live_location: Optional[str] = None
    next_action: Optional[str] = None
    estimated_value: Optional[float] = None
    products: Tuple[Product, ...] = ()
    assigned_to: Tuple[int, ...] = ()
    first_person_meet: Optional[str] = None
    second_person_meet: Optional[str] = None
    third_person_meet: Optional[str] = None
    fourth_person_meet: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "remarks": self.remarks,
            "liveLocation": self.live_location,
            "nextAction": self.next_action,
            "estimatedValue": self.estimated_value,
            "products": [p.to_dict() for p in self.products],
            "assignedTo": list(self.assigned_to),
            "firstPersonMeet": self.first_person_meet,
            "secondPersonMeet": self.second_person_meet,
            "thirdPersonMeet": self.third_person_meet,
            "fourthPersonMeet": self.fourth_person_meet,
            "timestamp": _iso(self.timestamp),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "HistoryEntry":
        return cls(
            status=str(raw.get("status") or DEFAULT_ENTRY_STATUS),
            timestamp=_from_iso(raw.get("timestamp")) or datetime.min,
            remarks=raw.get("remarks"),
            live_location=raw.get("liveLocation"),
            next_action=raw.get("nextAction"),
            estimated_value=raw.get("estimatedValue"),
            products=tuple(Product.from_dict(p) for p in raw.get("products") or []),
            assigned_to=tuple(int(i) for i in raw.get("assignedTo") or []),
            first_person_meet=raw.get("firstPersonMeet"),
            second_person_meet=raw.get("secondPersonMeet"),
            third_person_meet=raw.get("thirdPersonMeet"),
            fourth_person_meet=raw.get("fourthPersonMeet"),
        )


@dataclass(frozen=True)
class HistoryLog:
    """Fixed-capacity audit log owned by an entry; oldest element evicted first."""

    items: Tuple[HistoryEntry, ...] = ()
    capacity: int = HISTORY_CAPACITY

    def __post_init__(self):
        if len(self.items) > self.capacity:
            object.__setattr__(self, "items", tuple(self.items[-self.capacity:]))

    def append(self, item: HistoryEntry) -> "HistoryLog":
        items = list(self.items)
        if len(items) >= self.capacity:
            items.pop(0)
        items.append(item)
        return replace(self, items=tuple(items))

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self.items)

    def __getitem__(self, index: int) -> HistoryEntry:
        return self.items[index]

    def to_list(self) -> list[dict]:
        return [h.to_dict() for h in self.items]

    @classmethod
    def from_list(cls, raw: Sequence[Mapping[str, Any]]) -> "HistoryLog":
        return cls(items=tuple(HistoryEntry.from_dict(r) for r in raw or []))


@dataclass(frozen=True)
class Entry:
    """Domain entity: a customer/lead record."""

    entry_id: int
    customer_name: str
    created_by: int
    created_at: datetime
    updated_at: datetime
    mobile_number: Optional[str] = None
    contact_person: Optional[str] = None
    first_date: Optional[datetime] = None
    estimated_value: Optional[float] = None
    address: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    organization: Optional[str] = None
    type: Optional[str] = None
    category: Optional[str] = None
    products: Tuple[Product, ...] = ()
    status: str = DEFAULT_ENTRY_STATUS
    expected_closing_date: Optional[datetime] = None
    close_amount: Optional[float] = None
    close_type: Optional[str] = None
    follow_up_date: Optional[datetime] = None
    remarks: Optional[str] = None
    live_location: Optional[str] = None
    next_action: Optional[str] = None
    first_person_meet: Optional[str] = None
    second_person_meet: Optional[str] = None
    third_person_meet: Optional[str] = None
    fourth_person_meet: Optional[str] = None
    assigned_to: Tuple[int, ...] = ()
    history: HistoryLog = field(default_factory=HistoryLog)


@dataclass(frozen=True)
class EntryFilters:
    """Optional equality/range filters applied on top of the access scope."""

    customer_name: Optional[str] = None
    mobile_number: Optional[str] = None
    status: Optional[str] = None
    category: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    type: Optional[str] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None

    EXACT_FIELDS = ("mobile_number", "status", "category", "state", "city", "type")

    def matches(self, entry: Entry) -> bool:
        if self.customer_name and self.customer_name.lower() not in (entry.customer_name or "").lower():
            return False
        for name in self.EXACT_FIELDS:
            wanted = getattr(self, name)
            if wanted is not None and getattr(entry, name) != wanted:
                return False
        if self.created_from and entry.created_at < self.created_from:
            return False
        if self.created_to and entry.created_at > self.created_to:
            return False
        return True
