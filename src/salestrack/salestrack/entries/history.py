"""History append rules for entry mutations.

An edit earns a history element when it changes the status, the remarks, the
product list, the assignee list (order matters) or sets a non-blank
"person met" slot to a new value. Several qualifying changes in one edit are
merged into a single element, and snapshots record the state *after* the edit.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from ..core.constants import (
    ASSIGNED_UPDATED_REMARKS,
    DEFAULT_ENTRY_STATUS,
    INITIAL_HISTORY_REMARKS,
    PERSON_MEET_FIELDS,
    PERSON_MEET_UPDATED_REMARKS,
    PRODUCTS_UPDATED_REMARKS,
)
from .model import Entry, HistoryEntry, HistoryLog


def _changed_person_meets(entry: Entry, changes: Mapping[str, Any]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for name in PERSON_MEET_FIELDS:
        if name not in changes:
            continue
        value = (changes[name] or "").strip()
        if value and value != (getattr(entry, name) or ""):
            out[name] = value
    return out


def maybe_append_history(entry: Entry, changes: Mapping[str, Any], now: datetime) -> Optional[HistoryEntry]:
    """Build the history element an edit earns, or ``None`` if it is silent.

    ``entry`` is the persisted (pre-update) state and ``changes`` the parsed
    edit, holding only the fields the request set.
    """
    status_changed = "status" in changes and changes["status"] != entry.status
    remarks_changed = "remarks" in changes and changes["remarks"] != (entry.remarks or "")
    products_changed = "products" in changes and tuple(changes["products"]) != tuple(entry.products)
    assigned_changed = "assigned_to" in changes and tuple(changes["assigned_to"]) != tuple(entry.assigned_to)
    person_meets = _changed_person_meets(entry, changes)

    if not (status_changed or remarks_changed or products_changed or assigned_changed or person_meets):
        return None

    if remarks_changed:
        remarks = changes["remarks"]
    elif status_changed:
        remarks = entry.remarks
    elif products_changed:
        remarks = PRODUCTS_UPDATED_REMARKS
    elif assigned_changed:
        remarks = ASSIGNED_UPDATED_REMARKS
    else:
        remarks = PERSON_MEET_UPDATED_REMARKS

    return HistoryEntry(
        status=changes["status"] if status_changed else entry.status,
        remarks=remarks,
        live_location=changes.get("live_location") or None,
        next_action=changes.get("next_action") or None,
        estimated_value=changes.get("estimated_value"),
        products=tuple(changes.get("products", entry.products)),
        assigned_to=tuple(changes.get("assigned_to", entry.assigned_to)),
        timestamp=now,
        **person_meets,
    )


def apply_history(entry: Entry, changes: Mapping[str, Any], now: datetime) -> HistoryLog:
    item = maybe_append_history(entry, changes, now)
    if item is None:
        return entry.history
    return entry.history.append(item)


def initial_history_entry(fields: Mapping[str, Any], now: datetime) -> HistoryEntry:
    """First element of a new entry's log, built from the creation payload."""
    return HistoryEntry(
        status=fields.get("status") or DEFAULT_ENTRY_STATUS,
        remarks=fields.get("remarks") or INITIAL_HISTORY_REMARKS,
        live_location=fields.get("live_location") or None,
        next_action=fields.get("next_action") or None,
        estimated_value=fields.get("estimated_value"),
        products=tuple(fields.get("products") or ()),
        assigned_to=tuple(fields.get("assigned_to") or ()),
        timestamp=now,
    )
