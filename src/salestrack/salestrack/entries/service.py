from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from ..access.scope import AccessScopeResolver
from ..common.datetime_utils import now_local, parse_end_bound, parse_optional_datetime
from ..common.validators import parse_id
from ..core.constants import BULK_BATCH_SIZE, DEFAULT_ENTRY_STATUS
from ..core.exceptions import AuthorizationError, InternalError, NotFoundError, ValidationError
from ..notifications.service import NotificationService
from ..users.model import Claims, UserRef
from ..users.repository import UserRepository
from .export import format_export_rows
from .history import apply_history, initial_history_entry
from .model import Entry, EntryFilters, HistoryLog
from .repository import EntryRepository
from .validation import (
    drop_incomplete_products,
    parse_entry_payload,
    raise_for_field_errors,
    require_complete_products,
    validate_import_row,
)

logger = logging.getLogger(__name__)

_FILTER_PARAMS = {
    "customerName": "customer_name",
    "mobileNumber": "mobile_number",
    "status": "status",
    "category": "category",
    "state": "state",
    "city": "city",
    "type": "type",
}


@dataclass(frozen=True)
class BulkImportResult:
    submitted: int
    inserted: int


@dataclass(frozen=True)
class EntryView:
    """An entry with its user references resolved, ready to serialise."""

    entry: Entry
    created_by: Optional[UserRef]
    assigned_to: Sequence[UserRef]

    def to_dict(self) -> dict:
        e = self.entry
        return {
            "id": e.entry_id,
            "customerName": e.customer_name,
            "mobileNumber": e.mobile_number,
            "contactperson": e.contact_person,
            "firstdate": _iso(e.first_date),
            "estimatedValue": e.estimated_value,
            "address": e.address,
            "state": e.state,
            "city": e.city,
            "organization": e.organization,
            "type": e.type,
            "category": e.category,
            "products": [p.to_dict() for p in e.products],
            "status": e.status,
            "expectedClosingDate": _iso(e.expected_closing_date),
            "closeamount": e.close_amount,
            "closetype": e.close_type,
            "followUpDate": _iso(e.follow_up_date),
            "remarks": e.remarks,
            "liveLocation": e.live_location,
            "nextAction": e.next_action,
            "firstPersonMeet": e.first_person_meet,
            "secondPersonMeet": e.second_person_meet,
            "thirdPersonMeet": e.third_person_meet,
            "fourthPersonMeet": e.fourth_person_meet,
            "assignedTo": [u.to_dict() for u in self.assigned_to],
            "createdBy": self.created_by.to_dict() if self.created_by else {"id": e.created_by},
            "history": e.history.to_list(),
            "createdAt": _iso(e.created_at),
            "updatedAt": _iso(e.updated_at),
        }


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def parse_entry_filters(args: Mapping[str, Any]) -> EntryFilters:
    """Build export/list filters from query-string style arguments."""
    values: Dict[str, Any] = {}
    for key, attr in _FILTER_PARAMS.items():
        raw = args.get(key)
        if raw is None or not str(raw).strip():
            continue
        values[attr] = str(raw).strip()
    values["created_from"] = parse_optional_datetime(args.get("startDate"), "startDate")
    values["created_to"] = parse_end_bound(args.get("endDate"), "endDate")
    return EntryFilters(**values)


class EntryService:
    """Use cases for customer entries: create, read, edit, delete, import, export."""

    def __init__(
        self,
        entries: EntryRepository,
        users: UserRepository,
        scope: AccessScopeResolver,
        notifications: NotificationService,
        *,
        batch_size: int = BULK_BATCH_SIZE,
    ):
        self._entries = entries
        self._users = users
        self._scope = scope
        self._notifications = notifications
        self._batch_size = int(batch_size)

    # ---------- reads ----------

    def list_entries(self, requester: Claims, filters: Optional[EntryFilters] = None) -> list[EntryView]:
        entries = self._entries.find(self._scope.entry_scope(requester), filters)
        return self._populate(entries)

    def get_entry(self, requester: Claims, entry_id) -> EntryView:
        entry = self._load_visible(requester, entry_id)
        return self._populate([entry])[0]

    def export_rows(self, requester: Claims, filters: Optional[EntryFilters] = None) -> list[dict]:
        entries = self._entries.find(self._scope.entry_scope(requester), filters)
        refs = self._user_refs(e.created_by for e in entries)
        logger.info("Exporting %s entries for user %s", len(entries), requester.user_id)
        return format_export_rows(entries, refs)

    # ---------- writes ----------

    def create_entry(self, requester: Claims, payload: Mapping[str, Any], *, now: Optional[datetime] = None) -> EntryView:
        now = now or now_local()
        fields = parse_entry_payload(payload)

        products = fields.get("products", ())
        require_complete_products(products)
        assigned = fields.get("assigned_to", ())
        self._require_users_exist(assigned)

        fields.setdefault("status", DEFAULT_ENTRY_STATUS)
        customer_name = fields.pop("customer_name", "")
        entry = Entry(
            entry_id=0,
            customer_name=customer_name,
            created_by=requester.user_id,
            created_at=now,
            updated_at=now,
            history=HistoryLog().append(initial_history_entry(fields, now)),
            **fields,
        )
        raise_for_field_errors(entry, require_location=True)

        entry_id = self._entries.create(entry)
        created = self._entries.get_by_id(entry_id) or replace(entry, entry_id=entry_id)
        logger.info("Entry %s created by user %s", entry_id, requester.user_id)

        self._notifications.on_entry_mutated(requester.user_id, created, "was created")
        if created.assigned_to:
            self._notifications.on_assignment_delta(created, (), created.assigned_to)
        return self._populate([created])[0]

    def edit_entry(
        self, requester: Claims, entry_id, payload: Mapping[str, Any], *, now: Optional[datetime] = None
    ) -> EntryView:
        now = now or now_local()
        entry = self._load_visible(requester, entry_id)
        changes = parse_entry_payload(payload)

        # Edits drop incomplete products instead of rejecting the request.
        if "products" in changes:
            changes["products"] = drop_incomplete_products(changes["products"])
        if "assigned_to" in changes:
            self._require_users_exist(changes["assigned_to"])

        history = apply_history(entry, changes, now)
        updated = replace(entry, **changes, history=history, updated_at=now)
        raise_for_field_errors(updated)

        if not self._entries.update(updated):
            logger.debug("Entry %s update changed no stored columns", updated.entry_id)
        logger.info("Entry %s updated by user %s", updated.entry_id, requester.user_id)

        self._notifications.on_entry_mutated(requester.user_id, updated, "was updated")
        if tuple(entry.assigned_to) != tuple(updated.assigned_to):
            self._notifications.on_assignment_delta(updated, entry.assigned_to, updated.assigned_to)
        return self._populate([updated])[0]

    def delete_entry(self, requester: Claims, entry_id) -> None:
        ident = parse_id(entry_id, label="entry ID")
        entry = self._entries.get_by_id(ident)
        if not entry:
            raise NotFoundError("Entry not found")
        if not self._scope.can_delete(requester, entry.created_by):
            raise AuthorizationError("Unauthorized")

        if not self._entries.delete_by_id(ident):
            raise NotFoundError("Entry not found")
        logger.info("Entry %s deleted by user %s", ident, requester.user_id)
        self._notifications.on_entry_mutated(requester.user_id, entry, "was deleted", link=False)

    def bulk_import(self, requester: Claims, rows: Any, *, now: Optional[datetime] = None) -> BulkImportResult:
        """Validate every row, then insert in independent batches.

        Nothing is written unless every row passes validation. Batches that
        were committed before a storage failure stay committed.
        """
        now = now or now_local()
        if not isinstance(rows, list) or not rows:
            raise ValidationError("Invalid data format. Array expected.")

        validated = [validate_import_row(raw, created_by=requester.user_id, now=now) for raw in rows]

        inserted = 0
        for start in range(0, len(validated), self._batch_size):
            batch = validated[start:start + self._batch_size]
            try:
                written = self._entries.insert_many(batch)
            except Exception as exc:
                logger.exception(
                    "Bulk import batch at offset %s failed after %s rows were inserted", start, inserted
                )
                raise InternalError("Failed to upload entries") from exc
            if written < len(batch):
                logger.warning("Bulk import batch at offset %s skipped %s rows", start, len(batch) - written)
            inserted += written

        logger.info("Bulk import by user %s: %s submitted, %s inserted", requester.user_id, len(validated), inserted)
        return BulkImportResult(submitted=len(validated), inserted=inserted)

    # ---------- helpers ----------

    def _load_visible(self, requester: Claims, entry_id) -> Entry:
        ident = parse_id(entry_id, label="entry ID")
        entry = self._entries.get_by_id(ident)
        if not entry:
            raise NotFoundError("Entry not found")
        if not self._scope.entry_scope(requester).permits(entry):
            raise AuthorizationError("Unauthorized")
        return entry

    def _require_users_exist(self, user_ids: Sequence[int]) -> None:
        if not user_ids:
            return
        found = {u.user_id for u in self._users.get_many(user_ids)}
        for user_id in user_ids:
            if user_id not in found:
                raise ValidationError(f"User with ID {user_id} not found")

    def _user_refs(self, user_ids: Iterable[int]) -> Dict[int, UserRef]:
        ids = set(user_ids)
        if not ids:
            return {}
        return {u.user_id: u.to_ref() for u in self._users.get_many(ids)}

    def _populate(self, entries: Sequence[Entry]) -> list[EntryView]:
        ids = set()
        for e in entries:
            ids.add(e.created_by)
            ids.update(e.assigned_to)
        refs = self._user_refs(ids)
        return [
            EntryView(
                entry=e,
                created_by=refs.get(e.created_by),
                assigned_to=[refs[i] for i in e.assigned_to if i in refs],
            )
            for e in entries
        ]
