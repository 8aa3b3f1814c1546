from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from conftest import ADMIN_ID, LONER_ID, MEMBER_ID, OTHER_ADMIN_ID, SUPERADMIN_ID, TEAMMATE_ID
from src.salestrack.salestrack.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from src.salestrack.salestrack.entries.model import EntryFilters
from src.salestrack.salestrack.entries.service import parse_entry_filters
from src.salestrack.salestrack.entries.validation import PRODUCT_ERROR

CABLE = {"name": "Cable", "specification": "Cat6", "size": "10m", "quantity": 2}


def _payload(**overrides):
    body = {
        "customerName": "  Acme Corp ",
        "mobileNumber": "9876543210",
        "liveLocation": "18.52,73.85",
        "status": "Interested",
        "remarks": "met at expo",
        "products": [CABLE],
    }
    body.update(overrides)
    return body


def _import_row(**overrides):
    row = {
        "customerName": "Globex",
        "mobileNumber": "9123456780",
        "contactperson": "Hank",
        "address": "1 Road",
        "products": [CABLE],
        "organization": "Globex Ltd",
        "category": "Private",
        "state": "MH",
        "city": "Pune",
        "type": "Customer",
    }
    row.update(overrides)
    return row


# ---------- create ----------

def test_create_sets_owner_and_initial_history(entry_service, claims, fixed_now):
    view = entry_service.create_entry(claims(MEMBER_ID), _payload(), now=fixed_now)
    entry = view.entry

    assert entry.customer_name == "Acme Corp"
    assert entry.created_by == MEMBER_ID
    assert entry.created_at == entry.updated_at == fixed_now
    assert len(entry.history) == 1
    assert entry.history[0].status == "Interested"
    assert entry.history[0].remarks == "met at expo"
    assert view.to_dict()["createdBy"]["username"] == "bob"


def test_create_without_status_defaults(entry_service, claims, fixed_now):
    view = entry_service.create_entry(claims(MEMBER_ID), _payload(status=None, remarks=None), now=fixed_now)

    assert view.entry.status == "Not Found"
    assert view.entry.history[0].remarks == "Initial entry created"


def test_create_rejects_incomplete_product(entry_service, claims, entries_repo):
    bad = dict(CABLE, quantity=0)
    with pytest.raises(ValidationError) as exc:
        entry_service.create_entry(claims(MEMBER_ID), _payload(products=[CABLE, bad]))

    assert str(exc.value) == PRODUCT_ERROR
    assert entries_repo.rows == {}


@pytest.mark.parametrize("quantity", [1.9, "2.5", 0.5])
def test_create_rejects_fractional_quantity(entry_service, claims, entries_repo, quantity):
    with pytest.raises(ValidationError) as exc:
        entry_service.create_entry(claims(MEMBER_ID), _payload(products=[dict(CABLE, quantity=quantity)]))

    assert str(exc.value) == PRODUCT_ERROR
    assert entries_repo.rows == {}


@pytest.mark.parametrize("quantity", ["3", 3.0])
def test_create_accepts_integral_quantity(entry_service, claims, quantity):
    view = entry_service.create_entry(claims(MEMBER_ID), _payload(products=[dict(CABLE, quantity=quantity)]))

    assert view.entry.products[0].quantity == 3


def test_edit_skips_fractional_quantity(entry_service, claims):
    created = entry_service.create_entry(claims(MEMBER_ID), _payload()).entry
    view = entry_service.edit_entry(
        claims(MEMBER_ID), created.entry_id, {"products": [CABLE, dict(CABLE, name="Patch", quantity=1.9)]}
    )

    assert [p.name for p in view.entry.products] == ["Cable"]


def test_create_rejects_unknown_assignee(entry_service, claims):
    with pytest.raises(ValidationError, match="User with ID 99 not found"):
        entry_service.create_entry(claims(MEMBER_ID), _payload(assignedTo=[LONER_ID, 99]))


def test_create_reports_field_errors(entry_service, claims):
    with pytest.raises(ValidationError) as exc:
        entry_service.create_entry(claims(MEMBER_ID), _payload(liveLocation="", mobileNumber="12345"))

    fields = {e.field for e in exc.value.errors}
    assert fields == {"liveLocation", "mobileNumber"}


def test_create_notifies_actor_and_assignees(entry_service, claims, notifications_repo):
    view = entry_service.create_entry(claims(MEMBER_ID), _payload(assignedTo=[LONER_ID, MEMBER_ID]))

    assert view.entry.assigned_to == (LONER_ID, MEMBER_ID)
    assert len(notifications_repo.for_user(MEMBER_ID)) == 2
    messages = [n.message for n in notifications_repo.for_user(LONER_ID)]
    assert 'Entry "Acme Corp" was created' in messages
    assert 'You have been assigned to entry "Acme Corp"' in messages


def test_create_survives_notification_failure(entry_service, claims, notifications_repo, entries_repo):
    notifications_repo.fail = True
    entry_service.create_entry(claims(MEMBER_ID), _payload())

    assert len(entries_repo.rows) == 1


# ---------- read ----------

def test_listing_follows_access_scope(entry_service, claims):
    mine = entry_service.create_entry(claims(MEMBER_ID), _payload(customerName="Mine")).entry
    assigned = entry_service.create_entry(
        claims(OTHER_ADMIN_ID), _payload(customerName="Shared", assignedTo=[LONER_ID])
    ).entry
    lonely = entry_service.create_entry(claims(LONER_ID), _payload(customerName="Lonely")).entry

    def names(user_id):
        return {v.entry.customer_name for v in entry_service.list_entries(claims(user_id))}

    assert names(SUPERADMIN_ID) == {mine.customer_name, assigned.customer_name, lonely.customer_name}
    assert names(ADMIN_ID) == {"Mine"}
    assert names(MEMBER_ID) == {"Mine"}
    assert names(LONER_ID) == {"Shared", "Lonely"}
    assert names(TEAMMATE_ID) == set()


# ---------- edit ----------

def test_edit_status_appends_history(entry_service, claims, fixed_now):
    created = entry_service.create_entry(claims(MEMBER_ID), _payload(), now=fixed_now).entry
    later = fixed_now + timedelta(days=1)

    view = entry_service.edit_entry(claims(MEMBER_ID), str(created.entry_id), {"status": "Quoted"}, now=later)

    assert view.entry.status == "Quoted"
    assert view.entry.updated_at == later
    assert [h.status for h in view.entry.history] == ["Interested", "Quoted"]
    assert view.entry.history[-1].remarks == "met at expo"


def test_repeating_an_edit_in_the_same_second_succeeds(entry_service, claims, entries_repo, fixed_now):
    created = entry_service.create_entry(claims(MEMBER_ID), _payload(), now=fixed_now).entry
    later = fixed_now + timedelta(hours=1)

    first = entry_service.edit_entry(claims(MEMBER_ID), created.entry_id, {"status": "Quoted"}, now=later)
    again = entry_service.edit_entry(claims(MEMBER_ID), created.entry_id, {"status": "Quoted"}, now=later)

    assert again.entry == first.entry
    assert [h.status for h in again.entry.history] == ["Interested", "Quoted"]
    assert entries_repo.update(again.entry) is False


def test_edit_untracked_field_is_silent(entry_service, claims):
    created = entry_service.create_entry(claims(MEMBER_ID), _payload()).entry
    view = entry_service.edit_entry(claims(MEMBER_ID), created.entry_id, {"address": "New address"})

    assert view.entry.address == "New address"
    assert view.entry.history == created.history


def test_history_never_exceeds_capacity(entry_service, claims):
    created = entry_service.create_entry(claims(MEMBER_ID), _payload()).entry
    for idx in range(6):
        entry_service.edit_entry(claims(MEMBER_ID), created.entry_id, {"status": f"Stage {idx}"})

    view = entry_service.get_entry(claims(MEMBER_ID), created.entry_id)
    assert [h.status for h in view.entry.history] == ["Stage 2", "Stage 3", "Stage 4", "Stage 5"]


def test_edit_skips_incomplete_products(entry_service, claims):
    created = entry_service.create_entry(claims(MEMBER_ID), _payload()).entry
    switch = {"name": "Switch", "specification": "24p", "size": "1U", "quantity": 1}

    view = entry_service.edit_entry(
        claims(MEMBER_ID), created.entry_id, {"products": [switch, {"name": "broken"}]}
    )

    assert [p.name for p in view.entry.products] == ["Switch"]
    assert view.entry.history[-1].remarks == "Products updated"


def test_edit_assignment_delta_notifies(entry_service, claims, notifications_repo):
    created = entry_service.create_entry(claims(MEMBER_ID), _payload(assignedTo=[LONER_ID])).entry
    notifications_repo.items.clear()

    entry_service.edit_entry(claims(MEMBER_ID), created.entry_id, {"assignedTo": [TEAMMATE_ID]})

    assert 'You have been unassigned from entry "Acme Corp"' in [n.message for n in notifications_repo.for_user(LONER_ID)]
    assert 'You have been assigned to entry "Acme Corp"' in [n.message for n in notifications_repo.for_user(TEAMMATE_ID)]


def test_assignee_may_edit(entry_service, claims):
    created = entry_service.create_entry(claims(OTHER_ADMIN_ID), _payload(assignedTo=[LONER_ID])).entry
    view = entry_service.edit_entry(claims(LONER_ID), created.entry_id, {"remarks": "followed up"})

    assert view.entry.remarks == "followed up"


def test_edit_outside_scope_is_forbidden(entry_service, claims):
    created = entry_service.create_entry(claims(MEMBER_ID), _payload()).entry
    with pytest.raises(AuthorizationError):
        entry_service.edit_entry(claims(LONER_ID), created.entry_id, {"status": "Hijacked"})


def test_edit_rejects_bad_id(entry_service, claims):
    with pytest.raises(ValidationError, match="Invalid entry ID"):
        entry_service.edit_entry(claims(MEMBER_ID), "abc", {})
    with pytest.raises(NotFoundError, match="Entry not found"):
        entry_service.edit_entry(claims(MEMBER_ID), 404, {})


def test_edit_validates_merged_record(entry_service, claims):
    created = entry_service.create_entry(claims(MEMBER_ID), _payload()).entry
    with pytest.raises(ValidationError):
        entry_service.edit_entry(claims(MEMBER_ID), created.entry_id, {"closetype": "Maybe"})


# ---------- delete ----------

def test_delete_rules(entry_service, claims, entries_repo):
    def make(owner, **kw):
        return entry_service.create_entry(claims(owner), _payload(**kw)).entry.entry_id

    assigned = make(MEMBER_ID, assignedTo=[LONER_ID])
    with pytest.raises(AuthorizationError):
        entry_service.delete_entry(claims(LONER_ID), assigned)
    with pytest.raises(AuthorizationError):
        entry_service.delete_entry(claims(OTHER_ADMIN_ID), assigned)

    entry_service.delete_entry(claims(ADMIN_ID), assigned)
    assert assigned not in entries_repo.rows

    own = make(LONER_ID)
    entry_service.delete_entry(claims(LONER_ID), own)

    anyone = make(TEAMMATE_ID)
    entry_service.delete_entry(claims(SUPERADMIN_ID), anyone)
    assert entries_repo.rows == {}


def test_delete_missing_entry(entry_service, claims):
    with pytest.raises(NotFoundError):
        entry_service.delete_entry(claims(SUPERADMIN_ID), 77)


def test_delete_notification_has_no_entry_link(entry_service, claims, notifications_repo):
    entry_id = entry_service.create_entry(claims(MEMBER_ID), _payload()).entry.entry_id
    entry_service.delete_entry(claims(MEMBER_ID), entry_id)

    last = notifications_repo.for_user(MEMBER_ID)[-1]
    assert last.message == 'Entry "Acme Corp" was deleted'
    assert last.entry_id is None


# ---------- bulk import ----------

def test_bulk_import_requires_rows(entry_service, claims):
    with pytest.raises(ValidationError, match="Array expected"):
        entry_service.bulk_import(claims(MEMBER_ID), [])
    with pytest.raises(ValidationError, match="Array expected"):
        entry_service.bulk_import(claims(MEMBER_ID), {"customerName": "x"})


def test_bulk_import_writes_in_batches(entry_service, claims, entries_repo, fixed_now):
    rows = [_import_row(customerName=f"C{i}") for i in range(3)]
    result = entry_service.bulk_import(claims(MEMBER_ID), rows, now=fixed_now)

    assert (result.submitted, result.inserted) == (3, 3)
    assert entries_repo.inserted_batches == [2, 1]
    stored = list(entries_repo.rows.values())
    assert all(e.created_by == MEMBER_ID and len(e.history) == 0 for e in stored)
    assert stored[0].status == "Not Found"


@pytest.mark.parametrize(
    "override, message",
    [
        ({"mobileNumber": "12345"}, "Mobile number must be exactly 10 digits"),
        ({"type": "Vendor"}, "Type must be either 'Partner' or 'Customer'"),
        ({"category": "Public"}, "Category must be either 'Private' or 'Government'"),
        ({"city": "  "}, "city is required and must be a non-empty string"),
        ({"estimatedValue": -5}, "Estimated value must be a non-negative number"),
        ({"products": [dict(CABLE, size="")]}, PRODUCT_ERROR),
    ],
)
def test_bulk_import_is_all_or_nothing(entry_service, claims, entries_repo, override, message):
    rows = [_import_row(), _import_row(**override)]
    with pytest.raises(ValidationError) as exc:
        entry_service.bulk_import(claims(MEMBER_ID), rows)

    assert str(exc.value) == message
    assert entries_repo.rows == {}


def test_bulk_import_rejects_late_bad_row_after_several_good_ones(entry_service, claims, entries_repo):
    bad = _import_row(customerName="Broken")
    del bad["mobileNumber"]
    rows = [_import_row(customerName=f"C{i}") for i in range(3)] + [bad]

    with pytest.raises(ValidationError) as exc:
        entry_service.bulk_import(claims(MEMBER_ID), rows)

    assert str(exc.value) == "mobileNumber is required and must be a non-empty string"
    assert entries_repo.rows == {}
    assert entries_repo.inserted_batches == []


# ---------- export ----------

def test_export_rows_are_scoped_and_filtered(entry_service, claims, fixed_now):
    entry_service.create_entry(claims(MEMBER_ID), _payload(customerName="Acme"), now=fixed_now)
    entry_service.create_entry(claims(TEAMMATE_ID), _payload(customerName="Beta", status="Lost"), now=fixed_now)
    entry_service.create_entry(claims(LONER_ID), _payload(customerName="Acme South"), now=fixed_now)

    rows = entry_service.export_rows(claims(ADMIN_ID), EntryFilters(customer_name="acme"))

    assert len(rows) == 1
    row = rows[0]
    assert row["customerName"] == "Acme"
    assert row["createdBy"] == "bob"
    assert row["createdAt"] == "10/03/2026"
    assert row["products"] == "Cable (Cat6, 10m, Qty: 2)"
    assert row["followUpDate"] == "Not Set"
    assert row["estimatedValue"] == 0


def test_parse_entry_filters():
    filters = parse_entry_filters({"status": " Won ", "city": "", "startDate": "2026-01-01"})

    assert filters.status == "Won"
    assert filters.city is None
    assert filters.created_from == datetime(2026, 1, 1)
    assert filters.created_to is None


def test_date_only_end_date_covers_the_whole_day():
    filters = parse_entry_filters({"endDate": "2026-03-10"})

    assert filters.created_to.date() == datetime(2026, 3, 10).date()
    assert filters.created_to > datetime(2026, 3, 10, 23, 59, 59)
    assert parse_entry_filters({"endDate": "2026-03-10T12:00:00"}).created_to == datetime(2026, 3, 10, 12)


def test_export_includes_entries_created_late_on_end_date(entry_service, claims):
    evening = datetime(2026, 3, 10, 18, 0)
    entry_service.create_entry(claims(MEMBER_ID), _payload(customerName="Evening"), now=evening)
    entry_service.create_entry(claims(MEMBER_ID), _payload(customerName="Next day"), now=evening + timedelta(days=1))

    filters = parse_entry_filters({"startDate": "2026-03-10", "endDate": "2026-03-10"})
    rows = entry_service.export_rows(claims(MEMBER_ID), filters)

    assert [r["customerName"] for r in rows] == ["Evening"]
