from __future__ import annotations

import io
from typing import Iterable, Mapping, Optional, Sequence

import pandas as pd
from openpyxl.utils import get_column_letter

from ..common.datetime_utils import format_display_date
from ..core.constants import DEFAULT_ENTRY_STATUS, NOT_SET
from ..users.model import UserRef
from .model import Entry

SHEET_NAME = "Customer Entries"
EXPORT_COLUMNS = [
    "customerName",
    "mobileNumber",
    "contactperson",
    "firstdate",
    "address",
    "state",
    "city",
    "products",
    "type",
    "organization",
    "category",
    "status",
    "createdAt",
    "createdBy",
    "closetype",
    "expectedClosingDate",
    "followUpDate",
    "remarks",
    "estimatedValue",
    "closeamount",
    "nextAction",
]
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def format_export_row(entry: Entry, created_by: Optional[UserRef]) -> dict:
    """Flatten an entry into display strings for one spreadsheet row."""
    return {
        "customerName": entry.customer_name,
        "mobileNumber": entry.mobile_number or "",
        "contactperson": entry.contact_person or "",
        "firstdate": format_display_date(entry.first_date, NOT_SET),
        "address": entry.address or "",
        "state": entry.state or "",
        "city": entry.city or "",
        "products": "; ".join(p.label() for p in entry.products),
        "type": entry.type or "",
        "organization": entry.organization or "",
        "category": entry.category or "",
        "status": entry.status or DEFAULT_ENTRY_STATUS,
        "createdAt": format_display_date(entry.created_at, ""),
        "createdBy": created_by.username if created_by else "",
        "closetype": entry.close_type or NOT_SET,
        "expectedClosingDate": format_display_date(entry.expected_closing_date, NOT_SET),
        "followUpDate": format_display_date(entry.follow_up_date, NOT_SET),
        "remarks": entry.remarks or NOT_SET,
        "estimatedValue": entry.estimated_value or 0,
        "closeamount": entry.close_amount or 0,
        "nextAction": entry.next_action or NOT_SET,
    }


def format_export_rows(entries: Iterable[Entry], users: Mapping[int, UserRef]) -> list[dict]:
    return [format_export_row(e, users.get(e.created_by)) for e in entries]


def build_workbook(rows: Sequence[dict]) -> bytes:
    """Write formatted rows to a single-sheet .xlsx document."""
    df = pd.DataFrame(list(rows), columns=EXPORT_COLUMNS)
    out = io.BytesIO()
    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=SHEET_NAME)
        sheet = writer.sheets[SHEET_NAME]
        for idx, column in enumerate(df.columns, start=1):
            width = max([len(str(column))] + [len(str(v)) for v in df[column].tolist()])
            sheet.column_dimensions[get_column_letter(idx)].width = min(width + 2, 60)
    return out.getvalue()
