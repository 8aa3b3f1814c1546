from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..access.scope import EntryScope
from .model import Entry, EntryFilters


class EntryRepository(Protocol):
    def get_by_id(self, entry_id: int) -> Optional[Entry]:
        raise NotImplementedError

    def create(self, entry: Entry) -> int:
        raise NotImplementedError

    def update(self, entry: Entry) -> bool:
        """Persist every mutable field of ``entry`` (history and assignees included).

        Returns whether any stored column changed. Callers load the row first;
        ``False`` does not mean the entry is missing.
        """

        raise NotImplementedError

    def delete_by_id(self, entry_id: int) -> bool:
        raise NotImplementedError

    def find(self, scope: EntryScope, filters: Optional[EntryFilters] = None) -> Sequence[Entry]:
        raise NotImplementedError

    def insert_many(self, entries: Sequence[Entry]) -> int:
        """Insert a batch, skipping rows the store rejects; returns rows written."""

        raise NotImplementedError

    def find_due_between(self, start: datetime, end: datetime) -> Sequence[Entry]:
        """Entries whose follow-up or expected closing date lies in ``[start, end)``."""

        raise NotImplementedError
