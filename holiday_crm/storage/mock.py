"""
In-memory booking store used in demo mode and tests.

Optionally mirrors its contents to a JSON file so a demo survives restarts.
Failures are raised as ``StorageError`` with the same codes the remote store
reports, so error classification behaves identically in both modes.
"""

import copy
import json
import logging
import os
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from ..services.errors import StorageError
from .base import BookingRecord, BookingStorage

logger = logging.getLogger(__name__)


class MockStorage(BookingStorage):
    """
    Dict-backed booking store.

    Rows are kept newest first and handed out as deep copies, so callers can
    never mutate stored state without going through ``update_booking``.
    """

    name = "mock"

    def __init__(self, persist_path: Optional[str] = None, records: Optional[Iterable[BookingRecord]] = None):
        """
        Initialize mock storage.

        Args:
            persist_path: JSON file to load from and save to, None for memory only
            records: Initial rows, newest first
        """
        self.persist_path = persist_path
        self._records: List[BookingRecord] = [copy.deepcopy(r) for r in records or ()]

        if persist_path and not self._records:
            self._load()

        logger.info(f"MockStorage initialized with {len(self._records)} bookings")

    def __len__(self) -> int:
        return len(self._records)

    async def create_booking(self, data: BookingRecord) -> BookingRecord:
        booking_id = data.get("id")
        if booking_id and self._find(booking_id) is not None:
            raise StorageError(
                "23505",
                'duplicate key value violates unique constraint "bookings_pkey"',
                {"id": booking_id},
            )

        record = copy.deepcopy(data)
        now = _now_iso()
        record.setdefault("created_at", now)
        record.setdefault("updated_at", now)
        self._records.insert(0, record)
        self._save()
        return copy.deepcopy(record)

    async def get_user_bookings(self, user_id: str) -> List[BookingRecord]:
        return [copy.deepcopy(r) for r in self._records if r.get("agent_id") == user_id]

    async def get_all_bookings(self) -> List[BookingRecord]:
        return [copy.deepcopy(r) for r in self._records]

    async def update_booking(self, booking_id: str, fields: BookingRecord) -> BookingRecord:
        record = self._find(booking_id)
        if record is None:
            raise StorageError("PGRST116", "Booking not found", {"id": booking_id})

        record.update(copy.deepcopy(fields))
        record["id"] = booking_id
        record["updated_at"] = _now_iso()
        self._save()
        return copy.deepcopy(record)

    def _find(self, booking_id: str) -> Optional[BookingRecord]:
        for record in self._records:
            if record.get("id") == booking_id:
                return record
        return None

    def _load(self) -> None:
        if not os.path.exists(self.persist_path):
            return
        with open(self.persist_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise StorageError(None, f"Mock storage file {self.persist_path} does not hold a list")
        self._records = data
        logger.debug(f"Loaded {len(data)} bookings from {self.persist_path}")

    def _save(self) -> None:
        if not self.persist_path:
            return
        with open(self.persist_path, "w", encoding="utf-8") as f:
            json.dump(self._records, f, indent=2, default=str)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
