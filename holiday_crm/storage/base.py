"""
Storage collaborator interface for the booking core.

Records cross this boundary as JSON-safe dicts shaped like rows of the
``bookings`` table; conversion to ``BookingModel`` happens in the lifecycle
service.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List


BookingRecord = Dict[str, Any]


class BookingStorage(ABC):
    """The four operations the booking core needs from a data store."""

    name = "storage"

    @abstractmethod
    async def create_booking(self, data: BookingRecord) -> BookingRecord:
        """Insert a booking and return the stored row."""

    @abstractmethod
    async def get_user_bookings(self, user_id: str) -> List[BookingRecord]:
        """Bookings owned by an agent, newest first."""

    @abstractmethod
    async def get_all_bookings(self) -> List[BookingRecord]:
        """All bookings, newest first."""

    @abstractmethod
    async def update_booking(self, booking_id: str, fields: BookingRecord) -> BookingRecord:
        """Apply a partial update and return the stored row."""
