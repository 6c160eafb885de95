"""
Append-only booking timeline.

Events are kept per booking in append (causal) order and are never edited or
removed. Each event gets a sequence number from one counter shared by every
booking, so ids are stable and two events with the same timestamp still have a
total order.
"""

import copy
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from ..models.booking import BookingEventModel, BookingModel
from ..models.enums import BookingEventType, BookingStatus

logger = logging.getLogger(__name__)


# Status -> event seeded after ``created`` for bookings first seen in storage
_STATUS_EVENTS = {
    BookingStatus.CONFIRMED: (BookingEventType.CONFIRMED, "Booking confirmed"),
    BookingStatus.CANCELLED: (BookingEventType.CANCELLED, "Booking cancelled"),
    BookingStatus.COMPLETED: (BookingEventType.COMPLETED, "Booking completed"),
}


class BookingTimeline:
    """
    Append-only event log for all bookings.

    ``append`` is the only mutation. Readers get deep copies of the stored
    events, so nothing handed out (metadata included) can reach the log.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._events: Dict[str, List[BookingEventModel]] = {}
        self._sequence = 0
        self._lock = threading.Lock()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def __contains__(self, booking_id: str) -> bool:
        with self._lock:
            return booking_id in self._events

    def __len__(self) -> int:
        with self._lock:
            return sum(len(events) for events in self._events.values())

    def append(
        self,
        booking_id: str,
        event_type: BookingEventType,
        description: str,
        user_id: str,
        user_name: str = "",
        metadata: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> BookingEventModel:
        """
        Append one event and return a copy of it.

        The id, sequence and (unless given) timestamp are assigned here;
        ``metadata`` is deep-copied so later changes by the caller do not
        reach the log.
        """
        with self._lock:
            event = self._append(booking_id, event_type, description, user_id, user_name, metadata, timestamp)

        logger.debug(f"Timeline {booking_id}: {event.id} {event.type.value} '{description}'")
        return event.model_copy(deep=True)

    def events(self, booking_id: str) -> List[BookingEventModel]:
        """Events for a booking in append order."""
        with self._lock:
            return self._copies(booking_id)

    def seed(self, booking: BookingModel) -> List[BookingEventModel]:
        """
        Give a booking first seen in storage a plausible history.

        Adds ``created`` and, for confirmed, cancelled or completed bookings,
        the matching status event. Does nothing if the booking already has
        events.
        """
        with self._lock:
            if booking.id in self._events:
                return self._copies(booking.id)

            created_at = booking.created_at or _start_of(booking.booking_date)
            self._append(
                booking.id,
                BookingEventType.CREATED,
                "Booking created",
                booking.agent_id,
                booking.agent_name,
                None,
                created_at,
            )

            status_event = _STATUS_EVENTS.get(booking.status)
            if status_event is not None:
                event_type, description = status_event
                if booking.status == BookingStatus.CANCELLED and booking.cancellation_reason:
                    description = f"{description}: {booking.cancellation_reason}"
                self._append(
                    booking.id,
                    event_type,
                    description,
                    booking.agent_id,
                    booking.agent_name,
                    None,
                    booking.updated_at or created_at,
                )

            logger.debug(f"Seeded timeline for booking {booking.id} ({booking.status.value})")
            return self._copies(booking.id)

    # Callers hold ``self._lock``

    def _append(
        self,
        booking_id: str,
        event_type: BookingEventType,
        description: str,
        user_id: str,
        user_name: str,
        metadata: Optional[Dict[str, Any]],
        timestamp: Optional[datetime],
    ) -> BookingEventModel:
        self._sequence += 1
        event = BookingEventModel(
            id=f"evt_{self._sequence:06d}",
            booking_id=booking_id,
            sequence=self._sequence,
            type=event_type,
            description=description,
            timestamp=timestamp or self._clock(),
            user_id=user_id,
            user_name=user_name,
            metadata=copy.deepcopy(metadata) if metadata is not None else None,
        )
        self._events.setdefault(booking_id, []).append(event)
        return event

    def _copies(self, booking_id: str) -> List[BookingEventModel]:
        return [event.model_copy(deep=True) for event in self._events.get(booking_id, ())]


def _start_of(day) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
