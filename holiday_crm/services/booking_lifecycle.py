"""
Booking lifecycle service.

Owns the create / status change / cancel flow for bookings, the append-only
timeline and the document list attached to every booking it returns. Every
storage call goes through the ``RetryExecutor``; every failure leaves as a
classified ``AppError`` after being logged with the operation name.

Known gap: operations on the same booking are not serialised. A concurrent
``cancel`` and ``update_status`` on one booking race in storage, and the last
write wins.
"""

import logging
import math
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from ..models.analytics import BookingAnalyticsModel
from ..models.booking import (
    BookingDocumentModel,
    BookingEventModel,
    BookingModel,
    CancellationResultModel,
    PaginatedBookingsModel,
    RefundModel,
)
from ..models.enums import (
    BookingEventType,
    BookingStatus,
    DocumentType,
    PaymentStatus,
)
from ..storage.base import BookingRecord, BookingStorage
from ..utils.formatters import calculate_commission, generate_booking_reference
from .errors import AppError, ErrorClassifier, ErrorCode, SentryErrorTracker, ValidationError
from .retry import RetryExecutor
from .timeline import BookingTimeline
from .validation import Validator

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Transition policies
# ----------------------------------------------------------------------

class TransitionPolicy(ABC):
    """
    Hook deciding whether a booking may move between two statuses.

    ``requires_current_status`` tells the lifecycle whether it must read the
    booking before a status change so ``check`` sees the current status.
    """

    requires_current_status = False

    @abstractmethod
    def check(self, booking_id: str, current: Optional[BookingStatus], new: BookingStatus) -> None:
        """Raise ``ValidationError`` if ``current`` may not change to ``new``."""


class PermissiveTransitionPolicy(TransitionPolicy):
    """Any status may be set from any other."""

    def check(self, booking_id: str, current: Optional[BookingStatus], new: BookingStatus) -> None:
        return None


class StrictTransitionPolicy(TransitionPolicy):
    """Pending -> Confirmed -> Completed, with Cancelled reachable before completion."""

    requires_current_status = True

    ALLOWED_TRANSITIONS = {
        BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
        BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
        BookingStatus.CANCELLED: frozenset(),
        BookingStatus.COMPLETED: frozenset(),
    }

    def check(self, booking_id: str, current: Optional[BookingStatus], new: BookingStatus) -> None:
        if current is None or current == new:
            return
        if new not in self.ALLOWED_TRANSITIONS.get(current, frozenset()):
            raise ValidationError(
                "status",
                f"Cannot change booking {booking_id} from {current.value} to {new.value}",
            )


# ----------------------------------------------------------------------
# Documents
# ----------------------------------------------------------------------

class DocumentGenerator:
    """Produces URLs for generated booking documents."""

    DOCUMENT_NAMES = {
        DocumentType.INVOICE: "Invoice",
        DocumentType.VOUCHER: "Booking Voucher",
        DocumentType.ITINERARY: "Itinerary",
        DocumentType.TICKET: "Ticket",
        DocumentType.INSURANCE: "Travel Insurance",
    }

    def __init__(self, base_url: str = "https://documents.yorkeholidays.com"):
        self.base_url = base_url.rstrip("/")

    def url_for(self, booking_id: str, document_type: DocumentType) -> str:
        return f"{self.base_url}/{booking_id}/{document_type.value}.pdf"

    async def generate(self, booking_id: str, document_type: DocumentType) -> str:
        """Generate a document and return its URL."""
        return self.url_for(booking_id, document_type)


# ----------------------------------------------------------------------
# Lifecycle
# ----------------------------------------------------------------------

class BookingLifecycle:
    """
    Booking state machine over a storage collaborator.

    Features:
    - Validated creation with commission defaulting and reference assignment
    - Status changes through a pluggable ``TransitionPolicy``
    - Cancellation with an advisory refund record
    - Append-only timeline, seeded for bookings created elsewhere
    - Paginated listings with timeline and documents attached
    """

    REQUIRED_FIELDS = (
        "type",
        "item_id",
        "item_name",
        "agent_id",
        "agent_name",
        "customer_name",
        "customer_email",
        "customer_phone",
        "booking_date",
        "travel_date",
        "total_amount",
        "guests",
        "region",
    )

    REFUND_ESTIMATED_DAYS = 5

    def __init__(
        self,
        storage: BookingStorage,
        classifier: Optional[ErrorClassifier] = None,
        retry: Optional[RetryExecutor] = None,
        timeline: Optional[BookingTimeline] = None,
        transition_policy: Optional[TransitionPolicy] = None,
        documents: Optional[DocumentGenerator] = None,
        default_commission_rate: float = 5.0,
        items_per_page: int = 10,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize booking lifecycle.

        Args:
            storage: Storage collaborator (remote or mock)
            classifier: Error classifier shared with the retry executor
            retry: Retry executor wrapping every storage call
            timeline: Event log, defaults to a fresh in-memory one
            transition_policy: Status change policy, permissive by default
            documents: Document URL producer
            default_commission_rate: Percent used when a booking omits its commission
            items_per_page: Default page size for ``get_user_bookings``
            clock: UTC clock, injectable for tests
        """
        self.storage = storage
        self.classifier = classifier or ErrorClassifier()
        self.retry = retry or RetryExecutor(classifier=self.classifier)
        self.timeline = timeline or BookingTimeline(clock=clock)
        self.transition_policy = transition_policy or PermissiveTransitionPolicy()
        self.documents = documents or DocumentGenerator()
        self.default_commission_rate = default_commission_rate
        self.items_per_page = items_per_page
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        logger.info(
            f"BookingLifecycle initialized with {type(storage).__name__} "
            f"and {type(self.transition_policy).__name__}"
        )

    @classmethod
    def from_config(cls, config, storage: Optional[BookingStorage] = None, **kwargs) -> "BookingLifecycle":
        """Wire a lifecycle from ``CRMConfig``, creating storage and tracking as configured."""
        if storage is None:
            from ..storage import create_storage

            storage = create_storage(config)

        tracker = None
        if config.is_production and config.sentry_dsn:
            tracker = SentryErrorTracker(
                config.sentry_dsn,
                environment=config.environment,
                release=config.app_version,
            )

        classifier = ErrorClassifier(production=config.is_production, tracker=tracker)
        retry = RetryExecutor(
            classifier=classifier,
            max_retries=config.max_retries,
            initial_delay_ms=config.retry_initial_delay_ms,
            backoff_multiplier=config.retry_backoff_multiplier,
            attempt_timeout_ms=config.api_timeout_ms,
        )
        return cls(
            storage,
            classifier=classifier,
            retry=retry,
            documents=DocumentGenerator(config.documents_base_url),
            default_commission_rate=config.default_commission_rate,
            items_per_page=config.items_per_page,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, booking_data: Mapping[str, Any]) -> BookingModel:
        """
        Validate and persist a new booking, then record its ``created`` event.

        Args:
            booking_data: Booking fields; ``status`` and ``payment_status``
                default to Pending and ``commission_amount`` to the default rate

        Returns:
            BookingModel: Stored booking with timeline and documents

        Raises:
            ValidationError: Invalid input, never retried
            AppError: Classified storage failure after retries
        """
        with self._reporting("create"):
            record = {key: _plain(value) for key, value in booking_data.items()}

            for field in self.REQUIRED_FIELDS:
                Validator.required(record.get(field), field)

            record["status"] = record.get("status") or BookingStatus.PENDING.value
            record["payment_status"] = record.get("payment_status") or PaymentStatus.PENDING.value
            record["booking_reference"] = record.get("booking_reference") or generate_booking_reference(record["type"])

            if record.get("commission_amount") is None:
                Validator.positive_number(record["total_amount"], "total_amount")
                record["commission_amount"] = calculate_commission(
                    record["total_amount"], self.default_commission_rate
                )

            Validator.validate_booking(record)

            now = self._clock()
            record["id"] = record.get("id") or str(uuid.uuid4())
            record["created_at"] = now
            record["updated_at"] = now

            payload = _to_booking(record).to_record()
            stored = await self.retry.with_retry(
                lambda: self.storage.create_booking(payload),
                operation_name="create_booking",
            )

            booking = _to_booking(stored)
            self.timeline.append(
                booking.id,
                BookingEventType.CREATED,
                "Booking created",
                user_id=booking.agent_id,
                user_name=booking.agent_name,
                metadata={"booking_reference": booking.booking_reference},
                timestamp=booking.created_at,
            )

            logger.info(f"Created booking {booking.id} ({booking.booking_reference}) for agent {booking.agent_id}")
            return self._attach(booking)

    async def update_status(
        self,
        booking_id: str,
        new_status: Any,
        user_id: str = "system",
        user_name: str = "System",
    ) -> BookingModel:
        """
        Persist a status change and record a ``modified`` event.

        The transition is checked by the configured ``TransitionPolicy``; the
        default policy allows any change.
        """
        with self._reporting("update_status"):
            Validator.one_of(new_status, BookingStatus, "status", "Invalid booking status")
            status = BookingStatus(_plain(new_status))

            current: Optional[BookingStatus] = None
            if self.transition_policy.requires_current_status:
                existing = await self._find_booking(booking_id)
                current = existing.status
                self.timeline.seed(existing)
            self.transition_policy.check(booking_id, current, status)

            stored = await self.retry.with_retry(
                lambda: self.storage.update_booking(booking_id, {"status": status.value}),
                operation_name="update_booking",
            )
            booking = _to_booking(stored)

            if booking.id not in self.timeline:
                self.timeline.seed(booking.model_copy(update={"status": BookingStatus.PENDING}))

            metadata: Dict[str, Any] = {"new_status": status.value}
            if current is not None:
                metadata["previous_status"] = current.value
            self.timeline.append(
                booking.id,
                BookingEventType.MODIFIED,
                f"Booking status updated to {status.value}",
                user_id=user_id,
                user_name=user_name,
                metadata=metadata,
            )

            logger.info(f"Booking {booking.id} status updated to {status.value}")
            return self._attach(booking)

    async def cancel(
        self,
        booking_id: str,
        reason: Optional[str] = None,
        user_id: str = "system",
        user_name: str = "System",
    ) -> CancellationResultModel:
        """
        Cancel a booking, mark its payment refunded and synthesise a refund.

        The refund is advisory: its amount is the booking total and it is not
        persisted anywhere.

        Returns:
            CancellationResultModel: Updated booking and refund record
        """
        with self._reporting("cancel"):
            existing = await self._find_booking(booking_id)
            self.timeline.seed(existing)
            self.transition_policy.check(booking_id, existing.status, BookingStatus.CANCELLED)

            reason = Validator.sanitize_string(reason) if reason else None
            fields = {
                "status": BookingStatus.CANCELLED.value,
                "payment_status": PaymentStatus.REFUNDED.value,
                "cancellation_reason": reason,
                "refund_amount": str(existing.total_amount),
            }
            stored = await self.retry.with_retry(
                lambda: self.storage.update_booking(booking_id, fields),
                operation_name="update_booking",
            )
            booking = _to_booking(stored)

            description = f"Booking cancelled: {reason}" if reason else "Booking cancelled"
            self.timeline.append(
                booking.id,
                BookingEventType.CANCELLED,
                description,
                user_id=user_id,
                user_name=user_name,
                metadata={"reason": reason, "refund_amount": str(booking.total_amount)},
            )

            refund = RefundModel(
                refund_id=f"ref_{uuid.uuid4().hex[:12]}",
                booking_id=booking.id,
                amount=booking.total_amount,
                estimated_days=self.REFUND_ESTIMATED_DAYS,
            )

            logger.info(f"Cancelled booking {booking.id}; refund {refund.refund_id} of {refund.amount} processing")
            return CancellationResultModel(booking=self._attach(booking), refund=refund)

    async def add_event(
        self,
        booking_id: str,
        event_type: Any,
        description: str,
        user_id: str,
        user_name: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> BookingEventModel:
        """
        Append an event to a booking's timeline.

        The id, sequence and timestamp are assigned here. A booking the
        timeline has not seen yet is looked up and seeded first.
        """
        with self._reporting("add_event"):
            Validator.one_of(event_type, BookingEventType, "type", "Invalid event type")
            Validator.required(description, "description")

            if booking_id not in self.timeline:
                self.timeline.seed(await self._find_booking(booking_id))

            return self.timeline.append(
                booking_id,
                BookingEventType(_plain(event_type)),
                Validator.sanitize_string(description),
                user_id=user_id,
                user_name=user_name,
                metadata=metadata,
            )

    async def generate_document(self, booking_id: str, document_type: Any) -> str:
        """Return the URL of a generated invoice, voucher, itinerary, ticket or insurance document."""
        with self._reporting("generate_document"):
            Validator.one_of(document_type, DocumentType, "document_type", "Invalid document type")
            kind = DocumentType(_plain(document_type))
            url = await self.documents.generate(booking_id, kind)
            logger.info(f"Generated {kind.value} for booking {booking_id}")
            return url

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_user_bookings(
        self, user_id: str, page: int = 1, limit: Optional[int] = None
    ) -> PaginatedBookingsModel:
        """One page of an agent's bookings, newest first."""
        with self._reporting("get_user_bookings"):
            limit = limit or self.items_per_page
            Validator.positive_integer(page, "page")
            Validator.positive_integer(limit, "limit")

            rows = await self.retry.with_retry(
                lambda: self.storage.get_user_bookings(user_id),
                operation_name="get_user_bookings",
            )
            bookings = [self._hydrate(row) for row in rows]

            start = (page - 1) * limit
            total = len(bookings)
            return PaginatedBookingsModel(
                data=bookings[start:start + limit],
                total=total,
                page=page,
                limit=limit,
                has_more=start + limit < total,
                total_pages=math.ceil(total / limit),
            )

    async def get_all_bookings(self) -> List[BookingModel]:
        with self._reporting("get_all_bookings"):
            rows = await self.retry.with_retry(
                self.storage.get_all_bookings,
                operation_name="get_all_bookings",
            )
            return [self._hydrate(row) for row in rows]

    async def get_analytics(self, user_id: Optional[str] = None) -> BookingAnalyticsModel:
        """Analytics over one agent's bookings, or over all bookings."""
        if user_id is None:
            bookings = await self.get_all_bookings()
        else:
            with self._reporting("get_analytics"):
                rows = await self.retry.with_retry(
                    lambda: self.storage.get_user_bookings(user_id),
                    operation_name="get_user_bookings",
                )
                bookings = [_to_booking(row) for row in rows]
        return compute_analytics(bookings)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _find_booking(self, booking_id: str) -> BookingModel:
        rows = await self.retry.with_retry(
            self.storage.get_all_bookings,
            operation_name="get_all_bookings",
        )
        for row in rows:
            if row.get("id") == booking_id:
                return _to_booking(row)
        raise AppError(ErrorCode.NOT_FOUND, "Booking not found", {"booking_id": booking_id})

    def _hydrate(self, record: BookingRecord) -> BookingModel:
        booking = _to_booking(record)
        self.timeline.seed(booking)
        return self._attach(booking)

    def _attach(self, booking: BookingModel) -> BookingModel:
        return booking.model_copy(
            update={
                "timeline": self.timeline.events(booking.id),
                "documents": self._documents_for(booking),
            }
        )

    def _documents_for(self, booking: BookingModel) -> List[BookingDocumentModel]:
        kinds = [DocumentType.INVOICE]
        if booking.status == BookingStatus.CONFIRMED:
            kinds.append(DocumentType.VOUCHER)

        generated_at = booking.updated_at or booking.created_at or self._clock()
        return [
            BookingDocumentModel(
                id=f"doc_{booking.id}_{kind.value}",
                type=kind,
                name=DocumentGenerator.DOCUMENT_NAMES[kind],
                url=self.documents.url_for(booking.id, kind),
                generated_at=generated_at,
            )
            for kind in kinds
        ]

    @contextmanager
    def _reporting(self, operation: str) -> Iterator[None]:
        """Log classified failures under ``BookingLifecycle.<operation>`` and re-raise them."""
        context = f"BookingLifecycle.{operation}"
        try:
            yield
        except AppError as e:
            self.classifier.log_error(e, context)
            raise
        except Exception as e:
            app_error = self.classifier.report(e, context)
            raise app_error from e


def compute_analytics(bookings: Iterable[BookingModel]) -> BookingAnalyticsModel:
    """
    Aggregate counts, revenue and commission over ``bookings``.

    Conversion rate and average value are 0 for an empty collection.
    """
    total_bookings = 0
    confirmed = 0
    by_status: Dict[str, int] = {}
    by_type: Dict[str, int] = {}
    revenue = Decimal("0")
    commission = Decimal("0")

    for booking in bookings:
        total_bookings += 1
        if booking.status == BookingStatus.CONFIRMED:
            confirmed += 1
        by_status[booking.status.value] = by_status.get(booking.status.value, 0) + 1
        by_type[booking.type.value] = by_type.get(booking.type.value, 0) + 1
        revenue += booking.total_amount
        commission += booking.commission_amount

    return BookingAnalyticsModel(
        total_bookings=total_bookings,
        confirmed_bookings=confirmed,
        by_status=by_status,
        by_type=by_type,
        total_revenue=revenue,
        total_commission=commission,
        conversion_rate=(confirmed / total_bookings * 100) if total_bookings else 0.0,
        average_value=float(revenue / total_bookings) if total_bookings else 0.0,
    )


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _to_booking(record: Mapping[str, Any]) -> BookingModel:
    """Build a ``BookingModel``, reporting the first schema violation as a ``ValidationError``."""
    try:
        return BookingModel.model_validate(dict(record))
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = str(first["loc"][0]) if first.get("loc") else "booking"
        raise ValidationError(field, f"{field}: {first.get('msg', 'invalid value')}") from e
