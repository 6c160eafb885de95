"""
Booking-related Pydantic models for the holiday CRM booking core.

This module contains models for bookings, their append-only timeline events,
generated documents and the advisory refund record produced on cancellation.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import (
    BookingEventType,
    BookingStatus,
    BookingType,
    DocumentType,
    PaymentStatus,
    RefundStatus,
)


class BookingEventModel(BaseModel):
    """
    One immutable entry in a booking's audit trail.

    Events are frozen once created; ``sequence`` is a process-wide,
    strictly increasing number that fixes causal order when two events
    share a timestamp.
    """
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str = Field(..., description="Stable event identifier")
    booking_id: str = Field(..., description="Booking the event belongs to")
    sequence: int = Field(..., ge=1, description="Append order across the log")
    type: BookingEventType = Field(..., description="Event category")
    description: str = Field(..., description="Human readable description")
    timestamp: datetime = Field(..., description="When the event was recorded")
    user_id: str = Field(..., description="Acting user ID")
    user_name: str = Field(default="", description="Acting user display name")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Opaque key-value bag")

    @field_validator("timestamp")
    @classmethod
    def timestamp_as_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are taken as UTC so every event sorts against every other."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class BookingDocumentModel(BaseModel):
    """Reference to a generated booking document."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: DocumentType
    name: str
    url: str
    generated_at: datetime


class BookingModel(BaseModel):
    """
    Cruise or hotel reservation made by an agent for a customer.

    Mirrors the remote ``bookings`` table. ``timeline`` and ``documents``
    are attached by the lifecycle service and are never persisted by the
    storage collaborator.
    """
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Opaque booking identifier")
    booking_reference: Optional[str] = Field(None, description="Customer-facing reference (e.g. 'CR123456ABC')")
    type: BookingType = Field(..., description="Cruise or Hotel")
    item_id: str = Field(..., description="Catalog item ID")
    item_name: str = Field(..., description="Catalog item name")
    agent_id: str = Field(..., description="Owning agent ID")
    agent_name: str = Field(..., description="Owning agent name")
    customer_name: str = Field(..., max_length=100)
    customer_email: str
    customer_phone: str
    booking_date: date
    travel_date: date
    status: BookingStatus = Field(default=BookingStatus.PENDING)
    total_amount: Decimal = Field(..., gt=0)
    commission_amount: Decimal = Field(default=Decimal("0"), ge=0)
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING)
    guests: int = Field(default=1, ge=1)
    special_requests: Optional[str] = Field(None, max_length=500)
    region: str = Field(default="")
    cancellation_reason: Optional[str] = None
    refund_amount: Optional[Decimal] = Field(None, ge=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    timeline: List[BookingEventModel] = Field(default_factory=list, description="Events in causal order")
    documents: List[BookingDocumentModel] = Field(default_factory=list)

    @property
    def display_timeline(self) -> List[BookingEventModel]:
        """Timeline newest first, as the dashboards show it."""
        return sorted(self.timeline, key=lambda e: (e.timestamp, e.sequence), reverse=True)

    def to_record(self) -> Dict[str, Any]:
        """Storage representation: JSON-safe, without timeline or documents."""
        return self.model_dump(mode="json", exclude={"timeline", "documents"})


class RefundModel(BaseModel):
    """
    Refund synthesised when a booking is cancelled.

    Advisory only: payment gateway integration lives outside this package.
    """
    model_config = ConfigDict(from_attributes=True)

    refund_id: str
    booking_id: str
    amount: Decimal = Field(..., ge=0)
    status: RefundStatus = Field(default=RefundStatus.PROCESSING)
    estimated_days: int = Field(default=5, ge=0)


class CancellationResultModel(BaseModel):
    booking: BookingModel
    refund: RefundModel


class PaginatedBookingsModel(BaseModel):
    """One page of an agent's bookings."""
    data: List[BookingModel] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    has_more: bool
    total_pages: int = Field(..., ge=0)
