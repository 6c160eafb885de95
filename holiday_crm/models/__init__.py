"""
Holiday CRM Pydantic models package.

This package contains all Pydantic v2 models and enums used throughout the
booking core for data validation, serialization, and type safety.
"""

# Enums
from .enums import (
    BookingType,
    BookingStatus,
    PaymentStatus,
    BookingEventType,
    DocumentType,
    DiscountType,
    OfferStatus,
    ApplicableFor,
    ComplaintPriority,
    ComplaintStatus,
    UserRole,
    UserStatus,
    RefundStatus,
)

# Booking models
from .booking import (
    BookingEventModel,
    BookingDocumentModel,
    BookingModel,
    RefundModel,
    CancellationResultModel,
    PaginatedBookingsModel,
)

# Pricing and analytics models
from .pricing import PriceBreakdownModel
from .analytics import BookingAnalyticsModel

__all__ = [
    # Enums
    "BookingType",
    "BookingStatus",
    "PaymentStatus",
    "BookingEventType",
    "DocumentType",
    "DiscountType",
    "OfferStatus",
    "ApplicableFor",
    "ComplaintPriority",
    "ComplaintStatus",
    "UserRole",
    "UserStatus",
    "RefundStatus",

    # Booking models
    "BookingEventModel",
    "BookingDocumentModel",
    "BookingModel",
    "RefundModel",
    "CancellationResultModel",
    "PaginatedBookingsModel",

    # Derived models
    "PriceBreakdownModel",
    "BookingAnalyticsModel",
]
