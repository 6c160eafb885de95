"""
Enums for the holiday CRM booking core.

This module contains all enumeration types used throughout the application
for consistent data validation and type safety. Values are the display
strings stored by the dashboards and the remote store.
"""

from enum import Enum


class BookingType(str, Enum):
    """Catalog item category a booking reserves."""
    CRUISE = "Cruise"
    HOTEL = "Hotel"


class BookingStatus(str, Enum):
    """Booking lifecycle status."""
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"


class PaymentStatus(str, Enum):
    """Payment status, loosely coupled to the booking status."""
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"
    REFUNDED = "Refunded"


class BookingEventType(str, Enum):
    """Timeline event categories."""
    CREATED = "created"
    CONFIRMED = "confirmed"
    MODIFIED = "modified"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    PAYMENT = "payment"
    REFUND = "refund"


class DocumentType(str, Enum):
    """Generated booking document kinds."""
    INVOICE = "invoice"
    VOUCHER = "voucher"
    ITINERARY = "itinerary"
    TICKET = "ticket"
    INSURANCE = "insurance"


class DiscountType(str, Enum):
    """Offer discount calculation mode."""
    PERCENTAGE = "Percentage"
    FIXED_AMOUNT = "Fixed Amount"


class OfferStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    EXPIRED = "Expired"


class ApplicableFor(str, Enum):
    """Services an offer applies to."""
    CRUISES = "Cruises"
    HOTELS = "Hotels"
    BOTH = "Both"


class ComplaintPriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class ComplaintStatus(str, Enum):
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    ESCALATED = "Escalated"


class UserRole(str, Enum):
    """Dashboard roles."""
    TRAVEL_AGENT = "Travel Agent"
    BASIC_ADMIN = "Basic Admin"
    SUPER_ADMIN = "Super Admin"


class UserStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    PENDING = "Pending"


class RefundStatus(str, Enum):
    """Advisory refund record status."""
    PROCESSING = "Processing"
    COMPLETED = "Completed"
