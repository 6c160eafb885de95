"""
Validation and sanitisation of CRM records before they reach storage.

Every ``validate_*`` method checks only the fields present in the record, so
partial records from patch/update flows are accepted. Checks fail fast with a
``ValidationError`` naming the offending field, and free-text fields are
sanitised in place (markup, ``javascript:`` URIs and ``on*=`` handlers
removed, whitespace trimmed).
"""

import math
import re
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, MutableMapping, Optional, Tuple, Type

from ..models.enums import (
    ApplicableFor,
    BookingStatus,
    BookingType,
    ComplaintPriority,
    ComplaintStatus,
    DiscountType,
    OfferStatus,
    PaymentStatus,
    UserRole,
    UserStatus,
)
from .errors import ValidationError


Record = MutableMapping[str, Any]


class Validator:
    """
    Stateless rule checks for bookings, offers, complaints and users.

    ``email``, ``phone`` and ``strong_password`` are pure predicates for soft
    validation in forms; everything else raises ``ValidationError``.
    """

    EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
    PHONE_REGEX = re.compile(r"^[+]?[\d\s\-\(\)]{10,}$")
    STRONG_PASSWORD_REGEX = re.compile(
        r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$"
    )

    # Sanitisation patterns
    TAG_REGEX = re.compile(r"<[^>]*>")
    ANGLE_BRACKET_REGEX = re.compile(r"[<>]")
    JS_PROTOCOL_REGEX = re.compile(r"javascript:", re.IGNORECASE)
    EVENT_HANDLER_REGEX = re.compile(r"on\w+=", re.IGNORECASE)
    SEARCH_UNSAFE_REGEX = re.compile(r"['\"\\;]")

    SEARCH_MAX_LENGTH = 100
    MAX_TOTAL_AMOUNT = 10_000_000
    MAX_GUESTS = 20
    MAX_COMMISSION_PERCENT = 25
    MAX_FIXED_DISCOUNT = 1_000_000

    MAX_UPLOAD_BYTES = 10 * 1024 * 1024
    ALLOWED_UPLOAD_TYPES = (
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "application/pdf",
    )

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    @classmethod
    def email(cls, value: str) -> bool:
        if not isinstance(value, str):
            return False
        return bool(cls.EMAIL_REGEX.match(value))

    @classmethod
    def phone(cls, value: str) -> bool:
        if not isinstance(value, str):
            return False
        clean = re.sub(r"\s", "", value)
        return bool(cls.PHONE_REGEX.match(clean)) and len(clean) >= 10

    @classmethod
    def strong_password(cls, value: str) -> bool:
        if not isinstance(value, str):
            return False
        return bool(cls.STRONG_PASSWORD_REGEX.match(value))

    # ------------------------------------------------------------------
    # Primitive checks
    # ------------------------------------------------------------------

    @staticmethod
    def required(value: Any, field: str) -> None:
        """Reject None, empty strings and empty collections."""
        if value is None or value == "" or (
            isinstance(value, (list, tuple, set, dict)) and len(value) == 0
        ):
            raise ValidationError(field, f"{field} is required")

    @staticmethod
    def min_length(value: str, min_length: int, field: str) -> None:
        if len(value) < min_length:
            raise ValidationError(field, f"{field} must be at least {min_length} characters")

    @staticmethod
    def max_length(value: str, max_length: int, field: str) -> None:
        if len(value) > max_length:
            raise ValidationError(field, f"{field} must not exceed {max_length} characters")

    @staticmethod
    def positive_number(value: Any, field: str) -> None:
        if not _is_number(value) or value <= 0:
            raise ValidationError(field, f"{field} must be a positive number")

    @staticmethod
    def positive_integer(value: Any, field: str) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValidationError(field, f"{field} must be a positive whole number")

    @staticmethod
    def number_range(value: Any, minimum: float, maximum: float, field: str) -> None:
        if not _is_number(value) or value < minimum or value > maximum:
            raise ValidationError(field, f"{field} must be between {minimum} and {maximum}")

    @staticmethod
    def date_range(start: Any, end: Any, field: str = "date_range") -> None:
        """Require ``start`` strictly before ``end``."""
        start_at = _parse_datetime(start)
        end_at = _parse_datetime(end)
        if start_at is None or end_at is None:
            raise ValidationError(field, "Invalid date format")
        if start_at >= end_at:
            raise ValidationError(field, "End date must be after start date")

    @staticmethod
    def future_date(value: Any, field: str, now: Optional[datetime] = None) -> None:
        moment = _parse_datetime(value)
        if moment is None:
            raise ValidationError(field, "Invalid date format")
        reference = _parse_datetime(now) if now is not None else _parse_datetime(datetime.now(timezone.utc))
        if moment <= reference:
            raise ValidationError(field, f"{field} must be in the future")

    @staticmethod
    def one_of(value: Any, choices: Type[Enum], field: str, message: str) -> None:
        allowed = {member.value for member in choices}
        raw = value.value if isinstance(value, Enum) else value
        if raw not in allowed:
            raise ValidationError(field, message)

    # ------------------------------------------------------------------
    # Sanitisation
    # ------------------------------------------------------------------

    @classmethod
    def sanitize_string(cls, value: str) -> str:
        """
        Strip markup and script vectors from free text.

        Tags are removed with their delimiters but their text content is
        kept: ``"<b>hi</b>"`` becomes ``"hi"``.
        """
        cleaned = cls.TAG_REGEX.sub("", value)
        cleaned = cls.ANGLE_BRACKET_REGEX.sub("", cleaned)
        cleaned = cls.JS_PROTOCOL_REGEX.sub("", cleaned)
        cleaned = cls.EVENT_HANDLER_REGEX.sub("", cleaned)
        return cleaned.strip()

    @classmethod
    def validate_search_input(cls, value: Optional[str]) -> str:
        """Sanitise search-box input and cap it at 100 characters."""
        if not value:
            return ""
        cleaned = cls.sanitize_string(value)
        cleaned = cls.SEARCH_UNSAFE_REGEX.sub("", cleaned).strip()
        return cleaned[: cls.SEARCH_MAX_LENGTH]

    @classmethod
    def _text(cls, record: Record, field: str, min_length: Optional[int], max_length: int) -> None:
        value = record.get(field)
        if not value:
            return
        cls.required(value, field)
        if min_length is not None:
            cls.min_length(value, min_length, field)
        cls.max_length(value, max_length, field)
        record[field] = cls.sanitize_string(value)

    # ------------------------------------------------------------------
    # Record validators
    # ------------------------------------------------------------------

    @classmethod
    def validate_user(cls, user: Record) -> None:
        if user.get("email"):
            if not cls.email(user["email"]):
                raise ValidationError("email", "Invalid email format")

        cls._text(user, "name", 2, 100)

        if user.get("role"):
            cls.one_of(user["role"], UserRole, "role", "Invalid user role")

        if user.get("status"):
            cls.one_of(user["status"], UserStatus, "status", "Invalid user status")

        if user.get("phone") and not cls.phone(user["phone"]):
            raise ValidationError("phone", "Invalid phone number format")

    @classmethod
    def validate_booking(cls, booking: Record) -> None:
        """
        Validate a (possibly partial) booking record.

        The 25% commission ceiling is only checked when ``total_amount`` and
        ``commission_amount`` are both present.

        Raises:
            ValidationError: On the first rule violated
        """
        cls._text(booking, "customer_name", 2, 100)

        if booking.get("customer_email") and not cls.email(booking["customer_email"]):
            raise ValidationError("customer_email", "Invalid customer email format")

        if booking.get("customer_phone") and not cls.phone(booking["customer_phone"]):
            raise ValidationError("customer_phone", "Invalid phone number format")

        total_amount = booking.get("total_amount")
        if total_amount is not None:
            cls.positive_number(total_amount, "total_amount")
            cls.number_range(total_amount, 1, cls.MAX_TOTAL_AMOUNT, "total_amount")

        commission_amount = booking.get("commission_amount")
        if commission_amount is not None:
            if not _is_number(commission_amount):
                raise ValidationError("commission_amount", "commission_amount must be a number")
            if commission_amount < 0:
                raise ValidationError("commission_amount", "Commission amount cannot be negative")

        guests = booking.get("guests")
        if guests is not None:
            cls.positive_number(guests, "guests")
            cls.number_range(guests, 1, cls.MAX_GUESTS, "guests")

        if booking.get("booking_date") and booking.get("travel_date"):
            cls.date_range(booking["booking_date"], booking["travel_date"], "travel_date")

        if booking.get("type"):
            cls.one_of(booking["type"], BookingType, "type", "Invalid booking type")

        if booking.get("status"):
            cls.one_of(booking["status"], BookingStatus, "status", "Invalid booking status")

        if booking.get("payment_status"):
            cls.one_of(booking["payment_status"], PaymentStatus, "payment_status", "Invalid payment status")

        cls._text(booking, "special_requests", None, 500)

        # Business rule: commission ceiling
        if total_amount is not None and commission_amount is not None:
            percentage = _decimal(commission_amount) / _decimal(total_amount) * 100
            if percentage > cls.MAX_COMMISSION_PERCENT:
                raise ValidationError(
                    "commission_amount",
                    f"Commission percentage cannot exceed {cls.MAX_COMMISSION_PERCENT}%",
                )

    @classmethod
    def validate_complaint(cls, complaint: Record) -> None:
        cls._text(complaint, "subject", 5, 200)
        cls._text(complaint, "description", 10, 2000)

        if complaint.get("priority"):
            cls.one_of(complaint["priority"], ComplaintPriority, "priority", "Invalid priority level")

        if complaint.get("status"):
            cls.one_of(complaint["status"], ComplaintStatus, "status", "Invalid complaint status")

        cls._text(complaint, "customer_name", 2, 100)
        cls._text(complaint, "resolution", 10, 1000)

    @classmethod
    def validate_offer(cls, offer: Record) -> None:
        cls._text(offer, "title", 3, 100)
        cls._text(offer, "description", 10, 500)

        discount_type = offer.get("discount_type")
        discount_type = discount_type.value if isinstance(discount_type, Enum) else discount_type

        discount_value = offer.get("discount_value")
        if discount_value is not None:
            cls.positive_number(discount_value, "discount_value")
            if discount_type == DiscountType.PERCENTAGE.value:
                cls.number_range(discount_value, 1, 100, "discount_value")
            elif discount_type == DiscountType.FIXED_AMOUNT.value:
                cls.number_range(discount_value, 1, cls.MAX_FIXED_DISCOUNT, "discount_value")

        if discount_type:
            cls.one_of(discount_type, DiscountType, "discount_type", "Invalid discount type")

        if offer.get("valid_from") and offer.get("valid_to"):
            cls.date_range(offer["valid_from"], offer["valid_to"], "valid_to")

        if offer.get("applicable_for"):
            cls.one_of(offer["applicable_for"], ApplicableFor, "applicable_for", "Invalid applicable service type")

        if offer.get("status"):
            cls.one_of(offer["status"], OfferStatus, "status", "Invalid offer status")

        max_usage = offer.get("max_usage")
        usage_count = offer.get("usage_count")

        if max_usage is not None and max_usage <= 0:
            raise ValidationError("max_usage", "Maximum usage must be a positive number")

        if usage_count is not None and usage_count < 0:
            raise ValidationError("usage_count", "Usage count cannot be negative")

        if max_usage is not None and usage_count is not None and usage_count > max_usage:
            raise ValidationError("usage_count", "Usage count cannot exceed maximum usage")

    @classmethod
    def validate_file_upload(cls, size_bytes: int, content_type: str) -> Tuple[bool, Optional[str]]:
        """Check an upload against the 10MB limit and the allowed types."""
        if size_bytes > cls.MAX_UPLOAD_BYTES:
            return False, "File size exceeds 10MB limit"
        if content_type not in cls.ALLOWED_UPLOAD_TYPES:
            return False, "File type not allowed"
        return True, None


def _is_number(value: Any) -> bool:
    """Finite int, float or Decimal; bools, NaN and infinities are not numbers here."""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return False
    if isinstance(value, Decimal):
        return value.is_finite()
    return math.isfinite(value)


def _decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValidationError("amount", f"Invalid amount: {value!r}")


def _parse_datetime(value: Any) -> Optional[datetime]:
    """Normalise a date, datetime or ISO string to a naive UTC datetime."""
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value:
        try:
            moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment
