"""
Formatting and small calculation helpers shared by the services and the CLI.
"""

import random
import string
import time
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from ..models.enums import BookingType

Number = Union[int, float, Decimal, str]

_REFERENCE_ALPHABET = string.ascii_uppercase + string.digits


def round_half_up(value: Number) -> Decimal:
    """Round to a whole unit, halves away from zero."""
    return Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def calculate_commission(amount: Number, rate: Number = 5) -> Decimal:
    """Agent commission for ``amount`` at ``rate`` percent, rounded to a whole unit."""
    return round_half_up(Decimal(str(amount)) * Decimal(str(rate)) / 100)


def generate_booking_reference(
    booking_type: Union[BookingType, str],
    now_ms: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> str:
    """
    Customer-facing booking reference, e.g. ``CR482913QX7``.

    ``CR`` for cruises and ``HT`` for hotels, the last six digits of the
    millisecond clock, then three random uppercase alphanumerics.
    """
    value = booking_type.value if isinstance(booking_type, BookingType) else booking_type
    prefix = "CR" if value == BookingType.CRUISE.value else "HT"
    millis = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join((rng or random).choice(_REFERENCE_ALPHABET) for _ in range(3))
    return f"{prefix}{str(millis)[-6:].zfill(6)}{suffix}"


def format_currency(amount: Number, symbol: str = "₹") -> str:
    """Whole-unit currency string with thousands separators, e.g. ``₹125,000``."""
    return f"{symbol}{round_half_up(amount):,}"


def format_percentage(value: float, decimals: int = 1) -> str:
    return f"{value:.{decimals}f}%"
