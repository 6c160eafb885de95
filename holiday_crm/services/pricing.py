"""
Dynamic pricing for cruise cabins and hotel rooms.

A price is the base price scaled by three independent multipliers: one season
tier chosen from the travel date, the room or cabin type, and the occupancy.
Arithmetic is done in ``Decimal`` and the total is rounded half up to a whole
currency unit.
"""

import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Tuple, Union

from ..models.pricing import PriceBreakdownModel
from .errors import ValidationError

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str]


class PricingEngine:
    """
    Compute explainable prices for a date, room type and occupancy.

    Season precedence (first match wins):
    1. Holiday windows (inclusive): Dec 20 - Jan 5, Mar 15 - Apr 15, Oct 15 - Nov 15
    2. Peak months: Dec, Jan, Apr, May
    3. Shoulder months: Feb, Mar, Oct, Nov
    4. Weekend (Saturday or Sunday)
    5. Low season
    """

    HOLIDAY_MULTIPLIER = Decimal("1.40")
    PEAK_MULTIPLIER = Decimal("1.30")
    SHOULDER_MULTIPLIER = Decimal("1.15")
    WEEKEND_MULTIPLIER = Decimal("1.10")
    LOW_SEASON_MULTIPLIER = Decimal("0.85")

    PEAK_MONTHS = frozenset({12, 1, 4, 5})
    SHOULDER_MONTHS = frozenset({2, 3, 10, 11})

    # (start (month, day), end (month, day)); a window may wrap the year end
    HOLIDAY_WINDOWS: Tuple[Tuple[Tuple[int, int], Tuple[int, int]], ...] = (
        ((12, 20), (1, 5)),
        ((3, 15), (4, 15)),
        ((10, 15), (11, 15)),
    )

    ROOM_TYPE_MULTIPLIERS: Dict[str, Decimal] = {
        # Cruise cabins
        "Interior": Decimal("1.0"),
        "Ocean View": Decimal("1.25"),
        "Balcony": Decimal("1.5"),
        "Suite": Decimal("2.0"),
        "Penthouse": Decimal("2.5"),
        # Hotel rooms
        "Standard Room": Decimal("1.0"),
        "Deluxe Room": Decimal("1.3"),
        "Premium Room": Decimal("1.4"),
        "Executive Room": Decimal("1.5"),
        "Club Room": Decimal("1.6"),
        "Executive Suite": Decimal("1.8"),
        "Luxury Suite": Decimal("2.0"),
        "Royal Suite": Decimal("2.2"),
        "Presidential Suite": Decimal("2.5"),
    }

    OCCUPANCY_MULTIPLIERS: Dict[int, Decimal] = {
        1: Decimal("1.5"),
        2: Decimal("1.0"),
        3: Decimal("0.85"),
        4: Decimal("0.75"),
    }
    DEFAULT_OCCUPANCY = 2

    # ------------------------------------------------------------------
    # Multipliers
    # ------------------------------------------------------------------

    @classmethod
    def is_holiday(cls, travel_date: date) -> bool:
        month_day = (travel_date.month, travel_date.day)
        for start, end in cls.HOLIDAY_WINDOWS:
            if start <= end:
                if start <= month_day <= end:
                    return True
            elif month_day >= start or month_day <= end:
                return True
        return False

    @classmethod
    def get_seasonal_multiplier(cls, travel_date: DateLike) -> Tuple[str, Decimal]:
        """Return ``(season, multiplier)`` for a travel date."""
        day = to_calendar_date(travel_date)

        if cls.is_holiday(day):
            return "holiday", cls.HOLIDAY_MULTIPLIER
        if day.month in cls.PEAK_MONTHS:
            return "peak", cls.PEAK_MULTIPLIER
        if day.month in cls.SHOULDER_MONTHS:
            return "shoulder", cls.SHOULDER_MULTIPLIER
        if day.weekday() >= 5:
            return "weekend", cls.WEEKEND_MULTIPLIER
        return "low", cls.LOW_SEASON_MULTIPLIER

    @classmethod
    def get_room_type_multiplier(cls, room_type: str) -> Decimal:
        return cls.ROOM_TYPE_MULTIPLIERS.get(room_type, Decimal("1.0"))

    @classmethod
    def get_occupancy_multiplier(cls, occupancy: int) -> Decimal:
        return cls.OCCUPANCY_MULTIPLIERS.get(
            occupancy, cls.OCCUPANCY_MULTIPLIERS[cls.DEFAULT_OCCUPANCY]
        )

    # ------------------------------------------------------------------
    # Price
    # ------------------------------------------------------------------

    def calculate_price(
        self,
        base_price: Union[int, float, Decimal, str],
        travel_date: DateLike,
        room_type: str = "Interior",
        occupancy: int = 2,
    ) -> PriceBreakdownModel:
        """
        Price one stay.

        Args:
            base_price: Non-negative base price for the item
            travel_date: Travel date; only its calendar month, day and weekday matter
            room_type: Cabin or room type; unknown types price at 1.0
            occupancy: Guests sharing the room, clamped to at least 1

        Returns:
            PriceBreakdownModel: Total, per-person price, savings and display deltas

        Raises:
            ValidationError: If the base price is negative or not a number,
                the date cannot be parsed or occupancy is not a whole number
        """
        base = _to_decimal(base_price)
        day = to_calendar_date(travel_date)
        guests = max(1, _to_occupancy(occupancy))

        season, seasonal = self.get_seasonal_multiplier(day)
        room = self.get_room_type_multiplier(room_type)
        occupancy_multiplier = self.get_occupancy_multiplier(guests)

        total = round_half_up(base * seasonal * room * occupancy_multiplier)
        savings = max(Decimal("0"), base * room - total)
        per_person = round_half_up(total / guests)

        logger.debug(
            f"Priced {room_type} x{guests} on {day.isoformat()}: {total} "
            f"(season={season}, seasonal={seasonal}, room={room}, occupancy={occupancy_multiplier})"
        )

        return PriceBreakdownModel(
            base_price=base,
            seasonal_adjustment=base * (seasonal - 1),
            occupancy_adjustment=base * (occupancy_multiplier - 1),
            room_type_adjustment=base * (room - 1),
            total_price=int(total),
            savings=savings,
            price_per_person=int(per_person),
            travel_date=day,
            season=season,
            seasonal_multiplier=seasonal,
            room_type_multiplier=room,
            occupancy_multiplier=occupancy_multiplier,
            occupancy=guests,
        )


def round_half_up(value: Decimal) -> Decimal:
    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def to_calendar_date(value: DateLike) -> date:
    """Reduce a date, datetime or ISO string to its calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        except ValueError:
            raise ValidationError("travel_date", "Invalid date format")
    raise ValidationError("travel_date", "Invalid date format")


def _to_decimal(value: Union[int, float, Decimal, str]) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError("base_price", "base_price must be a non-negative number")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError("base_price", "base_price must be a non-negative number")
    if not amount.is_finite() or amount < 0:
        raise ValidationError("base_price", "base_price must be a non-negative number")
    return amount


def _to_occupancy(value: Union[int, str]) -> int:
    if isinstance(value, bool):
        raise ValidationError("occupancy", "occupancy must be a whole number")
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("occupancy", "occupancy must be a whole number")
