"""
Pytest tests for formatting helpers.
Run with: uv run pytest tests/test_formatters.py -v
"""

import random
import string
from decimal import Decimal

import pytest

from holiday_crm.models import BookingType
from holiday_crm.utils.formatters import (
    calculate_commission,
    format_currency,
    format_percentage,
    generate_booking_reference,
    round_half_up,
)


class TestCommission:

    @pytest.mark.parametrize("amount,rate,expected", [
        (100000, 5, Decimal("5000")),
        (100000, 10, Decimal("10000")),
        (12345, 5, Decimal("617")),
        (10, 5, Decimal("1")),
        (0, 5, Decimal("0")),
    ])
    def test_calculate_commission(self, amount, rate, expected):
        assert calculate_commission(amount, rate) == expected

    def test_default_rate(self):
        assert calculate_commission(50000) == Decimal("2500")

    def test_round_half_up(self):
        assert round_half_up(2.5) == Decimal("3")
        assert round_half_up("6.5") == Decimal("7")
        assert round_half_up(Decimal("6.49")) == Decimal("6")


class TestBookingReference:

    def test_cruise_reference(self):
        reference = generate_booking_reference("Cruise", now_ms=1700000123456, rng=random.Random(1))
        assert reference.startswith("CR123456")
        assert len(reference) == 11
        assert all(c in string.ascii_uppercase + string.digits for c in reference[-3:])

    def test_hotel_reference_from_enum(self):
        reference = generate_booking_reference(BookingType.HOTEL, now_ms=42)
        assert reference.startswith("HT000042")

    def test_references_differ(self):
        references = {generate_booking_reference("Cruise") for _ in range(20)}
        assert len(references) > 1


def test_format_currency():
    assert format_currency(125000) == "₹125,000"
    assert format_currency(Decimal("999.5")) == "₹1,000"
    assert format_currency(10, symbol="$") == "$10"


def test_format_percentage():
    assert format_percentage(66.666) == "66.7%"
    assert format_percentage(50, decimals=0) == "50%"
