"""
Booking analytics models for the dashboards.
"""

from decimal import Decimal
from typing import Dict
from pydantic import BaseModel, ConfigDict, Field


class BookingAnalyticsModel(BaseModel):
    """
    Aggregates over a set of bookings.

    Rates and averages are 0 for an empty set.
    """
    model_config = ConfigDict(from_attributes=True)

    total_bookings: int = Field(..., ge=0)
    confirmed_bookings: int = Field(..., ge=0)
    by_status: Dict[str, int] = Field(default_factory=dict, description="Count per booking status")
    by_type: Dict[str, int] = Field(default_factory=dict, description="Count per booking type")
    total_revenue: Decimal = Field(default=Decimal("0"))
    total_commission: Decimal = Field(default=Decimal("0"))
    conversion_rate: float = Field(default=0.0, ge=0.0, description="Confirmed / total x 100")
    average_value: float = Field(default=0.0, ge=0.0, description="Revenue / total")
