"""
Dynamic pricing models.

The breakdown is derived per request and never persisted.
"""

from datetime import date
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field


class PriceBreakdownModel(BaseModel):
    """
    Explainable price for one date, room type and occupancy.

    The ``*_adjustment`` fields are additive deltas for display; the total
    is the product of the multipliers, not the sum of the deltas.
    """
    model_config = ConfigDict(from_attributes=True)

    base_price: Decimal = Field(..., ge=0, description="Undiscounted base price")
    seasonal_adjustment: Decimal = Field(..., description="base_price x (seasonal - 1)")
    occupancy_adjustment: Decimal = Field(..., description="base_price x (occupancy - 1)")
    room_type_adjustment: Decimal = Field(..., description="base_price x (room type - 1)")
    total_price: int = Field(..., ge=0, description="Rounded final price")
    savings: Decimal = Field(..., ge=0, description="Saving against the room-adjusted rate")
    price_per_person: int = Field(..., ge=0)

    travel_date: date
    season: str = Field(..., description="Season tier that set the seasonal multiplier")
    seasonal_multiplier: Decimal
    room_type_multiplier: Decimal
    occupancy_multiplier: Decimal
    occupancy: int = Field(..., ge=1, description="Occupancy after clamping")
