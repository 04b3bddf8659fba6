"""
Shared base for domain models

Author: TM3
Date: 2025-11-20
"""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

from pydantic import BaseModel, ConfigDict

CENT = Decimal("0.01")


def money(value: Any) -> Decimal:
    """Coerce to Decimal rounded half-up to 2 places"""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def decimals_to_float(value: Any) -> Any:
    """Recursively convert Decimal values for JSON responses"""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {k: decimals_to_float(v) for k, v in value.items()}
    if isinstance(value, list):
        return [decimals_to_float(v) for v in value]
    return value


class DomainModel(BaseModel):
    """Base for entities read from the database"""

    model_config = ConfigDict(
        from_attributes=True,
        json_encoders={
            Decimal: float,
            datetime: lambda v: v.isoformat()
        }
    )

    def to_dict(self) -> dict:
        """Convert to dictionary with Decimal to float conversion"""
        return decimals_to_float(self.model_dump())
