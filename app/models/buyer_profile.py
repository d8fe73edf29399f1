"""
Buyer profile and preference models.

Specification preferences are stored either as a list of acceptable values
or as a ``{"min": .., "max": ..}`` object. Both shapes are normalized into
the tagged ``DiscreteSet`` / ``ValueRange`` structures on load.
"""

from datetime import datetime, UTC
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


class DiscreteSet(BaseModel):
    """Acceptable values for a specification attribute"""
    kind: Literal["set"] = "set"
    values: List[float] = []

    def contains(self, value: Optional[float]) -> bool:
        if value is None:
            return False
        return value in self.values


class ValueRange(BaseModel):
    """Inclusive range for a specification attribute; open-ended when a bound is missing"""
    kind: Literal["range"] = "range"
    min: Optional[float] = None
    max: Optional[float] = None

    def contains(self, value: Optional[float]) -> bool:
        if value is None:
            return False
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True


SpecPreference = Annotated[Union[DiscreteSet, ValueRange], Field(discriminator="kind")]


def _to_tagged_spec(value: Any) -> Any:
    """Normalize legacy stored shapes into tagged specification preferences"""
    if value is None or isinstance(value, (DiscreteSet, ValueRange)):
        return value
    if isinstance(value, (list, tuple, set)):
        return {"kind": "set", "values": list(value)}
    if isinstance(value, (int, float)):
        return {"kind": "set", "values": [value]}
    if isinstance(value, dict) and "kind" not in value:
        if "values" in value:
            return {"kind": "set", **value}
        return {"kind": "range", **value}
    return value


class LocationPreference(BaseModel):
    areas: List[str] = []
    city: Optional[str] = None
    radius_km: Optional[float] = Field(None, gt=0)


class BudgetRange(BaseModel):
    min: Optional[float] = Field(None, ge=0)
    max: Optional[float] = Field(None, ge=0)


class SpecificationPreferences(BaseModel):
    bedrooms: Optional[SpecPreference] = None
    bathrooms: Optional[SpecPreference] = None
    area_sqft: Optional[SpecPreference] = None
    floor: Optional[SpecPreference] = None

    @field_validator("bedrooms", "bathrooms", "area_sqft", "floor", mode="before")
    @classmethod
    def normalize_legacy_shape(cls, value):
        return _to_tagged_spec(value)


class BuyerPreferences(BaseModel):
    location: Optional[LocationPreference] = None
    budget: Optional[BudgetRange] = None
    specifications: Optional[SpecificationPreferences] = None
    amenities: List[str] = []


class BuyerProfile(BaseModel):
    """Buyer preference profile. Engagement fields are maintained elsewhere."""
    id: Optional[str] = None
    organization_id: str
    buyer_id: Optional[str] = None  # Contact ID
    preferences: BuyerPreferences = Field(default_factory=BuyerPreferences)
    engagement_score: float = Field(default=0, ge=0, le=100)
    last_active: Optional[datetime] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Contact(BaseModel):
    """Contact record a buyer profile points to"""
    id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    whatsapp_number: Optional[str] = None
    telegram_chat_id: Optional[int] = None
    email: Optional[str] = None
