from datetime import datetime, UTC
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class PropertyStatus(str, Enum):
    """Listing status; only available properties are matchable"""
    AVAILABLE = "available"
    SOLD = "sold"
    BLOCKED = "blocked"


class PropertyLocation(BaseModel):
    area: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None


class PropertySpecifications(BaseModel):
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    area_sqft: Optional[float] = None
    floor: Optional[int] = None


class Property(BaseModel):
    """Listing as read from the listing store. Never mutated by matching."""
    id: Optional[str] = None
    organization_id: str
    type: Optional[str] = None  # apartment, villa, plot, ...
    status: PropertyStatus = PropertyStatus.AVAILABLE
    title: Optional[str] = None

    location: PropertyLocation = Field(default_factory=PropertyLocation)
    price: float = Field(..., ge=0)
    currency: str = "INR"
    specifications: PropertySpecifications = Field(default_factory=PropertySpecifications)
    amenities: List[str] = []
    featured: bool = False

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class PropertyFilters(BaseModel):
    """Criteria accepted by PropertyRepository.find_by_organization"""
    status: Optional[PropertyStatus] = None
    created_after: Optional[datetime] = None
    property_type: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    location: Optional[str] = None  # city
    featured: Optional[bool] = None
