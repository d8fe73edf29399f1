"""
Weighted scoring of a property against a buyer's preferences.

Four independent buckets add up to at most 100 points:
location 30, budget 25, specifications 25 (bedrooms 8, bathrooms 4,
area 8, floor 5) and amenities 20. Match reasons are generated alongside
the score and only describe which criteria matched.
"""

import math
from typing import List, Optional, Tuple

from app.core.config import settings
from app.models.buyer_profile import BuyerPreferences, LocationPreference
from app.models.property import Property, PropertyLocation
from app.models.property_match import MatchScore

LOCATION_POINTS = 30
NEARBY_LOCATION_POINTS = 20
BUDGET_POINTS = 25
BUDGET_GRACE_POINTS = 15
BUDGET_GRACE_RATIO = 0.10
BEDROOM_POINTS = 8
BATHROOM_POINTS = 4
AREA_POINTS = 8
FLOOR_POINTS = 5
AMENITY_POINTS = 20

CURRENCY_SYMBOLS = {"INR": "₹", "USD": "$", "EUR": "€", "GBP": "£", "AED": "AED "}


def format_price(price: float, currency: str = "INR") -> str:
    symbol = CURRENCY_SYMBOLS.get((currency or "").upper(), f"{currency} " if currency else "")
    return f"{symbol}{price:,.0f}"


def _format_number(value: float) -> str:
    return f"{value:g}"


def _normalize(name: Optional[str]) -> str:
    return (name or "").strip().casefold()


def property_area(location: PropertyLocation) -> Optional[str]:
    """Area used for location matching; falls back to the city"""
    return location.area or location.city


def estimate_distance_km(
    preferred: LocationPreference, location: PropertyLocation, different_city_km: Optional[float] = None
) -> float:
    """Coarse placeholder distance: 0 within the same city, a fixed nominal distance otherwise"""
    if different_city_km is None:
        different_city_km = settings.DIFFERENT_CITY_DISTANCE_KM
    # Two unknown cities are not treated as the same city, so they get the nominal distance, not 0
    if preferred.city and location.city and _normalize(preferred.city) == _normalize(location.city):
        return 0.0
    return different_city_km


def _score_location(preferences: BuyerPreferences, prop: Property) -> Tuple[int, List[str]]:
    preferred = preferences.location
    if preferred is None:
        return 0, []

    area = property_area(prop.location)
    if area and _normalize(area) in {_normalize(a) for a in preferred.areas}:
        return LOCATION_POINTS, [f"Perfect location match in {area}"]

    if preferred.radius_km and estimate_distance_km(preferred, prop.location) <= preferred.radius_km:
        near = prop.location.city or area
        return NEARBY_LOCATION_POINTS, [f"Within {_format_number(preferred.radius_km)} km of your preferred location ({near})"]

    return 0, []


def _score_budget(preferences: BuyerPreferences, prop: Property) -> Tuple[int, List[str]]:
    budget = preferences.budget
    if budget is None or (budget.min is None and budget.max is None):
        return 0, []

    price = prop.price
    above_min = budget.min is None or budget.min <= price
    below_max = budget.max is None or price <= budget.max
    if above_min and below_max:
        return BUDGET_POINTS, [f"Price {format_price(price, prop.currency)} fits your budget"]

    if budget.max and price > budget.max and (price - budget.max) / budget.max < BUDGET_GRACE_RATIO:
        return BUDGET_GRACE_POINTS, [f"Price {format_price(price, prop.currency)} is just above your budget"]

    return 0, []


def _score_specifications(preferences: BuyerPreferences, prop: Property) -> Tuple[int, List[str]]:
    wanted = preferences.specifications
    if wanted is None:
        return 0, []

    specs = prop.specifications
    points = 0
    reasons = []

    if wanted.bedrooms and wanted.bedrooms.contains(specs.bedrooms):
        points += BEDROOM_POINTS
        reasons.append(f"{specs.bedrooms} bedrooms match your preference")

    if wanted.bathrooms and wanted.bathrooms.contains(specs.bathrooms):
        points += BATHROOM_POINTS
        reasons.append(f"{specs.bathrooms} bathrooms match your preference")

    if wanted.area_sqft and wanted.area_sqft.contains(specs.area_sqft):
        points += AREA_POINTS
        reasons.append(f"{_format_number(specs.area_sqft)} sq.ft area is within your range")

    if wanted.floor and wanted.floor.contains(specs.floor):
        points += FLOOR_POINTS
        reasons.append(f"Floor {specs.floor} is one you prefer")

    return points, reasons


def _score_amenities(preferences: BuyerPreferences, prop: Property) -> Tuple[float, List[str]]:
    wished = preferences.amenities
    if not wished:
        return 0.0, []

    available = {_normalize(a) for a in prop.amenities}
    matched = [a for a in wished if _normalize(a) in available]
    if not matched:
        return 0.0, []

    return len(matched) / len(wished) * AMENITY_POINTS, [f"Amenities you want: {', '.join(matched)}"]


def score_property(preferences: BuyerPreferences, prop: Property) -> MatchScore:
    """Score a property against buyer preferences. Pure, no I/O."""
    total = 0.0
    reasons: List[str] = []

    for bucket in (_score_location, _score_budget, _score_specifications, _score_amenities):
        points, bucket_reasons = bucket(preferences, prop)
        total += points
        reasons.extend(bucket_reasons)

    # Round half up, clamp for rounding safety
    score = max(0, min(100, int(math.floor(total + 0.5))))
    return MatchScore(score=score, reasons=reasons)
