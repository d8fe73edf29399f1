"""
Models for persisted property matches and matching results
"""

from datetime import datetime, UTC
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.property import Property


class MatchScore(BaseModel):
    """Output of the scoring function"""
    score: int = Field(..., ge=0, le=100)
    reasons: List[str] = []


class PropertyMatch(BaseModel):
    """Persisted match between a property and a buyer profile, unique per pair"""

    id: Optional[str] = None
    property_id: str
    buyer_profile_id: str
    organization_id: Optional[str] = None

    match_score: int = Field(..., ge=0, le=100)
    match_reasons: List[str] = []

    notified: bool = False
    notified_at: Optional[datetime] = None

    # Rewritten on every rescoring
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class RankedProperty(BaseModel):
    """Property returned by recommendation and search queries"""
    property: Property
    match_score: int
    match_reasons: List[str] = []


class PropertySearchCriteria(BaseModel):
    """Explicit overrides for a manual search; omitted fields fall back to buyer preferences"""
    property_type: Optional[str] = None
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)
    location: Optional[str] = None
    featured: Optional[bool] = None


class MatchingRunResult(BaseModel):
    success: bool
    matches_created: int = 0
    matches: List[PropertyMatch] = []
    error: Optional[str] = None


class BulkMatchResult(MatchingRunResult):
    duration_seconds: float = 0.0
    matches_per_second: float = 0.0
    purged_matches: int = 0


class DispatchSummary(BaseModel):
    sent: int = 0
    skipped: int = 0
    failed: int = 0


class MatchingStats(BaseModel):
    total_matches: int = 0
    avg_match_score: Optional[float] = None
    excellent_matches: int = 0  # >= 90
    good_matches: int = 0  # 80-89
    fair_matches: int = 0  # 70-79
    notified_matches: int = 0
    avg_notification_time_hours: Optional[float] = None
