from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # === PUBLIC DATA (not secrets) ===
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Property Matching Service"

    # === DATABASE SETTINGS (from .env) ===
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017/property_matching", description="MongoDB connection string"
    )

    # === APPLICATION SETTINGS ===
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")

    # === NOTIFICATION SETTINGS (from .env) ===
    TELEGRAM_BOT_TOKEN: Optional[str] = Field(None, description="Bot token used to send match notifications")
    SKIP_ALREADY_NOTIFIED: bool = Field(
        default=False, description="Do not re-send notifications for matches that are already marked notified"
    )

    # === MATCHING SETTINGS ===
    AUTO_MATCH_THRESHOLD: int = Field(default=60, ge=0, le=100, description="Minimum score persisted as a match")
    RECOMMENDATION_THRESHOLD: int = Field(
        default=70, ge=0, le=100, description="Minimum score returned by on-demand recommendations"
    )
    RECENT_PROPERTY_WINDOW_HOURS: int = Field(
        default=24, description="Age of properties considered by an untriggered matching run"
    )
    DIFFERENT_CITY_DISTANCE_KM: float = Field(
        default=10.0, description="Nominal distance used when a property is in another city"
    )
    MATCHING_CONCURRENCY: int = Field(default=1, ge=1, description="Properties processed in parallel per run")

    # === PAGE SIZES ===
    RECOMMENDATION_PAGE_SIZE: int = Field(default=1000)
    SEARCH_PAGE_SIZE: int = Field(default=50)
    BUYER_PAGE_SIZE: int = Field(default=500, description="Batch size used when loading buyer profiles")

    # === RECONCILIATION SETTINGS ===
    MATCH_RETENTION_DAYS: int = Field(default=30, description="Matches older than this are purged before bulk runs")
    RETENTION_SWEEP_SCOPE: str = Field(default="global", description="global or organization")
    RECONCILIATION_INTERVAL_HOURS: float = Field(
        default=0, description="Interval of the periodic bulk reconciliation (0 = disabled)"
    )
    RECONCILIATION_ORGANIZATION_IDS: str = Field(
        default="", description="Organizations reconciled periodically (comma-separated)"
    )

    @property
    def reconciliation_organizations_list(self) -> List[str]:
        """Get organizations for periodic reconciliation as a list"""
        if not self.RECONCILIATION_ORGANIZATION_IDS:
            return []

        return [org.strip() for org in self.RECONCILIATION_ORGANIZATION_IDS.split(",") if org.strip()]

    @property
    def retention_sweep_is_global(self) -> bool:
        return self.RETENTION_SWEEP_SCOPE.strip().lower() != "organization"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
