from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class SearchIntent(str, Enum):
    """Bucket used to select authority-search queries."""
    TRAFFIC = "Traffic"
    ENVIRONMENTAL = "Environmental"
    FIRE = "Fire"
    GENERAL = "General"


class SourceConfidence(str, Enum):
    VERIFIED = "Verified"        # Found through POI search
    SYNTHESIZED = "Synthesized"  # Deterministic fallback name


class AuthorityMatch(BaseModel):
    name: str = Field(..., min_length=1)
    source_confidence: SourceConfidence
    intent: SearchIntent

    model_config = {
        "frozen": True
    }


class ReportLocation(BaseModel):
    """Where the offense was observed."""

    # Human-readable administrative area (from reverse geocoding)
    place: str = Field(..., max_length=255)
    latitude: Optional[float] = Field(None, ge=-90.0, le=90.0)
    longitude: Optional[float] = Field(None, ge=-180.0, le=180.0)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None
