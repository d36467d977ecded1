from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field

from ecolens.schemas.authority import SourceConfidence


class ReportResponse(BaseModel):
    """Schema for returning a stored report to its reporter."""
    id: UUID
    reference: str
    title: str
    category: str
    severity: str
    description: str
    applicable_law: str
    estimated_fine: str
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: str
    forwarded_to: Optional[str] = None
    authority_confidence: Optional[str] = None
    offense_date: str
    offense_time: str
    created_at: datetime

    # Configuration to handle SQLAlchemy objects
    model_config = {
        "from_attributes": True
    }


class ReportSubmissionResponse(BaseModel):
    """Acknowledgement returned after a report has been filed."""
    report: ReportResponse
    forwarded_to: str = Field(..., description="Authority the report was routed to.")
    source_confidence: SourceConfidence
    reference: str
