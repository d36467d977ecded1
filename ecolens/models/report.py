from enum import Enum
from sqlalchemy import Column, String, ForeignKey, Float, Text, Uuid
from sqlalchemy.orm import relationship, validates
from .base import BaseModel


class ReportStatus(str, Enum):
    PENDING = "Pending"
    FORWARDED = "Forwarded"


class ViolationReport(BaseModel):
    """Corresponds to the 'violation_reports' table (citizen reports routed to an authority)."""
    __tablename__ = 'violation_reports'

    reporter_id = Column(
        Uuid(as_uuid=True),
        ForeignKey('users.id', ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    title = Column(String(255), nullable=False)
    category = Column(String(50), nullable=False)   # ViolationCategory value
    severity = Column(String(20), nullable=False)   # Severity value
    description = Column(Text, nullable=False, default="")
    applicable_law = Column(String(500), nullable=False, default="N/A")
    estimated_fine = Column(String(100), nullable=False, default="N/A")

    location = Column(String(255), nullable=False)
    latitude = Column(Float)
    longitude = Column(Float)

    # File name of the stored evidence under MEDIA_ROOT
    evidence_path = Column(String(255), nullable=False)
    evidence_mime_type = Column(String(50), nullable=False, default="image/jpeg")

    status = Column(String(20), nullable=False, default=ReportStatus.PENDING.value)
    forwarded_to = Column(String(255))
    authority_confidence = Column(String(20))  # SourceConfidence value

    offense_date = Column(String(20), nullable=False)
    offense_time = Column(String(20), nullable=False)

    reporter = relationship("User", backref="reports")

    @validates("status")
    def validate_status(self, key, value):
        value = ReportStatus(value).value
        current = self.status
        if current is None or current == value:
            return value
        # Only a single Pending -> Forwarded hop is allowed
        if current == ReportStatus.PENDING.value and value == ReportStatus.FORWARDED.value:
            return value
        raise ValueError(f"Illegal report status transition {current} -> {value}")

    @validates("forwarded_to")
    def validate_forwarded_to(self, key, value):
        if self.forwarded_to is not None and value != self.forwarded_to:
            raise ValueError("forwarded_to cannot be changed once set")
        return value

    def mark_forwarded(self, authority_name: str, confidence: str) -> None:
        """Record the routing decision and move the report to Forwarded."""
        self.forwarded_to = authority_name
        self.authority_confidence = confidence
        self.status = ReportStatus.FORWARDED.value

    @property
    def reference(self) -> str:
        """Short acknowledgement id shown to the reporter."""
        return self.id.hex[-6:].upper() if self.id else ""
