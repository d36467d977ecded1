from enum import Enum
from pydantic import BaseModel, Field, computed_field


class ViolationCategory(str, Enum):
    TRAFFIC = "Traffic"
    ENVIRONMENTAL = "Environmental"
    INDUSTRIAL = "Industrial"
    CIVIC = "Civic"
    NONE = "None"


class Severity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class VerdictOutcome(str, Enum):
    VIOLATION = "violation"
    COMPLIANT = "compliant"
    INSUFFICIENT_EVIDENCE = "insufficient_evidence"
    UNPARSEABLE = "unparseable"


class ViolationVerdict(BaseModel):
    """Structured result of classifying one image. Immutable once created."""

    violation_detected: bool
    category: ViolationCategory = ViolationCategory.NONE
    title: str = ""
    description: str = ""
    applicable_law: str = "N/A"
    estimated_fine: str = "N/A"
    severity: Severity = Severity.LOW
    preventive_action: str = ""

    # Model's own statement that the scene shows enough to decide
    evidence_sufficient: bool = True
    # Set only when the model output could not be coerced to this schema
    parse_error: bool = Field(False, description="Model output could not be parsed.")

    model_config = {
        "frozen": True
    }

    @computed_field
    @property
    def outcome(self) -> VerdictOutcome:
        if self.parse_error:
            return VerdictOutcome.UNPARSEABLE
        if not self.evidence_sufficient:
            return VerdictOutcome.INSUFFICIENT_EVIDENCE
        if self.violation_detected and self.category != ViolationCategory.NONE:
            return VerdictOutcome.VIOLATION
        if self.violation_detected:
            # A detection without any category is not something we can route
            return VerdictOutcome.INSUFFICIENT_EVIDENCE
        return VerdictOutcome.COMPLIANT

    @computed_field
    @property
    def is_actionable(self) -> bool:
        return self.outcome == VerdictOutcome.VIOLATION
