"""Violation classification of a single evidence image."""

import logging
from typing import Any, Dict, Optional

from ecolens.schemas.verdict import Severity, ViolationCategory, ViolationVerdict
from ecolens.services.model_adapter import ModelInvoker
from ecolens.services.normalizer import UNPARSEABLE_VERDICT, normalize_model_output
from ecolens.services.taxonomy import coerce_category

logger = logging.getLogger(__name__)

ENFORCEMENT_PROMPT = """
You are an AI Environmental and Traffic Compliance Analyst for {area}, India.

CRITICAL INSTRUCTIONS:
- Analyze ONLY what is VISIBLE in the image
- Do NOT assume facts that cannot be seen
- If a violation is visible, report it
- If a violation is NOT clearly visible, set "evidence_sufficient" to false
- Do NOT default to "no violation" unless the image is clearly compliant

CHECK STRICTLY FOR:

1. Traffic Violations:
   - Rider without helmet
   - Driver without seatbelt
   - Triple riding on a two-wheeler
   - Obscured / missing number plate

2. Environmental Violations:
   - Open burning of waste
   - Thick black smoke
   - Burning of tires, plastic, chemical containers
   - Littering or garbage dumping in public places

3. Industrial Violations:
   - Illegal waste or effluent dumping
   - Uncontrolled emissions

For a detected violation, cite the exact Indian Act and Section that applies
and estimate the fine in Indian Rupees at current rates.

RETURN JSON ONLY (NO MARKDOWN, NO EXTRA TEXT):

{{
  "violation_detected": true | false,
  "evidence_sufficient": true | false,
  "category": "Traffic | Environmental | Industrial | Civic | None",
  "title": "Precise violation name, or 'No Violation'",
  "description": "What is clearly visible in the image",
  "applicable_law": "Specific Act & Section, or N/A",
  "estimated_fine": "₹ amount, or N/A",
  "severity": "Low | Medium | High",
  "preventive_action": "Corrective action"
}}
"""

# Accepted spellings of each verdict field, in order of preference
_FIELD_ALIASES = {
    "violation_detected": ("violation_detected", "violationDetected", "violation"),
    "title": ("title", "summary"),
    "description": ("description", "detailed_observation", "explanation"),
    "applicable_law": ("applicable_law", "applicableLaw", "law"),
    "estimated_fine": ("estimated_fine", "estimatedFine", "fineAmount", "fine_amount"),
    "preventive_action": ("preventive_action", "preventiveAction", "prevention_advice"),
    "evidence_sufficient": ("evidence_sufficient", "evidenceSufficient"),
}


def build_enforcement_prompt(area: Optional[str]) -> str:
    return ENFORCEMENT_PROMPT.format(area=(area or "").strip() or "the local jurisdiction")


def _pick(payload: Dict[str, Any], field: str, default: Any = None) -> Any:
    for key in _FIELD_ALIASES.get(field, (field,)):
        if key in payload and payload[key] is not None:
            return payload[key]
    return default


def _parse_bool(value: Any) -> Optional[bool]:
    """Read a model boolean; None when the value is not recognisably one."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_bool(value: Any, default: bool) -> bool:
    parsed = _parse_bool(value)
    return default if parsed is None else parsed


def _as_text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _coerce_severity(value: Any) -> Severity:
    text = _as_text(value).lower()
    for severity in Severity:
        if severity.value.lower() in text:
            return severity
    return Severity.MEDIUM


def verdict_from_payload(payload: Dict[str, Any]) -> ViolationVerdict:
    """
    Build a verdict from a normalized model payload.

    A payload without any detection field cannot be trusted as a verdict and
    is turned into the unparseable fallback.
    """
    if payload.get("parse_error") or _pick(payload, "violation_detected") is None:
        payload = UNPARSEABLE_VERDICT

    raw_detected = _pick(payload, "violation_detected")
    detected = _parse_bool(raw_detected)
    evidence_sufficient = _as_bool(_pick(payload, "evidence_sufficient"), True)
    if detected is None:
        # e.g. "Insufficient visual evidence": undecided, never "no violation"
        logger.warning(f"Model gave no clear detection value: {raw_detected!r}")
        detected = False
        evidence_sufficient = False

    category = coerce_category(_as_text(payload.get("category")))
    if detected and category == ViolationCategory.NONE:
        logger.warning("Model reported a violation without a category")

    return ViolationVerdict(
        violation_detected=detected,
        category=category,
        title=_as_text(_pick(payload, "title"), "Detected Violation" if detected else "No Violation"),
        description=_as_text(_pick(payload, "description")),
        applicable_law=_as_text(_pick(payload, "applicable_law"), "N/A"),
        estimated_fine=_as_text(_pick(payload, "estimated_fine"), "N/A"),
        severity=_coerce_severity(payload.get("severity")) if detected else Severity.LOW,
        preventive_action=_as_text(_pick(payload, "preventive_action")),
        evidence_sufficient=evidence_sufficient,
        parse_error=bool(payload.get("parse_error", False)),
    )


class ViolationClassifier:
    """Prompt -> model -> normalizer -> ViolationVerdict."""

    def __init__(self, invoker: ModelInvoker):
        self.invoker = invoker

    async def classify(
        self,
        image: bytes,
        mime_type: str,
        area: Optional[str]
    ) -> ViolationVerdict:
        """
        Classify one evidence image.

        Raises:
            ModelUnavailableError: If no model candidate answered
            InvalidImageError: If the image does not match `mime_type`
        """
        prompt = build_enforcement_prompt(area)
        raw_text = await self.invoker.invoke(prompt, image, mime_type)
        verdict = verdict_from_payload(normalize_model_output(raw_text))

        logger.info(
            f"Classified image for {area!r}: outcome={verdict.outcome.value}, "
            f"category={verdict.category.value}, severity={verdict.severity.value}"
        )
        return verdict
