"""Extraction of the JSON object embedded in free-form model output."""

import copy
import json
import logging
import re
from typing import Any, Dict, Optional

from ecolens.core.errors import ErrorType

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)

# Returned when model output cannot be parsed. `parse_error` keeps it apart
# from a genuine "no violation" verdict.
UNPARSEABLE_VERDICT: Dict[str, Any] = {
    "violation_detected": False,
    "category": "None",
    "title": "Unable to parse AI response",
    "description": "The model returned a response that could not be read as a verdict.",
    "applicable_law": "N/A",
    "estimated_fine": "N/A",
    "severity": "Low",
    "preventive_action": "",
    "evidence_sufficient": False,
    "parse_error": True,
}


def normalize_model_output(
    text: Optional[str],
    fallback: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Extract and parse the JSON object contained in raw model text.

    Code fences are stripped, then the substring from the first '{' to the
    last '}' is parsed. Never raises.

    Args:
        text: Raw model output, possibly fenced or surrounded by prose
        fallback: Object returned (as a copy) when nothing parses.
            Defaults to UNPARSEABLE_VERDICT.

    Returns:
        The parsed JSON object, or a copy of the fallback
    """
    if fallback is None:
        fallback = UNPARSEABLE_VERDICT

    cleaned = _CODE_FENCE.sub("", text or "").strip()
    first_brace = cleaned.find("{")
    last_brace = cleaned.rfind("}")

    if first_brace == -1 or last_brace == -1 or last_brace < first_brace:
        logger.warning(
            "%s: no JSON object in model output: %.200s",
            ErrorType.UNPARSEABLE_MODEL_OUTPUT.value, cleaned
        )
        return copy.deepcopy(fallback)

    try:
        parsed = json.loads(cleaned[first_brace:last_brace + 1])
    except json.JSONDecodeError as e:
        logger.warning(
            "%s: %s in model output: %.200s",
            ErrorType.UNPARSEABLE_MODEL_OUTPUT.value, e, cleaned
        )
        return copy.deepcopy(fallback)

    if not isinstance(parsed, dict):
        return copy.deepcopy(fallback)

    return parsed
