"""Traffic and environmental rules enforced in a given place, as told by the model."""

import logging
from typing import Any, List

from ecolens.schemas.laws import LocalRule, LocalRules
from ecolens.services.model_adapter import ModelInvoker
from ecolens.services.normalizer import normalize_model_output

logger = logging.getLogger(__name__)

LOCAL_RULES_PROMPT = """
You are a legal expert for {location}.
List 4 specific TRAFFIC rules and 4 ENVIRONMENTAL rules enforced in {location}.
Include the typical Fine Amount in the description.

Output STRICT JSON format only:
{{
  "traffic": [ {{ "title": "Rule Name", "desc": "Brief description with Fine amount." }} ],
  "eco": [ {{ "title": "Rule Name", "desc": "Brief description with Fine amount." }} ]
}}
"""

_EMPTY_RULES = {"traffic": [], "eco": [], "parse_error": True}


def _rules(items: Any) -> List[LocalRule]:
    rules = []
    for item in items if isinstance(items, list) else []:
        if isinstance(item, dict) and item.get("title"):
            rules.append(LocalRule(title=str(item["title"]), desc=str(item.get("desc", ""))))
    return rules


class LocalLawAdvisor:

    def __init__(self, invoker: ModelInvoker):
        self.invoker = invoker

    async def fetch_rules(self, location: str) -> LocalRules:
        """
        Ask the model for the rules in `location`.

        Raises:
            ModelUnavailableError: If no model candidate answered
        """
        logger.info(f"Fetching local rules for: {location}")
        text = await self.invoker.invoke(LOCAL_RULES_PROMPT.format(location=location))
        payload = normalize_model_output(text, fallback=_EMPTY_RULES)

        return LocalRules(
            location=location,
            traffic=_rules(payload.get("traffic")),
            eco=_rules(payload.get("eco")),
            parse_error=bool(payload.get("parse_error", False)),
        )
