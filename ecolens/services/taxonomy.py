"""
Shared category table.

Both the classifier (free-text model category -> ViolationCategory) and the
authority resolver (category -> SearchIntent) read the same rows, first match wins.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from ecolens.schemas.authority import SearchIntent
from ecolens.schemas.verdict import ViolationCategory


@dataclass(frozen=True)
class CategoryRule:
    keywords: Tuple[str, ...]
    category: ViolationCategory
    intent: SearchIntent


CATEGORY_RULES: Tuple[CategoryRule, ...] = (
    CategoryRule(
        keywords=("traffic", "vehicle", "helmet", "license", "licence", "seatbelt",
                  "number plate", "triple riding"),
        category=ViolationCategory.TRAFFIC,
        intent=SearchIntent.TRAFFIC,
    ),
    CategoryRule(
        keywords=("industrial", "factory", "effluent", "emission"),
        category=ViolationCategory.INDUSTRIAL,
        intent=SearchIntent.ENVIRONMENTAL,
    ),
    CategoryRule(
        keywords=("environmental", "waste", "garbage", "burn", "dump", "litter", "pollution"),
        category=ViolationCategory.ENVIRONMENTAL,
        intent=SearchIntent.ENVIRONMENTAL,
    ),
    CategoryRule(
        keywords=("fire", "smoke"),
        category=ViolationCategory.ENVIRONMENTAL,
        intent=SearchIntent.FIRE,
    ),
    CategoryRule(
        keywords=("civic", "encroach", "pothole", "road", "infrastructure"),
        category=ViolationCategory.CIVIC,
        intent=SearchIntent.GENERAL,
    ),
)

_NONE_LABELS = {"", "none", "n/a", "no violation", "null"}


def match_rule(text: Optional[str]) -> Optional[CategoryRule]:
    """Return the first rule whose keywords appear in `text` (case-insensitive)."""
    lowered = (text or "").lower()
    if not lowered:
        return None
    for rule in CATEGORY_RULES:
        if any(keyword in lowered for keyword in rule.keywords):
            return rule
    return None


def coerce_category(raw: Optional[str]) -> ViolationCategory:
    """Map a free-text category from model output onto the closed enumeration."""
    cleaned = (raw or "").strip()
    if cleaned.lower() in _NONE_LABELS:
        return ViolationCategory.NONE

    for category in ViolationCategory:
        if cleaned.lower() == category.value.lower():
            return category

    rule = match_rule(cleaned)
    return rule.category if rule else ViolationCategory.CIVIC


def bucket_intent(category: Optional[str]) -> SearchIntent:
    """Choose the authority-search intent for a category string."""
    if isinstance(category, ViolationCategory):
        category = category.value
    rule = match_rule(category)
    return rule.intent if rule else SearchIntent.GENERAL
