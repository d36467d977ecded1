"""
Authority routing.

Given a violation category and a location, search nearby points of interest
for the office that should receive the report. Results go through a global
block list and an intent-specific allow list; the first survivor wins. When
nothing survives, a deterministic name is synthesized from the place.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import yaml

from ecolens.core.config import Settings
from ecolens.core.errors import ErrorType
from ecolens.schemas.authority import AuthorityMatch, ReportLocation, SearchIntent, SourceConfidence
from ecolens.services.poi_search import PoiSearchClient, TomTomSearchClient
from ecolens.services.taxonomy import bucket_intent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntentProfile:
    # Query templates, most specific first; "{place}" is substituted
    queries: Tuple[str, ...]
    allow_keywords: Tuple[str, ...]
    fallback_label: str


DEFAULT_INTENT_PROFILES: Dict[SearchIntent, IntentProfile] = {
    SearchIntent.TRAFFIC: IntentProfile(
        queries=("Traffic Police Station {place}", "Police Station {place}", "RTO {place}"),
        allow_keywords=("police", "station", "rto", "enforcement"),
        fallback_label="Traffic Police Station",
    ),
    SearchIntent.ENVIRONMENTAL: IntentProfile(
        queries=("Municipality Office {place}", "Panchayat Office {place}", "Health Centre {place}"),
        allow_keywords=("municipality", "panchayat", "corporation", "council", "health", "police"),
        fallback_label="Municipality Office",
    ),
    SearchIntent.FIRE: IntentProfile(
        queries=("Fire Station {place}",),
        allow_keywords=("fire",),
        fallback_label="Fire Station",
    ),
    SearchIntent.GENERAL: IntentProfile(
        queries=("Police Station {place}",),
        allow_keywords=("police", "station"),
        fallback_label="Police Station",
    ),
}

DEFAULT_BLOCKLIST: Tuple[str, ...] = (
    "educational", "school", "college", "academy", "bank", "atm", "post office",
    "hotel", "lodge", "residence", "quarters", "shop", "store", "canteen", "mess",
)


@dataclass
class RoutingRules:
    """Keyword data driving the search. Locale-specific, so kept out of the algorithm."""

    profiles: Dict[SearchIntent, IntentProfile] = field(
        default_factory=lambda: dict(DEFAULT_INTENT_PROFILES)
    )
    blocklist: Tuple[str, ...] = DEFAULT_BLOCKLIST

    def profile_for(self, intent: SearchIntent) -> IntentProfile:
        return self.profiles.get(intent) or DEFAULT_INTENT_PROFILES[intent]

    def is_blocked(self, name: str) -> bool:
        lowered = name.lower()
        return any(term in lowered for term in self.blocklist)

    def is_allowed(self, name: str, intent: SearchIntent) -> bool:
        lowered = name.lower()
        return any(term in lowered for term in self.profile_for(intent).allow_keywords)

    @classmethod
    def load(
        cls,
        rules_file: Optional[str] = None,
        extra_blocklist: Iterable[str] = ()
    ) -> "RoutingRules":
        """
        Build rules from the defaults, an optional YAML file, and extra block terms.

        YAML layout (every key optional):

            blocklist: [school, hotel, ...]
            intents:
              Traffic:
                queries: ["Traffic Police Station {place}", ...]
                allow: [police, station]
                fallback_label: Traffic Police Station
        """
        profiles = dict(DEFAULT_INTENT_PROFILES)
        blocklist: List[str] = list(DEFAULT_BLOCKLIST)

        if rules_file:
            with open(Path(rules_file), "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

            if data.get("blocklist"):
                blocklist = [str(term).lower() for term in data["blocklist"]]

            for intent_name, entry in (data.get("intents") or {}).items():
                intent = SearchIntent(intent_name)
                base = profiles[intent]
                profiles[intent] = IntentProfile(
                    queries=tuple(entry.get("queries") or base.queries),
                    allow_keywords=tuple(
                        str(term).lower() for term in (entry.get("allow") or base.allow_keywords)
                    ),
                    fallback_label=entry.get("fallback_label") or base.fallback_label,
                )
            logger.info(f"Loaded authority routing rules from {rules_file}")

        for term in extra_blocklist:
            if term and term.lower() not in blocklist:
                blocklist.append(term.lower())

        return cls(profiles=profiles, blocklist=tuple(blocklist))


class AuthorityResolver:
    """Waterfall POI search with block/allow filtering and deterministic fallback."""

    def __init__(
        self,
        poi_client: PoiSearchClient,
        rules: Optional[RoutingRules] = None,
        radius_m: int = 5000,
        limit: int = 5,
        timeout_seconds: Optional[float] = 5.0
    ):
        self.poi_client = poi_client
        self.rules = rules or RoutingRules()
        self.radius_m = radius_m
        self.limit = limit
        self.timeout_seconds = timeout_seconds

    def select_candidate(self, names: Sequence[str], intent: SearchIntent) -> Optional[str]:
        """Return the first name passing the block list, then the allow list."""
        for name in names:
            if not name:
                continue
            if self.rules.is_blocked(name):
                logger.debug(f"Rejected blocked POI: {name}")
                continue
            if self.rules.is_allowed(name, intent):
                return name
        return None

    def synthesize(self, place: str, intent: SearchIntent) -> AuthorityMatch:
        place = place.strip() or "Local"
        return AuthorityMatch(
            name=f"{place} {self.rules.profile_for(intent).fallback_label}",
            source_confidence=SourceConfidence.SYNTHESIZED,
            intent=intent,
        )

    async def _run_query(self, query: str, location: ReportLocation) -> List[str]:
        # A lone latitude or longitude is useless for a radius search
        if location.has_coordinates:
            latitude, longitude = location.latitude, location.longitude
        else:
            latitude = longitude = None

        try:
            names = await asyncio.wait_for(
                self.poi_client.search(query, latitude, longitude, self.radius_m, self.limit),
                timeout=self.timeout_seconds,
            )
            return list(names or [])
        except asyncio.TimeoutError:
            logger.warning(
                f"{ErrorType.AUTHORITY_SEARCH_DEGRADED.value}: query {query!r} timed out"
            )
        except Exception as e:
            logger.warning(
                f"{ErrorType.AUTHORITY_SEARCH_DEGRADED.value}: query {query!r} failed: {e}"
            )
        return []

    async def resolve(self, category: Optional[str], location: ReportLocation) -> AuthorityMatch:
        """
        Find the enforcement office for `category` near `location`.

        Never raises; search failures degrade to the synthesized name.
        """
        intent = bucket_intent(category)
        profile = self.rules.profile_for(intent)
        place = location.place.strip()

        for template in profile.queries:
            query = template.format(place=place).strip()
            logger.debug(f"Searching authority: {query}")

            names = await self._run_query(query, location)
            name = self.select_candidate(names, intent)
            if name:
                logger.info(f"Found verified authority for {intent.value}: {name}")
                return AuthorityMatch(
                    name=name,
                    source_confidence=SourceConfidence.VERIFIED,
                    intent=intent,
                )

        match = self.synthesize(place, intent)
        logger.info(
            f"{ErrorType.AUTHORITY_SEARCH_DEGRADED.value}: no verified {intent.value} authority "
            f"near {place!r}, using {match.name!r}"
        )
        return match


def build_authority_resolver(settings: Settings) -> AuthorityResolver:
    return AuthorityResolver(
        poi_client=TomTomSearchClient(
            api_key=settings.TOMTOM_API_KEY,
            base_url=settings.TOMTOM_BASE_URL,
            timeout=settings.POI_TIMEOUT_SECONDS,
        ),
        rules=RoutingRules.load(settings.AUTHORITY_RULES_FILE, settings.AUTHORITY_EXTRA_BLOCKLIST),
        radius_m=settings.POI_SEARCH_RADIUS_METERS,
        limit=settings.POI_SEARCH_LIMIT,
        timeout_seconds=settings.POI_TIMEOUT_SECONDS,
    )
