import asyncio

import pytest

from ecolens.schemas.authority import ReportLocation, SearchIntent, SourceConfidence
from ecolens.services.authority_resolver import AuthorityResolver, RoutingRules

from fakes import FakePoiClient


KOCHI = ReportLocation(place="Kochi", latitude=9.93, longitude=76.26)
THRISSUR = ReportLocation(place="Thrissur", latitude=10.52, longitude=76.21)


@pytest.mark.asyncio
async def test_block_list_applies_before_allow_list():
    poi = FakePoiClient({
        "Traffic Police Station Kochi": ["Police Public School", "Kochi Traffic Police Station"],
    })
    match = await AuthorityResolver(poi).resolve("Traffic", KOCHI)

    assert match.name == "Kochi Traffic Police Station"
    assert match.source_confidence == SourceConfidence.VERIFIED
    assert match.intent == SearchIntent.TRAFFIC


@pytest.mark.asyncio
async def test_synthesized_name_when_nothing_qualifies():
    poi = FakePoiClient({"Municipality Office Ernakulam": ["Hotel Grand", "City Mall"]})
    match = await AuthorityResolver(poi).resolve(
        "Environmental", ReportLocation(place="Ernakulam")
    )

    assert match.name == "Ernakulam Municipality Office"
    assert match.source_confidence == SourceConfidence.SYNTHESIZED
    assert poi.queries == [
        "Municipality Office Ernakulam",
        "Panchayat Office Ernakulam",
        "Health Centre Ernakulam",
    ]


@pytest.mark.asyncio
async def test_waterfall_stops_at_first_qualifying_query():
    poi = FakePoiClient({
        "Traffic Police Station Kochi": [],
        "Police Station Kochi": ["Ernakulam North Police Station"],
        "RTO Kochi": ["RTO Ernakulam"],
    })
    match = await AuthorityResolver(poi).resolve("Traffic", KOCHI)

    assert match.name == "Ernakulam North Police Station"
    assert "RTO Kochi" not in poi.queries


@pytest.mark.asyncio
async def test_search_failure_degrades_to_synthesized_name():
    poi = FakePoiClient(error=ConnectionError("network unreachable"))
    match = await AuthorityResolver(poi).resolve("Traffic", KOCHI)

    assert match.name == "Kochi Traffic Police Station"
    assert match.source_confidence == SourceConfidence.SYNTHESIZED
    assert len(poi.queries) == 3


@pytest.mark.asyncio
async def test_slow_search_is_treated_as_empty():
    class SlowPoi(FakePoiClient):
        async def search(self, *args):
            await asyncio.sleep(0.5)
            return ["Fire Station Kakkanad"]

    resolver = AuthorityResolver(SlowPoi(), timeout_seconds=0.05)
    match = await resolver.resolve("Fire hazard", KOCHI)
    assert match.name == "Kochi Fire Station"


@pytest.mark.asyncio
async def test_fire_and_general_intents():
    poi = FakePoiClient()
    resolver = AuthorityResolver(poi)

    assert (await resolver.resolve("thick smoke", KOCHI)).name == "Kochi Fire Station"
    assert (await resolver.resolve("Civic", KOCHI)).name == "Kochi Police Station"
    assert (await resolver.resolve(None, KOCHI)).intent == SearchIntent.GENERAL


@pytest.mark.asyncio
async def test_blank_place_still_yields_a_name():
    match = await AuthorityResolver(FakePoiClient()).resolve("Traffic", ReportLocation(place="  "))
    assert match.name == "Local Traffic Police Station"


@pytest.mark.asyncio
async def test_resolution_is_idempotent():
    poi = FakePoiClient({"Police Station Kochi": ["Central Police Station"]})
    resolver = AuthorityResolver(poi)

    first = await resolver.resolve("Civic", KOCHI)
    second = await resolver.resolve("Civic", KOCHI)
    assert first == second


def test_select_candidate_requires_allow_keyword():
    resolver = AuthorityResolver(FakePoiClient())
    assert resolver.select_candidate(["Lulu Mall", "Fire Station Aluva"], SearchIntent.FIRE) == "Fire Station Aluva"
    assert resolver.select_candidate(["Lulu Mall"], SearchIntent.FIRE) is None
    assert resolver.select_candidate([], SearchIntent.TRAFFIC) is None


def test_rules_load_from_yaml(tmp_path):
    rules_file = tmp_path / "rules.yaml"
    rules_file.write_text(
        "blocklist: [temple]\n"
        "intents:\n"
        "  Traffic:\n"
        "    queries: ['Traffic Enforcement Unit {place}']\n"
        "    allow: [Enforcement]\n"
        "    fallback_label: Traffic Enforcement Unit\n",
        encoding="utf-8",
    )
    rules = RoutingRules.load(str(rules_file), extra_blocklist=["Mall"])

    assert rules.blocklist == ("temple", "mall")
    traffic = rules.profile_for(SearchIntent.TRAFFIC)
    assert traffic.queries == ("Traffic Enforcement Unit {place}",)
    assert traffic.allow_keywords == ("enforcement",)
    # Intents not named in the file keep their defaults
    assert rules.profile_for(SearchIntent.FIRE).fallback_label == "Fire Station"


def test_rules_default_without_file():
    rules = RoutingRules.load(None, extra_blocklist=["Temple"])
    assert "school" in rules.blocklist
    assert "temple" in rules.blocklist
    assert rules.is_blocked("Sree Krishna TEMPLE Police Aid Post")


@pytest.mark.asyncio
async def test_thrissur_traffic_station_is_verified():
    poi = FakePoiClient({"Traffic Police Station Thrissur": ["Thrissur Traffic Police Station"]})
    match = await AuthorityResolver(poi).resolve("Traffic", THRISSUR)

    assert match.name == "Thrissur Traffic Police Station"
    assert match.source_confidence == SourceConfidence.VERIFIED


@pytest.mark.asyncio
async def test_blocked_names_with_allow_words_fall_back_to_synthesized():
    # "Police Academy" carries the allow-word "police" but "academy" is blocked
    rejected = ["Thrissur Grand Hotel", "Thrissur Police Academy"]
    poi = FakePoiClient({
        "Traffic Police Station Thrissur": rejected,
        "Police Station Thrissur": rejected,
        "RTO Thrissur": rejected,
    })
    match = await AuthorityResolver(poi).resolve("Traffic", THRISSUR)

    assert match.name == "Thrissur Traffic Police Station"
    assert match.source_confidence == SourceConfidence.SYNTHESIZED
    assert len(poi.queries) == 3


@pytest.mark.asyncio
async def test_partial_coordinates_are_not_sent():
    poi = FakePoiClient()
    resolver = AuthorityResolver(poi)

    await resolver.resolve("Fire", ReportLocation(place="Kochi", latitude=9.93))
    await resolver.resolve("Fire", KOCHI)

    assert poi.coordinates == [(None, None), (9.93, 76.26)]
