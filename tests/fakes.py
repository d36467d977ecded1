"""In-memory stand-ins for the model, POI search and mail collaborators."""

import asyncio
from typing import Dict, List, Optional

from ecolens.services.model_adapter import ModelProvider, ProviderError, ProviderRateLimited
from ecolens.services.poi_search import PoiSearchClient


class ScriptedProvider(ModelProvider):
    """Returns `reply`, or raises `error` when one is given."""

    def __init__(self, name: str, reply: str = "{}", error: Optional[Exception] = None, delay: float = 0.0):
        self.name = name
        self.reply = reply
        self.error = error
        self.delay = delay
        self.calls = 0
        self.prompts: List[str] = []

    async def generate(self, prompt, image=None, mime_type="image/jpeg"):
        self.calls += 1
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


def rate_limited(name: str) -> ScriptedProvider:
    return ScriptedProvider(name, error=ProviderRateLimited("quota exceeded"))


def failing(name: str) -> ScriptedProvider:
    return ScriptedProvider(name, error=ProviderError("internal error"))


class RecordingSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakePoiClient(PoiSearchClient):
    """Answers queries from a dict; unknown queries return nothing."""

    def __init__(self, results: Optional[Dict[str, List[str]]] = None, error: Optional[Exception] = None):
        self.results = results or {}
        self.error = error
        self.queries: List[str] = []
        self.coordinates: List[tuple] = []

    async def search(self, query, latitude, longitude, radius_m, limit):
        self.queries.append(query)
        self.coordinates.append((latitude, longitude))
        if self.error is not None:
            raise self.error
        return list(self.results.get(query, []))[:limit]


class FakeNotifier:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.sent = []

    async def send_authority_alert(self, report, reporter_email, evidence):
        if self.error is not None:
            raise self.error
        self.sent.append((report.id, report.forwarded_to, reporter_email, len(evidence)))
