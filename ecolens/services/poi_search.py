"""Point-of-interest text search used to locate enforcement offices."""

import logging
from typing import List, Optional
from urllib.parse import quote

import requests
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)


class PoiSearchClient:
    """Capability interface: query + coordinates + radius in, ranked POI names out."""

    async def search(
        self,
        query: str,
        latitude: Optional[float],
        longitude: Optional[float],
        radius_m: int,
        limit: int
    ) -> List[str]:
        raise NotImplementedError


class TomTomSearchClient(PoiSearchClient):
    """TomTom Search API (`/search/2/search/{query}.json`)."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.tomtom.com/search/2/search",
        timeout: float = 5.0
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _search(self, query, latitude, longitude, radius_m, limit) -> List[str]:
        params = {"key": self.api_key, "limit": limit}
        if latitude is not None and longitude is not None:
            params.update({"lat": latitude, "lon": longitude, "radius": radius_m})

        # No shared Session: this runs concurrently in threadpool workers
        response = requests.get(
            f"{self.base_url}/{quote(query, safe='')}.json",
            params=params,
            timeout=self.timeout,
        )
        response.raise_for_status()
        data = response.json()

        names = []
        for item in data.get("results") or []:
            name = (item.get("poi") or {}).get("name")
            if name:
                names.append(name)
        return names

    async def search(self, query, latitude, longitude, radius_m, limit) -> List[str]:
        return await run_in_threadpool(self._search, query, latitude, longitude, radius_m, limit)
