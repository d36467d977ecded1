"""Reverse geocoding of submission coordinates to a short place name."""

import logging
from typing import Optional

import requests
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

# Most local first
ADDRESS_FIELDS = ("suburb", "residential", "neighbourhood", "village", "town", "city", "county")


class NominatimGeocoder:
    """OpenStreetMap Nominatim `/reverse` client."""

    def __init__(
        self,
        url: str = "https://nominatim.openstreetmap.org/reverse",
        user_agent: str = "ecolens-enforcement-api",
        timeout: float = 5.0
    ):
        self.url = url
        self.timeout = timeout
        # Nominatim rejects requests without an identifying User-Agent
        self.headers = {"User-Agent": user_agent}

    def _reverse(self, latitude: float, longitude: float) -> str:
        response = requests.get(
            self.url,
            params={"format": "json", "lat": latitude, "lon": longitude},
            headers=self.headers,
            timeout=self.timeout,
        )
        response.raise_for_status()
        address = response.json().get("address") or {}
        for key in ADDRESS_FIELDS:
            if address.get(key):
                return address[key]
        return "Unknown District"

    async def reverse(self, latitude: float, longitude: float) -> str:
        try:
            return await run_in_threadpool(self._reverse, latitude, longitude)
        except Exception as e:
            logger.warning(f"Reverse geocoding failed for ({latitude}, {longitude}): {e}")
            return "Unknown Location"

    async def resolve_place(
        self,
        place: Optional[str],
        latitude: Optional[float],
        longitude: Optional[float]
    ) -> str:
        """Use the client-supplied place name, reverse geocoding only when it is missing."""
        if place and place.strip():
            return place.strip()
        if latitude is None or longitude is None:
            return "Unknown Location"
        return await self.reverse(latitude, longitude)
