import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from stopover.models.location import GeoPoint, ResolvedLocation
from stopover.repositories.base import Geocoder

logger = logging.getLogger(__name__)


class NominatimGeocoder(Geocoder):
    """OpenStreetMap Nominatim geocoder, used as the last-resort resolver."""

    def __init__(
        self,
        base_url: str = "https://nominatim.openstreetmap.org",
        user_agent: str = "stopover/0.1",
        timeout: float = 8.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.headers = {"User-Agent": user_agent}
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def _make_request(self, endpoint: str, params: Dict[str, Any]) -> Any:
        url = f"{self.base_url}/{endpoint}"
        async with aiohttp.ClientSession(timeout=self.timeout, headers=self.headers) as session:
            async with session.get(url, params=params) as response:
                response.raise_for_status()
                return await response.json()

    async def geocode(self, address: str) -> Optional[ResolvedLocation]:
        logger.info(f"Nominatim geocoding '{address}'")
        try:
            results = await self._make_request(
                "search", {"q": address, "format": "jsonv2", "limit": 1}
            )
        except aiohttp.ClientError as e:
            logger.warning(f"aiohttp.ClientError geocoding '{address}' with Nominatim: {e}")
            return None
        except asyncio.TimeoutError:
            logger.warning(f"Nominatim timed out geocoding '{address}'")
            return None

        if not results:
            return None
        first = results[0]
        return ResolvedLocation(
            query=address,
            point=GeoPoint(lat=float(first["lat"]), lng=float(first["lon"])),
            address=first.get("display_name", ""),
            source="nominatim",
        )

    async def reverse_geocode(self, point: GeoPoint) -> Optional[str]:
        try:
            result = await self._make_request(
                "reverse", {"lat": point.lat, "lon": point.lng, "format": "jsonv2"}
            )
        except aiohttp.ClientError as e:
            logger.warning(f"aiohttp.ClientError reverse geocoding {point.to_latlng_string()}: {e}")
            return None
        except asyncio.TimeoutError:
            logger.warning(f"Nominatim timed out reverse geocoding {point.to_latlng_string()}")
            return None
        return result.get("display_name") if result else None
