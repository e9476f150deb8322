# ev_admin_system/core/geocoding.py

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp
from aiohttp import ClientTimeout

from ev_admin_system.business_logic.errors import InternalError

logger = logging.getLogger(__name__)


def _find_component(components: List[Dict[str, Any]], component_type: str) -> Optional[Dict[str, Any]]:
    return next((c for c in components if component_type in c.get("types", [])), None)


@dataclass
class GeocodedAddress:
    formatted_address: str
    lat: Optional[float]
    lng: Optional[float]
    city: Optional[str]
    region: Optional[str]
    postal_code: Optional[str]
    country_code: Optional[str]

    @classmethod
    def from_result(cls, result: Dict[str, Any]) -> "GeocodedAddress":
        """Builds the address from one entry of the geocoder's results list."""
        components = result.get("address_components") or []

        city = _find_component(components, "locality")
        region = _find_component(components, "administrative_area_level_1")
        postal_code = _find_component(components, "postal_code")
        country = _find_component(components, "country")
        location = (result.get("geometry") or {}).get("location") or {}

        return cls(
            formatted_address=result.get("formatted_address", ""),
            lat=location.get("lat"),
            lng=location.get("lng"),
            city=city["long_name"] if city else None,
            region=region["short_name"][:3].upper().strip() if region else None,
            postal_code=postal_code["long_name"] if postal_code else None,
            country_code=country["short_name"] if country else None,
        )


class GeocodingGateway:
    """
    Client for the Google Geocoding JSON API.
    """

    def __init__(self, api_key: str, base_url: str, timeout: float = 10.0):
        self.api_key = api_key
        self.base_url = base_url
        self._timeout = ClientTimeout(total=timeout)

    async def geocode(self, address: str) -> Optional[Dict[str, Any]]:
        """
        Returns the first geocoding result for address, or None when nothing matched.

        Raises:
            InternalError: If the geocoding service cannot be reached or answers with an error
        """
        params = {"address": address, "key": self.api_key}
        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.get(self.base_url, params=params) as response:
                    response.raise_for_status()
                    payload = await response.json()
        except (asyncio.TimeoutError, aiohttp.ClientError) as exc:
            logger.error(f"Geocoding request for '{address}' failed: {exc}")
            raise InternalError("Internal Server Error") from exc

        results = payload.get("results") or []
        if not results:
            logger.info(f"Geocoding returned no results for '{address}' (status {payload.get('status')})")
            return None
        return results[0]
