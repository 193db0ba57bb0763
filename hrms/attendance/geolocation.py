"""Punch location capture with a bounded wait.

A location lookup must never block or fail a punch: any denial, error or
timeout collapses to a sentinel string stored in place of the location.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

LOCATION_NOT_AVAILABLE = "Location not available"
GEOLOCATION_NOT_SUPPORTED = "Geolocation not supported"


class GeolocationUnavailable(Exception):
    """The position could not be obtained (permission denied, no fix)."""


class GeolocationProvider(Protocol):
    async def locate(self) -> str:
        """Return a human-readable location or raise ``GeolocationUnavailable``."""
        ...


def format_coordinates(latitude: float, longitude: float) -> str:
    return f"{latitude}, {longitude}"


class ClientPositionProvider:
    """Position reported by the client alongside the punch request.

    A pre-resolved ``label`` wins over coordinates; a request that carries
    neither is treated as a denied lookup.
    """

    def __init__(
        self,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        label: Optional[str] = None,
    ) -> None:
        self.latitude = latitude
        self.longitude = longitude
        self.label = label

    async def locate(self) -> str:
        if self.label:
            return self.label
        if self.latitude is None or self.longitude is None:
            raise GeolocationUnavailable("client did not report a position")
        return format_coordinates(self.latitude, self.longitude)


def provider_from_payload(
    latitude: Optional[float],
    longitude: Optional[float],
    label: Optional[str],
) -> Optional[GeolocationProvider]:
    """No position fields at all means the client has no geolocation capability."""
    if latitude is None and longitude is None and not label:
        return None
    return ClientPositionProvider(latitude, longitude, label)


async def resolve_location(
    provider: Optional[GeolocationProvider],
    timeout: float,
) -> str:
    if provider is None:
        return GEOLOCATION_NOT_SUPPORTED
    try:
        return await asyncio.wait_for(provider.locate(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Geolocation lookup timed out after %.1fs", timeout)
        return LOCATION_NOT_AVAILABLE
    except GeolocationUnavailable as exc:
        logger.info("Geolocation unavailable: %s", exc)
        return LOCATION_NOT_AVAILABLE
