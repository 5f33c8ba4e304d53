from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ValidationError

from api.core.types import OFFER_TYPES, AvailabilityRecord
from providers.errors import (
    ConfigurationError,
    ExternalApiError,
    ProviderValidationError,
    RateLimitError,
)

DEFAULT_HOST = "streaming-availability.p.rapidapi.com"
USER_AGENT = "CreatorFeed/StreamingAvailability"

SERVICE_NAMES: Dict[str, str] = {
    "netflix": "Netflix",
    "hbo": "HBO Max",
    "disney": "Disney+",
    "prime": "Amazon Prime Video",
    "apple": "Apple TV+",
    "hulu": "Hulu",
    "mubi": "Mubi",
    "zee5": "Zee5",
    "paramount": "Paramount+",
}

log = logging.getLogger(__name__)


# Newer payloads: streamingOptions[country] is a flat list of offers.
class _ServiceRef(BaseModel):
    id: str
    name: str


class _StreamingOption(BaseModel):
    service: _ServiceRef
    type: str
    link: str


class StreamingOptionsShow(BaseModel):
    streamingOptions: Dict[str, List[_StreamingOption]]


# Older payloads: streamingInfo[country][serviceId] holds one entry per offer type.
class _LegacyOffer(BaseModel):
    available: bool = False
    link: Optional[str] = None


class _LegacyServiceInfo(BaseModel):
    subscription: Optional[_LegacyOffer] = None
    rent: Optional[_LegacyOffer] = None
    buy: Optional[_LegacyOffer] = None


class StreamingInfoShow(BaseModel):
    streamingInfo: Dict[str, Dict[str, _LegacyServiceInfo]]


def service_name(service_id: str) -> str:
    return SERVICE_NAMES.get(service_id, service_id)


def _from_streaming_options(
    show: StreamingOptionsShow, country: str
) -> List[AvailabilityRecord]:
    records: List[AvailabilityRecord] = []
    for option in show.streamingOptions.get(country) or []:
        # "free" and "addon" offers have no canonical counterpart
        if option.type not in OFFER_TYPES:
            continue
        records.append(
            AvailabilityRecord(
                service_id=option.service.id,
                name=option.service.name,
                link=option.link,
                type=option.type,
            )
        )
    return records


def _from_streaming_info(show: StreamingInfoShow, country: str) -> List[AvailabilityRecord]:
    records: List[AvailabilityRecord] = []
    for service_id, info in (show.streamingInfo.get(country) or {}).items():
        for offer_type in OFFER_TYPES:
            offer: Optional[_LegacyOffer] = getattr(info, offer_type)
            if offer is None or not offer.available:
                continue
            records.append(
                AvailabilityRecord(
                    service_id=service_id,
                    name=service_name(service_id),
                    link=offer.link or "",
                    type=offer_type,
                )
            )
    return records


def parse_availability(payload: Any, country: str) -> List[AvailabilityRecord]:
    """
    Normalise a show payload in either wire shape into availability records.

    Tries the streamingOptions shape first, then streamingInfo. Anything else,
    including ``{"result": null}``, yields an empty list.
    """
    if not isinstance(payload, dict):
        return []
    country = country.lower()
    if payload.get("streamingOptions") is not None:
        try:
            return _from_streaming_options(
                StreamingOptionsShow.model_validate(payload), country
            )
        except ValidationError as exc:
            log.debug("streamingOptions payload rejected: %s", exc)
    if payload.get("streamingInfo") is not None:
        try:
            return _from_streaming_info(StreamingInfoShow.model_validate(payload), country)
        except ValidationError as exc:
            log.debug("streamingInfo payload rejected: %s", exc)
    return []


class StreamingAvailabilityClient:
    """
    Client for the RapidAPI streaming-availability provider (one call per title).
    """

    def __init__(
        self,
        api_key: str,
        host: str = DEFAULT_HOST,
        timeout: float = 15.0,
    ) -> None:
        if not api_key:
            raise ConfigurationError("RAPIDAPI_KEY is not configured")
        self.host = host or DEFAULT_HOST
        self.base_url = f"https://{self.host}"
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={
                "X-RapidAPI-Key": api_key,
                "X-RapidAPI-Host": self.host,
                "Accept": "application/json",
                "User-Agent": USER_AGENT,
            },
        )

    async def _get(self, path: str, params: Dict[str, Any]) -> Optional[Any]:
        try:
            # httpx timeouts apply per phase; wait_for bounds the whole request.
            resp = await asyncio.wait_for(
                self._client.get(f"{self.base_url}{path}", params=params),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise ExternalApiError(
                f"Streaming availability request timed out after {self.timeout:g} seconds"
            ) from exc
        except httpx.HTTPError as exc:
            raise ExternalApiError(f"Failed to fetch streaming availability: {exc}") from exc

        if resp.status_code == 429:
            raise RateLimitError("Streaming availability API rate limit exceeded")
        if resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            raise ExternalApiError(
                f"Streaming availability API error: {resp.reason_phrase}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise ProviderValidationError(
                f"Streaming availability returned invalid JSON: {exc}"
            ) from exc

    async def get_availability(
        self, tmdb_id: int, country: str
    ) -> List[AvailabilityRecord]:
        country = country.lower()
        payload = await self._get(f"/shows/movie/{tmdb_id}", {"country": country})
        if payload is None:
            # Title is not in the provider's catalogue.
            return []
        return parse_availability(payload, country)

    async def aclose(self) -> None:
        await self._client.aclose()
