"""Async client for the Zillow listing search on RapidAPI.

Usage:
    async with ZillowClient() as zillow:
        listings = await zillow.search("Austin, TX")

The client does not retry. Any transport failure or non-2xx status becomes
ListingSourceUnavailableError; an empty result set becomes NoListingsFoundError.
"""

import logging
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from config.settings import settings
from src.zp_common.errors import ListingSourceUnavailableError, NoListingsFoundError
from src.zp_listing.domain.models import Listing

logger = logging.getLogger(__name__)

_SEARCH_PATH = "/propertyExtendedSearch"


class ZillowClient:
    def __init__(
        self,
        api_key: str | None = None,
        host: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.RAPIDAPI_KEY
        self.host = host or settings.RAPIDAPI_HOST
        self.base_url = base_url or settings.LISTING_BASE_URL
        self.timeout = timeout or settings.LISTING_TIMEOUT_SECONDS
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "ZillowClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "x-rapidapi-host": self.host,
                "x-rapidapi-key": self.api_key,
            },
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "ZillowClient must be used as async context manager. "
                "Use: async with ZillowClient() as zillow: ..."
            )
        return self._client

    async def search(
        self,
        city: str,
        status_type: str = "ForSale",
        home_type: str = "Houses",
    ) -> list[Listing]:
        logger.info("Fetching listings for: %s", city)
        try:
            response = await self.client.get(
                _SEARCH_PATH,
                params={"location": city, "status_type": status_type, "home_type": home_type},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ListingSourceUnavailableError(
                f"RapidAPI responded with status: {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise ListingSourceUnavailableError(f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise ListingSourceUnavailableError("RapidAPI returned a non-JSON body") from e

        props = data.get("props") if isinstance(data, dict) else None
        if not props:
            raise NoListingsFoundError(city)

        listings: list[Listing] = []
        for prop in props:
            try:
                listings.append(Listing.model_validate(prop))
            except PydanticValidationError:
                logger.warning("Skipping malformed listing in %s: %r", city, prop.get("zpid"))
        if not listings:
            raise NoListingsFoundError(city)
        return listings
