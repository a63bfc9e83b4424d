"""ListingService — pick a random listing and derive its displayed price."""

import logging
import math
import random
from collections.abc import Callable

from src.zp_common.errors import NoListingsFoundError
from src.zp_listing.domain.models import MAJOR_CITIES, RandomListing
from src.zp_listing.infrastructure.random_source import MathJsRandomSource
from src.zp_listing.infrastructure.zillow_client import ZillowClient

logger = logging.getLogger(__name__)


class ListingService:
    def __init__(
        self,
        zillow_factory: Callable[[], ZillowClient] = ZillowClient,
        random_factory: Callable[[], MathJsRandomSource] = MathJsRandomSource,
        rng: random.Random | None = None,
    ) -> None:
        self._zillow_factory = zillow_factory
        self._random_factory = random_factory
        self._rng = rng or random.Random()

    async def fetch_random_listing(self, city: str | None = None) -> RandomListing:
        """Raises ListingSourceUnavailableError / NoListingsFoundError; never retries."""
        city = city or self._rng.choice(MAJOR_CITIES)
        async with self._zillow_factory() as zillow:
            listings = await zillow.search(city)

        # A listing without a price cannot back a game
        priced = [listing for listing in listings if listing.price > 0]
        if not priced:
            raise NoListingsFoundError(city)
        listing = self._rng.choice(priced)

        async with self._random_factory() as source:
            adjustment = await source.adjustment()
        # Halves round up, matching JavaScript Math.round
        displayed = math.floor(listing.price * (1 + adjustment) + 0.5)

        logger.info(
            "Listing %s in %s: actual=$%s adjustment=%.2f%% displayed=$%s",
            listing.zpid, city, f"{listing.price:,}", adjustment * 100, f"{displayed:,}",
        )
        return RandomListing(
            city=city, listing=listing, displayed_price=displayed, adjustment=adjustment
        )
