"""Price adjustment source backed by the public Math.js evaluation API.

The adjustment is cosmetic (it only perturbs the displayed price), so any
failure falls back to a local PRNG instead of failing the request.
"""

import logging
import random
from typing import Any

import httpx

from config.settings import settings

logger = logging.getLogger(__name__)

_EXPR = "randomInt(1,101)"


def scale_adjustment(normalized: float, pct: float) -> float:
    """Map [0, 1] onto [-pct, +pct]."""
    return normalized * (2 * pct) - pct


class MathJsRandomSource:
    def __init__(
        self,
        url: str | None = None,
        pct: float | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.url = url or settings.MATHJS_URL
        self.pct = settings.PRICE_ADJUSTMENT_PCT if pct is None else pct
        self.timeout = timeout or settings.LISTING_TIMEOUT_SECONDS
        self._transport = transport
        self._rng = rng or random.Random()
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "MathJsRandomSource":
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
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
                "MathJsRandomSource must be used as async context manager. "
                "Use: async with MathJsRandomSource() as source: ..."
            )
        return self._client

    async def adjustment(self) -> float:
        """Return a fraction in [-pct, +pct]; e.g. -0.0712 for -7.12%."""
        try:
            response = await self.client.get(self.url, params={"expr": _EXPR})
            response.raise_for_status()
            normalized = int(response.text.strip()) / 100
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Math.js random source failed, using local fallback: %s", e)
            return self._rng.uniform(-self.pct, self.pct)
        return scale_adjustment(normalized, self.pct)
