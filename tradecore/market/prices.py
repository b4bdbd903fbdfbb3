"""Exchange USDT price lookup with an hourly cache.

Fetches every ticker from the exchange's public price endpoint, keeps the
``<COIN>USDT`` pairs and caches the resulting coin → price map.
"""

import asyncio
import logging
from typing import Optional

import httpx

from tradecore.config import Config
from tradecore.errors import SourceFetchFailure
from tradecore.utils.cache import TTLCache

logger = logging.getLogger("tradecore.prices")

DEFAULT_PRICE_API_URL = "https://api.binance.com/api/v3/ticker/price"
DEFAULT_CACHE_TTL_SECONDS = 3600

_CACHE_KEY = "usdt_prices"
_QUOTE = "USDT"

# Retry settings
_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt
_RETRYABLE_STATUS_CODES = {502, 503, 504, 429}


class PriceService:
    """Async USDT price lookup backed by a ``TTLCache``.

    Args:
        cache: Shared cache instance.
        config: Optional configuration (API URL, cache TTL).
    """

    def __init__(self, cache: TTLCache, config: Optional[Config] = None) -> None:
        self._cache = cache
        self._url = config.price_api_url if config else DEFAULT_PRICE_API_URL
        self._ttl = config.price_cache_ttl_seconds if config else DEFAULT_CACHE_TTL_SECONDS

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _get_with_retry(self) -> httpx.Response:
        """GET the ticker endpoint with exponential-backoff retry.

        Retries on transient server errors (502, 503, 504) and rate-limits
        (429).  Raises ``SourceFetchFailure`` once retries are exhausted or
        on a non-retryable error.
        """
        last_exc: Optional[Exception] = None

        for attempt in range(_MAX_RETRIES):
            try:
                async with httpx.AsyncClient() as client:
                    resp = await client.get(self._url, timeout=30.0)

                if resp.status_code in _RETRYABLE_STATUS_CODES:
                    delay = _RETRY_BASE_DELAY * (2 ** attempt)
                    logger.warning(
                        "GET %s returned %d: retry %d/%d in %.1fs",
                        self._url, resp.status_code,
                        attempt + 1, _MAX_RETRIES, delay,
                    )
                    last_exc = httpx.HTTPStatusError(
                        f"Server error '{resp.status_code}'",
                        request=resp.request,
                        response=resp,
                    )
                    await asyncio.sleep(delay)
                    continue

                resp.raise_for_status()
                return resp

            except httpx.HTTPStatusError as exc:
                raise SourceFetchFailure(
                    f"Price API error: {exc.response.status_code}"
                ) from exc
            except httpx.TransportError as exc:
                delay = _RETRY_BASE_DELAY * (2 ** attempt)
                logger.warning(
                    "GET %s transport error (%s): retry %d/%d in %.1fs",
                    self._url, exc, attempt + 1, _MAX_RETRIES, delay,
                )
                last_exc = exc
                await asyncio.sleep(delay)

        raise SourceFetchFailure(f"Price API unavailable: {last_exc}") from last_exc

    # ── Public API ───────────────────────────────────────────────────────

    async def get_usdt_prices(self) -> dict[str, float]:
        """Coin → USDT price for every positive-priced USDT pair."""
        cached = self._cache.get(_CACHE_KEY)
        if cached is not None:
            return cached

        resp = await self._get_with_retry()
        try:
            tickers = resp.json()
        except ValueError as exc:
            raise SourceFetchFailure("Price API returned invalid JSON") from exc

        prices: dict[str, float] = {}
        for ticker in tickers:
            symbol = ticker.get("symbol", "")
            if not symbol.endswith(_QUOTE):
                continue
            try:
                price = float(ticker.get("price"))
            except (TypeError, ValueError):
                continue
            if price > 0:
                prices[symbol[:-len(_QUOTE)]] = price

        self._cache.set(_CACHE_KEY, prices, self._ttl)
        logger.info("Cached %d USDT prices for %ds", len(prices), self._ttl)
        return prices

    async def get_usdt_price(self, coin: str) -> Optional[float]:
        """USDT price for a single *coin*, or ``None`` when unlisted."""
        prices = await self.get_usdt_prices()
        return prices.get(coin)
