"""CoinGecko REST API async client.

Fetches daily market charts and turns them into OHLCV price points.  The
free ``market_chart`` endpoint only returns closes and volumes, so open,
high and low are synthesized from the timestamp.
"""

import asyncio
import logging
import math
from typing import Optional

import httpx

from quantalpha.config import Config
from quantalpha.factors.models import PricePoint
from quantalpha.market.simulator import display_time

logger = logging.getLogger("quantalpha")

# Retry settings
_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt
_RETRYABLE_STATUS_CODES = {502, 503, 504, 429}

# Synthetic bar range as a fraction of the close.
_SYNTHETIC_RANGE = 0.04


def synthesize_point(timestamp: int, price: float, volume: float) -> PricePoint:
    """Build an OHLCV point from a close, deriving open/high/low.

    The offsets depend only on ``timestamp % 10000`` so a re-fetch of the
    same day yields the same bar.
    """
    seed = timestamp % 10000
    volatility = price * _SYNTHETIC_RANGE
    spread = abs(math.cos(seed)) * volatility
    return PricePoint(
        timestamp=timestamp,
        price=price,
        open=price + (math.sin(seed) - 0.5) * volatility,
        high=price + spread,
        low=price - spread,
        volume=volume,
        time=display_time(timestamp),
    )


def parse_market_chart(data: dict) -> list[PricePoint]:
    """Convert a ``market_chart`` payload into price points, oldest first."""
    prices = data.get("prices", [])
    volumes = data.get("total_volumes", [])
    points: list[PricePoint] = []
    for i, (ts, price) in enumerate(prices):
        volume = float(volumes[i][1]) if i < len(volumes) else 0.0
        points.append(synthesize_point(int(ts), float(price), volume))
    return points


class CoinGeckoClient:
    """Async client wrapping the CoinGecko v3 REST API."""

    def __init__(self, config: Config) -> None:
        self._config = config
        self._base_url = config.coingecko_base_url
        self._headers = {"Accept": "application/json"}
        if config.coingecko_api_key:
            self._headers["x-cg-demo-api-key"] = config.coingecko_api_key

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs,
    ) -> httpx.Response:
        """Execute an HTTP request with exponential-backoff retry.

        Retries on transient server errors (502, 503, 504) and rate-limits
        (429).  Non-retryable errors are raised immediately.
        """
        last_exc: Optional[Exception] = None

        for attempt in range(_MAX_RETRIES):
            try:
                async with httpx.AsyncClient() as client:
                    resp = await getattr(client, method)(
                        url,
                        headers=self._headers,
                        timeout=30.0,
                        **kwargs,
                    )

                if resp.status_code in _RETRYABLE_STATUS_CODES:
                    delay = _RETRY_BASE_DELAY * (2 ** attempt)
                    logger.warning(
                        "CoinGecko %s %s returned %d, retry %d/%d in %.1fs",
                        method.upper(), url, resp.status_code,
                        attempt + 1, _MAX_RETRIES, delay,
                    )
                    last_exc = httpx.HTTPStatusError(
                        f"Server error '{resp.status_code}'",
                        request=resp.request,
                        response=resp,
                    )
                    if attempt < _MAX_RETRIES - 1:
                        await asyncio.sleep(delay)
                    continue

                resp.raise_for_status()
                return resp

            except httpx.TransportError as exc:
                delay = _RETRY_BASE_DELAY * (2 ** attempt)
                logger.warning(
                    "CoinGecko %s %s transport error (%s), retry %d/%d in %.1fs",
                    method.upper(), url, exc,
                    attempt + 1, _MAX_RETRIES, delay,
                )
                last_exc = exc
                if attempt < _MAX_RETRIES - 1:
                    await asyncio.sleep(delay)

        raise last_exc  # type: ignore[misc]

    # ── Market data ──────────────────────────────────────────────────────

    async def fetch_series(self, coin_id: str, days: int = 90) -> list[PricePoint]:
        """Fetch a daily USD series for *coin_id*.

        Args:
            coin_id: CoinGecko id, e.g. ``"bitcoin"``.
            days: History length in days.

        Returns:
            List of ``PricePoint`` objects ordered oldest-first.
        """
        url = f"{self._base_url}/api/v3/coins/{coin_id}/market_chart"
        params = {
            "vs_currency": "usd",
            "days": days,
            "interval": "daily",
        }

        resp = await self._request_with_retry("get", url, params=params)
        points = parse_market_chart(resp.json())
        logger.debug("Fetched %d point(s) for %s (%dd)", len(points), coin_id, days)
        return points
