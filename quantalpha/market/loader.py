"""Fetches the target and reference series for one analysis."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from quantalpha.factors.models import PricePoint
from quantalpha.market.simulator import generate_simulated_series

logger = logging.getLogger("quantalpha")


@dataclass(frozen=True)
class MarketData:
    """Target and reference series for one analysis."""

    coin_id: str
    series: list[PricePoint]
    reference: list[PricePoint]
    simulated: bool = False
    error: Optional[str] = None


async def load_market_data(
    client,
    coin_id: str,
    days: int,
    reference_coin: str = "bitcoin",
    simulate_on_error: bool = True,
    seed: Optional[int] = None,
) -> MarketData:
    """Fetch *coin_id* and the reference coin concurrently.

    When the target is the reference coin, the target series doubles as the
    reference (relative alpha is then 0).  If either fetch fails with an
    HTTP error and *simulate_on_error* is set, one simulated series is used
    for both and the result is flagged ``simulated``; otherwise the error
    propagates.

    Args:
        client: Object with an async ``fetch_series(coin_id, days)``.
        coin_id: Target CoinGecko id.
        days: History length in days.
        reference_coin: Benchmark CoinGecko id.
        simulate_on_error: Fall back to simulated data on fetch failure.
        seed: Seed for the simulated fallback.
    """
    try:
        if coin_id == reference_coin:
            series = await client.fetch_series(coin_id, days)
            reference = series
        else:
            series, reference = await asyncio.gather(
                client.fetch_series(coin_id, days),
                client.fetch_series(reference_coin, days),
            )
    except httpx.HTTPError as exc:
        if not simulate_on_error:
            raise
        logger.warning(
            "Market data fetch for %s failed (%s), using simulated series",
            coin_id, exc,
        )
        mock = generate_simulated_series(days, seed=seed)
        return MarketData(
            coin_id=coin_id,
            series=mock,
            reference=mock,
            simulated=True,
            error=str(exc) or exc.__class__.__name__,
        )

    return MarketData(coin_id=coin_id, series=series, reference=reference)


def latest_change_pct(series: list[PricePoint]) -> float:
    """Percent change between the last two closes; 0 when undefined."""
    if len(series) < 2 or series[-2].price == 0:
        return 0.0
    prev = series[-2].price
    return (series[-1].price - prev) / prev * 100
