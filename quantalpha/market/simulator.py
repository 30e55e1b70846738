"""Simulated daily series, used when market data is unavailable."""

import random
import time
from datetime import datetime, timezone
from typing import Optional

from quantalpha.factors.models import PricePoint

DAY_MS = 86_400_000
START_PRICE = 50_000.0


def display_time(timestamp_ms: int) -> str:
    """``"M/D"`` label for a millisecond timestamp (UTC)."""
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return f"{dt.month}/{dt.day}"


def generate_simulated_series(
    days: int,
    seed: Optional[int] = None,
    end_ms: Optional[int] = None,
) -> list[PricePoint]:
    """Generate *days* daily bars of a slightly upward-biased random walk.

    Each step moves the close by ``(u - 0.48) × 5%`` with ``u`` uniform in
    [0, 1).  Open/high/low are fixed offsets of the close (0.99 / 1.02 /
    0.98) and volume is ``u × 10M``.

    Args:
        days: Number of bars.
        seed: Seed for reproducible output.
        end_ms: Timestamp the series runs up to (defaults to now).
    """
    rng = random.Random(seed)
    if end_ms is None:
        end_ms = int(time.time() * 1000)

    ts = end_ms - days * DAY_MS
    price = START_PRICE
    points: list[PricePoint] = []
    for _ in range(days):
        price = price * (1 + (rng.random() - 0.48) * 0.05)
        points.append(
            PricePoint(
                timestamp=ts,
                price=price,
                open=price * 0.99,
                high=price * 1.02,
                low=price * 0.98,
                volume=rng.random() * 10_000_000,
                time=display_time(ts),
            )
        )
        ts += DAY_MS
    return points
