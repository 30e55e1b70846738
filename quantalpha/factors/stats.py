"""Statistics library — SMA, σ, covariance, correlation, rank, skew, EMA, RSI,
Bollinger Bands, ADX.  Pure functions, no I/O.

Every windowed function works on the most recent *n* observations and
returns a neutral default (0, or 0.5 for rank) instead of raising when the
sequence is shorter than the window.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from quantalpha.factors.models import PricePoint


# ── Moments ──────────────────────────────────────────────────────────────


def calculate_sma(values: Sequence[float], n: int) -> float:
    """Arithmetic mean of the last *n* values (0 if fewer than *n*)."""
    if n <= 0 or len(values) < n:
        return 0.0
    return sum(values[-n:]) / n


def calculate_stddev(values: Sequence[float], n: int) -> float:
    """Sample standard deviation (n − 1) of the last *n* values."""
    if n <= 1 or len(values) < n:
        return 0.0
    window = values[-n:]
    mean = sum(window) / n
    variance = sum((x - mean) ** 2 for x in window) / (n - 1)
    return math.sqrt(variance)


def calculate_covariance(x: Sequence[float], y: Sequence[float], n: int) -> float:
    """Sample covariance (n − 1) of the last *n* elements of *x* and *y*."""
    if n <= 1 or len(x) < n or len(y) < n:
        return 0.0
    x_window = x[-n:]
    y_window = y[-n:]
    x_mean = sum(x_window) / n
    y_mean = sum(y_window) / n
    total = sum((a - x_mean) * (b - y_mean) for a, b in zip(x_window, y_window))
    return total / (n - 1)


def calculate_correlation(x: Sequence[float], y: Sequence[float], n: int) -> float:
    """Pearson correlation over the last *n* elements.

    Returns 0 when either side has zero standard deviation.
    """
    cov = calculate_covariance(x, y, n)
    std_x = calculate_stddev(x, n)
    std_y = calculate_stddev(y, n)
    if std_x == 0 or std_y == 0:
        return 0.0
    return cov / (std_x * std_y)


def calculate_ts_rank(values: Sequence[float], n: int) -> float:
    """Rank of the latest value inside the last *n* values, scaled to (0, 1].

    Ties resolve to the first matching position in the ascending sort, so a
    window of identical values ranks the latest at ``1 / n``.
    Returns 0.5 when fewer than *n* values are available.
    """
    if n <= 0 or len(values) < n:
        return 0.5
    window = list(values[-n:])
    current = window[-1]
    rank = sorted(window).index(current) + 1
    return rank / n


def calculate_skewness(values: Sequence[float], n: int) -> float:
    """Third standardized moment of the last *n* values.

    The mean comes from the last-*n* slice while σ comes from
    :func:`calculate_stddev` (sample, n − 1), and the cubed deviations are
    averaged over *n*.  This mixed convention is kept as-is; it is not the
    bias-corrected sample skewness.
    """
    if n <= 0 or len(values) < n:
        return 0.0
    window = values[-n:]
    mean = sum(window) / n
    std = calculate_stddev(values, n)
    if std == 0:
        return 0.0
    return sum(((x - mean) / std) ** 3 for x in window) / n


def calculate_delta(values: Sequence[float], lag: int) -> float:
    """Last value minus the value *lag* steps earlier (0 if too short)."""
    if len(values) <= lag:
        return 0.0
    return values[-1] - values[-1 - lag]


# ── EMA ──────────────────────────────────────────────────────────────────


def calculate_ema(values: Sequence[float], period: int) -> float:
    """Exponential Moving Average of the whole sequence, latest value only.

    ``EMA_today = value × k + EMA_yesterday × (1 - k)`` with
    ``k = 2 / (period + 1)``, seeded with the first element (not an SMA).
    """
    if not values:
        return 0.0
    k = 2.0 / (period + 1)
    ema = values[0]
    for value in values[1:]:
        ema = value * k + ema * (1 - k)
    return ema


# ── RSI ──────────────────────────────────────────────────────────────────


def calculate_rsi(points: Sequence[PricePoint], period: int = 14) -> float:
    """Wilder's Relative Strength Index of the latest bar.

    Algorithm:
        1. delta = close[i] - close[i-1]
        2. Seed average gain/loss = SMA of the first *period* deltas.
        3. Subsequent: avg = (prev_avg × (period-1) + current) / period
        4. RSI = 100 - 100 / (1 + avg_gain / avg_loss)

    Returns 100 when the average loss is 0 and 50 when fewer than
    ``period + 1`` points are supplied.
    """
    if period <= 0 or len(points) < period + 1:
        return 50.0

    gains = 0.0
    losses = 0.0
    for i in range(1, period + 1):
        change = points[i].price - points[i - 1].price
        if change > 0:
            gains += change
        else:
            losses -= change
    avg_gain = gains / period
    avg_loss = losses / period

    for i in range(period + 1, len(points)):
        change = points[i].price - points[i - 1].price
        gain = change if change > 0 else 0.0
        loss = -change if change < 0 else 0.0
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


# ── Bollinger Bands ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class BollingerBands:
    """Latest Bollinger Band levels."""

    upper: float
    middle: float
    lower: float
    width: float  # (upper - lower) / middle


def calculate_bollinger(
    values: Sequence[float],
    period: int = 20,
    std_dev: float = 2.0,
) -> Optional[BollingerBands]:
    """Calculate the latest Bollinger Bands.

    Middle = SMA(values, *period*)
    Upper  = middle + *std_dev* × σ
    Lower  = middle − *std_dev* × σ

    σ is the sample standard deviation.  Returns ``None`` when fewer than
    *period* values are available.
    """
    if len(values) < period:
        return None
    sma = calculate_sma(values, period)
    sigma = calculate_stddev(values, period)
    band = std_dev * sigma
    width = (2 * band) / sma if sma != 0 else 0.0
    return BollingerBands(
        upper=sma + band,
        middle=sma,
        lower=sma - band,
        width=width,
    )


# ── ADX ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DirectionalIndex:
    """Latest ADX reading with its directional indicators."""

    adx: float
    plus_di: float
    minus_di: float


def _wilder_smooth(values: list[float], period: int) -> list[float]:
    """SMA-seeded Wilder smoothing: ``(prev × (period-1) + x) / period``."""
    smoothed = [sum(values[:period]) / period]
    for value in values[period:]:
        smoothed.append((smoothed[-1] * (period - 1) + value) / period)
    return smoothed


def calculate_adx(points: Sequence[PricePoint], period: int = 14) -> DirectionalIndex:
    """Calculate the Average Directional Index and ±DI of the latest bar.

    Algorithm:
        1. TR, +DM, -DM per bar.
        2. Wilder-smooth TR, +DM and -DM over *period* (SMA seed).
        3. +DI = 100 × smoothed_+DM / smoothed_TR
        4. -DI = 100 × smoothed_-DM / smoothed_TR
        5. DX = 100 × |+DI − −DI| / (+DI + −DI)
        6. ADX = Wilder-smoothed DX over *period*.

    Requires at least ``2 × period`` bars, otherwise all three readings
    are 0.  A flat stretch (zero TR or zero DI sum) reads as 0 rather
    than dividing by zero.
    """
    if period <= 0 or len(points) < 2 * period:
        return DirectionalIndex(adx=0.0, plus_di=0.0, minus_di=0.0)

    true_ranges: list[float] = []
    plus_dm: list[float] = []
    minus_dm: list[float] = []

    for i in range(1, len(points)):
        high = points[i].high
        low = points[i].low
        prev_close = points[i - 1].price

        true_ranges.append(
            max(high - low, abs(high - prev_close), abs(low - prev_close))
        )

        up_move = high - points[i - 1].high
        down_move = points[i - 1].low - low
        plus_dm.append(up_move if (up_move > down_move and up_move > 0) else 0.0)
        minus_dm.append(
            down_move if (down_move > up_move and down_move > 0) else 0.0
        )

    smoothed_tr = _wilder_smooth(true_ranges, period)
    smoothed_plus = _wilder_smooth(plus_dm, period)
    smoothed_minus = _wilder_smooth(minus_dm, period)

    plus_dis: list[float] = []
    minus_dis: list[float] = []
    dx_values: list[float] = []

    for s_tr, s_pdm, s_mdm in zip(smoothed_tr, smoothed_plus, smoothed_minus):
        if s_tr == 0:
            plus_di = minus_di = 0.0
        else:
            plus_di = 100.0 * s_pdm / s_tr
            minus_di = 100.0 * s_mdm / s_tr
        di_sum = plus_di + minus_di
        dx = 100.0 * abs(plus_di - minus_di) / di_sum if di_sum != 0 else 0.0
        plus_dis.append(plus_di)
        minus_dis.append(minus_di)
        dx_values.append(dx)

    adx = _wilder_smooth(dx_values, period)

    return DirectionalIndex(
        adx=adx[-1],
        plus_di=plus_dis[-1],
        minus_di=minus_dis[-1],
    )
