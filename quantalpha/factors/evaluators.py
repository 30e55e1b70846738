"""Factor evaluators — one pure function per catalog entry, no I/O.

Each evaluator takes a :class:`FactorContext` and returns a ``Factor``, or
``None`` when the factor does not apply to the supplied data (the factor is
then left out of the output rather than reported as neutral).

Thresholds, scores and confidence formulas are literal per factor; there is
no shared confidence model.
"""

import math
from dataclasses import dataclass, field
from typing import Optional

from quantalpha.factors.models import (
    BEARISH,
    BULLISH,
    CATEGORY_ALPHA101,
    CATEGORY_MATH,
    CATEGORY_MOMENTUM,
    CATEGORY_RELATIVE,
    CATEGORY_STATISTICAL,
    CATEGORY_TREND,
    CATEGORY_VOLATILITY,
    NEUTRAL,
    VISUAL_BREAKOUT,
    VISUAL_CORRELATION,
    VISUAL_DIVERGENCE,
    VISUAL_REVERSION,
    VISUAL_TREND,
    AnalysisParams,
    Factor,
    PricePoint,
)
from quantalpha.factors.stats import (
    calculate_adx,
    calculate_bollinger,
    calculate_correlation,
    calculate_delta,
    calculate_ema,
    calculate_rsi,
    calculate_skewness,
    calculate_sma,
    calculate_stddev,
    calculate_ts_rank,
)

# Reference series must be strictly longer than this for relative strength.
MIN_REFERENCE_LENGTH = 20

# Bars in the relative-strength return window (5 returns).
RELATIVE_RETURN_BARS = 5


@dataclass(frozen=True)
class FactorContext:
    """Inputs shared by every evaluator in one pipeline run."""

    series: list[PricePoint]
    reference: list[PricePoint]
    params: AnalysisParams
    closes: list[float] = field(init=False)
    opens: list[float] = field(init=False)
    volumes: list[float] = field(init=False)
    returns: list[float] = field(init=False)

    def __post_init__(self) -> None:
        closes = [p.price for p in self.series]
        returns = [0.0] + [
            (closes[i] - closes[i - 1]) / closes[i - 1] if closes[i - 1] else 0.0
            for i in range(1, len(closes))
        ]
        # Frozen dataclass: derived fields are set once here.
        object.__setattr__(self, "closes", closes)
        object.__setattr__(self, "opens", [p.open for p in self.series])
        object.__setattr__(self, "volumes", [p.volume for p in self.series])
        object.__setattr__(self, "returns", returns)


# ── Helpers ──────────────────────────────────────────────────────────────


def _fmt(value: float, digits: int) -> str:
    """Fixed-point format; negative zero renders as ``0``."""
    text = f"{value:.{digits}f}"
    if text.startswith("-") and float(text) == 0:
        return text[1:]
    return text


def _sign(value: float) -> int:
    if value > 0:
        return 1
    if value < 0:
        return -1
    return 0


def _return_over(closes: list[float], bars: int) -> float:
    base = closes[-1 - bars]
    if base == 0:
        return 0.0
    return (closes[-1] - base) / base


# ── Alpha101 family ──────────────────────────────────────────────────────


def alpha_006(ctx: FactorContext) -> Factor:
    """Negative 10-bar correlation between open and volume."""
    value = -1 * calculate_correlation(ctx.opens, ctx.volumes, 10)

    if value > 0.2:
        signal, score = BULLISH, 0.8
    elif value < -0.2:
        signal, score = BEARISH, -0.8
    else:
        signal, score = NEUTRAL, 0.0

    return Factor(
        id="ALPHA_006",
        name="Alpha #006 (Corr)",
        description="Negative correlation between open price and volume",
        math_logic="Corr(Open, Vol) > 0 signals a bull trap, so the sign is flipped.",
        value=_fmt(value, 3),
        signal=signal,
        score=score,
        category=CATEGORY_ALPHA101,
        confidence=abs(value),
        visual_type=VISUAL_CORRELATION,
    )


def alpha_012(ctx: FactorContext) -> Factor:
    """Volume-delta reversion: bet against the last move on rising volume.

    The score follows the sign of the value even when the volume change is
    too small to call a direction and the signal reads NEUTRAL.
    """
    delta_vol = calculate_delta(ctx.volumes, 1)
    delta_close = calculate_delta(ctx.closes, 1)
    value = _sign(delta_vol) * (-1 * delta_close)

    prev_vol = ctx.volumes[-2]
    vol_change = abs(delta_vol / prev_vol) if prev_vol else math.inf

    if vol_change < 0.05:
        signal = NEUTRAL
    else:
        signal = BULLISH if value > 0 else BEARISH

    return Factor(
        id="ALPHA_012",
        name="Alpha #012 (Vol-Rev)",
        description="Volume surge reversal",
        math_logic="When volume jumps (Delta Vol > 0), bet on the price move reversing.",
        value=_fmt(value, 2),
        signal=signal,
        score=0.6 if value > 0 else -0.6,
        category=CATEGORY_ALPHA101,
        confidence=0.6,
        visual_type=VISUAL_REVERSION,
    )


def alpha_009(ctx: FactorContext) -> Factor:
    """Close undercutting the previous five closes."""
    close = ctx.closes[-1]
    min5 = min(ctx.closes[-6:-1])
    delta_min = (min5 - close) / close if close else 0.0

    signal = BULLISH if close < min5 else NEUTRAL
    value = f"-{delta_min * 100:.2f}%" if delta_min > 0 else "0%"

    return Factor(
        id="ALPHA_009",
        name="Alpha #009 (Min Reversion)",
        description="Five-day low reversal",
        math_logic="Close < Min(Close[t-1] .. Close[t-5]) with DeltaMin > 0 is bullish.",
        value=value,
        signal=signal,
        score=0.8 if signal == BULLISH else 0.0,
        category=CATEGORY_ALPHA101,
        confidence=0.9 if delta_min > 0.05 else 0.4,
        visual_type=VISUAL_REVERSION,
    )


# ── Statistical / math ───────────────────────────────────────────────────


def ts_rank_20(ctx: FactorContext) -> Factor:
    """Percentile of the latest close inside the last 20 closes.

    Signal fires above 0.9 / below 0.1 while the score already moves above
    0.8 / below 0.2.
    """
    rank = calculate_ts_rank(ctx.closes, 20)

    signal = NEUTRAL
    if rank > 0.9:
        signal = BULLISH
    if rank < 0.1:
        signal = BEARISH

    if rank > 0.8:
        score = 0.7
    elif rank < 0.2:
        score = -0.7
    else:
        score = 0.0

    return Factor(
        id="TS_RANK_20",
        name="TsRank (Price, 20)",
        description="20-day price percentile",
        math_logic="Rank(Price, 20) > 0.9 marks a breakout to the top of the range.",
        value=_fmt(rank, 2),
        signal=signal,
        score=score,
        category=CATEGORY_MATH,
        confidence=abs(rank - 0.5) * 2,
        visual_type=VISUAL_BREAKOUT,
    )


def stat_skew(ctx: FactorContext) -> Factor:
    skew = calculate_skewness(ctx.returns, 30)

    if skew > 0.5:
        signal, score = BULLISH, 0.6
    elif skew < -0.5:
        signal, score = BEARISH, -0.9
    else:
        signal, score = NEUTRAL, 0.0

    return Factor(
        id="STAT_SKEW",
        name="Return Skewness",
        description="Return skewness (tail risk)",
        math_logic="Skew < -0.5 means frequent recent crashes and building risk.",
        value=_fmt(skew, 3),
        signal=signal,
        score=score,
        category=CATEGORY_STATISTICAL,
        confidence=min(abs(skew), 1.0),
        visual_type=VISUAL_REVERSION,
    )


def math_vol_ratio(ctx: FactorContext) -> Factor:
    """Short/long volatility ratio, directed by the 5-bar trend."""
    std5 = calculate_stddev(ctx.closes, 5)
    std20 = calculate_stddev(ctx.closes, 20)
    vol_ratio = 1.0 if std20 == 0 else std5 / std20
    is_trend_up = ctx.closes[-1] > calculate_sma(ctx.closes, 5)

    signal = NEUTRAL
    if vol_ratio > 1.2:
        signal = BULLISH if is_trend_up else BEARISH

    if signal == BULLISH:
        score = 0.5
    elif signal == BEARISH:
        score = -0.5
    else:
        score = 0.0

    return Factor(
        id="MATH_VOL_RATIO",
        name="Vol Ratio (5/20)",
        description="Short versus long window volatility",
        math_logic="Std(5) / Std(20) > 1.2 means a regime change is near.",
        value=_fmt(vol_ratio, 2),
        signal=signal,
        score=score,
        category=CATEGORY_STATISTICAL,
        confidence=min(max(vol_ratio - 1, 0.0), 1.0),
        visual_type=VISUAL_BREAKOUT,
    )


# ── Trend ────────────────────────────────────────────────────────────────


def tech_adx(ctx: FactorContext) -> Factor:
    period = ctx.params.adx_period
    di = calculate_adx(ctx.series, period)

    signal = NEUTRAL
    confidence = 0.0
    # ADX above 25 means a trend is in place
    if di.adx > 25:
        signal = BULLISH if di.plus_di > di.minus_di else BEARISH
        confidence = min(max((di.adx - 20) / 50, 0.0), 1.0)

    if signal == BULLISH:
        score = 0.7
    elif signal == BEARISH:
        score = -0.7
    else:
        score = 0.0

    return Factor(
        id="TECH_ADX",
        name=f"ADX Trend ({period})",
        description="Average Directional Index (trend strength)",
        math_logic="ADX > 25 with DI+ > DI- confirms an uptrend.",
        value=_fmt(di.adx, 1),
        signal=signal,
        score=score,
        category=CATEGORY_TREND,
        confidence=confidence,
        visual_type=VISUAL_TREND,
    )


def tech_macd(ctx: FactorContext) -> Factor:
    """EMA12 − EMA26 snapshot over the whole series.

    No signal-line history is kept, so confidence is pinned at 0.5.
    """
    macd_line = calculate_ema(ctx.closes, 12) - calculate_ema(ctx.closes, 26)
    signal = BULLISH if macd_line > 0 else BEARISH

    return Factor(
        id="TECH_MACD",
        name="MACD Trend (Approx)",
        description="Moving average convergence divergence",
        math_logic="MACD Line > 0 is an uptrend, < 0 a downtrend.",
        value=_fmt(macd_line, 2),
        signal=signal,
        score=0.5 if signal == BULLISH else -0.5,
        category=CATEGORY_TREND,
        confidence=0.5,
        visual_type=VISUAL_TREND,
    )


# ── Relative strength ────────────────────────────────────────────────────


def rel_btc_alpha(ctx: FactorContext) -> Optional[Factor]:
    """Five-bar excess return of the target over the reference.

    Not applicable unless the reference has more than 20 points.
    """
    if len(ctx.reference) <= MIN_REFERENCE_LENGTH:
        return None

    reference_closes = [p.price for p in ctx.reference]
    alpha = _return_over(ctx.closes, RELATIVE_RETURN_BARS) - _return_over(
        reference_closes, RELATIVE_RETURN_BARS
    )

    signal = NEUTRAL
    if alpha > 0.05:
        signal = BULLISH
    elif alpha < -0.05:
        signal = BEARISH

    if signal == BULLISH:
        score = 0.9
    elif signal == BEARISH:
        score = -0.5
    else:
        score = 0.0

    return Factor(
        id="REL_BTC_ALPHA",
        name="BTC Relative Alpha",
        description="Excess return over BTC (5D)",
        math_logic="Return(Token) - Return(BTC) > 5% means independent strength.",
        value=f"{_fmt(alpha * 100, 2)}%",
        signal=signal,
        score=score,
        category=CATEGORY_RELATIVE,
        confidence=min(abs(alpha) * 10, 1.0),
        visual_type=VISUAL_DIVERGENCE,
    )


# ── Momentum / volatility ────────────────────────────────────────────────


def tech_rsi(ctx: FactorContext) -> Factor:
    rsi = calculate_rsi(ctx.series, 14)

    signal = NEUTRAL
    if rsi < 30:
        signal = BULLISH
    if rsi > 70:
        signal = BEARISH

    if signal == BULLISH:
        score = 0.6
    elif signal == BEARISH:
        score = -0.6
    else:
        score = 0.0

    return Factor(
        id="TECH_RSI",
        name="RSI (14)",
        description="Relative Strength Index",
        math_logic="RSI < 30 is oversold (long), RSI > 70 is overbought (short).",
        value=_fmt(rsi, 1),
        signal=signal,
        score=score,
        category=CATEGORY_MOMENTUM,
        confidence=abs(rsi - 50) / 50,
        visual_type=VISUAL_REVERSION,
    )


def tech_boll(ctx: FactorContext) -> Optional[Factor]:
    """Bollinger %B of the latest close (20, 2).

    Collapsed bands (zero width) put the close at the middle, %B = 0.5.
    """
    bands = calculate_bollinger(ctx.closes, 20, 2.0)
    if bands is None:
        return None

    span = bands.upper - bands.lower
    percent_b = (ctx.closes[-1] - bands.lower) / span if span != 0 else 0.5

    signal = NEUTRAL
    if percent_b < 0:
        signal = BULLISH  # below the lower band
    if percent_b > 1:
        signal = BEARISH  # above the upper band

    if signal == BULLISH:
        score = 0.7
    elif signal == BEARISH:
        score = -0.7
    else:
        score = 0.0

    return Factor(
        id="TECH_BOLL",
        name="Bollinger %B",
        description="Position inside the Bollinger Bands",
        math_logic="%B < 0 breaks the lower band (oversold), %B > 1 the upper band (overbought).",
        value=_fmt(percent_b, 2),
        signal=signal,
        score=score,
        category=CATEGORY_VOLATILITY,
        confidence=min(abs(percent_b - 0.5) * 2, 1.0),
        visual_type=VISUAL_BREAKOUT,
    )
