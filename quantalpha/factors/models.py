"""Factor data models — typed representations for pipeline inputs and outputs."""

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class PricePoint:
    """One time-bucketed OHLCV observation. ``price`` is the close."""

    timestamp: int  # epoch milliseconds
    price: float
    open: float
    high: float
    low: float
    volume: float
    time: str = ""  # display label, not used by the computation

    @classmethod
    def from_dict(cls, data: dict) -> "PricePoint":
        return cls(
            timestamp=int(data["timestamp"]),
            price=float(data["price"]),
            open=float(data.get("open", data["price"])),
            high=float(data.get("high", data["price"])),
            low=float(data.get("low", data["price"])),
            volume=float(data.get("volume", 0.0)),
            time=str(data.get("time", "")),
        )


@dataclass(frozen=True)
class AnalysisParams:
    """Tunable window lengths.

    Only ``adx_period`` feeds the current factor catalog; the other windows
    are carried so callers can persist one settings object.
    """

    window_short: int = 5
    window_long: int = 20
    volatility_window: int = 14
    adx_period: int = 14

    @classmethod
    def from_dict(cls, data: dict) -> "AnalysisParams":
        defaults = cls()
        return cls(
            window_short=int(data.get("window_short", defaults.window_short)),
            window_long=int(data.get("window_long", defaults.window_long)),
            volatility_window=int(
                data.get("volatility_window", defaults.volatility_window)
            ),
            adx_period=int(data.get("adx_period", defaults.adx_period)),
        )


@dataclass(frozen=True)
class Factor:
    """One evaluated trading factor."""

    id: str
    name: str
    description: str
    math_logic: str
    value: str  # display-formatted
    signal: str  # BULLISH, BEARISH or NEUTRAL
    score: float  # -1 .. 1
    category: str
    confidence: float  # 0 .. 1, display weight only
    visual_type: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class OverallSignal:
    """Unweighted verdict across all evaluated factors."""

    label: str  # "Long", "Short" or "Neutral"
    mean_score: float
    factor_count: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class AnalysisResult:
    """Output of one pipeline run."""

    factors: list[Factor]
    overall: OverallSignal

    def to_dict(self) -> dict:
        return {
            "factors": [f.to_dict() for f in self.factors],
            "overall": self.overall.to_dict(),
        }


# ── Signal tags ──────────────────────────────────────────────────────────

BULLISH = "BULLISH"
BEARISH = "BEARISH"
NEUTRAL = "NEUTRAL"

# ── Factor categories ────────────────────────────────────────────────────

CATEGORY_ALPHA101 = "ALPHA101"
CATEGORY_MATH = "MATH"
CATEGORY_STATISTICAL = "STATISTICAL"
CATEGORY_TREND = "TREND"
CATEGORY_RELATIVE = "RELATIVE"
CATEGORY_MOMENTUM = "MOMENTUM"
CATEGORY_VOLATILITY = "VOLATILITY"

# ── Visualization hints ──────────────────────────────────────────────────

VISUAL_CORRELATION = "CORRELATION"
VISUAL_REVERSION = "REVERSION"
VISUAL_BREAKOUT = "BREAKOUT"
VISUAL_TREND = "TREND"
VISUAL_DIVERGENCE = "DIVERGENCE"

# ── Factor catalog ───────────────────────────────────────────────────────

FACTOR_IDS: tuple[str, ...] = (
    "ALPHA_006",
    "ALPHA_012",
    "TS_RANK_20",
    "STAT_SKEW",
    "MATH_VOL_RATIO",
    "TECH_ADX",
    "REL_BTC_ALPHA",
    "TECH_RSI",
    "TECH_BOLL",
    "ALPHA_009",
    "TECH_MACD",
)

DEFAULT_FACTOR_CONFIG: dict[str, bool] = {factor_id: True for factor_id in FACTOR_IDS}
