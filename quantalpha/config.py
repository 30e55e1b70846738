"""QuantAlpha — application configuration.

Loads .env variables into a typed config object.
Validates numeric variables on startup.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from quantalpha.factors.models import FACTOR_IDS, AnalysisParams

_POSITIVE_INT_VARS = {
    "HISTORY_DAYS": "90",
    "WINDOW_SHORT": "5",
    "WINDOW_LONG": "20",
    "VOLATILITY_WINDOW": "14",
    "ADX_PERIOD": "14",
    "API_PORT": "8080",
}


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    coingecko_base_url: str
    coingecko_api_key: str  # optional demo key; empty = anonymous
    default_coin: str
    reference_coin: str
    history_days: int
    window_short: int
    window_long: int
    volatility_window: int
    adx_period: int
    disabled_factors: tuple[str, ...]
    simulate_on_error: bool
    log_level: str
    api_port: int

    @property
    def analysis_params(self) -> AnalysisParams:
        return AnalysisParams(
            window_short=self.window_short,
            window_long=self.window_long,
            volatility_window=self.volatility_window,
            adx_period=self.adx_period,
        )

    @property
    def factor_config(self) -> dict[str, bool]:
        """Every catalog factor enabled unless listed in ``disabled_factors``."""
        return {fid: fid not in self.disabled_factors for fid in FACTOR_IDS}


def _positive_int(name: str) -> int:
    raw = os.environ.get(name, _POSITIVE_INT_VARS[name])
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(
            f"Environment variable {name} must be an integer, got {raw!r}"
        ) from None
    if value <= 0:
        raise ValueError(f"Environment variable {name} must be positive, got {value}")
    return value


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` naming the variable when a numeric variable is
    malformed or not positive, or when ``DISABLED_FACTORS`` lists an id
    outside the factor catalog.
    """
    load_dotenv(dotenv_path=env_path)

    disabled = tuple(
        fid.strip().upper()
        for fid in os.environ.get("DISABLED_FACTORS", "").split(",")
        if fid.strip()
    )
    unknown = [fid for fid in disabled if fid not in FACTOR_IDS]
    if unknown:
        raise ValueError(
            f"Unknown factor id(s) in DISABLED_FACTORS: {', '.join(unknown)}"
        )

    return Config(
        coingecko_base_url=os.environ.get(
            "COINGECKO_BASE_URL", "https://api.coingecko.com"
        ).rstrip("/"),
        coingecko_api_key=os.environ.get("COINGECKO_API_KEY", ""),
        default_coin=os.environ.get("DEFAULT_COIN", "bitcoin"),
        reference_coin=os.environ.get("REFERENCE_COIN", "bitcoin"),
        history_days=_positive_int("HISTORY_DAYS"),
        window_short=_positive_int("WINDOW_SHORT"),
        window_long=_positive_int("WINDOW_LONG"),
        volatility_window=_positive_int("VOLATILITY_WINDOW"),
        adx_period=_positive_int("ADX_PERIOD"),
        disabled_factors=disabled,
        simulate_on_error=_parse_bool(os.environ.get("SIMULATE_ON_ERROR", "true")),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        api_port=_positive_int("API_PORT"),
    )
