"""Internal API routers — /factors, /settings, /analysis endpoints.

No numeric logic here. Delegates to the market loader and the factor
pipeline; factor toggles and window settings live in memory only.
"""

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Query

from quantalpha.factors.aggregator import count_active_signals
from quantalpha.factors.engine import run_analysis
from quantalpha.factors.models import (
    DEFAULT_FACTOR_CONFIG,
    FACTOR_IDS,
    AnalysisParams,
    PricePoint,
)
from quantalpha.market.coins import POPULAR_COINS, resolve_coin_id
from quantalpha.market.loader import latest_change_pct, load_market_data

logger = logging.getLogger("quantalpha")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_config = None  # Set via configure_routers()
_client = None  # Set via configure_routers()

# Live settings: mutable at runtime, not persisted
_factor_config: dict[str, bool] = dict(DEFAULT_FACTOR_CONFIG)
_params: AnalysisParams = AnalysisParams()


def configure_routers(config=None, client=None) -> None:
    """Inject dependencies from the application startup.

    Args:
        config: A ``Config`` instance; seeds the live factor toggles,
            window settings and default history length.
        client: A ``CoinGeckoClient`` (or duck-type for tests).
    """
    global _config, _client, _factor_config, _params  # noqa: PLW0603
    _config = config
    _client = client
    if config is not None:
        _factor_config = dict(config.factor_config)
        _params = config.analysis_params
    else:
        _factor_config = dict(DEFAULT_FACTOR_CONFIG)
        _params = AnalysisParams()


def _params_to_dict(params: AnalysisParams) -> dict:
    return {
        "window_short": params.window_short,
        "window_long": params.window_long,
        "volatility_window": params.volatility_window,
        "adx_period": params.adx_period,
    }


def get_live_settings() -> dict:
    """Return the current factor toggles and window settings."""
    return {"factors": dict(_factor_config), "params": _params_to_dict(_params)}


def _parse_params(raw, base: AnalysisParams) -> tuple[Optional[AnalysisParams], list[str]]:
    """Overlay *raw* on *base*; every window must be an integer >= 1."""
    if not isinstance(raw, dict):
        return None, ["params must be an object"]

    merged = {**_params_to_dict(base), **raw}
    errors = []
    for name, value in merged.items():
        if isinstance(value, bool):
            errors.append(f"{name} must be an integer")
            continue
        try:
            if int(value) < 1:
                errors.append(f"{name} must be >= 1")
        except (TypeError, ValueError):
            errors.append(f"{name} must be an integer")
    if errors:
        return None, errors
    return AnalysisParams.from_dict(merged), []


def _check_toggles(raw, label: str = "factors") -> list[str]:
    """Factor maps must be objects of id -> bool."""
    if not isinstance(raw, dict):
        return [f"{label} must be an object of id -> bool"]
    return [
        f"{fid} must be true or false"
        for fid, enabled in raw.items()
        if not isinstance(enabled, bool)
    ]


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get("/coins")
async def get_coins():
    """Return the popular coin list for the search box."""
    return {"coins": POPULAR_COINS}


@router.get("/factors")
async def get_factors():
    """Return the factor catalog in evaluation order with live toggles."""
    return {
        "factors": [
            {"id": fid, "enabled": _factor_config.get(fid, False)}
            for fid in FACTOR_IDS
        ]
    }


@router.post("/factors/{factor_id}/toggle")
async def toggle_factor(factor_id: str):
    """Flip one factor on or off."""
    if factor_id not in FACTOR_IDS:
        return {"status": "error", "errors": [f"Unknown factor: {factor_id}"]}
    _factor_config[factor_id] = not _factor_config.get(factor_id, False)
    logger.info("Factor %s %s", factor_id,
                "enabled" if _factor_config[factor_id] else "disabled")
    return {"status": "ok", "id": factor_id, "enabled": _factor_config[factor_id]}


@router.get("/settings")
async def get_settings():
    """Return current runtime settings."""
    return get_live_settings()


@router.post("/settings")
async def post_settings(body: dict):
    """Update factor toggles and window settings.

    Validates before applying. Unknown factor ids are ignored, matching
    the pipeline's treatment of unknown config keys.
    """
    global _params  # noqa: PLW0603

    factors = body.get("factors", {})
    errors = _check_toggles(factors)
    updated_params, param_errors = _parse_params(body.get("params", {}), _params)
    errors += param_errors

    if errors:
        return {"status": "error", "errors": errors}

    for fid, enabled in factors.items():
        if fid in FACTOR_IDS:
            _factor_config[fid] = enabled
    _params = updated_params

    logger.info("Settings updated: %s", get_live_settings())
    return {"status": "ok", **get_live_settings()}


@router.get("/analysis/{coin}")
async def get_analysis(
    coin: str,
    days: Optional[int] = Query(default=None, ge=1, le=365),
):
    """Fetch market data for *coin* and run the enabled factors."""
    if _client is None:
        return {"error": "Market data client not configured"}

    coin_id = resolve_coin_id(coin)
    history_days = days or (_config.history_days if _config else 90)
    reference_coin = _config.reference_coin if _config else "bitcoin"
    simulate = _config.simulate_on_error if _config else True

    try:
        data = await load_market_data(
            _client,
            coin_id,
            history_days,
            reference_coin=reference_coin,
            simulate_on_error=simulate,
        )
    except httpx.HTTPError as exc:
        logger.error("Market data fetch for %s failed: %s", coin_id, exc)
        return {"coin": coin_id, "error": str(exc) or exc.__class__.__name__}

    result = run_analysis(data.series, data.reference, _params, _factor_config)
    last_price = data.series[-1].price if data.series else None

    return {
        "coin": coin_id,
        "days": history_days,
        "simulated": data.simulated,
        "error": data.error,
        "points": len(data.series),
        "last_price": last_price,
        "change_24h_pct": latest_change_pct(data.series),
        "active_signals": count_active_signals(result.factors),
        **result.to_dict(),
    }


@router.post("/analysis/evaluate")
async def evaluate(body: dict):
    """Run the pipeline over caller-supplied series.

    Body: ``{"series": [...], "reference": [...], "params": {...},
    "config": {...}}``.  ``params`` and ``config`` fall back to the live
    settings when omitted.
    """
    try:
        series = [PricePoint.from_dict(p) for p in body.get("series", [])]
        reference = [PricePoint.from_dict(p) for p in body.get("reference", [])]
    except (KeyError, TypeError, ValueError) as exc:
        return {"status": "error", "errors": [f"Malformed request body: {exc}"]}

    params = _params
    if "params" in body:
        params, errors = _parse_params(body["params"], AnalysisParams())
        if errors:
            return {"status": "error", "errors": errors}

    config = body.get("config", _factor_config)
    errors = _check_toggles(config, label="config")
    if errors:
        return {"status": "error", "errors": errors}

    result = run_analysis(series, reference, params, config)
    return {"status": "ok", **result.to_dict()}
