"""QuantAlpha — application entry point.

Boots the FastAPI internal server and provides the CLI entry point for a
one-shot console report or API serving.
"""

import logging

from fastapi import FastAPI

from quantalpha.api.routers import router

app = FastAPI(title="QuantAlpha Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("quantalpha")


@app.get("/health")
async def health():
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to report or serve mode."""
    import argparse

    from quantalpha.config import load_config

    parser = argparse.ArgumentParser(description="QuantAlpha factor analysis")
    parser.add_argument("--coin", help="Coin id or ticker (default: DEFAULT_COIN)")
    parser.add_argument("--days", type=int, help="History length in days")
    parser.add_argument(
        "--disable",
        action="append",
        default=[],
        metavar="FACTOR_ID",
        help="Disable a factor for this run (repeatable)",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Serve the internal API instead of printing a report",
    )
    args = parser.parse_args(argv)

    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    from quantalpha.market.coingecko_client import CoinGeckoClient

    client = CoinGeckoClient(config)

    if args.serve:
        _serve(config, client)
    else:
        _print_report(config, client, args.coin, args.days, args.disable)


def _serve(config, client) -> None:
    """Start the API server with injected config and client."""
    import uvicorn

    from quantalpha.api.routers import configure_routers

    configure_routers(config=config, client=client)
    logger.info("API available at http://localhost:%d", config.api_port)
    uvicorn.run(app, host="0.0.0.0", port=config.api_port, log_level="info")


def _print_report(config, client, coin, days, disabled) -> None:
    """Fetch one coin, evaluate the factors and print the report."""
    import asyncio

    from quantalpha.cli.report import format_report
    from quantalpha.factors.engine import run_analysis
    from quantalpha.market.coins import resolve_coin_id
    from quantalpha.market.loader import latest_change_pct, load_market_data

    coin_id = resolve_coin_id(coin or config.default_coin)
    history_days = days or config.history_days

    factor_config = config.factor_config
    for fid in disabled:
        key = fid.strip().upper()
        if key not in factor_config:
            logger.warning("Ignoring unknown factor id: %s", fid)
            continue
        factor_config[key] = False

    data = asyncio.run(
        load_market_data(
            client,
            coin_id,
            history_days,
            reference_coin=config.reference_coin,
            simulate_on_error=config.simulate_on_error,
        )
    )
    result = run_analysis(
        data.series, data.reference, config.analysis_params, factor_config
    )
    last_price = data.series[-1].price if data.series else None
    format_report(
        coin_id,
        result,
        simulated=data.simulated,
        last_price=last_price,
        change_pct=latest_change_pct(data.series),
    )


if __name__ == "__main__":
    _run_cli()
