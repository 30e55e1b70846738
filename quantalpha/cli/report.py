"""Console report for one factor analysis."""

from quantalpha.factors.aggregator import count_active_signals
from quantalpha.factors.models import AnalysisResult

_SIGNAL_MARKS = {"BULLISH": "+", "BEARISH": "-", "NEUTRAL": "="}


def format_report(
    coin: str,
    result: AnalysisResult,
    simulated: bool = False,
    last_price: float | None = None,
    change_pct: float | None = None,
) -> str:
    """Format and print an analysis result.

    Args:
        coin: CoinGecko id the analysis ran on.
        result: Output of ``run_analysis``.
        simulated: Whether the series came from the simulated fallback.
        last_price: Latest close, shown in the header when known.
        change_pct: Change over the last bar in percent, shown next to the
            price when known.

    Returns:
        The formatted string (also printed to stdout).
    """
    price_str = f"${last_price:,.4f}" if last_price is not None else "N/A"
    if change_pct is not None:
        price_str += f" (24h {change_pct:+.2f}%)"
    source = "simulated" if simulated else "live"
    overall = result.overall

    lines = [
        "──────────────── QuantAlpha Factors ────────────────",
        f"  Coin:     {coin} ({source})",
        f"  Price:    {price_str}",
        "",
    ]
    if not result.factors:
        lines.append("  No factors evaluated (series too short or all disabled)")
    for f in result.factors:
        mark = _SIGNAL_MARKS.get(f.signal, "?")
        lines.append(
            f"  [{mark}] {f.name:<28} {f.value:>10}  "
            f"{f.signal:<8} score {f.score:+.1f}  conf {f.confidence:.2f}"
        )
    lines += [
        "",
        f"  Overall:  {overall.label} "
        f"(mean {overall.mean_score:+.2f} over {overall.factor_count} factor(s))",
        f"  Active:   {count_active_signals(result.factors)} non-neutral signal(s)",
        "────────────────────────────────────────────────────",
    ]
    output = "\n".join(lines)
    print(output)
    return output
