"""Factor pipeline: runs the enabled evaluators over one series.

Every call is a pure function of (series, reference, params, config);
nothing is cached between runs.
"""

import logging
from typing import Mapping, Optional, Sequence

from quantalpha.factors.aggregator import compute_overall_signal
from quantalpha.factors.evaluators import FactorContext
from quantalpha.factors.models import (
    AnalysisParams,
    AnalysisResult,
    Factor,
    PricePoint,
)
from quantalpha.factors.registry import FACTOR_REGISTRY

logger = logging.getLogger("quantalpha")

# Below this many observations no factor is evaluated.
MIN_OBSERVATIONS = 30


def analyze_factors(
    series: Sequence[PricePoint],
    reference: Optional[Sequence[PricePoint]],
    params: Optional[AnalysisParams],
    config: Mapping[str, bool],
) -> list[Factor]:
    """Evaluate every enabled factor in registry order.

    Args:
        series: Target OHLCV series, oldest first.
        reference: Benchmark series for relative strength; may be empty
            or ``None``.
        params: Window settings (defaults when ``None``).
        config: Factor id → enabled.  Unknown ids are ignored and missing
            ids count as disabled.

    Returns:
        Evaluated factors, empty when *series* has fewer than
        ``MIN_OBSERVATIONS`` points.
    """
    if len(series) < MIN_OBSERVATIONS:
        logger.debug(
            "Series too short for factor pass (%d < %d)",
            len(series), MIN_OBSERVATIONS,
        )
        return []

    ctx = FactorContext(
        series=list(series),
        reference=list(reference or []),
        params=params or AnalysisParams(),
    )

    factors: list[Factor] = []
    for factor_id, evaluator in FACTOR_REGISTRY.items():
        if not config.get(factor_id, False):
            continue
        factor = evaluator(ctx)
        if factor is None:
            logger.debug("Factor %s not applicable, skipped", factor_id)
            continue
        factors.append(factor)

    logger.debug("Evaluated %d factor(s) over %d points", len(factors), len(series))
    return factors


def run_analysis(
    series: Sequence[PricePoint],
    reference: Optional[Sequence[PricePoint]],
    params: Optional[AnalysisParams],
    config: Mapping[str, bool],
) -> AnalysisResult:
    """Evaluate factors and derive the overall signal in one call."""
    factors = analyze_factors(series, reference, params, config)
    return AnalysisResult(factors=factors, overall=compute_overall_signal(factors))
