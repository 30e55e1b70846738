"""Factor registry — maps factor ids to evaluator functions.

Declaration order is output order; the pipeline iterates this mapping and
consults the factor config for each entry.
"""

from typing import Callable, Optional

from quantalpha.factors import evaluators
from quantalpha.factors.evaluators import FactorContext
from quantalpha.factors.models import Factor

FactorEvaluator = Callable[[FactorContext], Optional[Factor]]


FACTOR_REGISTRY: dict[str, FactorEvaluator] = {
    "ALPHA_006": evaluators.alpha_006,
    "ALPHA_012": evaluators.alpha_012,
    "TS_RANK_20": evaluators.ts_rank_20,
    "STAT_SKEW": evaluators.stat_skew,
    "MATH_VOL_RATIO": evaluators.math_vol_ratio,
    "TECH_ADX": evaluators.tech_adx,
    "REL_BTC_ALPHA": evaluators.rel_btc_alpha,
    "TECH_RSI": evaluators.tech_rsi,
    "TECH_BOLL": evaluators.tech_boll,
    "ALPHA_009": evaluators.alpha_009,
    "TECH_MACD": evaluators.tech_macd,
}


def get_evaluator(name: str) -> FactorEvaluator:
    """Look up an evaluator by factor id.

    Raises ``KeyError`` if the factor id is not registered.
    """
    if name not in FACTOR_REGISTRY:
        raise KeyError(
            f"Unknown factor '{name}'. "
            f"Available: {', '.join(FACTOR_REGISTRY.keys())}"
        )
    return FACTOR_REGISTRY[name]
