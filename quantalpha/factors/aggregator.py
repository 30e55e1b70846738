"""Overall signal: unweighted mean of factor scores."""

from quantalpha.factors.models import NEUTRAL, Factor, OverallSignal

LONG_THRESHOLD = 0.3
SHORT_THRESHOLD = -0.3


def compute_overall_signal(factors: list[Factor]) -> OverallSignal:
    """Reduce evaluated factors to one Long / Short / Neutral verdict.

    Every factor counts equally, neutral ones included: they add 0 to the
    total but still widen the denominator.  Confidence is not used.
    """
    total = sum(f.score for f in factors)
    mean_score = total / max(1, len(factors))

    if mean_score > LONG_THRESHOLD:
        label = "Long"
    elif mean_score < SHORT_THRESHOLD:
        label = "Short"
    else:
        label = "Neutral"

    return OverallSignal(
        label=label,
        mean_score=mean_score,
        factor_count=len(factors),
    )


def count_active_signals(factors: list[Factor]) -> int:
    """Number of factors with a directional (non-NEUTRAL) signal."""
    return sum(1 for f in factors if f.signal != NEUTRAL)
