"""kQuai controller arithmetic.

Reproduces the node's ``CalculateKQuai`` direction and magnitude from the
normalized best difficulty (d*) and the raw miner difficulty of a block:

    d1    = 2^64 * minerDifficulty
    d2    = LogBig(minerDifficulty)
    num   = d* * d2 - d1
    dk/k  = num / (d1 * OneOverAlpha)
    ratio = d* * d2 / d1

All intermediate values are Python ints; the two divisions are done once,
in a 40-digit decimal context, so results are identical across runs.
"""

from decimal import Context, Decimal

from kquai_monitor.helpers.constants import DECIMAL_CONTEXT, ONE_OVER_ALPHA, SCALE
from kquai_monitor.metrics.fixed_point import log2_fixed
from kquai_monitor.metrics.models import KQuaiResult, Provenance


NEUTRAL = KQuaiResult(
    ratio=Decimal(1),
    delta_k=Decimal(0),
    increasing=False,
    provenance=Provenance.DEFAULT,
)


def _truncating_div(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero, like big-integer division on the node."""
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator < 0) == (denominator < 0) else -quotient


def compute_exact(
    best_diff_normalized: int | None,
    miner_difficulty_raw: int | None,
    *,
    context: Context = DECIMAL_CONTEXT,
) -> KQuaiResult:
    """Compute ratio and deltaK with the consensus formula.

    Args:
        best_diff_normalized: d* as a 2^64 fixed-point integer
        miner_difficulty_raw: Raw miner difficulty from the header
        context: Decimal context for the final divisions

    Returns:
        KQuaiResult with provenance EXACT, or the neutral result when an
        input is missing or not positive
    """
    if not best_diff_normalized or not miner_difficulty_raw or miner_difficulty_raw <= 0:
        return NEUTRAL

    d1 = SCALE * miner_difficulty_raw
    d2 = log2_fixed(miner_difficulty_raw)
    scaled_best = best_diff_normalized * d2
    num = scaled_best - d1
    denom = d1 * ONE_OVER_ALPHA

    return KQuaiResult(
        ratio=context.divide(Decimal(scaled_best), Decimal(d1)),
        delta_k=context.divide(Decimal(num), Decimal(denom)),
        increasing=num > 0,
        provenance=Provenance.EXACT,
    )


def compute_approx(
    best_diff_normalized: int | None,
    miner_diff_normalized: int | None,
    *,
    context: Context = DECIMAL_CONTEXT,
) -> KQuaiResult:
    """Estimate ratio and deltaK from two normalized difficulties.

    Only meant for blocks whose raw miner difficulty is unavailable. The
    result carries provenance APPROXIMATE and no error bound relative to
    compute_exact is implied.

    Args:
        best_diff_normalized: d* as a 2^64 fixed-point integer
        miner_diff_normalized: d as a 2^64 fixed-point integer
        context: Decimal context for the final divisions

    Returns:
        KQuaiResult with provenance APPROXIMATE, or the neutral result
    """
    if not best_diff_normalized or not miner_diff_normalized:
        return NEUTRAL

    ratio_scaled = _truncating_div(best_diff_normalized * SCALE, miner_diff_normalized)
    delta_k_scaled = _truncating_div(ratio_scaled - SCALE, ONE_OVER_ALPHA)

    return KQuaiResult(
        ratio=context.divide(Decimal(ratio_scaled), Decimal(SCALE)),
        delta_k=context.divide(Decimal(delta_k_scaled), Decimal(SCALE)),
        increasing=delta_k_scaled > 0,
        provenance=Provenance.APPROXIMATE,
    )


def select_formula(
    best_diff_normalized: int | None,
    miner_difficulty_raw: int | None,
    miner_diff_normalized: int | None,
    *,
    context: Context = DECIMAL_CONTEXT,
) -> KQuaiResult:
    """Pick the exact formula when the header is usable, else the fallback.

    Example:
        >>> select_formula(None, None, None).provenance
        <Provenance.DEFAULT: 'default'>
    """
    if best_diff_normalized and miner_difficulty_raw is not None:
        return compute_exact(best_diff_normalized, miner_difficulty_raw, context=context)
    if best_diff_normalized and miner_diff_normalized:
        return compute_approx(best_diff_normalized, miner_diff_normalized, context=context)
    return NEUTRAL


__all__ = [
    "NEUTRAL",
    "compute_approx",
    "compute_exact",
    "select_formula",
]
