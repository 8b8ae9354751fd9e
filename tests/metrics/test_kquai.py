"""Tests for the kQuai ratio and adjustment-rate formulas."""

from decimal import Decimal, localcontext
from fractions import Fraction

import pytest

from kquai_monitor.helpers.constants import DECIMAL_CONTEXT, ONE_OVER_ALPHA, SCALE
from kquai_monitor.metrics.fixed_point import log2_fixed
from kquai_monitor.metrics.kquai import (
    NEUTRAL,
    compute_approx,
    compute_exact,
    select_formula,
)
from kquai_monitor.metrics.models import Provenance


class TestComputeExact:
    """Tests for compute_exact function."""

    def test_zero_best_is_neutral(self) -> None:
        """Test d* = 0 with miner difficulty 0x64 gives the neutral result."""
        result = compute_exact(0x0, 0x64)

        assert result.ratio == Decimal(1)
        assert result.delta_k == Decimal(0)
        assert result.increasing is False
        assert result.provenance is Provenance.DEFAULT

    @pytest.mark.parametrize(
        ("best", "miner"),
        [(None, 100), (SCALE * 700, None), (SCALE * 700, 0), (SCALE * 700, -3)],
    )
    def test_missing_or_non_positive_inputs(self, best: int | None, miner: int | None) -> None:
        """Test absent or non-positive inputs fall back to neutral values."""
        assert compute_exact(best, miner) == NEUTRAL

    def test_reference_block_is_deterministic(self) -> None:
        """Test miner 100 and d* = 700 * 2^64 always give the same values."""
        first = compute_exact(SCALE * 700, 100)
        second = compute_exact(SCALE * 700, 100)

        assert first == second
        assert str(first.delta_k) == str(second.delta_k)
        # log2(100) in fixed point is 6.5625, so the ratio is exact
        assert first.ratio == Decimal(735 * 2**60)
        assert first.delta_k == DECIMAL_CONTEXT.divide(
            Decimal(73500 * 2**60 - 100), Decimal(100_000)
        )
        assert first.increasing is True
        assert first.provenance is Provenance.EXACT

    def test_delta_k_has_forty_digits(self) -> None:
        """Test non-terminating quotients keep 40 significant digits."""
        result = compute_exact(SCALE * 3, 7)

        assert len(result.delta_k.as_tuple().digits) == 40

    @pytest.mark.parametrize(
        ("best", "miner"),
        [
            (SCALE * 700, 100),
            (1, 100),
            (SCALE // 2, 3),
            (SCALE * 12, 5),
            (2**200, 2**130 + 1),
            (SCALE, 1),
        ],
    )
    def test_sign_matches_numerator(self, best: int, miner: int) -> None:
        """Test increasing and the sign of deltaK follow d* * d2 - d1 exactly."""
        d1 = SCALE * miner
        num = best * log2_fixed(miner) - d1
        expected = Fraction(num, d1 * ONE_OVER_ALPHA)

        result = compute_exact(best, miner)

        assert result.increasing is (num > 0)
        assert (result.delta_k > 0) == (expected > 0)
        assert (result.delta_k < 0) == (expected < 0)

    def test_custom_context(self) -> None:
        """Test a caller-supplied context controls precision."""
        with localcontext(DECIMAL_CONTEXT) as ctx:
            ctx.prec = 10
            result = compute_exact(SCALE * 3, 7, context=ctx)

        assert len(result.delta_k.as_tuple().digits) <= 10


class TestComputeApprox:
    """Tests for compute_approx function."""

    def test_equal_difficulties(self) -> None:
        """Test d* = d gives ratio 1 and no adjustment."""
        result = compute_approx(SCALE * 700, SCALE * 700)

        assert result.ratio == Decimal(1)
        assert result.delta_k == Decimal(0)
        assert result.increasing is False
        assert result.provenance is Provenance.APPROXIMATE

    def test_positive_adjustment(self) -> None:
        """Test d* above d gives a positive rate."""
        result = compute_approx(SCALE * 2, SCALE)

        assert result.ratio == Decimal(2)
        assert result.delta_k == DECIMAL_CONTEXT.divide(
            Decimal(SCALE // ONE_OVER_ALPHA), Decimal(SCALE)
        )
        assert result.increasing is True

    def test_negative_adjustment_truncates_toward_zero(self) -> None:
        """Test negative quotients round toward zero."""
        result = compute_approx(SCALE, SCALE * 2)

        expected_scaled = -((SCALE // 2) // ONE_OVER_ALPHA)
        assert result.delta_k == DECIMAL_CONTEXT.divide(
            Decimal(expected_scaled), Decimal(SCALE)
        )
        assert result.increasing is False

    def test_missing_inputs_are_neutral(self) -> None:
        """Test absent values give the neutral result."""
        assert compute_approx(None, SCALE) == NEUTRAL
        assert compute_approx(SCALE, 0) == NEUTRAL


class TestSelectFormula:
    """Tests for select_formula function."""

    def test_prefers_exact(self) -> None:
        """Test the header difficulty selects the exact formula."""
        result = select_formula(SCALE * 700, 100, SCALE * 690)

        assert result.provenance is Provenance.EXACT

    def test_falls_back_without_raw_difficulty(self) -> None:
        """Test missing raw difficulty uses the normalized fallback."""
        result = select_formula(SCALE * 700, None, SCALE * 690)

        assert result.provenance is Provenance.APPROXIMATE
        assert result.increasing is True

    def test_zero_raw_difficulty_is_neutral(self) -> None:
        """Test a present but zero raw difficulty does not use the fallback."""
        result = select_formula(SCALE * 700, 0, SCALE * 690)

        assert result == NEUTRAL

    def test_nothing_available(self) -> None:
        """Test no inputs give the neutral result."""
        assert select_formula(None, None, None) == NEUTRAL
