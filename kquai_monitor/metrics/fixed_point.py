"""Fixed-point binary logarithm matching the node's LogBig."""

from kquai_monitor.helpers.constants import MANTISSA_BITS, SCALE


def log2_fixed(x: int) -> int:
    """Return log2(x) scaled by 2^64, as the consensus code computes it.

    The integer part is the position of the highest set bit; the fractional
    part is the linear mantissa ``(x - 2^c) / 2^c`` truncated to 64 bits.
    Only integer arithmetic is used so operands of any size stay exact.

    Args:
        x: Unsigned integer; values <= 0 yield 0

    Returns:
        int: ``c * 2^64 + m`` with ``c = x.bit_length() - 1`` and ``0 <= m < 2^64``

    Example:
        >>> log2_fixed(8) == 3 * 2**64
        True
        >>> log2_fixed(12) == 3 * 2**64 + 2**63
        True
    """
    if x <= 0:
        return 0

    c = x.bit_length() - 1
    remainder = x - (1 << c)
    m = (remainder << MANTISSA_BITS) >> c
    return c * SCALE + m


__all__ = ["log2_fixed"]
