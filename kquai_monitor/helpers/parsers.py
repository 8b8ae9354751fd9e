"""Parsing utilities for hex-encoded node values and denomination formatting."""

from decimal import Decimal

from typing import Any

from kquai_monitor.helpers.constants import DECIMAL_CONTEXT, QITS_PER_QI, WEI_PER_QUAI
from kquai_monitor.helpers.errors import DecodeError


def parse_hex_int(hex_value: str | None, default: int = 0) -> int:
    """Parse a 0x-prefixed hex string to an arbitrary-precision integer.

    Args:
        hex_value: Hex-encoded string or None
        default: Default value if hex_value is None or empty

    Returns:
        int: Parsed integer value

    Raises:
        DecodeError: If the value is not a hex string

    Example:
        >>> parse_hex_int("0xff")
        255
        >>> parse_hex_int(None, 0)
        0
    """
    if hex_value is None or hex_value == "":
        return default
    if not isinstance(hex_value, str):
        msg = f"Expected hex string, got {type(hex_value).__name__}"
        raise DecodeError(msg)
    try:
        return int(hex_value, 16)
    except ValueError as e:
        msg = f"Malformed hex value: {hex_value!r}"
        raise DecodeError(msg) from e


def parse_optional_hex_int(hex_value: Any) -> int | None:
    """Parse a hex value, keeping absence distinct from zero.

    Example:
        >>> parse_optional_hex_int(None) is None
        True
        >>> parse_optional_hex_int("0x64")
        100
    """
    if hex_value is None or hex_value == "":
        return None
    return parse_hex_int(hex_value)


def header_field(header: dict[str, Any] | None, key: str) -> Any:
    """Read a header field from the top level or the nested work-object header.

    Example:
        >>> header_field({"woHeader": {"timestamp": "0x10"}}, "timestamp")
        '0x10'
    """
    if not header:
        return None
    value = header.get(key)
    if value is None:
        wo_header = header.get("woHeader")
        if isinstance(wo_header, dict):
            value = wo_header.get(key)
    return value


def to_hex(value: int) -> str:
    """Encode a non-negative integer as a 0x-prefixed lowercase hex string."""
    return hex(value)


def _format_units(amount: int, unit: int, decimals: int) -> str:
    whole, rem = divmod(amount, unit)
    frac = (rem * 10**decimals) // unit
    frac_str = str(frac).rjust(decimals, "0").rstrip("0") if decimals > 0 else ""
    return f"{whole}.{frac_str}" if frac_str else str(whole)


def format_wei_to_quai(amount_wei: int, decimals: int = 6) -> str:
    """Format an amount in wei as Quai with trailing zeros trimmed.

    Example:
        >>> format_wei_to_quai(1_500_000_000_000_000_000)
        '1.5'
    """
    return _format_units(amount_wei, WEI_PER_QUAI, decimals)


def format_qits_to_qi(amount_qits: int, decimals: int = 6) -> str:
    """Format an amount in qits as Qi with trailing zeros trimmed.

    Example:
        >>> format_qits_to_qi(2500)
        '2.5 Qi'
    """
    return f"{_format_units(amount_qits, QITS_PER_QI, decimals)} Qi"


def format_percent(value: Decimal, decimals: int = 4) -> str:
    """Format a percentage, showing tiny positive values as a threshold.

    Example:
        >>> format_percent(Decimal("0.00001"))
        '<0.0001 %'
        >>> format_percent(Decimal("1.5"))
        '1.5000 %'
    """
    threshold = Decimal(1).scaleb(-decimals)
    if 0 < value < threshold:
        return f"<{threshold} %"
    quantum = Decimal(1).scaleb(-decimals)
    return f"{value.quantize(quantum, context=DECIMAL_CONTEXT)} %"


__all__ = [
    "format_percent",
    "format_qits_to_qi",
    "format_wei_to_quai",
    "header_field",
    "parse_hex_int",
    "parse_optional_hex_int",
    "to_hex",
]
