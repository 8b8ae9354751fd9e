"""Conversion-rate figures read from the node next to the sample window."""

from decimal import Context, Decimal

from typing import Any

import httpx

from kquai_monitor.helpers.constants import (
    DECIMAL_CONTEXT,
    KQUAI_DISCOUNT_MULTIPLIER,
    MARKET_TIMEOUT,
    QITS_PER_QI,
)
from kquai_monitor.helpers.errors import DecodeError
from kquai_monitor.helpers.logging import get_logger
from kquai_monitor.helpers.parsers import parse_optional_hex_int, to_hex
from kquai_monitor.helpers.rpc import RPCClient
from kquai_monitor.helpers.rpc_models import JsonRpcRequest
from kquai_monitor.metrics.models import MarketSnapshot


logger = get_logger(__name__)


def _decode_big(value: Any, field: str) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    try:
        return parse_optional_hex_int(value) if isinstance(value, str) else None
    except DecodeError as e:
        logger.warning("Bad %s value: %s", field, e)
        return None


def discount_percent(raw: int, *, context: Context = DECIMAL_CONTEXT) -> Decimal:
    """Convert a raw kQuai discount into percent.

    Example:
        >>> discount_percent(500)
        Decimal('0.5')
    """
    return context.divide(Decimal(raw * 100), Decimal(KQUAI_DISCOUNT_MULTIPLIER))


def parse_kquai_discount(
    result: Any, *, context: Context = DECIMAL_CONTEXT
) -> tuple[str | None, Decimal | None, str | None]:
    """Split a quai_kQuaiDiscount result into (raw, percent, direction).

    The node returns either a bare hex value or an object carrying
    ``kQuaiDiscount`` (or ``discount``) and ``direction``.
    """
    direction = None
    raw = result
    if isinstance(result, dict):
        raw = result.get("kQuaiDiscount", result.get("discount"))
        direction = result.get("direction")

    value = _decode_big(raw, "kQuaiDiscount")
    percent = discount_percent(value, context=context) if value is not None else None
    raw_text = str(raw) if raw is not None else None
    return raw_text, percent, str(direction) if direction is not None else None


async def fetch_market_snapshot(
    rpc_client: RPCClient,
    client: httpx.AsyncClient,
    *,
    timeout: float = MARKET_TIMEOUT,
    context: Context = DECIMAL_CONTEXT,
) -> MarketSnapshot:
    """Read exchange rate, conversion flow and kQuai discount in one batch.

    Each field is decoded independently; a failed item leaves its field None.

    Args:
        rpc_client: RPC client
        client: HTTP client instance
        timeout: Batch timeout in seconds
        context: Decimal context for the discount percentage

    Returns:
        MarketSnapshot

    Raises:
        RPCClientError: If the batch POST itself failed
    """
    requests = [
        JsonRpcRequest(
            method="quai_qiToQuai", params=[to_hex(QITS_PER_QI), "latest"], id="qi_to_quai"
        ),
        JsonRpcRequest(
            method="quai_conversionFlow", params=["latest"], id="conversion_flow"
        ),
        JsonRpcRequest(
            method="quai_kQuaiDiscount", params=["latest"], id="kquai_discount"
        ),
    ]
    results = await rpc_client.batch(client, requests, timeout=timeout)

    qi_to_quai = _decode_big(results.get("qi_to_quai"), "qiToQuai")
    raw, percent, direction = parse_kquai_discount(
        results.get("kquai_discount"), context=context
    )

    return MarketSnapshot(
        qi_to_quai_wei=qi_to_quai if qi_to_quai else None,
        conversion_flow=_decode_big(results.get("conversion_flow"), "conversionFlow"),
        kquai_discount_raw=raw,
        kquai_discount_percent=percent,
        kquai_direction=direction,
    )


__all__ = [
    "discount_percent",
    "fetch_market_snapshot",
    "parse_kquai_discount",
]
