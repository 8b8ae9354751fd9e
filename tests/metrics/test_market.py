"""Tests for conversion-rate snapshot helpers."""

from decimal import Decimal

import pytest

from kquai_monitor.helpers.errors import RPCTimeoutError
from kquai_monitor.metrics.market import (
    discount_percent,
    fetch_market_snapshot,
    parse_kquai_discount,
)


class TestDiscountPercent:
    """Tests for discount_percent function."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(0, Decimal(0)), (500, Decimal("0.5")), (100_000, Decimal(100)), (1, Decimal("0.001"))],
    )
    def test_scaling(self, raw: int, expected: Decimal) -> None:
        """Test the raw multiplier maps to percent."""
        assert discount_percent(raw) == expected


class TestParseKQuaiDiscount:
    """Tests for parse_kquai_discount function."""

    def test_object_result(self) -> None:
        """Test object results carry discount and direction."""
        raw, percent, direction = parse_kquai_discount(
            {"kQuaiDiscount": "0x1f4", "direction": "QuaiToQi"}
        )

        assert raw == "0x1f4"
        assert percent == Decimal("0.5")
        assert direction == "QuaiToQi"

    def test_alternate_key(self) -> None:
        """Test the shorter discount key is accepted."""
        _, percent, direction = parse_kquai_discount({"discount": "0x3e8"})

        assert percent == Decimal(1)
        assert direction is None

    def test_bare_hex(self) -> None:
        """Test a bare hex result is accepted."""
        assert parse_kquai_discount("0x64")[1] == Decimal("0.1")

    def test_missing(self) -> None:
        """Test a failed item yields no values."""
        assert parse_kquai_discount(None) == (None, None, None)

    def test_malformed(self) -> None:
        """Test undecodable values keep the raw text only."""
        raw, percent, _ = parse_kquai_discount("0xjunk")

        assert raw == "0xjunk"
        assert percent is None


class TestFetchMarketSnapshot:
    """Tests for fetch_market_snapshot function."""

    @pytest.mark.asyncio
    async def test_single_batch(self, fake_node, mock_http_client, rpc_client) -> None:
        """Test all three figures are read in one POST."""
        snapshot = await fetch_market_snapshot(rpc_client, mock_http_client)

        assert fake_node.post_sizes == [3]
        assert snapshot.qi_to_quai_wei == 2 * 10**18
        assert snapshot.conversion_flow == 12345
        assert snapshot.kquai_discount_percent == Decimal("0.5")
        assert snapshot.kquai_direction == "QiToQuai"

        payload = mock_http_client.post.call_args.kwargs["json"]
        qi_request = next(item for item in payload if item["id"] == "qi_to_quai")
        assert qi_request["params"] == ["0x3e8", "latest"]

    @pytest.mark.asyncio
    async def test_failed_items_leave_fields_empty(
        self, fake_node, mock_http_client, rpc_client
    ) -> None:
        """Test item errors only clear their own field."""
        fake_node.error_ids = {"conversion_flow", "kquai_discount"}

        snapshot = await fetch_market_snapshot(rpc_client, mock_http_client)

        assert snapshot.qi_to_quai_wei == 2 * 10**18
        assert snapshot.conversion_flow is None
        assert snapshot.kquai_discount_percent is None
        assert snapshot.kquai_direction is None

    @pytest.mark.asyncio
    async def test_transport_failure_propagates(
        self, fake_node, mock_http_client, rpc_client
    ) -> None:
        """Test a failed POST is raised to the caller."""
        fake_node.fail_all = True

        with pytest.raises(RPCTimeoutError):
            await fetch_market_snapshot(rpc_client, mock_http_client)
