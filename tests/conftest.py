"""Pytest configuration and shared fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from typing import Any

import httpx

from kquai_monitor.helpers.constants import SCALE
from kquai_monitor.helpers.rpc import RPCClient


class FakeNode:
    """In-memory stand-in for a Quai node answering JSON-RPC POSTs.

    Batch responses are returned in reverse order to exercise id matching.
    """

    def __init__(self, latest_block: int = 10_000) -> None:
        self.latest_block = latest_block
        self.post_sizes: list[int] = []
        self.fail_posts: set[int] = set()
        self.fail_all = False
        self.error_ids: set[str] = set()
        self.headers_without_miner_difficulty: set[int] = set()

    @staticmethod
    def miner_raw(block_number: int) -> int:
        return 100 + block_number % 7

    @staticmethod
    def miner_normalized(block_number: int) -> int:
        return SCALE * (690 + block_number % 11)

    @staticmethod
    def best_normalized(block_number: int) -> int:
        return SCALE * (700 + block_number % 5)

    def header(self, block_number: int) -> dict[str, Any]:
        header: dict[str, Any] = {
            "number": hex(block_number),
            "exchangeRate": hex(10**18 + block_number),
            "woHeader": {"timestamp": hex(1_700_000_000 + block_number)},
        }
        if block_number not in self.headers_without_miner_difficulty:
            header["minerDifficulty"] = hex(self.miner_raw(block_number))
        return header

    def result_for(self, method: str, params: list[Any]) -> Any:
        if method == "quai_blockNumber":
            return hex(self.latest_block)
        if method == "quai_qiToQuai":
            return hex(2 * 10**18)
        if method == "quai_conversionFlow":
            return hex(12345)
        if method == "quai_kQuaiDiscount":
            return {"kQuaiDiscount": hex(500), "direction": "QiToQuai"}

        block_number = int(params[0], 16)
        if method == "quai_getMinerDiffNormalized":
            return hex(self.miner_normalized(block_number))
        if method == "quai_getBestDiffNormalized":
            return hex(self.best_normalized(block_number))
        if method == "quai_getHeaderByNumber":
            return self.header(block_number)
        raise AssertionError(f"unexpected method {method}")

    def respond(self, request: dict[str, Any]) -> dict[str, Any]:
        if str(request["id"]) in self.error_ids:
            return {
                "jsonrpc": "2.0",
                "id": request["id"],
                "error": {"code": -32000, "message": "not found"},
            }
        return {
            "jsonrpc": "2.0",
            "id": request["id"],
            "result": self.result_for(request["method"], request["params"]),
        }

    async def post(self, url: str, json: Any = None, timeout: float | None = None) -> Any:
        index = len(self.post_sizes)
        self.post_sizes.append(len(json) if isinstance(json, list) else 1)

        if self.fail_all or index in self.fail_posts:
            raise httpx.ReadTimeout("timed out")

        if isinstance(json, list):
            body: Any = [self.respond(item) for item in reversed(json)]
        else:
            body = self.respond(json)

        response = MagicMock()
        response.json.return_value = body
        return response


@pytest.fixture
def fake_node() -> FakeNode:
    """Provide a fake node at block 10000."""
    return FakeNode()


@pytest.fixture
def mock_http_client(fake_node: FakeNode) -> AsyncMock:
    """Provide an AsyncClient double routed to the fake node."""
    client = AsyncMock(spec=httpx.AsyncClient)
    client.post.side_effect = fake_node.post
    return client


@pytest.fixture
def rpc_client() -> RPCClient:
    """Provide an RPC client without backoff delays."""
    return RPCClient("https://test.rpc", retry_base_delay=0.0)
