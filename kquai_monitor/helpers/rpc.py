"""JSON-RPC client utilities for the Quai node."""

import itertools

from collections.abc import Sequence
from typing import Any

import httpx
from pydantic import ValidationError

from kquai_monitor.helpers.constants import (
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT,
    LOOKUP_RETRIES,
    LOOKUP_TIMEOUT,
    MAX_ITEMS_PER_POST,
    RETRY_BASE_DELAY,
)
from kquai_monitor.helpers.errors import (
    DecodeError,
    InsufficientDataError,
    RPCClientError,
    RPCError,
)
from kquai_monitor.helpers.http import post_json_rpc, retry_with_backoff
from kquai_monitor.helpers.http_models import BatchResult
from kquai_monitor.helpers.logging import get_logger
from kquai_monitor.helpers.parsers import parse_hex_int, parse_optional_hex_int, to_hex
from kquai_monitor.helpers.rpc_models import (
    BlockNumberRequest,
    HeaderByNumberRequest,
    JsonRpcRequest,
    JsonRpcResponse,
)


logger = get_logger(__name__)


def parse_batch_response(items: list[Any]) -> BatchResult:
    """Map a batch response array to ``{id: result}``.

    Items are matched by id, so out-of-order responses are fine. Items that
    carry an error (or cannot be validated) map to None; items without a
    numeric or string id are dropped, which leaves their request id absent
    from the map.

    Args:
        items: Decoded JSON array returned by the node

    Returns:
        Dict mapping request id to result, None for failed items
    """
    results: BatchResult = {}
    for item in items:
        if not isinstance(item, dict):
            continue
        request_id = item.get("id")
        if not isinstance(request_id, int | str):
            logger.debug("Dropping batch item with id %r", request_id)
            continue

        try:
            response = JsonRpcResponse.model_validate(item)
        except ValidationError:
            logger.debug("Unparseable batch item for id %s", request_id)
            results[request_id] = None
            continue

        if response.id is None:
            continue

        if response.error is not None:
            logger.debug(
                "Batch item %s failed: %s %s",
                response.id,
                response.error.code,
                response.error.message,
            )
            results[response.id] = None
        else:
            results[response.id] = response.result

    return results


class RPCClient:
    """Quai JSON-RPC client with batching and adaptive request splitting."""

    def __init__(
        self,
        rpc_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        retry_base_delay: float = RETRY_BASE_DELAY,
    ) -> None:
        """Initialize RPC client.

        Args:
            rpc_url: Quai JSON-RPC endpoint URL
            timeout: Default timeout for requests in seconds
            retry_base_delay: First backoff delay in seconds, doubled per retry

        Raises:
            ValueError: If rpc_url is empty or None
        """
        if not rpc_url:
            msg = "RPC URL cannot be empty"
            raise ValueError(msg)

        self.rpc_url = rpc_url
        self.timeout = timeout
        self.retry_base_delay = retry_base_delay
        self._ids = itertools.count(1)

    def request(self, method: str, params: list[Any] | None = None) -> JsonRpcRequest:
        """Build a request with a fresh numeric id."""
        return JsonRpcRequest(method=method, params=params or [], id=next(self._ids))

    async def call(
        self,
        client: httpx.AsyncClient,
        method: str,
        params: list[Any] | None = None,
        *,
        timeout: float | None = None,
        retries: int = DEFAULT_RETRIES,
    ) -> Any:
        """Make a single JSON-RPC call.

        Args:
            client: HTTP client instance
            method: RPC method name (e.g., "quai_blockNumber")
            params: Method parameters list
            timeout: Optional timeout override
            retries: Extra attempts with exponential backoff

        Returns:
            RPC result value

        Raises:
            RPCClientError: The last error once all attempts failed
        """
        payload = self.request(method, params).model_dump()
        attempt = retry_with_backoff(retries=retries, base_delay=self.retry_base_delay)(
            self._call_once
        )
        return await attempt(client, payload, timeout=timeout or self.timeout)

    async def _call_once(
        self,
        client: httpx.AsyncClient,
        payload: dict[str, Any],
        *,
        timeout: float,
    ) -> Any:
        data = await post_json_rpc(
            client, self.rpc_url, payload, timeout=timeout, context=payload["method"]
        )
        if not isinstance(data, dict):
            msg = f"Invalid response for {payload['method']}"
            raise DecodeError(msg)

        try:
            response = JsonRpcResponse.model_validate(data)
        except ValidationError as e:
            msg = f"Invalid response for {payload['method']}"
            raise DecodeError(msg) from e

        if response.error is not None:
            raise RPCError(code=response.error.code, message=response.error.message)

        return response.result

    async def batch(
        self,
        client: httpx.AsyncClient,
        requests: Sequence[JsonRpcRequest],
        *,
        timeout: float | None = None,
        retries: int = DEFAULT_RETRIES,
    ) -> BatchResult:
        """Make multiple JSON-RPC calls in a single POST.

        A per-item RPC error does not fail the batch: that id maps to None.
        Transport failures of the whole POST are retried with backoff.

        Args:
            client: HTTP client instance
            requests: Requests to send, ids must be unique
            timeout: Optional timeout override
            retries: Extra attempts with exponential backoff

        Returns:
            Dict mapping request id to result, None for failed items

        Raises:
            RPCClientError: The last error once all attempts failed
        """
        if not requests:
            return {}

        payload = [request.model_dump() for request in requests]
        attempt = retry_with_backoff(retries=retries, base_delay=self.retry_base_delay)(
            self._batch_once
        )
        return await attempt(client, payload, timeout=timeout or self.timeout)

    async def _batch_once(
        self,
        client: httpx.AsyncClient,
        payload: list[dict[str, Any]],
        *,
        timeout: float,
    ) -> BatchResult:
        data = await post_json_rpc(
            client, self.rpc_url, payload, timeout=timeout, context="batch"
        )
        if not isinstance(data, list):
            msg = f"Invalid batch response for {len(payload)} requests"
            raise DecodeError(msg)

        return parse_batch_response(data)

    async def batch_with_limit(
        self,
        client: httpx.AsyncClient,
        requests: Sequence[JsonRpcRequest],
        max_items_per_post: int = MAX_ITEMS_PER_POST,
        *,
        timeout: float | None = None,
        retries: int = DEFAULT_RETRIES,
    ) -> BatchResult:
        """Send a large batch as consecutive POSTs of at most ``max_items_per_post``.

        Slices are sent sequentially. A failing slice is logged and skipped,
        so the merged map may be missing ids; callers must check. When the
        batch fits in one POST, errors from that POST propagate.

        Args:
            client: HTTP client instance
            requests: Requests to send
            max_items_per_post: Largest slice sent in one POST
            timeout: Optional timeout override
            retries: Extra attempts per slice

        Returns:
            Merged dict mapping request id to result

        Example:
            ```python
            rpc = RPCClient(rpc_url)
            async with create_http_client() as client:
                results = await rpc.batch_with_limit(client, requests, 2000)
                missing = [r.id for r in requests if r.id not in results]
            ```
        """
        if max_items_per_post <= 0:
            msg = "max_items_per_post must be positive"
            raise ValueError(msg)

        if len(requests) <= max_items_per_post:
            return await self.batch(client, requests, timeout=timeout, retries=retries)

        merged: BatchResult = {}
        for start in range(0, len(requests), max_items_per_post):
            chunk = requests[start : start + max_items_per_post]
            try:
                merged.update(
                    await self.batch(client, chunk, timeout=timeout, retries=retries)
                )
            except RPCClientError as e:
                logger.warning(
                    "Batch slice failed (offset=%d, size=%d): %s",
                    start,
                    len(chunk),
                    e,
                )

        return merged

    async def get_block_number(
        self,
        client: httpx.AsyncClient,
        *,
        timeout: float = LOOKUP_TIMEOUT,
        retries: int = LOOKUP_RETRIES,
    ) -> int:
        """Get the latest block number.

        Args:
            client: HTTP client instance
            timeout: Lookup timeout in seconds
            retries: Extra attempts with exponential backoff

        Returns:
            Latest block number

        Raises:
            InsufficientDataError: If the node returned no block number
        """
        request = BlockNumberRequest(id=next(self._ids))
        result = await self.call(
            client, request.method, request.params, timeout=timeout, retries=retries
        )
        if result is None:
            msg = "quai_blockNumber returned no result"
            raise InsufficientDataError(msg)
        return parse_hex_int(result)

    async def get_header_by_number(
        self,
        client: httpx.AsyncClient,
        block_number: int,
        *,
        timeout: float = LOOKUP_TIMEOUT,
        retries: int = 0,
    ) -> dict[str, Any] | None:
        """Get the header of a block by number.

        Args:
            client: HTTP client instance
            block_number: Block number
            timeout: Lookup timeout in seconds
            retries: Extra attempts with exponential backoff

        Returns:
            Header dictionary or None if the node has no such block
        """
        request = HeaderByNumberRequest(params=[to_hex(block_number)], id=next(self._ids))
        result = await self.call(
            client, request.method, request.params, timeout=timeout, retries=retries
        )
        return result if isinstance(result, dict) else None

    async def qi_to_quai(
        self,
        client: httpx.AsyncClient,
        amount_qits: int,
        block: str = "latest",
        *,
        timeout: float = LOOKUP_TIMEOUT,
        retries: int = LOOKUP_RETRIES,
    ) -> int | None:
        """Convert an amount of qits to wei at the node's current rate."""
        result = await self.call(
            client,
            "quai_qiToQuai",
            [to_hex(amount_qits), block],
            timeout=timeout,
            retries=retries,
        )
        return parse_optional_hex_int(result)

    async def quai_to_qi(
        self,
        client: httpx.AsyncClient,
        amount_wei: int,
        block: str = "latest",
        *,
        timeout: float = LOOKUP_TIMEOUT,
        retries: int = LOOKUP_RETRIES,
    ) -> int | None:
        """Convert an amount of wei to qits at the node's current rate."""
        result = await self.call(
            client,
            "quai_quaiToQi",
            [to_hex(amount_wei), block],
            timeout=timeout,
            retries=retries,
        )
        return parse_optional_hex_int(result)

    async def get_conversion_flow(
        self,
        client: httpx.AsyncClient,
        block: str = "latest",
        *,
        timeout: float = LOOKUP_TIMEOUT,
        retries: int = LOOKUP_RETRIES,
    ) -> int | None:
        """Get the net Quai/Qi conversion flow at a block."""
        result = await self.call(
            client, "quai_conversionFlow", [block], timeout=timeout, retries=retries
        )
        return parse_optional_hex_int(result)

    async def get_kquai_discount(
        self,
        client: httpx.AsyncClient,
        block: str = "latest",
        *,
        timeout: float = LOOKUP_TIMEOUT,
        retries: int = LOOKUP_RETRIES,
    ) -> Any:
        """Get the raw quai_kQuaiDiscount result (hex value or object)."""
        return await self.call(
            client, "quai_kQuaiDiscount", [block], timeout=timeout, retries=retries
        )


__all__ = [
    "RPCClient",
    "parse_batch_response",
]
