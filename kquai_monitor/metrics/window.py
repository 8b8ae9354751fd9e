"""Sliding window of per-block kQuai samples fetched from the node.

Each block in the window is described by three correlated JSON-RPC requests:

    "{n}_m"  quai_getMinerDiffNormalized  d, normalized miner difficulty
    "{n}_b"  quai_getBestDiffNormalized   d*, normalized best difficulty
    "{n}_h"  quai_getHeaderByNumber       timestamp, minerDifficulty, exchangeRate

A full rebuild first sends the whole window as two POSTs and falls back to
size-limited slices when either half fails. The series is replaced only once
every requested id has come back; a failed item (None) only degrades its
own sample.
"""

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from decimal import Context

from typing import Any

import httpx

from kquai_monitor.helpers.constants import (
    DECIMAL_CONTEXT,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_TIMEOUT,
    DEFAULT_WINDOW_SIZE,
    MAX_ITEMS_PER_POST,
    SPLIT_BATCH_TIMEOUT,
)
from kquai_monitor.helpers.errors import (
    DecodeError,
    InsufficientDataError,
    RPCClientError,
    WindowBusyError,
)
from kquai_monitor.helpers.http_models import BatchResult
from kquai_monitor.helpers.logging import get_logger
from kquai_monitor.helpers.parsers import header_field, parse_optional_hex_int, to_hex
from kquai_monitor.helpers.rpc import RPCClient
from kquai_monitor.helpers.rpc_models import (
    BestDiffNormalizedRequest,
    HeaderByNumberRequest,
    JsonRpcRequest,
    MinerDiffNormalizedRequest,
)
from kquai_monitor.metrics.aggregate import aggregate
from kquai_monitor.metrics.kquai import select_formula
from kquai_monitor.metrics.models import Chunk, Provenance, Sample


logger = get_logger(__name__)


def block_requests(block_number: int) -> list[JsonRpcRequest]:
    """Build the three correlated requests for one block."""
    block_hex = to_hex(block_number)
    return [
        MinerDiffNormalizedRequest(params=[block_hex], id=f"{block_number}_m"),
        BestDiffNormalizedRequest(params=[block_hex], id=f"{block_number}_b"),
        HeaderByNumberRequest(params=[block_hex], id=f"{block_number}_h"),
    ]


def _decode_int(value: Any, block_number: int, field: str) -> int | None:
    try:
        decoded = parse_optional_hex_int(value)
    except DecodeError as e:
        logger.warning("Block %d: bad %s value: %s", block_number, field, e)
        return None
    if decoded is not None and decoded <= 0:
        return None
    return decoded


def build_sample(
    block_number: int,
    results: BatchResult,
    *,
    context: Context = DECIMAL_CONTEXT,
) -> Sample:
    """Decode one block's batch results and compute its metrics.

    Args:
        block_number: Block the results belong to
        results: Merged batch results containing this block's ids
        context: Decimal context for ratio and deltaK

    Returns:
        Sample, marked incomplete when any input is missing or malformed
    """
    miner_normalized = _decode_int(
        results.get(f"{block_number}_m"), block_number, "miner difficulty"
    )
    best_normalized = _decode_int(
        results.get(f"{block_number}_b"), block_number, "best difficulty"
    )

    header = results.get(f"{block_number}_h")
    if header is not None and not isinstance(header, dict):
        logger.warning("Block %d: header is not an object", block_number)
        header = None

    miner_raw_hex = header_field(header, "minerDifficulty")
    try:
        miner_raw = parse_optional_hex_int(miner_raw_hex)
    except DecodeError as e:
        logger.warning("Block %d: bad minerDifficulty: %s", block_number, e)
        miner_raw = None

    timestamp = _decode_int(header_field(header, "timestamp"), block_number, "timestamp")
    exchange_rate = header_field(header, "exchangeRate")

    result = select_formula(best_normalized, miner_raw, miner_normalized, context=context)

    complete = (
        miner_normalized is not None
        and best_normalized is not None
        and header is not None
        and result.provenance is Provenance.EXACT
    )

    return Sample(
        block_number=block_number,
        miner_difficulty_raw=miner_raw,
        miner_difficulty_normalized=miner_normalized,
        best_difficulty_normalized=best_normalized,
        header_timestamp=timestamp,
        exchange_rate=exchange_rate if isinstance(exchange_rate, str) else None,
        ratio=result.ratio,
        delta_k=result.delta_k,
        increasing=result.increasing,
        complete=complete,
        provenance=result.provenance,
    )


class SeriesWindow:
    """Ordered, bounded series of samples with full rebuild and incremental append."""

    def __init__(
        self,
        rpc_client: RPCClient,
        window_size: int = DEFAULT_WINDOW_SIZE,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        *,
        max_items_per_post: int = MAX_ITEMS_PER_POST,
        timeout: float = DEFAULT_TIMEOUT,
        split_timeout: float = SPLIT_BATCH_TIMEOUT,
        context: Context = DECIMAL_CONTEXT,
    ) -> None:
        """Initialize an empty window.

        Args:
            rpc_client: Client used for every batch
            window_size: Maximum number of samples kept (W)
            chunk_size: Samples per chart chunk (C)
            max_items_per_post: Slice size used when splitting batches
            timeout: Timeout for sliced and incremental batches in seconds
            split_timeout: Timeout for each half of the two-POST fetch
            context: Decimal context for ratio and deltaK

        Raises:
            ValueError: If window_size or chunk_size is not positive
        """
        if window_size <= 0:
            msg = "window_size must be positive"
            raise ValueError(msg)
        if chunk_size <= 0:
            msg = "chunk_size must be positive"
            raise ValueError(msg)

        self.rpc_client = rpc_client
        self.window_size = window_size
        self.chunk_size = chunk_size
        self.max_items_per_post = max_items_per_post
        self.timeout = timeout
        self.split_timeout = split_timeout
        self.context = context

        self._series: list[Sample] = []
        self._busy = False

    @property
    def series(self) -> tuple[Sample, ...]:
        """Current samples in ascending block order."""
        return tuple(self._series)

    @property
    def last_block(self) -> int | None:
        """Highest block number held, or None for an empty window."""
        return self._series[-1].block_number if self._series else None

    @property
    def busy(self) -> bool:
        """Whether a rebuild or append is in flight."""
        return self._busy

    def __len__(self) -> int:
        return len(self._series)

    def chunks(self) -> list[Chunk]:
        """Aggregate the current series with the configured chunk size."""
        return aggregate(self._series, self.chunk_size, context=self.context)

    @asynccontextmanager
    async def _exclusive(self) -> AsyncIterator[None]:
        if self._busy:
            msg = "A window update is already in progress"
            raise WindowBusyError(msg)
        self._busy = True
        try:
            yield
        finally:
            self._busy = False

    async def rebuild(
        self,
        client: httpx.AsyncClient,
        latest_block: int,
        window_size: int | None = None,
    ) -> tuple[Sample, ...]:
        """Fetch the whole window ending at latest_block and replace the series.

        Args:
            client: HTTP client instance
            latest_block: Newest block of the window
            window_size: Optional new window length W

        Returns:
            The new series

        Raises:
            WindowBusyError: If another update is running
            InsufficientDataError: If some results never arrived; the
                previous series is kept
            ValueError: If window_size is not positive
        """
        size = self.window_size if window_size is None else window_size
        if size <= 0:
            msg = "window_size must be positive"
            raise ValueError(msg)

        async with self._exclusive():
            start_block = max(0, latest_block - size + 1)
            block_numbers = list(range(start_block, latest_block + 1))
            logger.info(
                "Rebuilding window %d -> %d (%d blocks)",
                start_block,
                latest_block,
                len(block_numbers),
            )

            requests = [req for n in block_numbers for req in block_requests(n)]
            results = await self._fetch_split(client, requests)
            samples = self._decode(block_numbers, requests, results)

            self.window_size = size
            self._series = samples
            logger.info(
                "Window rebuilt: %d samples, %d complete",
                len(samples),
                sum(1 for s in samples if s.complete),
            )
            return self.series

    async def append_new(
        self,
        client: httpx.AsyncClient,
        latest_block: int,
    ) -> int:
        """Append blocks newer than the last sample and evict the oldest.

        An empty window is rebuilt instead. Nothing is requested when
        latest_block is not newer than the last sample.

        Args:
            client: HTTP client instance
            latest_block: Newest block known to the node

        Returns:
            Number of samples appended

        Raises:
            WindowBusyError: If another update is running
            InsufficientDataError: If some results never arrived; the
                series is left untouched
        """
        if not self._series:
            return len(await self.rebuild(client, latest_block))

        last_block = self._series[-1].block_number
        if latest_block <= last_block:
            return 0

        async with self._exclusive():
            block_numbers = list(range(last_block + 1, latest_block + 1))
            requests = [req for n in block_numbers for req in block_requests(n)]
            results = await self._fetch_incremental(client, requests)
            samples = self._decode(block_numbers, requests, results)

            series = self._series + samples
            overflow = len(series) - self.window_size
            if overflow > 0:
                del series[:overflow]
            self._series = series

            logger.info(
                "Appended %d samples (%d -> %d), window holds %d",
                len(samples),
                block_numbers[0],
                block_numbers[-1],
                len(series),
            )
            return len(samples)

    async def _fetch_split(
        self,
        client: httpx.AsyncClient,
        requests: Sequence[JsonRpcRequest],
    ) -> BatchResult:
        if len(requests) > 1:
            mid = (len(requests) + 1) // 2
            try:
                results = await self.rpc_client.batch(
                    client, requests[:mid], timeout=self.split_timeout
                )
                results.update(
                    await self.rpc_client.batch(
                        client, requests[mid:], timeout=self.split_timeout
                    )
                )
                return results
            except RPCClientError as e:
                logger.warning("Two-POST fetch failed, splitting batches: %s", e)

        return await self._fetch_sliced(client, requests)

    async def _fetch_incremental(
        self,
        client: httpx.AsyncClient,
        requests: Sequence[JsonRpcRequest],
    ) -> BatchResult:
        try:
            return await self.rpc_client.batch(client, requests, timeout=self.timeout)
        except RPCClientError as e:
            logger.warning("Incremental batch failed, splitting batches: %s", e)
        return await self._fetch_sliced(client, requests)

    async def _fetch_sliced(
        self,
        client: httpx.AsyncClient,
        requests: Sequence[JsonRpcRequest],
    ) -> BatchResult:
        return await self.rpc_client.batch_with_limit(
            client, requests, self.max_items_per_post, timeout=self.timeout
        )

    def _decode(
        self,
        block_numbers: Sequence[int],
        requests: Sequence[JsonRpcRequest],
        results: BatchResult,
    ) -> list[Sample]:
        missing = [req.id for req in requests if req.id not in results]
        if missing:
            msg = (
                f"{len(missing)} of {len(requests)} results missing "
                f"for blocks {block_numbers[0]}-{block_numbers[-1]}"
            )
            raise InsufficientDataError(msg)

        return [
            build_sample(n, results, context=self.context) for n in block_numbers
        ]


__all__ = [
    "SeriesWindow",
    "block_requests",
    "build_sample",
]
