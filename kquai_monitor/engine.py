"""Metrics engine session.

Owns the RPC client, the HTTP client, the sample window and the settings,
and drives the presentation callbacks:

- refresh(): latest block -> full window rebuild -> chunks -> render
- tick(): latest block -> incremental append -> chunks -> render
- start_auto() / stop_auto(): repeat tick() with a fixed pause

Only one cycle runs at a time. A cycle that fails leaves the previous
series in place and reports the error through the status callback.
"""

import asyncio

from collections.abc import Callable

import httpx

from kquai_monitor.helpers.config import MonitorSettings
from kquai_monitor.helpers.constants import LOOKUP_RETRIES
from kquai_monitor.helpers.errors import RPCClientError, WindowBusyError
from kquai_monitor.helpers.http import create_http_client, log_and_suppress_errors
from kquai_monitor.helpers.http_models import ChartRenderer, StatusUpdater
from kquai_monitor.helpers.logging import get_logger
from kquai_monitor.helpers.parsers import format_percent
from kquai_monitor.helpers.rpc import RPCClient
from kquai_monitor.metrics.aggregate import chart_series
from kquai_monitor.metrics.market import fetch_market_snapshot
from kquai_monitor.metrics.models import Chunk, MarketSnapshot
from kquai_monitor.metrics.window import SeriesWindow


logger = get_logger(__name__)


class MetricsEngine:
    """Single-session owner of the window, the node client and auto mode."""

    def __init__(
        self,
        settings: MonitorSettings,
        *,
        render: ChartRenderer | None = None,
        status: StatusUpdater | None = None,
        on_market: Callable[[MarketSnapshot], None] | None = None,
        http_client: httpx.AsyncClient | None = None,
        rpc_client: RPCClient | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            settings: Validated settings
            render: Chart callback receiving labels and three value series
            status: Status-line callback receiving (step, detail)
            on_market: Called with every freshly fetched market snapshot
            http_client: Optional shared HTTP client; created when omitted
            rpc_client: Optional RPC client; created from settings when omitted
        """
        self.settings = settings
        self.render = render
        self.status = status
        self.on_market = on_market

        self._owns_http_client = http_client is None
        self.http_client = http_client or create_http_client(timeout=settings.bulk_timeout)
        self.rpc_client = rpc_client or RPCClient(
            settings.rpc_url, timeout=settings.bulk_timeout
        )
        self.window = SeriesWindow(
            self.rpc_client,
            settings.window_size,
            settings.chunk_size,
            max_items_per_post=settings.max_items_per_post,
            timeout=settings.bulk_timeout,
        )

        self.chunks: list[Chunk] = []
        self.market: MarketSnapshot | None = None
        self.last_error: str | None = None
        self.auto_detected = 0

        self._busy = False
        self._auto_task: asyncio.Task[None] | None = None
        self._stop_auto = asyncio.Event()

    @property
    def busy(self) -> bool:
        """Whether a fetch cycle is running."""
        return self._busy

    @property
    def auto_running(self) -> bool:
        """Whether the auto loop is active."""
        return self._auto_task is not None and not self._auto_task.done()

    def _set_status(self, step: str, detail: str = "") -> None:
        if self.status is None:
            return
        try:
            self.status(step, detail)
        except Exception:
            logger.exception("Status callback failed")

    def _publish(self) -> None:
        self.chunks = self.window.chunks()
        if self.render is None:
            return
        labels, miner, best, delta_k = chart_series(self.chunks)
        try:
            self.render(labels, miner, best, delta_k)
        except Exception:
            logger.exception("Render callback failed")

    def summary(self) -> str:
        """One-line description of the current window."""
        series = self.window.series
        if not series:
            return "No samples"
        last = series[-1]
        complete = sum(1 for s in series if s.complete)
        return (
            f"{len(self.chunks)} points ({len(series)} Prime blocks, {complete} complete). "
            f"Last d*/d = {last.ratio:.4f}, "
            f"dk = {format_percent(last.delta_k * 100)}"
        )

    async def _latest_block(self) -> int:
        return await self.rpc_client.get_block_number(
            self.http_client,
            timeout=self.settings.lookup_timeout,
            retries=LOOKUP_RETRIES,
        )

    async def _refresh_market(self) -> None:
        async with log_and_suppress_errors("market snapshot"):
            self.market = await fetch_market_snapshot(self.rpc_client, self.http_client)
            if self.on_market is not None:
                self.on_market(self.market)

    async def refresh(self, window_size: int | None = None) -> bool:
        """Rebuild the whole window from the node's latest block.

        Args:
            window_size: Optional new window length

        Returns:
            True when the window was rebuilt, False when the cycle was
            rejected or failed
        """
        if self._busy:
            logger.warning("Refresh skipped: another fetch is in progress")
            return False

        self._busy = True
        try:
            self._set_status("Connecting to RPC", "starting")
            latest = await self._latest_block()
            size = window_size or self.window.window_size
            self._set_status("Fetching diffs", f"{min(size, latest + 1)} blocks")
            await self.window.rebuild(self.http_client, latest, window_size)
            self._publish()
            await self._refresh_market()
        except (RPCClientError, WindowBusyError) as e:
            self._report_error(e)
            return False
        finally:
            self._busy = False

        self.last_error = None
        self._set_status("Prime RPC connected", self.summary())
        return True

    async def tick(self) -> bool:
        """Append new blocks to the window, rebuilding it when empty.

        Returns:
            True when the cycle completed (including no-op), False when it
            was rejected or failed
        """
        if not self.window.series:
            return await self.refresh()

        if self._busy:
            logger.warning("Tick skipped: another fetch is in progress")
            return False

        self._busy = True
        try:
            latest = await self._latest_block()
            appended = await self.window.append_new(self.http_client, latest)
            if appended:
                self.auto_detected += sum(
                    1 for s in self.window.series[-appended:] if s.complete
                )
                self._set_status("Fetching new primes", f"{self.auto_detected} primes")
                self._publish()
                await self._refresh_market()
        except (RPCClientError, WindowBusyError) as e:
            self._report_error(e)
            return False
        finally:
            self._busy = False

        self.last_error = None
        return True

    def _report_error(self, error: Exception) -> None:
        self.last_error = str(error) or type(error).__name__
        logger.warning("Fetch cycle failed: %s", self.last_error)
        self._set_status("RPC Error", self.last_error)

    async def _auto_loop(self) -> None:
        logger.info("Auto mode started (interval %.1fs)", self.settings.auto_interval)
        while not self._stop_auto.is_set():
            try:
                await self.tick()
            except Exception:
                logger.exception("Auto tick failed")

            try:
                await asyncio.wait_for(
                    self._stop_auto.wait(), timeout=self.settings.auto_interval
                )
            except TimeoutError:
                continue
        logger.info("Auto mode stopped")

    def start_auto(self) -> bool:
        """Start the auto loop in a background task.

        Returns:
            False if it was already running
        """
        if self.auto_running:
            return False
        self.auto_detected = 0
        self._stop_auto.clear()
        self._auto_task = asyncio.create_task(self._auto_loop())
        return True

    def request_stop_auto(self) -> None:
        """Ask the auto loop to stop after the in-flight cycle; safe from signal handlers."""
        self._stop_auto.set()

    async def stop_auto(self) -> None:
        """Ask the auto loop to stop and wait for the in-flight cycle to finish."""
        self.request_stop_auto()
        if self._auto_task is not None:
            await self._auto_task
            self._auto_task = None
        self._set_status("Prime RPC connected", self.summary())

    async def wait_auto(self) -> None:
        """Wait until the auto loop ends."""
        if self._auto_task is not None:
            await self._auto_task

    async def aclose(self) -> None:
        """Stop auto mode and release the HTTP client."""
        if self.auto_running:
            await self.stop_auto()
        if self._owns_http_client:
            await self.http_client.aclose()


__all__ = ["MetricsEngine"]
