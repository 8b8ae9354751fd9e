"""Terminal front end for the kQuai metrics engine.

Fetches the sliding window once, prints the chunk table, and optionally
keeps polling for new Prime blocks until interrupted.

Usage:
    kquai-monitor --rpc-url http://127.0.0.1:9001 --window 4000 --chunk 200 --auto
"""

import argparse
import signal
import sys

import asyncio

from rich.console import Console
from rich.table import Table

from kquai_monitor.engine import MetricsEngine
from kquai_monitor.helpers.config import MonitorSettings, load_settings
from kquai_monitor.helpers.logging import get_logger, set_log_level
from kquai_monitor.helpers.parsers import format_percent, format_wei_to_quai
from kquai_monitor.metrics.models import MarketSnapshot


logger = get_logger(__name__)


class ConsoleView:
    """Chart and status callbacks rendered with rich."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def render_chart(
        self,
        labels: list[str],
        miner: list[float],
        best: list[float],
        delta_k_percent: list[float],
    ) -> None:
        """Print one table row per chunk."""
        table = Table(title="d vs d* per chunk")
        table.add_column("Prime blocks")
        table.add_column("avg d", justify="right")
        table.add_column("avg d*", justify="right")
        table.add_column("avg dk (%)", justify="right")

        for label, d, d_star, dk in zip(labels, miner, best, delta_k_percent, strict=True):
            style = "green" if dk >= 0 else "red"
            table.add_row(label, f"{d:.4g}", f"{d_star:.4g}", f"[{style}]{dk:.4f}[/{style}]")

        self.console.print(table)

    def update_status(self, step: str, detail: str) -> None:
        """Print the status line."""
        text = f"{step} · {detail}" if detail else step
        style = "red" if step == "RPC Error" else "cyan"
        self.console.print(f"[{style}]{text}[/{style}]")

    def show_market(self, market: MarketSnapshot | None) -> None:
        """Print conversion-rate figures, if any."""
        if market is None:
            return
        rate = (
            format_wei_to_quai(market.qi_to_quai_wei, 8)
            if market.qi_to_quai_wei is not None
            else "-"
        )
        discount = (
            format_percent(market.kquai_discount_percent)
            if market.kquai_discount_percent is not None
            else "-"
        )
        self.console.print(
            f"1 Qi = {rate} Quai · kQuai discount {discount}"
            f" · direction {market.kquai_direction or '-'}"
        )


async def run(settings: MonitorSettings, *, auto: bool, view: ConsoleView) -> int:
    """Run one refresh and, in auto mode, poll until a signal arrives."""
    engine = MetricsEngine(
        settings,
        render=view.render_chart,
        status=view.update_status,
        on_market=view.show_market,
    )

    try:
        ok = await engine.refresh()

        if auto:
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, engine.request_stop_auto)
            engine.start_auto()
            await engine.wait_auto()
            return 0

        return 0 if ok else 1
    finally:
        await engine.aclose()


def cli() -> None:
    """Command-line interface entry point."""
    parser = argparse.ArgumentParser(
        description="Track d*/d and the kQuai adjustment rate over Prime blocks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # One-off window of 4000 Prime blocks
  kquai-monitor --rpc-url http://127.0.0.1:9001

  # Smaller window, poll every 10 seconds
  kquai-monitor --window 1000 --chunk 50 --auto
        """,
    )
    parser.add_argument("--rpc-url", help="Node JSON-RPC URL (default: KQUAI_RPC_URL)")
    parser.add_argument("--window", type=int, help="Prime blocks in the window")
    parser.add_argument("--chunk", type=int, help="Prime blocks per chart point")
    parser.add_argument("--interval", type=float, help="Seconds between auto cycles")
    parser.add_argument("--auto", action="store_true", help="Keep polling for new blocks")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR or CRITICAL")

    args = parser.parse_args()

    try:
        settings = load_settings(
            rpc_url=args.rpc_url,
            window_size=args.window,
            chunk_size=args.chunk,
            auto_interval=args.interval,
            log_level=args.log_level,
        )
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    set_log_level(settings.log_level)

    try:
        exit_code = asyncio.run(run(settings, auto=args.auto, view=ConsoleView()))
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, exiting...")
        exit_code = 0

    sys.exit(exit_code)


if __name__ == "__main__":
    cli()
