"""Downsample a sample series into averaged chunks for charting."""

from collections.abc import Iterable, Sequence
from decimal import Context, Decimal

from kquai_monitor.helpers.constants import DECIMAL_CONTEXT
from kquai_monitor.metrics.models import Chunk, Sample


def mean(values: Iterable[Decimal | int | None], *, context: Context = DECIMAL_CONTEXT) -> Decimal:
    """Arithmetic mean with context arithmetic; None counts as zero.

    Example:
        >>> mean([Decimal(1), None, 2])
        Decimal('1')
    """
    total = Decimal(0)
    count = 0
    for value in values:
        total = context.add(total, Decimal(value or 0))
        count += 1
    if count == 0:
        return Decimal(0)
    return context.divide(total, Decimal(count))


def aggregate(
    series: Sequence[Sample],
    chunk_size: int,
    *,
    context: Context = DECIMAL_CONTEXT,
) -> list[Chunk]:
    """Partition a series into consecutive chunks and average each one.

    Every sample counts, incomplete ones with their neutral values. The last
    chunk may be shorter than chunk_size. The input is not modified.

    Args:
        series: Samples in ascending block order
        chunk_size: Samples per chunk
        context: Decimal context for sums and divisions

    Returns:
        Chunks in ascending block order

    Raises:
        ValueError: If chunk_size is not positive
    """
    if chunk_size <= 0:
        msg = "chunk_size must be positive"
        raise ValueError(msg)

    chunks: list[Chunk] = []
    for start in range(0, len(series), chunk_size):
        group = series[start : start + chunk_size]
        chunks.append(
            Chunk(
                range_start_block=group[0].block_number,
                range_end_block=group[-1].block_number,
                avg_miner_difficulty=mean(
                    (s.miner_difficulty_normalized for s in group), context=context
                ),
                avg_best_difficulty=mean(
                    (s.best_difficulty_normalized for s in group), context=context
                ),
                avg_delta_k=mean((s.delta_k for s in group), context=context),
                sample_count=len(group),
                complete_count=sum(1 for s in group if s.complete),
            )
        )
    return chunks


def chart_series(
    chunks: Sequence[Chunk],
) -> tuple[list[str], list[float], list[float], list[float]]:
    """Convert chunks into the chart renderer's arguments.

    The third series is deltaK expressed in percent.
    """
    labels = [chunk.label for chunk in chunks]
    miner = [float(chunk.avg_miner_difficulty) for chunk in chunks]
    best = [float(chunk.avg_best_difficulty) for chunk in chunks]
    delta_k_percent = [float(chunk.avg_delta_k * 100) for chunk in chunks]
    return labels, miner, best, delta_k_percent


__all__ = [
    "aggregate",
    "chart_series",
    "mean",
]
