"""Pydantic models for per-block samples, chunks and market data."""

from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class Provenance(StrEnum):
    """Which formula produced a sample's ratio and deltaK."""

    EXACT = "exact"
    APPROXIMATE = "approximate"
    DEFAULT = "default"


class KQuaiResult(BaseModel):
    """Ratio d*/d and relative kQuai adjustment for one block."""

    ratio: Decimal
    delta_k: Decimal
    increasing: bool
    provenance: Provenance

    model_config = ConfigDict(frozen=True)


class Sample(BaseModel):
    """Per-block sample held in the sliding window."""

    block_number: int = Field(..., ge=0, description="Prime block number")
    miner_difficulty_raw: int | None = Field(
        default=None, description="Raw miner difficulty from the header"
    )
    miner_difficulty_normalized: int | None = Field(
        default=None, description="Normalized miner difficulty (d)"
    )
    best_difficulty_normalized: int | None = Field(
        default=None, description="Normalized best difficulty (d*), 2^64 fixed point"
    )
    header_timestamp: int | None = Field(
        default=None, description="Header timestamp in seconds"
    )
    exchange_rate: str | None = Field(
        default=None, description="Raw exchangeRate hex from the header"
    )
    ratio: Decimal = Decimal(1)
    delta_k: Decimal = Decimal(0)
    increasing: bool = False
    complete: bool = False
    provenance: Provenance = Provenance.DEFAULT

    model_config = ConfigDict(frozen=True)


class Chunk(BaseModel):
    """Averaged metrics over a run of consecutive samples."""

    range_start_block: int
    range_end_block: int
    avg_miner_difficulty: Decimal
    avg_best_difficulty: Decimal
    avg_delta_k: Decimal
    sample_count: int
    complete_count: int

    model_config = ConfigDict(frozen=True)

    @property
    def label(self) -> str:
        """Chart label for the block range."""
        return f"{self.range_start_block}-{self.range_end_block}"


class MarketSnapshot(BaseModel):
    """Conversion-rate figures read from the node alongside the window."""

    qi_to_quai_wei: int | None = None  # Wei for 1 Qi
    conversion_flow: int | None = None
    kquai_discount_raw: str | None = None
    kquai_discount_percent: Decimal | None = None
    kquai_direction: str | None = None


__all__ = [
    "Chunk",
    "KQuaiResult",
    "MarketSnapshot",
    "Provenance",
    "Sample",
]
