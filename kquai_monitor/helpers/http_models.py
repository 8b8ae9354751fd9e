"""Type definitions for HTTP responses."""

from collections.abc import Callable
from typing import Any


# Type for JSON responses (object for single calls, array for batches)
type JsonResponse = dict[str, Any] | list[Any] | None

# Batch results keyed by request id; None marks an item that carried an error
type BatchResult = dict[int | str, Any]

# Presentation callbacks owned by the front end
type ChartRenderer = Callable[[list[str], list[float], list[float], list[float]], None]
type StatusUpdater = Callable[[str, str], None]

__all__ = [
    "BatchResult",
    "ChartRenderer",
    "JsonResponse",
    "StatusUpdater",
]
