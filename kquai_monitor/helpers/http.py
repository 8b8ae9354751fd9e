"""HTTP client utilities and helpers."""

from asyncio import sleep
from contextlib import asynccontextmanager
from functools import wraps

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, ParamSpec, TypeVar

import httpx

from kquai_monitor.helpers.constants import (
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT,
    MAX_CONNECTIONS,
    MAX_KEEPALIVE_CONNECTIONS,
    RETRY_BASE_DELAY,
    RETRY_MAX_DELAY,
)
from kquai_monitor.helpers.errors import (
    DecodeError,
    HTTPStatusRPCError,
    NetworkError,
    RPCClientError,
    RPCTimeoutError,
)
from kquai_monitor.helpers.http_models import JsonResponse
from kquai_monitor.helpers.logging import get_logger


logger = get_logger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


def retry_with_backoff(
    retries: int = DEFAULT_RETRIES,
    base_delay: float = RETRY_BASE_DELAY,
    max_delay: float = RETRY_MAX_DELAY,
    *,
    log_errors: bool = True,
    retry_on: tuple[type[Exception], ...] = (RPCClientError,),
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator to retry async functions with exponential backoff.

    Args:
        retries: Extra attempts after the first failure (default: 0)
        base_delay: Initial delay in seconds (default: 0.4)
        max_delay: Maximum delay between retries (default: 30.0)
        log_errors: Whether to log retry attempts (default: True)
        retry_on: Exception types that trigger another attempt

    Returns:
        Decorated function that retries on the given exceptions and raises
        the last one once attempts are exhausted

    Example:
        ```python
        from kquai_monitor.helpers.http import retry_with_backoff

        @retry_with_backoff(retries=2)
        async def fetch_latest(client: httpx.AsyncClient) -> int:
            ...

        # Up to 3 attempts with delays of 0.4s and 0.8s
        ```
    """
    if retries < 0:
        msg = "retries cannot be negative"
        raise ValueError(msg)

    attempts = retries + 1

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            last_exception: Exception | None = None

            for attempt in range(attempts):
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    last_exception = e
                    if log_errors and attempt < attempts - 1:
                        logger.warning(
                            "%s error (attempt %d/%d): %s",
                            func.__name__,
                            attempt + 1,
                            attempts,
                            e,
                        )

                # Don't sleep after the last attempt
                if attempt < attempts - 1:
                    delay = min(base_delay * (2**attempt), max_delay)
                    await sleep(delay)

            if last_exception:
                if log_errors and attempts > 1:
                    logger.error("%s failed after %d attempts", func.__name__, attempts)
                raise last_exception

            msg = f"{func.__name__} failed without exception"
            raise RuntimeError(msg)

        return wrapper

    return decorator


def create_http_client(
    timeout: float = DEFAULT_TIMEOUT, **kwargs: Any
) -> httpx.AsyncClient:
    """Create a configured httpx AsyncClient.

    Args:
        timeout: Default timeout in seconds (default: DEFAULT_TIMEOUT)
        **kwargs: Additional httpx.AsyncClient kwargs

    Returns:
        Configured AsyncClient instance

    Example:
        ```python
        async with create_http_client(timeout=60.0) as client:
            latest = await rpc.get_block_number(client)
        ```
    """
    kwargs.setdefault(
        "limits",
        httpx.Limits(
            max_keepalive_connections=MAX_KEEPALIVE_CONNECTIONS,
            max_connections=MAX_CONNECTIONS,
        ),
    )
    return httpx.AsyncClient(timeout=timeout, **kwargs)


async def post_json_rpc(
    client: httpx.AsyncClient,
    url: str,
    payload: dict[str, Any] | list[dict[str, Any]],
    *,
    timeout: float,
    context: str = "",
) -> JsonResponse:
    """POST a JSON-RPC payload and return the decoded JSON body.

    httpx exceptions are translated into the RPCClientError hierarchy so
    callers never depend on the transport library.

    Args:
        client: HTTP client instance
        url: JSON-RPC endpoint
        payload: Single request object or batch array
        timeout: Timeout for this request in seconds
        context: Short label used in error messages (method name or "batch")

    Returns:
        Parsed JSON response

    Raises:
        RPCTimeoutError: If the request timed out
        HTTPStatusRPCError: If the node answered with a non-2xx status
        NetworkError: If the connection failed
        DecodeError: If the body is not valid JSON
    """
    try:
        response = await client.post(url, json=payload, timeout=timeout)
        response.raise_for_status()
    except httpx.TimeoutException as e:
        msg = f"Request timed out after {timeout}s ({context})"
        raise RPCTimeoutError(msg) from e
    except httpx.HTTPStatusError as e:
        raise HTTPStatusRPCError(e.response.status_code, context) from e
    except httpx.HTTPError as e:
        msg = f"Network error ({context}): {e}"
        raise NetworkError(msg) from e

    try:
        return response.json()
    except ValueError as e:
        msg = f"Invalid JSON response ({context})"
        raise DecodeError(msg) from e


@asynccontextmanager
async def log_and_suppress_errors(
    operation_name: str,
    *,
    log_level: str = "warning",
    suppress: bool = True,
) -> AsyncIterator[None]:
    """Context manager to log and optionally suppress errors.

    Args:
        operation_name: Description of the operation for logging
        log_level: Logging level ("debug", "info", "warning", "error")
        suppress: If True, suppress exceptions; if False, re-raise after logging

    Yields:
        None

    Example:
        ```python
        async with log_and_suppress_errors("fetch market snapshot"):
            snapshot = await fetch_market_snapshot(rpc, client)
        ```
    """
    try:
        yield
    except Exception as e:
        log_method = getattr(logger, log_level, logger.warning)
        log_method("%s failed: %s", operation_name, e)

        if not suppress:
            raise


__all__ = [
    "create_http_client",
    "log_and_suppress_errors",
    "post_json_rpc",
    "retry_with_backoff",
]
