"""Exception hierarchy for node communication and window maintenance."""

from dataclasses import dataclass


class RPCClientError(Exception):
    """Base class for every failure raised while talking to the node."""


class NetworkError(RPCClientError):
    """The request never produced an HTTP response."""


class RPCTimeoutError(RPCClientError):
    """The request did not complete before its timeout."""


@dataclass
class HTTPStatusRPCError(RPCClientError):
    """The node answered with a non-success HTTP status."""

    status: int
    context: str = ""

    def __str__(self) -> str:
        suffix = f" ({self.context})" if self.context else ""
        return f"HTTP {self.status}{suffix}"


@dataclass
class RPCError(RPCClientError):
    """The node answered with a JSON-RPC error object."""

    code: int
    message: str

    def __str__(self) -> str:
        return f"RPC error {self.code}: {self.message}"


class DecodeError(RPCClientError):
    """A response body or hex value could not be decoded."""


class InsufficientDataError(RPCClientError):
    """Required batch results are missing from the merged response."""


class WindowBusyError(RuntimeError):
    """A window update was requested while another one is in flight."""


__all__ = [
    "DecodeError",
    "HTTPStatusRPCError",
    "InsufficientDataError",
    "NetworkError",
    "RPCClientError",
    "RPCError",
    "RPCTimeoutError",
    "WindowBusyError",
]
