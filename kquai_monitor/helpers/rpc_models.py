"""Pydantic models for JSON-RPC requests and responses."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 request model."""

    jsonrpc: str = Field(default="2.0", description="JSON-RPC version")
    method: str = Field(..., description="Method name to call")
    params: list[Any] = Field(
        default_factory=list, description="Method parameters"
    )
    id: int | str = Field(..., description="Request ID")


class JsonRpcErrorObject(BaseModel):
    """Error member of a JSON-RPC 2.0 response."""

    code: int = Field(default=-1, description="Error code")
    message: str = Field(default="Unknown", description="Error message")

    model_config = ConfigDict(extra="allow")


class JsonRpcResponse(BaseModel):
    """JSON-RPC 2.0 response model (single item or batch element)."""

    jsonrpc: str | None = Field(default=None, description="JSON-RPC version")
    id: int | str | None = Field(default=None, description="Request ID")
    result: Any = Field(default=None, description="Method result")
    error: JsonRpcErrorObject | None = Field(default=None, description="Error object")

    model_config = ConfigDict(extra="allow")


class BlockNumberRequest(JsonRpcRequest):
    """JSON-RPC request for quai_blockNumber."""

    method: str = Field(default="quai_blockNumber", frozen=True)
    params: list[Any] = Field(default_factory=list, frozen=True)


class HeaderByNumberRequest(JsonRpcRequest):
    """JSON-RPC request for quai_getHeaderByNumber."""

    method: str = Field(default="quai_getHeaderByNumber", frozen=True)


class MinerDiffNormalizedRequest(JsonRpcRequest):
    """JSON-RPC request for quai_getMinerDiffNormalized."""

    method: str = Field(default="quai_getMinerDiffNormalized", frozen=True)


class BestDiffNormalizedRequest(JsonRpcRequest):
    """JSON-RPC request for quai_getBestDiffNormalized."""

    method: str = Field(default="quai_getBestDiffNormalized", frozen=True)


__all__ = [
    "BestDiffNormalizedRequest",
    "BlockNumberRequest",
    "HeaderByNumberRequest",
    "JsonRpcErrorObject",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "MinerDiffNormalizedRequest",
]
