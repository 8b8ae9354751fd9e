"""Tests for RPC models."""

import pytest

from pydantic import ValidationError

from kquai_monitor.helpers.rpc_models import (
    BestDiffNormalizedRequest,
    BlockNumberRequest,
    HeaderByNumberRequest,
    JsonRpcRequest,
    JsonRpcResponse,
    MinerDiffNormalizedRequest,
)


def test_json_rpc_request() -> None:
    """Test JsonRpcRequest model."""
    request = JsonRpcRequest(method="quai_qiToQuai", params=["0x3e8", "latest"], id=1)
    assert request.jsonrpc == "2.0"
    assert request.method == "quai_qiToQuai"
    assert request.params == ["0x3e8", "latest"]
    assert request.id == 1


def test_json_rpc_request_requires_method() -> None:
    """Test JsonRpcRequest validation."""
    with pytest.raises(ValidationError):
        JsonRpcRequest(id=1)  # type: ignore[call-arg]


def test_block_number_request() -> None:
    """Test BlockNumberRequest model."""
    request = BlockNumberRequest(id=7)
    assert request.model_dump() == {
        "jsonrpc": "2.0",
        "method": "quai_blockNumber",
        "params": [],
        "id": 7,
    }


def test_block_number_request_frozen_method() -> None:
    """Test BlockNumberRequest method is frozen."""
    request = BlockNumberRequest(id=1)
    with pytest.raises(ValidationError):
        request.method = "quai_getHeaderByNumber"


@pytest.mark.parametrize(
    ("model", "method"),
    [
        (MinerDiffNormalizedRequest, "quai_getMinerDiffNormalized"),
        (BestDiffNormalizedRequest, "quai_getBestDiffNormalized"),
        (HeaderByNumberRequest, "quai_getHeaderByNumber"),
    ],
)
def test_per_block_requests(model: type[JsonRpcRequest], method: str) -> None:
    """Test per-block requests carry their method and string ids."""
    request = model(params=["0x2710"], id="10000_m")
    assert request.method == method
    assert request.params == ["0x2710"]
    assert request.id == "10000_m"


def test_response_with_error() -> None:
    """Test error members are parsed."""
    response = JsonRpcResponse.model_validate(
        {"jsonrpc": "2.0", "id": "5_h", "error": {"code": -32000, "message": "not found"}}
    )
    assert response.id == "5_h"
    assert response.result is None
    assert response.error is not None
    assert response.error.code == -32000


def test_response_error_defaults() -> None:
    """Test an empty error object falls back to defaults."""
    response = JsonRpcResponse.model_validate({"id": 1, "error": {}})
    assert response.error is not None
    assert response.error.code == -1
    assert response.error.message == "Unknown"
