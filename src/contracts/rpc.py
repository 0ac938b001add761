from typing import Any, Optional

from pydantic import BaseModel

JSONRPC_VERSION = "2.0"


class RPCRequest(BaseModel):
    """
    A single JSON-RPC 2.0 call inside a batch.
    """

    jsonrpc: str = JSONRPC_VERSION
    method: str
    params: Optional[dict] = None
    id: int

    def to_wire(self) -> dict:
        # Calls without arguments carry no "params" member at all
        return self.model_dump(exclude_none=True)


class RPCError(BaseModel):
    code: int
    message: str
    data: Any = None

    def __str__(self):
        return f"{self.message} (code {self.code})"


class RPCResponse(BaseModel):
    """
    A single JSON-RPC 2.0 reply: either a result or an error.
    """

    jsonrpc: str = JSONRPC_VERSION
    result: Any = None
    error: Optional[RPCError] = None
    id: Optional[int] = None
