"""
Envelope returned by every API operation.
"""
from typing import Any, Optional

from pydantic import BaseModel

from cake_stock.core.enums import ErrorKind


class ApiResponse(BaseModel):
    success: bool
    data: Any = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, data: Any = None) -> "ApiResponse":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, message: str, kind: ErrorKind) -> "ApiResponse":
        return cls(success=False, error=message, error_kind=kind)
