from datetime import datetime
from pydantic import BaseModel, Field
from typing import Generic, TypeVar, Optional, Any, Dict

DataType = TypeVar("DataType")

class APIResponse(BaseModel, Generic[DataType]):
    """Success envelope shared by every exam, subscription and payment route."""
    message: str = Field(..., description="What happened, suitable for showing to the candidate.")
    data: Optional[DataType] = Field(None, description="Route payload.")

class ErrorDetail(BaseModel):
    code: str = Field(..., description="Stable machine code, e.g. ATTEMPTS_EXHAUSTED")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Limits, counts or ids the client can act on")

class ErrorResponse(BaseModel):
    error: ErrorDetail
    timestamp: str = Field(..., description="ISO 8601 timestamp of error")
    path: str
    request_id: Optional[str] = None

    @classmethod
    def build(cls, code: str, message: str, path: str, request_id: Optional[str],
              details: Optional[Dict[str, Any]] = None) -> "ErrorResponse":
        return cls(
            error=ErrorDetail(code=code, message=message, details=details or None),
            timestamp=datetime.utcnow().isoformat(),
            path=path,
            request_id=request_id,
        )
