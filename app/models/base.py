"""
Pydantic base models for API response envelopes.

Web pages (capture form, join form, resolve page) read `success` first and
show `message` to the user; `error` carries a machine-readable reason code.
"""

from pydantic import BaseModel
from typing import Optional


class BaseResponse(BaseModel):
    """
    Base response model for API responses.
    All API responses can extend this for consistency.
    """
    success: bool = True
    message: Optional[str] = None


class ErrorResponse(BaseResponse):
    success: bool = False
    error: str = "ERROR"
