"""
Capture link models - single-use, time-boxed hand-off from chat to web form.
"""

from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import Optional
from enum import Enum

from app.models.report import ReportType


class LinkStatus(str, Enum):
    VALID = "VALID"
    NOT_FOUND = "NOT_FOUND"
    EXPIRED = "EXPIRED"
    ALREADY_USED = "ALREADY_USED"


class CaptureLink(BaseModel):
    link_id: str
    user_id: str = Field(..., description="Digits only, no scheme or '+' prefix")
    report_type: ReportType
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    used: bool = False
    used_at: Optional[datetime] = None


class LinkValidityResponse(BaseModel):
    valid: bool
    message: Optional[str] = None
