"""
Team (volunteer) application models for the web join-team form.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime, timezone
from typing import Optional
from enum import Enum


class ApplicationStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class TeamApplication(BaseModel):
    id: str
    user_id: str
    user_name: str = "Unknown"
    session_id: str
    full_name: str
    division: str
    motivation: str
    address: str
    phone: str
    email: str
    aadhar_number: str
    aadhar_document_url: Optional[str] = None
    profession: str
    date_of_birth: date
    has_court_case: bool = False
    court_case_description: str = ""
    status: ApplicationStatus = ApplicationStatus.PENDING
    applied_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
