"""
Pydantic models for citizen reports.
These models cover the persisted report record, the draft handed to the
ingestion pipeline and the pipeline's result.
"""

from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import Optional, List
from enum import Enum


class ReportType(str, Enum):
    """
    Closed set of report categories.

    The chat menu addresses categories by option code ("1".."7"); the web
    capture form posts either the code or the label. MENU_OPTIONS below is
    the only place codes are mapped to categories.
    """
    TRAFFIC_VIOLATION = "Traffic Violation"
    TRAFFIC_CONGESTION = "Traffic Congestion"
    IRREGULARITY = "Irregularity"
    ROAD_DAMAGE = "Road Damage"
    ILLEGAL_PARKING = "Illegal Parking"
    TRAFFIC_SIGNAL_ISSUE = "Traffic Signal Issue"
    SUGGESTION = "Suggestion"
    JOIN_REQUEST = "Join Request"

    @property
    def requires_location(self) -> bool:
        return self not in (ReportType.SUGGESTION, ReportType.JOIN_REQUEST)

    @property
    def menu_option(self) -> Optional[str]:
        for code, report_type in MENU_OPTIONS.items():
            if report_type is self:
                return code
        return None

    @classmethod
    def from_menu_option(cls, option: Optional[str]) -> Optional["ReportType"]:
        if option is None:
            return None
        return MENU_OPTIONS.get(option.strip())

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ReportType"]:
        """Accept a menu code ("4") or a label ("Road Damage", any case)."""
        if not value or not str(value).strip():
            return None
        value = str(value).strip()
        by_code = cls.from_menu_option(value)
        if by_code is not None:
            return by_code
        for report_type in cls:
            if report_type.value.lower() == value.lower() or report_type.name == value.upper():
                return report_type
        return None


MENU_OPTIONS = {
    "1": ReportType.TRAFFIC_VIOLATION,
    "2": ReportType.TRAFFIC_CONGESTION,
    "3": ReportType.IRREGULARITY,
    "4": ReportType.ROAD_DAMAGE,
    "5": ReportType.ILLEGAL_PARKING,
    "6": ReportType.TRAFFIC_SIGNAL_ISSUE,
    "7": ReportType.SUGGESTION,
}

JOIN_MENU_OPTION = "8"


class ReportStatus(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    REJECTED = "Rejected"


class RejectionReason(str, Enum):
    MISSING_FIELDS = "MISSING_FIELDS"
    OUTSIDE_JURISDICTION = "OUTSIDE_JURISDICTION"
    NOTIFICATION_FAILED = "NOTIFICATION_FAILED"


class DeliveryStatus(str, Enum):
    """Twilio message lifecycle values reported through the status callback."""
    QUEUED = "queued"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"
    UNDELIVERED = "undelivered"


class Location(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    address: str = "Unknown location"


class OfficerNotification(BaseModel):
    """One successful officer notification recorded on a report."""
    officer_id: str = "unknown"
    name: str = "Unknown"
    phone: str
    sent_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    delivery_status: DeliveryStatus = DeliveryStatus.QUEUED
    status_updated_at: Optional[datetime] = None
    provider_message_id: Optional[str] = None


class Report(BaseModel):
    """
    Persisted report record.

    A location-bearing report only exists once its coordinate resolved to a
    division and at least one officer was notified. Suggestions and join
    requests are stored without a division.
    """
    id: str = Field(..., description="Document ID, generated before officer notification")
    user_id: str
    user_name: str = "Anonymous"
    report_type: ReportType
    description: str = "No description provided"
    photo_url: Optional[str] = None
    location: Optional[Location] = None
    status: ReportStatus = ReportStatus.PENDING
    division_id: Optional[str] = None
    division_name: Optional[str] = None
    division_notified: bool = False
    officers_notified: List[OfficerNotification] = Field(default_factory=list)
    # Join request contact fields
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    resolution_note: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ReportDraft(BaseModel):
    """
    Everything the ingestion pipeline needs for one submission.

    deliver_acknowledgement is True for web-form submissions, where the
    pipeline itself messages the citizen. The chat channel leaves it False
    and uses IngestionResult.user_message as the webhook reply instead.
    """
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    report_type: Optional[ReportType] = None
    description: Optional[str] = None
    photo_url: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None
    language: str = "en"
    # Join request fields
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    deliver_acknowledgement: bool = False


class IngestionResult(BaseModel):
    accepted: bool
    report_id: Optional[str] = None
    division_name: Optional[str] = None
    reason: Optional[RejectionReason] = None
    user_message: Optional[str] = None


class ReportStatusUpdate(BaseModel):
    status: ReportStatus
    resolution_note: Optional[str] = Field(None, max_length=1000)
