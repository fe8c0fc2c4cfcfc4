"""
Error taxonomy for report ingestion and chat handling.

Mandatory-path failures (division resolution, officer notification) are
rejecting. Best-effort failures (email copy, image upload, secondary
acknowledgements) are logged by the caller and never raised to the citizen.
"""

from typing import Optional


class TrafficBuddyError(Exception):
    """Base class for all domain errors."""

    reason: str = "ERROR"

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if reason:
            self.reason = reason


class ValidationError(TrafficBuddyError):
    """Missing or malformed input. Maps to HTTP 400, no side effects."""

    reason = "MISSING_FIELDS"


class JurisdictionError(TrafficBuddyError):
    """Coordinate falls outside every division."""

    reason = "OUTSIDE_JURISDICTION"


class NotificationFailure(TrafficBuddyError):
    """No officer of the resolved division could be reached."""

    reason = "NOTIFICATION_FAILED"


class TransientDeliveryFailure(TrafficBuddyError):
    """A single delivery attempt failed; other attempts may still succeed."""

    reason = "DELIVERY_FAILED"


class MessageDeliveryError(TransientDeliveryFailure):
    """Raised by a MessageSender when the transport rejects a message."""


class NotFoundError(TrafficBuddyError):
    """Missing session, report or link. Maps to HTTP 404."""

    reason = "NOT_FOUND"


class ConcurrentUpdateError(TrafficBuddyError):
    """A compare-and-swap save lost the race against another writer."""

    reason = "CONCURRENT_UPDATE"
