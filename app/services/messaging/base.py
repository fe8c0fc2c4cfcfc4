"""
Message Sender Base Interface.

Defines the contract for outbound chat transports.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)


class SentMessage:
    """Result of a message the transport accepted."""

    def __init__(self, message_id: str, recipient: str, status: str = "queued", sent_at: Optional[datetime] = None):
        self.message_id = message_id
        self.recipient = recipient
        self.status = status
        self.sent_at = sent_at or datetime.now(timezone.utc)

    def to_dict(self) -> Dict:
        return {
            "message_id": self.message_id,
            "recipient": self.recipient,
            "status": self.status,
            "sent_at": self.sent_at.isoformat(),
        }


class MessageSender(ABC):
    """
    Abstract base class for chat transports.

    Contract:
    - recipient is a normalized chat address ("whatsapp:+<digits>")
    - send() returns a SentMessage or raises MessageDeliveryError
    - callers catch failures per recipient
    """

    @abstractmethod
    def send(self, recipient: str, body: str) -> SentMessage:
        raise NotImplementedError

    @abstractmethod
    def get_provider_info(self) -> Dict[str, str]:
        raise NotImplementedError
