"""
Simulated sender for local development.

No messages leave the process: each one is logged and kept in an outbox so
it can be inspected.
"""

from typing import Dict, List
import logging
import uuid

from .base import MessageSender, SentMessage

logger = logging.getLogger(__name__)


class SimulatedMessageSender(MessageSender):

    PROVIDER_NAME = "simulated"

    def __init__(self):
        self.outbox: List[Dict[str, str]] = []

    def send(self, recipient: str, body: str) -> SentMessage:
        message_id = f"SIM{uuid.uuid4().hex[:30]}"
        self.outbox.append({"message_id": message_id, "recipient": recipient, "body": body})
        logger.info(f"[SIMULATED] Message to {recipient} ({message_id}):\n{body}")
        return SentMessage(message_id=message_id, recipient=recipient)

    def get_provider_info(self) -> Dict[str, str]:
        return {"name": self.PROVIDER_NAME}
