"""
Twilio WhatsApp sender.
"""

from typing import Dict, Optional
import logging

from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

from app.core.errors import MessageDeliveryError
from app.core.settings import settings
from .base import MessageSender, SentMessage

logger = logging.getLogger(__name__)


class TwilioMessageSender(MessageSender):
    """
    Sends WhatsApp messages through the Twilio Messages API.

    Delivery updates come back on /webhook/message-status when SERVER_URL
    is reachable from Twilio.
    """

    PROVIDER_NAME = "twilio"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        status_callback: Optional[str] = None,
        client: Optional[Client] = None,
    ):
        self.from_number = from_number
        self.status_callback = status_callback
        self.client = client or Client(account_sid, auth_token)
        logger.info(f"Twilio sender initialized (from {from_number})")

    def send(self, recipient: str, body: str) -> SentMessage:
        kwargs = {"body": body, "from_": self.from_number, "to": recipient}
        if self.status_callback:
            kwargs["status_callback"] = self.status_callback

        try:
            message = self.client.messages.create(**kwargs)
        except TwilioRestException as e:
            raise MessageDeliveryError(f"Twilio rejected message to {recipient}: {e.msg} (code {e.code})")
        except Exception as e:
            raise MessageDeliveryError(f"Twilio send to {recipient} failed: {e}")

        logger.info(f"Message sent to {recipient}: {message.sid} ({message.status})")
        return SentMessage(message_id=message.sid, recipient=recipient, status=str(message.status or "queued"))

    def get_provider_info(self) -> Dict[str, str]:
        return {"name": self.PROVIDER_NAME, "from": self.from_number}


def build_twilio_sender() -> TwilioMessageSender:
    return TwilioMessageSender(
        account_sid=settings.TWILIO_SID,
        auth_token=settings.TWILIO_AUTH_TOKEN,
        from_number=settings.TWILIO_WHATSAPP_FROM,
        status_callback=f"{settings.SERVER_URL.rstrip('/')}/webhook/message-status",
    )
