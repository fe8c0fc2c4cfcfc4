import logging
from typing import Optional

from app.core.settings import settings
from .base import MessageSender
from .simulated_sender import SimulatedMessageSender

logger = logging.getLogger(__name__)

_sender_instance: Optional[MessageSender] = None


def get_message_sender() -> MessageSender:
    """
    Resolve the active chat transport based on settings.

    Rules:
    - TWILIO_SID and TWILIO_AUTH_TOKEN set: Twilio WhatsApp.
    - Otherwise, or if the Twilio client cannot be built: simulated sender.
    """
    global _sender_instance
    if _sender_instance is not None:
        return _sender_instance

    if settings.TWILIO_SID and settings.TWILIO_AUTH_TOKEN:
        try:
            from .twilio_sender import build_twilio_sender

            _sender_instance = build_twilio_sender()
            logger.info("Message sender initialized: twilio")
            return _sender_instance
        except Exception as e:
            logger.warning(f"Failed to initialize Twilio sender: {e}. Falling back to simulated sender.")

    _sender_instance = SimulatedMessageSender()
    logger.info("Message sender initialized: simulated")
    return _sender_instance


def set_message_sender(sender: Optional[MessageSender]) -> None:
    """Swap the active sender (tests)."""
    global _sender_instance
    _sender_instance = sender
