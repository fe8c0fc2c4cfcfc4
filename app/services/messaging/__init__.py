"""
Outbound chat transport.

MessageSender is the only way the core sends WhatsApp messages. The active
sender is Twilio when credentials are configured, otherwise a simulated
sender that logs and records messages.
"""

from .base import MessageSender, SentMessage
from .registry import get_message_sender, set_message_sender
