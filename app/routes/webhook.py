"""
Twilio WhatsApp webhook endpoints.

The inbound webhook ALWAYS answers 200 with an empty TwiML envelope: any
other status makes Twilio retry and the event would be processed twice.
Replies are sent through the Messages API, not in the TwiML body.
"""

import logging

from fastapi import APIRouter, Request, Response
from fastapi.concurrency import run_in_threadpool

from app.models.webhook import InboundEvent
from app.services.chat_service import get_chat_service
from app.services.report_service import get_report_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["Webhook"])

EMPTY_TWIML = '<?xml version="1.0" encoding="UTF-8"?><Response></Response>'


def _twiml_ok() -> Response:
    return Response(content=EMPTY_TWIML, media_type="text/xml", status_code=200)


@router.post("")
async def receive_message(request: Request):
    """
    Receive one inbound WhatsApp message (text, media or location pin).
    """
    try:
        form = await request.form()
        event = InboundEvent.from_form(dict(form))
        logger.info(
            f"Inbound message from {event.from_ or 'unknown'}: body={event.text[:50]!r}, "
            f"media={event.num_media}, location={event.has_location}"
        )
        await run_in_threadpool(get_chat_service().handle_event, event)
    except Exception as e:
        logger.error(f"Webhook processing failed: {e}", exc_info=True)
    return _twiml_ok()


@router.post("/message-status")
async def message_status(request: Request):
    """
    Twilio delivery status callback for messages sent to officers.
    """
    try:
        form = await request.form()
        message_sid = form.get("MessageSid")
        message_status = form.get("MessageStatus")
        logger.info(f"Delivery status callback: {message_sid} -> {message_status}")
        await run_in_threadpool(get_report_service().record_delivery_status, message_sid, message_status)
    except Exception as e:
        logger.error(f"Delivery status callback failed: {e}", exc_info=True)
    return _twiml_ok()
