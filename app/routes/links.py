"""
Short capture links sent in chat.

/r/{link_id} keeps the WhatsApp message short and checks the link before
the capture page loads.
"""

import logging

from fastapi import APIRouter
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse, RedirectResponse

from app.models.capture_link import LinkStatus
from app.services.link_guard import get_link_guard

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Links"])


@router.get("/r/{link_id}")
async def redirect_capture_link(link_id: str):
    guard = get_link_guard()
    link = await run_in_threadpool(guard.lookup, link_id)

    if link is None:
        logger.info(f"Redirect failed: link {link_id} not found")
        return PlainTextResponse("Report link not found or invalid.", status_code=404)

    link_status = guard.status_of(link)
    if link_status == LinkStatus.EXPIRED:
        logger.info(f"Redirect failed: link {link_id} expired")
        return PlainTextResponse("Report link has expired.", status_code=410)
    if link_status == LinkStatus.ALREADY_USED:
        logger.info(f"Redirect failed: link {link_id} already used")
        return PlainTextResponse("Report link has already been used.", status_code=403)

    target = guard.capture_page_url(link)
    logger.info(f"Redirecting link {link_id} to {target}")
    return RedirectResponse(url=target, status_code=302)
