"""
Report endpoints - web capture form submission, suggestions, link checks,
location checks and the report status workflow.
"""

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, File, Form, Query, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from app.core.errors import ValidationError
from app.models.base import ErrorResponse
from app.models.capture_link import LinkStatus, LinkValidityResponse
from app.models.report import RejectionReason, ReportStatusUpdate
from app.services.link_guard import get_link_guard
from app.services.polygon_index import get_polygon_index
from app.services.report_service import get_report_service
from app.utils.geometry import to_float

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Reports"])

REJECTION_STATUS_CODES = {
    RejectionReason.MISSING_FIELDS: status.HTTP_400_BAD_REQUEST,
    RejectionReason.OUTSIDE_JURISDICTION: status.HTTP_400_BAD_REQUEST,
    RejectionReason.NOTIFICATION_FAILED: status.HTTP_422_UNPROCESSABLE_ENTITY,
}

LINK_STATUS_RESPONSES = {
    LinkStatus.VALID: (status.HTTP_200_OK, None),
    LinkStatus.NOT_FOUND: (status.HTTP_404_NOT_FOUND, "This reporting link was not found"),
    LinkStatus.ALREADY_USED: (status.HTTP_403_FORBIDDEN, "This reporting link has already been used"),
    LinkStatus.EXPIRED: (status.HTTP_403_FORBIDDEN, "This reporting link has expired"),
}


@router.post("/report")
async def submit_report(
    userId: Optional[str] = Form(None),
    reportType: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    latitude: Optional[str] = Form(None),
    longitude: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    linkId: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
):
    """
    Submit a report from the web capture form.

    The response is sent only after the citizen's WhatsApp acknowledgement
    has been dispatched.
    """
    request_id = secrets.token_hex(6)
    logger.info(f"[{request_id}] Report submission from {userId}, type {reportType}")

    image_payload = None
    if image is not None:
        data = await image.read()
        if data:
            image_payload = (data, image.content_type)

    result = await run_in_threadpool(
        get_report_service().submit_web_report,
        userId,
        reportType,
        description,
        latitude,
        longitude,
        address,
        linkId,
        image_payload,
    )

    if not result.accepted:
        logger.info(f"[{request_id}] Report rejected: {result.reason.value}")
        return JSONResponse(
            status_code=REJECTION_STATUS_CODES[result.reason],
            content=ErrorResponse(error=result.reason.value, message=result.user_message).model_dump(),
        )

    logger.info(f"[{request_id}] Report {result.report_id} accepted for {result.division_name}")
    return {
        "success": True,
        "requestId": request_id,
        "reportId": result.report_id,
        "message": "Report processed successfully",
        "divisionName": result.division_name,
    }


@router.post("/suggestion", status_code=status.HTTP_202_ACCEPTED)
async def submit_suggestion(
    background_tasks: BackgroundTasks,
    description: Optional[str] = Form(None),
    userId: Optional[str] = Form(None),
    linkId: Optional[str] = Form(None),
):
    """
    Accept a suggestion and process it after the response is sent.

    A crash before the background task finishes loses the suggestion.
    """
    if not userId or not description or not description.strip():
        raise ValidationError("Missing required fields: userId and description are required")

    background_tasks.add_task(get_report_service().process_suggestion, userId, description.strip(), linkId)
    return {"success": True, "message": "Suggestion received and being processed"}


@router.get("/check-link-validity", response_model=LinkValidityResponse)
async def check_link_validity(linkId: Optional[str] = Query(None), userId: Optional[str] = Query(None)):
    """
    Check whether a capture link can still be used, without using it up.
    """
    if not linkId or not userId:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"valid": False, "message": "Missing required parameters"},
        )

    link_status = await run_in_threadpool(get_link_guard().validate, linkId, userId)
    status_code, message = LINK_STATUS_RESPONSES[link_status]
    if link_status == LinkStatus.VALID:
        return LinkValidityResponse(valid=True)
    return JSONResponse(status_code=status_code, content={"valid": False, "message": message})


@router.get("/check-location")
async def check_location(lat: Optional[str] = Query(None), lng: Optional[str] = Query(None)):
    """
    Tell the capture page whether a coordinate is inside the jurisdiction.
    """
    latitude, longitude = to_float(lat), to_float(lng)
    if latitude is None or longitude is None:
        raise ValidationError("lat and lng must be numbers")

    division = await run_in_threadpool(get_polygon_index().resolve, latitude, longitude)
    if division is None:
        return {"success": True, "inJurisdiction": False, "divisionId": None, "divisionName": None}
    return {"success": True, "inJurisdiction": True, "divisionId": division.id, "divisionName": division.name}


@router.get("/reports/{report_id}")
async def get_report(report_id: str):
    """
    Fetch one report (used by the officer resolve page).
    """
    report = await run_in_threadpool(get_report_service().get_report, report_id)
    return report.model_dump(mode="json")


@router.patch("/reports/{report_id}/status")
async def update_report_status(report_id: str, update: ReportStatusUpdate):
    """
    Move a report through Pending / In Progress / Resolved / Rejected.

    The citizen is told about the change on WhatsApp (best-effort).
    """
    report = await run_in_threadpool(get_report_service().update_status, report_id, update)
    return {"success": True, "message": f"Report status updated to {report.status.value}", "report": report.model_dump(mode="json")}
