"""
Join-team endpoint - volunteer applications from the web form.
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, File, Form, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from app.core.errors import ValidationError
from app.services.team_service import get_team_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/join-team", tags=["Team"])

TRUE_VALUES = {"true", "1", "yes", "on"}


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError("Date of birth must be in YYYY-MM-DD format")


@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_application(
    userId: Optional[str] = Form(None),
    sessionId: Optional[str] = Form(None),
    fullName: Optional[str] = Form(None),
    division: Optional[str] = Form(None),
    motivation: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    aadharNumber: Optional[str] = Form(None),
    profession: Optional[str] = Form(None),
    dateOfBirth: Optional[str] = Form(None),
    hasCourtCase: Optional[str] = Form(None),
    courtCaseDescription: Optional[str] = Form(None),
    aadharDocument: Optional[UploadFile] = File(None),
):
    """
    Submit a Traffic Buddy team application.

    Rules: all fields required, name letters only, applicant 18 or older,
    court case description required when a court case is declared, and the
    identity document must be attached.
    """
    document = None
    if aadharDocument is not None:
        data = await aadharDocument.read()
        if data:
            document = (data, aadharDocument.content_type)

    fields = {
        "user_id": userId,
        "session_id": sessionId,
        "full_name": fullName,
        "division": division,
        "motivation": motivation,
        "address": address,
        "phone": phone,
        "email": email,
        "aadhar_number": aadharNumber,
        "profession": profession,
    }

    application = await run_in_threadpool(
        get_team_service().submit_application,
        fields,
        _parse_date(dateOfBirth),
        (hasCourtCase or "").strip().lower() in TRUE_VALUES,
        courtCaseDescription,
        document,
    )

    return {
        "success": True,
        "message": "Application submitted successfully",
        "applicationId": application.id,
    }
