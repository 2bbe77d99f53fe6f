from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, require_roles
from ..db import get_db
from ..models.models import ROLE_ADMIN, ROLE_OFFICIAL, Report, ReportMessage, User
from ..schemas.reports import ReportCreateRequest, ReportUpdateRequest
from ..services import reports as report_service
from ..services.audit import client_context
from ..services.messages import list_messages
from ..services.permissions import ensure_privileged
from ..services.repository import Repository


router = APIRouter(prefix="/api/reports", tags=["reports"])


def _iso(value):
    return value.isoformat() if value else None


def _serialize_report(report: Report) -> Dict[str, Any]:
    return {
        "id": report.id,
        "category": report.category,
        "description": report.description,
        "priority": report.priority,
        "location": report.location,
        "status": report.status,
        "images": report.images or [],
        "additionalInfo": report.additional_info,
        "additionalInfoImages": report.additional_info_images or [],
        "adminFeedback": report.admin_feedback,
        "submittedBy": report.submitted_by,
        "submitterName": report.submitter.username if report.submitter else None,
        "submittedAt": _iso(report.submitted_at),
        "updatedAt": _iso(report.updated_at),
    }


def _serialize_message(message: ReportMessage) -> Dict[str, Any]:
    return {
        "id": message.id,
        "reportId": message.report_id,
        "sequence": message.sequence,
        "senderId": message.sender_id,
        "senderRole": message.sender_role,
        "senderName": message.sender.username if message.sender else None,
        "message": message.message,
        "images": message.images or [],
        "createdAt": _iso(message.created_at),
    }


@router.post("", status_code=201)
def create_report(
    payload: ReportCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    report = report_service.submit_report(
        Repository(db),
        me,
        category=payload.category,
        description=payload.description,
        priority=payload.priority,
        location=payload.location,
        images=payload.images,
        context=client_context(request),
    )
    return _serialize_report(report)


@router.get("")
def list_reports(
    db: Session = Depends(get_db),
    _=Depends(require_roles(ROLE_OFFICIAL, ROLE_ADMIN)),
):
    return [_serialize_report(r) for r in report_service.list_reports(Repository(db))]


@router.get("/user/{user_id}")
def list_user_reports(user_id: str, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    if str(me.id) != user_id:
        ensure_privileged(me, "Not allowed to view these reports")
    return [_serialize_report(r) for r in report_service.list_reports_by_submitter(Repository(db), user_id)]


@router.get("/{report_id}")
def get_report(report_id: str, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    return _serialize_report(report_service.get_report_for(Repository(db), me, report_id))


@router.patch("/{report_id}")
def update_report(
    report_id: str,
    payload: ReportUpdateRequest,
    request: Request,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    report = report_service.update_report(
        Repository(db),
        me,
        report_id,
        status=payload.status,
        admin_feedback=payload.admin_feedback,
        additional_info=payload.additional_info,
        additional_info_images=payload.additional_info_images,
        sender_role=payload.sender_role,
        context=client_context(request),
    )
    return _serialize_report(report)


@router.get("/{report_id}/messages")
def get_report_messages(report_id: str, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    repo = Repository(db)
    report = report_service.get_report_for(repo, me, report_id)
    return [_serialize_message(m) for m in list_messages(repo, report.id)]
