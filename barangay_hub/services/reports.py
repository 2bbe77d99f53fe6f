"""
Report lifecycle: submission, reads, and role-gated status changes.

A report moves through

    submitted -> reviewed -> in_progress -> validation -> resolved
                    ^                          |
                    +--------------------------+

where validation -> reviewed is taken when a resident's answer needs another
look. resolved is terminal.
"""
from typing import Any, Dict, FrozenSet, List, Optional, Sequence

import structlog

from ..models.models import Report, User, utcnow
from .audit import MODULE_REPORTS, RequestContext, record_action
from .errors import Forbidden, InvalidTransition, NotFound, ValidationError
from .messages import append_message
from .permissions import (
    can_view_report,
    is_privileged,
    is_report_owner,
    is_resident,
    require_actor,
)
from .repository import Repository

log = structlog.get_logger(__name__)

STATUS_SUBMITTED = "submitted"
STATUS_REVIEWED = "reviewed"
STATUS_IN_PROGRESS = "in_progress"
STATUS_VALIDATION = "validation"
STATUS_RESOLVED = "resolved"

REPORT_STATUSES = (
    STATUS_SUBMITTED,
    STATUS_REVIEWED,
    STATUS_IN_PROGRESS,
    STATUS_VALIDATION,
    STATUS_RESOLVED,
)

REPORT_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    STATUS_SUBMITTED: frozenset({STATUS_REVIEWED}),
    STATUS_REVIEWED: frozenset({STATUS_IN_PROGRESS}),
    STATUS_IN_PROGRESS: frozenset({STATUS_VALIDATION}),
    STATUS_VALIDATION: frozenset({STATUS_RESOLVED, STATUS_REVIEWED}),
    STATUS_RESOLVED: frozenset(),
}

PRIORITIES = ("low", "medium", "high", "critical")

ACTION_SUBMITTED = "Submitted report"
ACTION_STATUS_CHANGED = "Updated report status"
ACTION_INFO_REQUESTED = "Requested additional information"
ACTION_INFO_PROVIDED = "Provided additional information"
ACTION_UPDATED = "Updated report"


def can_transition(current: str, target: str) -> bool:
    return target in REPORT_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: str, target: str) -> None:
    if not can_transition(current, target):
        raise InvalidTransition(f"Cannot change status from {current} to {target}")


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def _clean_images(images: Optional[Sequence[Any]], field: str) -> List[str]:
    if images is None:
        return []
    if not isinstance(images, (list, tuple)) or not all(isinstance(i, str) for i in images):
        raise ValidationError(f"{field} must be a list of strings")
    return [i for i in images if i.strip()]


def submit_report(
    repo: Repository,
    actor: Optional[User],
    *,
    category: Optional[str],
    description: Optional[str],
    priority: Optional[str],
    location: Optional[str],
    images: Optional[Sequence[str]] = None,
    context: Optional[RequestContext] = None,
) -> Report:
    actor = require_actor(actor)
    category, description, location = _clean(category), _clean(description), _clean(location)
    priority = _clean(priority).lower()
    if not (category and description and priority and location):
        raise ValidationError("Missing required fields")
    if priority not in PRIORITIES:
        raise ValidationError(f"Priority must be one of: {', '.join(PRIORITIES)}")
    image_refs = _clean_images(images, "images")

    now = utcnow()
    with repo.transaction():
        report = repo.add(
            Report(
                category=category,
                description=description,
                priority=priority,
                location=location,
                status=STATUS_SUBMITTED,
                images=image_refs,
                additional_info_images=[],
                submitted_by=actor.id,
                submitted_at=now,
                updated_at=now,
            )
        )
    log.info("report_submitted", report_id=report.id, user_id=actor.id, priority=priority)

    record_action(
        repo.db,
        actor=actor,
        action=ACTION_SUBMITTED,
        module=MODULE_REPORTS,
        context=context,
        affected_data=f"Report ID: {report.id}, Category: {category}, Priority: {priority}",
        metadata={"reportId": report.id, "category": category, "priority": priority, "location": location},
    )
    return report


def get_report(repo: Repository, report_id: str) -> Report:
    report = repo.get_report(report_id)
    if report is None:
        raise NotFound("Report not found")
    return report


def get_report_for(repo: Repository, actor: Optional[User], report_id: str) -> Report:
    actor = require_actor(actor)
    report = get_report(repo, report_id)
    if not can_view_report(actor, report):
        raise Forbidden("Not allowed to view this report")
    return report


def list_reports(repo: Repository) -> List[Report]:
    return repo.list_reports()


def list_reports_by_submitter(repo: Repository, user_id: str) -> List[Report]:
    return repo.list_reports(submitted_by=user_id)


def _next_status(
    report: Report,
    requested: Optional[str],
    *,
    requests_info: bool,
    provides_info: bool,
) -> str:
    current = report.status
    if current == STATUS_RESOLVED and (requested not in (None, current) or requests_info or provides_info):
        raise InvalidTransition("Report is resolved and can no longer change")
    if requested is not None:
        if requested != current:
            ensure_transition(current, requested)
        return requested
    if requests_info and current == STATUS_IN_PROGRESS:
        return STATUS_VALIDATION
    if provides_info and current == STATUS_VALIDATION:
        return STATUS_REVIEWED
    return current


def update_report(
    repo: Repository,
    actor: Optional[User],
    report_id: str,
    *,
    status: Optional[str] = None,
    admin_feedback: Optional[str] = None,
    additional_info: Optional[str] = None,
    additional_info_images: Optional[Sequence[str]] = None,
    sender_role: Optional[str] = None,
    context: Optional[RequestContext] = None,
) -> Report:
    """
    Apply a status change and/or a conversation message to a report.

    The message append and the report mutation commit together; the audit
    entry is written afterwards. When both a status change and a message
    happen, the audit label describes the status change.
    """
    actor = require_actor(actor)
    # An empty status means "no status change"
    status = status or None
    if status is not None and status not in REPORT_STATUSES:
        raise ValidationError("Invalid status")

    feedback = _clean(admin_feedback)
    info = _clean(additional_info)
    if status is None and not feedback and not info:
        raise ValidationError("Nothing to update")

    report = get_report(repo, report_id)

    if (status is not None or feedback) and not is_privileged(actor):
        raise Forbidden("Only officials and admins can change status or request information")
    if info and not (is_resident(actor) and is_report_owner(actor, report)):
        raise Forbidden("Only the resident who filed the report can provide information")
    if sender_role and sender_role != actor.role:
        log.warning("sender_role_mismatch", user_id=actor.id, declared=sender_role, actual=actor.role)

    info_images = _clean_images(additional_info_images, "additionalInfoImages")
    old_status = report.status
    new_status = _next_status(report, status, requests_info=bool(feedback), provides_info=bool(info))

    with repo.transaction():
        if feedback:
            append_message(repo, report.id, actor.id, actor.role, feedback, [])
            report.admin_feedback = feedback
        if info:
            append_message(repo, report.id, actor.id, actor.role, info, info_images)
            report.additional_info = info
            report.additional_info_images = info_images
        report.status = new_status
        now = utcnow()
        report.updated_at = max(now, report.submitted_at) if report.submitted_at else now

    message_kind = "info_request" if feedback else ("info_response" if info else None)
    if new_status != old_status:
        action = ACTION_STATUS_CHANGED
        details = f"Report ID: {report_id} - Status changed: {old_status} → {new_status}"
    elif feedback:
        action = ACTION_INFO_REQUESTED
        details = f"Report ID: {report_id} - Requested additional info from resident"
    elif info:
        action = ACTION_INFO_PROVIDED
        details = f"Report ID: {report_id} - Responded to information request"
    else:
        action = ACTION_UPDATED
        details = f"Report ID: {report_id}"
    log.info("report_updated", report_id=report_id, user_id=actor.id, old_status=old_status, new_status=new_status)

    record_action(
        repo.db,
        actor=actor,
        action=action,
        module=MODULE_REPORTS,
        context=context,
        affected_data=details,
        metadata={
            "reportId": report_id,
            "oldStatus": old_status,
            "newStatus": new_status,
            "message": message_kind,
        },
    )
    return report
