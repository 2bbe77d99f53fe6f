"""
Role checks for reports, memos and the audit trail.
Roles always come from the persisted user record, never from the request body.
"""
from typing import Optional

from ..models.models import ROLE_ADMIN, ROLE_OFFICIAL, ROLE_RESIDENT, Report, User
from .errors import AuthenticationRequired, Forbidden


def require_actor(user: Optional[User]) -> User:
    if user is None:
        raise AuthenticationRequired()
    return user


def is_admin(user: User) -> bool:
    return user.role == ROLE_ADMIN


def is_official(user: User) -> bool:
    return user.role == ROLE_OFFICIAL


def is_resident(user: User) -> bool:
    return user.role == ROLE_RESIDENT


def is_privileged(user: User) -> bool:
    """Officials and admins triage reports."""
    return user.role in (ROLE_OFFICIAL, ROLE_ADMIN)


def is_report_owner(user: User, report: Report) -> bool:
    return str(report.submitted_by) == str(user.id)


def can_view_report(user: User, report: Report) -> bool:
    """
    Check if user can read a report and its conversation.
    - Officials and admins can read any report
    - Residents can only read their own
    """
    return is_privileged(user) or is_report_owner(user, report)


def ensure_privileged(user: User, message: str = "Only officials and admins can do this") -> None:
    if not is_privileged(user):
        raise Forbidden(message)


def ensure_admin(user: User, message: str = "Admin access required") -> None:
    if not is_admin(user):
        raise Forbidden(message)
