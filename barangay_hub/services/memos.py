"""
Memo / ordinance publication workflow.

Officials file memos as pending; an admin approves or rejects them once.
Memos created by an admin are approved immediately.
"""
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional

import structlog

from ..models.models import Memo, User, utcnow
from .audit import MODULE_MEMOS, RequestContext, record_action
from .errors import Forbidden, InvalidTransition, NotFound, ValidationError
from .permissions import ensure_admin, is_admin, is_official, is_resident, require_actor
from .repository import Repository

log = structlog.get_logger(__name__)

MEMO_PENDING = "pending"
MEMO_APPROVED = "approved"
MEMO_REJECTED = "rejected"
MEMO_STATUSES = (MEMO_PENDING, MEMO_APPROVED, MEMO_REJECTED)
MEMO_DECISIONS = (MEMO_APPROVED, MEMO_REJECTED)
MEMO_CATEGORIES = ("memo", "ordinance")

MEMO_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    MEMO_PENDING: frozenset({MEMO_APPROVED, MEMO_REJECTED}),
    MEMO_APPROVED: frozenset(),
    MEMO_REJECTED: frozenset(),
}


def _to_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _parse_effective_date(raw) -> Optional[datetime]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return _to_utc_naive(raw)
    try:
        # Support both date-only and ISO datetime strings
        text = str(raw).strip()
        if len(text) == 10:
            return datetime.fromisoformat(text + "T00:00:00")
        return _to_utc_naive(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError as exc:
        raise ValidationError("Invalid effectiveDate format") from exc


def create_memo(
    repo: Repository,
    actor: Optional[User],
    *,
    title: Optional[str],
    description: Optional[str],
    category: Optional[str],
    effective_date=None,
    file_url: Optional[str] = None,
    context: Optional[RequestContext] = None,
) -> Memo:
    actor = require_actor(actor)
    title = (title or "").strip()
    description = (description or "").strip()
    category = (category or "").strip().lower()
    if not (title and description and category):
        raise ValidationError("Missing required fields")
    if category not in MEMO_CATEGORIES:
        raise ValidationError("Category must be 'memo' or 'ordinance'")
    if is_resident(actor):
        raise Forbidden("Residents cannot issue memos")

    status = MEMO_APPROVED if is_admin(actor) else MEMO_PENDING
    now = utcnow()
    with repo.transaction():
        memo = repo.add(
            Memo(
                title=title,
                description=description,
                category=category,
                status=status,
                effective_date=_parse_effective_date(effective_date),
                file_url=(file_url or "").strip() or None,
                issued_by=actor.id,
                created_at=now,
                updated_at=now,
            )
        )
    log.info("memo_created", memo_id=memo.id, user_id=actor.id, status=status)

    record_action(
        repo.db,
        actor=actor,
        action="Published memo/ordinance" if status == MEMO_APPROVED else "Created memo/ordinance request",
        module=MODULE_MEMOS,
        context=context,
        affected_data=f"Memo ID: {memo.id}, Title: {title}, Category: {category}, Status: {status}",
        metadata={"memoId": memo.id, "category": category, "status": status},
    )
    return memo


def _filter_value(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return None if not value or value == "all" else value


def list_memos(
    repo: Repository,
    actor: Optional[User],
    *,
    status: Optional[str] = None,
    category: Optional[str] = None,
    show_only_approved: bool = False,
) -> List[Memo]:
    """Residents only ever see approved memos; officials and admins may filter freely."""
    actor = require_actor(actor)
    if show_only_approved or not (is_admin(actor) or is_official(actor)):
        status = MEMO_APPROVED
    return repo.list_memos(status=_filter_value(status), category=_filter_value(category))


def decide_memo(
    repo: Repository,
    actor: Optional[User],
    memo_id: str,
    decision: Optional[str],
    *,
    context: Optional[RequestContext] = None,
) -> Memo:
    actor = require_actor(actor)
    ensure_admin(actor, "Only admins can approve or reject memos")
    if decision not in MEMO_DECISIONS:
        raise ValidationError("Invalid status")

    memo = repo.get_memo(memo_id)
    if memo is None:
        raise NotFound("Memo not found")
    old_status = memo.status
    if decision not in MEMO_TRANSITIONS.get(old_status, frozenset()):
        raise InvalidTransition(f"Memo is already {old_status}")

    with repo.transaction():
        memo.status = decision
        memo.updated_at = utcnow()
    log.info("memo_decided", memo_id=memo_id, user_id=actor.id, decision=decision)

    record_action(
        repo.db,
        actor=actor,
        action="Approved and published memo/ordinance" if decision == MEMO_APPROVED else "Rejected memo/ordinance",
        module=MODULE_MEMOS,
        context=context,
        affected_data=f"Memo ID: {memo_id}, Title: {memo.title}, Status: {old_status} → {decision}",
        metadata={"memoId": memo_id, "oldStatus": old_status, "newStatus": decision},
    )
    return memo
