"""
Audit logging service.
Append-only system log; writes are best-effort and never fail the caller.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.orm import Session

from ..config import settings
from ..models.models import SystemLog, User, utcnow
from .errors import AuditLoggingFailure
from .repository import Repository

log = structlog.get_logger(__name__)

MODULE_REPORTS = "Reports"
MODULE_MEMOS = "Memos"
MODULE_AUTH = "Authentication"
MODULE_USERS = "Users"


@dataclass(frozen=True)
class RequestContext:
    ip_address: str = "unknown"
    user_agent: str = "unknown"


def client_context(request) -> RequestContext:
    """Build the audit context from a Starlette request (first X-Forwarded-For hop wins)."""
    if request is None:
        return RequestContext()
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    elif request.client is not None:
        ip = request.client.host
    else:
        ip = "unknown"
    return RequestContext(
        ip_address=ip or "unknown",
        user_agent=request.headers.get("user-agent") or "unknown",
    )


def _persist_log(db: Session, entry: SystemLog) -> SystemLog:
    try:
        db.add(entry)
        db.commit()
    except Exception as exc:
        db.rollback()
        raise AuditLoggingFailure(str(exc)) from exc
    return entry


def record_action(
    db: Session,
    *,
    action: str,
    module: str,
    actor: Optional[User] = None,
    context: Optional[RequestContext] = None,
    affected_data: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    user_name: Optional[str] = None,
    user_role: Optional[str] = None,
) -> Optional[SystemLog]:
    """
    Append an audit entry for a state-changing action.

    Must be called after the triggering unit of work has committed: the entry
    is committed on its own and any failure is rolled back and reported on the
    operational log instead of being raised.

    Args:
        db: Database session
        action: Human-readable label (e.g. "Submitted report")
        module: Area tag (Reports|Memos|Authentication|Users)
        actor: Authenticated user, when known
        context: Client IP address and user agent
        affected_data: Short summary of what changed
        metadata: Structured details
        user_name: Actor name override when no user record resolved
        user_role: Actor role override when no user record resolved

    Returns:
        The stored SystemLog, or None if it could not be written
    """
    context = context or RequestContext()
    actor_id = None
    try:
        if actor is not None:
            actor_id, user_name, user_role = actor.id, actor.username, actor.role
        entry = SystemLog(
            user_id=actor_id,
            user_name=user_name,
            user_role=user_role,
            action=action,
            affected_data=affected_data,
            module=module,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            metadata_json=metadata,
            timestamp=utcnow(),
        )
        return _persist_log(db, entry)
    except Exception as exc:
        log.error(
            "audit_log_failed",
            action=action,
            module=module,
            user_id=actor_id,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return None


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return settings.logs_default_limit
    return min(max(1, int(limit)), settings.logs_max_limit)


def query_logs(
    repo: Repository,
    role: Optional[str] = None,
    module: Optional[str] = None,
    user_id: Optional[str] = None,
    search: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[SystemLog]:
    """
    Get audit entries, newest first.

    role/module/user_id must all match; search is a case-insensitive substring
    match against action, affected data or actor name.
    """
    search = (search or "").strip() or None
    return repo.list_logs(
        role=role or None,
        module=module or None,
        user_id=user_id or None,
        search=search,
        limit=clamp_limit(limit),
    )
