"""
Per-report conversation thread.

Messages are append-only. Ordering is carried by a per-report sequence number
assigned inside the caller's transaction; created_at never goes backwards
within a report.
"""
from typing import List, Optional, Sequence

from ..models.models import ReportMessage, utcnow
from .errors import ValidationError
from .repository import Repository


def append_message(
    repo: Repository,
    report_id: str,
    sender_id: str,
    sender_role: str,
    text: str,
    images: Optional[Sequence[str]] = None,
) -> ReportMessage:
    """Add a message to a report's thread. Does not commit."""
    body = (text or "").strip()
    if not body:
        raise ValidationError("Message is required")

    previous = repo.last_message(report_id)
    now = utcnow()
    if previous is not None and previous.created_at and previous.created_at > now:
        now = previous.created_at

    message = ReportMessage(
        report_id=report_id,
        sequence=(previous.sequence + 1) if previous is not None else 1,
        sender_id=sender_id,
        sender_role=sender_role,
        message=body,
        images=list(images or []),
        created_at=now,
    )
    repo.add(message)
    repo.flush()
    return message


def list_messages(repo: Repository, report_id: str) -> List[ReportMessage]:
    return repo.list_messages(report_id)
