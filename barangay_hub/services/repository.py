"""
Persistence gateway for users, reports, report messages, memos and system logs.
Holds no business rules; services decide what to read and write.
"""
from contextlib import contextmanager
from typing import Iterator, List, Optional

import structlog
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.models import Memo, Report, ReportMessage, SystemLog, User
from .errors import PersistenceError

log = structlog.get_logger(__name__)


class Repository:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Commit everything added inside the block as one unit, or nothing."""
        try:
            yield self.db
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            log.error("transaction_failed", error=str(exc))
            raise PersistenceError("Failed to save changes") from exc
        except Exception:
            self.db.rollback()
            raise

    def add(self, obj):
        self.db.add(obj)
        return obj

    def flush(self) -> None:
        self.db.flush()

    # ----- Users -----
    def get_user(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == str(user_id)).first()

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def list_users(self, role: Optional[str] = None) -> List[User]:
        q = self.db.query(User)
        if role:
            q = q.filter(User.role == role)
        return q.order_by(User.created_at.asc()).all()

    # ----- Reports -----
    def get_report(self, report_id: str) -> Optional[Report]:
        return self.db.query(Report).filter(Report.id == str(report_id)).first()

    def list_reports(self, submitted_by: Optional[str] = None) -> List[Report]:
        q = self.db.query(Report)
        if submitted_by:
            q = q.filter(Report.submitted_by == str(submitted_by))
        return q.order_by(Report.submitted_at.desc()).all()

    # ----- Report messages -----
    def last_message(self, report_id: str) -> Optional[ReportMessage]:
        return (
            self.db.query(ReportMessage)
            .filter(ReportMessage.report_id == str(report_id))
            .order_by(ReportMessage.sequence.desc())
            .first()
        )

    def list_messages(self, report_id: str) -> List[ReportMessage]:
        return (
            self.db.query(ReportMessage)
            .filter(ReportMessage.report_id == str(report_id))
            .order_by(ReportMessage.sequence.asc())
            .all()
        )

    # ----- Memos -----
    def get_memo(self, memo_id: str) -> Optional[Memo]:
        return self.db.query(Memo).filter(Memo.id == str(memo_id)).first()

    def list_memos(self, status: Optional[str] = None, category: Optional[str] = None) -> List[Memo]:
        q = self.db.query(Memo)
        if status:
            q = q.filter(Memo.status == status)
        if category:
            q = q.filter(Memo.category == category)
        return q.order_by(Memo.created_at.desc()).all()

    # ----- System logs -----
    def list_logs(
        self,
        role: Optional[str] = None,
        module: Optional[str] = None,
        user_id: Optional[str] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[SystemLog]:
        q = self.db.query(SystemLog)
        if role:
            q = q.filter(SystemLog.user_role == role)
        if module:
            q = q.filter(SystemLog.module == module)
        if user_id:
            q = q.filter(SystemLog.user_id == str(user_id))
        if search:
            like = f"%{search}%"
            q = q.filter(
                or_(
                    SystemLog.action.ilike(like),
                    SystemLog.affected_data.ilike(like),
                    SystemLog.user_name.ilike(like),
                )
            )
        q = q.order_by(SystemLog.timestamp.desc())
        if limit:
            q = q.limit(limit)
        return q.all()
