from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import require_roles
from ..db import get_db
from ..models.models import ROLE_ADMIN, SystemLog
from ..services.audit import query_logs
from ..services.repository import Repository


router = APIRouter(prefix="/api/logs", tags=["logs"])


def _serialize_log(entry: SystemLog) -> dict:
    return {
        "id": entry.id,
        "userId": entry.user_id,
        "userName": entry.user_name,
        "userRole": entry.user_role,
        "action": entry.action,
        "affectedData": entry.affected_data,
        "module": entry.module,
        "ipAddress": entry.ip_address,
        "userAgent": entry.user_agent,
        "metadata": entry.metadata_json,
        "timestamp": entry.timestamp.isoformat() if entry.timestamp else None,
    }


@router.get("")
def list_logs(
    role: Optional[str] = None,
    module: Optional[str] = None,
    userId: Optional[str] = None,
    search: Optional[str] = None,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
    _=Depends(require_roles(ROLE_ADMIN)),
):
    rows = query_logs(Repository(db), role=role, module=module, user_id=userId, search=search, limit=limit)
    return [_serialize_log(r) for r in rows]
