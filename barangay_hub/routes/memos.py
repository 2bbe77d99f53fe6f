from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..db import get_db
from ..models.models import Memo, User
from ..schemas.memos import MemoCreateRequest, MemoDecisionRequest
from ..services import memos as memo_service
from ..services.audit import client_context
from ..services.repository import Repository


router = APIRouter(prefix="/api/memos", tags=["memos"])


def _serialize_memo(memo: Memo) -> Dict[str, Any]:
    return {
        "id": memo.id,
        "title": memo.title,
        "description": memo.description,
        "category": memo.category,
        "status": memo.status,
        "effectiveDate": memo.effective_date.isoformat() if memo.effective_date else None,
        "fileUrl": memo.file_url,
        "issuedBy": memo.issued_by,
        "issuerName": memo.issuer.username if memo.issuer else None,
        "createdAt": memo.created_at.isoformat() if memo.created_at else None,
        "updatedAt": memo.updated_at.isoformat() if memo.updated_at else None,
    }


@router.get("")
def list_memos(
    status: Optional[str] = None,
    category: Optional[str] = None,
    showOnlyApproved: bool = False,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    rows = memo_service.list_memos(
        Repository(db), me, status=status, category=category, show_only_approved=showOnlyApproved
    )
    return [_serialize_memo(m) for m in rows]


@router.post("", status_code=201)
def create_memo(
    payload: MemoCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    memo = memo_service.create_memo(
        Repository(db),
        me,
        title=payload.title,
        description=payload.description,
        category=payload.category,
        effective_date=payload.effective_date,
        file_url=payload.file_url,
        context=client_context(request),
    )
    return _serialize_memo(memo)


@router.patch("/{memo_id}")
def decide_memo(
    memo_id: str,
    payload: MemoDecisionRequest,
    request: Request,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    memo = memo_service.decide_memo(Repository(db), me, memo_id, payload.status, context=client_context(request))
    return _serialize_memo(memo)
