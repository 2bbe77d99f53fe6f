from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..db import get_db
from ..models.models import User
from ..schemas.auth import UserCreateRequest
from ..services import users as user_service
from ..services.audit import client_context
from ..services.repository import Repository


router = APIRouter(prefix="/api/users", tags=["users"])


def _user_to_dict(u: User) -> dict:
    return {
        "id": u.id,
        "username": u.username,
        "fullName": u.full_name,
        "role": u.role,
        "isActive": u.is_active,
        "createdAt": u.created_at.isoformat() if u.created_at else None,
        "lastLoginAt": u.last_login_at.isoformat() if u.last_login_at else None,
    }


@router.get("")
def list_users(role: Optional[str] = None, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    return [_user_to_dict(u) for u in user_service.list_users(Repository(db), me, role=role)]


@router.post("", status_code=201)
def create_user(
    payload: UserCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    user = user_service.create_user(
        Repository(db),
        me,
        username=payload.username,
        password=payload.password,
        role=payload.role,
        full_name=payload.full_name,
        context=client_context(request),
    )
    return _user_to_dict(user)
