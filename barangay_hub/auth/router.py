from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..models.models import User
from ..schemas.auth import LoginRequest, MeResponse, TokenResponse
from ..services.audit import MODULE_AUTH, client_context, record_action
from ..services.errors import AuthenticationRequired, ValidationError
from ..services.repository import Repository
from .security import create_access_token, get_current_user, get_optional_user, verify_password


router = APIRouter(prefix="/api/auth", tags=["auth"])
log = structlog.get_logger(__name__)


def _failed_login(db: Session, request: Request, username: str, reason: str, user: Optional[User] = None):
    record_action(
        db,
        actor=user,
        action="Failed login attempt",
        module=MODULE_AUTH,
        context=client_context(request),
        affected_data=f"Username: {username}",
        metadata={"reason": reason},
        user_name=username if user is None else None,
    )
    log.warning("login_failed", username=username, reason=reason)
    raise AuthenticationRequired("Invalid credentials")


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, request: Request, response: Response, db: Session = Depends(get_db)):
    username = (req.username or "").strip()
    if not username or not req.password:
        raise ValidationError("Username and password are required")

    repo = Repository(db)
    user = repo.get_user_by_username(username)
    if user is None:
        _failed_login(db, request, username, "User not found")
    if not verify_password(req.password, user.password_hash):
        _failed_login(db, request, username, "Invalid password", user)
    if not user.is_active:
        _failed_login(db, request, username, "Account inactive", user)

    with repo.transaction():
        user.last_login_at = datetime.now(timezone.utc).replace(tzinfo=None)
    record_action(
        db,
        actor=user,
        action="User logged in",
        module=MODULE_AUTH,
        context=client_context(request),
        affected_data=f"Username: {username}",
    )

    token = create_access_token(user.id, role=user.role)
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.jwt_ttl_seconds,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
    return TokenResponse(
        access_token=token,
        user={"id": user.id, "username": user.username, "fullName": user.full_name, "role": user.role},
    )


@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    if user is not None:
        record_action(
            db,
            actor=user,
            action="User logged out",
            module=MODULE_AUTH,
            context=client_context(request),
        )
    response.delete_cookie(settings.session_cookie_name)
    return {"success": True}


@router.get("/me", response_model=MeResponse)
def me(user: User = Depends(get_current_user)):
    return MeResponse(id=user.id, username=user.username, full_name=user.full_name, role=user.role)
