import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..models.models import User
from ..services.errors import AuthenticationRequired, Forbidden


pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
http_bearer = HTTPBearer(auto_error=False)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        return False


def create_access_token(user_id: str, role: Optional[str] = None) -> str:
    # role is informational only; authorization reloads the user record
    now = datetime.now(tz=timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=settings.jwt_ttl_seconds)).timestamp()),
        "jti": str(uuid.uuid4()),
    }
    if role:
        payload["role"] = role
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationRequired("Token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationRequired("Invalid token")


def get_current_user(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db),
) -> User:
    token = creds.credentials if creds is not None else request.cookies.get(settings.session_cookie_name)
    if not token:
        raise AuthenticationRequired()
    payload = decode_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationRequired("Invalid subject")
    user = db.query(User).filter(User.id == str(user_id)).first()
    if user is None or not user.is_active:
        raise AuthenticationRequired("User not active")
    return user


def get_optional_user(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db),
) -> Optional[User]:
    try:
        return get_current_user(request, creds, db)
    except AuthenticationRequired:
        return None


def require_roles(*allowed_roles: str):
    """Allow the request if the persisted user role is any of allowed_roles."""
    def _dep(user: User = Depends(get_current_user)):
        if user.role not in allowed_roles:
            raise Forbidden()
        return user

    return _dep
