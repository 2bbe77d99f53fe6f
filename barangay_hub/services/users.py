from typing import List, Optional

import structlog

from ..auth.security import get_password_hash
from ..models.models import ROLES, User, utcnow
from .audit import MODULE_USERS, RequestContext, record_action
from .errors import ValidationError
from .permissions import ensure_admin, require_actor
from .repository import Repository

log = structlog.get_logger(__name__)

MIN_PASSWORD_LENGTH = 8


def create_user(
    repo: Repository,
    actor: Optional[User],
    *,
    username: Optional[str],
    password: Optional[str],
    role: Optional[str],
    full_name: Optional[str] = None,
    context: Optional[RequestContext] = None,
) -> User:
    actor = require_actor(actor)
    ensure_admin(actor, "Only admins can manage user accounts")

    username = (username or "").strip()
    role = (role or "").strip().lower()
    if not username or not password or not role:
        raise ValidationError("Missing required fields")
    if role not in ROLES:
        raise ValidationError(f"Role must be one of: {', '.join(ROLES)}")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if repo.get_user_by_username(username) is not None:
        raise ValidationError("Username already taken")

    with repo.transaction():
        user = repo.add(
            User(
                username=username,
                password_hash=get_password_hash(password),
                role=role,
                full_name=(full_name or "").strip() or None,
                is_active=True,
                created_at=utcnow(),
            )
        )
    log.info("user_created", user_id=user.id, role=role, created_by=actor.id)

    record_action(
        repo.db,
        actor=actor,
        action="Created user account",
        module=MODULE_USERS,
        context=context,
        affected_data=f"Username: {username}, Role: {role}",
        metadata={"createdUserId": user.id, "role": role},
    )
    return user


def list_users(repo: Repository, actor: Optional[User], role: Optional[str] = None) -> List[User]:
    actor = require_actor(actor)
    ensure_admin(actor, "Only admins can manage user accounts")
    return repo.list_users(role=role or None)
