from typing import Iterable

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from .auth_utils import Identity, decode_access_token
from .db import get_session
from .errors import Forbidden, Unauthorized
from .models import Role, User


def get_db():
    with get_session() as session:
        yield session


def authenticate(token: str, db: Session) -> Identity:
    user_id = decode_access_token(token)
    user = db.get(User, user_id)
    if not user:
        raise Unauthorized("Invalid token")
    return Identity(id=user.id, email=user.email, role=Role(user.role))


def authorize(identity: Identity, allowed_roles: Iterable[Role] = ()) -> Identity:
    allowed = set(allowed_roles)
    if allowed and identity.role not in allowed:
        raise Forbidden("Unauthorized access")
    return identity


def get_identity(
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> Identity:
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthorized("Authentication required")
    token = authorization[len("Bearer "):].strip()
    if not token:
        raise Unauthorized("Authentication required")
    return authenticate(token, db)


def require_roles(*roles: Role):
    """Dependency factory gating a route on role membership.

    With no roles any authenticated identity is accepted.
    """

    def dependency(identity: Identity = Depends(get_identity)) -> Identity:
        return authorize(identity, roles)

    return dependency


def is_super_admin(identity: Identity) -> bool:
    return identity.role is Role.SUPER_ADMIN
