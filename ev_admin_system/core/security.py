# ev_admin_system/core/security.py

import logging
from dataclasses import dataclass
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ev_admin_system.business_logic.errors import UnauthorizedError, ForbiddenError
from ev_admin_system.core.config import get_settings

logger = logging.getLogger(__name__)

ROLES = ("ADMIN", "ADMIN_NOC", "CPO_OWNER", "USER_DRIVER", "ADMIN_MARKETING")

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


@dataclass
class AdminContext:
    """Identity carried by a verified access token."""
    id: int
    role: str


def create_access_token(admin_id: int, role: str) -> str:
    settings = get_settings()
    return jwt.encode({"id": admin_id, "role": role}, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> AdminContext:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token Expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected access token: {e}")
        raise UnauthorizedError("Unauthorized")

    if "id" not in payload or "role" not in payload:
        raise UnauthorizedError("Unauthorized")
    return AdminContext(id=payload["id"], role=payload["role"])


def get_current_admin(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> AdminContext:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("Unauthorized")
    return decode_access_token(credentials.credentials)


def require_roles(*roles: str):
    """Dependency factory admitting only tokens whose role is one of roles."""

    def _check(admin: AdminContext = Depends(get_current_admin)) -> AdminContext:
        if admin.role not in roles:
            logger.warning(f"Admin {admin.id} with role {admin.role} denied, requires one of {roles}")
            raise ForbiddenError("Forbidden")
        return admin

    return _check


def verify_basic_token(authorization: Optional[str] = Header(None)):
    """Accepts the static token used by the reference-data endpoints."""
    expected = get_settings().basic_auth_token
    if not authorization or not expected or authorization != f"Basic {expected}":
        raise UnauthorizedError("Unauthorized")
