# casetrack/api/v1/deps.py

from typing import Optional
import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
import jwt

from casetrack.core.config import settings
from casetrack.core.security import decode_access_token
from casetrack.db.database import get_db
from casetrack.db.models import Permission, Profile, UserRole
from casetrack.services.local_case_store import LocalCaseStore, local_case_store
from casetrack.utils.exceptions import PermissionDeniedError, UnauthorizedError

security = HTTPBearer(auto_error=False)

# Wording used in the 403 body for each permission
PERMISSION_ACTIONS = {
    Permission.add_dispute: "add disputes",
    Permission.delete_dispute: "delete disputes",
    Permission.upload_excel_litigation: "upload litigation cases",
    Permission.add_users: "add users",
    Permission.delete_users: "delete users",
    Permission.export_reports: "export reports",
}

# ============================================================================
# Profile helpers
# ============================================================================

def is_default_admin(user: Profile) -> bool:
    return bool(settings.DEFAULT_ADMIN_EMAIL) and (user.email or "").lower() == settings.DEFAULT_ADMIN_EMAIL


def is_admin(user: Profile) -> bool:
    return user.role == UserRole.admin or is_default_admin(user)


def user_permissions(user: Profile) -> set:
    if is_admin(user):
        return set(Permission)
    return {grant.permission for grant in user.permissions}


def has_permission(user: Profile, permission: Permission) -> bool:
    return permission in user_permissions(user)

# ============================================================================
# JWT Dependency
# ============================================================================

def _resolve_user(credentials: HTTPAuthorizationCredentials, db: Session) -> Profile:
    try:
        payload = decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired"
        )
    except jwt.PyJWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )

    # Identity provider puts the profile id in "sub"; accept "user_id" as well
    raw_id = payload.get("sub") or payload.get("user_id")
    try:
        user_id = uuid.UUID(str(raw_id))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )

    user = db.query(Profile).filter(Profile.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    if not user.is_enabled and not is_default_admin(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account is awaiting administrator approval"
        )

    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> Profile:
    """
    Validate JWT token and return current profile.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return _resolve_user(credentials, db)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> Optional[Profile]:
    """Like get_current_user, but a request without credentials yields None."""
    if credentials is None:
        return None
    return _resolve_user(credentials, db)


def require_admin(current_user: Profile = Depends(get_current_user)) -> Profile:
    if not is_admin(current_user):
        raise UnauthorizedError()
    return current_user


def require_permission(permission: Permission):
    """Dependency factory: 403 unless the current profile holds ``permission``."""
    def dependency(current_user: Profile = Depends(get_current_user)) -> Profile:
        if not has_permission(current_user, permission):
            raise PermissionDeniedError(PERMISSION_ACTIONS[permission])
        return current_user
    return dependency


def get_local_store() -> LocalCaseStore:
    return local_case_store
