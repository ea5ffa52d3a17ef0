"""
Admin endpoints: account approval and permission grants
"""
from typing import Any, List
import uuid

from fastapi import APIRouter, Body, Depends
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from casetrack.api.v1.deps import get_current_user, is_admin, require_admin, user_permissions
from casetrack.core.logger import logger
from casetrack.db.database import get_db
from casetrack.db.models import Permission, Profile, UserPermission
from casetrack.db.schemas import (
    ActionResult,
    AdminCheckResponse,
    PermissionGrant,
    ProfileOut,
    UserAccessUpdate,
)
from casetrack.utils.exceptions import InputRejectedError, UserNotFoundError

router = APIRouter()


def _profile_out(profile: Profile) -> ProfileOut:
    return ProfileOut(
        id=profile.id,
        email=profile.email,
        full_name=profile.full_name,
        role=profile.role.value if hasattr(profile.role, "value") else str(profile.role),
        is_enabled=bool(profile.is_enabled),
        is_admin=is_admin(profile),
        permissions=sorted(p.value for p in user_permissions(profile)),
        created_at=profile.created_at,
    )


def _get_profile(db: Session, user_id: uuid.UUID) -> Profile:
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if not profile:
        raise UserNotFoundError(str(user_id))
    return profile


def _parse_permission(value: str) -> Permission:
    try:
        return Permission(value)
    except ValueError:
        raise InputRejectedError(f"Unknown permission: {value}")


@router.get("/is-admin", response_model=AdminCheckResponse)
def check_is_admin(current_user: Profile = Depends(get_current_user)):
    return AdminCheckResponse(is_admin=is_admin(current_user))


@router.get("/users", response_model=List[ProfileOut])
def list_users(
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    profiles = db.query(Profile).order_by(Profile.created_at.desc()).all()
    return [_profile_out(p) for p in profiles]


@router.post("/update-user-access", response_model=ActionResult)
def update_user_access(
    payload: Any = Body(None),
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Enable or disable a profile.

    Body: ``{"userId": "<uuid>", "isEnabled": true}``
    """
    try:
        update = UserAccessUpdate.model_validate(payload)
    except ValidationError:
        raise InputRejectedError("Invalid payload. Expected userId and isEnabled.")

    profile = _get_profile(db, update.userId)
    profile.is_enabled = update.isEnabled
    db.commit()

    logger.info(
        "Admin %s set is_enabled=%s for user %s",
        admin.id, update.isEnabled, profile.id,
    )
    return ActionResult(success=True)


@router.post("/users/{user_id}/permissions", response_model=ProfileOut)
def grant_permission(
    user_id: uuid.UUID,
    grant: PermissionGrant,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    permission = _parse_permission(grant.permission)
    profile = _get_profile(db, user_id)

    if not any(p.permission == permission for p in profile.permissions):
        profile.permissions.append(UserPermission(permission=permission))
        try:
            db.commit()
        except IntegrityError:
            # granted concurrently
            db.rollback()
        db.refresh(profile)
        logger.info("Admin %s granted %s to user %s", admin.id, permission.value, profile.id)

    return _profile_out(profile)


@router.delete("/users/{user_id}/permissions/{permission}", response_model=ProfileOut)
def revoke_permission(
    user_id: uuid.UUID,
    permission: str,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    perm = _parse_permission(permission)
    profile = _get_profile(db, user_id)

    removed = (
        db.query(UserPermission)
        .filter(UserPermission.user_id == profile.id, UserPermission.permission == perm)
        .delete(synchronize_session=False)
    )
    db.commit()
    db.refresh(profile)
    if removed:
        logger.info("Admin %s revoked %s from user %s", admin.id, perm.value, profile.id)

    return _profile_out(profile)
