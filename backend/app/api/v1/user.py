"""
Profile endpoints for the authenticated end user.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.auth.dependencies import get_current_user
from app.core.auth.security import hash_password, verify_password
from app.core.db_error_handling import handle_db_error
from app.core.error_responses import (
    ErrorMessages,
    raise_bad_request,
    raise_conflict,
    raise_forbidden,
    raise_unauthorized,
    raise_validation_error,
)
from app.core.responses import success_response
from app.models import User, authored_content_count, get_db
from app.schemas.auth import UserResponse
from app.schemas.users import ChangePasswordRequest, CheckPasswordRequest, UserUpdate

logger = logging.getLogger(__name__)

router = APIRouter()

# Field -> message for profile uniqueness conflicts
_UNIQUE_FIELDS = (
    ("username", ErrorMessages.USERNAME_EXISTS),
    ("email", ErrorMessages.EMAIL_EXISTS),
    ("phone_number", ErrorMessages.PHONE_EXISTS),
)


def _ensure_self(current_user: User, user_uuid: str) -> None:
    if current_user.uuid != user_uuid:
        raise_forbidden(ErrorMessages.ACCESS_DENIED)


@router.get("/{user_uuid}")
def get_profile(user_uuid: str, current_user: User = Depends(get_current_user)):
    """Return the caller's own profile."""
    _ensure_self(current_user, user_uuid)
    return success_response(
        UserResponse.from_user(current_user), "Account retrieved successfully"
    )


@router.put("/{user_uuid}")
def update_profile(
    user_uuid: str,
    update: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Partially update the caller's profile.

    Raises:
        HTTPException: 403 for another user's uuid, 409 when the new
            username, email or phone number belongs to someone else
    """
    _ensure_self(current_user, user_uuid)
    changes = update.model_dump(exclude_none=True)

    with handle_db_error(db, "update profile"):
        for field, message in _UNIQUE_FIELDS:
            value = changes.get(field)
            if value is None or value == getattr(current_user, field):
                continue
            taken = (
                db.query(User.id)
                .filter(getattr(User, field) == value, User.id != current_user.id)
                .first()
            )
            if taken is not None:
                raise_conflict(message)

        for field, value in changes.items():
            setattr(current_user, field, value)
        db.commit()
        db.refresh(current_user)

    return success_response(
        UserResponse.from_user(current_user), "Account updated successfully"
    )


@router.delete("/{user_uuid}")
def delete_account(
    user_uuid: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete the caller's account together with their test results."""
    _ensure_self(current_user, user_uuid)

    with handle_db_error(db, "delete account"):
        if authored_content_count(db, current_user.id):
            raise_conflict(ErrorMessages.ACCOUNT_HAS_CONTENT)
        # test_results and their rows cascade through the ORM relationships
        db.delete(current_user)
        db.commit()

    logger.info(f"Deleted account {user_uuid}")
    return success_response(message="Account deleted successfully")


@router.post("/check-password")
def check_password(
    body: CheckPasswordRequest, current_user: User = Depends(get_current_user)
):
    """Confirm the caller's current password before sensitive changes."""
    if not verify_password(body.old_password, current_user.password_hash):
        raise_unauthorized(ErrorMessages.INVALID_PASSWORD, include_www_authenticate=False)
    return success_response({"isValid": True}, "Password verification complete")


@router.post("/change-password")
def change_password(
    body: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Replace the caller's password.

    Raises:
        HTTPException: 422 if the confirmation differs, 400 if the current
            password is wrong
    """
    if body.new_password != body.confirm_password:
        raise_validation_error(ErrorMessages.PASSWORDS_DO_NOT_MATCH)
    if not verify_password(body.old_password, current_user.password_hash):
        raise_bad_request(ErrorMessages.CURRENT_PASSWORD_INCORRECT)

    with handle_db_error(db, "change password"):
        current_user.password_hash = hash_password(body.new_password)
        db.commit()

    logger.info(f"Password changed for user {current_user.uuid}")
    return success_response(message="Password changed successfully")
