"""
Superadmin endpoints: account management and test moderation.

Every route requires the SUPERADMIN role.
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.auth.dependencies import require_superadmin
from app.core.auth.security import hash_password
from app.core.db_error_handling import handle_db_error
from app.core.error_responses import ErrorMessages, raise_conflict, raise_not_found
from app.core.responses import success_response
from app.models import END_USER_ROLES, Test, User, UserRole, authored_content_count, get_db
from app.schemas.base import StatusUpdate
from app.schemas.superadmin import AccountCreate, AccountDetail, AccountSummary, AccountUpdate
from app.schemas.tests import TestResponse

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_superadmin)])


def _get_account_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise_not_found(ErrorMessages.user_id_not_found(user_id))
    return user


def _ensure_unique_identity(
    db: Session, username: str = None, email: str = None, exclude_user_id: int = None
) -> None:
    for column, value, message in (
        (User.username, username, ErrorMessages.USERNAME_TAKEN),
        (User.email, email, ErrorMessages.EMAIL_ALREADY_REGISTERED),
    ):
        if value is None:
            continue
        query = db.query(User.id).filter(column == value)
        if exclude_user_id is not None:
            query = query.filter(User.id != exclude_user_id)
        if query.first() is not None:
            raise_conflict(message)


def _list_by_roles(db: Session, *roles: UserRole):
    return db.query(User).filter(User.role.in_(roles)).order_by(User.id).all()


# ============================================================================
# Accounts
# ============================================================================


@router.get("/accounts/superadmins")
def list_superadmins(db: Session = Depends(get_db)):
    with handle_db_error(db, "list superadmin accounts"):
        users = _list_by_roles(db, UserRole.SUPERADMIN)
    return success_response(
        [AccountSummary.model_validate(u) for u in users],
        "SuperAdmin accounts retrieved successfully",
    )


@router.get("/accounts/admins")
def list_admins(db: Session = Depends(get_db)):
    with handle_db_error(db, "list admin accounts"):
        users = _list_by_roles(db, UserRole.ADMIN)
    return success_response(
        [AccountSummary.model_validate(u) for u in users],
        "Admin accounts retrieved successfully",
    )


@router.get("/accounts/users")
def list_end_users(db: Session = Depends(get_db)):
    """USER_SELF and USER_PARENT accounts, with their role."""
    with handle_db_error(db, "list user accounts"):
        users = _list_by_roles(db, *END_USER_ROLES)
    return success_response(
        [AccountDetail.model_validate(u) for u in users],
        "User accounts retrieved successfully",
    )


@router.post("/accounts", status_code=status.HTTP_201_CREATED)
def create_account(account: AccountCreate, db: Session = Depends(get_db)):
    """
    Create an account with any role.

    Raises:
        HTTPException: 409 if the username or email is already in use
    """
    with handle_db_error(db, "create account"):
        _ensure_unique_identity(db, account.username, account.email)

        data = account.model_dump(exclude={"password"}, exclude_none=True)
        user = User(**data, password_hash=hash_password(account.password))
        db.add(user)
        db.commit()
        db.refresh(user)

    logger.info(f"Superadmin created {user.role.value} account {user.id}")
    return success_response(
        AccountDetail.model_validate(user),
        "User created successfully",
        status.HTTP_201_CREATED,
    )


@router.get("/accounts/{user_id}")
def get_account(user_id: int, db: Session = Depends(get_db)):
    with handle_db_error(db, "get account"):
        user = _get_account_or_404(db, user_id)
    return success_response(
        AccountDetail.model_validate(user), f"Get user account by ID: {user_id}"
    )


@router.put("/accounts/{user_id}")
def update_account(user_id: int, update: AccountUpdate, db: Session = Depends(get_db)):
    """
    Partially update an account.

    A supplied password is re-hashed; a new username or email is checked for
    uniqueness against the other accounts.
    """
    changes = update.model_dump(exclude_none=True)

    with handle_db_error(db, "update account"):
        user = _get_account_or_404(db, user_id)
        _ensure_unique_identity(
            db, changes.get("username"), changes.get("email"), exclude_user_id=user.id
        )

        password = changes.pop("password", None)
        if password:
            user.password_hash = hash_password(password)
        for field, value in changes.items():
            setattr(user, field, value)
        db.commit()
        db.refresh(user)

    return success_response(
        AccountDetail.model_validate(user),
        f"User account with ID {user_id} updated successfully",
    )


@router.delete("/accounts/{user_id}")
def delete_account(user_id: int, db: Session = Depends(get_db)):
    with handle_db_error(db, "delete account"):
        user = _get_account_or_404(db, user_id)
        if authored_content_count(db, user.id):
            raise_conflict(ErrorMessages.ACCOUNT_HAS_CONTENT)
        db.delete(user)
        db.commit()

    logger.info(f"Superadmin deleted account {user_id}")
    return success_response(message=f"User account with ID {user_id} deleted successfully")


# ============================================================================
# Test moderation
# ============================================================================


@router.put("/tests/{test_id}/status")
def update_test_status(test_id: int, body: StatusUpdate, db: Session = Depends(get_db)):
    """Approve, reject or reset a test to pending."""
    with handle_db_error(db, "update test status"):
        test = db.query(Test).filter(Test.id == test_id).first()
        if test is None:
            raise_not_found(ErrorMessages.TEST_NOT_FOUND)
        test.status = body.status
        db.commit()
        db.refresh(test)

    logger.info(f"Test {test_id} status set to {body.status.value}")
    return success_response(
        TestResponse.model_validate(test), f"Test status updated to {body.status.value}"
    )


@router.delete("/tests/{test_id}")
def delete_test(test_id: int, db: Session = Depends(get_db)):
    """Delete a test with its results, question order, questions and subskala."""
    with handle_db_error(db, "delete test"):
        test = db.query(Test).filter(Test.id == test_id).first()
        if test is None:
            raise_not_found(ErrorMessages.TEST_NOT_FOUND)
        db.delete(test)
        db.commit()

    logger.info(f"Test {test_id} deleted with all related data")
    return success_response(
        message=f"Test with ID {test_id} and all related data deleted successfully"
    )
