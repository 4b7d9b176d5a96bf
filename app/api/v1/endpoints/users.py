"""
User Management Endpoints Module

Administrators manage dashboard accounts here: owners (read-only), controllers
bound to a PLANNING or DEPLOYMENT division, and other admins. Every user can
read and edit their own profile through the /me endpoints, and administrators
can sweep out accounts that have stopped logging in.
"""
import logging
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, col, select
from app.api import deps
from app.core.security import get_password_hash
from app.db.session import get_db
from app.models.user import User, UserRole
from app.schemas.user import DeactivationResult, UserCreate, UserRead, UserUpdate, UserUpdateMe
from app.services.accounts import deactivate_inactive_users

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_user_or_404(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _ensure_email_available(db: Session, email: str) -> None:
    if db.exec(select(User).where(User.email == email)).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Email {email} sudah terdaftar",
        )


@router.get("", response_model=List[UserRead])
def read_users(
    db: Session = Depends(get_db),
    skip: int = 0,
    limit: int = 100,
    division: Optional[str] = None,
    is_active: Optional[bool] = None,
    current_user: User = Depends(deps.get_current_active_superuser),
) -> Any:
    """
    List accounts, optionally filtered by division or activation state.

    Args:
        skip: Number of records to skip (for pagination)
        limit: Maximum number of records to return
        division: Only users of this division (PLANNING, DEPLOYMENT, ADMIN)
        is_active: Only active (true) or deactivated (false) users
        current_user: Must be an admin (enforced by dependency)

    Returns:
        List[UserRead]: Matching users, passwords excluded
    """
    statement = select(User)
    if division:
        statement = statement.where(User.division == division.strip().upper())
    if is_active is not None:
        statement = statement.where(User.is_active == is_active)
    statement = statement.order_by(col(User.email)).offset(skip).limit(limit)
    return db.exec(statement).all()


@router.post("", response_model=UserRead)
def create_user(
    *,
    db: Session = Depends(get_db),
    user_in: UserCreate,
    current_user: User = Depends(deps.get_current_active_superuser),
) -> Any:
    """
    Register a new account.

    Accounts without explicit roles become read-only owners.

    Raises:
        HTTPException 400: If the email is already registered
    """
    _ensure_email_available(db, user_in.email)

    db_user = User(
        email=user_in.email,
        password=get_password_hash(user_in.password),
        full_name=user_in.full_name,
        roles=[role.value for role in (user_in.roles or [UserRole.OWNER])],
        division=user_in.division,
        position=user_in.position,
        is_active=True if user_in.is_active is None else user_in.is_active,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    logger.info("User %s created by %s (roles: %s)", db_user.email, current_user.email, db_user.roles)
    return db_user


@router.get("/me", response_model=UserRead)
def read_user_me(
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    """Profile of the logged-in user."""
    return current_user


@router.put("/me", response_model=UserRead)
def update_user_me(
    *,
    db: Session = Depends(get_db),
    user_in: UserUpdateMe,
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    """
    Update the logged-in user's name, email or password.

    Roles, division and activation can only be changed by an administrator.

    Raises:
        HTTPException 400: If the new email belongs to another account
    """
    if user_in.email is not None and user_in.email != current_user.email:
        _ensure_email_available(db, user_in.email)
        current_user.email = user_in.email
    if user_in.full_name is not None:
        current_user.full_name = user_in.full_name
    if user_in.password is not None:
        current_user.password = get_password_hash(user_in.password)

    db.add(current_user)
    db.commit()
    db.refresh(current_user)
    return current_user


@router.post("/deactivate-inactive", response_model=DeactivationResult)
def deactivate_inactive(
    *,
    db: Session = Depends(get_db),
    days: Optional[int] = None,
    current_user: User = Depends(deps.get_current_active_superuser),
) -> Any:
    """
    Deactivate non-admin accounts whose last login is older than `days`.

    Defaults to the INACTIVE_USER_DAYS setting. Accounts that never logged in
    are not touched.
    """
    users, threshold = deactivate_inactive_users(db, days=days)
    return DeactivationResult(
        deactivated_count=len(users),
        threshold=threshold,
        emails=[user.email for user in users],
    )


@router.get("/{user_id}", response_model=UserRead)
def read_user_by_id(
    user_id: str,
    current_user: User = Depends(deps.get_current_active_user),
    db: Session = Depends(get_db),
) -> Any:
    """
    Get a user by ID. Non-admins may only look themselves up.

    Raises:
        HTTPException 403: If a non-admin asks for someone else
        HTTPException 404: If the user doesn't exist
    """
    if user_id != current_user.id and not current_user.is_privileged:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="The user doesn't have enough privileges",
        )
    return _get_user_or_404(db, user_id)


@router.put("/{user_id}", response_model=UserRead)
def update_user(
    *,
    db: Session = Depends(get_db),
    user_id: str,
    user_in: UserUpdate,
    current_user: User = Depends(deps.get_current_active_superuser),
) -> Any:
    """
    Update any account, including roles, division, position and activation.

    Only the submitted fields change; a new password is hashed before storage.

    Raises:
        HTTPException 404: If the user doesn't exist
        HTTPException 400: If the email is taken or an admin deactivates themselves
    """
    db_user = _get_user_or_404(db, user_id)
    update_data = user_in.model_dump(exclude_unset=True)

    if update_data.get("is_active") is False and db_user.id == current_user.id:
        raise HTTPException(status_code=400, detail="Users cannot deactivate themselves")
    if update_data.get("email") and update_data["email"] != db_user.email:
        _ensure_email_available(db, update_data["email"])
    password = update_data.pop("password", None)
    if password:
        update_data["password"] = get_password_hash(password)
    if update_data.get("roles") is not None:
        update_data["roles"] = [role.value for role in update_data["roles"]]

    for field, value in update_data.items():
        setattr(db_user, field, value)

    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    logger.info("User %s updated by %s (%s)", db_user.email, current_user.email, ", ".join(update_data))
    return db_user


@router.delete("/{user_id}", response_model=UserRead)
def delete_user(
    *,
    db: Session = Depends(get_db),
    user_id: str,
    current_user: User = Depends(deps.get_current_active_superuser),
) -> Any:
    """
    Delete an account. Administrators cannot delete themselves; deactivating
    is preferred for users who created projects.

    Raises:
        HTTPException 404: If the user doesn't exist
        HTTPException 400: If trying to delete yourself
    """
    user = _get_user_or_404(db, user_id)
    if user.id == current_user.id:
        raise HTTPException(status_code=400, detail="Users cannot delete themselves")

    # Snapshot before the row disappears
    deleted = UserRead.model_validate(user)
    db.delete(user)
    db.commit()
    logger.info("User %s deleted by %s", deleted.email, current_user.email)
    return deleted
