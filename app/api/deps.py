"""
API Dependencies Module

FastAPI dependencies that resolve the calling user and enforce roles.

Tokens are accepted from the Authorization header (API clients) or from the
HTTP-only ``access_token`` cookie set at login (browser clients). Deactivated
accounts are refused on every request, even while their token is still valid.
"""
from typing import List, Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from pydantic import ValidationError
from sqlmodel import Session, select

from app.core.config import settings
from app.db.session import get_db
from app.models.user import User, UserRole
from app.schemas.auth import TokenData

# auto_error=False so the cookie can be checked when the header is missing
reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/auth/login",
    auto_error=False,
)


def _cookie_token(request: Request) -> Optional[str]:
    # Cookie value is "Bearer <token>"
    raw = request.cookies.get("access_token")
    if raw and raw.startswith("Bearer "):
        return raw[len("Bearer "):]
    return raw


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    token: Optional[str] = Depends(reusable_oauth2),
) -> User:
    """
    Resolve the user behind the request's JWT.

    Raises:
        HTTPException 401: No token in header or cookie
        HTTPException 403: Token invalid or expired
        HTTPException 404: Token subject no longer exists
    """
    token = token or _cookie_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        token_data = TokenData(email=payload.get("sub"))
    except (JWTError, ValidationError):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Could not validate credentials",
        )

    user = db.exec(select(User).where(User.email == token_data.email)).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Akun tidak aktif. Hubungi administrator.",
        )
    return current_user


class RoleChecker:
    """
    Dependency requiring at least one of the given roles.

    Usage: Depends(RoleChecker([UserRole.CONTROLLER, UserRole.ADMIN]))
    """
    def __init__(self, allowed_roles: List[UserRole]):
        self.allowed_roles = allowed_roles

    def __call__(self, current_user: User = Depends(get_current_active_user)) -> User:
        if not any(role in current_user.roles for role in self.allowed_roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"The user does not have enough privileges. Required roles: {[r.value for r in self.allowed_roles]}",
            )
        return current_user


# Owners only read; project writes need a controller or an admin
require_project_editor = RoleChecker([UserRole.CONTROLLER, UserRole.ADMIN])


def get_current_active_superuser(
    current_user: User = Depends(get_current_active_user),
) -> User:
    if not current_user.is_privileged:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="The user doesn't have enough privileges",
        )
    return current_user
