"""
Authentication Endpoints Module

This module provides the login and logout endpoints. Accounts are created by
administrators through the user management endpoints, so there is no public
registration. The system supports both JWT bearer token authentication and
HTTP-only cookie-based authentication for browser clients.
"""
import logging
from datetime import datetime, timedelta, timezone
from fastapi import APIRouter, Depends, HTTPException, status, Response
from fastapi.responses import RedirectResponse
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session, select
from app.db.session import get_db
from app.models.user import User
from app.core.security import verify_password, create_access_token
from app.core.config import settings
from app.schemas.auth import Token

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/login", response_model=Token)
def login(response: Response, db: Session = Depends(get_db), form_data: OAuth2PasswordRequestForm = Depends()):
    """
    Authenticate a user and issue an access token.

    Validates the user's credentials and returns a JWT access token. The token is also
    set as an HTTP-only cookie for browser clients. Successful logins refresh
    ``last_login``, which the inactivity job relies on.

    Note: OAuth2PasswordRequestForm uses 'username' field, but we treat it as email.

    Raises:
        HTTPException 401: If credentials are invalid
        HTTPException 403: If the account has been deactivated
    """
    # Look up user by email (form_data.username contains the email)
    user = db.exec(select(User).where(User.email == form_data.username)).first()

    # Verify user exists and password is correct
    if not user or not verify_password(form_data.password, user.password):
        logger.info("Failed login for %s", form_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Akun tidak aktif. Hubungi administrator.",
        )

    user.last_login = datetime.now(timezone.utc).isoformat()
    db.add(user)
    db.commit()

    # Generate JWT access token with configurable expiration
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        subject=user.email, expires_delta=access_token_expires
    )

    # Set HTTP-only cookie for browser-based authentication
    response.set_cookie(
        key="access_token",
        value=f"Bearer {access_token}",
        httponly=True,  # Cannot be accessed via JavaScript
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,  # Convert minutes to seconds
        samesite="lax"  # CSRF protection
    )

    return {"access_token": access_token, "token_type": "bearer"}

@router.get("/logout")
def logout():
    """
    Log out the current user by clearing their authentication cookie.

    API clients can simply discard their token.
    """
    response = RedirectResponse(url="/login")
    response.delete_cookie("access_token")
    return response
