"""Auth: staff login with security hardening.

SECURITY FEATURES:
- Password hashing with bcrypt
- httpOnly, Secure, SameSite cookies
- Token expiry of one shift (ACCESS_TOKEN_EXPIRE_MINUTES)
- Same error for unknown user and wrong password
"""
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from cannaclub.api.deps import get_db, get_current_user
from cannaclub.core.audit import AuditLog
from cannaclub.core.config import settings
from cannaclub.core.exceptions import BusinessError
from cannaclub.core.security import create_access_token
from cannaclub.db.session import atomic
from cannaclub.models.user import User
from cannaclub.schemas.user import UserLogin, UserResponse, Token
from cannaclub.services import user_service

router = APIRouter()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.post("/login", response_model=Token)
def login(data: UserLogin, request: Request, response: Response, db: Session = Depends(get_db)):
    """
    Login and set token in httpOnly cookie.

    The token is also returned in the body for API clients using the
    Authorization header.
    """
    with atomic(db):
        user = user_service.authenticate(db, data.username, data.password)

    if user is None:
        AuditLog.log_authentication("failed_login", data.username, _client_ip(request), False, reason="Invalid credentials")
        raise BusinessError.unauthorized(f"failed login for '{data.username}'")

    token = create_access_token(subject=str(user.id))

    # Set httpOnly cookie (SECURITY-CRITICAL)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,  # seconds
        secure=settings.SECURE_COOKIES,  # HTTPS only in production
        httponly=True,  # Prevent JavaScript access (XSS protection)
        samesite=settings.SAME_SITE_COOKIE,  # CSRF protection (strict)
    )
    AuditLog.log_authentication("login", user.username, _client_ip(request), True)
    return Token(access_token=token)


@router.post("/logout")
def logout(request: Request, response: Response, current_user: User = Depends(get_current_user)):
    """Logout by clearing the httpOnly cookie."""
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        secure=settings.SECURE_COOKIES,
        httponly=True,
        samesite=settings.SAME_SITE_COOKIE,
    )
    AuditLog.log_authentication("logout", current_user.username, _client_ip(request), True)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user."""
    return current_user
