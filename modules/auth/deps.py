"""
Auth Module - Dependencies
===========================
FastAPI dependencies for user authentication and authorization.
These are injected into route handlers via Depends().

The token is read from the `Authorization: Bearer` header first,
then from the auth_token cookie. Payload `sub` carries the user id.
"""

from fastapi import Request, Depends, HTTPException, status
from sqlalchemy.orm import Session

from config.database import get_db
from config.settings import AUTH_COOKIE_NAME
from common.helpers import safe_int
from common.security import decode_token
from modules.user.models import User


def _extract_token(request: Request):
    header = request.headers.get("Authorization")
    if header and header.lower().startswith("bearer "):
        return header[7:].strip()
    return request.cookies.get(AUTH_COOKIE_NAME)


def get_current_user(request: Request, db: Session = Depends(get_db)):
    """
    Identify the current user from the bearer token or auth cookie.
    Returns User object or None.
    """
    token = _extract_token(request)
    if not token:
        return None

    payload = decode_token(token)
    if not payload:
        return None

    user_id = safe_int(payload.get("sub"))
    if not user_id:
        return None

    return db.query(User).filter(User.id == user_id, User.is_active == True).first()


def require_login(user=Depends(get_current_user)):
    """Require any authenticated active user. Raises 401 if not logged in."""
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authorized, please log in")
    return user


def require_admin(user=Depends(require_login)):
    """Only allow admin users. Raises 403 otherwise."""
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
