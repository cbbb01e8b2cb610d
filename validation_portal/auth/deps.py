from fastapi import Request, Depends, HTTPException
from sqlalchemy.orm import Session
from validation_portal.db.session import get_db
from validation_portal.core.security import read_token
from validation_portal.db.models.user import User
from validation_portal.services.access import Principal

# Browser clients send the token as a cookie, API clients as a bearer header.
SESSION_COOKIE = "sid"


def _token_from_request(request: Request) -> str | None:
    auth = request.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return request.cookies.get(SESSION_COOKIE)


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    token = _token_from_request(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    user_id = read_token(token)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Unknown or disabled user")
    return user


def get_current_principal(user: User = Depends(get_current_user)) -> Principal:
    return Principal.from_user(user)
