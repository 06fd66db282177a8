from typing import Optional

from fastapi import Cookie, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from lms.config import get_db, settings
from lms.models.models import User as DbUser
from lms.schemas.user_schemas import User
from lms.utils.jwt import verify_token


def get_user_by_email(email: str, db: Session) -> DbUser | None:
    return db.query(DbUser).filter(DbUser.email == email).first()


def get_current_user(access_token: Optional[str] = Cookie(None), db: Session = Depends(get_db)) -> User:
    if not access_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing token",
        )

    payload = verify_token(access_token)
    if payload.sub is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )
    user = get_user_by_email(payload.sub, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )
    return User(id=user.id, email=user.email, full_name=user.full_name, is_admin=bool(user.is_admin))


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin only")
    return current_user


def verify_webhook_secret(x_webhook_secret: Optional[str] = Header(None)) -> None:
    """Payment notifications carry a shared secret when WEBHOOK_SECRET is configured."""
    if settings.webhook_secret and x_webhook_secret != settings.webhook_secret:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook secret")
