from typing import Optional

from fastapi import HTTPException, status
from jose import JWTError
from jose.jwt import decode

from lms.config import settings
from lms.schemas.auth_schemas import AuthTokenPayload


def verify_token(token: Optional[str]) -> AuthTokenPayload:
    """Decode an access token issued by the external auth service."""
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    try:
        payload = decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        return AuthTokenPayload(**payload)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
