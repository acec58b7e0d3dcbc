# crowdsafe/api/deps.py
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from crowdsafe.core.config import settings
from crowdsafe.db.session import get_db  # noqa: F401
from crowdsafe.features.lifecycle.schemas import TokenPayload

# Tokens are issued elsewhere on the platform; tokenUrl is only for the OpenAPI docs.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")
oauth2_scheme_optional = OAuth2PasswordBearer(tokenUrl="token", auto_error=False)


def _decode(token: str) -> TokenPayload:
    payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    return TokenPayload(**payload)


def get_current_user(token: str = Depends(oauth2_scheme)) -> TokenPayload:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        return _decode(token)
    except (JWTError, ValueError):
        # Catches any error from jose or Pydantic validation
        raise credentials_exception


def get_current_user_optional(
    token: Optional[str] = Depends(oauth2_scheme_optional),
) -> Optional[TokenPayload]:
    """Anonymous callers get None; so do callers with an invalid token."""
    if token is None:
        return None
    try:
        return _decode(token)
    except (JWTError, ValueError):
        return None
