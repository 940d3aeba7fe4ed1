"""
Owner context from the auth provider's token, and the cron bearer check
"""
import hmac
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from . import config, models
from .database import get_db

ACCESS_TOKEN_EXPIRE_DAYS = 30

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class OwnerContext:
    """Authenticated owner of one salon, passed explicitly to every service call"""
    user_id: str
    salon_id: int
    salon_name: str


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT the same way the auth provider does (used by tooling and tests)"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_owner_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> OwnerContext:
    """Resolve the bearer token to the salon its owner manages"""
    if credentials is None:
        raise _unauthorized()

    try:
        payload = jwt.decode(credentials.credentials, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        raise _unauthorized()

    user_id = payload.get("sub")
    salon_id = payload.get("salon_id")
    if user_id is None or salon_id is None:
        raise _unauthorized()

    salon = db.query(models.Salon).filter(
        models.Salon.id == int(salon_id),
        models.Salon.owner_id == str(user_id),
    ).first()
    if salon is None:
        raise _unauthorized()

    return OwnerContext(user_id=str(user_id), salon_id=salon.id, salon_name=salon.name)


def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """Gate for the scheduler-triggered endpoints"""
    expected = f"Bearer {config.CRON_SECRET}" if config.CRON_SECRET else None
    if not expected or not authorization:
        raise _unauthorized()
    if not hmac.compare_digest(authorization.encode("utf-8"), expected.encode("utf-8")):
        raise _unauthorized()
