from jose import JWTError, jwt
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
import hashlib

from radsim.core import config


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
    minutes: Optional[int] = None
) -> str:
    """
    Signs an access token.
    Priority: expires_delta > minutes > ACCESS_TOKEN_EXPIRE_MINUTES.
    """
    to_encode = data.copy()

    if expires_delta is not None:
        expire = datetime.now(timezone.utc) + expires_delta
    elif minutes is not None:
        expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def verify_access_token(token: str) -> Optional[Dict]:
    try:
        payload = jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        return None
    return payload if payload.get("type") == "access" else None


def create_refresh_token(data: Dict, days: int = config.REFRESH_TOKEN_EXPIRE_DAYS) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(days=days)
    to_encode.update({"exp": expire, "type": "refresh"})
    return jwt.encode(to_encode, config.JWT_REFRESH_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def verify_refresh_token(token: str) -> Optional[Dict]:
    try:
        payload = jwt.decode(token, config.JWT_REFRESH_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        return None
    return payload if payload.get("type") == "refresh" else None


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
