"""
Password hashing and JWT helpers.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification
"""

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from campus_portal.core.config import Settings

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@lru_cache()
def password_context(rounds: int) -> CryptContext:
    """Context hashing at the given bcrypt cost."""
    return pwd_context.copy(bcrypt__rounds=rounds)


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash password with bcrypt, at passlib's default cost unless rounds is given."""
    context = password_context(rounds) if rounds else pwd_context
    return context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, settings: Settings,
                        expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> Optional[dict]:
    """Decode and verify JWT token. Expired or tampered tokens give None."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
