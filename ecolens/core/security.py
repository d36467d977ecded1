from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union
from ecolens.core.config import settings
# Security libraries for hashing and JWT
from passlib.context import CryptContext
from jose import jwt, JWTError


# --- Password Hashing Setup ---
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verifies a plain-text password against a hashed one from the database."""
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    """Generates a secure hash for a plain-text password for storage."""
    return pwd_context.hash(password)

# --- Token (JWT) Management Setup ---

def create_access_token(
        subject: Union[str, Any],
        token_type: str = "user",
        expires_delta: Optional[timedelta] = None
) -> str:
    """
    Generates a JSON Web Token (JWT).

    Args:
        subject: The unique identifier (the User ID).
        token_type: Custom field checked when the token is decoded.
        expires_delta: How long the token should be valid.
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    expire = datetime.now(timezone.utc) + expires_delta

    to_encode = {"exp": expire, "sub": str(subject), "type": token_type}

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )

def decode_token(token: str) -> Optional[dict]:
    """Decodes and verifies a JWT token. Returns None if invalid or expired."""
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        return None
