import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple
from jose import JWTError, jwt
from werkzeug.security import generate_password_hash, check_password_hash
from remie.core.config import get_settings

settings = get_settings()


def hash_password(password: str) -> str:
    """
    Hash a plain password for storage.
    """
    return generate_password_hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """
    Check a plain password against a stored hash.
    """
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.
    :param data: Dictionary containing the claims to encode (user_id, email, role)
    :param expires_delta: Optional custom expiration time
    :return: Encoded JWT token as a string
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire, "type": "access"})

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )


def decode_access_token(token: str) -> Optional[dict]:
    """
    Decode and verify a JWT access token.

    :param token: JWT token string
    :return: Decoded token payload if valid, None if invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        return None

    if payload.get("type") != "access":
        return None
    return payload


def create_refresh_token(user_id: str) -> str:
    """
    Create a long-lived refresh token, signed with its own secret.
    """
    expire = datetime.utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    payload = {
        "user_id": user_id,
        "exp": expire,
        "type": "refresh",
        # Makes tokens issued within the same second distinct
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(payload, settings.refresh_secret, algorithm=settings.ALGORITHM)


def decode_refresh_token(token: str) -> Optional[dict]:
    try:
        payload = jwt.decode(
            token,
            settings.refresh_secret,
            algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        return None

    if payload.get("type") != "refresh":
        return None
    return payload


def hash_token(token: str) -> str:
    """
    SHA256 of a one-time token, the form in which reset tokens are stored.
    """
    return hashlib.sha256(token.encode()).hexdigest()


def generate_reset_token() -> Tuple[str, str]:
    """
    Generate a password reset token.

    :return: Tuple of (plain token for the email link, hash to store)
    """
    token = secrets.token_hex(32)
    return token, hash_token(token)
