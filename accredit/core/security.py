"""
Credentials and access tokens.

Account passwords and one-time verification codes are hashed with the same
passlib context, so a leaked staging table reveals no usable codes. Access
tokens carry the account id and role.
"""
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt, JWTError
from passlib.context import CryptContext
from .config import settings

ACCESS_TOKEN_TYPE = "access"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def generate_password() -> str:
    """Initial password mailed to a provisioned account."""
    return secrets.token_hex(settings.GENERATED_PASSWORD_BYTES)


def generate_otp() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def hash_otp(otp: str) -> str:
    return pwd_context.hash(otp)


def verify_otp(otp: str, otp_hash: str) -> bool:
    return pwd_context.verify(otp, otp_hash)


def create_access_token(
    user_id: str,
    role: Optional[str] = None,
    expires_delta: Optional[timedelta] = None
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {
        "sub": str(user_id),
        "iat": now,
        "exp": expire,
        "type": ACCESS_TOKEN_TYPE,
    }
    if role:
        claims["role"] = role
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Claims of a valid, unexpired access token, or None."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if claims.get("type") != ACCESS_TOKEN_TYPE or not claims.get("sub"):
        return None
    return claims
