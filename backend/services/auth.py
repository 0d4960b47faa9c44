"""
LeadsFlow CRM - Password hashing and session tokens

Passwords: bcrypt. Tokens: HS256 JWT signed with the jwtSecret generated by
the setup wizard, so every token issued before a re-setup becomes invalid.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import bcrypt
import jwt

from config import JWT_ALGORITHM, JWT_EXPIRES_DAYS

logger = logging.getLogger("auth")


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(10)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not plain_password or not hashed_password:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError as e:
        # Stored value is not a bcrypt hash
        logger.error(f"Password verification failed: {e}")
        return False


def create_token(user: Dict, secret: str, expires_days: int = JWT_EXPIRES_DAYS) -> str:
    payload = {
        "id": user["id"],
        "username": user.get("username", ""),
        "role": user.get("role", "sales"),
        "exp": datetime.now(timezone.utc) + timedelta(days=expires_days),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_token(token: str, secret: str) -> Optional[Dict]:
    """Payload of a valid token, None when expired, forged or malformed."""
    if not secret:
        return None
    try:
        return jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError:
        return None


def generate_verification_code() -> str:
    """6-digit one-time code"""
    return f"{secrets.randbelow(1_000_000):06d}"


def public_user(user: Dict) -> Dict:
    """User document without the password hash or Mongo _id"""
    return {k: v for k, v in user.items() if k not in ("password", "_id")}
