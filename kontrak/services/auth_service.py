from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional

import bcrypt
import jwt
from werkzeug.security import check_password_hash, generate_password_hash

TOKEN_ALGORITHM = "HS256"

# Admin documents seeded before the werkzeug format hold bcrypt hashes.
BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


class TokenError(ValueError):
    """Raised when a bearer token is expired, malformed or signed with another key."""


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, stored: str) -> bool:
    """
    Check `password` against a stored hash in either the werkzeug
    `method$salt$hash` format or bcrypt's `$2b$` format. Unknown or
    corrupt hashes never match.
    """
    if not password or not stored:
        return False
    try:
        if stored.startswith(BCRYPT_PREFIXES):
            return bcrypt.checkpw(password.encode("utf-8"), stored.encode("utf-8"))
        return check_password_hash(stored, password)
    except ValueError:
        return False


def issue_token(
    claims: Mapping[str, Any],
    *,
    secret: str,
    ttl: timedelta,
    now: Optional[datetime] = None,
) -> str:
    now = now or datetime.now(timezone.utc)
    payload: Dict[str, Any] = dict(claims)
    payload["iat"] = now
    payload["exp"] = now + ttl
    return jwt.encode(payload, secret, algorithm=TOKEN_ALGORITHM)


def decode_token(token: str, *, secret: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, secret, algorithms=[TOKEN_ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise TokenError("Token has expired") from e
    except jwt.InvalidTokenError as e:
        raise TokenError("Token is invalid") from e


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """
    Pull the token out of an `Authorization: Bearer <token>` header.
    Returns None when there is nothing usable.
    """
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    token = parts[1].strip()
    return token or None
