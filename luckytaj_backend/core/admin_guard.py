from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Any, List
import os
import logging

from fastapi import Header, HTTPException, status
from jose import jwt, JWTError

JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
JWT_ALGO = os.getenv("JWT_ALGO", "HS256")
ADMIN_TOKEN_TTL_DAYS = int(os.getenv("ADMIN_TOKEN_TTL_DAYS", "7"))

log = logging.getLogger("core.admin_guard")


def admin_emails() -> List[str]:
    """ADMIN_EMAILS (comma separated) plus the legacy single ADMIN_EMAIL."""
    legacy = (os.getenv("ADMIN_EMAIL") or "").strip().lower()
    listed = [
        e.strip().lower()
        for e in os.getenv("ADMIN_EMAILS", "").split(",")
        if e.strip()
    ]
    return sorted({*listed, *([legacy] if legacy else [])})


def mint_admin_token(email: str, *, ttl: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    exp = now + (ttl if ttl is not None else timedelta(days=ADMIN_TOKEN_TTL_DAYS))
    payload = {
        "sub": email.strip().lower(),
        "scope": "admin",
        "aud": "admin",
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGO)


def _decode_token(token: str) -> dict:
    """
    Decode an admin JWT. Tokens minted here carry aud="admin"; tokens without
    an audience are accepted as well, anything else fails on the first decode.
    """
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGO], audience="admin")
    except JWTError as e_with_aud:
        try:
            return jwt.decode(
                token,
                JWT_SECRET,
                algorithms=[JWT_ALGO],
                options={"verify_aud": False},
            )
        except JWTError:
            raise e_with_aud


def _has_admin_scope(scope: Any) -> bool:
    # "admin", "user admin", "user,admin" or ["user", "admin"]
    if scope is None:
        return False
    if isinstance(scope, str):
        return "admin" in {p.lower() for p in scope.replace(",", " ").split()}
    if isinstance(scope, (list, tuple, set)):
        return any(str(p).lower() == "admin" for p in scope)
    return False


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


async def require_admin(
    x_auth_token: Optional[str] = Header(default=None, alias="X-Auth-Token"),
    authorization: Optional[str] = Header(default=None),
) -> str:
    """
    Gate for the dashboard endpoints. The token comes from either
    `X-Auth-Token: <jwt>` or `Authorization: Bearer <jwt>`.

    A token is admin when its scope contains "admin" or its sub/email is one
    of the configured admin emails. Returns the admin identity (email, else sub).
    """
    token = x_auth_token or _bearer(authorization)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin token required",
        )

    try:
        payload = _decode_token(token)
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid admin token: {e}",
        )

    sub = str(payload.get("sub") or "").lower()
    email = str(payload.get("email") or "").lower()
    if not sub and not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing subject/email",
        )

    allowed = admin_emails()
    if not (_has_admin_scope(payload.get("scope")) or sub in allowed or email in allowed):
        log.warning("rejected non-admin token for %s", email or sub)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not an admin token (scope/email mismatch)",
        )

    if payload.get("aud") not in (None, "admin"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid token audience",
        )

    return email or sub
