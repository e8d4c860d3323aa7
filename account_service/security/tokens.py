"""Signed session tokens carrying an authenticated account across requests."""

from __future__ import annotations

import time
from typing import Any

import jwt

from ..config import get_settings
from ..domain.sessions import Session


def issue_session_token(session: Session) -> tuple[str, int]:
    """Create a signed JWT for an established session.

    Parameters
    ----------
    session:
        Session returned by :meth:`SessionManager.establish`; its account must
        already be persisted.

    Returns
    -------
    tuple[str, int]
        The encoded JWT string and its TTL in seconds.
    """

    settings = get_settings()
    account = session.account
    if account.account_id is None:
        raise ValueError("cannot issue a session token for an unsaved account")
    now = int(time.time())
    expires_in = settings.session_ttl_seconds
    payload: dict[str, Any] = {
        "iss": settings.jwt_issuer,
        "sub": account.account_id,
        "username": account.username,
        "roles": sorted(account.roles),
        "iat": now,
        "exp": now + expires_in,
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm="HS256")
    return token, expires_in


def decode_session_token(token: str) -> dict[str, Any]:
    """Decode and verify a session token, returning its claims.

    Raises
    ------
    jwt.PyJWTError
        When the token is malformed, expired, or signed by another issuer.
    """

    settings = get_settings()
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=["HS256"],
        issuer=settings.jwt_issuer,
        options={"require": ["sub", "exp", "iss"]},
    )
