"""Session identity for the API: HMAC-signed tokens and the user dependency.

Sign-up and login happen elsewhere; this service only needs to know which
user a request belongs to.  A session token looks like::

    {user_id}.{issued_at}.{signature}

where ``signature`` is HMAC-SHA256(secret, "{user_id}.{issued_at}") in hex
and ``issued_at`` is UTC epoch seconds.  The token is read from the
``pagestash_session`` cookie or an ``Authorization: Bearer`` header.

Development mode: when ``SESSION_SECRET`` is empty, no token is checked
and the ``X-User-Id`` header is trusted as-is.
"""

from __future__ import annotations

import hashlib
import hmac
import time
from typing import Annotated

from fastapi import Depends, Request
from starlette.requests import HTTPConnection

from pagestash.config.settings import Settings
from pagestash.utils.errors import AuthenticationError

COOKIE_NAME = "pagestash_session"
DEV_USER_HEADER = "X-User-Id"


def _sign(secret: str, payload: str) -> str:
    return hmac.new(
        secret.encode("utf-8"),
        payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def create_session_token(user_id: str, secret: str, issued_at: int | None = None) -> str:
    """Mint a signed session token for *user_id*.

    Parameters
    ----------
    user_id:
        Owning user id.  May contain dots; it must not be empty.
    secret:
        The server's ``SESSION_SECRET``.
    issued_at:
        Epoch seconds to stamp the token with (defaults to now).
    """
    if not user_id:
        raise ValueError("user_id must not be empty")
    if not secret:
        raise ValueError("a session secret is required to sign tokens")
    stamp = str(int(time.time()) if issued_at is None else issued_at)
    payload = f"{user_id}.{stamp}"
    return f"{payload}.{_sign(secret, payload)}"


def validate_session_token(token: str, secret: str, ttl_hours: int = 168) -> str | None:
    """Return the user id carried by a valid, unexpired token, else ``None``."""
    if not token or not secret:
        return None

    parts = token.rsplit(".", 2)
    if len(parts) != 3:
        return None
    user_id, stamp, provided = parts
    if not user_id:
        return None

    try:
        issued_at = int(stamp)
    except ValueError:
        return None

    if time.time() - issued_at > ttl_hours * 3600:
        return None

    expected = _sign(secret, f"{user_id}.{stamp}")
    if not hmac.compare_digest(provided, expected):
        return None
    return user_id


def _extract_token(conn: HTTPConnection) -> str:
    auth_header = conn.headers.get("authorization", "")
    scheme, _, value = auth_header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    # Browsers cannot set headers on WebSocket upgrades.
    query_token = conn.query_params.get("token")
    if query_token:
        return query_token
    return conn.cookies.get(COOKIE_NAME, "")


def resolve_user_id(conn: HTTPConnection, settings: Settings) -> str:
    """Return the requesting user's id or raise :class:`AuthenticationError`."""
    if not settings.session_secret:
        user_id = conn.headers.get(DEV_USER_HEADER, "").strip()
        if not user_id:
            raise AuthenticationError(f"Missing {DEV_USER_HEADER} header")
        return user_id

    token = _extract_token(conn)
    if not token:
        raise AuthenticationError()
    user_id = validate_session_token(token, settings.session_secret, settings.session_ttl_hours)
    if user_id is None:
        raise AuthenticationError("Invalid or expired session token")
    return user_id


def get_current_user(request: Request) -> str:
    """FastAPI dependency: the authenticated user's id."""
    return resolve_user_id(request, request.app.state.settings)


CurrentUser = Annotated[str, Depends(get_current_user)]
