"""Application session — auth token lifecycle.

An AppSession is created once at startup, hydrated from the local store,
and passed explicitly to anything that talks to the MFI API. Logging out
clears both the in-memory state and the persisted token.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import os
from datetime import datetime, timezone
from typing import Optional

from .db import delete_login, load_login, save_login

logger = logging.getLogger(__name__)

DEFAULT_SESSION_KEY = "default"


def decode_jwt_payload(token: str) -> Optional[dict]:
    """Decode the payload segment of a JWT without verifying it.

    Returns None when the token is not shaped like a JWT or the payload is
    not valid base64url-encoded JSON.
    """
    parts = token.split(".")
    if len(parts) != 3:
        return None
    segment = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(segment))
    except (binascii.Error, ValueError):
        return None
    return payload if isinstance(payload, dict) else None


def is_token_expired(token: str, now: Optional[datetime] = None) -> bool:
    """True for a JWT whose ``exp`` claim has passed. Opaque tokens never expire here."""
    payload = decode_jwt_payload(token)
    if not payload or "exp" not in payload:
        return False
    try:
        expires_at = datetime.fromtimestamp(float(payload["exp"]), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return False
    now = now or datetime.now(timezone.utc)
    return now >= expires_at


class AppSession:
    """Explicit authentication state for one user of the MFI API."""

    def __init__(self, key: str = DEFAULT_SESSION_KEY):
        self.key = key
        self.token: Optional[str] = None
        self.user: Optional[dict] = None

    @property
    def authenticated(self) -> bool:
        return self.token is not None

    def authorization_headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    async def hydrate(self) -> bool:
        """Restore the session from the local store, falling back to MFI_API_TOKEN.

        An expired JWT is discarded (and removed from the store) instead of
        being restored. Returns whether the session ended up authenticated.
        """
        stored = await load_login(self.key)
        token, user = stored if stored else (os.environ.get("MFI_API_TOKEN") or None, None)

        if token and is_token_expired(token):
            logger.info("Stored token for session '%s' has expired, discarding", self.key)
            await self.logout()
            return False

        self.token = token
        self.user = user
        if token:
            logger.info("Session '%s' hydrated (%s)", self.key, "stored token" if stored else "environment token")
        return self.authenticated

    async def login(self, token: str, user: Optional[dict] = None) -> None:
        """Adopt and persist a new token.

        Raises:
            ValueError: if the token is empty or an already-expired JWT.
        """
        if not token:
            raise ValueError("A non-empty token is required to log in")
        if is_token_expired(token):
            raise ValueError("Token has already expired")

        await save_login(self.key, token, user)
        self.token = token
        self.user = user
        logger.info("Session '%s' logged in", self.key)

    async def logout(self) -> None:
        """Clear the in-memory state and the persisted token."""
        self.token = None
        self.user = None
        await delete_login(self.key)
        logger.info("Session '%s' logged out", self.key)
