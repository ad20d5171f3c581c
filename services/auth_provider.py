"""Identity provider for per-user history.

Signs in with a configured custom token when one is present, otherwise
anonymously. The anonymous identity is written to an identity file so the
same user id (and therefore the same history) survives restarts.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiofiles

from models.errors import AuthUnavailableError

LOGGER = logging.getLogger(__name__)

_TOKEN_NAMESPACE = uuid.UUID("8f6f8f8e-2a57-4e55-9a5e-3b1f4a3c2d10")


@dataclass(frozen=True)
class AuthUser:
    uid: str
    is_anonymous: bool


class AuthProvider:
    """Hold the process-wide signed-in identity.

    Args:
        identity_path: File that stores the anonymous user id between runs.
            When None the anonymous id lives only for this process.
        initial_token: Optional opaque token; when set it takes precedence
            over anonymous sign-in and always maps to the same user id.
    """

    def __init__(self, identity_path: Optional[Path] = None, initial_token: Optional[str] = None) -> None:
        self.identity_path = identity_path
        self.initial_token = initial_token
        self._user: Optional[AuthUser] = None

    @property
    def current_user(self) -> Optional[AuthUser]:
        return self._user

    async def ensure_signed_in(self) -> AuthUser:
        """Return the current user, signing in first if there is no session yet.

        Raises:
            AuthUnavailableError: If sign-in fails.
        """
        if self._user is not None:
            return self._user
        try:
            if self.initial_token:
                user = self._sign_in_with_custom_token(self.initial_token)
                LOGGER.info("Signed in with custom token.")
            else:
                user = await self._sign_in_anonymously()
                LOGGER.info("Signed in anonymously.")
        except Exception as exc:
            LOGGER.error("Auth error during sign-in: %s", exc)
            raise AuthUnavailableError(f"Authentication failed: {exc}") from exc
        self._user = user
        return user

    def require_user(self) -> AuthUser:
        """Return the signed-in user or raise AuthUnavailableError."""
        if self._user is None:
            raise AuthUnavailableError()
        return self._user

    def sign_out(self) -> None:
        self._user = None

    @staticmethod
    def _sign_in_with_custom_token(token: str) -> AuthUser:
        token = token.strip()
        if not token:
            raise ValueError("Custom auth token is empty.")
        return AuthUser(uid=uuid.uuid5(_TOKEN_NAMESPACE, token).hex, is_anonymous=False)

    async def _sign_in_anonymously(self) -> AuthUser:
        if self.identity_path is None:
            return AuthUser(uid=uuid.uuid4().hex, is_anonymous=True)

        if self.identity_path.exists():
            async with aiofiles.open(self.identity_path, "r", encoding="utf-8") as f:
                stored = (await f.read()).strip()
            if stored:
                return AuthUser(uid=stored, is_anonymous=True)

        uid = uuid.uuid4().hex
        self.identity_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.identity_path, "w", encoding="utf-8") as f:
            await f.write(uid)
        return AuthUser(uid=uid, is_anonymous=True)
