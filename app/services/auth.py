"""Admin authentication: bcrypt password check and signed, expiring session tokens.

The single admin account is configured through settings (`ADMIN_USERNAME`,
`ADMIN_PASSWORD_HASH`). A successful login issues an HS256 JWT and persists
the session under the `blog_admin_auth` state key so `current_user()` survives
restarts until the token expires. Only the stored token verifies, so logging
out or logging in again revokes any earlier token.
"""

from __future__ import annotations

import hmac
import logging
import secrets
import sys
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Optional

import bcrypt
import jwt
from pydantic import BaseModel

from app.config.settings import settings
from app.errors import AuthenticationError
from app.services.state_store import AUTH_STATE_KEY, StateStore

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid username or password"


class AdminCredentials(BaseModel):
    username: str
    password: str


class AdminUser(BaseModel):
    username: str
    display_name: str


@dataclass(frozen=True, slots=True)
class AuthSession:
    access_token: str
    expires_in: int
    username: str
    display_name: str
    token_type: str = "bearer"

    @property
    def user(self) -> AdminUser:
        return AdminUser(username=self.username, display_name=self.display_name)


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed hash
        return False


class AuthService:
    def __init__(
        self,
        *,
        state_store: StateStore,
        username: Optional[str] = None,
        password_hash: Optional[str] = None,
        display_name: Optional[str] = None,
        jwt_secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        expires_minutes: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._state_store = state_store
        self._username = username or settings.ADMIN_USERNAME
        self._password_hash = password_hash or settings.ADMIN_PASSWORD_HASH
        self._display_name = display_name or settings.ADMIN_DISPLAY_NAME
        self._secret = jwt_secret or settings.JWT_SECRET
        self._algorithm = algorithm or settings.JWT_ALGORITHM
        self._expires_seconds = (expires_minutes or settings.JWT_EXPIRES_MINUTES) * 60
        self._clock = clock

        if not self._password_hash:
            logger.warning("ADMIN_PASSWORD_HASH is not configured; admin login is disabled")

    def login(self, credentials: AdminCredentials) -> AuthSession:
        username_ok = hmac.compare_digest(credentials.username.encode("utf-8"), self._username.encode("utf-8"))
        password_ok = bool(self._password_hash) and verify_password(credentials.password, self._password_hash)
        if not (username_ok and password_ok):
            logger.warning("Admin login rejected", extra={"username": credentials.username})
            raise AuthenticationError(INVALID_CREDENTIALS)

        session = self._issue_session()
        self._state_store.set(AUTH_STATE_KEY, asdict(session))
        logger.info("Admin logged in", extra={"username": session.username})
        return session

    def verify(self, token: str) -> AdminUser:
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationError("Session expired") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthenticationError("Invalid session token") from exc

        if claims.get("sub") != self._username:
            raise AuthenticationError("Invalid session token")

        # Only the most recently issued token is live; logout or a newer login revokes it
        stored = self._state_store.get(AUTH_STATE_KEY)
        stored_token = stored.get("access_token") if isinstance(stored, dict) else None
        if not stored_token or not hmac.compare_digest(str(stored_token).encode("utf-8"), token.encode("utf-8")):
            raise AuthenticationError("Session revoked")
        return AdminUser(username=claims["sub"], display_name=claims.get("name") or self._display_name)

    def logout(self) -> None:
        self._state_store.remove(AUTH_STATE_KEY)
        logger.info("Admin logged out")

    def current_user(self) -> Optional[AdminUser]:
        stored = self._state_store.get(AUTH_STATE_KEY)
        if not isinstance(stored, dict) or not stored.get("access_token"):
            return None
        try:
            return self.verify(stored["access_token"])
        except AuthenticationError:
            self._state_store.remove(AUTH_STATE_KEY)
            return None

    def is_logged_in(self) -> bool:
        return self.current_user() is not None

    def _issue_session(self) -> AuthSession:
        issued_at = int(self._clock())
        claims: dict[str, Any] = {
            "sub": self._username,
            "name": self._display_name,
            "iat": issued_at,
            "exp": issued_at + self._expires_seconds,
            "jti": secrets.token_urlsafe(16),
        }
        token = jwt.encode(claims, self._secret, algorithm=self._algorithm)
        return AuthSession(
            access_token=token,
            expires_in=self._expires_seconds,
            username=self._username,
            display_name=self._display_name,
        )


# Print a bcrypt hash for ADMIN_PASSWORD_HASH: `python -m app.services.auth <password>`
if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("usage: python -m app.services.auth <password>")
        sys.exit(2)
    print(hash_password(sys.argv[1]))
