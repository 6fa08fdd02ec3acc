"""Firebase Authentication adapter - REST client for sign-in and token refresh."""

import asyncio
import inspect
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import requests

from pivotyear.config import SESSION_FILE, Config, StoredSession, load_config
from pivotyear.errors import AuthError, AuthErrorKind
from pivotyear.ports.identity import AuthStateCallback, UserSession

IDENTITY_API_BASE = "https://identitytoolkit.googleapis.com/v1"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1/token"

# Refresh when the ID token expires within this many seconds
REFRESH_MARGIN = 300

ERROR_CODES = {
    "INVALID_EMAIL": AuthErrorKind.INVALID_EMAIL,
    "MISSING_EMAIL": AuthErrorKind.INVALID_EMAIL,
    "EMAIL_NOT_FOUND": AuthErrorKind.USER_NOT_FOUND,
    "USER_NOT_FOUND": AuthErrorKind.USER_NOT_FOUND,
    "INVALID_PASSWORD": AuthErrorKind.WRONG_PASSWORD,
    "INVALID_LOGIN_CREDENTIALS": AuthErrorKind.WRONG_PASSWORD,
    "EMAIL_EXISTS": AuthErrorKind.EMAIL_IN_USE,
    "WEAK_PASSWORD": AuthErrorKind.WEAK_PASSWORD,
}

logger = logging.getLogger(__name__)


def error_from_response(resp: requests.Response) -> AuthError:
    """Map a Firebase error payload to an AuthError."""
    try:
        message = resp.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return AuthError(AuthErrorKind.UNKNOWN, f"HTTP {resp.status_code}: {resp.text}")

    # Messages look like "WEAK_PASSWORD : Password should be at least 6 characters"
    code = message.split(":")[0].strip()
    return AuthError(ERROR_CODES.get(code, AuthErrorKind.UNKNOWN), message)


class FirebaseAuthAdapter:
    """
    Firebase Authentication REST adapter.

    Implements IdentityProvider protocol. Persists the session to disk so the
    user stays signed in between runs, and refreshes the ID token before it
    expires.
    """

    def __init__(
        self,
        config: Config | None = None,
        session_path: Path = SESSION_FILE,
        http: requests.Session | None = None,
    ):
        self.config = config or load_config()
        self.session_path = session_path
        self._http = http or requests.Session()
        self._session: StoredSession | None = None
        self._listeners: list[AuthStateCallback] = []

    # ---------- HTTP ----------

    def _post(self, url: str, **kwargs) -> dict:
        if not self.config.firebase_api_key:
            raise AuthError(AuthErrorKind.UNKNOWN, "FIREBASE_API_KEY not configured in pivotyear.conf")

        try:
            resp = self._http.post(url, params={"key": self.config.firebase_api_key}, timeout=30, **kwargs)
        except requests.RequestException as e:
            raise AuthError(AuthErrorKind.UNKNOWN, f"Request failed: {e}") from e

        if resp.status_code != 200:
            raise error_from_response(resp)
        return resp.json()

    def _identity_call(self, endpoint: str, payload: dict) -> dict:
        return self._post(f"{IDENTITY_API_BASE}/{endpoint}", json={**payload, "returnSecureToken": True})

    def _refresh_token(self) -> None:
        """Exchange the refresh token for a new ID token."""
        if not self._session or not self._session.refresh_token:
            raise AuthError(AuthErrorKind.UNKNOWN, "Not signed in. Run 'pivotyear auth' first.")

        data = self._post(
            SECURE_TOKEN_URL,
            data={"grant_type": "refresh_token", "refresh_token": self._session.refresh_token},
        )
        self._session.id_token = data["id_token"]
        self._session.refresh_token = data.get("refresh_token", self._session.refresh_token)
        self._session.expires_at = int(time.time()) + int(data.get("expires_in", 3600))
        self._session.save(self.session_path)
        logger.debug(f"Refreshed ID token for {self._session.user_id}")

    # ---------- Session state ----------

    def _start_session(self, data: dict, is_anonymous: bool) -> UserSession:
        self._session = StoredSession(
            user_id=data["localId"],
            id_token=data["idToken"],
            refresh_token=data["refreshToken"],
            expires_at=int(time.time()) + int(data.get("expiresIn", 3600)),
            is_anonymous=is_anonymous,
            email=data.get("email") or None,
        )
        self._session.save(self.session_path)
        return self.current_user()

    async def _notify(self, user: UserSession | None) -> None:
        for callback in list(self._listeners):
            result = callback(user)
            if inspect.isawaitable(result):
                await result

    def current_user(self) -> UserSession | None:
        if self._session is None:
            return None
        return UserSession(
            user_id=self._session.user_id,
            is_anonymous=self._session.is_anonymous,
            email=self._session.email,
        )

    def on_auth_state_change(self, callback: AuthStateCallback) -> Callable[[], None]:
        self._listeners.append(callback)
        return lambda: self._listeners.remove(callback)

    async def restore(self) -> UserSession | None:
        """Load the persisted session, if any, and report it to listeners."""
        self._session = StoredSession.load(self.session_path)
        user = self.current_user()
        await self._notify(user)
        return user

    # ---------- Sign-in surface ----------

    async def sign_in_anonymously(self) -> UserSession:
        data = await asyncio.to_thread(self._identity_call, "accounts:signUp", {})
        user = self._start_session(data, is_anonymous=True)
        logger.info(f"Signed in anonymously as {user.user_id}")
        await self._notify(user)
        return user

    async def sign_in_with_password(self, email: str, password: str) -> UserSession:
        data = await asyncio.to_thread(
            self._identity_call, "accounts:signInWithPassword", {"email": email, "password": password}
        )
        user = self._start_session(data, is_anonymous=False)
        logger.info(f"Signed in as {email}")
        await self._notify(user)
        return user

    async def create_account(self, email: str, password: str) -> UserSession:
        data = await asyncio.to_thread(
            self._identity_call, "accounts:signUp", {"email": email, "password": password}
        )
        user = self._start_session(data, is_anonymous=False)
        logger.info(f"Created account for {email}")
        await self._notify(user)
        return user

    async def sign_out(self) -> None:
        self._session = None
        StoredSession.clear(self.session_path)
        logger.info("Signed out")
        await self._notify(None)

    def id_token(self) -> tuple[str, datetime]:
        """Return a valid ID token, refreshing it if expired or expiring soon."""
        if self._session is None:
            raise AuthError(AuthErrorKind.UNKNOWN, "Not signed in. Run 'pivotyear auth' first.")

        if time.time() >= self._session.expires_at - REFRESH_MARGIN:
            self._refresh_token()

        return self._session.id_token, datetime.fromtimestamp(self._session.expires_at, timezone.utc)

    def close(self) -> None:
        self._http.close()
