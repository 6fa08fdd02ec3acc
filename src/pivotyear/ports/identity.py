"""Identity provider interface."""

from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Protocol


@dataclass(frozen=True)
class UserSession:
    """The signed-in user."""

    user_id: str
    is_anonymous: bool
    email: str | None = None


AuthStateCallback = Callable[[UserSession | None], Awaitable[None] | None]


class IdentityProvider(Protocol):
    """Interface for signing users in and out."""

    def current_user(self) -> UserSession | None:
        """The signed-in user, or None."""
        ...

    def on_auth_state_change(self, callback: AuthStateCallback) -> Callable[[], None]:
        """Register for login/logout transitions. Returns an unsubscribe function."""
        ...

    async def restore(self) -> UserSession | None:
        """Resolve the initial auth state and notify listeners."""
        ...

    async def sign_in_anonymously(self) -> UserSession:
        ...

    async def sign_in_with_password(self, email: str, password: str) -> UserSession:
        ...

    async def create_account(self, email: str, password: str) -> UserSession:
        ...

    async def sign_out(self) -> None:
        ...

    def id_token(self) -> tuple[str, datetime]:
        """A valid bearer token for the current user and its expiry (UTC)."""
        ...

    def close(self) -> None:
        """Release network resources."""
        ...
