"""Error types shared by adapters and the sync layer."""

from enum import Enum


class AuthErrorKind(Enum):
    """Why an authentication call failed."""

    INVALID_EMAIL = "invalid-email"
    USER_NOT_FOUND = "user-not-found"
    WRONG_PASSWORD = "wrong-password"
    EMAIL_IN_USE = "email-in-use"
    WEAK_PASSWORD = "weak-password"
    UNKNOWN = "unknown"


AUTH_MESSAGES = {
    AuthErrorKind.INVALID_EMAIL: "Invalid email address.",
    AuthErrorKind.USER_NOT_FOUND: "No account found with this email.",
    AuthErrorKind.WRONG_PASSWORD: "Incorrect password.",
    AuthErrorKind.EMAIL_IN_USE: "Email already in use.",
    AuthErrorKind.WEAK_PASSWORD: "Password should be at least 6 characters.",
    AuthErrorKind.UNKNOWN: "Authentication failed.",
}


class AuthError(Exception):
    """Raised when a sign-in, sign-up or token refresh fails."""

    def __init__(self, kind: AuthErrorKind, detail: str = ""):
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail

    @property
    def user_message(self) -> str:
        """Message suitable for showing to the person signing in."""
        return AUTH_MESSAGES[self.kind]


class SyncErrorKind(Enum):
    """Which remote operation failed."""

    SUBSCRIPTION_FAILED = "subscription-failed"
    WRITE_FAILED = "write-failed"
    MIGRATION_FAILED = "migration-failed"


class SyncError(Exception):
    """Raised by document store adapters when a remote read or write fails."""

    def __init__(self, kind: SyncErrorKind, detail: str = ""):
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)
        self.kind = kind
        self.detail = detail
