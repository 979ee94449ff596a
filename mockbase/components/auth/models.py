from dataclasses import dataclass
from typing import Any

from mockbase.core.entities import (
    AuthChangeEvent,
    OAuthProvider,
    OtpType,
    PendingOAuthState,
    Session,
    User,
)


@dataclass
class AuthPolicy:
    min_password_length: int = 1
    require_email_confirmation: bool = False


@dataclass
class SignUpInput:
    email: str
    password: str
    metadata: dict[str, Any] | None = None


@dataclass
class SignInInput:
    email: str
    password: str


@dataclass
class SignOutInput:
    current_session: Session | None = None


@dataclass
class CheckSessionInput:
    current_session: Session | None


@dataclass
class UpdateUserInput:
    current_session: Session | None
    email: str | None = None
    password: str | None = None
    data: dict[str, Any] | None = None


@dataclass
class RefreshSessionInput:
    current_session: Session | None
    force: bool = False
    threshold_seconds: int = 300


@dataclass
class VerifyOtpInput:
    current_session: Session | None
    token: str
    type: OtpType = "signup"


@dataclass
class ResendInput:
    email: str
    type: OtpType = "signup"


@dataclass
class OAuthStartInput:
    provider: str
    redirect_to: str | None = None


@dataclass
class OAuthCompleteInput:
    pending: PendingOAuthState | None
    email: str | None = None


@dataclass
class AuthOutput:
    """
    Result of an auth operation.

    `event` is the auth-state event the caller should broadcast (if any);
    `users_changed` / `session_changed` tell the caller what to persist.
    """

    user: User | None = None
    session: Session | None = None
    error: str | None = None
    event: AuthChangeEvent | None = None
    users_changed: bool = False
    session_changed: bool = False

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class OAuthOutput:
    provider: OAuthProvider | None = None
    url: str | None = None
    pending: PendingOAuthState | None = None
    error: str | None = None
