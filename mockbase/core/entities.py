from typing import Any, Literal

from pydantic import BaseModel, Field

# --- Enums / Literals ---
AuthChangeEvent = Literal[
    "INITIAL_SESSION",
    "SIGNED_IN",
    "SIGNED_OUT",
    "TOKEN_REFRESHED",
    "USER_UPDATED",
    "PASSWORD_RECOVERY",
]
OAuthProvider = Literal["google", "apple", "github", "twitter"]
OtpType = Literal["email", "signup", "email_change", "password_recovery"]

# A table row: arbitrary JSON-compatible fields keyed by column name.
Record = dict[str, Any]

# --- User & Auth ---


class User(BaseModel):
    id: str
    aud: str = "authenticated"
    email: str
    created_at: str
    email_confirmed_at: str | None = None
    confirmed_at: str | None = None
    app_metadata: dict[str, Any] = Field(default_factory=dict)
    user_metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_confirmed(self) -> bool:
        return bool(self.email_confirmed_at or self.confirmed_at)


class Session(BaseModel):
    access_token: str
    refresh_token: str
    expires_in: int = 3600
    expires_at: int | None = None  # Unix seconds; None never expires
    token_type: Literal["bearer"] = "bearer"
    user: User


class UserRecord(BaseModel):
    """Row of the users table, keyed by email."""

    email: str
    password: str
    user: User


class PendingOAuthState(BaseModel):
    provider: OAuthProvider
    state: str
    redirect_to: str | None = None
