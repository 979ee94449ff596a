"""
Auth component - mock sign-up, sign-in and session lifecycle.

Operations are pure functions over ports; the caller owns state,
persistence and auth-state broadcasting.
"""

from ._impl import InMemoryUserRepo
from .component import (
    SUPPORTED_OAUTH_PROVIDERS,
    run_check_session,
    run_complete_oauth,
    run_refresh_session,
    run_resend,
    run_sign_in,
    run_sign_out,
    run_sign_up,
    run_start_oauth,
    run_update_user,
    run_verify_otp,
)
from .models import (
    AuthOutput,
    AuthPolicy,
    CheckSessionInput,
    OAuthCompleteInput,
    OAuthOutput,
    OAuthStartInput,
    RefreshSessionInput,
    ResendInput,
    SignInInput,
    SignOutInput,
    SignUpInput,
    UpdateUserInput,
    VerifyOtpInput,
)
from .ports import IdentityPort, PasswordHasherPort, TimePort, UserRepoPort

__all__ = [
    # Entry points
    "run_sign_up",
    "run_sign_in",
    "run_sign_out",
    "run_check_session",
    "run_update_user",
    "run_refresh_session",
    "run_verify_otp",
    "run_resend",
    "run_start_oauth",
    "run_complete_oauth",
    "SUPPORTED_OAUTH_PROVIDERS",
    # Models
    "AuthOutput",
    "AuthPolicy",
    "CheckSessionInput",
    "OAuthCompleteInput",
    "OAuthOutput",
    "OAuthStartInput",
    "RefreshSessionInput",
    "ResendInput",
    "SignInInput",
    "SignOutInput",
    "SignUpInput",
    "UpdateUserInput",
    "VerifyOtpInput",
    # Ports
    "IdentityPort",
    "PasswordHasherPort",
    "TimePort",
    "UserRepoPort",
    # Adapters
    "InMemoryUserRepo",
]
