from typing import cast, get_args
from urllib.parse import quote

from mockbase.core.ports.time import to_iso_z
from mockbase.core.entities import OAuthProvider, PendingOAuthState, UserRecord
from mockbase.core.services.identity import avatar_url_for
from mockbase.core.services.tokens import is_session_valid

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

SUPPORTED_OAUTH_PROVIDERS: tuple[str, ...] = get_args(OAuthProvider)
OAUTH_AUTHORIZE_URL = "https://mock-oauth.supabase.co/authorize"

# Provider-flavored identities for social sign-ins without an explicit email
OAUTH_PROFILES: dict[str, tuple[list[str], str]] = {
    "google": (["Alex", "Sam", "Jordan", "Taylor", "Morgan", "Casey"], "gmail.com"),
    "apple": (["Apple", "Mac", "iOS", "Swift"], "icloud.com"),
    "github": (["Dev", "Coder", "Hacker", "Builder"], "github.com"),
    "twitter": (["Tweet", "Bird", "Social", "Viral"], "twitter.com"),
}
OAUTH_LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia"]

INVALID_CREDENTIALS = "Invalid login credentials"


def _password_error(password: str, policy: AuthPolicy) -> str | None:
    if len(password) < policy.min_password_length:
        return f"Password should be at least {policy.min_password_length} characters"
    return None


def run_sign_up(
    inp: SignUpInput,
    *,
    users: UserRepoPort,
    hasher: PasswordHasherPort,
    identity: IdentityPort,
    policy: AuthPolicy,
) -> AuthOutput:
    if not inp.email or "@" not in inp.email:
        return AuthOutput(error="Invalid email address")

    password_error = _password_error(inp.password, policy)
    if password_error:
        return AuthOutput(error=password_error)

    if users.get_by_email(inp.email):
        return AuthOutput(error="User already registered")

    user = identity.create_mock_user(inp.email, inp.metadata)
    users.save(
        UserRecord(email=inp.email, password=hasher.hash_password(inp.password), user=user)
    )

    if policy.require_email_confirmation:
        # No session until the email is confirmed
        return AuthOutput(user=user, users_changed=True)

    session = identity.create_mock_session(user)
    return AuthOutput(
        user=user,
        session=session,
        event="SIGNED_IN",
        users_changed=True,
        session_changed=True,
    )


def run_sign_in(
    inp: SignInInput,
    *,
    users: UserRepoPort,
    hasher: PasswordHasherPort,
    identity: IdentityPort,
    policy: AuthPolicy,
) -> AuthOutput:
    record = users.get_by_email(inp.email)
    if not record:
        return AuthOutput(error=INVALID_CREDENTIALS)

    if not hasher.verify_password(inp.password, record.password):
        return AuthOutput(error=INVALID_CREDENTIALS)

    if policy.require_email_confirmation and not record.user.is_confirmed:
        # User is returned so a verification screen can show the address
        return AuthOutput(user=record.user, error="Email not confirmed")

    session = identity.create_mock_session(record.user)
    return AuthOutput(user=record.user, session=session, event="SIGNED_IN", session_changed=True)


def run_sign_out(inp: SignOutInput) -> AuthOutput:
    return AuthOutput(event="SIGNED_OUT", session_changed=True)


def run_check_session(inp: CheckSessionInput, *, time: TimePort) -> AuthOutput:
    session = inp.current_session
    if session is None:
        return AuthOutput()

    if not is_session_valid(session, time.now_seconds()):
        return AuthOutput(event="SIGNED_OUT", session_changed=True)

    return AuthOutput(user=session.user, session=session)


def run_update_user(
    inp: UpdateUserInput,
    *,
    users: UserRepoPort,
    hasher: PasswordHasherPort,
    identity: IdentityPort,
    policy: AuthPolicy,
) -> AuthOutput:
    current = inp.current_session
    if current is None:
        return AuthOutput(error="Not authenticated")

    if inp.password is not None:
        password_error = _password_error(inp.password, policy)
        if password_error:
            return AuthOutput(error=password_error)

    record = users.get_by_id(current.user.id)
    base_user = record.user if record else current.user

    updates: dict[str, object] = {}
    if inp.data:
        updates["user_metadata"] = {**base_user.user_metadata, **inp.data}

    if inp.email and inp.email != base_user.email:
        if "@" not in inp.email:
            return AuthOutput(error="Invalid email address")
        if users.get_by_email(inp.email):
            return AuthOutput(error="A user with this email address has already been registered")
        updates["email"] = inp.email

    user = base_user.model_copy(update=updates, deep=True)

    users_changed = False
    if record:
        password = hasher.hash_password(inp.password) if inp.password else record.password
        users.rename(
            record.email,
            UserRecord(email=user.email, password=password, user=user),
        )
        users_changed = True

    session = identity.create_mock_session(user)
    return AuthOutput(
        user=user,
        session=session,
        event="USER_UPDATED",
        users_changed=users_changed,
        session_changed=True,
    )


def run_refresh_session(
    inp: RefreshSessionInput, *, identity: IdentityPort, time: TimePort
) -> AuthOutput:
    current = inp.current_session
    if current is None:
        return AuthOutput()

    if not inp.force:
        if current.expires_at is None:
            return AuthOutput(user=current.user, session=current)
        remaining = current.expires_at - time.now_seconds()
        # Refresh only inside the window before expiry
        if not 0 < remaining < inp.threshold_seconds:
            return AuthOutput(user=current.user, session=current)

    session = identity.create_mock_session(current.user)
    return AuthOutput(
        user=session.user, session=session, event="TOKEN_REFRESHED", session_changed=True
    )


def run_verify_otp(
    inp: VerifyOtpInput, *, users: UserRepoPort, identity: IdentityPort, time: TimePort
) -> AuthOutput:
    if not inp.token.strip():
        return AuthOutput(error="Invalid or expired token")

    record: UserRecord | None
    if inp.current_session is not None:
        record = users.get_by_id(inp.current_session.user.id)
        target = record.user if record else inp.current_session.user
    else:
        record = next((r for r in users.list_all() if not r.user.is_confirmed), None)
        target = record.user if record else None

    if target is None:
        return AuthOutput(error="Invalid or expired token")

    now = to_iso_z(time.now_utc())
    user = target.model_copy(update={"email_confirmed_at": now, "confirmed_at": now})

    if record:
        users.save(record.model_copy(update={"user": user}))

    session = identity.create_mock_session(user)
    return AuthOutput(
        user=user,
        session=session,
        event="SIGNED_IN",
        users_changed=record is not None,
        session_changed=True,
    )


def run_resend(inp: ResendInput, *, users: UserRepoPort) -> AuthOutput:
    record = users.get_by_email(inp.email)
    if not record:
        return AuthOutput(error="User not found")
    return AuthOutput(user=record.user)


def run_start_oauth(inp: OAuthStartInput, *, identity: IdentityPort) -> OAuthOutput:
    if inp.provider not in SUPPORTED_OAUTH_PROVIDERS:
        return OAuthOutput(error=f"Unsupported OAuth provider: {inp.provider}")

    provider = cast(OAuthProvider, inp.provider)
    pending = PendingOAuthState(
        provider=provider,
        state=identity.new_id("mock-state"),
        redirect_to=inp.redirect_to,
    )
    url = (
        f"{OAUTH_AUTHORIZE_URL}?provider={provider}&state={pending.state}"
        f"&redirect_to={quote(inp.redirect_to or '', safe='')}"
    )
    return OAuthOutput(provider=provider, url=url, pending=pending)


def run_complete_oauth(
    inp: OAuthCompleteInput, *, users: UserRepoPort, identity: IdentityPort, time: TimePort
) -> AuthOutput:
    pending = inp.pending
    if pending is None:
        return AuthOutput(error="No pending OAuth flow")

    if inp.email:
        email = inp.email
        metadata: dict[str, object] = {"provider": pending.provider, "social_login": True}
    else:
        first_names, domain = OAUTH_PROFILES.get(pending.provider, OAUTH_PROFILES["google"])
        first = identity.rng.choice(first_names)
        last = identity.rng.choice(OAUTH_LAST_NAMES)
        email = f"{first.lower()}.{last.lower()}@{domain}"
        metadata = {
            "provider": pending.provider,
            "social_login": True,
            "provider_id": f"{pending.provider}-{time.now_ms()}",
            "avatar_url": avatar_url_for(f"{first} {last}"),
            "full_name": f"{first} {last}",
            "first_name": first,
            "last_name": last,
        }

    record = users.get_by_email(email)
    users_changed = False
    if record is None:
        # Social accounts have no password
        user = identity.create_mock_user(email, metadata)
        record = users.save(UserRecord(email=email, password="", user=user))
        users_changed = True

    session = identity.create_mock_session(record.user)
    return AuthOutput(
        user=record.user,
        session=session,
        event="SIGNED_IN",
        users_changed=users_changed,
        session_changed=True,
    )
