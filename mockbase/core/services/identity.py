"""
UserFactory - believable mock identities.

Derives a display name from an email address, then builds User and Session
objects around it. Output is plausible, not meaningful: only the
separator-based name path ("john.doe@", "jane_smith@") is deterministic.

Key behaviors:
- Local part split on "." / "_"; first two segments become first/last name
- No separator: whole local part becomes the first name, surname is random
- Names shorter than 2 characters are replaced from fixed name lists
- Caller metadata overrides derived metadata on key collision
- Email confirmation timestamps are left unset
"""

from __future__ import annotations

import random
import re
from typing import Any, TypedDict
from urllib.parse import quote

from mockbase.core.entities import Session, User
from mockbase.core.ports.time import TimePort, to_iso_z
from mockbase.core.services.tokens import TokenFactory, random_base36

SESSION_LIFETIME_SECONDS = 3600
ACCESS_TOKEN_PREFIX = "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9"  # JWT-like header
REFRESH_TOKEN_PREFIX = "refresh"
AVATAR_URL_TEMPLATE = "https://ui-avatars.com/api/?name={name}&background=random"

COMMON_FIRST_NAMES = [
    "John",
    "Jane",
    "Michael",
    "Sarah",
    "David",
    "Emily",
    "James",
    "Jessica",
    "Robert",
    "Ashley",
    "William",
    "Amanda",
    "Richard",
    "Melissa",
    "Joseph",
    "Deborah",
    "Thomas",
    "Stephanie",
    "Christopher",
    "Rebecca",
]
COMMON_LAST_NAMES = [
    "Smith",
    "Johnson",
    "Williams",
    "Brown",
    "Jones",
    "Garcia",
    "Miller",
    "Davis",
    "Rodriguez",
    "Martinez",
    "Hernandez",
    "Lopez",
    "Wilson",
    "Anderson",
    "Thomas",
    "Taylor",
    "Moore",
    "Jackson",
    "Martin",
    "Lee",
]

_SEPARATORS = re.compile(r"[._]")


class ExtractedName(TypedDict):
    first_name: str
    last_name: str
    full_name: str


def _capitalize(segment: str) -> str:
    return segment[:1].upper() + segment[1:].lower()


def avatar_url_for(full_name: str) -> str:
    return AVATAR_URL_TEMPLATE.format(name=quote(full_name, safe=""))


class UserFactory:
    def __init__(
        self,
        clock: TimePort,
        rng: random.Random | None = None,
        tokens: TokenFactory | None = None,
    ) -> None:
        self.clock = clock
        self.rng = rng or random.Random()
        self.tokens = tokens or TokenFactory(self.clock, self.rng)

    def extract_name_from_email(self, email: str) -> ExtractedName:
        """
        Extract a first and last name from an email address.

        Example:
            extract_name_from_email("john.doe@example.com")
            -> {"first_name": "John", "last_name": "Doe", "full_name": "John Doe"}
        """
        local_part = email.split("@")[0]

        first_name = ""
        last_name = ""

        if _SEPARATORS.search(local_part):
            parts = _SEPARATORS.split(local_part)
            if len(parts) >= 2:
                first_name = _capitalize(parts[0])
                last_name = _capitalize(parts[1])
            elif len(parts) == 1:
                first_name = _capitalize(parts[0])
                last_name = self.rng.choice(COMMON_LAST_NAMES)
        else:
            first_name = _capitalize(local_part)
            last_name = self.rng.choice(COMMON_LAST_NAMES)

        # Fallback: too short to look like a name
        if len(first_name) < 2:
            first_name = self.rng.choice(COMMON_FIRST_NAMES)
        if len(last_name) < 2:
            last_name = self.rng.choice(COMMON_LAST_NAMES)

        return {
            "first_name": first_name,
            "last_name": last_name,
            "full_name": f"{first_name} {last_name}",
        }

    def new_id(self, prefix: str) -> str:
        return f"{prefix}-{self.clock.now_ms()}-{random_base36(self.rng, 9)}"

    def create_mock_user(self, email: str, metadata: dict[str, Any] | None = None) -> User:
        names = self.extract_name_from_email(email)

        user_metadata: dict[str, Any] = {
            **names,
            "avatar_url": avatar_url_for(names["full_name"]),
            **(metadata or {}),
        }

        return User(
            id=self.new_id("mock-user"),
            email=email,
            created_at=to_iso_z(self.clock.now_utc()),
            app_metadata={},
            user_metadata=user_metadata,
        )

    def create_mock_session(self, user: User) -> Session:
        return Session(
            access_token=self.tokens.generate_token(ACCESS_TOKEN_PREFIX),
            refresh_token=self.tokens.generate_token(REFRESH_TOKEN_PREFIX),
            expires_in=SESSION_LIFETIME_SECONDS,
            expires_at=self.clock.now_seconds() + SESSION_LIFETIME_SECONDS,
            token_type="bearer",
            user=user,
        )
