"""In-memory user repository over the backend state's users map.

Implements UserRepoPort for the auth component. The map is keyed by email
and shared with the persistence layer, which snapshots it after changes.
"""

from mockbase.core.entities import UserRecord


class InMemoryUserRepo:
    def __init__(self, users: dict[str, UserRecord]) -> None:
        self._users = users

    def get_by_email(self, email: str) -> UserRecord | None:
        return self._users.get(email)

    def get_by_id(self, user_id: str) -> UserRecord | None:
        for record in self._users.values():
            if record.user.id == user_id:
                return record
        return None

    def save(self, record: UserRecord) -> UserRecord:
        self._users[record.email] = record
        return record

    def rename(self, old_email: str, record: UserRecord) -> UserRecord:
        """Re-key a record whose email changed; insertion order is kept."""
        if old_email == record.email:
            return self.save(record)
        items = [
            (record.email, record) if email == old_email else (email, rec)
            for email, rec in self._users.items()
        ]
        self._users.clear()
        self._users.update(items)
        return record

    def list_all(self) -> list[UserRecord]:
        return list(self._users.values())
