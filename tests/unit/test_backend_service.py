import json
from datetime import datetime

import pytest

from mockbase.components.database import InvalidRecordError
from mockbase.core.services.persistence import StorageKeys
from mockbase.services import backend as backend_module


@pytest.fixture
def events():
    return []


@pytest.fixture
def recorder(events):
    def _listener(event, session):
        events.append((event, session.user.email if session else None))

    return _listener


@pytest.fixture
def signed_in(backend):
    result = backend.sign_up("john.doe@example.com", "secret123")
    assert result.success
    return result


class TestAuthFlow:
    def test_sign_up_creates_session_and_persists(self, backend, memory_storage):
        result = backend.sign_up("john.doe@example.com", "secret123", {"plan": "pro"})

        assert result.success
        assert result.user.user_metadata["full_name"] == "John Doe"
        assert result.user.user_metadata["plan"] == "pro"
        assert backend.current_session == result.session

        [[email, record]] = json.loads(memory_storage.get(StorageKeys.USERS))
        assert email == "john.doe@example.com"
        assert record["password"] != "secret123"
        assert json.loads(memory_storage.get(StorageKeys.SESSION))["access_token"] == (
            result.session.access_token
        )

    def test_duplicate_sign_up(self, backend, signed_in):
        assert backend.sign_up("john.doe@example.com", "other").error == "User already registered"

    def test_sign_in_wrong_password(self, backend, signed_in):
        backend.sign_out()
        result = backend.sign_in("john.doe@example.com", "nope")

        assert result.error == "Invalid login credentials"
        assert backend.current_session is None

    def test_sign_out_removes_stored_session(self, backend, memory_storage, signed_in):
        result = backend.sign_out()

        assert result.success
        assert backend.get_current_session() is None
        assert memory_storage.get(StorageKeys.SESSION) is None

    def test_get_user(self, backend, signed_in):
        assert backend.get_user() == signed_in.user
        backend.sign_out()
        assert backend.get_user() is None

    def test_expired_session_is_cleared(self, backend, clock, signed_in, memory_storage):
        clock.advance(3600)

        assert backend.get_current_session() is None
        assert memory_storage.get(StorageKeys.SESSION) is None

    def test_email_confirmation_required(self, make_backend):
        backend = make_backend(require_email_confirmation=True)

        signed_up = backend.sign_up("jane_smith@example.com", "pw")
        assert signed_up.success
        assert signed_up.session is None

        blocked = backend.sign_in("jane_smith@example.com", "pw")
        assert blocked.error == "Email not confirmed"
        assert blocked.user.email == "jane_smith@example.com"

        verified = backend.verify_otp("123456")
        assert verified.success
        assert verified.user.email_confirmed_at is not None

        backend.sign_out()
        assert backend.sign_in("jane_smith@example.com", "pw").success

    def test_min_password_length(self, make_backend):
        backend = make_backend(min_password_length=8)
        assert backend.sign_up("a@b.com", "short").error == (
            "Password should be at least 8 characters"
        )

    def test_resend_and_reset(self, backend, signed_in):
        assert backend.resend("signup", "john.doe@example.com").success
        assert backend.resend("signup", "ghost@example.com").error == "User not found"
        assert backend.reset_password_for_email("anyone@example.com").success

    def test_refresh_session(self, backend, clock, signed_in):
        assert backend.refresh_session().session == signed_in.session

        clock.advance(3600 - 60)
        refreshed = backend.refresh_session()

        assert refreshed.event == "TOKEN_REFRESHED"
        assert refreshed.session.access_token != signed_in.session.access_token
        assert backend.current_session == refreshed.session

    def test_oauth(self, backend):
        started = backend.sign_in_with_oauth("github", "myapp://callback")

        assert started.error is None
        assert backend.pending_oauth is not None
        assert "provider=github" in started.url

        completed = backend.complete_oauth("octo.cat@example.com")

        assert completed.success
        assert completed.user.user_metadata["provider"] == "github"
        assert backend.pending_oauth is None
        assert backend.complete_oauth().error == "No pending OAuth flow"

    def test_cancel_pending_oauth(self, backend):
        assert backend.cancel_pending_oauth() is False
        backend.sign_in_with_oauth("github")

        assert backend.cancel_pending_oauth() is True
        assert backend.pending_oauth is None
        assert backend.complete_oauth("octo.cat@example.com").error == "No pending OAuth flow"
        assert backend.cancel_pending_oauth() is False
        assert backend.get_users() == []

    def test_unsupported_oauth_provider(self, backend):
        assert backend.sign_in_with_oauth("myspace").error == "Unsupported OAuth provider: myspace"


class TestSubscriptions:
    def test_listener_sees_changes(self, backend, events, recorder):
        backend.on_auth_state_change(recorder)
        assert events == []

        backend.sign_up("john.doe@example.com", "pw")
        backend.update_user(data={"theme": "dark"})
        backend.sign_out()

        assert events == [
            ("SIGNED_IN", "john.doe@example.com"),
            ("USER_UPDATED", "john.doe@example.com"),
            ("SIGNED_OUT", None),
        ]

    def test_replay_goes_only_to_new_listener(self, backend, signed_in, events, recorder):
        earlier = []
        backend.on_auth_state_change(lambda e, s: earlier.append(e))
        earlier.clear()

        backend.on_auth_state_change(recorder)

        assert events == [("SIGNED_IN", "john.doe@example.com")]
        assert earlier == []

    def test_expired_session_signs_out_new_listener_only(
        self, backend, clock, signed_in, events, recorder
    ):
        backend.on_auth_state_change(recorder)
        events.clear()
        clock.advance(4000)

        later = []
        backend.on_auth_state_change(lambda e, s: later.append((e, s)))

        assert events == []
        assert later == [("SIGNED_OUT", None)]

    def test_unsubscribe_is_idempotent(self, backend, events, recorder):
        subscription = backend.on_auth_state_change(recorder)
        other = backend.on_auth_state_change(recorder)

        subscription.unsubscribe()
        subscription.unsubscribe()
        assert subscription.active is False
        assert other.active is True

        backend.sign_up("john.doe@example.com", "pw")
        assert events == [("SIGNED_IN", "john.doe@example.com")]

    def test_failing_listener_does_not_break_operation(self, backend, events, recorder):
        def broken(event, session):
            raise RuntimeError("boom")

        backend.on_auth_state_change(broken)
        backend.on_auth_state_change(recorder)

        assert backend.sign_up("john.doe@example.com", "pw").success
        assert events == [("SIGNED_IN", "john.doe@example.com")]


class TestDatabase:
    def test_insert_and_list_with_tuple_filters(self, backend):
        backend.insert_many(
            "todos",
            [
                {"id": "1", "title": "Buy milk", "done": False},
                {"id": "2", "title": "Walk dog", "done": True},
            ],
        )

        result = backend.list_records("todos", filters=[("done", "eq", False)])

        assert result.success
        assert [r["id"] for r in result.records] == ["1"]

    def test_single_insert(self, backend, memory_storage):
        result = backend.insert("todos", {"title": "Buy milk"})

        assert result.success
        assert result.record["id"].startswith("mock-id-")
        stored = json.loads(memory_storage.get(StorageKeys.DATABASE))
        assert list(stored["todos"]) == [result.record["id"]]

    def test_duplicate_insert_reported(self, backend):
        backend.insert("todos", {"id": "1"})
        result = backend.insert("todos", {"id": "1"})

        assert result.record is None
        assert result.error.startswith("Duplicate key")

    def test_update_get_delete(self, backend):
        backend.insert("todos", {"id": "1", "title": "Buy milk"})

        assert backend.update("todos", "1", {"title": "Buy oat milk"}).record["title"] == (
            "Buy oat milk"
        )
        assert backend.get("todos", "1").record["title"] == "Buy oat milk"
        assert backend.delete("todos", "1").success
        assert backend.get("todos", "1").error == "No rows found"

    def test_upsert(self, backend):
        backend.upsert("profiles", {"id": "u1", "name": "John"})
        result = backend.upsert("profiles", {"id": "u1", "bio": "hi"})

        assert result.success
        assert "name" not in result.record
        assert len(backend.get_table_data("profiles")) == 1


class TestSimulatedErrors:
    def test_auth_error_until_cleared(self, backend):
        backend.simulate_error("auth", "sign_up", "Network request failed")

        assert backend.sign_up("a@b.com", "pw").error == "Network request failed"
        assert backend.get_users() == []

        backend.simulate_error("auth", "sign_up", None)
        assert backend.sign_up("a@b.com", "pw").success

    def test_database_error_is_per_table_and_operation(self, backend):
        backend.simulate_error("database", "todos.insert", "permission denied")

        assert backend.insert("todos", {"title": "x"}).error == "permission denied"
        assert backend.insert("notes", {"title": "x"}).success
        assert backend.list_records("todos").success
        assert backend.get_table_data("todos") == []

    def test_clear_simulated_errors(self, backend):
        backend.simulate_error("auth", "sign_in_with_oauth", "popup blocked")
        assert backend.sign_in_with_oauth("google").error == "popup blocked"

        backend.clear_simulated_errors()
        assert backend.sign_in_with_oauth("google").error is None


class TestMaintenance:
    def test_seed_table_replaces(self, backend):
        backend.insert("todos", {"id": "old"})

        count = backend.seed_table("todos", [{"id": "a", "n": 1}, {"n": 2}])

        rows = backend.get_table_data("todos")
        assert count == 2
        assert [r.get("n") for r in rows] == [1, 2]
        assert rows[1]["id"].startswith("mock-id-")
        assert backend.get("todos", "old").error == "No rows found"

    def test_seed_table_rejects_unserializable_rows(self, backend, memory_storage):
        backend.insert("todos", {"id": "keep"})

        with pytest.raises(InvalidRecordError):
            backend.seed_table("todos", [{"id": "a"}, {"id": "b", "due": datetime(2024, 1, 1)}])
        with pytest.raises(InvalidRecordError):
            backend.seed_table("todos", ["not-a-row"])

        assert [r["id"] for r in backend.get_table_data("todos")] == ["keep"]
        assert list(json.loads(memory_storage.get(StorageKeys.DATABASE))["todos"]) == ["keep"]

    def test_get_table_data_returns_copies(self, backend):
        backend.insert("todos", {"id": "1", "tags": ["a"]})
        backend.get_table_data("todos")[0]["tags"].append("b")

        assert backend.get("todos", "1").record["tags"] == ["a"]

    def test_get_users_returns_copies(self, backend, signed_in):
        [record] = backend.get_users()
        record.user.user_metadata["first_name"] = "Mallory"

        assert backend.get_users()[0].user.user_metadata["first_name"] == "John"

    def test_delete_user_purges_rows_and_signs_out(self, backend, signed_in, events, recorder):
        user_id = signed_in.user.id
        backend.insert("profiles", {"id": user_id})
        backend.insert("todos", {"id": "t1", "user_id": user_id})
        backend.insert("todos", {"id": "t2", "user_id": "someone-else"})
        backend.on_auth_state_change(recorder)
        events.clear()

        assert backend.delete_user(user_id) is True

        assert backend.get_users() == []
        assert backend.get_table_data("profiles") == []
        assert [r["id"] for r in backend.get_table_data("todos")] == ["t2"]
        assert backend.current_session is None
        assert events == [("SIGNED_OUT", None)]
        assert backend.delete_user(user_id) is False

    def test_clear_all(self, backend, memory_storage, signed_in, events, recorder):
        backend.insert("todos", {"id": "1"})
        backend.on_auth_state_change(recorder)
        events.clear()

        backend.clear_all()

        assert backend.get_users() == []
        assert backend.table_names() == []
        assert backend.current_session is None
        assert all(memory_storage.get(key) is None for key in StorageKeys.ALL)

        backend.sign_up("john.doe@example.com", "pw")
        assert events == []

    def test_latency_is_simulated(self, make_backend, monkeypatch):
        sleeps = []
        monkeypatch.setattr(backend_module.time, "sleep", sleeps.append)
        backend = make_backend(latency_ms=250)

        backend.sign_up("a@b.com", "pw")
        backend.list_records("todos")

        assert sleeps == [0.25, 0.25]
