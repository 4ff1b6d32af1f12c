"""Test user and admin sessions"""

from unittest.mock import Mock

import pytest
import requests

from musics_client.core.exceptions import AuthError, ValidationError
from musics_client.core.notifications import Severity
from musics_client.core.storage import (
    ADMIN_TOKEN_KEY,
    ADMIN_USER_KEY,
    DEVICE_ID_KEY,
    TOKEN_KEY,
    USER_KEY,
)
from musics_client.session.store import (
    MERGE_SUCCESS_MESSAGE,
    AdminSessionStore,
    Session,
    SessionState,
    SessionStore,
)

from conftest import FakeResponse


@pytest.fixture
def merger():
    merger = Mock()
    merger.merge_guest_selections.return_value = True
    return merger


@pytest.fixture
def store(gateway, storage, identity, toasts, merger):
    store = SessionStore(gateway, storage, identity, toasts, merger=merger)
    store.restore_on_startup()
    return store


def _messages(toasts):
    return [(t.severity, t.message) for t in toasts.drain()]


class TestSessionModel:
    """Test Session construction from auth payloads"""

    @pytest.mark.parametrize("payload", [
        {"id": "u1", "token": "tok"},
        {"_id": "u1", "accessToken": "tok"},
        {"user": {"id": "u1", "token": "tok"}},
        {"userId": "u1", "user": {"token": "tok"}},
    ])
    def test_id_and_token_fallbacks(self, payload):
        session = Session.from_auth_payload(payload, "a@b.c")
        assert session.user_id == "u1"
        assert session.auth_token == "tok"
        assert session.is_authenticated

    def test_name_falls_back_to_email(self):
        session = Session.from_auth_payload({"id": "u1", "token": "t"}, " a@b.c ")
        assert session.display_name == "a@b.c"

    def test_missing_id(self):
        with pytest.raises(AuthError, match="missing user id"):
            Session.from_auth_payload({"token": "tok"}, "a@b.c")

    def test_stored_round_trip(self):
        session = Session("u1", "Ana", "tok", "a@b.c")
        assert Session.from_stored(session.to_stored(), "tok") == session


class TestRestore:
    def test_guest_when_nothing_stored(self, gateway, storage, identity, toasts):
        store = SessionStore(gateway, storage, identity, toasts)
        assert store.state is SessionState.UNKNOWN

        assert store.restore_on_startup() is SessionState.GUEST
        assert store.session is None

    def test_authenticated_from_storage(self, gateway, storage, identity, toasts, http):
        storage.set_json(USER_KEY, {"id": "u1", "email": "a@b.c", "name": "Ana"})
        storage.set_item(TOKEN_KEY, "tok")
        store = SessionStore(gateway, storage, identity, toasts)

        assert store.restore_on_startup() is SessionState.AUTHENTICATED
        assert store.user_id == "u1"
        assert store.token == "tok"
        http.request.assert_not_called()

    def test_malformed_user_destroys_session(self, gateway, storage, identity, toasts):
        storage.set_item(USER_KEY, "{broken")
        storage.set_item(TOKEN_KEY, "tok")
        store = SessionStore(gateway, storage, identity, toasts)

        assert store.restore_on_startup() is SessionState.GUEST
        assert storage.get_item(USER_KEY) is None
        assert storage.get_item(TOKEN_KEY) is None

    def test_user_without_token_is_guest(self, gateway, storage, identity, toasts):
        storage.set_json(USER_KEY, {"id": "u1"})
        store = SessionStore(gateway, storage, identity, toasts)
        assert store.restore_on_startup() is SessionState.GUEST


class TestLogin:
    """Test login transitions"""

    def test_success(self, store, http, storage, toasts, login_payload):
        http.request.return_value = FakeResponse(200, login_payload)

        session = store.login("ana@example.com", "secret")

        assert store.state is SessionState.AUTHENTICATED
        assert session.display_name == "Ana Lima"
        assert storage.get_json(USER_KEY)["id"] == "u1"
        assert storage.get_item(TOKEN_KEY) == "tok-123"
        assert (Severity.SUCCESS, "Login successful!") in _messages(toasts)
        assert not store.pending

    def test_pending_while_in_flight(self, store, http, login_payload):
        seen = []

        def respond(*args, **kwargs):
            seen.append(store.pending)
            return FakeResponse(200, login_payload)

        http.request.side_effect = respond
        store.login("ana@example.com", "secret")

        assert seen == [True]
        assert store.pending is False

    def test_rejected_keeps_state(self, store, http, storage, toasts):
        http.request.return_value = FakeResponse(401, {"message": "Invalid credentials"})

        with pytest.raises(AuthError, match="Invalid credentials"):
            store.login("ana@example.com", "wrong")

        assert store.state is SessionState.GUEST
        assert storage.get_item(TOKEN_KEY) is None
        assert (Severity.ERROR, "Invalid credentials") in _messages(toasts)
        assert not store.pending

    def test_missing_user_id_fails(self, store, http, storage):
        http.request.return_value = FakeResponse(200, {"token": "tok"})

        with pytest.raises(AuthError):
            store.login("ana@example.com", "secret")

        assert store.state is SessionState.GUEST
        assert storage.get_item(USER_KEY) is None

    def test_network_failure_is_auth_error(self, store, http):
        http.request.side_effect = requests.ConnectionError("down")

        with pytest.raises(AuthError, match="Unable to connect"):
            store.login("ana@example.com", "secret")

    def test_empty_input_sends_nothing(self, store, http):
        with pytest.raises(ValidationError):
            store.login("  ", "secret")
        with pytest.raises(ValidationError):
            store.login("ana@example.com", "")
        http.request.assert_not_called()


class TestGuestMerge:
    """Test the merge hook run after sign-in"""

    def test_merge_runs_when_device_id_exists(self, store, http, identity, merger, toasts,
                                              login_payload):
        identity.get_or_create_device_id()
        http.request.return_value = FakeResponse(200, login_payload)

        store.login("ana@example.com", "secret")

        merger.merge_guest_selections.assert_called_once_with("u1", "dev-abc")
        assert (Severity.SUCCESS, MERGE_SUCCESS_MESSAGE) in _messages(toasts)

    def test_no_merge_without_device_id(self, store, http, merger, login_payload):
        http.request.return_value = FakeResponse(200, login_payload)

        store.login("ana@example.com", "secret")

        merger.merge_guest_selections.assert_not_called()

    def test_merge_failure_does_not_fail_login(self, store, http, identity, merger, toasts,
                                               login_payload):
        identity.get_or_create_device_id()
        merger.merge_guest_selections.return_value = False
        http.request.return_value = FakeResponse(200, login_payload)

        store.login("ana@example.com", "secret")

        assert store.is_authenticated
        assert MERGE_SUCCESS_MESSAGE not in [m for _, m in _messages(toasts)]


class TestRegister:
    @pytest.mark.parametrize("args, message", [
        (("Al", "a@b.c", "secret", "secret"), "Full Name must be at least 3 characters"),
        (("Ana Lima", "ab.c", "secret", "secret"), "Please enter a valid email address"),
        (("Ana Lima", "a@b.c", "123", "123"), "Password must be at least 6 characters"),
        (("Ana Lima", "a@b.c", "secret", "secreT"), "Passwords don't match"),
    ])
    def test_local_validation(self, store, http, args, message):
        with pytest.raises(ValidationError, match=message):
            store.register(*args)
        http.request.assert_not_called()
        assert store.state is SessionState.GUEST

    def test_success(self, store, http, toasts):
        http.request.return_value = FakeResponse(201, {"userId": "u7", "token": "t7"})

        store.register("Ana Lima", "ana@example.com", "secret", "secret")

        assert store.user_id == "u7"
        assert (Severity.SUCCESS, "Registration successful!") in _messages(toasts)


class TestLogout:
    def test_clears_session_but_not_device(self, store, http, storage, identity, toasts,
                                           login_payload):
        http.request.return_value = FakeResponse(200, login_payload)
        store.login("ana@example.com", "secret")
        storage.set_item(DEVICE_ID_KEY, "dev-lingering")
        toasts.drain()

        store.logout()

        assert store.state is SessionState.GUEST
        assert store.session is None
        assert storage.get_item(USER_KEY) is None
        assert storage.get_item(TOKEN_KEY) is None
        assert identity.peek_device_id() == "dev-lingering"
        assert _messages(toasts) == [(Severity.INFO, "Logged out successfully")]


class TestListeners:
    def test_notified_on_each_change(self, store, http, login_payload):
        states = []
        unsubscribe = store.subscribe(lambda s: states.append(s.state))
        http.request.return_value = FakeResponse(200, login_payload)

        store.login("ana@example.com", "secret")
        store.logout()
        unsubscribe()
        store.logout()

        assert states == [SessionState.AUTHENTICATED, SessionState.GUEST]


class TestAdminSession:
    """Test the admin area namespace"""

    def _users(self, user_type):
        return FakeResponse(200, [
            {"_id": "u1", "email": "Ana@Example.com", "FullName": "Ana", "userType": user_type},
            {"_id": "u2", "email": "other@example.com", "userType": "User"},
        ])

    def test_admin_login(self, gateway, http, storage, login_payload):
        http.request.side_effect = [FakeResponse(200, login_payload), self._users("Admin")]
        admin = AdminSessionStore(gateway, storage)

        session = admin.login("ana@example.com", "secret")

        assert session.user_type == "Admin"
        assert admin.is_authenticated
        assert storage.get_item(ADMIN_TOKEN_KEY) == "tok-123"
        assert storage.get_json(ADMIN_USER_KEY)["userType"] == "Admin"
        assert storage.get_item(TOKEN_KEY) is None
        users_call = http.request.call_args_list[1]
        assert users_call.kwargs["headers"]["Authorization"] == "Bearer tok-123"

    def test_non_admin_denied(self, gateway, http, storage, login_payload):
        http.request.side_effect = [FakeResponse(200, login_payload), self._users("User")]
        admin = AdminSessionStore(gateway, storage)

        with pytest.raises(AuthError, match="Access denied. Admin privileges required."):
            admin.login("ana@example.com", "secret")

        assert not admin.is_authenticated
        assert storage.get_item(ADMIN_USER_KEY) is None

    def test_token_only_login_payload(self, gateway, http, storage):
        http.request.side_effect = [FakeResponse(200, {"token": "tok"}), self._users("Admin")]
        admin = AdminSessionStore(gateway, storage)

        session = admin.login("ana@example.com", "secret")

        assert session.user_id == "u1"
        assert session.display_name == "Ana"
        assert storage.get_item(ADMIN_TOKEN_KEY) == "tok"
        assert storage.get_json(ADMIN_USER_KEY)["id"] == "u1"

    def test_login_payload_without_token(self, gateway, http, storage):
        http.request.side_effect = [FakeResponse(200, {"user": {"id": "u1"}})]
        admin = AdminSessionStore(gateway, storage)

        with pytest.raises(AuthError, match="missing token"):
            admin.login("ana@example.com", "secret")

        assert http.request.call_count == 1
        assert storage.get_item(ADMIN_USER_KEY) is None

    def test_restore_valid(self, gateway, storage):
        storage.set_json(ADMIN_USER_KEY, {"id": "u1", "email": "a@b.c", "userType": "Admin"})
        storage.set_item(ADMIN_TOKEN_KEY, "tok")

        session = AdminSessionStore(gateway, storage).restore()

        assert session.user_id == "u1"

    @pytest.mark.parametrize("raw", [
        '{"id": "u1", "userType": "User"}',
        "{broken",
    ])
    def test_restore_clears_invalid(self, gateway, storage, raw):
        storage.set_item(ADMIN_USER_KEY, raw)
        storage.set_item(ADMIN_TOKEN_KEY, "tok")
        admin = AdminSessionStore(gateway, storage)

        assert admin.restore() is None
        assert storage.get_item(ADMIN_USER_KEY) is None
        assert storage.get_item(ADMIN_TOKEN_KEY) is None

    def test_logout(self, gateway, storage):
        storage.set_item(ADMIN_TOKEN_KEY, "tok")
        admin = AdminSessionStore(gateway, storage)
        admin.logout()
        assert storage.get_item(ADMIN_TOKEN_KEY) is None
