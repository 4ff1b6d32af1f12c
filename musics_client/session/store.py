"""
Session state for the user area and the admin area.

SessionStore is the single source of truth for "who is signed in". It
persists the user object and bearer token in local storage, restores
them at startup without contacting the server, and drives the one-time
guest selection merge after a successful login or registration.

State Machine:
    UNKNOWN --restore_on_startup--> GUEST | AUTHENTICATED
    GUEST --login/register ok--> AUTHENTICATED
    AUTHENTICATED --logout--> GUEST

    A failed login or registration leaves the state unchanged.

Listeners:
    subscribe(callback) registers callback(store), called after every state
    change. FavoritesStore uses it to refetch on sign-in and clear on
    sign-out.

AdminSessionStore keeps a separate namespace (adminUser / adminToken) so
that signing into the admin area never touches the user-area session.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Protocol

from musics_client.api.gateway import RemoteGateway
from musics_client.core.exceptions import AuthError, NetworkError, ValidationError
from musics_client.core.logger import get_logger
from musics_client.core.notifications import ToastQueue
from musics_client.core.storage import (
    ADMIN_TOKEN_KEY,
    ADMIN_USER_KEY,
    TOKEN_KEY,
    USER_KEY,
    Storage,
)
from musics_client.session.identity import DeviceIdentityProvider
from musics_client.utils.validation import require_login_input, require_registration_input

logger = get_logger(__name__)


MERGE_SUCCESS_MESSAGE = "Your previous selections have been linked to your account!"
ADMIN_DENIED_MESSAGE = "Access denied. Admin privileges required."
MISSING_TOKEN_MESSAGE = "Invalid response from server: missing token"


class SessionState(str, Enum):
    UNKNOWN = "unknown"
    GUEST = "guest"
    AUTHENTICATED = "authenticated"


class SelectionMerger(Protocol):
    def merge_guest_selections(self, new_user_id: str, device_id: str | None) -> bool:
        ...


def _dig(data: dict[str, Any], *path: str) -> Any | None:
    value: Any = data
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value if value not in (None, "") else None


def _payload_user_id(payload: dict[str, Any]) -> Any | None:
    return (
        _dig(payload, "id")
        or _dig(payload, "_id")
        or _dig(payload, "user", "id")
        or _dig(payload, "user", "_id")
        or _dig(payload, "userId")
    )


def _payload_token(payload: dict[str, Any]) -> Any | None:
    return (
        _dig(payload, "token")
        or _dig(payload, "accessToken")
        or _dig(payload, "user", "token")
    )


@dataclass(frozen=True)
class Session:
    """
    A signed-in user.

    Attributes:
        user_id: Server id of the user.
        display_name: Full name, or the email when the server sent none.
        auth_token: Bearer token for authenticated calls.
        email: Login email.
        user_type: "Admin" for admin accounts, else usually empty.
    """

    user_id: str
    display_name: str
    auth_token: str
    email: str = ""
    user_type: str = ""

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id) and bool(self.auth_token)

    @classmethod
    def from_auth_payload(cls, payload: dict[str, Any], email: str) -> "Session":
        """
        Build a Session from a /auth/login or /auth/register response.

        The backend has answered with the id under id, _id, user.id or
        userId, and the token under token, accessToken or user.token.

        Raises:
            AuthError: No user id or no token in the payload.
        """
        user_id = _payload_user_id(payload)
        if not user_id:
            raise AuthError("Invalid response from server: missing user id")

        token = _payload_token(payload)
        if not token:
            raise AuthError(MISSING_TOKEN_MESSAGE)

        email = str(_dig(payload, "user", "email") or _dig(payload, "email") or email).strip()
        name = (
            _dig(payload, "user", "FullName")
            or _dig(payload, "FullName")
            or _dig(payload, "user", "name")
            or _dig(payload, "name")
            or email
        )
        user_type = _dig(payload, "user", "userType") or _dig(payload, "userType") or ""

        return cls(
            user_id=str(user_id),
            display_name=str(name),
            auth_token=str(token),
            email=email,
            user_type=str(user_type),
        )

    @classmethod
    def from_stored(cls, user: Any, token: str | None) -> "Session | None":
        """Rebuild a Session from persisted data. None when unusable."""
        if not isinstance(user, dict) or not token:
            return None

        user_id = user.get("id") or user.get("userId") or user.get("_id")
        if not user_id:
            return None

        email = str(user.get("email") or "")
        return cls(
            user_id=str(user_id),
            display_name=str(user.get("name") or email),
            auth_token=token,
            email=email,
            user_type=str(user.get("userType") or ""),
        )

    def to_stored(self) -> dict[str, str]:
        """The object persisted under the 'user' key."""
        return {
            "id": self.user_id,
            "email": self.email,
            "name": self.display_name,
            "userType": self.user_type,
        }


class SessionStore:
    """
    User-area session.

    Attributes:
        state: Current SessionState.
        session: The signed-in Session, or None.
        pending: True while a login or registration call is in flight.
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        storage: Storage,
        identity: DeviceIdentityProvider,
        toasts: ToastQueue,
        merger: SelectionMerger | None = None
    ) -> None:
        self.gateway = gateway
        self.storage = storage
        self.identity = identity
        self.toasts = toasts
        self.merger = merger

        self.state = SessionState.UNKNOWN
        self.session: Session | None = None
        self.pending = False
        self._listeners: list[Callable[["SessionStore"], None]] = []

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED

    @property
    def user_id(self) -> str | None:
        return self.session.user_id if self.session else None

    @property
    def token(self) -> str | None:
        return self.session.auth_token if self.session else None

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def subscribe(self, callback: Callable[["SessionStore"], None]) -> Callable[[], None]:
        """
        Register a state change listener.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _set_state(self, state: SessionState, session: Session | None) -> None:
        self.state = state
        self.session = session
        logger.debug(f"Session state: {state.value}")
        for callback in list(self._listeners):
            callback(self)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def restore_on_startup(self) -> SessionState:
        """
        Restore a persisted session without contacting the server.

        A stored user that cannot be parsed destroys the stored session.
        """
        token = self.storage.get_item(TOKEN_KEY)
        raw_user = self.storage.get_item(USER_KEY)

        session = None
        if raw_user is not None:
            session = Session.from_stored(self.storage.get_json(USER_KEY), token)
            if session is None:
                logger.warning("Stored session is unusable, signing out")
                self._clear_persisted()

        if session is not None:
            logger.info(f"Restored session for {session.email or session.user_id}")
            self._set_state(SessionState.AUTHENTICATED, session)
        else:
            self._set_state(SessionState.GUEST, None)
        return self.state

    def login(self, email: str, password: str) -> Session:
        """
        Sign in with email and password.

        Raises:
            ValidationError: Empty email or password, nothing sent.
            AuthError: Rejected credentials, bad response or no connection.
        """
        try:
            require_login_input(email, password)
        except ValidationError as e:
            self.toasts.error(e.message)
            raise

        session = self._authenticate(lambda: self.gateway.login(email, password), email)
        self.toasts.success("Login successful!")
        return session

    def register(
        self,
        full_name: str,
        email: str,
        password: str,
        confirm_password: str | None = None
    ) -> Session:
        """
        Create an account and sign in with it.

        Raises:
            ValidationError: Local rules failed, nothing sent.
            AuthError: Rejected by the server or no connection.
        """
        try:
            require_registration_input(full_name, email, password, confirm_password)
        except ValidationError as e:
            self.toasts.error(e.message)
            raise

        session = self._authenticate(
            lambda: self.gateway.register(full_name, email, password), email
        )
        self.toasts.success("Registration successful!")
        return session

    def _authenticate(self, call: Callable[[], dict[str, Any]], email: str) -> Session:
        self.pending = True
        try:
            payload = call()
            session = Session.from_auth_payload(payload, email)
        except AuthError as e:
            logger.warning(f"Authentication failed: {e.message}")
            self.toasts.error(e.message)
            raise
        except NetworkError as e:
            logger.warning(f"Authentication failed: {e.message}")
            self.toasts.error(e.message)
            raise AuthError(e.message, details=e.details) from e
        finally:
            self.pending = False

        self.storage.set_json(USER_KEY, session.to_stored())
        self.storage.set_item(TOKEN_KEY, session.auth_token)

        self._merge_guest_state(session.user_id)

        logger.info(f"Signed in as {session.email or session.user_id}")
        self._set_state(SessionState.AUTHENTICATED, session)
        return session

    def _merge_guest_state(self, user_id: str) -> None:
        device_id = self.identity.peek_device_id()
        if not device_id or self.merger is None:
            return

        if self.merger.merge_guest_selections(user_id, device_id):
            self.toasts.success(MERGE_SUCCESS_MESSAGE)

    def logout(self) -> None:
        """Forget the session. The device id, if any, is left alone."""
        self._clear_persisted()
        self._set_state(SessionState.GUEST, None)
        self.toasts.info("Logged out successfully")

    def _clear_persisted(self) -> None:
        self.storage.remove_item(USER_KEY)
        self.storage.remove_item(TOKEN_KEY)


class AdminSessionStore:
    """
    Admin-area session, persisted under adminUser / adminToken.

    Only accounts whose userType is "Admin" may sign in.
    """

    def __init__(self, gateway: RemoteGateway, storage: Storage) -> None:
        self.gateway = gateway
        self.storage = storage
        self.session: Session | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None and self.session.is_authenticated

    @property
    def token(self) -> str | None:
        return self.session.auth_token if self.session else None

    def login(self, email: str, password: str) -> Session:
        """
        Sign into the admin area.

        Only the token is needed from the login response. The account,
        including its id, is looked up in /users with that token and must
        have userType "Admin".

        Raises:
            ValidationError: Empty email or password.
            AuthError: Rejected credentials, no token, or not an admin.
            NetworkError, ServerError: Users lookup failed.
        """
        require_login_input(email, password)

        payload = self.gateway.login(email, password)
        token = _payload_token(payload)
        if not token:
            raise AuthError(MISSING_TOKEN_MESSAGE)
        users = self.gateway.list_users(token=str(token), use_cache=False)

        wanted = email.strip().lower()
        account = next((u for u in users if u.email.strip().lower() == wanted), None)
        if account is None or not account.is_admin:
            logger.warning(f"Admin login refused for {email.strip()}")
            raise AuthError(ADMIN_DENIED_MESSAGE)

        user_id = account.id or _payload_user_id(payload)
        if not user_id:
            raise AuthError("Invalid response from server: missing user id")

        session = Session(
            user_id=str(user_id),
            display_name=account.full_name or email.strip(),
            auth_token=str(token),
            email=account.email or email.strip(),
            user_type=account.user_type,
        )
        self.storage.set_json(ADMIN_USER_KEY, {**session.to_stored(), "token": session.auth_token})
        self.storage.set_item(ADMIN_TOKEN_KEY, session.auth_token)
        self.session = session

        logger.info(f"Admin signed in: {session.email}")
        return session

    def restore(self) -> Session | None:
        """
        Restore the admin session, clearing stored data that is malformed
        or belongs to a non-admin account.
        """
        stored = self.storage.get_json(ADMIN_USER_KEY)
        if stored is None and self.storage.get_item(ADMIN_USER_KEY) is None:
            self.session = None
            return None

        token = self.storage.get_item(ADMIN_TOKEN_KEY)
        if isinstance(stored, dict) and not token:
            token = stored.get("token")

        session = Session.from_stored(stored, token)
        if session is None or session.user_type != "Admin":
            logger.warning("Stored admin session is not valid, clearing it")
            self.logout()
            return None

        self.session = session
        return session

    def logout(self) -> None:
        self.storage.remove_item(ADMIN_USER_KEY)
        self.storage.remove_item(ADMIN_TOKEN_KEY)
        self.session = None
