"""
Device identity for guests.

A guest (nobody signed in) still needs a stable handle so that track
selections made before registering can be claimed afterwards. The handle
is an opaque device id, generated lazily on first need and persisted in
local storage until a successful merge retires it.

Format:
    device_<milliseconds since epoch in base 36>_<9 random base-36 chars>

Usage:
    identity = DeviceIdentityProvider(storage)
    owner = identity.current_owner()   # OwnerKey for user or device
    identity.clear_device_id()         # after a successful merge
"""

import secrets
import string
import time
from typing import Callable

from musics_client.api.models import OwnerKey
from musics_client.core.logger import get_logger
from musics_client.core.storage import DEVICE_ID_KEY, USER_KEY, Storage

logger = get_logger(__name__)


_BASE36_ALPHABET = string.digits + string.ascii_lowercase
_RANDOM_PART_LENGTH = 9


def to_base36(number: int) -> str:
    """Encode a non-negative integer in lowercase base 36."""
    if number < 0:
        raise ValueError("number must be non-negative")
    if number == 0:
        return "0"

    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_device_id(now: float | None = None) -> str:
    """Create a fresh device id from the wall clock and a random suffix."""
    millis = int((time.time() if now is None else now) * 1000)
    suffix = "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(_RANDOM_PART_LENGTH))
    return f"device_{to_base36(millis)}_{suffix}"


class DeviceIdentityProvider:
    """
    Answers "who owns this write?" for every store.

    Attributes:
        storage: Where the device id and the signed-in user are persisted.
    """

    def __init__(
        self,
        storage: Storage,
        id_factory: Callable[[], str] = generate_device_id
    ) -> None:
        self.storage = storage
        self._id_factory = id_factory

    def get_or_create_device_id(self) -> str:
        """Return the persisted device id, generating and saving one if absent."""
        device_id = self.storage.get_item(DEVICE_ID_KEY)
        if device_id:
            return device_id

        device_id = self._id_factory()
        self.storage.set_item(DEVICE_ID_KEY, device_id)
        logger.debug(f"Created device id {device_id}")
        return device_id

    def peek_device_id(self) -> str | None:
        """Return the persisted device id without creating one."""
        return self.storage.get_item(DEVICE_ID_KEY) or None

    def clear_device_id(self) -> None:
        self.storage.remove_item(DEVICE_ID_KEY)
        logger.debug("Device id cleared")

    def current_user_id(self) -> str | None:
        """
        Return the signed-in user's id from storage.

        Accepts id, userId or _id. Missing or malformed stored data yields
        None; corruption is logged, never raised.
        """
        user = self.storage.get_json(USER_KEY)
        if user is None:
            return None

        if not isinstance(user, dict):
            logger.warning("Stored user is not an object, treating as guest")
            return None

        for key in ("id", "userId", "_id"):
            value = user.get(key)
            if value:
                return str(value)
        return None

    def is_guest(self) -> bool:
        return not self.current_user_id()

    def current_owner(self) -> OwnerKey:
        """
        Scope for the next ownership write.

        The user id wins whenever one is stored, even if a device id is
        still lingering; otherwise the device id (created on demand).
        """
        user_id = self.current_user_id()
        if user_id:
            return OwnerKey.user(user_id)
        return OwnerKey.device(self.get_or_create_device_id())
