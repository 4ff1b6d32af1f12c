"""Test the guest device identity"""

import re

from musics_client.core.storage import DEVICE_ID_KEY, USER_KEY, MemoryStorage
from musics_client.session.identity import (
    DeviceIdentityProvider,
    generate_device_id,
    to_base36,
)


class TestDeviceId:
    def test_format(self):
        device_id = generate_device_id(now=1700000000.0)
        assert re.fullmatch(r"device_[0-9a-z]+_[0-9a-z]{9}", device_id)
        assert device_id.split("_")[1] == to_base36(1700000000000)

    def test_base36(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "z"
        assert to_base36(36) == "10"

    def test_unique(self):
        assert generate_device_id() != generate_device_id()


class TestDeviceIdentityProvider:
    """Test lazy creation and owner resolution"""

    def test_created_once_and_persisted(self, storage):
        identity = DeviceIdentityProvider(storage)

        first = identity.get_or_create_device_id()
        second = identity.get_or_create_device_id()

        assert first == second
        assert storage.get_item(DEVICE_ID_KEY) == first

    def test_peek_does_not_create(self, identity, storage):
        assert identity.peek_device_id() is None
        assert storage.get_item(DEVICE_ID_KEY) is None

    def test_clear(self, identity):
        identity.get_or_create_device_id()
        identity.clear_device_id()
        assert identity.peek_device_id() is None

    def test_current_user_id_variants(self):
        for user in ({"id": "u1"}, {"userId": "u1"}, {"_id": "u1"}):
            storage = MemoryStorage()
            storage.set_json(USER_KEY, user)
            assert DeviceIdentityProvider(storage).current_user_id() == "u1"

    def test_malformed_user_is_guest(self):
        for raw in ("{broken", '"just a string"', "{}"):
            identity = DeviceIdentityProvider(MemoryStorage({USER_KEY: raw}))
            assert identity.current_user_id() is None
            assert identity.is_guest()

    def test_owner_is_device_for_guest(self, identity):
        owner = identity.current_owner()
        assert not owner.is_user
        assert owner.value == "dev-abc"

    def test_user_wins_over_lingering_device(self, identity, storage):
        identity.get_or_create_device_id()
        storage.set_json(USER_KEY, {"id": "u1"})

        owner = identity.current_owner()

        assert owner.is_user
        assert owner.value == "u1"
