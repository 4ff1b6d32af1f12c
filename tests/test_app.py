"""End-to-end flows through the composed client"""

import pytest

from musics_client.app import MusicsApp
from musics_client.core.config import load_config
from musics_client.core.storage import DEVICE_ID_KEY, MemoryStorage
from musics_client.player.backend import HeadlessAudioBackend
from musics_client.session.store import MERGE_SUCCESS_MESSAGE, SessionState

from conftest import FakeResponse, RoutedSession


@pytest.fixture
def config(temp_dir):
    config_file = temp_dir / "config.yaml"
    config_file.write_text(
        "api:\n"
        "  base_url: https://api.test/\n"
        "storage:\n"
        f"  directory: {temp_dir / 'state'}\n"
    )
    return load_config(config_file, use_env=False)


@pytest.fixture
def routes():
    return RoutedSession({
        ("GET", "/musics"): FakeResponse(200, [
            {"_id": "t1", "title": "One", "musicUrl": "https://cdn.test/t1.mp3"},
            {"_id": "t2", "title": "Two", "musicUrl": "https://cdn.test/t2.mp3"},
        ]),
        ("POST", "/selection-musics"): FakeResponse(201, {"message": "selected"}),
        ("POST", "/selection-musics/associate"): FakeResponse(200, {"modified": 1}),
        ("POST", "/auth/register"): FakeResponse(201, {
            "message": "User registered",
            "userId": "u1",
            "token": "tok-new",
        }),
        ("POST", "/favorites"): FakeResponse(201, {"message": "added"}),
    })


@pytest.fixture
def app(config, routes):
    app = MusicsApp(
        config,
        storage=MemoryStorage(),
        http_session=routes,
        audio_backend=HeadlessAudioBackend(),
    ).start()
    yield app
    app.close()


class TestGuestToAccount:
    """Test a guest selection surviving registration"""

    def test_selection_follows_new_account(self, app, routes):
        app.catalog.fetch_tracks()
        assert app.selections.toggle_selection("t1") is True
        assert app.storage.get_item(DEVICE_ID_KEY) is not None

        app.session.register("Ana Lima", "ana@example.com", "secret", "secret")

        assert app.session.state is SessionState.AUTHENTICATED
        assert app.session.user_id == "u1"
        assert app.selections.is_selected("t1")
        assert app.storage.get_item(DEVICE_ID_KEY) is None
        messages = [t.message for t in app.toasts.drain()]
        assert MERGE_SUCCESS_MESSAGE in messages
        assert "Registration successful!" in messages

        # favorites were fetched on sign-in; the 404 means none yet
        assert "/favorites/users/u1" in routes.paths("GET")
        assert app.favorites.entries == []
        assert app.favorites.error is None

    def test_register_without_guest_activity(self, app, routes):
        app.session.register("Ana Lima", "ana@example.com", "secret")
        assert "/selection-musics/associate" not in routes.paths()


class TestSignedInFlow:
    def test_favorite_and_play(self, app):
        app.session.register("Ana Lima", "ana@example.com", "secret")
        app.catalog.fetch_tracks()
        track = app.catalog.find("t2")

        assert app.favorites.add(track.id, track) is True
        assert app.player.play_track(track) is True
        assert app.player.state.current_track is track

    def test_logout_clears_collections(self, app):
        app.session.register("Ana Lima", "ana@example.com", "secret")
        app.favorites.add("t1")

        app.session.logout()

        assert app.favorites.entries == []
        assert app.session.state is SessionState.GUEST


class TestStartup:
    def test_gateway_uses_config(self, app):
        assert app.gateway.base_url == "https://api.test"

    def test_restores_previous_session(self, config, routes):
        storage = MemoryStorage()
        storage.set_json("user", {"id": "u1", "email": "ana@example.com"})
        storage.set_item("token", "tok")
        routes.routes[("GET", "/favorites/users/u1")] = FakeResponse(200, [{"musicId": "t1"}])

        app = MusicsApp(config, storage=storage, http_session=routes).start()

        assert app.session.is_authenticated
        assert app.favorites.music_ids() == ["t1"]
        app.close()

    def test_unbound_start_makes_no_requests(self, config, routes):
        storage = MemoryStorage()
        storage.set_json("user", {"id": "u1"})
        storage.set_item("token", "tok")

        app = MusicsApp(config, storage=storage, http_session=routes).start(
            bind_collections=False
        )

        assert app.session.is_authenticated
        assert routes.calls == []
        app.close()
