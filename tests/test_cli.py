"""Test the command-line interface"""

import pytest
from click.testing import CliRunner

from musics_client.app import MusicsApp
from musics_client.cli import CliState, cli
from musics_client.core.config import load_config
from musics_client.core.storage import MemoryStorage

from conftest import FakeResponse, RoutedSession


@pytest.fixture
def routes(login_payload):
    return RoutedSession({
        ("GET", "/musics"): FakeResponse(200, [
            {"_id": "t1", "title": "First Song", "artist": "Band", "duration": 125,
             "musicUrl": "https://cdn.test/t1.mp3"},
        ]),
        ("POST", "/auth/login"): FakeResponse(200, login_payload),
        ("POST", "/selection-musics"): FakeResponse(201, {}),
    })


@pytest.fixture
def app(temp_dir, routes):
    config_file = temp_dir / "config.yaml"
    config_file.write_text("api:\n  base_url: https://api.test\n")
    config = load_config(config_file, use_env=False)
    return MusicsApp(config, storage=MemoryStorage(), http_session=routes).start(
        bind_collections=False
    )


@pytest.fixture
def runner(app, monkeypatch):
    monkeypatch.setattr(CliState, "get_app", lambda self: app)
    return CliRunner()


class TestCli:
    """Test commands against a routed backend"""

    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "favorites" in result.output

    def test_catalog(self, runner):
        result = runner.invoke(cli, ["catalog"])
        assert result.exit_code == 0
        assert "First Song" in result.output
        assert "2:05" in result.output

    def test_catalog_failure(self, runner, routes):
        routes.routes[("GET", "/musics")] = FakeResponse(500, {"message": "db down"})
        result = runner.invoke(cli, ["catalog"])
        assert result.exit_code == 1
        assert "db down" in result.output

    def test_health(self, runner):
        result = runner.invoke(cli, ["health"])
        assert result.exit_code == 0
        assert "healthy" in result.output

    def test_health_unhealthy(self, runner, routes):
        routes.routes[("GET", "/musics")] = FakeResponse(503, text="")
        result = runner.invoke(cli, ["health"])
        assert result.exit_code == 3
        assert "API returned status 503" in result.output

    def test_login_and_whoami(self, runner):
        result = runner.invoke(
            cli, ["login", "--email", "ana@example.com", "--password", "secret"]
        )
        assert result.exit_code == 0
        assert "Signed in as Ana Lima" in result.output

        result = runner.invoke(cli, ["whoami"])
        assert "Ana Lima <ana@example.com>" in result.output

    def test_login_rejected(self, runner, routes):
        routes.routes[("POST", "/auth/login")] = FakeResponse(
            401, {"message": "Invalid credentials"}
        )
        result = runner.invoke(cli, ["login", "--email", "a@b.c", "--password", "x"])
        assert result.exit_code == 4
        assert "Invalid credentials" in result.output

    def test_register_validation(self, runner, routes):
        result = runner.invoke(cli, [
            "register", "--name", "Ana Lima", "--email", "a@b.c",
            "--password", "secret", "--confirm-password", "other",
        ])
        assert result.exit_code == 4
        assert "Passwords don't match" in result.output
        assert routes.calls == []

    def test_favorites_requires_login(self, runner):
        result = runner.invoke(cli, ["favorites", "list"])
        assert result.exit_code == 4
        assert "not logged in" in result.output

    def test_guest_select(self, runner):
        result = runner.invoke(cli, ["select", "t1"])
        assert result.exit_code == 0
        assert "Selected t1 (deviceId=device_" in result.output

    def test_admin_commands_require_admin(self, runner):
        result = runner.invoke(cli, ["admin", "delete-track", "t1", "--yes"])
        assert result.exit_code == 4
        assert "admin login" in result.output
