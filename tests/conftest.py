"""Test configuration and fixtures"""

import json
import tempfile
from pathlib import Path
from unittest.mock import Mock
from urllib.parse import urlparse

import pytest

from musics_client.api.gateway import RemoteGateway
from musics_client.core.cache import TTLCache
from musics_client.core.notifications import ToastQueue
from musics_client.core.storage import MemoryStorage
from musics_client.session.identity import DeviceIdentityProvider

API_BASE = "https://api.test"

_NO_JSON = object()


class FakeResponse:
    """Minimal stand-in for requests.Response"""

    def __init__(self, status=200, json_data=_NO_JSON, text=None, url=API_BASE,
                 headers=None, chunks=None):
        self.status_code = status
        self._json = json_data
        if text is None:
            text = "" if json_data is _NO_JSON else json.dumps(json_data)
        self.text = text
        self.url = url
        self.headers = headers or {}
        self._chunks = chunks or []
        self.closed = False

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._json is _NO_JSON:
            raise ValueError("No JSON object could be decoded")
        return self._json

    def iter_content(self, chunk_size=1):
        yield from self._chunks

    def close(self):
        self.closed = True


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class RoutedSession:
    """
    HTTP session double that answers by (method, path).

    Routes map to a FakeResponse or to a callable taking the request
    kwargs and returning one. Every request is recorded in `calls`.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def request(self, method, url, **kwargs):
        path = urlparse(url).path
        self.calls.append((method, path, kwargs))
        handler = self.routes.get((method, path))
        if handler is None:
            return FakeResponse(404, {"message": f"No route for {method} {path}"}, url=url)
        response = handler(kwargs) if callable(handler) else handler
        response.url = url
        return response

    def paths(self, method=None):
        return [path for m, path, _ in self.calls if method is None or m == method]


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def http():
    """Mocked requests.Session; set http.request.return_value / side_effect"""
    session = Mock()
    session.request.return_value = FakeResponse(200, {})
    return session


@pytest.fixture
def cache(clock):
    return TTLCache(clock=clock)


@pytest.fixture
def gateway(http, cache):
    return RemoteGateway(API_BASE, cache=cache, session=http)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def identity(storage):
    return DeviceIdentityProvider(storage, id_factory=lambda: "dev-abc")


@pytest.fixture
def toasts(clock):
    return ToastQueue(default_duration=5.0, clock=clock)


@pytest.fixture
def sample_track_data():
    """Track as returned by GET /musics"""
    return {
        "_id": "t1",
        "title": "Test Song",
        "artist": "Test Artist",
        "genre": "Rock",
        "duration": 210,
        "thumbnailUrl": "https://cdn.test/t1.jpg",
        "musicUrl": "https://cdn.test/t1.mp3",
    }


@pytest.fixture
def login_payload():
    """Response of POST /auth/login"""
    return {
        "message": "Login successful",
        "token": "tok-123",
        "user": {"id": "u1", "FullName": "Ana Lima", "email": "ana@example.com"},
    }
