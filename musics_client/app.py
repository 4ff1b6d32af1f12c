"""
Composition root for musics-client.

MusicsApp builds every component once and wires them together, so there
is exactly one cache, one gateway, one session store and one player per
client. Nothing in the package holds module-level state; tests build a
MusicsApp with a MemoryStorage and a mocked HTTP session instead.

Usage:
    config = load_config()
    app = MusicsApp(config).start()
    app.catalog.fetch_tracks()
    app.session.login("ana@example.com", "secret")
    app.favorites.add(app.catalog.tracks[0].id)
    app.close()
"""

import time
from typing import Callable

import requests

from musics_client.api.gateway import RemoteGateway
from musics_client.core.cache import TTLCache
from musics_client.core.config import Config
from musics_client.core.logger import get_logger
from musics_client.core.notifications import ToastQueue
from musics_client.core.storage import SQLiteStorage, Storage
from musics_client.player.backend import AudioBackend
from musics_client.player.engine import PlaybackEngine
from musics_client.session.identity import DeviceIdentityProvider
from musics_client.session.store import AdminSessionStore, SessionStore
from musics_client.stores.catalog import CatalogStore
from musics_client.stores.collections import DownloadsStore, FavoritesStore
from musics_client.stores.selections import SelectionStore

logger = get_logger(__name__)


class MusicsApp:
    """
    All client components, wired.

    Attributes:
        config: The loaded configuration.
        storage: Durable key/value store.
        cache: Snapshot cache owned by this app.
        gateway: HTTP client.
        identity: Guest device identity.
        toasts: Notification queue.
        selections: Selection store, also the session's guest merger.
        session: User-area session.
        admin: Admin-area session.
        favorites, downloads: Collection stores bound to the session.
        catalog: Catalog and users listings.
        player: The shared playback engine.
    """

    def __init__(
        self,
        config: Config,
        storage: Storage | None = None,
        http_session: requests.Session | None = None,
        audio_backend: AudioBackend | None = None,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.config = config
        self.storage = storage or SQLiteStorage(config.storage.database_path)

        self.cache = TTLCache(default_ttl=config.cache.catalog_ttl, clock=clock)
        self.gateway = RemoteGateway.from_config(config, self.cache, session=http_session)

        self.identity = DeviceIdentityProvider(self.storage)
        self.toasts = ToastQueue(config.notifications.toast_duration, clock=clock)

        self.selections = SelectionStore(self.gateway, self.identity)
        self.session = SessionStore(
            self.gateway, self.storage, self.identity, self.toasts, merger=self.selections
        )
        self.admin = AdminSessionStore(self.gateway, self.storage)

        self.favorites = FavoritesStore(self.gateway, self.session)
        self.downloads = DownloadsStore(self.gateway, self.session)

        self.catalog = CatalogStore(self.gateway)
        self.player = PlaybackEngine(audio_backend, default_volume=config.player.default_volume)

    def start(self, bind_collections: bool = True) -> "MusicsApp":
        """
        Restore persisted sessions.

        Args:
            bind_collections: Make favorites and downloads follow the
                              session (load on sign-in, clear on sign-out).
                              The CLI passes False and loads on demand.
        """
        if bind_collections:
            self.favorites.bind()
            self.downloads.bind()

        state = self.session.restore_on_startup()
        self.admin.restore()
        logger.debug(f"Client started as {state.value}")
        return self

    def close(self) -> None:
        self.player.stop()
        if isinstance(self.storage, SQLiteStorage):
            self.storage.close()
