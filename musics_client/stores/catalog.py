"""
Catalog and user listings for views.

CatalogStore wraps the gateway's cached reads with per-collection loading
and error state. A failed refresh keeps the previous data on screen.
"""

from musics_client.api.gateway import RemoteGateway
from musics_client.api.models import CatalogSections, Track, UserAccount
from musics_client.core.cache import CATALOG_KEY, USERS_KEY
from musics_client.core.exceptions import MusicsClientError, NetworkError
from musics_client.core.logger import get_logger

logger = get_logger(__name__)


CONNECTION_ERROR_MESSAGE = (
    "Unable to connect to music server. "
    "Please check your internet connection and try again."
)


class CatalogStore:
    """
    Attributes:
        tracks: Last loaded catalog.
        users: Last loaded user accounts (admin area).
        loading: Per-key flags, keys CATALOG_KEY and USERS_KEY.
        errors: Per-key last error message or None.
    """

    def __init__(self, gateway: RemoteGateway) -> None:
        self.gateway = gateway
        self.tracks: list[Track] = []
        self.users: list[UserAccount] = []
        self.loading = {CATALOG_KEY: False, USERS_KEY: False}
        self.errors: dict[str, str | None] = {CATALOG_KEY: None, USERS_KEY: None}

    @property
    def sections(self) -> CatalogSections:
        return CatalogSections.from_tracks(self.tracks)

    def fetch_tracks(self, force_refresh: bool = False) -> bool:
        """Load the catalog, from cache unless force_refresh."""
        self.loading[CATALOG_KEY] = True
        try:
            self.tracks = self.gateway.list_catalog(use_cache=not force_refresh)
            self.errors[CATALOG_KEY] = None
            return True
        except MusicsClientError as e:
            self.errors[CATALOG_KEY] = self._describe(e)
            logger.error(f"Failed to load catalog: {e.message}")
            return False
        finally:
            self.loading[CATALOG_KEY] = False

    def fetch_users(self, token: str | None, force_refresh: bool = False) -> bool:
        self.loading[USERS_KEY] = True
        try:
            self.users = self.gateway.list_users(token=token, use_cache=not force_refresh)
            self.errors[USERS_KEY] = None
            return True
        except MusicsClientError as e:
            self.errors[USERS_KEY] = self._describe(e)
            logger.error(f"Failed to load users: {e.message}")
            return False
        finally:
            self.loading[USERS_KEY] = False

    def refresh_all(self, token: str | None = None) -> bool:
        """
        Drop every cached snapshot and reload.

        Users are only reloaded when a token is given.
        """
        self.gateway.invalidate()
        ok = self.fetch_tracks(force_refresh=True)
        if token:
            ok = self.fetch_users(token, force_refresh=True) and ok
        return ok

    def find(self, track_id: str) -> Track | None:
        return next((t for t in self.tracks if t.id == track_id), None)

    @staticmethod
    def _describe(error: MusicsClientError) -> str:
        if isinstance(error, NetworkError):
            return CONNECTION_ERROR_MESSAGE
        return error.message
