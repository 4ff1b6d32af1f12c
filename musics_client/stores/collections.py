"""
Per-user collections mirrored from the server: favorites and downloads.

Both stores follow write-after-confirm: a mutation is sent first and the
local list only changes once the server accepted it, so local state can
lag the server but never get ahead of it. Reads replace the local list
with the server's; a failed read keeps what was there and records the
error message, except a 404, which the backend uses for "no records yet".

Usage:
    favorites = FavoritesStore(gateway, session_store)
    favorites.bind()                 # follow sign-in / sign-out
    favorites.add("t1")              # True once the server accepted
    favorites.contains("t1")         # True
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from musics_client.api.gateway import RemoteGateway
from musics_client.api.models import CollectionEntry, Track
from musics_client.core.exceptions import MusicsClientError, ServerError, ValidationError
from musics_client.core.logger import get_logger, log_sync_failure
from musics_client.session.store import SessionState, SessionStore
from musics_client.utils import audio_filename

logger = get_logger(__name__)


NOT_AUTHENTICATED_MESSAGE = "User not authenticated"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class CollectionStore(ABC):
    """
    Local mirror of one server-side (owner, music) collection.

    Subclasses provide the three gateway calls and may change how a
    confirmed add is placed in the list.

    Attributes:
        entries: Current entries, in display order.
        error: Message of the last failure, or None.
        loading: True while fetch_all() runs.
        pending: Music ids with a mutation in flight.
    """

    name = "collection"

    def __init__(self, gateway: RemoteGateway, session: SessionStore) -> None:
        self.gateway = gateway
        self.session = session
        self.entries: list[CollectionEntry] = []
        self.error: str | None = None
        self.loading = False
        self.pending: set[str] = set()
        self._unsubscribe = None

    # -------------------------------------------------------------------------
    # Gateway hooks
    # -------------------------------------------------------------------------

    @abstractmethod
    def _fetch(self, owner: str) -> list[CollectionEntry]:
        ...

    @abstractmethod
    def _add(self, owner: str, music_id: str) -> Any:
        ...

    @abstractmethod
    def _remove(self, owner: str, music_id: str) -> Any:
        ...

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def owner(self) -> str | None:
        return self.session.user_id

    def contains(self, music_id: str) -> bool:
        return any(entry.music_id == music_id for entry in self.entries)

    def music_ids(self) -> list[str]:
        return [entry.music_id for entry in self.entries]

    def get(self, music_id: str) -> CollectionEntry | None:
        return next((e for e in self.entries if e.music_id == music_id), None)

    def __len__(self) -> int:
        return len(self.entries)

    # -------------------------------------------------------------------------
    # Session binding
    # -------------------------------------------------------------------------

    def bind(self) -> None:
        """Refetch on sign-in and clear on sign-out from now on."""
        if self._unsubscribe is None:
            self._unsubscribe = self.session.subscribe(self._on_session_change)

    def unbind(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_session_change(self, session: SessionStore) -> None:
        if session.state is SessionState.AUTHENTICATED:
            self.fetch_all()
        else:
            self.reset()

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def reset(self) -> None:
        self.entries = []
        self.error = None
        self.pending.clear()

    def clear_error(self) -> None:
        self.error = None

    def fetch_all(self, owner: str | None = None) -> bool:
        """
        Replace local entries with the server's set.

        Returns:
            True on success (404 included), False when the read failed;
            prior entries are kept in that case.
        """
        owner = owner or self.owner()
        if not owner:
            self.reset()
            return False

        self.loading = True
        self.error = None
        try:
            self.entries = self._fetch(owner)
            logger.debug(f"Loaded {len(self.entries)} {self.name} for {owner}")
            return True
        except ServerError as e:
            if e.is_not_found:
                self.entries = []
                return True
            self.error = e.message
            logger.error(f"Failed to fetch {self.name}: {e.message}")
            return False
        except MusicsClientError as e:
            self.error = e.message
            logger.error(f"Failed to fetch {self.name}: {e.message}")
            return False
        finally:
            self.loading = False

    def add(self, music_id: str, track: Track | None = None) -> bool:
        """
        Add music_id to the collection once the server confirms.

        Args:
            music_id: Track id to add.
            track: Optional track details to keep with the entry.

        Returns:
            True when added, False on failure (error set, list unchanged).
        """
        owner = self.owner()
        if not owner:
            self.error = NOT_AUTHENTICATED_MESSAGE
            return False

        self.pending.add(music_id)
        try:
            response = self._add(owner, music_id)
        except MusicsClientError as e:
            self.error = e.message
            log_sync_failure(f"{self.name}.add", owner, music_id, e.message, logger)
            return False
        finally:
            self.pending.discard(music_id)

        self.error = None
        self._insert(self._confirmed_entry(owner, music_id, response, track))
        return True

    def remove(self, music_id: str) -> bool:
        """
        Remove music_id once the server confirms.

        Returns:
            True when removed, False on failure (error set, entry kept).
        """
        owner = self.owner()
        if not owner:
            self.error = NOT_AUTHENTICATED_MESSAGE
            return False

        self.pending.add(music_id)
        try:
            self._remove(owner, music_id)
        except MusicsClientError as e:
            self.error = e.message
            log_sync_failure(f"{self.name}.remove", owner, music_id, e.message, logger)
            return False
        finally:
            self.pending.discard(music_id)

        self.error = None
        self.entries = [e for e in self.entries if e.music_id != music_id]
        return True

    def toggle(self, music_id: str, track: Track | None = None) -> bool:
        """Add when absent, remove when present. Returns the call's result."""
        if self.contains(music_id):
            return self.remove(music_id)
        return self.add(music_id, track)

    # -------------------------------------------------------------------------
    # Placement
    # -------------------------------------------------------------------------

    def _confirmed_entry(
        self,
        owner: str,
        music_id: str,
        response: Any,
        track: Track | None
    ) -> CollectionEntry:
        created_at = _utc_now()
        if isinstance(response, dict):
            server = CollectionEntry.from_api(response, owner)
            if server.music_id == music_id:
                created_at = server.created_at or created_at
                track = track or server.track
        return CollectionEntry(owner, music_id, created_at, track)

    def _insert(self, entry: CollectionEntry) -> None:
        if not self.contains(entry.music_id):
            self.entries.append(entry)


class FavoritesStore(CollectionStore):
    """Favorites of the signed-in user."""

    name = "favorites"

    def _fetch(self, owner: str) -> list[CollectionEntry]:
        return self.gateway.list_favorites(owner, token=self.session.token)

    def _add(self, owner: str, music_id: str) -> Any:
        return self.gateway.add_favorite(owner, music_id, token=self.session.token)

    def _remove(self, owner: str, music_id: str) -> Any:
        return self.gateway.remove_favorite(owner, music_id, token=self.session.token)

    def is_favorite(self, music_id: str) -> bool:
        return self.contains(music_id)


class DownloadsStore(CollectionStore):
    """
    Download history of the signed-in user, most recent first.

    Recording an already-downloaded track refreshes its timestamp and
    moves it to the front. The backend has no delete endpoint for
    downloads, so remove() only edits the local list.
    """

    name = "downloads"

    def _fetch(self, owner: str) -> list[CollectionEntry]:
        return self.gateway.list_downloads(owner, token=self.session.token)

    def _add(self, owner: str, music_id: str) -> Any:
        return self.gateway.record_download(owner, music_id, token=self.session.token)

    def _remove(self, owner: str, music_id: str) -> Any:
        return None

    def _insert(self, entry: CollectionEntry) -> None:
        existing = self.get(entry.music_id)
        if existing is not None and entry.track is None:
            entry = CollectionEntry(entry.owner_key, entry.music_id, entry.created_at, existing.track)
        self.entries = [entry] + [e for e in self.entries if e.music_id != entry.music_id]

    def download(
        self,
        track: Track,
        destination_dir: Path,
        show_progress: bool = True
    ) -> Path | None:
        """
        Record a download of track, then save its audio under destination_dir.

        Returns:
            Path of the saved file, or None on failure (error set).

        Raises:
            ValidationError: The track has no audio source.
        """
        if not track.is_playable:
            raise ValidationError(f"'{track.title}' has no audio to download", field="audio_url")

        if not self.add(track.id, track):
            return None

        destination = destination_dir / audio_filename(track.title, track.artist, track.audio_url)
        try:
            return self.gateway.fetch_audio(track.audio_url, destination, show_progress)
        except MusicsClientError as e:
            self.error = e.message
            logger.error(f"Failed to save '{track.title}': {e.message}")
            return None
