"""
Track selections, available to guests and signed-in users alike.

A guest's selections are stored on the server under the device id. When
that guest logs in or registers, merge_guest_selections() asks the server
to re-own every device-scoped selection to the new user id; on success
the device id is retired so the merge cannot run twice.

Merge Protocol:
    1. No device id        -> nothing to merge, no request
    2. One associate call  -> POST /selection-musics/associate
    3. Success             -> clear device id, local set kept (now user-owned)
    4. Failure             -> logged and reported to the sync failure log;
                              login still succeeds, device id kept
"""

from musics_client.api.gateway import RemoteGateway
from musics_client.api.models import OwnerKey
from musics_client.core.exceptions import MusicsClientError, ServerError
from musics_client.core.logger import get_logger, log_sync_failure
from musics_client.session.identity import DeviceIdentityProvider

logger = get_logger(__name__)


class SelectionStore:
    """
    Attributes:
        error: Message of the last failure, or None.
        pending: Music ids with a request in flight.
    """

    def __init__(self, gateway: RemoteGateway, identity: DeviceIdentityProvider) -> None:
        self.gateway = gateway
        self.identity = identity
        self.error: str | None = None
        self.pending: set[str] = set()
        self._selected: list[str] = []
        self._owner: OwnerKey | None = None

    @property
    def selected_ids(self) -> list[str]:
        return list(self._selected)

    @property
    def owner(self) -> OwnerKey | None:
        """The owner the local set was last loaded or written for."""
        return self._owner

    def is_selected(self, music_id: str) -> bool:
        return music_id in self._selected

    def fetch(self, owner: OwnerKey | None = None) -> bool:
        """Replace the local set with the server's. A 404 means no selections."""
        owner = owner or self.identity.current_owner()
        try:
            entries = self.gateway.list_selections(owner)
        except ServerError as e:
            if not e.is_not_found:
                self.error = e.message
                logger.error(f"Failed to fetch selections: {e.message}")
                return False
            entries = []
        except MusicsClientError as e:
            self.error = e.message
            logger.error(f"Failed to fetch selections: {e.message}")
            return False

        self._owner = owner
        self._selected = [entry.music_id for entry in entries]
        self.error = None
        return True

    def toggle_selection(self, music_id: str) -> bool:
        """
        Select music_id, or unselect it when already selected.

        The owner is the signed-in user when there is one, else the device
        id (created on first use). The local set changes only after the
        server confirms.

        Returns:
            True when the server accepted the change.
        """
        owner = self.identity.current_owner()
        if self._owner is not None and owner != self._owner:
            # Owner changed since the set was loaded
            self._selected = []
        self._owner = owner

        selecting = not self.is_selected(music_id)
        operation = "selection.add" if selecting else "selection.remove"

        self.pending.add(music_id)
        try:
            if selecting:
                self.gateway.add_selection(music_id, owner)
            else:
                self.gateway.remove_selection(music_id, owner)
        except MusicsClientError as e:
            self.error = e.message
            log_sync_failure(operation, owner.value, music_id, e.message, logger)
            return False
        finally:
            self.pending.discard(music_id)

        if selecting:
            self._selected.append(music_id)
        else:
            self._selected.remove(music_id)
        self.error = None
        return True

    def merge_guest_selections(self, new_user_id: str, device_id: str | None) -> bool:
        """
        Re-own the guest's selections to new_user_id.

        Returns:
            True when a merge happened. False when there was nothing to
            merge or the server refused; failures are never raised.
        """
        if not device_id:
            return False

        try:
            self.gateway.merge_selections(new_user_id, device_id)
        except MusicsClientError as e:
            log_sync_failure("selection.merge", device_id, None, e.message, logger)
            return False

        self.identity.clear_device_id()
        if self._owner is None or not self._owner.is_user:
            self._owner = OwnerKey.user(new_user_id)
        logger.info(f"Merged guest selections into user {new_user_id}")
        return True

    def reset(self) -> None:
        self._selected = []
        self._owner = None
        self.error = None
        self.pending.clear()
