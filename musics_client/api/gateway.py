"""
HTTP gateway to the musics-system backend.

RemoteGateway is the only module that talks to the network. It turns
domain operations (list the catalog, add a favorite, merge guest
selections...) into HTTP requests, normalizes every response through
the model factories, and converts every failure into a typed exception.

Error Mapping:
    - requests.RequestException (no response)  -> NetworkError
    - non-2xx response                         -> ServerError(status)
    - non-2xx on /auth/login or /auth/register -> AuthError(status)
    - 2xx with a body that is not JSON (reads) -> ServerError
    - missing token/id on admin mutations      -> ValidationError (no request)
    - local write failure in fetch_audio()      -> StorageError

No call is retried. Errors always propagate to the caller.

Caching:
    list_catalog() and list_users() keep their last result in the TTLCache
    passed at construction. Any successful catalog mutation invalidates
    the catalog snapshot; user mutations invalidate the users snapshot.

Usage:
    from musics_client.api.gateway import RemoteGateway
    from musics_client.core.cache import TTLCache

    gateway = RemoteGateway("https://musics-system-2.onrender.com", TTLCache())
    tracks = gateway.list_catalog()
    payload = gateway.login("ana@example.com", "secret")
"""

from pathlib import Path
from typing import Any

import requests
from tqdm import tqdm

from musics_client.api.models import (
    CatalogSections,
    CollectionEntry,
    HealthStatus,
    OwnerKey,
    Track,
    TrackUpload,
    UserAccount,
    extract_records,
    normalize_entries,
    normalize_tracks,
)
from musics_client.core.cache import CATALOG_KEY, USERS_KEY, TTLCache
from musics_client.core.config import DEFAULT_API_BASE, DEFAULT_TIMEOUT, Config
from musics_client.core.exceptions import (
    AuthError,
    NetworkError,
    ServerError,
    StorageError,
    ValidationError,
)
from musics_client.core.logger import get_logger

logger = get_logger(__name__)


NETWORK_ERROR_MESSAGE = "Network error: Unable to connect to server"
INVALID_RESPONSE_MESSAGE = "Invalid response from server"

# Messages for destructive admin calls, keyed by status
DELETE_STATUS_MESSAGES = {
    401: "Authentication failed. Please log in again.",
    403: "You do not have permission to delete this {kind}.",
    404: "{kind_title} not found. It may have been already deleted.",
    500: "Internal server error. Please try again later.",
}

DOWNLOAD_CHUNK_SIZE = 64 * 1024


class RemoteGateway:
    """
    Client for the musics-system REST API.

    Attributes:
        base_url: API root without trailing slash.
        timeout: Per-request timeout in seconds.
        cache: Snapshot cache shared with the composition root.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE,
        cache: TTLCache | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None
    ) -> None:
        """
        Args:
            base_url: API root. A trailing slash is stripped.
            cache: TTLCache for catalog/users snapshots. A private one with
                   default windows is created when omitted.
            timeout: Seconds before a request fails with NetworkError.
            session: Optional requests.Session (tests pass a mock).
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.cache = cache if cache is not None else TTLCache()
        self._session = session or requests.Session()

    @classmethod
    def from_config(
        cls,
        config: Config,
        cache: TTLCache,
        session: requests.Session | None = None
    ) -> "RemoteGateway":
        """Create a gateway and configure cache windows from Config."""
        cache.configure(CATALOG_KEY, config.cache.catalog_ttl)
        cache.configure(USERS_KEY, config.cache.users_ttl)
        return cls(
            config.api.base_url,
            cache=cache,
            timeout=config.api.timeout,
            session=session
        )

    # =========================================================================
    # Request plumbing
    # =========================================================================

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(
        self,
        method: str,
        path: str,
        token: str | None = None,
        **kwargs: Any
    ) -> requests.Response:
        """
        Send one request and return the response, whatever its status.

        Raises:
            NetworkError: If no response was received.
        """
        url = self._url(path)
        headers = kwargs.pop("headers", {})
        if token:
            headers["Authorization"] = f"Bearer {token}"

        logger.debug(f"{method} {url}")
        try:
            return self._session.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise NetworkError(
                NETWORK_ERROR_MESSAGE,
                details={"url": url, "method": method, "original_error": str(e)}
            ) from e

    @staticmethod
    def _body_message(response: requests.Response) -> str | None:
        """Extract 'message', then 'error', then raw text from an error body."""
        try:
            data = response.json()
        except ValueError:
            data = None

        if isinstance(data, dict):
            for key in ("message", "error"):
                if data.get(key):
                    return str(data[key])

        text = (response.text or "").strip()
        return text[:200] if text else None

    def _raise_for_status(self, response: requests.Response, action: str) -> None:
        """
        Raise ServerError for a non-2xx response.

        Args:
            response: The received response.
            action: Short description used in the default message,
                    e.g. "Failed to fetch musics".
        """
        if response.ok:
            return

        status = response.status_code
        message = self._body_message(response) or f"{action} ({status})"
        raise ServerError(
            message,
            status=status,
            body=response.text or "",
            details={"url": response.url, "action": action}
        )

    @staticmethod
    def _json(response: requests.Response) -> Any:
        """Decode a success body, raising ServerError when it is not JSON."""
        try:
            return response.json()
        except ValueError as e:
            raise ServerError(
                INVALID_RESPONSE_MESSAGE,
                status=response.status_code,
                body=response.text or "",
                details={"url": response.url}
            ) from e

    @staticmethod
    def _json_or_success(response: requests.Response) -> Any:
        """Decode a mutation body; empty or non-JSON success bodies become {"success": True}."""
        try:
            return response.json()
        except ValueError:
            return {"success": True}

    @staticmethod
    def _require(token: str | None, **ids: str | None) -> None:
        """Raise ValidationError before sending when a token or id is missing."""
        if not token:
            raise ValidationError(
                "Authentication required. Please log in again.", field="token"
            )
        for name, value in ids.items():
            if not value:
                raise ValidationError(f"Missing {name}", field=name)

    # =========================================================================
    # Catalog
    # =========================================================================

    def list_catalog(self, use_cache: bool = True) -> list[Track]:
        """
        Return the full catalog.

        While the cached snapshot is fresh the very same list object is
        returned; otherwise GET /musics is fetched and cached.

        Raises:
            NetworkError, ServerError
        """
        if use_cache:
            cached = self.cache.get(CATALOG_KEY)
            if cached is not None:
                logger.debug("Catalog served from cache")
                return cached

        response = self._request("GET", "/musics")
        self._raise_for_status(response, "Failed to fetch musics")
        tracks = normalize_tracks(self._json(response))

        self.cache.set(CATALOG_KEY, tracks)
        logger.info(f"Fetched {len(tracks)} tracks")
        return tracks

    def catalog_sections(self, use_cache: bool = True) -> CatalogSections:
        """Split the catalog into trending, for-you and other tracks."""
        return CatalogSections.from_tracks(self.list_catalog(use_cache=use_cache))

    def create_track(self, token: str, upload: TrackUpload) -> Any:
        """
        Upload a new track as multipart form data (POST /musics).

        Raises:
            ValidationError: Missing token or invalid upload fields.
            NetworkError, ServerError
        """
        self._require(token)
        if upload.duration <= 0:
            raise ValidationError("Duration must be a positive number", field="duration")

        form = {
            "title": upload.title,
            "artist": upload.artist,
            "genre": upload.genre,
            "duration": str(upload.duration),
        }

        try:
            with open(upload.music_file, "rb") as music, \
                    open(upload.thumbnail_file, "rb") as thumbnail:
                files = {
                    "musicFile": (upload.music_file.name, music),
                    "thumbnailFile": (upload.thumbnail_file.name, thumbnail),
                }
                response = self._request(
                    "POST", "/musics", token=token, data=form, files=files
                )
        except OSError as e:
            raise ValidationError(
                f"Cannot read upload file: {e.filename}",
                field="file",
                details={"original_error": str(e)}
            ) from e

        self._raise_for_status(response, "Failed to upload music")
        self.cache.invalidate(CATALOG_KEY)
        logger.info(f"Uploaded track: {upload.title}")
        return self._json_or_success(response)

    def update_track(self, token: str, track_id: str, fields: dict[str, Any]) -> Any:
        """PUT /musics/:id with the given fields."""
        self._require(token, track_id=track_id)
        response = self._request("PUT", f"/musics/{track_id}", token=token, json=fields)
        self._raise_for_status(response, "Failed to update music")
        self.cache.invalidate(CATALOG_KEY)
        return self._json_or_success(response)

    def delete_track(self, token: str, track_id: str) -> Any:
        """
        DELETE /musics/:id.

        Status-specific messages replace the server's text for 401, 403,
        404 and 500. The catalog snapshot is invalidated on success.
        """
        self._require(token, track_id=track_id)
        response = self._request("DELETE", f"/musics/{track_id}", token=token)
        self._raise_for_delete(response, "music")
        self.cache.invalidate(CATALOG_KEY)
        logger.info(f"Deleted track {track_id}")
        return self._json_or_success(response)

    def _raise_for_delete(self, response: requests.Response, kind: str) -> None:
        if response.ok:
            return

        status = response.status_code
        template = DELETE_STATUS_MESSAGES.get(status)
        if template:
            message = template.format(kind=kind, kind_title=kind.capitalize())
        else:
            detail = self._body_message(response)
            message = f"Failed to delete {kind} ({status})" + (f": {detail}" if detail else "")

        raise ServerError(
            message,
            status=status,
            body=response.text or "",
            details={"url": response.url}
        )

    # =========================================================================
    # Users (admin area)
    # =========================================================================

    def list_users(self, token: str | None = None, use_cache: bool = True) -> list[UserAccount]:
        """Return all user accounts (GET /users), cached like the catalog."""
        if use_cache:
            cached = self.cache.get(USERS_KEY)
            if cached is not None:
                logger.debug("Users served from cache")
                return cached

        response = self._request("GET", "/users", token=token)
        self._raise_for_status(response, "Failed to fetch users")
        users = [UserAccount.from_api(item) for item in extract_records(self._json(response))]

        self.cache.set(USERS_KEY, users)
        logger.info(f"Fetched {len(users)} users")
        return users

    def update_user(self, token: str, user_id: str, fields: dict[str, Any]) -> Any:
        self._require(token, user_id=user_id)
        response = self._request("PUT", f"/users/{user_id}", token=token, json=fields)
        self._raise_for_status(response, "Failed to update user")
        self.cache.invalidate(USERS_KEY)
        return self._json_or_success(response)

    def delete_user(self, token: str, user_id: str) -> Any:
        self._require(token, user_id=user_id)
        response = self._request("DELETE", f"/users/{user_id}", token=token)
        self._raise_for_delete(response, "user")
        self.cache.invalidate(USERS_KEY)
        logger.info(f"Deleted user {user_id}")
        return self._json_or_success(response)

    def invalidate(self, key: str | None = None) -> None:
        """Drop one cached snapshot (CATALOG_KEY / USERS_KEY), or all."""
        self.cache.invalidate(key)

    # =========================================================================
    # Favorites and downloads
    # =========================================================================

    def list_favorites(self, user_id: str, token: str | None = None) -> list[CollectionEntry]:
        """
        GET /favorites/users/:userId.

        Raises:
            ServerError: status 404 included; callers decide whether a
                         missing collection means empty.
        """
        response = self._request("GET", f"/favorites/users/{user_id}", token=token)
        self._raise_for_status(response, "Failed to fetch favorites")
        return normalize_entries(self._json(response), user_id)

    def add_favorite(self, user_id: str, music_id: str, token: str | None = None) -> Any:
        response = self._request(
            "POST", "/favorites", token=token,
            json={"userId": user_id, "musicId": music_id}
        )
        self._raise_for_status(response, "Failed to add to favorites")
        return self._json_or_success(response)

    def remove_favorite(self, user_id: str, music_id: str, token: str | None = None) -> Any:
        response = self._request(
            "DELETE", "/favorites", token=token,
            json={"userId": user_id, "musicId": music_id}
        )
        self._raise_for_status(response, "Failed to remove from favorites")
        return self._json_or_success(response)

    def list_downloads(self, user_id: str, token: str | None = None) -> list[CollectionEntry]:
        """GET /downloads/users/:userId. A 404 is raised as ServerError."""
        response = self._request("GET", f"/downloads/users/{user_id}", token=token)
        self._raise_for_status(response, "Failed to fetch downloads")
        return normalize_entries(self._json(response), user_id)

    def record_download(self, user_id: str, music_id: str, token: str | None = None) -> Any:
        response = self._request(
            "POST", "/downloads", token=token,
            json={"userId": user_id, "musicId": music_id}
        )
        self._raise_for_status(response, "Failed to add download")
        return self._json_or_success(response)

    def fetch_audio(self, url: str, destination: Path, show_progress: bool = True) -> Path:
        """
        Stream an audio file to disk.

        Args:
            url: Absolute audio URL, or a path relative to the API root.
            destination: Target file. Parent directories are created.
            show_progress: Draw a tqdm bar while downloading.

        Returns:
            Path: destination, once fully written.

        Raises:
            NetworkError, ServerError.
            StorageError: destination cannot be created or written.
            A partial file is removed on failure; the response is always closed.
        """
        response = self._request("GET", url, stream=True)

        try:
            self._raise_for_status(response, "Failed to download audio")
            total = int(response.headers.get("content-length", 0)) or None

            destination.parent.mkdir(parents=True, exist_ok=True)
            with open(destination, "wb") as f, tqdm(
                total=total,
                desc=destination.name,
                unit="B",
                unit_scale=True,
                disable=not show_progress,
            ) as progress:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
                        progress.update(len(chunk))
        except requests.RequestException as e:
            self._discard_partial(destination)
            raise NetworkError(
                NETWORK_ERROR_MESSAGE,
                details={"url": url, "original_error": str(e)}
            ) from e
        except OSError as e:
            self._discard_partial(destination)
            raise StorageError(
                f"Cannot write audio file: {destination}",
                details={"path": str(destination), "original_error": str(e)}
            ) from e
        finally:
            response.close()

        logger.info(f"Saved audio to {destination}")
        return destination

    @staticmethod
    def _discard_partial(destination: Path) -> None:
        try:
            if destination.is_file():
                destination.unlink()
        except OSError as e:
            logger.warning(f"Could not remove partial file {destination}: {e}")

    # =========================================================================
    # Selections
    # =========================================================================

    def list_selections(self, owner: OwnerKey) -> list[CollectionEntry]:
        """GET /selection-musics?userId=... or ?deviceId=..."""
        response = self._request("GET", "/selection-musics", params=owner.as_params())
        self._raise_for_status(response, "Failed to fetch selections")
        return normalize_entries(self._json(response), owner.value)

    def add_selection(self, music_id: str, owner: OwnerKey) -> Any:
        response = self._request(
            "POST", "/selection-musics",
            json={"musicId": music_id, **owner.as_params()}
        )
        self._raise_for_status(response, "Failed to select music")
        return self._json_or_success(response)

    def remove_selection(self, music_id: str, owner: OwnerKey) -> Any:
        response = self._request(
            "DELETE", "/selection-musics",
            json={"musicId": music_id, **owner.as_params()}
        )
        self._raise_for_status(response, "Failed to unselect music")
        return self._json_or_success(response)

    def merge_selections(self, user_id: str, device_id: str) -> Any:
        """Re-own every selection of device_id to user_id on the server."""
        response = self._request(
            "POST", "/selection-musics/associate",
            json={"userId": user_id, "deviceId": device_id}
        )
        self._raise_for_status(response, "Failed to associate selections")
        return self._json_or_success(response)

    # =========================================================================
    # Authentication
    # =========================================================================

    def login(self, email: str, password: str) -> dict[str, Any]:
        """
        POST /auth/login.

        Returns:
            dict: The raw response payload (user and token in one of
                  several shapes; SessionStore normalizes it).

        Raises:
            AuthError: Credentials rejected, message from the server.
            NetworkError: No response.
        """
        return self._authenticate(
            "/auth/login",
            {"email": email.strip(), "password": password},
            "Login failed"
        )

    def register(self, full_name: str, email: str, password: str) -> dict[str, Any]:
        """POST /auth/register with body {FullName, email, password}."""
        return self._authenticate(
            "/auth/register",
            {"FullName": full_name.strip(), "email": email.strip(), "password": password},
            "Registration failed"
        )

    def _authenticate(self, path: str, body: dict[str, str], failure: str) -> dict[str, Any]:
        response = self._request("POST", path, json=body)

        try:
            data = response.json()
        except ValueError:
            data = None

        if not response.ok:
            message = None
            if isinstance(data, dict):
                message = data.get("message") or data.get("error")
            raise AuthError(
                str(message or f"{failure} ({response.status_code})"),
                details={"url": response.url},
                status=response.status_code
            )

        if not isinstance(data, dict):
            raise AuthError(INVALID_RESPONSE_MESSAGE, status=response.status_code)

        return data

    # =========================================================================
    # Health
    # =========================================================================

    def check_health(self) -> HealthStatus:
        """Probe GET /musics. Never raises."""
        try:
            response = self._request("GET", "/musics")
        except NetworkError as e:
            return HealthStatus("error", e.details.get("original_error", e.message))

        if response.ok:
            return HealthStatus("healthy", "API is responding")
        return HealthStatus("unhealthy", f"API returned status {response.status_code}")
