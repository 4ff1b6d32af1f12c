"""
Data models for musics-system entities.

This module defines the canonical shapes every other module consumes.
The backend is inconsistent about field names (a track's audio source
may arrive as audioUrl, musicUrl, musicFile, audio, file or url), so each
model has a from_api() factory that applies every observed fallback once,
at the gateway boundary. Nothing outside this module re-derives them.

Design Decisions:
    - All dataclasses are frozen (immutable) to prevent accidental modification
    - Optional fields default to None rather than empty strings
    - Models are independent of the storage format

Usage:
    from musics_client.api.models import Track

    track = Track.from_api({"_id": "t1", "name": "Song", "musicUrl": "..."})
    track.audio_url   # "..."
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping


THUMBNAIL_KEYS = ("thumbnailUrl", "thumbnail", "thumbnailFile", "imageUrl", "image")
AUDIO_KEYS = ("audioUrl", "musicUrl", "musicFile", "audio", "file", "url")
TITLE_KEYS = ("title", "name")
ARTIST_KEYS = ("artist", "artistName")
GENRE_KEYS = ("genre", "category")
DURATION_KEYS = ("duration", "length", "durationInSeconds")
ID_KEYS = ("id", "_id", "musicId")
USER_ID_KEYS = ("id", "_id", "userId")
USER_NAME_KEYS = ("FullName", "fullName", "name")

# Wrappers seen around list payloads
LIST_WRAPPER_KEYS = ("favorites", "downloads", "selections", "data")


def first_present(data: Mapping[str, Any], keys: Iterable[str]) -> Any | None:
    """
    Return the first value under keys that is neither None nor empty string.

    Example:
        first_present({"a": "", "b": 2}, ("a", "b"))  # 2
    """
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def first_string(data: Mapping[str, Any], keys: Iterable[str]) -> str | None:
    """
    Return the first non-blank string under keys.

    Values of other types (a populated file object, a number) are skipped,
    so the next key gets its turn.
    """
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def extract_records(payload: Any) -> list[dict[str, Any]]:
    """
    Coerce a list endpoint's payload into a list of dictionaries.

    Accepts a bare list, a dict wrapping the list under one of
    LIST_WRAPPER_KEYS, or a single object (wrapped in a list).
    Anything else yields an empty list.
    """
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]

    if isinstance(payload, dict):
        for key in LIST_WRAPPER_KEYS:
            value = payload.get(key)
            if isinstance(value, list):
                return [item for item in value if isinstance(item, dict)]
        if payload:
            return [payload]

    return []


def _as_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number >= 0 else None


@dataclass(frozen=True)
class Track:
    """
    Immutable catalog item.

    Attributes:
        id: Stable identity, unique within a catalog snapshot.
        title: Display title. "Untitled Track" when the server sent none.
        artist: "Unknown Artist" when absent.
        genre: From genre or category. "Unknown Genre" when absent.
        duration_seconds: Declared length, or None when unknown.
        thumbnail_url: Cover image URL, or None.
        audio_url: Playable source, or None. A track without one can still be
                   listed and selected, but the player refuses it.
    """

    id: str
    title: str = "Untitled Track"
    artist: str = "Unknown Artist"
    genre: str = "Unknown Genre"
    duration_seconds: float | None = None
    thumbnail_url: str | None = None
    audio_url: str | None = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "Track":
        """
        Create a Track from any of the backend's track shapes.

        Args:
            data: A track object from /musics, or a track embedded in a
                  favorite/download/selection record.

        Returns:
            Track: normalized instance. Missing id becomes "".
        """
        raw_id = first_present(data, ID_KEYS)
        return cls(
            id=str(raw_id) if raw_id is not None else "",
            title=str(first_present(data, TITLE_KEYS) or "Untitled Track"),
            artist=str(first_present(data, ARTIST_KEYS) or "Unknown Artist"),
            genre=str(first_present(data, GENRE_KEYS) or "Unknown Genre"),
            duration_seconds=_as_float(first_present(data, DURATION_KEYS)),
            thumbnail_url=first_string(data, THUMBNAIL_KEYS),
            audio_url=first_string(data, AUDIO_KEYS),
        )

    @property
    def is_playable(self) -> bool:
        return bool(self.audio_url)


def normalize_tracks(payload: Any) -> list[Track]:
    """
    Normalize a /musics payload into Tracks.

    Items that carry no id at all are dropped; they cannot be favorited,
    selected or deleted, and would break id uniqueness.
    """
    tracks = [Track.from_api(item) for item in extract_records(payload)]
    return [track for track in tracks if track.id]


@dataclass(frozen=True)
class UserAccount:
    """
    A user record from /users (admin area).

    Attributes:
        id: From id, _id or userId.
        full_name: From FullName, fullName or name.
        email: Login email.
        user_type: "Admin" for admin accounts, anything else otherwise.
    """

    id: str
    full_name: str = ""
    email: str = ""
    user_type: str = ""

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "UserAccount":
        raw_id = first_present(data, USER_ID_KEYS)
        return cls(
            id=str(raw_id) if raw_id is not None else "",
            full_name=str(first_present(data, USER_NAME_KEYS) or ""),
            email=str(data.get("email") or ""),
            user_type=str(data.get("userType") or ""),
        )

    @property
    def is_admin(self) -> bool:
        return self.user_type == "Admin"


@dataclass(frozen=True)
class OwnerKey:
    """
    Scoping identifier for ownership-join records.

    Exactly one of user id or device id; the kind decides which query
    parameter / body field the backend receives.
    """

    value: str
    is_user: bool

    @classmethod
    def user(cls, user_id: str) -> "OwnerKey":
        return cls(value=user_id, is_user=True)

    @classmethod
    def device(cls, device_id: str) -> "OwnerKey":
        return cls(value=device_id, is_user=False)

    @property
    def param_name(self) -> str:
        return "userId" if self.is_user else "deviceId"

    def as_params(self) -> dict[str, str]:
        return {self.param_name: self.value}

    def __str__(self) -> str:
        return f"{self.param_name}={self.value}"


@dataclass(frozen=True)
class CollectionEntry:
    """
    One (owner, music) record in favorites, downloads or selections.

    Attributes:
        owner_key: User id or device id the record belongs to.
        music_id: The referenced track id.
        created_at: Server or local timestamp (downloads, selections).
        track: Track details when the backend embedded them, else None.
    """

    owner_key: str
    music_id: str
    created_at: str | None = None
    track: Track | None = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any], owner_key: str) -> "CollectionEntry":
        """
        Create an entry from a favorite/download/selection record.

        musicId may be a plain id or a populated track object; records
        that embed track fields directly (title, musicUrl...) get a Track
        built from them as well.
        """
        raw_music = data.get("musicId")
        track = None

        if isinstance(raw_music, Mapping):
            track = Track.from_api(raw_music)
            music_id = track.id
        elif isinstance(data.get("music"), Mapping):
            track = Track.from_api(data["music"])
            music_id = str(raw_music) if raw_music else track.id
        else:
            music_id = str(raw_music) if raw_music else str(data.get("id") or "")
            if first_present(data, TITLE_KEYS + AUDIO_KEYS) is not None:
                track = Track.from_api({**data, "id": music_id})

        owner = first_present(data, ("userId", "deviceId")) or owner_key
        created_at = first_present(data, ("createdAt", "downloadedAt", "selectedAt"))

        return cls(
            owner_key=str(owner),
            music_id=music_id,
            created_at=str(created_at) if created_at is not None else None,
            track=track,
        )


def normalize_entries(payload: Any, owner_key: str) -> list[CollectionEntry]:
    """
    Normalize a collection payload, keeping the first record per music id.

    Duplicate (owner, music) pairs from the server collapse to one entry.
    """
    seen: set[str] = set()
    entries: list[CollectionEntry] = []
    for item in extract_records(payload):
        entry = CollectionEntry.from_api(item, owner_key)
        if not entry.music_id or entry.music_id in seen:
            continue
        seen.add(entry.music_id)
        entries.append(entry)
    return entries


@dataclass(frozen=True)
class TrackUpload:
    """
    Form data for creating a catalog track (multipart POST /musics).

    Attributes:
        music_file: Path to the audio file.
        thumbnail_file: Path to the cover image.
        title, artist, genre: Text fields.
        duration: Declared length in seconds, must be positive.
    """

    music_file: Path
    thumbnail_file: Path
    title: str
    artist: str
    genre: str
    duration: float


@dataclass(frozen=True)
class HealthStatus:
    """
    Result of a backend connectivity check.

    Attributes:
        status: "healthy", "unhealthy" (HTTP error) or "error" (no response).
        message: Human-readable detail.
    """

    status: str
    message: str

    @property
    def ok(self) -> bool:
        return self.status == "healthy"


@dataclass(frozen=True)
class CatalogSections:
    """
    Landing page split of the catalog.

    The first six tracks are "trending", the next six "for you", the rest
    "others".
    """

    trending: tuple[Track, ...] = field(default_factory=tuple)
    for_you: tuple[Track, ...] = field(default_factory=tuple)
    others: tuple[Track, ...] = field(default_factory=tuple)

    SECTION_SIZE = 6

    @classmethod
    def from_tracks(cls, tracks: list[Track]) -> "CatalogSections":
        size = cls.SECTION_SIZE
        return cls(
            trending=tuple(tracks[:size]),
            for_you=tuple(tracks[size:size * 2]),
            others=tuple(tracks[size * 2:]),
        )
