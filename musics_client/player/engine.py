"""
The single shared audio playback engine.

Exactly one PlaybackEngine exists per client and it owns exactly one
AudioBackend, so at most one audio source is ever active: starting a new
track pauses and unloads the previous one first.

Status Transitions:
    IDLE --play_track--> LOADING --play ok--> PLAYING
                                 --refused--> PAUSED
    PLAYING <--pause/play--> PAUSED
    PLAYING --ended--> next playable playlist track, else IDLE
    any --stop--> IDLE

Usage:
    engine = PlaybackEngine(HeadlessAudioBackend(), default_volume=0.7)
    engine.set_playlist(tracks)          # plays tracks[0]
    engine.next()
    engine.toggle_play()
    engine.state.is_playing
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from musics_client.api.models import Track
from musics_client.core.config import DEFAULT_VOLUME
from musics_client.core.exceptions import PlaybackError
from musics_client.core.logger import get_logger
from musics_client.player.backend import AudioBackend, HeadlessAudioBackend
from musics_client.utils import clamp

logger = get_logger(__name__)


class PlaybackStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"


@dataclass(frozen=True)
class PlaybackState:
    """
    Snapshot of the engine, handed to views and subscribers.

    Attributes:
        current_track: Loaded track, or None.
        is_playing: Audio is advancing.
        position_seconds: Within [0, duration_seconds] once metadata is known.
        duration_seconds: None until the backend reports metadata.
        volume: In [0, 1].
        is_muted: Output muted, volume kept.
        playlist: Ordered tracks for next/previous.
        current_index: Index of current_track in playlist, or None.
        status: See PlaybackStatus.
        error: Last backend error message, or None.
    """

    current_track: Track | None = None
    is_playing: bool = False
    position_seconds: float = 0.0
    duration_seconds: float | None = None
    volume: float = DEFAULT_VOLUME
    is_muted: bool = False
    playlist: tuple[Track, ...] = field(default_factory=tuple)
    current_index: int | None = None
    status: PlaybackStatus = PlaybackStatus.IDLE
    error: str | None = None


class PlaybackEngine:
    """
    Drives one AudioBackend and keeps the observable playback state.

    The engine registers itself as the backend's listener, so media
    events (metadata, time updates, end of track, errors) update the
    state and notify subscribers.
    """

    def __init__(
        self,
        backend: AudioBackend | None = None,
        default_volume: float = DEFAULT_VOLUME
    ) -> None:
        self.backend = backend or HeadlessAudioBackend()
        self.backend.attach(self)

        self._current_track: Track | None = None
        self._is_playing = False
        self._position = 0.0
        self._duration: float | None = None
        self._volume = clamp(default_volume, 0.0, 1.0)
        self._muted = False
        self._playlist: tuple[Track, ...] = ()
        self._index: int | None = None
        self._status = PlaybackStatus.IDLE
        self._error: str | None = None
        self._subscribers: list[Callable[[PlaybackState], None]] = []

        self.backend.set_volume(self._volume)
        self.backend.set_muted(self._muted)

    # =========================================================================
    # Observation
    # =========================================================================

    @property
    def state(self) -> PlaybackState:
        return PlaybackState(
            current_track=self._current_track,
            is_playing=self._is_playing,
            position_seconds=self._position,
            duration_seconds=self._duration,
            volume=self._volume,
            is_muted=self._muted,
            playlist=self._playlist,
            current_index=self._index,
            status=self._status,
            error=self._error,
        )

    def subscribe(self, callback: Callable[[PlaybackState], None]) -> Callable[[], None]:
        """
        Call callback(state) after every state change.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.state
        for callback in list(self._subscribers):
            callback(snapshot)

    # =========================================================================
    # Track control
    # =========================================================================

    def play_track(self, track: Track, auto_play: bool = True) -> bool:
        """
        Make track the current track.

        When track's audio source is the one already loaded, playback just
        resumes (when auto_play) from the current position. Otherwise the
        previous source is paused and unloaded, and the new one is loaded
        from position 0.

        Returns:
            False when the track has no audio source; nothing changes then.
        """
        return self._play_at(track, self._playlist_index(track), auto_play)

    def _play_at(self, track: Track, index: int | None, auto_play: bool) -> bool:
        if not track.is_playable:
            logger.warning(f"'{track.title}' has no audio source, not playing")
            return False

        if self._is_loaded(track):
            self._current_track = track
            self._index = index
            if auto_play and not self._is_playing:
                return self.play()
            self._notify()
            return True

        if self._is_playing:
            self.backend.pause()
            self._is_playing = False
        self.backend.unload()

        self._current_track = track
        self._index = index
        self._position = 0.0
        self._duration = None
        self._error = None
        self._status = PlaybackStatus.LOADING
        logger.debug(f"Loading '{track.title}' by {track.artist}")

        self.backend.load(track.audio_url)

        if auto_play:
            return self.play()

        self._status = PlaybackStatus.PAUSED
        self._notify()
        return True

    def _is_loaded(self, track: Track) -> bool:
        """True when track's audio source is the loaded one."""
        return self._current_track is not None and self._current_track.audio_url == track.audio_url

    def toggle_play_for_track(self, track: Track) -> bool:
        """Toggle the loaded source, or switch to track and play it."""
        if self._is_loaded(track):
            self._current_track = track
            return self.toggle_play()
        return self.play_track(track)

    def play(self) -> bool:
        """
        Resume the current track.

        A backend refusal is logged; the track stays loaded and paused.
        """
        if self._current_track is None:
            return False

        try:
            self.backend.play()
        except PlaybackError as e:
            logger.warning(f"Playback refused: {e.message}")
            self._is_playing = False
            self._status = PlaybackStatus.PAUSED
            self._error = e.message
            self._notify()
            return False

        self._is_playing = True
        self._status = PlaybackStatus.PLAYING
        self._notify()
        return True

    def pause(self) -> None:
        if not self._is_playing:
            return
        self.backend.pause()
        self._is_playing = False
        self._status = PlaybackStatus.PAUSED
        self._notify()

    def toggle_play(self) -> bool:
        if self._is_playing:
            self.pause()
            return True
        return self.play()

    def stop(self) -> None:
        """Unload the current track. The playlist is kept."""
        self.backend.unload()
        self._current_track = None
        self._is_playing = False
        self._position = 0.0
        self._duration = None
        self._index = None
        self._status = PlaybackStatus.IDLE
        self._notify()

    def seek(self, position: float) -> bool:
        """
        Jump to position, clamped to [0, duration].

        Ignored while the duration is unknown.
        """
        if self._current_track is None or self._duration is None:
            logger.debug("Seek ignored, duration unknown")
            return False

        self._position = clamp(position, 0.0, self._duration)
        self.backend.seek(self._position)
        self._notify()
        return True

    # =========================================================================
    # Output
    # =========================================================================

    def set_volume(self, volume: float) -> None:
        self._volume = clamp(volume, 0.0, 1.0)
        self.backend.set_volume(self._volume)
        self._notify()

    def toggle_mute(self) -> None:
        self._muted = not self._muted
        self.backend.set_muted(self._muted)
        self._notify()

    # =========================================================================
    # Playlist
    # =========================================================================

    def set_playlist(
        self,
        tracks: list[Track],
        start_index: int = 0,
        auto_play: bool = True
    ) -> bool:
        """
        Replace the playlist and load tracks[start_index].

        An out-of-range start index falls back to 0. An empty list clears
        the playlist without touching the current track.
        """
        self._playlist = tuple(tracks)
        if not self._playlist:
            self._index = None
            self._notify()
            return False

        if not 0 <= start_index < len(self._playlist):
            start_index = 0

        return self._play_at(self._playlist[start_index], start_index, auto_play)

    def next(self) -> bool:
        """Play the following playlist track, wrapping to the first."""
        return self._step(1)

    def previous(self) -> bool:
        """Play the preceding playlist track, wrapping to the last."""
        return self._step(-1)

    def _step(self, direction: int) -> bool:
        count = len(self._playlist)
        if count == 0:
            return False

        if self._index is None:
            start = 0 if direction > 0 else count - 1
        else:
            start = (self._index + direction) % count

        # Skip tracks without audio, at most one full lap
        for offset in range(count):
            index = (start + direction * offset) % count
            track = self._playlist[index]
            if track.is_playable:
                if self._is_loaded(track):
                    self._current_track = track
                    self._index = index
                    self._position = 0.0
                    self.backend.seek(0.0)
                    return self.play()
                return self._play_at(track, index, auto_play=True)
        return False

    def _playlist_index(self, track: Track) -> int | None:
        for index, item in enumerate(self._playlist):
            if item.id == track.id:
                return index
        return None

    # =========================================================================
    # Backend events
    # =========================================================================

    def on_metadata(self, duration: float) -> None:
        self._duration = max(0.0, duration)
        self._position = clamp(self._position, 0.0, self._duration)
        self._notify()

    def on_time_update(self, position: float) -> None:
        upper = self._duration if self._duration is not None else max(position, 0.0)
        self._position = clamp(position, 0.0, upper)
        self._notify()

    def on_ended(self) -> None:
        self._is_playing = False
        self._status = PlaybackStatus.ENDED
        if self._playlist:
            self.next()
            # Still ENDED when no playlist track could be started
            if self._status is not PlaybackStatus.ENDED:
                return

        self._position = 0.0
        self._status = PlaybackStatus.IDLE
        self._notify()

    def on_error(self, message: str) -> None:
        logger.error(f"Playback error: {message}")
        self._is_playing = False
        self._status = PlaybackStatus.PAUSED
        self._error = message
        self._notify()
