"""
Audio backends for the playback engine.

The engine never touches an audio device directly. It drives one
AudioBackend through a small command set and receives media events back
through a BackendListener (normally the engine itself).

Commands:   load, play, pause, seek, set_volume, set_muted, unload
Events:     on_metadata(duration), on_time_update(position),
            on_ended(), on_error(message)

HeadlessAudioBackend plays nothing. It keeps a virtual clock so the CLI
can run without a sound device, and tests can drive media events with
advance(), finish() and fail().
"""

from abc import ABC, abstractmethod
from typing import Protocol

from musics_client.core.exceptions import PlaybackError
from musics_client.core.logger import get_logger

logger = get_logger(__name__)


class BackendListener(Protocol):
    def on_metadata(self, duration: float) -> None: ...

    def on_time_update(self, position: float) -> None: ...

    def on_ended(self) -> None: ...

    def on_error(self, message: str) -> None: ...


class AudioBackend(ABC):
    """
    One audio output holding at most one loaded source.

    Attributes:
        listener: Receiver of media events, set by the engine.
    """

    def __init__(self) -> None:
        self.listener: BackendListener | None = None

    def attach(self, listener: BackendListener) -> None:
        self.listener = listener

    @abstractmethod
    def load(self, url: str) -> None:
        """Replace the current source. Playback does not start."""

    @abstractmethod
    def play(self) -> None:
        """
        Start or resume playback.

        Raises:
            PlaybackError: The backend refused to play.
        """

    @abstractmethod
    def pause(self) -> None:
        ...

    @abstractmethod
    def seek(self, position: float) -> None:
        ...

    @abstractmethod
    def set_volume(self, volume: float) -> None:
        ...

    @abstractmethod
    def set_muted(self, muted: bool) -> None:
        ...

    @abstractmethod
    def unload(self) -> None:
        """Release the current source, if any."""


class HeadlessAudioBackend(AudioBackend):
    """
    Silent backend with a virtual position.

    Args:
        durations: Optional url -> seconds map. When the loaded url is in
                   it, on_metadata fires immediately on load().
        reject_play: Make every play() raise PlaybackError, like a browser
                     autoplay policy would.
    """

    def __init__(
        self,
        durations: dict[str, float] | None = None,
        reject_play: bool = False
    ) -> None:
        super().__init__()
        self.durations = dict(durations or {})
        self.reject_play = reject_play

        self.url: str | None = None
        self.playing = False
        self.position = 0.0
        self.duration: float | None = None
        self.volume = 1.0
        self.muted = False
        self.calls: list[str] = []

    def load(self, url: str) -> None:
        self.calls.append("load")
        self.url = url
        self.playing = False
        self.position = 0.0
        self.duration = self.durations.get(url)
        logger.debug(f"Headless backend loaded {url}")

        if self.duration is not None and self.listener:
            self.listener.on_metadata(self.duration)

    def play(self) -> None:
        self.calls.append("play")
        if self.url is None:
            raise PlaybackError("No audio source loaded")
        if self.reject_play:
            raise PlaybackError("Playback was blocked by the audio backend")
        self.playing = True

    def pause(self) -> None:
        self.calls.append("pause")
        self.playing = False

    def seek(self, position: float) -> None:
        self.calls.append("seek")
        self.position = position

    def set_volume(self, volume: float) -> None:
        self.volume = volume

    def set_muted(self, muted: bool) -> None:
        self.muted = muted

    def unload(self) -> None:
        self.calls.append("unload")
        self.url = None
        self.playing = False
        self.position = 0.0
        self.duration = None

    # -------------------------------------------------------------------------
    # Simulated media events
    # -------------------------------------------------------------------------

    def emit_metadata(self, duration: float) -> None:
        self.duration = duration
        if self.listener:
            self.listener.on_metadata(duration)

    def advance(self, seconds: float) -> None:
        """Move the virtual clock forward while playing; ends at the duration."""
        if not self.playing:
            return

        self.position += seconds
        if self.duration is not None and self.position >= self.duration:
            self.position = self.duration
            self.finish()
            return

        if self.listener:
            self.listener.on_time_update(self.position)

    def finish(self) -> None:
        self.playing = False
        if self.listener:
            self.listener.on_ended()

    def fail(self, message: str) -> None:
        self.playing = False
        if self.listener:
            self.listener.on_error(message)
