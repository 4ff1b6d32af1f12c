"""
Audio playback for musics-client.

    - backend: AudioBackend interface and the silent HeadlessAudioBackend
    - engine: PlaybackEngine, the one shared player

Usage:
    from musics_client.player import PlaybackEngine, HeadlessAudioBackend
"""

from musics_client.player.backend import AudioBackend, HeadlessAudioBackend
from musics_client.player.engine import PlaybackEngine, PlaybackState, PlaybackStatus
from musics_client.utils import format_time

__all__ = [
    "AudioBackend",
    "HeadlessAudioBackend",
    "PlaybackEngine",
    "PlaybackState",
    "PlaybackStatus",
    "format_time",
]
