"""
musics-client: client data and session synchronization for musics-system.

This package is the non-visual core of the musics-system web client: it
talks to the REST backend, remembers who is signed in, mirrors the user's
favorites, downloads and selections, and drives a single audio player.

Architecture:
    core/       - Configuration, storage, cache, toasts, logging, exceptions
    api/        - RemoteGateway (HTTP) and the normalized data models
    session/    - Guest device identity, user and admin sessions
    stores/     - Catalog, favorites, downloads and selection stores
    player/     - Playback engine and audio backends
    utils/      - Formatting and input validation helpers
    app.py      - MusicsApp, the composition root
    cli.py      - Command-line interface

Guest Selections:
    A guest can select tracks before having an account. Those selections
    are stored under an anonymous device id; logging in or registering
    links them to the account once and retires the device id.

Usage:
    Command Line:
        musics catalog --sections
        musics login --email ana@example.com
        musics select 64f1c2...

    Python API:
        from musics_client import MusicsApp, load_config, setup_logging

        config = load_config()
        setup_logging(config.logging.directory)
        app = MusicsApp(config).start()

        app.catalog.fetch_tracks()
        app.player.set_playlist(app.catalog.tracks)
        app.session.login("ana@example.com", "secret")

Dependencies:
    - requests: HTTP client
    - click / rich-click / rich: CLI and tables
    - tqdm: Download progress bars
    - pyyaml / python-dotenv: Configuration
    - colorama: Console colors
"""

__version__ = "0.1.0"
__author__ = "musics-system"
__license__ = "MIT"

# Convenience imports for common usage
from musics_client.core import (
    AuthError,
    Config,
    ConfigError,
    MusicsClientError,
    NetworkError,
    ServerError,
    ValidationError,
    get_logger,
    load_config,
    setup_logging,
)
from musics_client.api import RemoteGateway, Track
from musics_client.app import MusicsApp

__all__ = [
    # Version
    "__version__",
    # Core
    "Config",
    "load_config",
    "setup_logging",
    "get_logger",
    # Exceptions
    "MusicsClientError",
    "ConfigError",
    "NetworkError",
    "ServerError",
    "AuthError",
    "ValidationError",
    # Client
    "MusicsApp",
    "RemoteGateway",
    "Track",
]
