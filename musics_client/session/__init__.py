"""
Who is using the client: guest device identity and signed-in sessions.

Usage:
    from musics_client.session import DeviceIdentityProvider, SessionStore
"""

from musics_client.session.identity import DeviceIdentityProvider, generate_device_id
from musics_client.session.store import (
    AdminSessionStore,
    Session,
    SessionState,
    SessionStore,
)

__all__ = [
    "DeviceIdentityProvider",
    "generate_device_id",
    "Session",
    "SessionState",
    "SessionStore",
    "AdminSessionStore",
]
