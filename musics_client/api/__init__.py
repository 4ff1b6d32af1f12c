"""
Remote API access for musics-client.

    - models: Track, UserAccount, CollectionEntry and the response normalizers
    - gateway: RemoteGateway, the single HTTP client for the backend

Usage:
    from musics_client.api import RemoteGateway, Track
"""

from musics_client.api.gateway import RemoteGateway
from musics_client.api.models import (
    CatalogSections,
    CollectionEntry,
    HealthStatus,
    OwnerKey,
    Track,
    TrackUpload,
    UserAccount,
)

__all__ = [
    "RemoteGateway",
    "Track",
    "UserAccount",
    "CollectionEntry",
    "OwnerKey",
    "TrackUpload",
    "HealthStatus",
    "CatalogSections",
]
