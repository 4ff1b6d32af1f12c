"""
Client-side state stores mirroring server collections.

    - catalog: CatalogStore (tracks, users, landing sections)
    - collections: FavoritesStore, DownloadsStore
    - selections: SelectionStore with the guest merge protocol
"""

from musics_client.stores.catalog import CatalogStore
from musics_client.stores.collections import CollectionStore, DownloadsStore, FavoritesStore
from musics_client.stores.selections import SelectionStore

__all__ = [
    "CatalogStore",
    "CollectionStore",
    "FavoritesStore",
    "DownloadsStore",
    "SelectionStore",
]
