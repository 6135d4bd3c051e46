"""Steam Workshop collection API client module."""

from .client import (
    SteamCollectionClient,
    SteamAPIError,
    TransportError,
    RemoteProtocolError,
    MalformedResponseError,
)
from .models import Item, ItemKind, CollectionDetails, CollectionDetailsResponse
from .session import SessionProvider, StaticSessionProvider, CookieSessionProvider

__all__ = [
    "SteamCollectionClient",
    "SteamAPIError",
    "TransportError",
    "RemoteProtocolError",
    "MalformedResponseError",
    "Item",
    "ItemKind",
    "CollectionDetails",
    "CollectionDetailsResponse",
    "SessionProvider",
    "StaticSessionProvider",
    "CookieSessionProvider",
]
