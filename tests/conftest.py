"""
Pytest configuration and shared fixtures.

Provides an in-memory collection client and sample API payloads.
"""

import threading

import pytest

from collection_sync.steam.client import RemoteProtocolError
from collection_sync.steam.models import (
    CollectionDetails,
    CollectionDetailsResponse,
    Item,
    ItemKind,
    RemoveChildResult,
)
from collection_sync.steam.session import StaticSessionProvider


def leaf(item_id: str, sort_order: int = 0) -> Item:
    return Item(id=item_id, sort_order=sort_order, kind=ItemKind.LEAF)


def collection(item_id: str, sort_order: int = 0) -> Item:
    return Item(id=item_id, sort_order=sort_order, kind=ItemKind.COLLECTION)


class FakeCollectionClient:
    """
    In-memory stand-in for SteamCollectionClient.

    Collections are kept as {collection_id: [Item, ...]}. Mutations are
    recorded and applied to the graph so that a second run sees the
    updated state.
    """

    def __init__(self, graph: dict[str, list[Item]]):
        self.graph = {cid: list(children) for cid, children in graph.items()}
        self.batch_status = 1
        self.collection_status: dict[str, int] = {}
        self.failing_removals: set[str] = set()
        self.failing_adds: set[str] = set()
        self.omitted_collections: set[str] = set()

        self.fetch_calls: list[list[str]] = []
        self.add_calls: list[tuple[str, str, str]] = []
        self.remove_calls: list[tuple[str, str, str]] = []
        self._lock = threading.Lock()

    def fetch_collection_details(self, collection_ids) -> CollectionDetailsResponse:
        ids = list(collection_ids)
        with self._lock:
            self.fetch_calls.append(ids)
            details = tuple(
                CollectionDetails(
                    id=cid,
                    status=self.collection_status.get(cid, 1 if cid in self.graph else 9),
                    children=tuple(self.graph.get(cid, [])),
                )
                for cid in ids
                if cid not in self.omitted_collections
            )
        return CollectionDetailsResponse(status=self.batch_status, collections=details)

    def add_child(self, collection_id: str, item_id: str, session_id: str) -> None:
        with self._lock:
            self.add_calls.append((collection_id, item_id, session_id))
            if item_id in self.failing_adds:
                raise RemoteProtocolError("add rejected", identifier=item_id, status=0)
            self.graph.setdefault(collection_id, []).append(leaf(item_id))

    def remove_child(self, collection_id: str, item_id: str, session_id: str) -> RemoveChildResult:
        with self._lock:
            self.remove_calls.append((collection_id, item_id, session_id))
            if item_id in self.failing_removals:
                raise RemoteProtocolError(
                    f"removechild returned success 0 for item {item_id}",
                    identifier=item_id,
                    status=0,
                )
            self.graph[collection_id] = [
                child for child in self.graph.get(collection_id, []) if child.id != item_id
            ]
        return RemoveChildResult(success=1)

    @property
    def fetched_ids(self) -> list[str]:
        return [cid for batch in self.fetch_calls for cid in batch]


# ============================================================================
# Collection Graph Fixtures
# ============================================================================

@pytest.fixture
def session_provider() -> StaticSessionProvider:
    """Session provider returning a fixed session ID."""
    return StaticSessionProvider("abc123session")


@pytest.fixture
def simple_graph() -> dict[str, list[Item]]:
    """Target T holds {1, 2}; sources C1 holds {2}, C2 holds {3}."""
    return {
        "T": [leaf("1", 1), leaf("2", 2)],
        "C1": [leaf("2", 1)],
        "C2": [leaf("3", 1)],
    }


@pytest.fixture
def nested_graph() -> dict[str, list[Item]]:
    """
    C1 holds leaf 6 and nested C3; C2 holds leaf 7 and also references C3.
    C3 holds leaves {4, 5}.
    """
    return {
        "C1": [leaf("6", 1), collection("C3", 2)],
        "C2": [collection("C3", 1), leaf("7", 2)],
        "C3": [leaf("4", 1), leaf("5", 2)],
    }


@pytest.fixture
def fake_client(simple_graph) -> FakeCollectionClient:
    return FakeCollectionClient(simple_graph)


# ============================================================================
# API Response Fixtures
# ============================================================================

@pytest.fixture
def collection_details_response() -> dict:
    """Sample GetCollectionDetails response with one nested collection."""
    return {
        "response": {
            "result": 1,
            "resultcount": 2,
            "collectiondetails": [
                {
                    "publishedfileid": "100",
                    "result": 1,
                    "children": [
                        {"publishedfileid": "1001", "sortorder": 1, "filetype": 0},
                        {"publishedfileid": "200", "sortorder": 2, "filetype": 2},
                    ],
                },
                {
                    "publishedfileid": "101",
                    "result": 1,
                },
            ],
        }
    }
