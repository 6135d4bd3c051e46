"""
Recursive expansion of collections into their leaf items.

Nested collections are resolved level by level: all collections found at
one depth are fetched together in a single batched call, so the number of
remote round trips is bounded by the nesting depth, not its breadth.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from ..steam.client import SteamCollectionClient, MalformedResponseError, RemoteProtocolError
from ..steam.models import Item

logger = logging.getLogger(__name__)


class VisitedSet:
    """
    Collection IDs already expanded during one run.

    Only ever grows. Create a fresh one per expansion branch; never share
    it between unrelated runs.
    """

    def __init__(self, collection_ids: Iterable[str] = ()):
        self._ids: set[str] = set(collection_ids)

    def __contains__(self, collection_id: object) -> bool:
        return collection_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)

    def mark(self, collection_ids: Iterable[str]) -> None:
        self._ids.update(collection_ids)

    def unvisited(self, collection_ids: Iterable[str]) -> list[str]:
        """Return the IDs not yet visited, in order and without repeats."""
        return [cid for cid in _unique(collection_ids) if cid not in self._ids]

    def __repr__(self) -> str:
        return f"VisitedSet({sorted(self._ids)})"


@dataclass(frozen=True)
class CollectionSnapshot:
    """
    Flat leaf membership of one or more root collections.

    Attributes:
        items: Leaf items, each ID at most once, in discovery order
        roots: Root collection IDs the snapshot was expanded from
    """
    items: tuple[Item, ...] = ()
    roots: tuple[str, ...] = ()

    @classmethod
    def from_items(cls, items: Iterable[Item], roots: Iterable[str] = ()) -> "CollectionSnapshot":
        """Build a snapshot, keeping the first occurrence of each item ID."""
        seen: dict[str, Item] = {}
        for item in items:
            seen.setdefault(item.id, item)
        return cls(items=tuple(seen.values()), roots=tuple(roots))

    @property
    def ids(self) -> set[str]:
        return {item.id for item in self.items}

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Item]:
        return iter(self.items)


class CollectionExpander:
    """
    Resolves collection IDs into their flat set of leaf items.

    Usage:
        expander = CollectionExpander(client)
        snapshot = expander.expand({"123", "456"})
    """

    def __init__(self, client: SteamCollectionClient):
        self.client = client

    def expand(
        self,
        collection_ids: Iterable[str],
        visited: Optional[VisitedSet] = None,
    ) -> CollectionSnapshot:
        """
        Expand collections, descending through nested collections.

        Collections already in ``visited`` are skipped; every collection
        fetched is marked visited, so each ID is queried at most once per
        visited set. If nothing is left to fetch an empty snapshot is
        returned without contacting the remote.

        Args:
            collection_ids: Root collection IDs
            visited: Visited set to use; a fresh one is created if omitted

        Returns:
            Snapshot of all leaf items reachable from the roots

        Raises:
            RemoteProtocolError: If the batch or any collection in it
                reported a non-success status
            MalformedResponseError: If a requested collection is missing
                from a successful batch
        """
        if visited is None:
            visited = VisitedSet()

        roots = tuple(_unique(collection_ids))
        leaves: list[Item] = []
        pending: list[str] = list(roots)
        depth = 0

        while True:
            batch = visited.unvisited(pending)
            if not batch:
                break

            visited.mark(batch)
            logger.debug(f"Expanding {len(batch)} collection(s) at depth {depth}")

            pending = self._fetch_level(batch, leaves)
            depth += 1

        snapshot = CollectionSnapshot.from_items(leaves, roots=roots)
        logger.info(
            f"Expanded {list(roots)} into {len(snapshot)} item(s) "
            f"({len(visited)} collection(s) visited)"
        )
        return snapshot

    def _fetch_level(self, batch: list[str], leaves: list[Item]) -> list[str]:
        """
        Fetch one batch, append its leaves and return nested collection IDs.
        """
        response = self.client.fetch_collection_details(batch)

        if not response.ok:
            raise RemoteProtocolError(
                f"GetCollectionDetails returned status {response.status} "
                f"for collections: {', '.join(batch)}",
                identifier=",".join(batch),
                status=response.status,
            )

        missing = set(batch) - {collection.id for collection in response.collections}
        if missing:
            raise MalformedResponseError(
                f"GetCollectionDetails omitted requested collection(s): "
                f"{', '.join(sorted(missing))}"
            )

        nested: list[str] = []
        for collection in response.collections:
            if not collection.ok:
                raise RemoteProtocolError(
                    f"GetCollectionDetails returned status {collection.status} "
                    f"for collection: {collection.id}",
                    identifier=collection.id,
                    status=collection.status,
                )

            for child in collection.children:
                if child.is_collection:
                    nested.append(child.id)
                else:
                    leaves.append(child)

        return nested


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(str(value) for value in values))
