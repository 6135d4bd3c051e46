"""
Steam Workshop collection data models.

These models represent the entities returned by the collection APIs.
Published file IDs are strings and form the primary identity.
"""

from dataclasses import dataclass, field
from enum import Enum


class ItemKind(Enum):
    """Published file type codes relevant to collection membership."""

    LEAF = 0
    COLLECTION = 2

    @classmethod
    def from_code(cls, code: int) -> "ItemKind":
        """Map a remote filetype code, treating unknown codes as leaves."""
        if int(code) == cls.COLLECTION.value:
            return cls.COLLECTION
        return cls.LEAF


@dataclass(frozen=True)
class Item:
    """
    Represents a child entry of a collection.

    Identity is the published file ID alone; sort order and kind are
    carried along but never take part in equality.

    Attributes:
        id: Published file ID
        sort_order: Position of the child inside its parent collection
        kind: Whether the child is a leaf item or a nested collection
    """
    id: str
    sort_order: int = field(default=0, compare=False)
    kind: ItemKind = field(default=ItemKind.LEAF, compare=False)

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id:
            raise ValueError(f"Item ID must be a non-empty string, got {self.id!r}")

    @property
    def is_collection(self) -> bool:
        return self.kind is ItemKind.COLLECTION

    @classmethod
    def from_api_response(cls, data: dict) -> "Item":
        """Create Item from a collection child entry."""
        return cls(
            id=str(data["publishedfileid"]),
            sort_order=int(data.get("sortorder", 0)),
            kind=ItemKind.from_code(data.get("filetype", ItemKind.LEAF.value)),
        )


@dataclass(frozen=True)
class CollectionDetails:
    """
    Details of a single collection within a batch response.

    Attributes:
        id: Published file ID of the collection
        status: Remote result code (1 means the collection could be read)
        children: Direct children, in the order the remote returned them
    """
    id: str
    status: int
    children: tuple[Item, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status == 1

    @classmethod
    def from_api_response(cls, data: dict) -> "CollectionDetails":
        """Create CollectionDetails from a collectiondetails entry."""
        children = data.get("children") or []
        if not isinstance(children, list):
            raise TypeError(f"children must be a list, got {type(children).__name__}")

        return cls(
            id=str(data["publishedfileid"]),
            status=int(data["result"]),
            children=tuple(Item.from_api_response(child) for child in children),
        )


@dataclass(frozen=True)
class CollectionDetailsResponse:
    """Result of a batched GetCollectionDetails call."""
    status: int
    collections: tuple[CollectionDetails, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status == 1

    @classmethod
    def from_api_response(cls, data: dict) -> "CollectionDetailsResponse":
        """Create CollectionDetailsResponse from the response envelope."""
        body = data["response"]
        details = body.get("collectiondetails") or []
        if not isinstance(details, list):
            raise TypeError(
                f"collectiondetails must be a list, got {type(details).__name__}"
            )

        return cls(
            status=int(body["result"]),
            collections=tuple(CollectionDetails.from_api_response(d) for d in details),
        )


@dataclass(frozen=True)
class RemoveChildResult:
    """Result of a removechild call."""
    success: int

    @property
    def ok(self) -> bool:
        return self.success == 1

    @classmethod
    def from_api_response(cls, data: dict) -> "RemoveChildResult":
        return cls(success=int(data["success"]))
