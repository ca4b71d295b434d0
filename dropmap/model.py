from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Hashable, Optional

CollectionId = Hashable

PATH_SEP = " / "

# Columns appended to every exported bookmark row, in this order.
METADATA_COLUMNS = ("collection_id", "collection_title", "full_path", "root_collection", "group")


@dataclass(frozen=True)
class CollectionNode:
    id: CollectionId
    title: str
    parent_id: Optional[CollectionId] = None


@dataclass(frozen=True)
class Group:
    title: str
    member_root_ids: FrozenSet[CollectionId] = field(default_factory=frozenset)


@dataclass(frozen=True)
class ResolvedCollection:
    id: CollectionId
    title: str
    parent_id: Optional[CollectionId]
    path: str
    full_path: str
    root_title: str
    root_id: CollectionId
    group: str = ""

    @property
    def depth(self) -> int:
        return self.full_path.count(PATH_SEP) + 1

    def metadata(self) -> Dict[str, Any]:
        return {
            "collection_id": self.id,
            "collection_title": self.title,
            "full_path": self.full_path,
            "root_collection": self.root_title,
            "group": self.group,
        }
