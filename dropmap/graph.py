from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from .log import get_logger
from .model import CollectionId, CollectionNode

log = get_logger(__name__)

# Raindrop has shipped parent references as {"$id": ..}, {"$ref": .., "$id": ..},
# {"_id": ..} and {"id": ..}, besides a bare id.
_PARENT_ID_KEYS = ("$id", "_id", "id")


def normalize_parent_ref(ref: Any) -> Optional[CollectionId]:
    """Reduce any accepted parent reference shape to a scalar id, or None."""
    if isinstance(ref, Mapping):
        value: Any = None
        for key in _PARENT_ID_KEYS:
            if ref.get(key):
                value = ref[key]
                break
        ref = value
    if isinstance(ref, bool) or not isinstance(ref, (int, str)):
        return None
    if ref == "" or ref == 0:
        return None
    return ref


def collection_id_of(raw: Mapping[str, Any]) -> Optional[CollectionId]:
    cid = raw.get("_id") or raw.get("id")
    if isinstance(cid, bool) or not isinstance(cid, (int, str)):
        return None
    return cid


@dataclass(frozen=True)
class Orphan:
    id: CollectionId
    title: str
    missing_parent_id: CollectionId


@dataclass(frozen=True)
class CollectionGraph:
    """Read-only id -> CollectionNode mapping.

    Iteration follows insertion order: roots first, then children, as the API
    returned them. ``duplicate_ids`` records ids that were overwritten.
    """

    nodes: Mapping[CollectionId, CollectionNode]
    duplicate_ids: Tuple[CollectionId, ...] = field(default=())

    def __contains__(self, cid: object) -> bool:
        return cid in self.nodes

    def __getitem__(self, cid: CollectionId) -> CollectionNode:
        return self.nodes[cid]

    def __iter__(self) -> Iterator[CollectionId]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def get(self, cid: CollectionId) -> Optional[CollectionNode]:
        return self.nodes.get(cid)

    def is_root(self, node: CollectionNode) -> bool:
        return node.parent_id is None or node.parent_id not in self.nodes

    def orphans(self) -> List[Orphan]:
        out: List[Orphan] = []
        for node in self.nodes.values():
            if node.parent_id is not None and node.parent_id not in self.nodes:
                out.append(Orphan(id=node.id, title=node.title, missing_parent_id=node.parent_id))
        return out


def build_collection_graph(
    roots: Iterable[Mapping[str, Any]],
    children: Iterable[Mapping[str, Any]],
) -> CollectionGraph:
    nodes: Dict[CollectionId, CollectionNode] = {}
    duplicates: List[CollectionId] = []

    def _add(raw: Mapping[str, Any], *, is_root: bool) -> None:
        cid = collection_id_of(raw)
        if cid is None:
            log.warning("Skipping collection without a usable id: %r", raw)
            return
        parent_id = None if is_root else normalize_parent_ref(raw.get("parent"))
        if cid in nodes:
            duplicates.append(cid)
            log.warning(
                "Duplicate collection id %s: %r replaces %r",
                cid,
                raw.get("title"),
                nodes[cid].title,
            )
        nodes[cid] = CollectionNode(id=cid, title=str(raw.get("title") or ""), parent_id=parent_id)

    for raw in roots:
        _add(raw, is_root=True)
    for raw in children:
        _add(raw, is_root=False)

    return CollectionGraph(nodes=MappingProxyType(nodes), duplicate_ids=tuple(duplicates))
