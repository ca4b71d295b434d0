from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .errors import GraphCycleError
from .graph import CollectionGraph
from .log import get_logger
from .model import PATH_SEP, CollectionId, Group, ResolvedCollection

log = get_logger(__name__)


@dataclass(frozen=True)
class Resolved:
    path: str
    root_title: str
    root_id: CollectionId


@dataclass(frozen=True)
class CycleDetected:
    chain: Tuple[CollectionId, ...]


Resolution = Union[Resolved, CycleDetected]


class PathResolver:
    """Memoized hierarchy queries over a CollectionGraph.

    Walks parent links iteratively with a per-walk visited set, so a parent
    cycle ends as ``CycleDetected`` instead of unbounded recursion. Only
    successful resolutions are cached; a failing id re-walks and reports the
    same chain every time, whatever order ids are queried in.
    """

    def __init__(self, graph: CollectionGraph):
        self.graph = graph
        self._cache: Dict[CollectionId, Resolved] = {}

    def resolve(self, cid: CollectionId) -> Resolution:
        cached = self._cache.get(cid)
        if cached is not None:
            return cached
        if cid not in self.graph:
            raise KeyError(cid)

        chain: List[CollectionId] = []
        visited = set()
        cur = cid
        base: Optional[Resolved] = None
        while True:
            if cur in visited:
                return CycleDetected(chain=tuple(chain) + (cur,))
            visited.add(cur)
            chain.append(cur)
            node = self.graph[cur]
            if self.graph.is_root(node):
                break
            parent = self._cache.get(node.parent_id)
            if parent is not None:
                base = parent
                break
            cur = node.parent_id

        # Fill the cache top-down along the walked chain.
        for i in reversed(range(len(chain))):
            node = self.graph[chain[i]]
            if base is None:
                res = Resolved(path=node.title, root_title=node.title, root_id=node.id)
            else:
                res = Resolved(path=f"{base.path}{PATH_SEP}{node.title}", root_title=base.root_title, root_id=base.root_id)
            self._cache[node.id] = res
            base = res
        return self._cache[cid]

    def _resolved(self, cid: CollectionId) -> Resolved:
        res = self.resolve(cid)
        if isinstance(res, CycleDetected):
            raise GraphCycleError(res.chain)
        return res

    def path_of(self, cid: CollectionId) -> str:
        return self._resolved(cid).path

    def root_title_of(self, cid: CollectionId) -> str:
        return self._resolved(cid).root_title

    def root_id_of(self, cid: CollectionId) -> CollectionId:
        return self._resolved(cid).root_id


class GroupIndex:
    """root collection id -> group title. Later groups win on overlap."""

    def __init__(self, groups: Iterable[Group] = ()):
        self._by_root: Dict[CollectionId, str] = {}
        self.overlaps: List[Tuple[CollectionId, str, str]] = []
        for g in groups:
            for rid in g.member_root_ids:
                prev = self._by_root.get(rid)
                if prev is not None:
                    self.overlaps.append((rid, prev, g.title))
                    log.warning("Collection %s is in groups %r and %r; using %r.", rid, prev, g.title, g.title)
                self._by_root[rid] = g.title

    def group_of(self, root_id: Optional[CollectionId]) -> str:
        if root_id is None:
            return ""
        return self._by_root.get(root_id, "")

    def __len__(self) -> int:
        return len(self._by_root)


def compose_full_path(path: str, root_id: Optional[CollectionId], groups: GroupIndex) -> str:
    group = groups.group_of(root_id)
    return f"{group}{PATH_SEP}{path}" if group else path


def resolve_collections(
    graph: CollectionGraph,
    groups: GroupIndex,
    resolver: Optional[PathResolver] = None,
) -> Tuple[List[ResolvedCollection], List[GraphCycleError]]:
    """Resolve every collection in graph order.

    Collections on a parent cycle, or below one, are reported and left out.
    That breaks "every collection gets a full path" for those ids; a cycle has
    no top ancestor to build one from, so skipping the affected subtree wins.
    """
    resolver = resolver or PathResolver(graph)
    out: List[ResolvedCollection] = []
    cycles: List[GraphCycleError] = []
    for cid in graph:
        node = graph[cid]
        try:
            path = resolver.path_of(cid)
        except GraphCycleError as e:
            log.error("Cannot resolve collection %r (id=%s): %s", node.title, cid, e)
            cycles.append(e)
            continue
        root_id = resolver.root_id_of(cid)
        out.append(
            ResolvedCollection(
                id=cid,
                title=node.title,
                parent_id=node.parent_id,
                path=path,
                full_path=compose_full_path(path, root_id, groups),
                root_title=resolver.root_title_of(cid),
                root_id=root_id,
                group=groups.group_of(root_id),
            )
        )
    return out, cycles
