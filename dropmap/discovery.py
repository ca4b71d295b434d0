from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from .client import ResilientClient
from .errors import GraphCycleError
from .graph import CollectionGraph, build_collection_graph
from .log import get_logger
from .model import Group, ResolvedCollection
from .paths import GroupIndex, PathResolver, resolve_collections

log = get_logger(__name__)


class CollectionList(BaseModel):
    items: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator("items", mode="before")
    @classmethod
    def _null_items(cls, v: Any) -> Any:
        return [] if v is None else v


class RaindropGroup(BaseModel):
    title: Optional[str] = ""
    collections: Optional[List[Union[int, str]]] = Field(default_factory=list, description="Root collection ids, in display order.")

    @field_validator("title", mode="before")
    @classmethod
    def _null_title(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("collections", mode="before")
    @classmethod
    def _null_collections(cls, v: Any) -> Any:
        return [] if v is None else v

    def to_group(self) -> Group:
        return Group(title=self.title or "", member_root_ids=frozenset(self.collections or []))


class RaindropUser(BaseModel):
    groups: List[RaindropGroup] = Field(default_factory=list)

    @field_validator("groups", mode="before")
    @classmethod
    def _null_groups(cls, v: Any) -> Any:
        return [] if v is None else v


class UserEnvelope(BaseModel):
    user: RaindropUser = Field(default_factory=RaindropUser)

    @field_validator("user", mode="before")
    @classmethod
    def _null_user(cls, v: Any) -> Any:
        return {} if v is None else v


@dataclass
class CollectionSet:
    graph: CollectionGraph
    groups: GroupIndex
    resolved: List[ResolvedCollection]
    cycles: List[GraphCycleError] = field(default_factory=list)


def fetch_root_collections(client: ResilientClient) -> List[Dict[str, Any]]:
    return CollectionList.model_validate(client.get_json("/collections") or {}).items


def fetch_child_collections(client: ResilientClient) -> List[Dict[str, Any]]:
    return CollectionList.model_validate(client.get_json("/collections/childrens") or {}).items


def fetch_groups(client: ResilientClient) -> List[RaindropGroup]:
    return UserEnvelope.model_validate(client.get_json("/user") or {}).user.groups


def load_collections(client: ResilientClient) -> CollectionSet:
    """Fetch collections and groups, then resolve the hierarchy.

    Errors propagate: without these three listings there is nothing to export.
    """
    log.info("Fetching collections and groups...")
    roots = fetch_root_collections(client)
    children = fetch_child_collections(client)
    raw_groups = fetch_groups(client)
    log.info("  Found %d root collections", len(roots))
    log.info("  Found %d child collections", len(children))
    log.info("  Found %d groups", len(raw_groups))

    graph = build_collection_graph(roots, children)
    orphans = graph.orphans()
    if orphans:
        log.warning("Found %d orphaned collections (missing parent):", len(orphans))
        for o in orphans:
            log.warning("  - %r (id=%s) missing parent %s", o.title, o.id, o.missing_parent_id)

    groups = GroupIndex(g.to_group() for g in raw_groups)
    resolved, cycles = resolve_collections(graph, groups, PathResolver(graph))
    if cycles:
        log.error("%d collections sit on or below a parent cycle and were skipped.", len(cycles))
    log.info("  Total: %d collections", len(graph))
    log_depth_summary(resolved)
    return CollectionSet(graph=graph, groups=groups, resolved=resolved, cycles=cycles)


def log_depth_summary(resolved: List[ResolvedCollection]) -> Dict[int, int]:
    counts = Counter(c.depth for c in resolved)
    if not counts:
        return {}
    log.info("Hierarchy depth analysis (with group prefix):")
    for depth in sorted(counts):
        log.info("  Level %d: %d collections", depth, counts[depth])
    shown = set()
    for c in resolved:
        if c.depth not in shown:
            shown.add(c.depth)
            log.debug("  Sample level %d: %s", c.depth, c.full_path)
    return dict(counts)
