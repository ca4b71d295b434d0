from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence

from .log import get_logger
from .model import METADATA_COLUMNS, ResolvedCollection

log = get_logger(__name__)

COLLECTION_COLUMNS = ("id", "title", "parentId", "collectionPath", "fullPath", "rootCollection", "group")


def collection_row(c: ResolvedCollection) -> Dict[str, Any]:
    return {
        "id": c.id,
        "title": c.title,
        "parentId": "" if c.parent_id is None else c.parent_id,
        "collectionPath": c.path,
        "fullPath": c.full_path,
        "rootCollection": c.root_title,
        "group": c.group,
    }


def raindrop_columns(records: Iterable[Dict[str, Any]]) -> List[str]:
    """Union of record keys in first-seen order, metadata columns last."""
    seen: Dict[str, None] = {}
    for r in records:
        for k in r:
            seen.setdefault(k, None)
    native = [k for k in seen if k not in METADATA_COLUMNS]
    return native + list(METADATA_COLUMNS)


def write_collections_csv(path: Path, collections: Sequence[ResolvedCollection]) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=list(COLLECTION_COLUMNS))
        w.writeheader()
        for c in collections:
            w.writerow(collection_row(c))
    log.info("Wrote %d collections to %s", len(collections), path)
    return len(collections)


def write_raindrops_csv(path: Path, records: Sequence[Dict[str, Any]]) -> bool:
    if not records:
        log.info("No raindrops to write")
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=raindrop_columns(records), restval="")
        w.writeheader()
        w.writerows(records)
    log.info("Wrote %d raindrops to %s", len(records), path)
    return True
