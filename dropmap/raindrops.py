from __future__ import annotations

import csv
import io
import re
import sys
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

import httpx

from .client import ResilientClient
from .errors import AuthError, CollectionFetchFailure
from .log import get_logger
from .model import ResolvedCollection

log = get_logger(__name__)

Record = Dict[str, Any]

_WS_RE = re.compile(r"\s+")


def _raise_csv_field_limit() -> int:
    # Notes and highlights can exceed the 128 KiB default; sys.maxsize overflows a 32-bit C long.
    limit = sys.maxsize
    while True:
        try:
            csv.field_size_limit(limit)
            return limit
        except OverflowError:
            limit //= 2


_raise_csv_field_limit()


def export_path(collection_id: Any) -> str:
    return f"/raindrops/{collection_id}/export.csv"


def sanitize_value(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    return _WS_RE.sub(" ", value).strip()


def parse_csv(text: str) -> List[Record]:
    if not text or not text.strip():
        return []
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    rows: List[Record] = []
    for row in reader:
        # DictReader pads short rows with None and files extra cells under a None key.
        rows.append({k: sanitize_value(v) if v is not None else "" for k, v in row.items() if k is not None})
    return rows


def fetch_collection_raindrops(client: ResilientClient, collection: ResolvedCollection) -> List[Record]:
    """Fetch one collection's CSV export and tag each row with collection metadata.

    404 means the collection is gone or empty and yields no rows.
    """
    try:
        text = client.get_text(export_path(collection.id))
    except httpx.HTTPStatusError as e:
        if e.response.status_code == 404:
            log.warning("  Collection %s not found or empty", collection.id)
            return []
        raise

    meta = collection.metadata()
    return [{**row, **meta} for row in parse_csv(text)]


def bookmark_key(record: Record) -> Optional[str]:
    key = record.get("id") or record.get("_id")
    return str(key) if key else None


@dataclass
class DedupState:
    seen: Set[str] = field(default_factory=set)
    out: List[Record] = field(default_factory=list)
    skipped: int = 0


def fold(state: DedupState, record: Record) -> DedupState:
    """One dedup step: first record per bookmark id wins. Records without an id are kept."""
    key = bookmark_key(record)
    if key is not None:
        if key in state.seen:
            state.skipped += 1
            return state
        state.seen.add(key)
    state.out.append(record)
    return state


class Deduper:
    def __init__(self) -> None:
        self.state = DedupState()
        self._lock = threading.Lock()

    def add_all(self, records: Sequence[Record]) -> int:
        with self._lock:
            before = len(self.state.out)
            for r in records:
                fold(self.state, r)
            return len(self.state.out) - before


@dataclass
class AggregateResult:
    records: List[Record]
    duplicates: int = 0
    failed: List[CollectionFetchFailure] = field(default_factory=list)


def aggregate_raindrops(
    client: ResilientClient,
    collections: Sequence[ResolvedCollection],
    *,
    jobs: int = 1,
) -> AggregateResult:
    """Fetch every collection's bookmarks and merge them without duplicates.

    Collections are folded in the given order, so with ``jobs > 1`` the
    fetches overlap but "first collection wins" still holds. A failing
    collection is logged and skipped; AuthError stops everything.
    """
    total = len(collections)
    log.info("Fetching raindrops from %d collections (jobs=%d)...", total, jobs)
    dedup = Deduper()
    failed: List[CollectionFetchFailure] = []

    def _one(idx: int, c: ResolvedCollection) -> Tuple[List[Record], Optional[CollectionFetchFailure]]:
        log.info("  [%d/%d] Processing: %s", idx, total, c.full_path)
        try:
            return fetch_collection_raindrops(client, c), None
        except AuthError:
            raise
        except Exception as e:
            status = getattr(e, "status", None)
            if status is None and isinstance(e, httpx.HTTPStatusError):
                status = e.response.status_code
            log.error("    Error fetching collection %s (status=%s): %s", c.id, status, e)
            return [], CollectionFetchFailure(c.id, e)

    def _merge(rows: List[Record], failure: Optional[CollectionFetchFailure]) -> None:
        if failure is not None:
            failed.append(failure)
            return
        added = dedup.add_all(rows)
        if rows:
            log.info("    Found %d raindrops (%d new)", len(rows), added)

    if jobs <= 1:
        for idx, c in enumerate(collections, start=1):
            _merge(*_one(idx, c))
    else:
        ex = ThreadPoolExecutor(max_workers=jobs)
        try:
            futs: List[Future] = [ex.submit(_one, idx, c) for idx, c in enumerate(collections, start=1)]
            for fut in futs:
                _merge(*fut.result())
        finally:
            ex.shutdown(wait=True, cancel_futures=True)

    state = dedup.state
    log.info("Total unique raindrops: %d", len(state.out))
    if state.skipped:
        log.info("Skipped %d raindrops already seen in an earlier collection.", state.skipped)
    if failed:
        log.warning("%d collections failed and were skipped.", len(failed))
    return AggregateResult(records=state.out, duplicates=state.skipped, failed=failed)
