import csv
from pathlib import Path

from dropmap.model import ResolvedCollection
from dropmap.writer_csv import raindrop_columns, write_collections_csv, write_raindrops_csv


def _read(path: Path):
    with path.open(encoding="utf-8", newline="") as f:
        return list(csv.reader(f))


def test_metadata_columns_go_last():
    records = [
        {"collection_id": 1, "id": "1", "title": "t", "group": "", "full_path": "A",
         "collection_title": "A", "root_collection": "A"},
        {"id": "2", "url": "https://x", "collection_id": 1},
    ]
    assert raindrop_columns(records) == [
        "id", "title", "url",
        "collection_id", "collection_title", "full_path", "root_collection", "group",
    ]


def test_write_collections_csv(tmp_path: Path):
    cols = [
        ResolvedCollection(1, "A", None, "A", "G / A", "A", 1, "G"),
        ResolvedCollection(2, "B, \"quoted\"", 1, "A / B, \"quoted\"", "G / A / B, \"quoted\"", "A", 1, "G"),
    ]
    out = tmp_path / "nested" / "collections.csv"
    assert write_collections_csv(out, cols) == 2
    rows = _read(out)
    assert rows[0] == ["id", "title", "parentId", "collectionPath", "fullPath", "rootCollection", "group"]
    assert rows[1] == ["1", "A", "", "A", "G / A", "A", "G"]
    assert rows[2][1] == 'B, "quoted"'
    assert rows[2][2] == "1"


def test_write_raindrops_csv_skips_empty(tmp_path: Path):
    out = tmp_path / "raindrops.csv"
    assert write_raindrops_csv(out, []) is False
    assert not out.exists()


def test_write_raindrops_csv_fills_missing_cells(tmp_path: Path):
    out = tmp_path / "raindrops.csv"
    records = [
        {"id": "1", "title": "a", "collection_id": 5, "collection_title": "C", "full_path": "C",
         "root_collection": "C", "group": ""},
        {"id": "2", "note": "n", "collection_id": 5, "collection_title": "C", "full_path": "C",
         "root_collection": "C", "group": ""},
    ]
    assert write_raindrops_csv(out, records) is True
    rows = _read(out)
    assert rows[0] == ["id", "title", "note", "collection_id", "collection_title", "full_path", "root_collection", "group"]
    assert rows[2] == ["2", "", "n", "5", "C", "C", "C", ""]
