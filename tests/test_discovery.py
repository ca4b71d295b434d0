import httpx
import pytest

from dropmap.client import ResilientClient
from dropmap.discovery import fetch_groups, load_collections
from dropmap.errors import RetriesExhaustedError
from dropmap.retry import RetryPolicy


def _client(payloads, sleep):
    def handler(request: httpx.Request) -> httpx.Response:
        p = payloads[request.url.path]
        if isinstance(p, int):
            return httpx.Response(p)
        return httpx.Response(200, json=p)

    return ResilientClient(
        "https://api.example",
        "tok",
        policy=RetryPolicy(max_retries=2, request_delay_s=0),
        sleep=sleep,
        transport=httpx.MockTransport(handler),
    )


def test_load_collections_resolves_groups_and_orphans(record_sleep, caplog):
    payloads = {
        "/collections": {"result": True, "items": [{"_id": 1, "title": "A"}, {"_id": 5, "title": "Loose"}]},
        "/collections/childrens": {
            "result": True,
            "items": [
                {"_id": 2, "title": "B", "parent": {"$ref": "collections", "$id": 1}},
                {"_id": 3, "title": "C", "parent": {"$id": 2}},
                {"_id": 4, "title": "Lost", "parent": {"$id": 77}},
            ],
        },
        "/user": {"result": True, "user": {"_id": 9, "groups": [{"title": "G", "collections": [1], "hidden": False}]}},
    }
    with _client(payloads, record_sleep) as c:
        cs = load_collections(c)
    by_id = {r.id: r for r in cs.resolved}
    assert by_id[3].path == "A / B / C"
    assert by_id[3].full_path == "G / A / B / C"
    assert by_id[3].group == "G"
    assert by_id[5].full_path == "Loose"
    assert by_id[4].full_path == "Lost"
    assert cs.cycles == []
    assert "missing parent 77" in caplog.text


def test_missing_envelopes_mean_empty_lists(record_sleep):
    payloads = {"/collections": {}, "/collections/childrens": {"result": True}, "/user": {"user": {}}}
    with _client(payloads, record_sleep) as c:
        cs = load_collections(c)
        assert fetch_groups(c) == []
    assert cs.resolved == []


def test_discovery_failure_is_fatal(record_sleep):
    payloads = {"/collections": 503, "/collections/childrens": {"items": []}, "/user": {}}
    with _client(payloads, record_sleep) as c:
        with pytest.raises(RetriesExhaustedError):
            load_collections(c)


def test_null_group_fields_fall_back_to_empty(record_sleep):
    payloads = {
        "/collections": {"items": [{"_id": 1, "title": "A"}, {"_id": 2, "title": "B"}]},
        "/collections/childrens": {"items": None},
        "/user": {"user": {"groups": [
            {"title": None, "collections": [1]},
            {"title": "Work", "collections": None},
        ]}},
    }
    with _client(payloads, record_sleep) as c:
        groups = fetch_groups(c)
        cs = load_collections(c)
    assert [(g.title, g.collections) for g in groups] == [("", [1]), ("Work", [])]
    assert [r.full_path for r in cs.resolved] == ["A", "B"]
    assert all(r.group == "" for r in cs.resolved)


def test_null_user_means_no_groups(record_sleep):
    payloads = {"/collections": {"items": []}, "/collections/childrens": {"items": []}, "/user": {"user": None}}
    with _client(payloads, record_sleep) as c:
        assert fetch_groups(c) == []
