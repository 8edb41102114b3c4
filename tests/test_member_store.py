import json

import httpx
import pytest

from dspfjson.errors import StoreError
from dspfjson.member_store import (
    RemoteMemberStore,
    is_generic_name,
    json_output_path,
    list_generic_files,
    read_document,
    write_document,
)


def _store(members, calls=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        parts = request.url.path.strip("/").split("/")
        if request.method == "GET" and len(parts) == 3:
            lib, fil = parts[1], parts[2]
            pattern = request.url.params.get("pattern", "*").rstrip("*")
            names = [m for (l, f, m) in members if (l, f) == (lib, fil) and m.startswith(pattern)]
            return httpx.Response(200, json={"members": names})
        key = tuple(parts[1:])
        if request.method == "GET":
            if key not in members:
                return httpx.Response(404, json={"error": "not found"})
            return httpx.Response(200, json=members[key])
        if request.method == "PUT":
            members[key] = json.loads(request.content)
            return httpx.Response(201, json={"ok": True})
        return httpx.Response(405)

    return RemoteMemberStore("http://store.test/", transport=httpx.MockTransport(handler))


def test_read_member_and_text():
    members = {("LIB", "QDDSSRC", "ORDERS"): {"source": "a\r\nb", "text": "Order entry"}}
    store = _store(members)
    assert store.read_member("lib", "qddssrc", "orders") == "a\r\nb"
    assert store.member_text("LIB", "QDDSSRC", "ORDERS") == "Order entry"


def test_missing_member():
    store = _store({})
    assert not store.member_exists("LIB", "QDDSSRC", "NOPE")
    with pytest.raises(StoreError) as exc:
        store.read_member("LIB", "QDDSSRC", "NOPE")
    assert "404" in str(exc.value)


def test_write_member_never_overwrites():
    members = {("LIB", "QDDSSRC", "ORDERS"): {"source": "old"}}
    calls = []
    store = _store(members, calls)
    with pytest.raises(StoreError) as exc:
        store.write_member("LIB", "QDDSSRC", "ORDERS", "new")
    assert "cannot be over-written" in str(exc.value)
    assert members[("LIB", "QDDSSRC", "ORDERS")] == {"source": "old"}

    store.write_member("LIB", "QDDSSRC", "ORDERS2", "x\r\ny", "Copy")
    assert members[("LIB", "QDDSSRC", "ORDERS2")] == {"source": "x\r\ny", "text": "Copy", "srctype": "DSPF"}
    assert calls[-1].method == "PUT"
    assert calls[-1].url.path == "/members/LIB/QDDSSRC/ORDERS2"


def test_list_members_sorted():
    members = {
        ("LIB", "QDDSSRC", "ORDB"): {"source": ""},
        ("LIB", "QDDSSRC", "ORDA"): {"source": ""},
        ("LIB", "QDDSSRC", "OTHER"): {"source": ""},
    }
    assert _store(members).list_members("lib", "qddssrc", "ord*") == ["ORDA", "ORDB"]


def test_store_logs_requests():
    messages = []
    store = RemoteMemberStore(
        "http://store.test",
        transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"source": ""})),
        log=messages.append,
    )
    store.read_member("LIB", "F", "M")
    assert messages == ["[STORE] GET /members/LIB/F/M"]


def test_store_requires_base_url():
    with pytest.raises(StoreError):
        RemoteMemberStore("")


def test_local_documents_keep_crlf(tmp_path):
    path = tmp_path / "ORDERS.dds"
    write_document(path, "a\r\nb\r\n")
    assert path.read_bytes() == b"a\r\nb\r\n"
    assert read_document(path) == "a\r\nb\r\n"
    with pytest.raises(StoreError):
        read_document(tmp_path / "missing.dds")


def test_json_output_path(tmp_path):
    assert json_output_path(tmp_path, "QDDSSRC", "orders") == tmp_path / "ORDERS.json"
    assert json_output_path(tmp_path, "src/ORDERS.dds") == tmp_path / "ORDERS.json"


def test_list_generic_files(tmp_path):
    for name in ("ORDB.dds", "ORDA.dds", "CUST.dds"):
        (tmp_path / name).write_text("x")
    (tmp_path / "ORDDIR.dds").mkdir()
    assert is_generic_name("ORD*")
    assert not is_generic_name("ORDERS")
    assert [p.name for p in list_generic_files(str(tmp_path / "ORD*"))] == ["ORDA.dds", "ORDB.dds"]
    with pytest.raises(StoreError):
        list_generic_files(str(tmp_path / "nope" / "ORD*"))
