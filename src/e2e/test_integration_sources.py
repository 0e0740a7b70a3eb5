import json
from pathlib import Path

import httpx
import pytest

from absorb_archive.errors import TransportError
from absorb_archive.sources import FileSource, MemorySource, make_source
from absorb_archive.sources.http_source import HttpSource


def _seed(tmp: Path) -> Path:
    root = tmp / "site"
    (root / "data" / "user_map").mkdir(parents=True)
    (root / "data" / "user_map" / "a.json").write_text(json.dumps({"alice": 1}), encoding="utf-8")
    (root / "data" / "user_map" / "b.json").write_text("{not json", encoding="utf-8")
    (tmp / "secret.json").write_text("{}", encoding="utf-8")
    return root


@pytest.mark.asyncio
async def test_file_source_reads_site_paths(tmp_path: Path):
    src = FileSource(_seed(tmp_path))
    assert await src.fetch_json("/data/user_map/a.json") == {"alice": 1}
    assert await src.fetch_json("data/user_map/a.json") == {"alice": 1}


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/data/user_map/z.json", "/data/user_map/b.json", "/../secret.json"])
async def test_file_source_failures_are_transport_errors(tmp_path: Path, path):
    src = FileSource(_seed(tmp_path))
    with pytest.raises(TransportError):
        await src.fetch_json(path)


@pytest.mark.asyncio
async def test_memory_source_returns_copies():
    src = MemorySource({"data/x.json": {"a": [1]}})
    doc = await src.fetch_json("/data/x.json")
    doc["a"].append(2)
    assert await src.fetch_json("/data/x.json") == {"a": [1]}
    with pytest.raises(TransportError):
        await src.fetch_json("/missing.json")
    assert src.requests == ["/data/x.json", "/data/x.json", "/missing.json"]


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/data/user_map/a.json":
        return httpx.Response(200, json={"alice": 1})
    if request.url.path == "/data/user_map/b.json":
        return httpx.Response(200, text="<html>not json</html>")
    if request.url.path == "/data/user_map/c.json":
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.Response(404)


@pytest.mark.asyncio
async def test_http_source_fetches_json():
    src = HttpSource("https://archive.example/", transport=httpx.MockTransport(_handler))
    assert src.url_for("/data/user_map/a.json") == "https://archive.example/data/user_map/a.json"
    assert await src.fetch_json("/data/user_map/a.json") == {"alice": 1}


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/data/user_map/b.json", "/data/user_map/c.json", "/data/user_map/z.json"])
async def test_http_source_failures_are_transport_errors(path):
    src = HttpSource("https://archive.example", transport=httpx.MockTransport(_handler))
    with pytest.raises(TransportError):
        await src.fetch_json(path)


def test_make_source_dispatch(tmp_path: Path):
    root = _seed(tmp_path)
    assert isinstance(make_source(f"file://{root}"), FileSource)
    assert isinstance(make_source(str(root)), FileSource)
    assert isinstance(make_source("memory://"), MemorySource)
    assert isinstance(make_source("https://archive.example"), HttpSource)
    with pytest.raises(ValueError):
        make_source(str(tmp_path / "nope"))
