import asyncio
import pytest

from absorb_archive.errors import TransportError
from absorb_archive.search import PrefixSearchSession

A = "/data/user_map/a.json"
B = "/data/user_map/b.json"


class GatedSource:
    """Each path resolves only once its gate is opened."""

    def __init__(self, files):
        self.files = files
        self.gates = {}
        self.requests = []

    def gate(self, path):
        return self.gates.setdefault(path, asyncio.Event())

    async def fetch_json(self, path):
        self.requests.append(path)
        await self.gate(path).wait()
        if path not in self.files:
            raise TransportError(f"{path}: 404")
        return self.files[path]

    async def aclose(self):
        pass


async def _until(predicate, turns: int = 50) -> None:
    for _ in range(turns):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


def _files():
    return {A: {"alice": 1, "alicia": 2}, B: {"bob": 3, "bobcat": 9}}


@pytest.mark.asyncio
async def test_out_of_order_resolution_last_bucket_wins():
    src = GatedSource(_files())
    s = PrefixSearchSession(src)

    s.on_query_change("a")
    s.on_query_change("b")
    assert s.loading is True

    src.gate(B).set()
    await _until(lambda: s.is_cached("b"))
    assert [x.username for x in s.suggestions] == ["bob", "bobcat"]
    assert s.loading is False

    # the abandoned bucket resolves late: cached, but not shown
    src.gate(A).set()
    await _until(lambda: s.is_cached("a"))
    assert [x.username for x in s.suggestions] == ["bob", "bobcat"]

    s.on_query_change("ali")
    assert [x.username for x in s.suggestions] == ["alice", "alicia"]
    assert src.requests == [A, B]


@pytest.mark.asyncio
async def test_stale_result_recomputed_against_live_query():
    src = GatedSource(_files())
    s = PrefixSearchSession(src)

    s.on_query_change("a")
    s.on_query_change("alic")   # same bucket, query moved on
    src.gate(A).set()
    await s.settle()
    assert [x.username for x in s.suggestions] == ["alice", "alicia"]

    s.on_query_change("b")
    s.on_query_change("alicia")
    src.gate(B).set()
    await s.settle()
    assert [x.username for x in s.suggestions] == ["alicia"]


@pytest.mark.asyncio
async def test_stale_failure_does_not_clear_live_suggestions():
    src = GatedSource({B: {"bob": 3}})
    s = PrefixSearchSession(src)
    src.gate(B).set()
    s.on_query_change("b")
    await s.settle()

    s.on_query_change("a")      # will 404
    s.on_query_change("bo")     # cached, shown immediately
    src.gate(A).set()
    await s.settle()
    assert [x.username for x in s.suggestions] == ["bob"]
    assert s.loading is False


@pytest.mark.asyncio
async def test_clearing_the_query_discards_pending_result():
    src = GatedSource(_files())
    s = PrefixSearchSession(src)
    s.on_query_change("a")
    s.on_query_change("")
    assert s.loading is False
    src.gate(A).set()
    await s.settle()
    assert s.suggestions == []
    assert s.is_cached("a")


@pytest.mark.asyncio
async def test_unresolved_fetch_keeps_loading():
    src = GatedSource(_files())
    s = PrefixSearchSession(src)
    s.on_query_change("a")
    for _ in range(10):
        await asyncio.sleep(0)
    assert s.loading is True
    src.gate(A).set()
    await s.settle()
    assert s.loading is False
