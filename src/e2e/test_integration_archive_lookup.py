from pathlib import Path
import pytest

from absorb_archive import FileSource, PrefixSearchSession, ProfileReader


@pytest.mark.e2e
@pytest.mark.asyncio
async def test_search_then_profile_over_built_archive(site: Path):
    src = FileSource(site)
    visited = []
    session = PrefixSearchSession(src, navigate=visited.append)

    session.on_query_change("ALI")
    await session.settle()
    assert [s.username for s in session.suggestions] == ["alice", "Alicia"]

    session.on_key_navigate("down")
    session.on_key_navigate("down")
    session.on_key_navigate("confirm")
    assert visited == [2]

    record = await ProfileReader(src).get_user(visited[-1])
    assert record["user"]["username"] == "Alicia"


@pytest.mark.e2e
@pytest.mark.asyncio
async def test_digit_bucket_and_second_directory(site: Path):
    src = FileSource(site)
    session = PrefixSearchSession(src)
    session.on_query_change("7")
    await session.settle()
    assert session.on_submit() is None      # "7" is only a prefix
    session.on_query_change("7EVEN")
    assert session.on_submit() == 5

    session.on_query_change("dave")
    await session.settle()
    uid = session.on_submit()
    assert uid == 10001
    assert (await ProfileReader(src).get_user(uid))["user"]["username"] == "dave"
