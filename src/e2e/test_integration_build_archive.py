import json
from pathlib import Path
import pytest

from absorb_archive.builder import build_archive, load_records
from absorb_archive.config import BUCKETS


def _read(root: Path, rel: str):
    return json.loads((root / rel).read_text(encoding="utf-8"))


@pytest.mark.e2e
def test_shards_are_laid_out_by_id(site: Path):
    first = _read(site, "data/users/00/00.json")
    assert [r["user"]["id"] for r in first] == [1, 2, 3, 4, 5]
    assert [r["user"]["id"] for r in _read(site, "data/users/00/01.json")] == [501]
    assert [r["user"]["id"] for r in _read(site, "data/users/01/00.json")] == [10001]
    assert not (site / "data" / "users" / "00" / "02.json").exists()


@pytest.mark.e2e
def test_partitions_cover_every_bucket(site: Path):
    files = sorted(p.stem for p in (site / "data" / "user_map").glob("*.json"))
    assert files == sorted(BUCKETS)
    assert _read(site, "data/user_map/a.json") == {"alice": 1, "Alicia": 2}
    assert _read(site, "data/user_map/7.json") == {"7even": 5}
    assert _read(site, "data/user_map/q.json") == {}


def test_holes_are_padded_with_null(tmp_path: Path):
    recs = [{"user": {"id": 3, "username": "c"}}, {"user": {"id": 1, "username": "a"}}]
    report = build_archive(recs, tmp_path)
    shard = _read(tmp_path, "data/users/00/00.json")
    assert shard[0]["user"]["id"] == 1
    assert shard[1] is None
    assert shard[2]["user"]["id"] == 3
    assert report.users == 2 and report.shards == 1 and report.partitions == 36


def test_unsearchable_and_repeated_names(tmp_path: Path):
    recs = [
        {"user": {"id": 1, "username": "_x"}},
        {"user": {"id": 2, "username": "Dup"}},
        {"user": {"id": 3, "username": "Dup"}},
        {"user": {"id": 4, "username": "dup"}},
    ]
    report = build_archive(recs, tmp_path)
    assert report.unsearchable == ["_x"]
    assert _read(tmp_path, "data/user_map/d.json") == {"Dup": 2, "dup": 4}


def test_duplicate_ids_rejected(tmp_path: Path):
    recs = [{"user": {"id": 1, "username": "a"}}, {"user": {"id": 1, "username": "b"}}]
    with pytest.raises(ValueError):
        build_archive(recs, tmp_path)


def test_invalid_ids_rejected(tmp_path: Path):
    with pytest.raises(ValueError):
        build_archive([{"user": {"id": 0, "username": "a"}}], tmp_path)


def test_load_records_json_and_jsonl(tmp_path: Path):
    arr = tmp_path / "users.json"
    arr.write_text(json.dumps([{"user": {"id": 1, "username": "a"}}]), encoding="utf-8")
    lines = tmp_path / "users.jsonl"
    lines.write_text('{"id": 1, "username": "a"}\n\n{"id": 2, "username": "b"}\n', encoding="utf-8")
    assert len(load_records(arr)) == 1
    assert [r["id"] for r in load_records(lines)] == [1, 2]

    bad = tmp_path / "bad.json"
    bad.write_text("{}", encoding="utf-8")
    with pytest.raises(ValueError):
        load_records(bad)
