"""Lay a flat list of user records out as the static archive files.

Output (under ``site_root``):
  data/users/<dd>/<dd>.json      shards of RECORDS_PER_SHARD records, holes padded with null
  data/user_map/<bucket>.json    username -> id, one file per bucket (all 36 written)
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List

from . import config as CFG
from .normalize import bucket_for
from .shards import locate, shard_bounds

log = logging.getLogger(__name__)

PROGRESS_EVERY_SHARDS = 100


@dataclass
class BuildReport:
    users: int = 0
    shards: int = 0
    partitions: int = 0
    unsearchable: List[str] = field(default_factory=list)   # usernames left out of user_map


def user_id_of(record: Dict[str, Any]) -> int:
    user = record.get("user") or {}
    raw = user.get("id", record.get("id"))
    if isinstance(raw, bool) or not isinstance(raw, int) or raw < 1:
        raise ValueError(f"Record has no valid user id: {raw!r}")
    return raw


def username_of(record: Dict[str, Any]) -> str:
    user = record.get("user") or {}
    return str(user.get("username", record.get("username", "")) or "")


def load_records(path: str | os.PathLike[str]) -> List[Dict[str, Any]]:
    """Read user records from a JSON array file or a JSON-lines file."""
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        if path.suffix.lower() in (".jsonl", ".ndjson"):
            return [json.loads(ln) for ln in f if ln.strip()]
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array of user records")
    return data


def _write_json(path: Path, doc: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(doc, f, ensure_ascii=False, separators=(",", ":"))
    os.replace(tmp, path)


def _site_file(site_root: Path, site_path: str) -> Path:
    return site_root / site_path.lstrip("/")


def build_archive(
    records: Iterable[Dict[str, Any]],
    site_root: str | os.PathLike[str],
    *,
    users_path: str = CFG.USER_DATA_PATH,
    user_map_path: str = CFG.USER_MAP_PATH,
) -> BuildReport:
    site_root = Path(site_root)
    report = BuildReport()

    by_id: Dict[int, Dict[str, Any]] = {}
    for rec in records:
        uid = user_id_of(rec)
        if uid in by_id:
            raise ValueError(f"Duplicate user id {uid}")
        by_id[uid] = rec
    ordered = sorted(by_id)
    report.users = len(ordered)

    # ---- shards ----
    shards: Dict[int, List[Any]] = {}
    for uid in ordered:
        loc = locate(uid, users_path)
        rows = shards.setdefault(loc.shard_index, [])
        # pad holes so the in-file offset stays (id-1) % RECORDS_PER_SHARD
        rows.extend([None] * (loc.offset + 1 - len(rows)))
        rows[loc.offset] = by_id[uid]

    for shard_index, rows in sorted(shards.items()):
        first_id, _ = shard_bounds(shard_index)
        path = locate(first_id, users_path).path
        _write_json(_site_file(site_root, path), rows)
        report.shards += 1
        if CFG.VERBOSE and report.shards % PROGRESS_EVERY_SHARDS == 0:
            log.info("[shards] written=%d", report.shards)

    # ---- user_map partitions ----
    partitions: Dict[str, Dict[str, int]] = {b: {} for b in CFG.BUCKETS}
    for uid in ordered:
        name = username_of(by_id[uid])
        bucket = bucket_for(name)
        if bucket is None:
            report.unsearchable.append(name)
            continue
        if name in partitions[bucket]:
            log.warning("Username %r repeated (ids %d, %d); keeping the first",
                        name, partitions[bucket][name], uid)
            continue
        partitions[bucket][name] = uid

    for bucket, mapping in partitions.items():
        _write_json(_site_file(site_root, f"{user_map_path.rstrip('/')}/{bucket}.json"), mapping)
        report.partitions += 1

    if report.unsearchable:
        log.info("%d usernames are not searchable (bad leading character)", len(report.unsearchable))
    log.info("Archive built in %s: users=%d shards=%d", site_root, report.users, report.shards)
    return report
