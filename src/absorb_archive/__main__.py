from __future__ import annotations
import argparse, asyncio, json, logging, sys
from dataclasses import asdict

from . import config as CFG
from .builder import build_archive, load_records
from .errors import ArchiveError
from .profiles import ProfileReader, parse_user_id
from .search import PrefixSearchSession
from .shards import locate
from .sources import make_source


def _print_user(record: dict, as_json: bool) -> None:
    if as_json:
        print(json.dumps(record, ensure_ascii=False, indent=2))
        return
    user = record.get("user") or {}
    print(f"#{user.get('id')}  {user.get('display') or user.get('username')}  (@{user.get('username')})")
    for key in ("level", "coins", "total_xp", "views"):
        if key in user:
            print(f"  {key:<10} {user[key]}")


async def _search(source_dsn: str, queries, as_json: bool, interactive: bool) -> int:
    source = make_source(source_dsn)
    reader = ProfileReader(source)
    picked: list[int] = []
    session = PrefixSearchSession(source, navigate=picked.append)

    async def run_query(q: str) -> None:
        session.on_query_change(q)
        await session.settle()
        rows = session.suggestions
        if as_json:
            print(json.dumps([asdict(s) for s in rows], ensure_ascii=False))
        elif not rows:
            print("(no suggestions)")
        else:
            for i, s in enumerate(rows, 1):
                print(f"{i:<2} {s.username:<32} #{s.user_id}")

        if session.on_submit() is None:
            print(f"error: {session.error}")
            return
        try:
            _print_user(await reader.get_user(picked[-1]), as_json)
        except ArchiveError as exc:
            print(f"error: {exc}")

    try:
        for q in queries:
            await run_query(q)
        if interactive:
            print("Type a username (empty line to exit).")
            while True:
                try:
                    q = (await asyncio.to_thread(input, "> ")).strip()
                except (EOFError, KeyboardInterrupt):
                    break
                if not q:
                    break
                await run_query(q)
        return 0
    finally:
        await source.aclose()


async def _user(source_dsn: str, raw_id: str, as_json: bool) -> int:
    source = make_source(source_dsn)
    try:
        record = await ProfileReader(source).get_user(parse_user_id(raw_id))
    except ArchiveError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        await source.aclose()
    _print_user(record, as_json)
    return 0


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Abs0rb.me archive lookups")
    g = p.add_mutually_exclusive_group(required=True)
    g.add_argument("--build", metavar="RECORDS", help="Build shards + user_map from a JSON/JSONL records file")
    g.add_argument("--locate", metavar="ID", help="Print the shard file and offset for a user id")
    g.add_argument("--user", metavar="ID", help="Print one user's record")
    g.add_argument("--q", default=None, help="Single username query to run once")
    g.add_argument("--repl", action="store_true", help="Interactive username lookup")

    p.add_argument("--out", default=None, help="Site root to write into (with --build)")
    p.add_argument("--source", default=CFG.SOURCE_DSN,
                   help="Archive to read: file:///site, https://host or a folder path")
    p.add_argument("--json", action="store_true", help="Emit JSON")
    p.add_argument("--verbose", action="store_true")

    args = p.parse_args(argv)
    if args.verbose or CFG.VERBOSE:
        logging.basicConfig(level=logging.INFO)

    try:
        if args.build:
            if not args.out:
                p.error("--build requires --out")
            report = build_archive(load_records(args.build), args.out)
            print(f"users={report.users:,} shards={report.shards} partitions={report.partitions} "
                  f"unsearchable={len(report.unsearchable)}")
            return 0

        if args.locate:
            loc = locate(parse_user_id(args.locate))
            if args.json:
                print(json.dumps(asdict(loc)))
            else:
                print(f"{loc.path} [{loc.offset}]")
            return 0

        if args.user:
            return asyncio.run(_user(args.source, args.user, args.json))

        queries = [args.q] if args.q else []
        return asyncio.run(_search(args.source, queries, args.json, args.repl))
    except (ArchiveError, ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
