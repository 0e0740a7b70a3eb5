from pathlib import Path
import pytest

from absorb_archive.builder import build_archive


def _record(uid: int, username: str, **user) -> dict:
    return {
        "user": {"id": uid, "username": username, "display": user.pop("display", ""), **user},
        "totals": {"days_played": uid * 2, "items_owned": 7, "games_played": 40},
        "activity": {"first_game_time": 1609459200, "last_game_time": None},
    }


@pytest.fixture
def records() -> list[dict]:
    return [
        _record(1, "alice", display="Alice", coins=1234, total_xp=4500, sign_up=1609459200),
        _record(2, "Alicia", coins=5),
        _record(3, "bob", coins=0),
        _record(4, "_hidden"),
        _record(5, "7even"),
        _record(501, "carol"),
        _record(10001, "dave"),
    ]


@pytest.fixture
def site(tmp_path: Path, records) -> Path:
    root = tmp_path / "public"
    build_archive(records, root)
    return root
