import json
from pathlib import Path
import pytest

from absorb_archive.__main__ import main


def test_locate(capsys):
    assert main(["--locate", "10001"]) == 0
    assert capsys.readouterr().out.strip() == "/data/users/01/00.json [0]"

    assert main(["--locate", "501", "--json"]) == 0
    assert json.loads(capsys.readouterr().out)["path"] == "/data/users/00/01.json"


def test_locate_rejects_bad_id(capsys):
    assert main(["--locate", "0"]) == 1
    assert "Invalid user id" in capsys.readouterr().err


@pytest.mark.e2e
def test_build_then_lookup(tmp_path: Path, records, capsys):
    src = tmp_path / "users.json"
    src.write_text(json.dumps(records), encoding="utf-8")
    out = tmp_path / "site"

    assert main(["--build", str(src), "--out", str(out)]) == 0
    assert "users=7" in capsys.readouterr().out

    assert main(["--user", "501", "--source", str(out)]) == 0
    assert "@carol" in capsys.readouterr().out

    assert main(["--user", "6", "--source", str(out)]) == 1
    assert "not found" in capsys.readouterr().err


@pytest.mark.e2e
def test_query_prints_suggestions_and_resolution(site: Path, capsys):
    assert main(["--q", "ali", "--source", str(site)]) == 0
    out = capsys.readouterr().out
    assert "alice" in out and "Alicia" in out
    assert 'error: User "ali" not found' in out

    assert main(["--q", "bob", "--source", f"file://{site}"]) == 0
    out = capsys.readouterr().out
    assert "#3" in out and "@bob" in out
