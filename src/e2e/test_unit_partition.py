import pytest

from absorb_archive.errors import TransportError
from absorb_archive.models import Suggestion
from absorb_archive.normalize import bucket_for
from absorb_archive.search import Partition


def test_prefix_matches_keep_mapping_order():
    p = Partition("a", {"alice": 1, "alicia": 2, "bob": 3})
    assert p.complete("ali") == [Suggestion("alice", 1), Suggestion("alicia", 2)]


def test_matching_is_case_insensitive_but_display_keeps_casing():
    p = Partition("a", {"ALIce": 1, "alicia": 2})
    assert [s.username for s in p.complete("aLi")] == ["ALIce", "alicia"]


def test_hard_cap_is_a_slice_not_a_ranking():
    names = {f"a{i}": i for i in range(1, 8)}
    names = {"azzz": 100, **names}
    p = Partition("a", names)
    assert [s.user_id for s in p.complete("a")] == [100, 1, 2, 3, 4]
    assert len(p.complete("a", limit=2)) == 2


def test_resolve_exact_case_insensitive_only():
    p = Partition("b", {"bob": 3, "bobcat": 9})
    assert p.resolve("BOB") == 3
    assert p.resolve("bobby") is None
    assert p.resolve("bo") is None


def test_first_spelling_wins_on_case_collision():
    p = Partition("b", {"Bob": 3, "bob": 4})
    assert p.resolve("bob") == 3


def test_from_json_rejects_bad_payloads():
    with pytest.raises(TransportError):
        Partition.from_json("a", ["alice"])
    with pytest.raises(TransportError):
        Partition.from_json("a", {"alice": "1"})
    assert len(Partition.from_json("a", {"alice": 1})) == 1


@pytest.mark.parametrize("text,bucket", [
    ("alice", "a"), ("Zed", "z"), ("7even", "7"), ("", None), (" bob", None), ("_x", None), ("éric", None),
])
def test_bucket_for(text, bucket):
    assert bucket_for(text) == bucket
