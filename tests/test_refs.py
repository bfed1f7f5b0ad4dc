import pytest

from vcsloc.dag.refs import Ref, collapse_refs, parse_ref_line, refs_equal, refs_signature

A = "1111" * 10
B = "2222" * 10
T = "abcd" * 10


def test_parse_ref_line():
    assert parse_ref_line(f"{A} refs/heads/main") == Ref(A, "refs/heads/main")
    # name is everything after the first space
    assert parse_ref_line(f"{A} refs/heads/odd name") == Ref(A, "refs/heads/odd name")


@pytest.mark.parametrize("line", ["", A, f"{A} ", f" refs/heads/main"])
def test_parse_ref_line_rejects_malformed(line):
    with pytest.raises(ValueError):
        parse_ref_line(line)


def test_collapse_refs_dereferences_tags():
    refs = collapse_refs([
        Ref(A, "HEAD"),
        Ref(A, "refs/heads/main"),
        Ref(T, "refs/tags/v1"),
        Ref(B, "refs/tags/v1^{}"),
    ])
    assert refs == [
        Ref(A, "HEAD"),
        Ref(A, "refs/heads/main"),
        Ref(B, "refs/tags/v1"),
    ]
    assert all(not r.name.endswith("^{}") for r in refs)


def test_collapse_refs_keeps_last_hash_first_position():
    refs = collapse_refs([Ref(A, "x"), Ref(B, "y"), Ref(B, "x")])
    assert refs == [Ref(B, "x"), Ref(B, "y")]


def test_refs_equal_is_order_sensitive():
    one = [Ref(A, "main"), Ref(B, "topic")]
    assert refs_equal(one, [Ref(A, "main"), Ref(B, "topic")])
    assert not refs_equal(one, list(reversed(one)))
    assert not refs_equal(one, one[:1])
    assert not refs_equal(one, [Ref(A, "main"), Ref(A, "topic")])
    assert not refs_equal(one, [Ref(A, "main"), Ref(B, "topic2")])
    assert refs_equal([], [])


def test_refs_signature():
    one = [Ref(A, "main"), Ref(B, "topic")]
    assert refs_signature(one) == refs_signature(list(one))
    assert refs_signature(one) != refs_signature(list(reversed(one)))
    assert len(refs_signature([])) == 40
