import random

import pytest

from vcsloc.dag.builder import (
    GraphBuilder,
    build_graph,
    check_roots,
    compute_tips,
    topological_sort,
)
from vcsloc.dag.models import Commit
from vcsloc.dag.refs import Ref
from vcsloc.errors import GraphCycleError, MissingParentError, RootMismatchError


def create_commit(oid, parent_oids, ts=0):
    return Commit(hash=oid, timestamp=ts, author_name="Me", author_email="me@example.com",
                  parents=list(parent_oids))


def children_of(graph):
    return {oid: set(node.children) for oid, node in graph.items()}


def test_simple_chain():
    # A <- B <- C (main)
    records = [create_commit("C", ["B"]), create_commit("B", ["A"]), create_commit("A", [])]
    result = build_graph(records, [Ref("C", "refs/heads/main")])

    assert len(result.graph) == 3
    assert result.graph["A"].children == {"B"}
    assert result.graph["B"].children == {"C"}
    assert result.graph["C"].children == set()
    assert result.roots == ["A"]
    assert result.tips == [Ref("C", "refs/heads/main")]
    assert result.visited == 3
    assert result.complete
    assert result.dangling_refs == []


def test_merge_of_two_roots():
    # A <- B \
    #         M (main)
    # X <- Y /
    records = [
        create_commit("A", []),
        create_commit("B", ["A"]),
        create_commit("X", []),
        create_commit("Y", ["X"]),
        create_commit("M", ["B", "Y"]),
    ]
    result = build_graph(records, [Ref("M", "main")])

    assert result.graph["M"].parents == ["B", "Y"]
    assert result.graph["B"].children == {"M"}
    assert result.graph["Y"].children == {"M"}
    assert result.graph["A"].children == {"B"}
    assert result.graph["X"].children == {"Y"}
    assert result.visited == 5
    assert result.roots == ["A", "X"]
    assert result.tips == [Ref("M", "main")]


def test_dangling_ref_is_reported_not_fatal():
    records = [create_commit("A", []), create_commit("B", ["A"])]
    stale = Ref("deadbeef" * 5, "refs/tags/stale-tag")
    result = build_graph(records, [stale, Ref("B", "main")])

    assert result.dangling_refs == [stale]
    assert result.visited == 2
    assert result.tips == [Ref("B", "main")]


def test_missing_parent_is_fatal():
    records = [create_commit("B", ["A"])]
    with pytest.raises(MissingParentError) as excinfo:
        build_graph(records, [Ref("B", "main")])
    assert excinfo.value.commit_hash == "B"
    assert excinfo.value.parent_hash == "A"


def test_ref_with_children_is_not_a_tip():
    # feature points at B, main at C which builds on B
    records = [create_commit("A", []), create_commit("B", ["A"]), create_commit("C", ["B"])]
    refs = [Ref("B", "feature"), Ref("C", "main"), Ref("C", "HEAD")]
    result = build_graph(records, refs)

    assert result.tips == [Ref("C", "main"), Ref("C", "HEAD")]
    for ref in refs:
        assert (ref in result.tips) == (not result.graph[ref.hash].children)


def test_unreachable_commits_are_kept_and_reported():
    records = [
        create_commit("A", []),
        create_commit("B", ["A"]),
        create_commit("lost2", ["A"]),
        create_commit("lost1", ["lost2"]),
    ]
    result = build_graph(records, [Ref("B", "main")])

    assert not result.complete
    assert result.visited == 2
    assert result.unreachable == ["lost1", "lost2"]
    assert "lost1" in result.graph
    assert result.graph["lost1"].children == set()
    assert result.graph["lost2"].children == set()
    assert all(tip.hash not in result.unreachable for tip in result.tips)

    again = build_graph(records, [Ref("B", "main")])
    assert again.unreachable == result.unreachable


def test_children_are_independent_of_ref_order():
    records = [
        create_commit("A", []),
        create_commit("B", ["A"]),
        create_commit("C", ["A"]),
        create_commit("D", ["B", "C"]),
        create_commit("E", ["D"]),
        create_commit("F", ["C"]),
        create_commit("G", ["E", "F", "B"]),
    ]
    refs = [Ref("G", "main"), Ref("F", "topic"), Ref("E", "old"), Ref("C", "base")]
    expected = children_of(build_graph(records, refs).graph)

    rng = random.Random(7)
    for _ in range(10):
        shuffled = refs[:]
        rng.shuffle(shuffled)
        recs = records[:]
        rng.shuffle(recs)
        assert children_of(build_graph(recs, shuffled).graph) == expected

    assert expected["A"] == {"B", "C"}
    assert expected["B"] == {"D", "G"}
    assert expected["C"] == {"D", "F"}
    assert expected["G"] == set()


def test_builder_does_not_mutate_raw_records():
    raw = [create_commit("A", []), create_commit("B", ["A"])]
    result = GraphBuilder(raw, [Ref("B", "main")]).build()

    assert result.graph["A"].children == {"B"}
    assert raw[0].children == set()
    assert result.graph["A"] is not raw[0]


def test_check_roots():
    graph = build_graph([create_commit("A", []), create_commit("B", ["A"])], []).graph
    check_roots(graph, ["A"])
    with pytest.raises(RootMismatchError):
        check_roots(graph, ["A", "B"])
    with pytest.raises(RootMismatchError):
        check_roots(graph, ["nope"])


def test_compute_tips_ignores_refs_outside_graph():
    graph = build_graph([create_commit("A", [])], [Ref("A", "main")]).graph
    assert compute_tips(graph, [Ref("Z", "gone"), Ref("A", "main")]) == [Ref("A", "main")]


def test_topological_sort_merge():
    # C1 <- C2
    # C1 <- C3
    # C2, C3 <- C4 (Merge)
    records = [
        create_commit("11", []),
        create_commit("22", ["11"]),
        create_commit("33", ["11"]),
        create_commit("44", ["22", "33"]),
    ]
    dag = build_graph(records, [Ref("44", "main")]).graph

    oids = [n.hash for n in topological_sort(dag)]

    # Valid order: C4 comes first. C1 comes last.
    assert oids[0] == "44"
    assert oids[-1] == "11"
    assert set(oids) == {"11", "22", "33", "44"}


def test_topological_sort_detects_cycle():
    dag = {
        "a": create_commit("a", ["b"]),
        "b": create_commit("b", ["a"]),
    }
    with pytest.raises(GraphCycleError):
        topological_sort(dag)
