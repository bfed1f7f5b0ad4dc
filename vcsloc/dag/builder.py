import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from vcsloc.dag.models import Commit
from vcsloc.dag.refs import Ref
from vcsloc.errors import GraphCycleError, MissingParentError, RootMismatchError

logger = logging.getLogger(__name__)


@dataclass
class GraphBuildResult:
    graph: Dict[str, Commit]
    roots: List[str] = field(default_factory=list)
    tips: List[Ref] = field(default_factory=list)
    dangling_refs: List[Ref] = field(default_factory=list)
    visited: int = 0
    unreachable: List[str] = field(default_factory=list)
    steps: int = 0

    @property
    def complete(self) -> bool:
        return self.visited == len(self.graph)


class GraphBuilder:
    def __init__(self, records: Iterable[Commit], refs: Sequence[Ref]):
        self.records = records
        self.refs = list(refs)
        self.graph: Dict[str, Commit] = {}

    def build(self) -> GraphBuildResult:
        """Builds the annotated graph (children computed) from parents-only records."""
        self._index()
        graph_tips, dangling = self._partition_refs()

        # Seed with every ref target; a commit shared by several refs is
        # stopped by the visited check on its second pop.
        queue: Deque[Tuple[str, Optional[str]]] = deque((ref.hash, None) for ref in graph_tips)
        visited: Set[str] = set()
        steps = 0

        while queue:
            oid, origin = queue.popleft()
            steps += 1

            # Follow this commit down its first-parent chain
            while oid is not None:
                node = self.graph[oid]
                # origin is the commit we walked down from, i.e. a child of oid
                if origin is not None:
                    node.children.add(origin)

                # Children are linked; an already visited commit has its
                # ancestry linked too.
                if oid in visited:
                    break
                visited.add(oid)

                if not node.parents:
                    break
                for parent_oid in node.parents[1:]:
                    queue.append((parent_oid, oid))
                origin = oid
                oid = node.parents[0]

        unreachable = sorted(set(self.graph) - visited)
        if unreachable:
            logger.warning(
                "visited %d out of %d commits; %d unreachable from any ref",
                len(visited), len(self.graph), len(unreachable),
            )
            for oid in unreachable:
                logger.debug("unreachable: %s", oid)

        return GraphBuildResult(
            graph=self.graph,
            roots=compute_roots(self.graph),
            tips=compute_tips(self.graph, graph_tips),
            dangling_refs=dangling,
            visited=len(visited),
            unreachable=unreachable,
            steps=steps,
        )

    def _index(self):
        self.graph = {}
        for record in self.records:
            if record.hash in self.graph:
                logger.warning("duplicate commit %s in log, keeping the last record", record.hash)
            self.graph[record.hash] = record.copy_without_children()

        for oid, node in self.graph.items():
            for parent_oid in node.parents:
                if parent_oid not in self.graph:
                    raise MissingParentError(oid, parent_oid)

    def _partition_refs(self) -> Tuple[List[Ref], List[Ref]]:
        graph_tips: List[Ref] = []
        dangling: List[Ref] = []
        for ref in self.refs:
            if ref.hash in self.graph:
                graph_tips.append(ref)
            else:
                dangling.append(ref)

        if dangling:
            logger.warning("%d refs missing from repo", len(dangling))
            for ref in dangling:
                logger.warning("%s missing: %s", ref.hash, ref.name)
        return graph_tips, dangling


def build_graph(records: Iterable[Commit], refs: Sequence[Ref]) -> GraphBuildResult:
    return GraphBuilder(records, refs).build()


def compute_roots(graph: Dict[str, Commit]) -> List[str]:
    return sorted(oid for oid, node in graph.items() if node.is_root)


def compute_tips(graph: Dict[str, Commit], refs: Sequence[Ref]) -> List[Ref]:
    """Refs whose commit is in the graph and has no children, in ref order."""
    return [ref for ref in refs if ref.hash in graph and not graph[ref.hash].children]


def check_roots(graph: Dict[str, Commit], reported_roots: Iterable[str]):
    """Every root the data source reports must be a parentless commit of the graph."""
    bad = [oid for oid in reported_roots if oid not in graph or not graph[oid].is_root]
    if bad:
        raise RootMismatchError(bad)


def topological_sort(graph: Dict[str, Commit]) -> List[Commit]:
    """Sorts commits topologically (children before parents).

    Edges point from child to parent, so a post-order DFS over parents puts
    every parent before its children; reversing gives newest first.
    """
    result: List[Commit] = []
    done: Set[str] = set()
    in_progress: Set[str] = set()

    # Deterministic starting order
    for start in sorted(graph):
        if start in done:
            continue
        stack: List[Tuple[str, int]] = [(start, 0)]
        in_progress.add(start)
        while stack:
            oid, i = stack[-1]
            parents = graph[oid].parents
            if i < len(parents):
                stack[-1] = (oid, i + 1)
                parent = parents[i]
                if parent in done or parent not in graph:
                    continue
                if parent in in_progress:
                    raise GraphCycleError(f"Cycle detected in commit graph at {parent}")
                in_progress.add(parent)
                stack.append((parent, 0))
            else:
                stack.pop()
                in_progress.discard(oid)
                done.add(oid)
                result.append(graph[oid])

    return list(reversed(result))
