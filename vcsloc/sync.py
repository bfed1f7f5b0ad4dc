import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from vcsloc.dag.builder import build_graph, check_roots
from vcsloc.dag.refs import Ref, refs_equal, refs_signature
from vcsloc.db.database import Database
from vcsloc.db.sections import BaseInfo
from vcsloc.vcs.base import RepositoryDataSource

logger = logging.getLogger(__name__)


def is_up_to_date(
    info: BaseInfo,
    stored_refs: Sequence[Ref],
    live_object_count: int,
    live_refs: Sequence[Ref],
) -> bool:
    """Whether the stored graph can be reused as-is.

    Requires the same object count, the same refs in the same order, and a
    graph that was completely written by the last run. Any change forces a
    rebuild, even one that would not affect the graph.
    """
    if info.num_repo_objects != live_object_count:
        return False
    if not refs_equal(stored_refs, live_refs):
        return False
    return info.graph_up_to_date


@dataclass
class SyncReport:
    up_to_date: bool = False
    num_objects: int = 0
    num_refs: int = 0
    num_commits: int = 0
    num_roots: int = 0
    visited: int = 0
    tips: List[Ref] = field(default_factory=list)
    dangling_refs: List[Ref] = field(default_factory=list)
    unreachable: List[str] = field(default_factory=list)
    new_commits: List[str] = field(default_factory=list)
    timings: Dict[str, float] = field(default_factory=dict)

    def summary_lines(self) -> List[str]:
        lines = [
            f"objects: {self.num_objects}",
            f"refs: {self.num_refs}",
            f"commits: {self.num_commits}",
        ]
        if self.up_to_date:
            lines.append("graph is up to date")
        else:
            lines.append(f"visited {self.visited} out of {self.num_commits} commits")
            lines.append(f"roots: {self.num_roots}, tips: {len(self.tips)}")
            lines.append(f"new commits: {len(self.new_commits)}")
            if self.dangling_refs:
                lines.append(f"dangling refs: {len(self.dangling_refs)}")
            if self.unreachable:
                lines.append(f"unreachable commits: {len(self.unreachable)}")
        for phase, elapsed in self.timings.items():
            lines.append(f"{phase}: {elapsed:.2f}s")
        return lines


class Synchronizer:
    def __init__(self, db: Database, source: RepositoryDataSource):
        self.db = db
        self.source = source
        self.report = SyncReport()

    @contextmanager
    def _phase(self, label: str):
        logger.info("%s...", label)
        start = time.perf_counter()
        yield
        elapsed = time.perf_counter() - start
        self.report.timings[label] = elapsed
        logger.info("%s: elapsed %.2f", label, elapsed)

    def sync(self) -> SyncReport:
        """Brings the database's graph up to date with the repository."""
        self.report = SyncReport()
        db = self.db

        with self._phase("Count objects"):
            num_objects = self.source.object_count()
        self.report.num_objects = num_objects
        logger.debug("%d objects", num_objects)

        with self._phase("Fetch refs"):
            live_refs = self.source.list_refs()
        self.report.num_refs = len(live_refs)
        for i, ref in enumerate(live_refs):
            logger.debug("%4d: %s = %s", i, ref.name, ref.hash)

        if is_up_to_date(db.info, db.refs.refs, num_objects, live_refs):
            logger.info("Graph is up to date")
            self.report.up_to_date = True
            self.report.num_commits = db.info.num_repo_commits
            self.report.num_roots = len(db.roots())
            self.report.tips = db.tips()
            return self.report

        self._mark_stale(num_objects, live_refs)
        self._rebuild(live_refs)
        return self.report

    def _mark_stale(self, num_objects: int, live_refs: List[Ref]):
        # Persist the stale flag first; a crash during the rebuild leaves the
        # database flagged for a rebuild on the next run.
        db = self.db
        db.mark_dirty()
        db.info.graph_up_to_date = False
        db.info.num_repo_objects = num_objects
        db.refs.refs = list(live_refs)
        db.info.save(db.db_path)
        db.refs.save(db.db_path)

    def _rebuild(self, live_refs: List[Ref]):
        db = self.db
        previous_hashes = set(db.commits.hashes)

        with self._phase("Fetch root commits"):
            roots = self.source.root_commits()
        for i, oid in enumerate(roots):
            logger.debug("%4d: root %s", i, oid)

        with self._phase("Fetch commit hashes"):
            hashes = self.source.all_commit_hashes()

        with self._phase("Fetch commits"):
            records = self.source.commit_log()
        for i, c in enumerate(records):
            logger.debug("%4d: commit=%s parents=%s", i, c.hash, ", ".join(c.parents))

        with self._phase("Make graph"):
            result = build_graph(records, live_refs)
            check_roots(result.graph, roots)
        logger.info("visited %d out of %d commits", result.visited, len(result.graph))

        new_commits = [oid for oid in hashes if oid not in previous_hashes]
        if previous_hashes:
            logger.info("%d new commits since last sync", len(new_commits))

        db.commits.hashes = hashes
        db.commits.graph = result.graph
        db.info.num_repo_commits = len(result.graph)
        db.info.refs_signature = refs_signature(live_refs)
        db.info.graph_up_to_date = True
        db.mark_dirty()

        with self._phase("Save"):
            db.save()

        self.report.num_commits = len(result.graph)
        self.report.num_roots = len(result.roots)
        self.report.visited = result.visited
        self.report.tips = result.tips
        self.report.dangling_refs = result.dangling_refs
        self.report.unreachable = result.unreachable
        self.report.new_commits = new_commits


def sync_database(db: Database, source: RepositoryDataSource) -> SyncReport:
    db.load()
    return Synchronizer(db, source).sync()
