import heapq
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from vcsloc.dag.models import Commit
from vcsloc.dag.refs import Ref, parse_ref_line
from vcsloc.db import format as fmt
from vcsloc.errors import DatabaseCorruptError, DatabaseFormatError, PersistenceError

logger = logging.getLogger(__name__)

HASHES_HEADER = "===== hashes: "
COMMITS_HEADER = "===== commits: "


class Section(ABC):
    """One file of the database, loaded and saved independently.

    `dirty` is set whenever the in-memory data differs from the file and is
    only cleared once the file has been completely written.
    """

    name: str = ""
    required: bool = False

    def __init__(self):
        self.dirty = False

    def path(self, db_path: Path) -> Path:
        return Path(db_path) / self.name

    def mark_dirty(self):
        self.dirty = True

    def load(self, db_path: Path):
        path = self.path(db_path)
        self.reset()
        if not path.exists():
            if self.required:
                raise DatabaseCorruptError(f"Missing {self.name} in database at {db_path}")
            self.dirty = False
            return

        try:
            with path.open("r", encoding="utf-8", newline="\n") as f:
                lines = [(lineno, line.rstrip("\n")) for lineno, line in enumerate(f, start=1)]
        except OSError as e:
            raise PersistenceError(f"Could not read {path}: {e}") from e

        self.parse(path, lines)
        self.dirty = False

    def save(self, db_path: Path):
        path = self.path(db_path)
        logger.debug("Saving %s", path)
        try:
            with path.open("w", encoding="utf-8", newline="\n") as f:
                for line in self.lines():
                    f.write(line)
        except OSError as e:
            raise PersistenceError(f"Could not write {path}: {e}") from e
        self.dirty = False

    @abstractmethod
    def reset(self):
        """Empties the in-memory data before a load."""

    @abstractmethod
    def parse(self, path: Path, lines: List[Tuple[int, str]]):
        pass

    @abstractmethod
    def lines(self) -> Iterator[str]:
        pass


class Header(Section):
    """Repository path and VCS kind; written once when the database is created."""

    name = ".header"
    required = True

    def __init__(self, repo_path: str = "", vcs: str = ""):
        super().__init__()
        self.repo_path = repo_path
        self.vcs = vcs

    def reset(self):
        self.repo_path = ""
        self.vcs = ""

    def parse(self, path, lines):
        for lineno, line in lines:
            repo_path = fmt.get_str(line, "repoPath=")
            vcs = fmt.get_str(line, "vcs=")
            if repo_path is not None:
                self.repo_path = repo_path
            elif vcs is not None:
                self.vcs = vcs
            else:
                raise DatabaseFormatError(path, lineno, f"invalid header line: {line}")

    def lines(self):
        yield fmt.kv("repoPath", self.repo_path)
        yield fmt.kv("vcs", self.vcs)


class BaseInfo(Section):
    """Signature of the repository at the last synchronization.

    If the object count hasn't changed and the refs match, the stored graph
    is assumed to be current.
    """

    name = ".info"

    def __init__(self):
        super().__init__()
        self.reset()

    def reset(self):
        self.num_repo_objects = 0
        self.num_repo_commits = 0
        self.refs_signature = ""
        self.graph_up_to_date = False

    def parse(self, path, lines):
        for lineno, line in lines:
            num_objects = fmt.get_int(line, "numRepoObjects=")
            num_commits = fmt.get_int(line, "numRepoCommits=")
            signature = fmt.get_str(line, "refsSignature=")
            up_to_date = fmt.get_bool(line, "graphUpToDate=")
            if num_objects is not None:
                self.num_repo_objects = num_objects
            elif num_commits is not None:
                self.num_repo_commits = num_commits
            elif signature is not None:
                self.refs_signature = signature
            elif up_to_date is not None:
                self.graph_up_to_date = up_to_date
            else:
                raise DatabaseFormatError(path, lineno, f"invalid info line: {line}")

    def lines(self):
        yield fmt.kv("numRepoObjects", self.num_repo_objects)
        yield fmt.kv("numRepoCommits", self.num_repo_commits)
        yield fmt.kv("refsSignature", self.refs_signature)
        yield fmt.kv("graphUpToDate", self.graph_up_to_date)


class RefsSection(Section):
    name = "refs"

    def __init__(self):
        super().__init__()
        self.refs: List[Ref] = []

    def reset(self):
        self.refs = []

    def parse(self, path, lines):
        for lineno, line in lines:
            try:
                self.refs.append(parse_ref_line(line))
            except ValueError as e:
                raise DatabaseFormatError(path, lineno, str(e)) from None

    def lines(self):
        for ref in self.refs:
            yield ref.to_line() + "\n"


class CommitsSection(Section):
    """Commit hashes in native log order, followed by the annotated commit records.

    Records are written in (timestamp, hash) order through a min-heap so the
    file does not depend on dict iteration order.
    """

    name = "commits"

    def __init__(self):
        super().__init__()
        self.hashes: List[str] = []
        self.graph: Dict[str, Commit] = {}

    def reset(self):
        self.hashes = []
        self.graph = {}

    def parse(self, path, lines):
        mode = None
        expected_hashes = expected_commits = 0
        current: Optional[Commit] = None
        records = 0

        def finish(lineno):
            if current is None:
                return
            if not current.hash:
                raise DatabaseFormatError(path, lineno, f"commit record {records - 1} has no hash")
            if current.hash in self.graph:
                raise DatabaseFormatError(path, lineno, f"duplicate commit {current.hash}")
            self.graph[current.hash] = current

        for lineno, line in lines:
            n_hashes = fmt.get_int(line, HASHES_HEADER)
            n_commits = fmt.get_int(line, COMMITS_HEADER)
            if n_hashes is not None:
                mode, expected_hashes = "hashes", n_hashes
                continue
            if n_commits is not None:
                mode, expected_commits = "commits", n_commits
                continue

            if mode == "hashes":
                if not line:
                    raise DatabaseFormatError(path, lineno, "empty hash line")
                self.hashes.append(line)
                continue
            if mode != "commits":
                raise DatabaseFormatError(path, lineno, f"data before section header: {line}")

            index = fmt.get_record_index(line)
            if index is not None:
                if index != records:
                    raise DatabaseFormatError(
                        path, lineno, f"bad commit id {index} (expected {records})"
                    )
                finish(lineno)
                current = Commit(hash="")
                records += 1
                continue
            if current is None:
                raise DatabaseFormatError(path, lineno, f"commit field before record marker: {line}")
            if not self._parse_field(current, line):
                raise DatabaseFormatError(path, lineno, f"bad commit {records - 1}: {line}")

        finish(len(lines))

        if len(self.hashes) != expected_hashes:
            raise DatabaseFormatError(
                path, len(lines), f"expected {expected_hashes} hashes, found {len(self.hashes)}"
            )
        if records != expected_commits:
            raise DatabaseFormatError(
                path, len(lines), f"expected {expected_commits} commits, found {records}"
            )

    @staticmethod
    def _parse_field(commit: Commit, line: str) -> bool:
        value = fmt.get_str(line, "hash=")
        if value is not None:
            commit.hash = value
            return True
        ts = fmt.get_int(line, "timestamp=")
        if ts is not None:
            commit.timestamp = ts
            return True
        value = fmt.get_str(line, "authorName=")
        if value is not None:
            commit.author_name = value
            return True
        value = fmt.get_str(line, "authorEmail=")
        if value is not None:
            commit.author_email = value
            return True
        values = fmt.get_list(line, "parents=")
        if values is not None:
            commit.parents = values
            return True
        values = fmt.get_list(line, "children=")
        if values is not None:
            commit.children = set(values)
            return True
        return False

    def ordered_commits(self) -> Iterable[Commit]:
        heap = [(c.timestamp, c.hash) for c in self.graph.values()]
        heapq.heapify(heap)
        while heap:
            _, oid = heapq.heappop(heap)
            yield self.graph[oid]

    def lines(self):
        yield f"{HASHES_HEADER}{len(self.hashes)}\n"
        for oid in self.hashes:
            yield oid + "\n"
        yield f"{COMMITS_HEADER}{len(self.graph)}\n"
        for i, commit in enumerate(self.ordered_commits()):
            yield fmt.record_marker(i)
            yield fmt.kv("hash", commit.hash)
            yield fmt.kv("timestamp", commit.timestamp)
            yield fmt.kv("authorName", commit.author_name)
            yield fmt.kv("authorEmail", commit.author_email)
            yield fmt.kv("parents", commit.parents)
            yield fmt.kv("children", sorted(commit.children))
