import logging
from typing import List, Optional

from vcsloc.dag.models import Commit
from vcsloc.dag.refs import Ref, collapse_refs, parse_ref_line
from vcsloc.errors import CommandError, MalformedLogError
from vcsloc.vcs.base import RepositoryDataSource, register_data_source
from vcsloc.vcs.cmd import CommandResult, run_external, run_external_incremental

logger = logging.getLogger(__name__)

# Markers in the order git prints them
LOG_MARKERS = ("|Commit| ", " |Time| ", " |Name| ", " |Email| ", " |Parents| ")
LOG_FORMAT = "|Commit| %H |Time| %at |Name| %an |Email| %ae |Parents| %P"


def parse_log_line(line: str) -> Commit:
    """Parses one line of LOG_FORMAT output into a parents-only Commit."""
    fields = []
    rest = line
    for i, marker in enumerate(LOG_MARKERS):
        if i == 0:
            if not rest.startswith(marker):
                raise MalformedLogError(line, marker.strip())
            rest = rest[len(marker):]
            continue
        value, sep, rest = rest.partition(marker)
        if not sep:
            raise MalformedLogError(line, marker.strip())
        fields.append(value)
    fields.append(rest)

    oid, timestamp, name, email, parents = fields
    if not oid:
        raise MalformedLogError(line, "commit hash")
    try:
        ts = int(timestamp)
    except ValueError:
        raise MalformedLogError(line, "timestamp") from None

    return Commit(
        hash=oid,
        timestamp=ts,
        author_name=name,
        author_email=email,
        parents=parents.split(),
    )


def parse_count_objects(text: str) -> int:
    """Sums loose and packed objects from 'git count-objects -v' output."""
    counts = {}
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if sep:
            counts[key.strip()] = value.strip()
    try:
        return int(counts.get("count", "0")) + int(counts.get("in-pack", "0"))
    except ValueError:
        raise MalformedLogError(text, "object count") from None


@register_data_source
class GitDataSource(RepositoryDataSource):
    name = "git"

    def __init__(self, repo_path):
        super().__init__(repo_path)
        self._refs: Optional[List[Ref]] = None

    def _git(self, *args: str) -> CommandResult:
        result = run_external("git", self.repo_path, *args)
        logger.debug("git %s: %.2fs", " ".join(args), result.elapsed)
        return result

    def object_count(self) -> int:
        return parse_count_objects(self._git("count-objects", "-v").stdout)

    def list_refs(self) -> List[Ref]:
        try:
            result = self._git("show-ref", "--head", "-d")
        except CommandError as e:
            # show-ref exits 1 with no output when there are no refs at all
            if e.returncode == 1 and not e.stderr.strip():
                self._refs = []
                return []
            raise
        self._refs = collapse_refs(parse_ref_line(line) for line in result.lines if line)
        return list(self._refs)

    def _has_refs(self) -> bool:
        # git log --all fails on a repository without refs
        if self._refs is None:
            self.list_refs()
        return bool(self._refs)

    def root_commits(self) -> List[str]:
        if not self._has_refs():
            return []
        return [line for line in self._git("rev-list", "--max-parents=0", "--all").lines if line]

    def all_commit_hashes(self) -> List[str]:
        if not self._has_refs():
            return []
        return [line for line in self._git("log", "--all", "--format=%H").lines if line]

    def commit_log(self) -> List[Commit]:
        if not self._has_refs():
            return []
        commits: List[Commit] = []

        def on_line(line: str):
            if line:
                commits.append(parse_log_line(line))

        elapsed = run_external_incremental(
            on_line, logger.debug, "git", self.repo_path, "log", "--all", f"--format={LOG_FORMAT}"
        )
        logger.debug("git log --all: %d commits in %.2fs", len(commits), elapsed)
        return commits
