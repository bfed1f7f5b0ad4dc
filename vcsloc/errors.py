from pathlib import Path
from typing import Optional


class VcslocError(Exception):
    """Base class for every error that aborts a synchronization run."""


class ConfigurationError(VcslocError):
    """The invocation is unusable (missing or conflicting db/repo/vcs settings)."""


class DataSourceError(VcslocError):
    """The repository data source failed or returned data that cannot be trusted."""


class CommandError(DataSourceError):
    def __init__(self, exe: str, args, returncode: Optional[int] = None, stderr: str = "",
                 reason: Optional[str] = None):
        self.exe = exe
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr
        cmdline = " ".join([exe, *self.args_list])
        if reason is not None:
            msg = f"{cmdline} failed: {reason}"
        elif returncode is None:
            msg = f"Not installed: {exe}"
        else:
            msg = f"{cmdline} failed with exit code {returncode}"
            if stderr:
                msg += f"\nstderr: {stderr.strip()}"
        super().__init__(msg)


class MalformedLogError(DataSourceError):
    def __init__(self, line: str, missing: str):
        self.line = line
        self.missing = missing
        super().__init__(f"Bad log line (missing {missing!r}): {line}")


class GraphError(VcslocError):
    pass


class MissingParentError(GraphError):
    def __init__(self, commit_hash: str, parent_hash: str):
        self.commit_hash = commit_hash
        self.parent_hash = parent_hash
        super().__init__(
            f"Commit {commit_hash} has parent {parent_hash} which is not in the commit log"
        )


class RootMismatchError(GraphError):
    def __init__(self, bad_roots):
        self.bad_roots = sorted(bad_roots)
        super().__init__(
            f"{len(self.bad_roots)} reported root commit(s) are not parentless commits "
            f"of the graph: {', '.join(self.bad_roots)}"
        )


class GraphCycleError(GraphError):
    pass


class PersistenceError(VcslocError):
    """A database section could not be read or written."""


class DatabaseCorruptError(PersistenceError):
    pass


class DatabaseFormatError(PersistenceError):
    def __init__(self, path: Path, lineno: int, reason: str):
        self.path = path
        self.lineno = lineno
        self.reason = reason
        super().__init__(f"{path}:{lineno}: {reason}")
