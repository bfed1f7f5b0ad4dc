import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from vcsloc.dag.builder import compute_roots, compute_tips
from vcsloc.dag.models import Commit
from vcsloc.dag.refs import Ref, refs_signature
from vcsloc.db.sections import BaseInfo, CommitsSection, Header, RefsSection
from vcsloc.errors import ConfigurationError, PersistenceError

logger = logging.getLogger(__name__)


class Database:
    """In-memory view of a vcsloc database directory.

    Sections are loaded and saved independently; `save` only rewrites the
    ones marked dirty. There is no locking: one writer at a time.
    """

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self.header = Header()
        self.info = BaseInfo()
        self.refs = RefsSection()
        self.commits = CommitsSection()

    @classmethod
    def open(
        cls,
        db_path: Optional[Union[str, Path]],
        repo_path: Optional[str] = None,
        vcs: Optional[str] = None,
    ) -> "Database":
        """Opens an existing database or creates a new one.

        On an existing database, repo_path and vcs (when given) must match the
        header. Creating a database requires both.
        """
        if not db_path:
            raise ConfigurationError("Specify a database path with --db=<path>")
        db = cls(db_path)

        if db.db_path.is_dir():
            db.header.load(db.db_path)
            db._validate_header(repo_path, vcs)
            logger.debug("Opened database at %s (repo %s, vcs %s)",
                         db.db_path, db.header.repo_path, db.header.vcs)
            return db

        if db.db_path.exists():
            raise ConfigurationError(f"File in the way at '{db.db_path}'")
        if not vcs:
            raise ConfigurationError("Specify a version control system with --vcs=<type>")
        if not repo_path:
            raise ConfigurationError("Specify a repository path with --repo=<path>")

        try:
            db.db_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Could not create db '{db.db_path}': {e}") from e

        db.header.repo_path = str(repo_path)
        db.header.vcs = vcs
        db.header.save(db.db_path)
        logger.info("Created database at %s for %s repo %s", db.db_path, vcs, repo_path)
        return db

    def _validate_header(self, repo_path: Optional[str], vcs: Optional[str]):
        if repo_path and str(repo_path) != self.header.repo_path:
            raise ConfigurationError(
                f"Database at {self.db_path} is for repo '{self.header.repo_path}', not '{repo_path}'"
            )
        if vcs and vcs != self.header.vcs:
            raise ConfigurationError(
                f"Database at {self.db_path} is for vcs '{self.header.vcs}', not '{vcs}'"
            )

    @property
    def repo_path(self) -> str:
        return self.header.repo_path

    @property
    def vcs(self) -> str:
        return self.header.vcs

    @property
    def graph(self) -> Dict[str, Commit]:
        return self.commits.graph

    def load(self):
        """Loads every data section. Missing files load as empty sections."""
        self.info.load(self.db_path)
        self.refs.load(self.db_path)
        self.commits.load(self.db_path)

        if self.info.refs_signature and self.info.refs_signature != refs_signature(self.refs.refs):
            logger.warning(
                "refs in %s do not match the stored signature; the last save may have been interrupted",
                self.db_path,
            )

    def save(self):
        """Writes the dirty sections, in order: info, refs, commits."""
        for section in (self.header, self.info, self.refs, self.commits):
            if section.dirty:
                section.save(self.db_path)

    def mark_dirty(self):
        self.info.mark_dirty()
        self.refs.mark_dirty()
        self.commits.mark_dirty()

    def roots(self) -> List[str]:
        return compute_roots(self.graph)

    def tips(self) -> List[Ref]:
        return compute_tips(self.graph, self.refs.refs)
