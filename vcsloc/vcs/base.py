from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Type

from vcsloc.dag.models import Commit
from vcsloc.dag.refs import Ref
from vcsloc.errors import ConfigurationError


class RepositoryDataSource(ABC):
    """Read-only queries a VCS backend must answer for graph synchronization."""

    name: str = ""

    def __init__(self, repo_path: Path):
        self.repo_path = Path(repo_path)

    @abstractmethod
    def object_count(self) -> int:
        """Total object count, used only as a cheap change signal."""

    @abstractmethod
    def list_refs(self) -> List[Ref]:
        """All refs, tags dereferenced to their commits, duplicate names collapsed."""

    @abstractmethod
    def root_commits(self) -> List[str]:
        """Hashes of commits without parents."""

    @abstractmethod
    def all_commit_hashes(self) -> List[str]:
        """Every commit hash in the source's native log order."""

    @abstractmethod
    def commit_log(self) -> List[Commit]:
        """Metadata and parents (no children) for every commit reachable from a ref."""


_registry: Dict[str, Type[RepositoryDataSource]] = {}


def register_data_source(cls: Type[RepositoryDataSource]) -> Type[RepositoryDataSource]:
    _registry[cls.name] = cls
    return cls


def available_data_sources() -> List[str]:
    return sorted(_registry)


def create_data_source(vcs: str, repo_path: Path) -> RepositoryDataSource:
    # Backends register themselves on import
    import vcsloc.vcs.git  # noqa: F401

    try:
        cls = _registry[vcs]
    except KeyError:
        raise ConfigurationError(
            f"Unknown version control system '{vcs}' (known: {', '.join(available_data_sources())})"
        ) from None
    return cls(repo_path)
