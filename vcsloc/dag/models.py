from dataclasses import dataclass, field
from typing import List, Set


@dataclass
class Commit:
    hash: str
    timestamp: int = 0
    author_name: str = ""
    author_email: str = ""
    parents: List[str] = field(default_factory=list)
    children: Set[str] = field(default_factory=set)

    @property
    def is_root(self) -> bool:
        return not self.parents

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

    def copy_without_children(self) -> "Commit":
        return Commit(
            hash=self.hash,
            timestamp=self.timestamp,
            author_name=self.author_name,
            author_email=self.author_email,
            parents=list(self.parents),
        )
