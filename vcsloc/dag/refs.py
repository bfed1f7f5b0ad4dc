import hashlib
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence

PEELED_SUFFIX = "^{}"


@dataclass(frozen=True)
class Ref:
    hash: str
    name: str

    def to_line(self) -> str:
        return f"{self.hash} {self.name}"


def parse_ref_line(line: str) -> Ref:
    """Parses a '<hash> <name>' line. The name is everything after the first space."""
    hash_, sep, name = line.partition(" ")
    if not sep or not hash_ or not name:
        raise ValueError(f"Invalid ref line: {line!r}")
    return Ref(hash=hash_, name=name)


def collapse_refs(pairs: Iterable[Ref]) -> List[Ref]:
    """Dereferences tags and collapses duplicate ref names.

    A peeled entry ('refs/tags/v1^{}') replaces the tag object's hash with the
    commit it points to. A name seen twice keeps its first position and its
    last-seen hash.
    """
    by_name: Dict[str, str] = {}
    for ref in pairs:
        name = ref.name
        if name.endswith(PEELED_SUFFIX):
            name = name[: -len(PEELED_SUFFIX)]
        by_name[name] = ref.hash
    return [Ref(hash=h, name=n) for n, h in by_name.items()]


def refs_equal(a: Sequence[Ref], b: Sequence[Ref]) -> bool:
    """Pairwise, order-sensitive comparison of two ref lists."""
    if len(a) != len(b):
        return False
    for x, y in zip(a, b):
        if x.hash != y.hash or x.name != y.name:
            return False
    return True


def refs_signature(refs: Sequence[Ref]) -> str:
    """SHA-1 over the ref lines, in order."""
    h = hashlib.sha1()
    for ref in refs:
        h.update(ref.to_line().encode())
        h.update(b"\n")
    return h.hexdigest()
