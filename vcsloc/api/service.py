import logging
from pathlib import Path
from typing import Dict, List, Optional

from vcsloc.api.schemas import (
    CommitResponse,
    GraphEdge,
    GraphNode,
    GraphResponse,
    InfoResponse,
    RefResponse,
    SyncResponse,
)
from vcsloc.dag.builder import topological_sort
from vcsloc.dag.models import Commit
from vcsloc.dag.refs import Ref
from vcsloc.db.database import Database
from vcsloc.sync import sync_database
from vcsloc.vcs.base import create_data_source

logger = logging.getLogger(__name__)


class GraphService:
    def __init__(self, db_path: Path, repo_path: Optional[str] = None, vcs: Optional[str] = None):
        self.db_path = Path(db_path)
        self.repo_path = repo_path
        self.vcs = vcs
        self.db: Optional[Database] = None
        self.sorted_commits: List[Commit] = []

    def refresh(self):
        """Reloads the database from disk."""
        db = Database.open(self.db_path, self.repo_path, self.vcs)
        db.load()
        self.db = db
        self.sorted_commits = topological_sort(db.graph)

    def ensure_loaded(self) -> Database:
        if self.db is None:
            self.refresh()
        return self.db

    def reset(self):
        self.db = None
        self.sorted_commits = []

    def get_info(self) -> InfoResponse:
        db = self.ensure_loaded()
        return InfoResponse(
            repo_path=db.repo_path,
            vcs=db.vcs,
            num_repo_objects=db.info.num_repo_objects,
            num_repo_commits=db.info.num_repo_commits,
            refs_signature=db.info.refs_signature,
            graph_up_to_date=db.info.graph_up_to_date,
        )

    def get_refs(self) -> List[RefResponse]:
        return [_ref_response(r) for r in self.ensure_loaded().refs.refs]

    def get_tips(self) -> List[RefResponse]:
        return [_ref_response(r) for r in self.ensure_loaded().tips()]

    def get_roots(self) -> List[str]:
        return self.ensure_loaded().roots()

    def get_commit(self, oid: str) -> Optional[CommitResponse]:
        node = self.ensure_loaded().graph.get(oid)
        if not node:
            return None
        return _commit_response(node)

    def get_commits(self, limit: int = 50, skip: int = 0) -> List[CommitResponse]:
        self.ensure_loaded()
        selection = self.sorted_commits[skip : skip + limit]
        return [_commit_response(node) for node in selection]

    def get_graph_data(self) -> GraphResponse:
        db = self.ensure_loaded()
        nodes = []
        edges = []

        names: Dict[str, List[str]] = {}
        for ref in db.refs.refs:
            names.setdefault(ref.hash, []).append(ref.name)

        for oid, node in db.graph.items():
            label = oid[:7]
            if oid in names:
                label += " (" + ", ".join(names[oid]) + ")"
            group = "merge" if node.is_merge else "root" if node.is_root else "commit"
            nodes.append(GraphNode(
                id=oid,
                label=label,
                group=group,
                author=f"{node.author_name} <{node.author_email}>",
                timestamp=node.timestamp,
                parents=node.parents,
            ))
            # Child -> parent, git style (new -> old)
            for parent in node.parents:
                edges.append(GraphEdge(source=oid, target=parent))

        return GraphResponse(nodes=nodes, edges=edges)

    def sync(self) -> SyncResponse:
        db = Database.open(self.db_path, self.repo_path, self.vcs)
        source = create_data_source(db.vcs, db.repo_path)
        report = sync_database(db, source)
        self.db = db
        self.sorted_commits = topological_sort(db.graph)
        logger.info("Synced %s: %d commits", self.db_path, report.num_commits)

        return SyncResponse(
            up_to_date=report.up_to_date,
            num_objects=report.num_objects,
            num_refs=report.num_refs,
            num_commits=report.num_commits,
            num_roots=report.num_roots,
            tips=[_ref_response(r) for r in report.tips],
            dangling_refs=[_ref_response(r) for r in report.dangling_refs],
            unreachable=report.unreachable,
            new_commits=len(report.new_commits),
            timings=report.timings,
        )


def _ref_response(ref: Ref) -> RefResponse:
    return RefResponse(hash=ref.hash, name=ref.name)


def _commit_response(node: Commit) -> CommitResponse:
    return CommitResponse(
        hash=node.hash,
        timestamp=node.timestamp,
        author_name=node.author_name,
        author_email=node.author_email,
        parents=node.parents,
        children=sorted(node.children),
    )
