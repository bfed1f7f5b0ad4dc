from typing import List, Optional
from pydantic import BaseModel

class RefResponse(BaseModel):
    hash: str
    name: str

class CommitResponse(BaseModel):
    hash: str
    timestamp: int
    author_name: str
    author_email: str
    parents: List[str]
    children: List[str]

class InfoResponse(BaseModel):
    repo_path: str
    vcs: str
    num_repo_objects: int
    num_repo_commits: int
    refs_signature: str
    graph_up_to_date: bool

class GraphNode(BaseModel):
    id: str
    label: str
    group: Optional[str] = None
    author: str
    timestamp: int
    parents: List[str]

class GraphEdge(BaseModel):
    source: str
    target: str

class GraphResponse(BaseModel):
    nodes: List[GraphNode]
    edges: List[GraphEdge]

class SyncResponse(BaseModel):
    up_to_date: bool
    num_objects: int
    num_refs: int
    num_commits: int
    num_roots: int
    tips: List[RefResponse]
    dangling_refs: List[RefResponse]
    unreachable: List[str]
    new_commits: int
    timings: dict
