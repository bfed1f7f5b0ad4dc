from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import List
from pathlib import Path
import os

from vcsloc.api.service import GraphService
from vcsloc.api.schemas import CommitResponse, GraphResponse, InfoResponse, RefResponse, SyncResponse
from vcsloc.errors import VcslocError

import logging

# Configure Logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="vcsloc Commit Graph API")

# Allow CORS
# In production, set ALLOWED_ORIGINS to a comma-separated list of domains
allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "*")
allowed_origins = [origin.strip() for origin in allowed_origins_env.split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize Service
# Database defaults to .vcsloc in CWD; repo and vcs are only needed to create one.
service = GraphService(
    Path(os.getenv("VCSLOC_DB", ".vcsloc")),
    repo_path=os.getenv("VCSLOC_REPO") or None,
    vcs=os.getenv("VCSLOC_VCS", "git"),
)

@app.exception_handler(VcslocError)
async def vcsloc_error_handler(request: Request, exc: VcslocError):
    logger.error(f"{request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})

@app.get("/api/info", response_model=InfoResponse)
def get_info():
    """Get the stored repository signature."""
    return service.get_info()

@app.get("/api/refs", response_model=List[RefResponse])
def get_refs():
    return service.get_refs()

@app.get("/api/tips", response_model=List[RefResponse])
def get_tips():
    """Refs whose commit has no children."""
    return service.get_tips()

@app.get("/api/roots", response_model=List[str])
def get_roots():
    return service.get_roots()

@app.get("/api/commits", response_model=List[CommitResponse])
def get_commits(limit: int = 50, skip: int = 0):
    """Get list of commits (topological order, newest first)."""
    return service.get_commits(limit, skip)

@app.get("/api/commits/{oid}", response_model=CommitResponse)
def get_commit(oid: str):
    """Get details of a specific commit."""
    commit = service.get_commit(oid)
    if not commit:
        raise HTTPException(status_code=404, detail="Commit not found")
    return commit

@app.get("/api/graph", response_model=GraphResponse)
def get_graph():
    """Get the full commit graph (nodes and edges)."""
    return service.get_graph_data()

@app.post("/api/sync", response_model=SyncResponse)
def sync():
    """Synchronize the database with the repository."""
    return service.sync()

@app.get("/health")
def health_check():
    return {"status": "ok", "db": str(service.db_path)}
