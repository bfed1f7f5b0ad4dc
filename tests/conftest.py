import os
import shutil
import subprocess
from pathlib import Path

import pytest

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


class GitRepo:
    """A throwaway git repository with deterministic author dates."""

    def __init__(self, path: Path):
        self.path = path
        self.clock = 1_600_000_000
        self.env = dict(
            os.environ,
            GIT_AUTHOR_NAME="Ada Lovelace",
            GIT_AUTHOR_EMAIL="ada@example.com",
            GIT_COMMITTER_NAME="Ada Lovelace",
            GIT_COMMITTER_EMAIL="ada@example.com",
            GIT_CONFIG_NOSYSTEM="1",
            HOME=str(path),
        )

    def git(self, *args: str) -> str:
        result = subprocess.run(
            ["git", *args], cwd=self.path, env=self.env, capture_output=True, text=True
        )
        if result.returncode != 0:
            raise RuntimeError(f"Failed to run git command: {args}\n{result.stderr}")
        return result.stdout.strip()

    def init(self):
        self.path.mkdir(parents=True, exist_ok=True)
        self.git("init", "-q", ".")
        self.git("symbolic-ref", "HEAD", "refs/heads/main")
        return self

    def commit(self, message: str) -> str:
        self.clock += 60
        self.env["GIT_AUTHOR_DATE"] = f"{self.clock} +0000"
        self.env["GIT_COMMITTER_DATE"] = f"{self.clock} +0000"
        self.git("commit", "-q", "--allow-empty", "-m", message)
        return self.git("rev-parse", "HEAD")


@pytest.fixture
def git_repo(tmp_path):
    """main: A <- B <- M(merge of B and F), feature: A <- F, annotated tag v1 -> A."""
    repo = GitRepo(tmp_path / "repo").init()
    a = repo.commit("A")
    repo.git("tag", "-a", "v1", "-m", "version 1")
    b = repo.commit("B")
    repo.git("checkout", "-q", "-b", "feature", a)
    f = repo.commit("F")
    repo.git("checkout", "-q", "main")
    repo.clock += 60
    repo.env["GIT_AUTHOR_DATE"] = f"{repo.clock} +0000"
    repo.env["GIT_COMMITTER_DATE"] = f"{repo.clock} +0000"
    repo.git("merge", "-q", "--no-ff", "-m", "M", "feature")
    m = repo.git("rev-parse", "HEAD")
    repo.hashes = {"A": a, "B": b, "F": f, "M": m}
    return repo
