"""
Shared fixtures for grelly tests.

Two ways to build history:

- ``History``: an in-memory commit graph for resolver tests
- ``GitRepo``: a real repository in a temporary directory, driven with git
"""

import os
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

import pytest

from grelly.domain.commit import Commit
from grelly.domain.graph import CommitGraph
from grelly.domain.snapshot import RepositorySnapshot


class History:
    """
    Builds a CommitGraph by hand.

    Commits default to having the previously added commit as their only
    parent, so a plain sequence of commit() calls is a linear history.
    """

    def __init__(self):
        self.commits: List[Commit] = []

    def commit(
        self,
        commit_id: str,
        parents: Optional[Sequence[str]] = None,
        message: Optional[str] = None,
        tags: Sequence[str] = ()
    ) -> str:
        if parents is None:
            parents = (self.commits[-1].id,) if self.commits else ()
        self.commits.append(Commit(
            id=commit_id,
            parents=tuple(parents),
            message=message or f"Change {commit_id}",
            refs=frozenset(tags),
        ))
        return commit_id

    def linear(self, prefix: str, count: int) -> List[str]:
        return [self.commit(f"{prefix}{i}") for i in range(count)]

    def graph(self) -> CommitGraph:
        # git log order: newest first
        return CommitGraph(reversed(self.commits))

    def snapshot(self, head: Optional[str] = None, branch: Optional[str] = "main") -> RepositorySnapshot:
        return RepositorySnapshot(
            head=head or self.commits[-1].id,
            graph=self.graph(),
            branch=branch,
        )


class GitRepo:
    """A throwaway git repository on disk."""

    def __init__(self, path: Path):
        self.path = path
        self._counter = 0

    def git(self, *args: str) -> str:
        result = subprocess.run(
            ["git", *args],
            cwd=self.path,
            capture_output=True,
            text=True,
            check=True
        )
        return result.stdout.strip()

    def init(self) -> 'GitRepo':
        self.path.mkdir(parents=True, exist_ok=True)
        self.git("init", "-q")
        self.git("symbolic-ref", "HEAD", "refs/heads/main")
        self.git("config", "user.email", "test@example.com")
        self.git("config", "user.name", "Test User")
        self.git("config", "commit.gpgsign", "false")
        self.git("config", "tag.gpgsign", "false")
        return self

    def commit(self, message: Optional[str] = None) -> str:
        """Commit a change to a tracked file and return the new commit id."""
        self._counter += 1
        (self.path / "work.txt").write_text(f"{self._counter}\n")
        self.git("add", "work.txt")
        self.git("commit", "-q", "-m", message or f"Change {self._counter}")
        return self.head()

    def commits(self, count: int) -> List[str]:
        return [self.commit() for _ in range(count)]

    def tag(self, name: str, rev: str = "HEAD", annotated: bool = False) -> None:
        if annotated:
            self.git("tag", "-a", name, "-m", f"Tag {name}", rev)
        else:
            self.git("tag", name, rev)

    def checkout(self, name: str, create: bool = False) -> None:
        if create:
            self.git("checkout", "-q", "-b", name)
        else:
            self.git("checkout", "-q", name)

    def merge(self, branch: str, message: Optional[str] = None) -> str:
        self.git("merge", "-q", "--no-ff", "-X", "theirs", "-m", message or f"Merge {branch}", branch)
        return self.head()

    def head(self) -> str:
        return self.git("rev-parse", "HEAD")

    def tags(self) -> List[str]:
        return self.git("tag", "--list").split()

    def subject(self, rev: str = "HEAD") -> str:
        return self.git("log", "-1", "--format=%s", rev)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path_factory):
    """Keep the user's git and grelly configuration out of every test."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.delenv("GIT_DIR", raising=False)
    monkeypatch.delenv("GIT_WORK_TREE", raising=False)
    for key in list(os.environ):
        if key.startswith("GRELLY_"):
            monkeypatch.delenv(key)
    return home


@pytest.fixture
def history() -> History:
    return History()


@pytest.fixture
def git_repo(tmp_path) -> GitRepo:
    """An initialized, empty repository on branch main."""
    return GitRepo(tmp_path / "repo").init()
