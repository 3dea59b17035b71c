"""
Repository snapshot for grelly.

Everything version resolution reads from the repository, captured once:
the current branch, the HEAD commit, and the commit graph reachable from
HEAD with tag names attached to their commits.
"""

from dataclasses import dataclass
from typing import FrozenSet, Optional

from .graph import CommitGraph


@dataclass(frozen=True)
class RepositorySnapshot:
    """
    Read-only view of a repository at one point in time.

    Attributes:
        head: Id of the current commit
        graph: Commits reachable from head
        branch: Current branch name, None on a detached HEAD
        shallow: True when history is truncated (counts are then lower bounds)
    """

    head: str
    graph: CommitGraph
    branch: Optional[str] = None
    shallow: bool = False

    def tags_at(self, commit_id: str) -> FrozenSet[str]:
        commit = self.graph.get(commit_id)
        return commit.refs if commit is not None else frozenset()
