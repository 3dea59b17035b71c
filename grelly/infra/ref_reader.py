"""
Read-only repository access for version resolution.

RefReader answers the questions the resolver asks (current branch, current
commit, ancestors, tags on a commit) for one repository, and builds the
RepositorySnapshot the services work on.
"""

import logging
from dataclasses import replace
from typing import Dict, FrozenSet, Iterator, Optional, Set

from ..domain.commit import Commit
from ..domain.graph import CommitGraph
from ..domain.snapshot import RepositorySnapshot
from .git_client import GitClient

logger = logging.getLogger(__name__)


class RefReader:
    """
    Read-only queries over one git repository.

    History and tags are read once per reader and cached, so repeated
    ancestors() calls walk memory rather than re-running git.

    Example:
        reader = RefReader("/path/to/repo")
        snapshot = reader.snapshot()
        print(snapshot.branch, snapshot.head, len(snapshot.graph))
    """

    def __init__(self, path: str, client: Optional[GitClient] = None):
        """
        Initialize RefReader.

        Args:
            path: Any directory inside the work tree
            client: GitClient instance (creates new if None)
        """
        self.client = client or GitClient()
        self.path = path
        self._graphs: Dict[str, CommitGraph] = {}
        self._tags: Optional[Dict[str, Set[str]]] = None

    def current_branch(self) -> Optional[str]:
        return self.client.current_branch(self.path)

    def current_commit(self) -> str:
        return self.client.head_commit(self.path)

    def tags_at(self, commit_id: str) -> FrozenSet[str]:
        return frozenset(self._tag_map().get(commit_id, ()))

    def ancestors(self, commit_id: str) -> Iterator[Commit]:
        """Yield commit_id and every commit reachable from it, nearest first."""
        yield from self._graph(commit_id).walk(commit_id)

    def snapshot(self, branch: Optional[str] = None) -> RepositorySnapshot:
        """
        Capture branch, HEAD and history.

        Args:
            branch: Branch name to use instead of the checked-out one

        Raises:
            RepositoryAccessError: If the repository cannot be read
        """
        head = self.current_commit()
        if branch is None:
            branch = self.current_branch()
            if branch is None:
                logger.info("HEAD is detached; no branch signal")

        shallow = self.client.is_shallow(self.path)
        if shallow:
            logger.warning("Shallow clone: history is truncated, PATCH may be too low")

        graph = self._graph(head)
        logger.debug(f"Read {len(graph)} commits reachable from {head[:7]}")
        return RepositorySnapshot(head=head, graph=graph, branch=branch, shallow=shallow)

    def _tag_map(self) -> Dict[str, Set[str]]:
        if self._tags is None:
            self._tags = self.client.tag_refs(self.path)
        return self._tags

    def _graph(self, rev: str) -> CommitGraph:
        graph = self._graphs.get(rev)
        if graph is None:
            tags = self._tag_map()
            commits = (
                replace(commit, refs=frozenset(tags[commit.id])) if commit.id in tags else commit
                for commit in self.client.log_graph(self.path, rev)
            )
            graph = CommitGraph(commits)
            self._graphs[rev] = graph
        return graph
