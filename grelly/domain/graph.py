"""
Commit graph for grelly.

Holds the commits reachable from HEAD for one invocation and answers the
reachability questions version resolution needs. Every walk is an explicit
breadth-first worklist with a visited set, so diamond and merge-heavy
histories are walked once per commit and long histories never recurse.
"""

from collections import deque
from typing import Callable, Dict, FrozenSet, Iterable, Iterator, List, Optional

from .commit import Commit


class CommitGraph:
    """
    Immutable commit graph keyed by commit id.

    Commits keep the order they were loaded in (git log order), which is
    used to order commit lists and break ties deterministically. Parents
    missing from the graph (shallow clones) are treated as absent.

    Example:
        graph = CommitGraph(commits)
        graph.distance(head_id, tag_commit_id)   # commits since the tag
        graph.commits_between(head_id, tag_commit_id)
    """

    def __init__(self, commits: Iterable[Commit]):
        self._commits: Dict[str, Commit] = {}
        self._order: Dict[str, int] = {}
        for commit in commits:
            if commit.id in self._commits:
                continue
            self._order[commit.id] = len(self._commits)
            self._commits[commit.id] = commit
        self._ancestors: Dict[str, FrozenSet[str]] = {}

    def __len__(self) -> int:
        return len(self._commits)

    def __contains__(self, commit_id: object) -> bool:
        return commit_id in self._commits

    def __iter__(self) -> Iterator[Commit]:
        return iter(self._commits.values())

    def get(self, commit_id: str) -> Optional[Commit]:
        return self._commits.get(commit_id)

    def order(self, commit_id: str) -> int:
        """Load position of a commit (0 is HEAD for a graph read by git log)."""
        return self._order[commit_id]

    def walk(
        self,
        start: str,
        stop: Optional[Callable[[Commit], bool]] = None
    ) -> Iterator[Commit]:
        """
        Yield every ancestor of start (start included), nearest first.

        Args:
            start: Commit id to walk from
            stop: If it returns True for a commit, that commit is yielded but
                  its parents are not followed from it

        Yields:
            Each reachable commit exactly once
        """
        if start not in self._commits:
            return

        seen = {start}
        queue = deque([start])
        while queue:
            commit = self._commits[queue.popleft()]
            yield commit

            if stop is not None and stop(commit):
                continue

            for parent in commit.parents:
                if parent in seen or parent not in self._commits:
                    continue
                seen.add(parent)
                queue.append(parent)

    def ancestor_ids(self, start: str) -> FrozenSet[str]:
        """Ids of all commits reachable from start, start included."""
        cached = self._ancestors.get(start)
        if cached is None:
            cached = frozenset(commit.id for commit in self.walk(start))
            self._ancestors[start] = cached
        return cached

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        return ancestor in self.ancestor_ids(descendant)

    def distance(self, head: str, base: Optional[str] = None) -> int:
        """
        Count commits reachable from head but not from base.

        Without a base this is the number of commits reachable from head.
        """
        reachable = self.ancestor_ids(head)
        if base is None:
            return len(reachable)
        return len(reachable - self.ancestor_ids(base))

    def commits_between(self, head: str, base: Optional[str] = None) -> List[Commit]:
        """The commits counted by distance(), in load order."""
        ids = self.ancestor_ids(head)
        if base is not None:
            ids = ids - self.ancestor_ids(base)
        return sorted((self._commits[i] for i in ids), key=lambda c: self._order[c.id])

    def frontier(self, head: str, is_marked: Callable[[Commit], bool]) -> List[Commit]:
        """
        Marked commits reachable from head without passing another marked commit.

        Anything behind a marked commit is an ancestor of it and therefore
        strictly farther from head, so the walk stops there.
        """
        return [commit for commit in self.walk(head, stop=is_marked) if is_marked(commit)]
