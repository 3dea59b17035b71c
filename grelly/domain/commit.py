"""
Commit domain object for grelly.

Commits are immutable snapshot nodes read once per invocation.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Tuple


@dataclass(frozen=True)
class Commit:
    """
    A commit in the repository history graph.

    Attributes:
        id: Full commit hash
        parents: Parent hashes (empty for a root, two or more for a merge)
        message: Full commit message
        refs: Ref names pointing at this commit (tags, branches)
    """

    id: str
    parents: Tuple[str, ...] = ()
    message: str = ""
    refs: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def short_id(self) -> str:
        return self.id[:7]

    @property
    def subject(self) -> str:
        """First line of the message."""
        return self.message.strip().split('\n', 1)[0].strip()

    @property
    def is_root(self) -> bool:
        return not self.parents

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'short_id': self.short_id,
            'subject': self.subject,
            'parents': list(self.parents),
        }
