"""
Release domain objects for grelly.

Describe what release mode is going to write and what it wrote.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .commit import Commit
from .version import ResolvedVersion, SemVer


class BumpLevel(Enum):
    """Which version field a release increments."""
    MAJOR = "major"
    MINOR = "minor"


class MarkerStyle(Enum):
    """How a release is recorded in the repository."""
    TAG = "tag"          # Annotated tag on HEAD
    COMMIT = "commit"    # Empty commit with a release message
    BOTH = "both"        # Release commit, then a tag on it

    @property
    def creates_commit(self) -> bool:
        return self in (MarkerStyle.COMMIT, MarkerStyle.BOTH)

    @property
    def creates_tag(self) -> bool:
        return self in (MarkerStyle.TAG, MarkerStyle.BOTH)


@dataclass
class ReleasePlan:
    """
    Everything release mode needs before it writes anything.

    Attributes:
        current: Resolution at HEAD before the release
        target: Version being released (patch is always 0)
        style: How the release is recorded
        tag_name: Tag to create (None when the style creates no tag)
        commit_message: Release commit message (None when no commit)
        tag_message: Annotation for the tag
        commits: Commits since the previous base, newest first
        changelog_path: Changelog file, None when disabled
    """

    current: ResolvedVersion
    target: SemVer
    style: MarkerStyle
    tag_name: Optional[str] = None
    commit_message: Optional[str] = None
    tag_message: str = ""
    commits: List[Commit] = field(default_factory=list)
    changelog_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'previous': str(self.current.version),
            'version': str(self.target),
            'marker': self.style.value,
            'tag': self.tag_name,
            'commit_message': self.commit_message,
            'changelog': self.changelog_path,
            'commits': len(self.commits),
        }


@dataclass
class ReleaseResult:
    """Outcome of release mode."""
    plan: ReleasePlan
    dry_run: bool = False
    release_commit: Optional[str] = None
    tagged_commit: Optional[str] = None
    changelog_written: bool = False

    def to_dict(self) -> Dict[str, Any]:
        result = self.plan.to_dict()
        result['dry_run'] = self.dry_run
        result['release_commit'] = self.release_commit
        result['tagged_commit'] = self.tagged_commit
        result['changelog_written'] = self.changelog_written
        return result
