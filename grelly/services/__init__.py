"""
Service layer for grelly.

Contains the logic that orchestrates domain objects and infrastructure:
- signals: Branch, tag and release-commit signal extractors
- VersionResolver: Signal reconciliation and PATCH counting
- ReleaseService: Release planning and marker/changelog writing
- VersionService: One repository, its settings and both of the above

Services are the primary API for the CLI to use.
"""

from .signals import (
    branch_signal,
    tag_signal,
    release_commit_signal,
    nearest_marker,
    prerelease_identifier,
)
from .resolver import VersionResolver
from .release_service import ReleaseService, next_release_version
from .version_service import VersionService

__all__ = [
    'branch_signal',
    'tag_signal',
    'release_commit_signal',
    'nearest_marker',
    'prerelease_identifier',
    'VersionResolver',
    'ReleaseService',
    'next_release_version',
    'VersionService',
]
