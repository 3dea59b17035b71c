"""
Infrastructure layer for grelly.

Contains abstractions for external systems:
- GitClient: Git command execution
- RefReader: Read-only repository queries and snapshots
- ReleaseWriter: Release tag and commit creation
- ChangelogWriter: Changelog file appends

These provide clean interfaces that can be mocked for testing.
"""

from .git_client import GitClient, GitResult
from .ref_reader import RefReader
from .release_writer import ReleaseWriter
from .changelog import ChangelogWriter

__all__ = [
    'GitClient',
    'GitResult',
    'RefReader',
    'ReleaseWriter',
    'ChangelogWriter',
]
