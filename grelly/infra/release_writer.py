"""
Release marker writer for grelly.

Records a release in the repository as an annotated tag and/or an empty
release commit. Git refuses to create a tag that already exists, which is
what keeps two concurrent releases from both succeeding.
"""

import logging
from typing import List, Optional, Tuple

from ..exit_codes import ReleaseConflictError, RepositoryAccessError
from .git_client import GitClient

logger = logging.getLogger(__name__)


class ReleaseWriter:
    """
    Creates release tags and release commits in one repository.

    Example:
        writer = ReleaseWriter("/path/to/repo")
        writer.create_tag("v1.3", head_id, "Release 1.3.0")
    """

    def __init__(self, path: str, client: Optional[GitClient] = None):
        self.client = client or GitClient()
        self.path = path

    def tag_exists(self, name: str) -> bool:
        return self.client.tag_exists(self.path, name)

    def commit_subjects(self) -> List[Tuple[str, str]]:
        """Subjects of every commit on any ref, including unmerged branches."""
        return self.client.all_subjects(self.path)

    def create_tag(self, name: str, target: str, message: str) -> None:
        """
        Create an annotated tag on target.

        Raises:
            ReleaseConflictError: If the tag already exists
            RepositoryAccessError: If git cannot create the tag
        """
        if self.client.tag_exists(self.path, name):
            raise ReleaseConflictError(f"Tag {name} already exists")

        result = self.client.create_tag(self.path, name, target, message)
        if not result.ok:
            # Another invocation may have created it since the check above
            if self.client.tag_exists(self.path, name):
                raise ReleaseConflictError(f"Tag {name} already exists")
            raise RepositoryAccessError(f"Could not create tag {name}", result.stderr)

        logger.info(f"Created tag {name} on {target[:7]}")

    def create_commit(self, message: str) -> str:
        """
        Create an empty release commit on the current branch.

        Returns:
            Id of the new commit

        Raises:
            RepositoryAccessError: If git cannot create the commit
        """
        result = self.client.commit_empty(self.path, message)
        if not result.ok:
            raise RepositoryAccessError("Could not create release commit", result.stderr or result.stdout)

        commit_id = self.client.head_commit(self.path)
        logger.info(f"Created release commit {commit_id[:7]}: {message}")
        return commit_id
