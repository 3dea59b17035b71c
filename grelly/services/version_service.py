"""
Version service for grelly.

Ties one repository, its configuration and the git infrastructure together.
This is the primary API for the CLI and for library callers.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import Settings, load_settings
from ..domain.release import BumpLevel, ReleaseResult
from ..domain.snapshot import RepositorySnapshot
from ..domain.version import ResolvedVersion
from ..exit_codes import RepositoryAccessError
from ..infra import ChangelogWriter, GitClient, RefReader, ReleaseWriter
from .release_service import ReleaseService
from .resolver import VersionResolver

logger = logging.getLogger(__name__)


class VersionService:
    """
    Resolve and release versions for one repository.

    Example:
        service = VersionService.open("/path/to/repo")
        print(service.resolve().version)

        service.release(bump=BumpLevel.MINOR, dry_run=True)
    """

    def __init__(
        self,
        root: str,
        settings: Settings,
        git_client: Optional[GitClient] = None,
        branch: Optional[str] = None
    ):
        """
        Initialize VersionService.

        Args:
            root: Work tree root
            settings: Validated settings
            git_client: Git client instance (creates default if None)
            branch: Branch name to resolve for instead of the checked-out one
        """
        self.root = root
        self.settings = settings
        self.git = git_client or GitClient(timeout=settings.git_timeout)
        self.branch = branch
        self.reader = RefReader(root, self.git)
        self.resolver = VersionResolver(settings)

    @classmethod
    def open(
        cls,
        path: str = ".",
        overrides: Optional[Dict[str, Any]] = None,
        branch: Optional[str] = None,
        git_client: Optional[GitClient] = None
    ) -> 'VersionService':
        """
        Locate the work tree containing path and load its configuration.

        Args:
            path: Any directory inside the work tree
            overrides: Dotted configuration keys from the command line
            branch: Branch name override

        Raises:
            RepositoryAccessError: If path is not inside a git work tree
            ConfigError: If the configuration is malformed
        """
        if not Path(path).is_dir():
            raise RepositoryAccessError(f"No such directory: {path}")

        client = git_client or GitClient()
        root = client.toplevel(path)
        settings = load_settings(root, overrides)
        client.timeout = settings.git_timeout
        logger.debug(f"Opened repository at {root}")
        return cls(root, settings, client, branch)

    def snapshot(self) -> RepositorySnapshot:
        return self.reader.snapshot(self.branch)

    def resolve(self) -> ResolvedVersion:
        """Resolve the version of HEAD."""
        return self.resolver.resolve(self.snapshot())

    def release(self, bump: Optional[BumpLevel] = None, dry_run: bool = False) -> ReleaseResult:
        """
        Release the next version at HEAD.

        Raises:
            ReleaseConflictError: If the release already exists; nothing is written
            ChangelogIOError: If the changelog failed after the marker was written
        """
        service = ReleaseService(
            self.settings,
            ReleaseWriter(self.root, self.git),
            ChangelogWriter(),
            workdir=self.root,
            resolver=self.resolver,
        )
        return service.release(self.snapshot(), bump, dry_run=dry_run)
