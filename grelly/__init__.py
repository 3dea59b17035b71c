"""
grelly - Version numbers from git history.

grelly resolves a semantic version for the checked-out commit of a git
repository. MAJOR and MINOR come from the release branch name, the nearest
version tag or the nearest release commit; PATCH counts the commits since
that release. In release mode it records the next version as a tag and/or
release commit and appends the changelog.

Quick Start:
    from grelly import VersionService

    service = VersionService.open("/path/to/repo")
    resolved = service.resolve()
    print(resolved.version)             # 1.4.7
    print(resolved.base, resolved.distance)

    # Release the next minor version
    result = service.release()
    print(result.plan.target)           # 1.5.0

Domain Objects:
    SemVer - MAJOR.MINOR.PATCH[-prerelease]
    Signal - Candidate version from the branch, a tag or a release commit
    ResolvedVersion - A SemVer and the signals and base it came from

Services:
    VersionResolver - Signal reconciliation and PATCH counting
    ReleaseService - Release planning and writing
    VersionService - One repository with its configuration
"""

from .domain import (
    SemVer,
    Signal,
    SignalSource,
    ReleaseMarker,
    ResolvedVersion,
    BasePolicy,
    BumpLevel,
    MarkerStyle,
)
from .services import VersionResolver, ReleaseService, VersionService
from .config import Settings, load_settings
from .exit_codes import (
    CommandError,
    ConfigError,
    RepositoryAccessError,
    ReleaseConflictError,
    ChangelogIOError,
    AmbiguousSignalWarning,
)

__version__ = "0.3.0"

__all__ = [
    'SemVer',
    'Signal',
    'SignalSource',
    'ReleaseMarker',
    'ResolvedVersion',
    'BasePolicy',
    'BumpLevel',
    'MarkerStyle',
    'VersionResolver',
    'ReleaseService',
    'VersionService',
    'Settings',
    'load_settings',
    'CommandError',
    'ConfigError',
    'RepositoryAccessError',
    'ReleaseConflictError',
    'ChangelogIOError',
    'AmbiguousSignalWarning',
]
