"""
Domain layer for grelly.

Contains pure domain objects with no I/O or side effects:
- Commit, CommitGraph, RepositorySnapshot: the history snapshot
- SemVer, ReleaseMarker, Signal, ResolvedVersion: version resolution values
- ReleasePlan, ReleaseResult: release mode values

These objects are immutable where possible and provide
serialization methods for JSON output.
"""

from .commit import Commit
from .graph import CommitGraph
from .snapshot import RepositorySnapshot
from .version import (
    SemVer,
    MarkerKind,
    ReleaseMarker,
    SignalSource,
    SignalKind,
    BasePolicy,
    Signal,
    ResolvedVersion,
)
from .release import BumpLevel, MarkerStyle, ReleasePlan, ReleaseResult

__all__ = [
    'Commit',
    'CommitGraph',
    'RepositorySnapshot',
    'SemVer',
    'MarkerKind',
    'ReleaseMarker',
    'SignalSource',
    'SignalKind',
    'BasePolicy',
    'Signal',
    'ResolvedVersion',
    'BumpLevel',
    'MarkerStyle',
    'ReleasePlan',
    'ReleaseResult',
]
