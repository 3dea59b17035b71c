"""
Version domain objects for grelly.

- SemVer: the MAJOR.MINOR.PATCH value printed to the user
- ReleaseMarker: a version tag or release commit found in history
- Signal: one candidate (major, minor) from the branch, a tag or a release commit
- ResolvedVersion: a SemVer with the provenance that produced it

All objects are immutable value objects with to_dict() for JSON output.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class SemVer:
    """
    A semantic version. All numeric fields are non-negative integers.

    Examples:
        str(SemVer(1, 2, 3))                       -> "1.2.3"
        str(SemVer(1, 2, 3, prerelease="login"))   -> "1.2.3-login"
    """

    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = None

    def __post_init__(self):
        for name in ('major', 'minor', 'patch'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"SemVer {name} must be a non-negative integer, got {value!r}")

    @property
    def core(self) -> Tuple[int, int, int]:
        return self.major, self.minor, self.patch

    def with_prerelease(self, prerelease: Optional[str]) -> 'SemVer':
        return replace(self, prerelease=prerelease or None)

    def __str__(self) -> str:
        version = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            version += f"-{self.prerelease}"
        return version

    def to_dict(self) -> Dict[str, Any]:
        return {
            'major': self.major,
            'minor': self.minor,
            'patch': self.patch,
            'prerelease': self.prerelease,
        }


class MarkerKind(Enum):
    """What kind of history entry declares a version."""
    TAG = "tag"            # A tag name matching the tag pattern
    COMMIT = "commit"      # A commit subject matching the release pattern


@dataclass(frozen=True)
class ReleaseMarker:
    """
    A version tag or release commit.

    Attributes:
        kind: Tag or release commit
        name: Tag name, or the commit subject for release commits
        commit: Id of the commit the marker sits on
        major, minor, patch: Parsed numbers; minor and patch may be missing
    """

    kind: MarkerKind
    name: str
    commit: str
    major: int
    minor: Optional[int] = None
    patch: Optional[int] = None

    @property
    def line(self) -> Tuple[int, int]:
        """The (major, minor) release line, minor defaulting to 0."""
        return self.major, self.minor or 0

    @property
    def key(self) -> Tuple[int, int, int]:
        """Sort key; higher is a newer version."""
        return self.major, self.minor or 0, self.patch or 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind.value,
            'name': self.name,
            'commit': self.commit,
            'major': self.major,
            'minor': self.minor,
            'patch': self.patch,
        }


class SignalSource(Enum):
    """Where a version signal came from, in precedence order."""
    BRANCH = "branch"
    TAG = "tag"
    RELEASE_COMMIT = "release_commit"

    @property
    def precedence(self) -> int:
        """Lower wins. Also serves as the signal's confidence rank."""
        return _PRECEDENCE[self]


_PRECEDENCE = {
    SignalSource.BRANCH: 0,
    SignalSource.TAG: 1,
    SignalSource.RELEASE_COMMIT: 2,
}


class SignalKind(Enum):
    """Shape of a signal: Absent | Major(m) | MajorMinor(m, n)."""
    ABSENT = "absent"
    MAJOR = "major"
    MAJOR_MINOR = "major_minor"


class BasePolicy(Enum):
    """Which marker PATCH counts from when the branch name supplies the version."""
    NEAREST_LOWER_OR_EQUAL = "nearest-lower-or-equal"   # nearest marker <= resolved major.minor
    EXACT = "exact"                                     # nearest marker == resolved major.minor
    NEAREST = "nearest"                                 # nearest marker of any version


@dataclass(frozen=True)
class Signal:
    """
    One candidate version from a single source.

    A signal is absent, carries a major only, or carries major and minor.
    Tag and release-commit signals also carry the marker they came from.
    """

    source: SignalSource
    major: Optional[int] = None
    minor: Optional[int] = None
    marker: Optional[ReleaseMarker] = None
    text: Optional[str] = None

    def __post_init__(self):
        if self.major is None and self.minor is not None:
            raise ValueError("A signal cannot carry a minor version without a major version")

    @classmethod
    def absent(cls, source: SignalSource) -> 'Signal':
        return cls(source=source)

    @classmethod
    def from_marker(cls, source: SignalSource, marker: ReleaseMarker) -> 'Signal':
        return cls(
            source=source,
            major=marker.major,
            minor=marker.minor,
            marker=marker,
            text=marker.name,
        )

    @property
    def kind(self) -> SignalKind:
        if self.major is None:
            return SignalKind.ABSENT
        if self.minor is None:
            return SignalKind.MAJOR
        return SignalKind.MAJOR_MINOR

    @property
    def present(self) -> bool:
        return self.major is not None

    def get(self, field_name: str) -> Optional[int]:
        """Value of 'major' or 'minor', None when the signal does not carry it."""
        return getattr(self, field_name)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'source': self.source.value,
            'kind': self.kind.value,
            'major': self.major,
            'minor': self.minor,
        }
        if self.text:
            result['text'] = self.text
        if self.marker:
            result['commit'] = self.marker.commit
        return result


@dataclass(frozen=True)
class ResolvedVersion:
    """
    A resolved version and how it was derived.

    Attributes:
        version: The SemVer to print
        head: Commit id the version was resolved for
        major_source: Signal that supplied MAJOR (None when defaulted to 0)
        minor_source: Signal that supplied MINOR (None when defaulted to 0)
        base: Marker PATCH was counted from (None when counted from the root)
        distance: Commits reachable from head but not from the base
        branch: Branch name used for the branch signal
        signals: The three signals that were reconciled
        warnings: Ambiguity warnings raised while reconciling
    """

    version: SemVer
    head: str
    major_source: Optional[SignalSource] = None
    minor_source: Optional[SignalSource] = None
    base: Optional[ReleaseMarker] = None
    distance: int = 0
    branch: Optional[str] = None
    signals: Tuple[Signal, ...] = ()
    warnings: Tuple[str, ...] = ()

    def signal(self, source: SignalSource) -> Signal:
        for signal in self.signals:
            if signal.source is source:
                return signal
        return Signal.absent(source)

    @property
    def on_base(self) -> bool:
        """True when head itself carries the base marker."""
        return self.base is not None and self.distance == 0

    def __str__(self) -> str:
        return str(self.version)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': str(self.version),
            **self.version.to_dict(),
            'head': self.head,
            'branch': self.branch,
            'major_source': self.major_source.value if self.major_source else None,
            'minor_source': self.minor_source.value if self.minor_source else None,
            'base': self.base.to_dict() if self.base else None,
            'distance': self.distance,
            'signals': [signal.to_dict() for signal in self.signals],
            'warnings': list(self.warnings),
        }
