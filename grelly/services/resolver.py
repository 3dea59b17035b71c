"""
Version resolution for grelly.

Reconciles the branch, tag and release-commit signals into one version and
counts PATCH as the commits since a base marker.

Precedence, field by field:

1. The branch name: its MAJOR, and its MINOR when it has one
2. The nearest version tag
3. The nearest release commit
4. 0

PATCH is the number of commits reachable from HEAD but not from the base
marker. When no branch MAJOR is involved the base is the marker that
supplied the version; when the branch supplied it, the base is chosen by
the configured BasePolicy. Without a base, every commit reachable from
HEAD counts.
"""

import logging
import warnings
from typing import Dict, List, Optional, Tuple

from ..config import Settings
from ..domain.snapshot import RepositorySnapshot
from ..domain.version import (
    BasePolicy,
    ReleaseMarker,
    ResolvedVersion,
    SemVer,
    Signal,
    SignalSource,
)
from ..exit_codes import AmbiguousSignalWarning
from .signals import (
    MarkerMap,
    branch_signal,
    find_release_commit_markers,
    find_tag_markers,
    merge_marker_maps,
    nearest_marker,
    prerelease_identifier,
    release_commit_signal,
    tag_signal,
)

logger = logging.getLogger(__name__)

FIELDS = ('major', 'minor')


class VersionResolver:
    """
    Resolves a ResolvedVersion from a repository snapshot.

    The resolver is a pure function of the snapshot and settings: the same
    history, refs and configuration always give the same result.

    Example:
        resolver = VersionResolver(settings)
        resolved = resolver.resolve(snapshot)
        print(resolved.version, resolved.base, resolved.distance)
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings.defaults()

    def markers(self, snapshot: RepositorySnapshot) -> Tuple[MarkerMap, MarkerMap]:
        """Tag markers and release-commit markers in the snapshot."""
        return (
            find_tag_markers(snapshot, self.settings.tag_pattern),
            find_release_commit_markers(snapshot, self.settings.release_pattern),
        )

    def resolve(self, snapshot: RepositorySnapshot) -> ResolvedVersion:
        tag_markers, commit_markers = self.markers(snapshot)

        branch = branch_signal(snapshot, self.settings.branch_pattern)
        tag = tag_signal(snapshot, self.settings.tag_pattern, tag_markers)
        release = release_commit_signal(snapshot, self.settings.release_pattern, commit_markers)
        logger.debug(f"Signals: branch={branch.kind.value} tag={tag.text} release={release.text}")

        return self.reconcile(snapshot, branch, tag, release, merge_marker_maps(tag_markers, commit_markers))

    def reconcile(
        self,
        snapshot: RepositorySnapshot,
        branch: Signal,
        tag: Signal,
        release: Signal,
        markers: MarkerMap
    ) -> ResolvedVersion:
        """
        Merge the three signals and count PATCH.

        Args:
            snapshot: Repository snapshot
            branch, tag, release: Signals in precedence order
            markers: All tag and release-commit markers, for base selection
        """
        signals = (branch, tag, release)
        values: Dict[str, int] = {}
        sources: Dict[str, Optional[SignalSource]] = {}

        for field in FIELDS:
            values[field], sources[field] = 0, None
            for signal in signals:
                value = signal.get(field)
                if value is not None:
                    values[field], sources[field] = value, signal.source
                    break

        major, minor = values['major'], values['minor']
        notes = self._ambiguities(signals, values, sources)

        base = self._base(snapshot, signals, sources, (major, minor), markers)
        distance = snapshot.graph.distance(snapshot.head, base.commit if base else None)

        patch = distance
        if base is not None and base.line == (major, minor) and base.patch:
            patch += base.patch

        prerelease = None
        if self.settings.prerelease_from_branch and not branch.present:
            if snapshot.branch and snapshot.branch.lower() not in self.settings.main_branches:
                prerelease = prerelease_identifier(snapshot.branch)

        version = SemVer(major, minor, patch, prerelease)
        logger.debug(
            f"Resolved {version}: major from {_name(sources['major'])}, minor from {_name(sources['minor'])}, "
            f"base {base.name if base else 'root'}, distance {distance}"
        )

        return ResolvedVersion(
            version=version,
            head=snapshot.head,
            major_source=sources['major'],
            minor_source=sources['minor'],
            base=base,
            distance=distance,
            branch=snapshot.branch,
            signals=signals,
            warnings=tuple(notes),
        )

    def _base(
        self,
        snapshot: RepositorySnapshot,
        signals: Tuple[Signal, ...],
        sources: Dict[str, Optional[SignalSource]],
        line: Tuple[int, int],
        markers: MarkerMap
    ) -> Optional[ReleaseMarker]:
        if sources['major'] is not SignalSource.BRANCH:
            supplier = sources['minor'] or sources['major']
            for signal in signals:
                if signal.source is supplier:
                    return signal.marker
            return None

        policy = self.settings.base_policy
        if policy is BasePolicy.NEAREST:
            return nearest_marker(snapshot.graph, snapshot.head, markers)

        def accept(marker: ReleaseMarker) -> bool:
            if policy is BasePolicy.EXACT:
                return marker.line == line
            return marker.line <= line

        return nearest_marker(snapshot.graph, snapshot.head, markers, accept)

    def _ambiguities(
        self,
        signals: Tuple[Signal, ...],
        values: Dict[str, int],
        sources: Dict[str, Optional[SignalSource]]
    ) -> List[str]:
        branch, tag, release = signals
        notes = []

        unpinned = [f for f in FIELDS if sources[f] is not SignalSource.BRANCH]
        disagree = [
            f for f in unpinned
            if tag.get(f) is not None and release.get(f) is not None and tag.get(f) != release.get(f)
        ]
        if disagree:
            notes.append(
                f"Tag {tag.text!r} and release commit {release.text!r} disagree on "
                f"{' and '.join(disagree)}; using the tag"
            )

        minor_source = sources['minor']
        if minor_source is not None and minor_source is not SignalSource.BRANCH:
            supplier = tag if minor_source is SignalSource.TAG else release
            if supplier.major != values['major']:
                if sources['major'] is SignalSource.BRANCH:
                    origin = f"branch {branch.text!r}"
                else:
                    origin = _name(sources['major'])
                notes.append(
                    f"Minor version {values['minor']} comes from {supplier.text!r} "
                    f"(major {supplier.major}) but major {values['major']} comes from {origin}"
                )

        for note in notes:
            warnings.warn(note, AmbiguousSignalWarning, stacklevel=3)

        return notes


def _name(source: Optional[SignalSource]) -> str:
    return source.value if source else 'default'
