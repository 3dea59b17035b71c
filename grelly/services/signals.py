"""
Version signal extractors.

Three independent sources can declare a version:

- the current branch name (``release/5.0``)
- the nearest version tag (``v2.3``)
- the nearest release commit (``release: 2.3.0``)

Each extractor returns a Signal, absent when nothing matches. Absence is a
normal outcome and never an error.
"""

import logging
import re
from typing import Callable, Dict, List, Optional

from ..domain.graph import CommitGraph
from ..domain.snapshot import RepositorySnapshot
from ..domain.version import MarkerKind, ReleaseMarker, Signal, SignalSource
from ..patterns import VersionPattern

logger = logging.getLogger(__name__)

# commit id -> markers on that commit
MarkerMap = Dict[str, List[ReleaseMarker]]

PRERELEASE_PREFIXES = ('feature/', 'fix/')


def find_tag_markers(snapshot: RepositorySnapshot, pattern: VersionPattern) -> MarkerMap:
    """Parse every tag in the snapshot that matches the tag pattern."""
    markers: MarkerMap = {}
    for commit in snapshot.graph:
        for name in sorted(commit.refs):
            parts = pattern.match(name)
            if parts is None:
                continue
            major, minor, patch = parts
            markers.setdefault(commit.id, []).append(ReleaseMarker(
                kind=MarkerKind.TAG,
                name=name,
                commit=commit.id,
                major=major,
                minor=minor,
                patch=patch,
            ))
    return markers


def find_release_commit_markers(snapshot: RepositorySnapshot, pattern: VersionPattern) -> MarkerMap:
    """Parse every commit whose subject starts with the release pattern."""
    markers: MarkerMap = {}
    for commit in snapshot.graph:
        parts = pattern.match(commit.subject, prefix=True)
        if parts is None:
            continue
        major, minor, patch = parts
        markers[commit.id] = [ReleaseMarker(
            kind=MarkerKind.COMMIT,
            name=commit.subject,
            commit=commit.id,
            major=major,
            minor=minor,
            patch=patch,
        )]
    return markers


def merge_marker_maps(*maps: MarkerMap) -> MarkerMap:
    merged: MarkerMap = {}
    for marker_map in maps:
        for commit_id, markers in marker_map.items():
            merged.setdefault(commit_id, []).extend(markers)
    return merged


def _best_on_commit(markers: List[ReleaseMarker]) -> ReleaseMarker:
    # Highest version wins; tags beat release commits on the same version
    return max(markers, key=lambda m: (m.key, m.kind is MarkerKind.TAG, m.name))


def nearest_marker(
    graph: CommitGraph,
    head: str,
    markers: MarkerMap,
    accept: Optional[Callable[[ReleaseMarker], bool]] = None
) -> Optional[ReleaseMarker]:
    """
    Find the marker nearest to head, in the git describe sense.

    The walk covers all ancestors (merged-in history included) and stops at
    commits carrying an accepted marker. Of the markers where the walk
    stopped, the highest (major, minor) line wins: a merged-in older line
    never outranks a newer one. Within one line the marker with the fewest
    commits between it and head wins; remaining ties go to the higher
    patch, then to the commit read first.

    Args:
        graph: Commit graph containing head
        head: Commit id to search from
        markers: Markers by commit id
        accept: Optional filter; rejected markers are walked past

    Returns:
        The nearest accepted marker, or None
    """
    eligible: Dict[str, List[ReleaseMarker]] = {}
    for commit_id, commit_markers in markers.items():
        kept = [m for m in commit_markers if accept is None or accept(m)]
        if kept:
            eligible[commit_id] = kept

    if not eligible:
        return None

    candidates = []
    for commit in graph.frontier(head, lambda c: c.id in eligible):
        best = _best_on_commit(eligible[commit.id])
        major, minor = best.line
        distance = graph.distance(head, commit.id)
        candidates.append(((-major, -minor, distance, -best.key[2], graph.order(commit.id)), best))

    if not candidates:
        return None

    candidates.sort(key=lambda c: c[0])
    return candidates[0][1]


def branch_signal(snapshot: RepositorySnapshot, pattern: VersionPattern) -> Signal:
    """
    Read MAJOR or MAJOR.MINOR from the branch name.

    A patch number in the branch name is ignored: PATCH always comes from
    commit distance.
    """
    if not snapshot.branch:
        return Signal.absent(SignalSource.BRANCH)

    parts = pattern.match(snapshot.branch)
    if parts is None:
        logger.debug(f"Branch {snapshot.branch!r} is not release-shaped")
        return Signal.absent(SignalSource.BRANCH)

    major, minor, _ = parts
    return Signal(source=SignalSource.BRANCH, major=major, minor=minor, text=snapshot.branch)


def tag_signal(
    snapshot: RepositorySnapshot,
    pattern: VersionPattern,
    markers: Optional[MarkerMap] = None
) -> Signal:
    """Version from the nearest tag matching the tag pattern."""
    if markers is None:
        markers = find_tag_markers(snapshot, pattern)
    marker = nearest_marker(snapshot.graph, snapshot.head, markers)
    if marker is None:
        return Signal.absent(SignalSource.TAG)
    return Signal.from_marker(SignalSource.TAG, marker)


def release_commit_signal(
    snapshot: RepositorySnapshot,
    pattern: VersionPattern,
    markers: Optional[MarkerMap] = None
) -> Signal:
    """Version from the nearest commit whose subject matches the release pattern."""
    if markers is None:
        markers = find_release_commit_markers(snapshot, pattern)
    marker = nearest_marker(snapshot.graph, snapshot.head, markers)
    if marker is None:
        return Signal.absent(SignalSource.RELEASE_COMMIT)
    return Signal.from_marker(SignalSource.RELEASE_COMMIT, marker)


def prerelease_identifier(branch: Optional[str]) -> Optional[str]:
    """
    Prerelease identifier for a work branch.

    Examples:
        "feature/Login-Form" -> "login-form"
        "fix/issue_42"       -> "issue-42"
        "spike"              -> "spike"
    """
    if not branch:
        return None

    name = branch.lower()
    for prefix in PRERELEASE_PREFIXES:
        if name.startswith(prefix):
            name = name[len(prefix):]
            break

    identifier = re.sub(r'[^0-9a-z-]+', '-', name).strip('-')
    return identifier or None
