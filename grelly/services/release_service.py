"""
Release mode for grelly.

Works out the next version from the current resolution, records it with
the ReleaseWriter and then appends the changelog. The changelog gets the
same commits PATCH counted, so the two always agree. Nothing is written to
the changelog unless the release marker was created first.
"""

import logging
import warnings
from dataclasses import replace
from pathlib import Path
from typing import Optional

from ..config import Settings
from ..domain.commit import Commit
from ..domain.graph import CommitGraph
from ..domain.release import BumpLevel, MarkerStyle, ReleasePlan, ReleaseResult
from ..domain.snapshot import RepositorySnapshot
from ..domain.version import ResolvedVersion, SemVer, SignalKind, SignalSource
from ..exit_codes import AmbiguousSignalWarning, ChangelogIOError, ConfigError, ReleaseConflictError
from ..infra.changelog import ChangelogWriter
from ..infra.release_writer import ReleaseWriter
from ..patterns import VersionPattern
from .resolver import VersionResolver
from .signals import merge_marker_maps

logger = logging.getLogger(__name__)

# Stands in for the release commit before it exists
PENDING_COMMIT_ID = "0" * 40


def next_release_version(current: ResolvedVersion, bump: BumpLevel) -> SemVer:
    """
    The version a release from current produces.

    Fields pinned by the branch name are not bumped: on ``release/5.0`` the
    release is 5.0.0, on ``release/5`` only MINOR can move.

    Raises:
        ReleaseConflictError: If the bump would move a field the branch pins
    """
    branch = current.signal(SignalSource.BRANCH)
    version = current.version

    if bump is BumpLevel.MAJOR and branch.present:
        raise ReleaseConflictError(
            f"Branch {current.branch!r} pins major version {branch.major}; "
            f"a major release cannot be made from it"
        )

    if branch.kind is SignalKind.MAJOR_MINOR:
        return SemVer(branch.major, branch.minor, 0)
    if bump is BumpLevel.MAJOR:
        return SemVer(version.major + 1, 0, 0)
    return SemVer(version.major, version.minor + 1, 0)


class ReleaseService:
    """
    Plans and performs releases.

    Example:
        service = ReleaseService(settings, writer, ChangelogWriter(), workdir="/repo")
        result = service.release(snapshot, dry_run=True)
        print(result.plan.target, result.plan.tag_name)
    """

    def __init__(
        self,
        settings: Settings,
        writer: ReleaseWriter,
        changelog: Optional[ChangelogWriter] = None,
        workdir: str = ".",
        resolver: Optional[VersionResolver] = None
    ):
        self.settings = settings
        self.writer = writer
        self.changelog = changelog or ChangelogWriter()
        self.workdir = workdir
        self.resolver = resolver or VersionResolver(settings)

    def plan(self, snapshot: RepositorySnapshot, bump: Optional[BumpLevel] = None) -> ReleasePlan:
        """
        Decide what a release at HEAD would write, without writing anything.

        Raises:
            ReleaseConflictError: If HEAD is already released or the target exists
            ConfigError: If the patterns cannot express the release, or the
                marker would not decide the next resolution
        """
        bump = bump or self.settings.bump
        current = self.resolver.resolve(snapshot)

        if current.on_base:
            raise ReleaseConflictError(
                f"{snapshot.head[:7]} is already released as {current.base.name!r} "
                f"({current.version}); there is nothing new to release"
            )

        target = next_release_version(current, bump)
        self._check_not_released(snapshot, target)

        style = self.settings.marker
        tag_name = None
        commit_message = None
        if style.creates_tag:
            tag_name = self._render(self.settings.tag_pattern, target, "tag pattern")
            if self.writer.tag_exists(tag_name):
                raise ReleaseConflictError(f"Tag {tag_name} already exists")
        if style.creates_commit:
            commit_message = self._render(self.settings.release_pattern, target, "release commit pattern",
                                          patch=0, prefix=True)
        self._check_visible(snapshot, target, style, tag_name, commit_message)

        changelog_path = None
        if self.settings.changelog_enabled:
            changelog_path = str(Path(self.workdir) / self.settings.changelog_path.format(version=target))

        base_commit = current.base.commit if current.base else None
        return ReleasePlan(
            current=current,
            target=target,
            style=style,
            tag_name=tag_name,
            commit_message=commit_message,
            tag_message=self.settings.tag_message.format(version=target, tag=tag_name or ''),
            commits=snapshot.graph.commits_between(snapshot.head, base_commit),
            changelog_path=changelog_path,
        )

    def release(
        self,
        snapshot: RepositorySnapshot,
        bump: Optional[BumpLevel] = None,
        dry_run: bool = False
    ) -> ReleaseResult:
        """
        Perform a release: marker first, changelog second.

        Raises:
            ReleaseConflictError: If the release already exists; nothing is written
            ChangelogIOError: If the changelog failed after the marker was written
        """
        plan = self.plan(snapshot, bump)
        result = ReleaseResult(plan=plan, dry_run=dry_run)

        if dry_run:
            logger.info(f"Dry run: would release {plan.target}")
            return result

        target_commit = plan.current.head
        if plan.style.creates_commit:
            target_commit = self.writer.create_commit(plan.commit_message)
            result.release_commit = target_commit
        if plan.style.creates_tag:
            self.writer.create_tag(plan.tag_name, target_commit, plan.tag_message)
            result.tagged_commit = target_commit

        if plan.changelog_path:
            try:
                self.changelog.append(plan.target, plan.commits, plan.changelog_path)
            except ChangelogIOError as e:
                marker = plan.tag_name or f"commit {target_commit[:7]}"
                raise ChangelogIOError(
                    f"{e}. Release {plan.target} was recorded ({marker}) but the changelog was not "
                    f"updated; add the {len(plan.commits)} commit(s) to {plan.changelog_path} by hand",
                    path=e.path
                ) from e
            result.changelog_written = True

        logger.info(f"Released {plan.target}")
        return result

    def _check_not_released(self, snapshot: RepositorySnapshot, target: SemVer) -> None:
        """
        Refuse a target whose release line already has a marker.

        Markers in HEAD's history are checked first, then release commit
        subjects on every ref, so a release commit on an unmerged branch also
        blocks the line. Tags on any ref are caught by the tag existence check.
        """
        line = (target.major, target.minor)
        markers = merge_marker_maps(*self.resolver.markers(snapshot))
        for commit_markers in markers.values():
            for marker in commit_markers:
                if marker.line == line:
                    raise ReleaseConflictError(
                        f"Version {target.major}.{target.minor} is already released "
                        f"({marker.name!r} on {marker.commit[:7]})"
                    )

        for commit_id, subject in self.writer.commit_subjects():
            parts = self.settings.release_pattern.match(subject, prefix=True)
            if parts is not None and (parts[0], parts[1] or 0) == line:
                raise ReleaseConflictError(
                    f"Version {target.major}.{target.minor} is already released "
                    f"({subject!r} on {commit_id[:7]}, not merged into HEAD)"
                )

    def _check_visible(
        self,
        snapshot: RepositorySnapshot,
        target: SemVer,
        style: MarkerStyle,
        tag_name: Optional[str],
        commit_message: Optional[str]
    ) -> None:
        """
        Resolve as if the release marker already existed.

        Raises:
            ConfigError: If the new marker would not decide the next
                resolution, e.g. a release commit behind an older version tag
        """
        pending = with_release_marker(snapshot, tag_name, commit_message)
        with warnings.catch_warnings():
            warnings.simplefilter('ignore', AmbiguousSignalWarning)
            after = self.resolver.resolve(pending)

        if (after.version.major, after.version.minor) == (target.major, target.minor):
            return

        source = after.minor_source or after.major_source
        winner = after.signal(source) if source else None
        reason = f"{winner.source.value} {winner.text!r} takes precedence" if winner else "it is not read back"
        raise ConfigError(
            f"A {style.value} marker for {target} would leave the version at {after.version}: "
            f"{reason}. Set release.marker to 'tag' or 'both'"
        )

    @staticmethod
    def _render(
        pattern: VersionPattern,
        target: SemVer,
        label: str,
        patch: Optional[int] = None,
        prefix: bool = False
    ) -> str:
        text = pattern.render(target.major, target.minor, patch)
        # A marker the pattern cannot read back would be invisible to the next resolution
        parts = pattern.match(text, prefix=prefix)
        if parts is None or parts[:2] != (target.major, target.minor):
            raise ConfigError(f"The {label} {pattern.source!r} renders {text!r}, which it does not read back")
        return text


def with_release_marker(
    snapshot: RepositorySnapshot,
    tag_name: Optional[str] = None,
    commit_message: Optional[str] = None
) -> RepositorySnapshot:
    """
    The snapshot as it will look once a release marker is written.

    A release commit becomes a new HEAD on top of the current one and
    carries the tag when there is one; otherwise the tag goes on HEAD.
    """
    head = snapshot.graph.get(snapshot.head)
    tags = frozenset([tag_name]) if tag_name else frozenset()

    if commit_message is not None:
        new_head = Commit(id=PENDING_COMMIT_ID, parents=(head.id,), message=commit_message, refs=tags)
        commits = [new_head, *snapshot.graph]
    else:
        new_head = replace(head, refs=head.refs | tags)
        commits = [new_head if commit.id == head.id else commit for commit in snapshot.graph]

    return replace(snapshot, head=new_head.id, graph=CommitGraph(commits))
