#!/usr/bin/env python3

import click

from grelly.cli_utils import standard_command, add_common_options, report
from grelly.config import configure_logging
from grelly.domain.release import BumpLevel, MarkerStyle, ReleaseResult
from grelly.domain.version import BasePolicy
from grelly.services.version_service import VersionService


def describe_release(result: ReleaseResult) -> str:
    plan = result.plan
    markers = []
    if plan.commit_message:
        markers.append(f"commit {plan.commit_message!r}")
    if plan.tag_name:
        markers.append(f"tag {plan.tag_name}")

    summary = f"{plan.current.version} -> {plan.target} ({', '.join(markers)})"
    if plan.changelog_path:
        summary += f", {len(plan.commits)} commit(s) for {plan.changelog_path}"

    if result.dry_run:
        return f"Would release {summary}"
    return f"Released {summary}"


@click.command()
@click.version_option(package_name='grelly')
@click.option('-g', '--git', 'path', default='.', show_default=True,
              type=click.Path(file_okay=False),
              help='Any directory inside the git work tree')
@click.option('--release', is_flag=True, help='Record the next version as a release')
@click.option('--major', is_flag=True, help='With --release, bump MAJOR instead of MINOR')
@click.option('--branch', help='Resolve as if HEAD were on this branch')
@click.option('--branch-pattern', help='Pattern for release branch names')
@click.option('--tag-pattern', help='Pattern for version tags')
@click.option('--release-pattern', help='Pattern for release commit subjects')
@click.option('--base-policy', type=click.Choice([p.value for p in BasePolicy]),
              help='Marker PATCH counts from when the branch supplies the version')
@click.option('--prerelease/--no-prerelease', default=None,
              help='Add a prerelease identifier on work branches')
@click.option('--marker', type=click.Choice([s.value for s in MarkerStyle]),
              help='How --release records the release')
@click.option('--changelog', 'changelog_path', help='Changelog file, may contain {version}')
@click.option('--no-changelog', is_flag=True, help='Do not write a changelog entry')
@add_common_options('dry_run', 'json', 'verbose')
@standard_command()
def cli(path, release, major, branch, branch_pattern, tag_pattern, release_pattern,
        base_policy, prerelease, marker, changelog_path, no_changelog, dry_run, as_json, verbose):
    """grelly - Version numbers from git history.

    Prints MAJOR.MINOR.PATCH for the checked-out commit. MAJOR and MINOR
    come from the release branch name, the nearest version tag or the
    nearest release commit, in that order; PATCH is the number of commits
    since the release they came from.

    \b
    Examples:
        grelly                     # 1.4.7
        grelly -g ../other --json  # provenance as JSON
        grelly --release           # tag v1.5 and append CHANGELOG.md
        grelly --release --major --dry-run
    """
    configure_logging(verbose=verbose)

    if not release and (major or dry_run):
        raise click.UsageError("--major and --dry-run only apply with --release")

    overrides = {
        'patterns.branch': branch_pattern,
        'patterns.tag': tag_pattern,
        'patterns.release_commit': release_pattern,
        'resolution.base_policy': base_policy,
        'resolution.prerelease_from_branch': prerelease,
        'release.marker': marker,
        'changelog.path': changelog_path,
        'changelog.enabled': False if no_changelog else None,
    }

    service = VersionService.open(path, overrides, branch=branch)
    configure_logging(service.settings, verbose=verbose)

    if not release:
        resolved = service.resolve()
        return resolved if as_json else str(resolved.version)

    result = service.release(BumpLevel.MAJOR if major else None, dry_run=dry_run)
    report(describe_release(result))
    return result if as_json else str(result.plan.target)


def main():
    cli()


if __name__ == "__main__":
    main()
