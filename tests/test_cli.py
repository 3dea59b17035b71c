"""
Tests for the grelly command line.

Tests cover:
- Printing the resolved version
- --json provenance output
- Release mode and its flags
- Exit codes and stderr messages for every error kind
"""

import json

import pytest
from click.testing import CliRunner

from grelly.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


def run(runner, git_repo, *args):
    return runner.invoke(cli, ['-g', str(git_repo.path), *args])


class TestResolve:
    """Tests for the default resolve mode."""

    def test_no_markers(self, runner, git_repo):
        git_repo.commits(3)

        result = run(runner, git_repo)

        assert result.exit_code == 0
        assert result.stdout == "0.0.3\n"

    def test_tagged(self, runner, git_repo):
        git_repo.commit()
        git_repo.tag("v2.3", annotated=True)
        git_repo.commits(2)

        result = run(runner, git_repo)

        assert result.exit_code == 0
        assert result.stdout.strip() == "2.3.2"

    def test_from_subdirectory(self, runner, git_repo):
        git_repo.commit()
        sub = git_repo.path / "docs"
        sub.mkdir()

        result = runner.invoke(cli, ['-g', str(sub)])

        assert result.exit_code == 0
        assert result.stdout.strip() == "0.0.1"

    def test_release_branch(self, runner, git_repo):
        git_repo.commit()
        git_repo.tag("v2.3")
        git_repo.checkout("release/5.0", create=True)
        git_repo.commits(2)

        result = run(runner, git_repo)

        assert result.stdout.strip() == "5.0.2"

    def test_branch_override(self, runner, git_repo):
        git_repo.commits(2)

        result = run(runner, git_repo, '--branch', 'release/7.1')

        assert result.stdout.strip() == "7.1.2"

    def test_custom_tag_pattern(self, runner, git_repo):
        git_repo.commit()
        git_repo.tag("ver-3-4")
        git_repo.commit()

        result = run(runner, git_repo, '--tag-pattern', 'ver-<major>-<minor>')

        assert result.stdout.strip() == "3.4.1"

    def test_release_pattern(self, runner, git_repo):
        git_repo.commit("Ship 1.6")
        git_repo.commit()

        result = run(runner, git_repo, '--release-pattern', 'Ship <major>.<minor>')

        assert result.stdout.strip() == "1.6.1"

    def test_prerelease(self, runner, git_repo):
        git_repo.commit()
        git_repo.checkout("feature/Dark-Mode", create=True)
        git_repo.commit()

        assert run(runner, git_repo, '--prerelease').stdout.strip() == "0.0.2-dark-mode"
        assert run(runner, git_repo).stdout.strip() == "0.0.2"

    def test_base_policy(self, runner, git_repo):
        git_repo.commit()
        git_repo.tag("v3.0")
        git_repo.checkout("release/2.0", create=True)
        git_repo.commit()

        assert run(runner, git_repo).stdout.strip() == "2.0.2"
        assert run(runner, git_repo, '--base-policy', 'nearest').stdout.strip() == "2.0.1"

    def test_repo_config_file(self, runner, git_repo):
        git_repo.commit()
        git_repo.tag("r1.1")
        (git_repo.path / ".grelly.yaml").write_text("patterns:\n  tag: r<major>.<minor>\n")

        assert run(runner, git_repo).stdout.strip() == "1.1.0"


class TestJsonOutput:
    """Tests for --json."""

    def test_provenance(self, runner, git_repo):
        git_repo.commit()
        git_repo.tag("v1.2")
        head = git_repo.commit()

        result = run(runner, git_repo, '--json')

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data['version'] == "1.2.1"
        assert data['head'] == head
        assert data['branch'] == "main"
        assert data['major_source'] == "tag"
        assert data['base']['name'] == "v1.2"
        assert data['distance'] == 1
        assert [s['source'] for s in data['signals']] == ["branch", "tag", "release_commit"]

    def test_warnings_listed(self, runner, git_repo):
        git_repo.commit()
        git_repo.tag("v1.0")
        git_repo.commit("release: 2.0.0")

        result = run(runner, git_repo, '--json')

        data = json.loads(result.stdout)
        assert data['version'] == "1.0.1"
        assert len(data['warnings']) == 1

    def test_error_as_json(self, runner, tmp_path):
        plain = tmp_path / "plain"
        plain.mkdir()

        result = runner.invoke(cli, ['-g', str(plain), '--json'])

        assert result.exit_code == 67
        error = json.loads(result.stdout)
        assert error['type'] == "RepositoryAccessError"
        assert error['exit_code'] == 67


class TestRelease:
    """Tests for --release."""

    def test_release(self, runner, git_repo):
        git_repo.commits(2)

        result = run(runner, git_repo, '--release')

        assert result.exit_code == 0
        assert result.stdout == "0.1.0\n"
        assert "Released 0.0.2 -> 0.1.0" in result.stderr
        assert "v0.1" in git_repo.tags()
        assert "## 0.1.0" in (git_repo.path / "CHANGELOG.md").read_text()

    def test_release_twice(self, runner, git_repo):
        git_repo.commits(2)
        run(runner, git_repo, '--release')
        changelog = (git_repo.path / "CHANGELOG.md").read_text()

        result = run(runner, git_repo, '--release')

        assert result.exit_code == 68
        assert "already released" in result.stderr
        assert result.stdout == ""
        assert (git_repo.path / "CHANGELOG.md").read_text() == changelog

    def test_dry_run(self, runner, git_repo):
        git_repo.commits(2)

        result = run(runner, git_repo, '--release', '--dry-run')

        assert result.exit_code == 0
        assert result.stdout.strip() == "0.1.0"
        assert "Would release" in result.stderr
        assert git_repo.tags() == []

    def test_major(self, runner, git_repo):
        git_repo.commit()
        git_repo.tag("v1.4")
        git_repo.commit()

        result = run(runner, git_repo, '--release', '--major')

        assert result.stdout.strip() == "2.0.0"
        assert "v2.0" in git_repo.tags()

    def test_major_on_pinned_branch(self, runner, git_repo):
        git_repo.commit()
        git_repo.checkout("release/3", create=True)
        git_repo.commit()

        result = run(runner, git_repo, '--release', '--major')

        assert result.exit_code == 68

    def test_commit_marker_no_changelog(self, runner, git_repo):
        git_repo.commit()

        result = run(runner, git_repo, '--release', '--marker', 'commit', '--no-changelog')

        assert result.exit_code == 0
        assert git_repo.subject() == "release: 0.1.0"
        assert not (git_repo.path / "CHANGELOG.md").exists()

    def test_commit_marker_behind_tag(self, runner, git_repo):
        git_repo.commit()
        git_repo.tag("v1.0")
        git_repo.commit()

        result = run(runner, git_repo, '--release', '--marker', 'commit')

        assert result.exit_code == 66
        assert "takes precedence" in result.stderr
        assert git_repo.subject() != "release: 1.1.0"

    def test_changelog_option(self, runner, git_repo):
        git_repo.commit()

        result = run(runner, git_repo, '--release', '--changelog', 'docs/changes-{version}.md')

        # docs/ does not exist: the tag is made, the changelog fails
        assert result.exit_code == 69
        assert "v0.1" in git_repo.tags()
        assert "was recorded" in result.stderr

    def test_release_json(self, runner, git_repo):
        git_repo.commits(3)

        result = run(runner, git_repo, '--release', '--json')

        data = json.loads(result.stdout)
        assert data['version'] == "0.1.0"
        assert data['previous'] == "0.0.3"
        assert data['tag'] == "v0.1"
        assert data['commits'] == 3
        assert data['changelog_written'] is True

    def test_dry_run_requires_release(self, runner, git_repo):
        git_repo.commit()
        result = run(runner, git_repo, '--dry-run')
        assert result.exit_code == 2


class TestErrors:
    """Tests for error exit codes."""

    def test_not_a_repository(self, runner, tmp_path):
        plain = tmp_path / "plain"
        plain.mkdir()

        result = runner.invoke(cli, ['-g', str(plain)])

        assert result.exit_code == 67
        assert "Not a git work tree" in result.stderr
        assert result.stdout == ""

    def test_missing_directory(self, runner, tmp_path):
        result = runner.invoke(cli, ['-g', str(tmp_path / "missing")])
        assert result.exit_code == 67

    def test_no_commits(self, runner, git_repo):
        result = run(runner, git_repo)

        assert result.exit_code == 67
        assert "no commits" in result.stderr

    def test_bad_pattern(self, runner, git_repo):
        git_repo.commit()

        result = run(runner, git_repo, '--tag-pattern', 'v<major>')

        assert result.exit_code == 66
        assert "does not capture <minor>" in result.stderr

    def test_bad_config_file(self, runner, git_repo):
        git_repo.commit()
        (git_repo.path / ".grelly.toml").write_text("[release\n")

        result = run(runner, git_repo)

        assert result.exit_code == 66

    def test_bad_env_value(self, runner, git_repo, monkeypatch):
        git_repo.commit()
        monkeypatch.setenv("GRELLY_RELEASE_MARKER", "sticker")

        result = run(runner, git_repo)

        assert result.exit_code == 66
        assert "release.marker" in result.stderr

    def test_invalid_choice(self, runner, git_repo):
        result = run(runner, git_repo, '--marker', 'sticker')
        assert result.exit_code == 2
