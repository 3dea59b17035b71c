"""
Tests for VersionService, the entry point that ties a repository to its settings.
"""

from unittest.mock import patch

import pytest

from grelly.domain.version import SemVer
from grelly.exit_codes import ConfigError, RepositoryAccessError
from grelly.infra.git_client import GitClient
from grelly.services.version_service import VersionService


class TestOpen:
    """Tests for VersionService.open."""

    def test_finds_root_from_subdirectory(self, git_repo):
        git_repo.commit()
        sub = git_repo.path / "a" / "b"
        sub.mkdir(parents=True)

        service = VersionService.open(str(sub))

        assert service.root == str(git_repo.path.resolve())

    def test_reads_repo_config(self, git_repo):
        git_repo.commit()
        (git_repo.path / ".grelly.json").write_text('{"git": {"timeout_seconds": 7}}')

        service = VersionService.open(str(git_repo.path))

        assert service.settings.git_timeout == 7
        assert service.git.timeout == 7

    def test_overrides(self, git_repo):
        git_repo.commit()
        service = VersionService.open(str(git_repo.path), {'patterns.tag': "<major>.<minor>"})
        assert service.settings.tag_pattern.source == "<major>.<minor>"

    def test_bad_override(self, git_repo):
        git_repo.commit()
        with pytest.raises(ConfigError):
            VersionService.open(str(git_repo.path), {'resolution.base_policy': "sideways"})

    def test_missing_directory(self, tmp_path):
        with pytest.raises(RepositoryAccessError, match="No such directory"):
            VersionService.open(str(tmp_path / "gone"))


class TestResolve:
    """Tests for VersionService.resolve."""

    def test_resolve(self, git_repo):
        git_repo.commit()
        git_repo.tag("v0.4")
        git_repo.commits(2)

        assert VersionService.open(str(git_repo.path)).resolve().version == SemVer(0, 4, 2)

    def test_branch_override(self, git_repo):
        git_repo.commits(3)
        service = VersionService.open(str(git_repo.path), branch="release/1")
        assert str(service.resolve()) == "1.0.3"

    def test_reads_history_once(self, git_repo):
        git_repo.commits(2)
        client = GitClient()
        service = VersionService.open(str(git_repo.path), git_client=client)

        with patch.object(client, 'log_graph', wraps=client.log_graph) as log_graph:
            service.resolve()
            service.resolve()

        assert log_graph.call_count == 1
