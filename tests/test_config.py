"""
Unit tests for grelly.config module
"""
import json
import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from grelly.config import (
    apply_env_overrides,
    configure_logging,
    get_config_path,
    get_default_config,
    load_config,
    load_settings,
    merge_configs,
    settings_from_config,
    Settings,
)
from grelly.domain.release import BumpLevel, MarkerStyle
from grelly.domain.version import BasePolicy
from grelly.exit_codes import ConfigError


REPO = "/work/repo"


class TestDefaults:
    """Tests for the default configuration."""

    def test_get_default_config(self):
        config = get_default_config()

        for section in ('patterns', 'resolution', 'release', 'changelog', 'git', 'logging'):
            assert section in config
        assert config['patterns']['tag'] == "v<major>.<minor>[.<patch>]"
        assert config['changelog']['path'] == "CHANGELOG.md"

    def test_default_settings(self):
        settings = Settings.defaults()

        assert settings.branch_pattern.source == "release/<major>[.<minor>]"
        assert settings.release_pattern.source == "release: <major>.<minor>.<patch>"
        assert settings.base_policy is BasePolicy.NEAREST_LOWER_OR_EQUAL
        assert settings.bump is BumpLevel.MINOR
        assert settings.marker is MarkerStyle.TAG
        assert settings.changelog_enabled is True
        assert settings.prerelease_from_branch is False
        assert settings.main_branches == ("main", "master", "release")

    def test_defaults_are_fresh_copies(self):
        config = get_default_config()
        config['patterns']['tag'] = "changed"
        assert get_default_config()['patterns']['tag'] != "changed"


class TestConfigFiles:
    """Tests for finding and reading configuration files (pyfakefs)."""

    def test_no_file(self, fs):
        fs.create_dir(REPO)
        assert get_config_path(REPO) is None
        assert load_config(REPO) == get_default_config()

    def test_repo_json(self, fs):
        fs.create_file(f"{REPO}/.grelly.json", contents=json.dumps({
            'patterns': {'tag': "release-<major>.<minor>"},
        }))

        config = load_config(REPO)

        assert config['patterns']['tag'] == "release-<major>.<minor>"
        # Untouched keys keep their defaults
        assert config['patterns']['branch'] == "release/<major>[.<minor>]"

    def test_repo_toml(self, fs):
        fs.create_file(f"{REPO}/.grelly.toml", contents=(
            '[resolution]\n'
            'base_policy = "exact"\n'
            '\n'
            '[changelog]\n'
            'enabled = false\n'
        ))

        settings = load_settings(REPO)

        assert settings.base_policy is BasePolicy.EXACT
        assert settings.changelog_enabled is False

    def test_repo_yaml(self, fs):
        fs.create_file(f"{REPO}/.grelly.yaml", contents=(
            "release:\n"
            "  marker: both\n"
            "  bump: major\n"
        ))

        settings = load_settings(REPO)

        assert settings.marker is MarkerStyle.BOTH
        assert settings.bump is BumpLevel.MAJOR

    def test_repo_file_before_user_file(self, fs):
        fs.create_file(f"{REPO}/.grelly.json", contents="{}")
        fs.create_file(str(Path.home() / ".grelly" / "config.json"), contents="{}")
        assert get_config_path(REPO) == Path(REPO) / ".grelly.json"

    def test_user_file(self, fs):
        fs.create_dir(REPO)
        user_config = Path.home() / ".grelly" / "config.yml"
        fs.create_file(str(user_config), contents="git:\n  timeout_seconds: 5\n")

        assert get_config_path(REPO) == user_config
        assert load_settings(REPO).git_timeout == 5

    def test_grelly_config_env(self, fs):
        fs.create_file("/etc/grelly.json", contents=json.dumps({'release': {'marker': 'commit'}}))
        fs.create_file(f"{REPO}/.grelly.json", contents="{}")

        with patch.dict(os.environ, {'GRELLY_CONFIG': "/etc/grelly.json"}):
            assert load_settings(REPO).marker is MarkerStyle.COMMIT

    def test_grelly_config_env_missing_file(self, fs):
        with patch.dict(os.environ, {'GRELLY_CONFIG': "/nowhere.json"}):
            with pytest.raises(ConfigError, match="missing file"):
                get_config_path(REPO)

    def test_malformed_json(self, fs):
        fs.create_file(f"{REPO}/.grelly.json", contents="{not json")
        with pytest.raises(ConfigError, match="Error loading config"):
            load_config(REPO)

    def test_malformed_toml(self, fs):
        fs.create_file(f"{REPO}/.grelly.toml", contents="[patterns\n")
        with pytest.raises(ConfigError):
            load_config(REPO)

    def test_non_mapping_yaml(self, fs):
        fs.create_file(f"{REPO}/.grelly.yml", contents="- just\n- a list\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(REPO)

    def test_empty_yaml(self, fs):
        fs.create_file(f"{REPO}/.grelly.yml", contents="")
        assert load_config(REPO) == get_default_config()


class TestEnvironmentOverrides:
    """Tests for GRELLY_SECTION_KEY overrides."""

    def test_simple_override(self):
        config = apply_env_overrides(get_default_config(), {'GRELLY_RESOLUTION_BASE_POLICY': 'nearest'})
        assert config['resolution']['base_policy'] == 'nearest'

    def test_longest_key_match(self):
        """release_commit is matched as one key, not release + commit."""
        config = apply_env_overrides(
            get_default_config(),
            {'GRELLY_PATTERNS_RELEASE_COMMIT': 'rel <major>.<minor>.<patch>'}
        )
        assert config['patterns']['release_commit'] == 'rel <major>.<minor>.<patch>'

    def test_value_coercion(self):
        config = apply_env_overrides(get_default_config(), {
            'GRELLY_CHANGELOG_ENABLED': 'false',
            'GRELLY_GIT_TIMEOUT_SECONDS': '12',
        })
        assert config['changelog']['enabled'] is False
        assert config['git']['timeout_seconds'] == 12

    def test_unknown_keys_ignored(self):
        config = apply_env_overrides(get_default_config(), {
            'GRELLY_NOPE_VALUE': '1',
            'OTHER_PATTERNS_TAG': 'x',
        })
        assert config == get_default_config()

    def test_env_beats_file(self, fs):
        fs.create_file(f"{REPO}/.grelly.json", contents=json.dumps({'release': {'marker': 'commit'}}))
        with patch.dict(os.environ, {'GRELLY_RELEASE_MARKER': 'both'}):
            assert load_settings(REPO).marker is MarkerStyle.BOTH


class TestSettingsValidation:
    """Tests for settings_from_config."""

    def test_overrides_win_and_none_is_ignored(self):
        settings = settings_from_config(get_default_config(), {
            'patterns.tag': "<major>.<minor>",
            'release.marker': None,
        })
        assert settings.tag_pattern.source == "<major>.<minor>"
        assert settings.marker is MarkerStyle.TAG

    def test_overrides_do_not_modify_config(self):
        config = get_default_config()
        settings_from_config(config, {'patterns.tag': "<major>.<minor>"})
        assert config['patterns']['tag'] == "v<major>.<minor>[.<patch>]"

    @pytest.mark.parametrize("key, value", [
        ('resolution.base_policy', 'closest'),
        ('release.bump', 'patch'),
        ('release.marker', 'note'),
        ('changelog.enabled', 'maybe'),
        ('git.timeout_seconds', 0),
        ('logging.level', 'LOUD'),
        ('resolution.main_branches', 42),
        ('changelog.path', "changes.{release}"),
        ('patterns.tag', "v<major>"),
        ('patterns.release_commit', "release <major>"),
        ('patterns.branch', "release/<minor>"),
    ])
    def test_invalid_values(self, key, value):
        with pytest.raises(ConfigError):
            settings_from_config(get_default_config(), {key: value})

    def test_branch_pattern_may_omit_minor(self):
        settings = settings_from_config(get_default_config(), {'patterns.branch': "maint-<major>"})
        assert settings.branch_pattern.match("maint-4") == (4, None, None)

    def test_main_branches_from_string(self):
        settings = settings_from_config(get_default_config(), {'resolution.main_branches': "trunk, Develop"})
        assert settings.main_branches == ("trunk", "develop")

    def test_section_must_be_mapping(self):
        config = get_default_config()
        config['release'] = "tag"
        with pytest.raises(ConfigError, match="must be a mapping"):
            settings_from_config(config)

    def test_merge_configs_nested(self):
        merged = merge_configs({'a': {'b': 1, 'c': 2}}, {'a': {'c': 3}})
        assert merged == {'a': {'b': 1, 'c': 3}}


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_verbose_forces_debug(self):
        configure_logging(verbose=True)
        assert logging.getLogger("grelly").level == logging.DEBUG

    def test_configured_level(self):
        settings = settings_from_config(get_default_config(), {'logging.level': 'info'})
        configure_logging(settings)
        assert logging.getLogger("grelly").level == logging.INFO
