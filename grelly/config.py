#!/usr/bin/env python3

import copy
import os
import json
import tomllib
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from .exit_codes import ConfigError
from .patterns import (
    VersionPattern,
    DEFAULT_BRANCH_PATTERN,
    DEFAULT_TAG_PATTERN,
    DEFAULT_RELEASE_PATTERN,
)
from .domain.version import BasePolicy
from .domain.release import BumpLevel, MarkerStyle

logger = logging.getLogger("grelly")

ENV_PREFIX = "GRELLY_"
REPO_CONFIG_FILES = ['.grelly.json', '.grelly.toml', '.grelly.yaml', '.grelly.yml']
USER_CONFIG_FILES = ['config.json', 'config.toml', 'config.yaml', 'config.yml']


def get_config_path(repo_path: Optional[str] = None) -> Optional[Path]:
    """Get the path to the configuration file, or None if there is none.

    Checks in order:
    1. GRELLY_CONFIG environment variable
    2. .grelly.{json,toml,yaml,yml} in the repository root
    3. ~/.grelly/config.{json,toml,yaml,yml}
    """
    if 'GRELLY_CONFIG' in os.environ:
        path = Path(os.environ['GRELLY_CONFIG']).expanduser()
        if not path.exists():
            raise ConfigError(f"GRELLY_CONFIG points to a missing file: {path}")
        return path

    if repo_path:
        for filename in REPO_CONFIG_FILES:
            path = Path(repo_path) / filename
            if path.exists():
                return path

    user_dir = Path.home() / '.grelly'
    for filename in USER_CONFIG_FILES:
        path = user_dir / filename
        if path.exists():
            return path

    return None


def read_config_file(config_path: Path) -> Dict[str, Any]:
    """Read a JSON, TOML or YAML configuration file.

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    suffix = config_path.suffix.lower()
    try:
        if suffix == '.toml':
            with open(config_path, 'rb') as f:
                file_config = tomllib.load(f)
        elif suffix in ('.yaml', '.yml'):
            with open(config_path, 'r') as f:
                file_config = yaml.safe_load(f)
        else:
            # Default to JSON format
            with open(config_path, 'r') as f:
                file_config = json.load(f)
    except (OSError, tomllib.TOMLDecodeError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Error loading config from {config_path}: {e}") from e

    if file_config is None:
        return {}
    if not isinstance(file_config, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping at the top level")
    return file_config


def load_config(repo_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration: defaults, then the config file, then environment overrides."""
    config = get_default_config()

    config_path = get_config_path(repo_path)
    if config_path is not None:
        logger.debug(f"Using config from {config_path}")
        config = merge_configs(config, read_config_file(config_path))

    return apply_env_overrides(config)


def get_default_config() -> Dict[str, Any]:
    """Get default configuration."""
    return {
        "patterns": {
            "branch": DEFAULT_BRANCH_PATTERN,
            "tag": DEFAULT_TAG_PATTERN,
            "release_commit": DEFAULT_RELEASE_PATTERN,
        },
        "resolution": {
            "base_policy": BasePolicy.NEAREST_LOWER_OR_EQUAL.value,
            "prerelease_from_branch": False,
            "main_branches": ["main", "master", "release"],
        },
        "release": {
            "bump": BumpLevel.MINOR.value,
            "marker": MarkerStyle.TAG.value,
            "tag_message": "Release {version}",
        },
        "changelog": {
            "enabled": True,
            "path": "CHANGELOG.md",
        },
        "git": {
            "timeout_seconds": 30,
        },
        "logging": {
            "level": "WARNING",
            "format": "%(levelname)s: %(message)s",
        },
    }


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def apply_env_overrides(config, environ=None):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: GRELLY_SECTION_KEY
    For example: GRELLY_PATTERNS_RELEASE_COMMIT="release <major>.<minor>.<patch>"
    """
    environ = os.environ if environ is None else environ

    for env_key, value in environ.items():
        if not env_key.startswith(ENV_PREFIX):
            continue

        key_parts = env_key[len(ENV_PREFIX):].lower().split('_')

        # Convert value
        if value.lower() in ('true', 'yes', 'on'):
            typed_value = True
        elif value.lower() in ('false', 'no', 'off'):
            typed_value = False
        elif value.isdigit():
            typed_value = int(value)
        else:
            typed_value = value

        current_level = config
        i = 0
        while i < len(key_parts):
            # Longest config key that is a prefix of the remaining parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts = config_key.split('_')
                if key_parts[i:i + len(config_key_parts)] == config_key_parts:
                    if len(config_key_parts) > best_match_len:
                        best_match_len = len(config_key_parts)
                        matched_key = config_key

            if not matched_key:
                break

            if i + best_match_len == len(key_parts):
                current_level[matched_key] = typed_value
                break

            if isinstance(current_level[matched_key], dict):
                current_level = current_level[matched_key]
                i += best_match_len
            else:
                break

    return config


@dataclass
class Settings:
    """Validated configuration used by the services."""
    branch_pattern: VersionPattern
    tag_pattern: VersionPattern
    release_pattern: VersionPattern
    base_policy: BasePolicy = BasePolicy.NEAREST_LOWER_OR_EQUAL
    prerelease_from_branch: bool = False
    main_branches: Tuple[str, ...] = ("main", "master", "release")
    bump: BumpLevel = BumpLevel.MINOR
    marker: MarkerStyle = MarkerStyle.TAG
    tag_message: str = "Release {version}"
    changelog_enabled: bool = True
    changelog_path: str = "CHANGELOG.md"
    git_timeout: int = 30
    log_level: str = "WARNING"
    log_format: str = "%(levelname)s: %(message)s"

    @classmethod
    def defaults(cls) -> 'Settings':
        return settings_from_config(get_default_config())


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = config.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    return section


def _enum(enum_cls, value, label):
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        choices = ', '.join(member.value for member in enum_cls)
        raise ConfigError(f"Invalid {label} {value!r} (expected one of: {choices})") from None


def _bool(value, label) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ('true', 'false', 'yes', 'no', 'on', 'off', '1', '0'):
        return value.lower() in ('true', 'yes', 'on', '1')
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise ConfigError(f"Invalid {label} {value!r} (expected true or false)")


def _template(value, label, **sample) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"Invalid {label} {value!r} (expected a string)")
    try:
        value.format(**sample)
    except (KeyError, IndexError, ValueError) as e:
        raise ConfigError(f"Invalid {label} {value!r}: {e}") from e
    return value


def set_dotted(config: Dict[str, Any], dotted_key: str, value: Any) -> None:
    """Set config['a']['b'] for dotted_key 'a.b', creating sections as needed."""
    *sections, key = dotted_key.split('.')
    level = config
    for section in sections:
        level = level.setdefault(section, {})
    level[key] = value


def settings_from_config(config: Dict[str, Any], overrides: Optional[Dict[str, Any]] = None) -> Settings:
    """
    Validate a configuration dict into Settings.

    Args:
        config: Merged configuration (see load_config)
        overrides: Dotted keys to override, e.g. {"patterns.tag": "<major>.<minor>"};
                   None values are ignored

    Raises:
        ConfigError: If any value is malformed
    """
    if overrides:
        config = copy.deepcopy(config)
        for dotted_key, value in overrides.items():
            if value is not None:
                set_dotted(config, dotted_key, value)

    patterns = _section(config, 'patterns')
    resolution = _section(config, 'resolution')
    release = _section(config, 'release')
    changelog = _section(config, 'changelog')
    git = _section(config, 'git')
    log_config = _section(config, 'logging')

    main_branches = resolution.get('main_branches', [])
    if isinstance(main_branches, str):
        main_branches = [b.strip() for b in main_branches.split(',') if b.strip()]
    if not isinstance(main_branches, list):
        raise ConfigError(f"Invalid resolution.main_branches {main_branches!r} (expected a list)")

    timeout = git.get('timeout_seconds', 30)
    if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
        raise ConfigError(f"Invalid git.timeout_seconds {timeout!r} (expected a positive integer)")

    level = str(log_config.get('level', 'WARNING')).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigError(f"Invalid logging.level {level!r}")

    return Settings(
        branch_pattern=VersionPattern.compile(
            patterns.get('branch', DEFAULT_BRANCH_PATTERN), label="branch pattern"),
        tag_pattern=VersionPattern.compile(
            patterns.get('tag', DEFAULT_TAG_PATTERN), require_minor=True, label="tag pattern"),
        release_pattern=VersionPattern.compile(
            patterns.get('release_commit', DEFAULT_RELEASE_PATTERN), require_minor=True,
            label="release commit pattern"),
        base_policy=_enum(BasePolicy, resolution.get('base_policy', BasePolicy.NEAREST_LOWER_OR_EQUAL.value),
                          "resolution.base_policy"),
        prerelease_from_branch=_bool(resolution.get('prerelease_from_branch', False),
                                     "resolution.prerelease_from_branch"),
        main_branches=tuple(str(b).lower() for b in main_branches),
        bump=_enum(BumpLevel, release.get('bump', BumpLevel.MINOR.value), "release.bump"),
        marker=_enum(MarkerStyle, release.get('marker', MarkerStyle.TAG.value), "release.marker"),
        tag_message=_template(release.get('tag_message', "Release {version}"), "release.tag_message",
                              version="0.0.0", tag="v0.0"),
        changelog_enabled=_bool(changelog.get('enabled', True), "changelog.enabled"),
        changelog_path=_template(changelog.get('path', "CHANGELOG.md"), "changelog.path", version="0.0.0"),
        git_timeout=timeout,
        log_level=level,
        log_format=str(log_config.get('format', "%(levelname)s: %(message)s")),
    )


def load_settings(repo_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None) -> Settings:
    """Load and validate configuration for a repository."""
    return settings_from_config(load_config(repo_path), overrides)


def configure_logging(settings: Optional[Settings] = None, verbose: bool = False) -> None:
    """Send grelly's log records and Python warnings to stderr."""
    settings = settings or Settings.defaults()
    logging.basicConfig(
        level=logging.WARNING,
        format=settings.log_format,
        handlers=[
            logging.StreamHandler(sys.stderr)  # Default to stderr
        ]
    )
    logger.setLevel(logging.DEBUG if verbose else settings.log_level)
    logging.captureWarnings(True)
