"""Layered configuration loading, merging, validation and saving."""

import copy
import logging
import os
import re
from pathlib import Path
from typing import Mapping, Optional

import yaml

from .models import Config, ConfigSource, Group, Preferences
from .paths import AppPaths

logger = logging.getLogger(__name__)

CONFIG_HEADER = """\
# Rivet Configuration
#
# Configuration structure:
# - repository: GitHub repository in owner/repo format
# - preferences: User-specific settings (optional)
#   - refreshInterval: Auto-refresh interval in seconds (0 = disabled)
#   - theme: Color theme preference
#   - keybindings: Keybinding style (vim, emacs, etc.)
# - groups: Organize your workflows into groups
#   - id: Unique identifier
#   - name: Display name shown in the TUI
#   - description: Optional description
#   - workflows: List of workflow filenames
#   - workflowDefs: Workflow filenames with friendly names
#   - jobs: Regex patterns selecting the jobs shown for this group
#   - pinnedWorkflows: Workflows promoted to the pinned sidebar
#   - groups: Nested groups for hierarchical organization
#
# Configuration locations (lowest to highest precedence):
#   Repo default: .github/.rivet.yaml (team-shared defaults)
#   User config:  ~/.config/rivet/config.yaml
#   Project user: .git/rivet/config.yaml (per-project user overrides)

"""

ENV_REPOSITORY = "RIVET_REPOSITORY"
ENV_REFRESH_INTERVAL = "RIVET_REFRESH_INTERVAL"
ENV_THEME = "RIVET_PREFERENCES_THEME"
ENV_KEYBINDINGS = "RIVET_PREFERENCES_KEYBINDINGS"


class ConfigError(Exception):
    """A configuration document could not be read, parsed or written."""


class ConfigNotFoundError(ConfigError):
    """No configuration document exists in any known location."""


class ConfigValidationError(ConfigError):
    """The merged configuration violates a structural rule."""


def load_from_path(path: Path, source: ConfigSource = ConfigSource.UNKNOWN) -> Config:
    """Load a single YAML document."""
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"failed to read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"failed to parse config file {path}: {e}") from e

    try:
        config = Config.from_dict(data if data is not None else {})
    except (TypeError, ValueError, OverflowError) as e:
        raise ConfigError(f"failed to parse config file {path}: {e}") from e

    config.source = source
    config.path = path
    return config


def merge_configs(base: Config, override: Config) -> Config:
    """Merge `override` onto `base`, only applying non-empty override values.

    Preferences merge field by field; groups are replaced wholesale.
    Neither input is modified.
    """
    merged = Config(
        repository=base.repository,
        preferences=copy.deepcopy(base.preferences),
        groups=base.groups,
        source=base.source,
        path=base.path,
    )

    if override.repository:
        merged.repository = override.repository
        merged.source = override.source
        merged.path = override.path

    if override.preferences is not None:
        prefs = merged.preferences or Preferences()
        if override.preferences.refresh_interval:
            prefs.refresh_interval = override.preferences.refresh_interval
        if override.preferences.theme:
            prefs.theme = override.preferences.theme
        if override.preferences.keybindings:
            prefs.keybindings = override.preferences.keybindings
        prefs.custom_settings.update(override.preferences.custom_settings)
        merged.preferences = prefs

    if override.groups:
        merged.groups = override.groups

    return merged


def apply_env_overrides(config: Config, environ: Optional[Mapping[str, str]] = None) -> Config:
    """Apply RIVET_* environment variables in place; they win over file values."""
    env = os.environ if environ is None else environ

    repo = env.get(ENV_REPOSITORY, "")
    if repo:
        config.repository = repo
        config.source = ConfigSource.ENV_VAR

    interval = env.get(ENV_REFRESH_INTERVAL, "")
    if interval:
        try:
            config.refresh_interval = int(interval)
        except ValueError:
            logger.warning(f"Ignoring non-integer {ENV_REFRESH_INTERVAL}={interval!r}")

    theme = env.get(ENV_THEME, "")
    if theme:
        if config.preferences is None:
            config.preferences = Preferences()
        config.preferences.theme = theme

    keybindings = env.get(ENV_KEYBINDINGS, "")
    if keybindings:
        if config.preferences is None:
            config.preferences = Preferences()
        config.preferences.keybindings = keybindings

    return config


def resolve(
    paths: AppPaths,
    explicit_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """Produce the effective configuration.

    Precedence, lowest to highest: repository default, user global,
    project-local user, environment, explicit path. An explicit path is the
    sole file source (no merge).
    """
    if explicit_path is not None:
        config = load_from_path(Path(explicit_path), ConfigSource.CLI_FLAG)
        return apply_env_overrides(config, environ)

    config_paths = paths.config_paths()
    if not config_paths:
        legacy = paths.find_legacy_config()
        if legacy is None:
            raise ConfigNotFoundError("no configuration file found")
        logger.info(f"Using legacy configuration file {legacy}")
        config = load_from_path(legacy, ConfigSource.REPO_DEFAULT)
        return apply_env_overrides(config, environ)

    merged: Optional[Config] = None
    save_target: Optional[Path] = None
    for path in config_paths:
        try:
            layer = load_from_path(path, paths.config_source(path))
        except ConfigError as e:
            logger.warning(f"Skipping config {path}: {e}")
            continue
        logger.debug(f"Loaded {layer.source} from {path}")
        merged = layer if merged is None else merge_configs(merged, layer)
        save_target = path

    if merged is None:
        raise ConfigError(
            "no usable configuration: every file failed to load ("
            + ", ".join(str(p) for p in config_paths) + ")"
        )

    # Pin toggles write back to the highest-precedence document that loaded
    merged.path = save_target
    return apply_env_overrides(merged, environ)


def validate(config: Config) -> None:
    """Raise ConfigValidationError if the configuration is unusable."""
    if not config.repository:
        raise ConfigValidationError("configuration must specify a repository (owner/repo)")
    if not config.groups:
        raise ConfigValidationError("configuration must have at least one group")
    _validate_siblings(config.groups, "")


def _validate_siblings(groups: list[Group], parent_path: str) -> None:
    seen: set[str] = set()
    for group in groups:
        if group.id and group.id in seen:
            location = parent_path or "/"
            raise ConfigValidationError(f"duplicate group id {group.id!r} under {location}")
        seen.add(group.id)
        _validate_group(group, parent_path)


def _validate_group(group: Group, parent_path: str) -> None:
    current = f"{parent_path}/{group.id}" if parent_path else group.id

    if not group.id:
        raise ConfigValidationError(f"group at path {current or '/'} missing id")
    if not group.name:
        raise ConfigValidationError(f"group {current} missing name")

    for pattern in group.jobs + group.workflow_patterns:
        try:
            re.compile(pattern)
        except re.error as e:
            raise ConfigValidationError(
                f"invalid regex pattern in group {current}: {pattern} ({e})"
            ) from e

    _validate_siblings(group.groups, current)


def save_config(config: Config, path: Optional[Path] = None, include_header: bool = True) -> Path:
    """Write the configuration as YAML and remember the path."""
    target = Path(path) if path is not None else config.path
    if target is None:
        raise ConfigError("no path to save configuration to")

    body = yaml.safe_dump(config.to_dict(), sort_keys=False, allow_unicode=True)
    content = (CONFIG_HEADER + body) if include_header else body
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
    except OSError as e:
        raise ConfigError(f"failed to write config file {target}: {e}") from e

    config.path = target
    return target
