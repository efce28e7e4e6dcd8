"""Navigation snapshot persistence across sessions."""

import logging
from pathlib import Path
from typing import Optional

import yaml

from .models import Config, Group, NavigationState
from .paths import AppPaths

logger = logging.getLogger(__name__)


class StateError(Exception):
    """The navigation snapshot could not be written or removed."""


class StateStore:
    """Reads and writes a single NavigationState document.

    A store created with ``path=None`` is disabled: loads return defaults and
    saves are no-ops.
    """

    def __init__(self, path: Optional[Path]):
        self.path = Path(path) if path is not None else None

    @property
    def enabled(self) -> bool:
        return self.path is not None

    def load(self) -> NavigationState:
        """Load the snapshot; any problem yields the default state."""
        if self.path is None or not self.path.exists():
            return NavigationState()
        try:
            with open(self.path) as f:
                data = yaml.safe_load(f)
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            logger.warning(f"Ignoring unreadable state file {self.path}: {e}")
            return NavigationState()
        if data is None:
            return NavigationState()
        try:
            return NavigationState.from_dict(data)
        except (TypeError, ValueError, OverflowError) as e:
            logger.warning(f"Ignoring malformed state file {self.path}: {e}")
            return NavigationState()

    def save(self, state: NavigationState) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                yaml.safe_dump(state.to_dict(), f, sort_keys=False)
        except OSError as e:
            raise StateError(f"failed to write state file {self.path}: {e}") from e

    def clear(self) -> bool:
        """Remove the snapshot file. Returns True if a file was removed."""
        if self.path is None or not self.path.exists():
            return False
        try:
            self.path.unlink()
        except OSError as e:
            raise StateError(f"failed to remove state file {self.path}: {e}") from e
        return True


def load_with_migration(paths: AppPaths, repository: str) -> tuple[StateStore, NavigationState]:
    """Open the per-repository store, migrating a legacy snapshot if needed."""
    store = StateStore(paths.user_state_file(repository))
    if store.path.exists():
        return store, store.load()

    legacy = paths.find_legacy_state()
    if legacy is None:
        return store, NavigationState()

    state = StateStore(legacy).load()
    try:
        store.save(state)
        logger.info(f"Migrated state from {legacy} to {store.path}")
    except StateError as e:
        logger.warning(f"Could not migrate legacy state {legacy}: {e}")
    return store, state


def resolve_group_path(config: Config, group_ids: list[str]) -> tuple[list[Group], bool]:
    """Resolve an id path to group objects.

    Returns the longest resolvable prefix and whether the whole path resolved.
    """
    if not group_ids:
        return [], True

    resolved: list[Group] = []
    current = config.find_root(group_ids[0])
    if current is None:
        return [], False
    resolved.append(current)

    for group_id in group_ids[1:]:
        child = current.find_child(group_id)
        if child is None:
            return resolved, False
        resolved.append(child)
        current = child

    return resolved, True


def extract_group_ids(groups: list[Group]) -> list[str]:
    return [g.id for g in groups]
