"""XDG-style application paths and configuration tier discovery."""

import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from .models import ConfigSource

logger = logging.getLogger(__name__)

APP_NAME = "rivet"
CONFIG_FILE_NAME = "config.yaml"
STATE_FILE_NAME = "state.yaml"
LEGACY_CONFIG_FILE_NAME = ".rivet.yaml"
LEGACY_STATE_FILE_NAME = ".rivet.state.yaml"

_UNSAFE_FILENAME_CHARS = re.compile(r'[/\\:*?"<>|]')


def sanitize_for_filename(value: str) -> str:
    """Replace characters that are not allowed in filenames."""
    return _UNSAFE_FILENAME_CHARS.sub("_", value)


def find_project_root(start: Optional[Path] = None, max_depth: int = 10) -> Optional[Path]:
    """Walk upward from `start` looking for a directory containing `.git`."""
    current = (start or Path.cwd()).resolve()
    for _ in range(max_depth):
        if (current / ".git").is_dir():
            return current
        if current.parent == current:
            break
        current = current.parent
    return None


@dataclass
class AppPaths:
    """All filesystem locations used by the application."""

    user_config_dir: Path
    user_state_dir: Path
    user_cache_dir: Path
    project_root: Optional[Path] = None
    home_dir: Path = field(default_factory=Path.home)
    using_fallbacks: set[str] = field(default_factory=set)

    @classmethod
    def discover(
        cls,
        project_root: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
        home: Optional[Path] = None,
    ) -> "AppPaths":
        """Build paths from XDG variables, falling back to the usual dot directories."""
        env = os.environ if environ is None else environ
        home = home or Path.home()

        config_base = Path(env["XDG_CONFIG_HOME"]) if env.get("XDG_CONFIG_HOME") else home / ".config"
        state_base = Path(env["XDG_STATE_HOME"]) if env.get("XDG_STATE_HOME") else home / ".local" / "state"
        cache_base = Path(env["XDG_CACHE_HOME"]) if env.get("XDG_CACHE_HOME") else home / ".cache"

        return cls(
            user_config_dir=config_base / APP_NAME,
            user_state_dir=state_base / APP_NAME,
            user_cache_dir=cache_base / APP_NAME,
            project_root=project_root,
            home_dir=home,
        )

    @property
    def repo_default_config_path(self) -> Optional[Path]:
        if self.project_root is None:
            return None
        return self.project_root / ".github" / LEGACY_CONFIG_FILE_NAME

    @property
    def project_user_config_path(self) -> Optional[Path]:
        if self.project_root is None:
            return None
        return self.project_root / ".git" / APP_NAME / CONFIG_FILE_NAME

    @property
    def user_config_file(self) -> Path:
        return self.user_config_dir / CONFIG_FILE_NAME

    def user_state_file(self, repository: str = "") -> Path:
        """Per-repository state file, e.g. `owner_repo.state.yaml`."""
        owner, _, name = repository.partition("/")
        if not owner or not name:
            return self.user_state_dir / STATE_FILE_NAME
        filename = f"{sanitize_for_filename(owner)}_{sanitize_for_filename(name)}.{STATE_FILE_NAME}"
        return self.user_state_dir / filename

    def config_paths(self) -> list[Path]:
        """Existing config files ordered from lowest to highest precedence."""
        candidates = [
            self.repo_default_config_path,
            self.user_config_file,
            self.project_user_config_path,
        ]
        return [p for p in candidates if p is not None and p.is_file()]

    def config_source(self, path: Path) -> ConfigSource:
        if path == self.user_config_file:
            return ConfigSource.USER_CONFIG
        if path == self.project_user_config_path:
            return ConfigSource.PROJECT_CONFIG
        if path == self.repo_default_config_path:
            return ConfigSource.REPO_DEFAULT
        return ConfigSource.UNKNOWN

    def find_legacy_config(self) -> Optional[Path]:
        candidates = []
        if self.project_root is not None:
            candidates.append(self.project_root / ".github" / LEGACY_CONFIG_FILE_NAME)
            candidates.append(self.project_root / LEGACY_CONFIG_FILE_NAME)
        candidates.append(self.home_dir / LEGACY_CONFIG_FILE_NAME)
        candidates.append(Path.cwd() / LEGACY_CONFIG_FILE_NAME)
        for path in candidates:
            if path.is_file():
                return path
        return None

    def find_legacy_state(self) -> Optional[Path]:
        candidates = []
        if self.project_root is not None:
            candidates.append(self.project_root / ".github" / LEGACY_STATE_FILE_NAME)
            candidates.append(self.project_root / LEGACY_STATE_FILE_NAME)
        candidates.append(Path.cwd() / LEGACY_STATE_FILE_NAME)
        for path in candidates:
            if path.is_file():
                return path
        return None

    def ensure_dirs(self) -> None:
        """Create application directories (mode 0700).

        The config directory is critical and raises on failure. State and
        cache directories fall back to a temp location when permission is
        denied, with a warning.
        """
        self._ensure_dir("config", critical=True)
        self._ensure_dir("state", critical=False)
        self._ensure_dir("cache", critical=False)
        if self.project_root is not None:
            project_dir = self.project_root / ".git" / APP_NAME
            try:
                project_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
            except OSError as e:
                logger.warning(f"Could not create project config directory {project_dir}: {e}")

    def _ensure_dir(self, kind: str, critical: bool) -> None:
        attr = f"user_{kind}_dir"
        path: Path = getattr(self, attr)
        try:
            path.mkdir(mode=0o700, parents=True, exist_ok=True)
            return
        except PermissionError as e:
            if critical:
                raise PermissionError(
                    f"permission denied: cannot create {kind} directory {path}\n"
                    f"Fix permissions on {path.parent} or set XDG_{kind.upper()}_HOME"
                ) from e
            error = e
        except OSError as e:
            if critical:
                raise
            logger.warning(f"Failed to create {kind} directory {path}: {e}")
            return

        fallback = Path(tempfile.gettempdir()) / f"{APP_NAME}-{kind}"
        try:
            fallback.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError:
            logger.warning(f"Cannot create {kind} directory {path}: {error}")
            return
        setattr(self, attr, fallback)
        self.using_fallbacks.add(kind)
        logger.warning(f"Using fallback {kind} directory: {fallback} (permission denied for {path})")
