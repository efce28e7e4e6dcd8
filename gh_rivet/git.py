"""Repository detection from local git metadata."""

import re
from pathlib import Path
from typing import Optional

from .paths import find_project_root

REPOSITORY_PATTERN = re.compile(r"^[a-zA-Z0-9_.-]+/[a-zA-Z0-9_.-]+$")


class RepositoryFormatError(ValueError):
    """Raised when a repository identifier is not in owner/repo form."""


def validate_repository_format(repo: str) -> None:
    if not REPOSITORY_PATTERN.match(repo or ""):
        raise RepositoryFormatError(
            f"invalid repository format: {repo!r} - expected format: owner/repo"
        )


def extract_repo_from_url(url: str) -> str:
    """Convert a GitHub remote URL (https or ssh) to `owner/repo`.

    Returns an empty string when the URL is not a recognisable GitHub remote.
    """
    repo = ""
    if url.startswith(("https://", "http://")):
        idx = url.find("github.com/")
        if idx != -1:
            repo = url[idx + len("github.com/"):]
    elif url.startswith("git@github.com:"):
        repo = url[len("git@github.com:"):]

    repo = repo.rstrip("/")
    if repo.endswith(".git"):
        repo = repo[:-4]
    return repo if REPOSITORY_PATTERN.match(repo) else ""


def parse_origin_url(git_config: str) -> str:
    """Return the `url` of the `[remote "origin"]` section, or ''."""
    in_origin = False
    for line in git_config.splitlines():
        trimmed = line.strip()
        if trimmed.startswith("["):
            in_origin = trimmed.startswith("[remote") and "origin" in trimmed
            continue
        if in_origin and trimmed.startswith("url"):
            _, _, value = trimmed.partition("=")
            return value.strip()
    return ""


def detect_repository(start: Optional[Path] = None) -> Optional[str]:
    """Detect `owner/repo` from the origin remote of the enclosing git checkout."""
    root = find_project_root(start)
    if root is None:
        return None
    try:
        content = (root / ".git" / "config").read_text()
    except OSError:
        return None
    url = parse_origin_url(content)
    if not url:
        return None
    return extract_repo_from_url(url) or None
