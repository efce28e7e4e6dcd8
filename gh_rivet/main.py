#!/usr/bin/env python3
"""gh-rivet - Browse GitHub Actions workflows organized into groups.

Entry point for the CLI application.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(args) -> None:
    level = logging.DEBUG if args.verbose else logging.WARNING
    if args.log_file:
        logging.basicConfig(level=level, format=LOG_FORMAT, filename=args.log_file)
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def build_paths():
    from .paths import AppPaths, find_project_root

    return AppPaths.discover(project_root=find_project_root())


def load_config(args, paths, check: bool = True):
    """Resolve the configuration and apply CLI overrides."""
    from .config import resolve, validate
    from .git import detect_repository, validate_repository_format
    from .models import ConfigSource

    config = resolve(paths, explicit_path=Path(args.config) if args.config else None)

    if args.repo:
        config.repository = args.repo
        config.source = ConfigSource.CLI_FLAG
    if not config.repository:
        detected = detect_repository(paths.project_root)
        if detected:
            logger.info(f"Using repository from git remote: {detected}")
            config.repository = detected
    if args.refresh_interval is not None:
        config.refresh_interval = args.refresh_interval

    if check:
        validate(config)
        validate_repository_format(config.repository)
    return config


def open_state(args, paths, repository: str):
    """Return (store, state) honouring --state and --no-state."""
    from .state import StateStore, load_with_migration

    if args.no_state:
        return None, None
    if args.state:
        store = StateStore(Path(args.state))
        return store, store.load()
    try:
        paths.ensure_dirs()
    except OSError as e:
        logger.warning(f"State persistence disabled: {e}")
        return None, None
    return load_with_migration(paths, repository)


def fail(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def cmd_browse(args) -> int:
    """Launch the TUI browser."""
    from .app import RivetApp
    from .config import ConfigError, ConfigNotFoundError
    from .git import RepositoryFormatError
    from .providers import get_provider

    paths = build_paths()
    try:
        config = load_config(args, paths)
    except ConfigNotFoundError:
        return fail("no configuration found. Run 'gh-rivet init' to create one.")
    except (ConfigError, RepositoryFormatError) as e:
        return fail(f"invalid configuration: {e}")

    provider = get_provider(repository=config.repository, timeout=args.timeout)
    if provider is None or not provider.is_available():
        return fail("GitHub CLI not installed\nInstall: https://cli.github.com/")

    store, state = open_state(args, paths, config.repository)
    logger.debug(f"Starting TUI for {config.repository} (config {config.path}, source {config.source})")

    app = RivetApp(config, provider, state_store=store, state=state)
    app.run()
    return 0


def discover_local_workflows(project_root: Optional[Path]) -> list[str]:
    if project_root is None:
        return []
    workflows_dir = project_root / ".github" / "workflows"
    if not workflows_dir.is_dir():
        return []
    return sorted(
        p.name for p in workflows_dir.iterdir()
        if p.is_file() and p.suffix in (".yml", ".yaml")
    )


def cmd_init(args) -> int:
    """Write a starter configuration with every discovered workflow in one group."""
    from .config import ConfigError, save_config
    from .git import RepositoryFormatError, detect_repository, validate_repository_format
    from .models import Config, Group
    from .providers import get_provider
    from .providers.base import ProviderError

    paths = build_paths()
    target = Path(args.config) if args.config else paths.user_config_file
    if target.exists() and not args.force:
        return fail(f"{target} already exists (use --force to overwrite)")

    if args.repo:
        repository = args.repo
        try:
            validate_repository_format(repository)
        except RepositoryFormatError as e:
            return fail(str(e))
        provider = get_provider(repository=repository, timeout=args.timeout)
        try:
            if not provider.repository_exists(repository):
                return fail(f"repository not found or not accessible: {repository}")
            workflows = provider.list_workflow_files(repository)
        except ProviderError as e:
            return fail(str(e))
    else:
        repository = detect_repository(paths.project_root) or ""
        workflows = discover_local_workflows(paths.project_root)

    if not workflows:
        return fail("no workflow files found (looked in .github/workflows; use --repo to fetch from GitHub)")
    if not repository:
        return fail("could not detect the repository; pass --repo owner/name")

    config = Config(
        repository=repository,
        groups=[Group(
            id="all",
            name="All Workflows",
            description="Every workflow in the repository",
            workflows=workflows,
        )],
    )
    try:
        save_config(config, target)
    except ConfigError as e:
        return fail(str(e))

    print(f"Created {target}")
    print(f"  Repository: {repository}")
    print(f"  Workflows:  {len(workflows)}")
    print("\nEdit the file to organize workflows into groups, then run: gh-rivet")
    return 0


def _mark(path: Optional[Path]) -> str:
    if path is None:
        return ""
    return "✓" if path.exists() else "✗"


def cmd_config(args) -> int:
    """Inspect configuration files."""
    from .config import ConfigError, validate
    from .git import RepositoryFormatError, validate_repository_format

    paths = build_paths()

    if args.action == "paths":
        print("Configuration File Locations")
        print("-" * 60)
        print(f"User Config:     {paths.user_config_file} {_mark(paths.user_config_file)}")
        if paths.project_root is not None:
            print(f"Project Root:    {paths.project_root}")
            print(f"Repo Default:    {paths.repo_default_config_path} {_mark(paths.repo_default_config_path)}")
            print(f"Project User:    {paths.project_user_config_path} {_mark(paths.project_user_config_path)}")
        print(f"State Directory: {paths.user_state_dir}")
        print(f"Cache Directory: {paths.user_cache_dir}")
        legacy = paths.find_legacy_config()
        if legacy is not None and legacy != paths.repo_default_config_path:
            print(f"\nLegacy Config:   {legacy} (consider moving it)")
        return 0

    try:
        config = load_config(args, paths, check=False)
    except ConfigError as e:
        return fail(f"failed to load configuration: {e}")

    if args.action == "show":
        print("Merged Configuration")
        print("-" * 60)
        print(f"Source: {config.source}")
        print(f"Path:   {config.path}")
        print()
        print(yaml.safe_dump(config.to_dict(), sort_keys=False, allow_unicode=True))
        print("Active Configuration Files:")
        for path in paths.config_paths():
            print(f"  • {path} ({paths.config_source(path)})")
        return 0

    # validate
    try:
        validate(config)
        validate_repository_format(config.repository)
    except (ConfigError, RepositoryFormatError) as e:
        return fail(f"invalid configuration: {e}")
    workflows = sum(g.count_workflows() for g in config.groups)
    print(f"Configuration is valid: {config.repository}, {len(config.groups)} root groups, {workflows} workflows")
    return 0


def cmd_state(args) -> int:
    """Inspect or clear the saved navigation state."""
    from .config import ConfigError
    from .state import StateError, StateStore

    paths = build_paths()
    if args.state:
        store = StateStore(Path(args.state))
    else:
        repository = args.repo or ""
        if not repository:
            try:
                repository = load_config(args, paths, check=False).repository
            except ConfigError as e:
                logger.debug(f"No configuration for state lookup: {e}")
        store = StateStore(paths.user_state_file(repository))

    if args.action == "show":
        print(f"State file: {store.path} {_mark(store.path)}")
        print(yaml.safe_dump(store.load().to_dict(), sort_keys=False))
        return 0

    try:
        removed = store.clear()
    except StateError as e:
        return fail(str(e))
    print(f"Removed {store.path}" if removed else f"No state file at {store.path}")
    return 0


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError("must be >= 0")
    return number


def add_common_options(parser: argparse.ArgumentParser, suppress: bool = False) -> None:
    """Options accepted both before and after the subcommand.

    Subcommand copies use SUPPRESS so they don't overwrite values given
    before the subcommand.
    """

    def default(value):
        return argparse.SUPPRESS if suppress else value

    parser.add_argument("--config", "-c", default=default(None),
                        help="Path to configuration file (default: auto-detect)")
    parser.add_argument("--repo", "-r", default=default(None), help="Repository (owner/repo format)")
    parser.add_argument("--timeout", type=float, default=default(30.0), help="GitHub CLI timeout in seconds")
    parser.add_argument("--verbose", action="store_true", default=default(False), help="Debug logging")
    parser.add_argument("--log-file", default=default(None), help="Write logs to this file instead of stderr")
    parser.add_argument("--state", default=default(None), help="Path to state file")
    parser.add_argument(
        "--no-state",
        action="store_true",
        default=default(False),
        help="Disable state persistence (no restore, no save)"
    )
    parser.add_argument(
        "--refresh-interval",
        type=non_negative_int,
        default=default(None),
        help="Auto-refresh interval in seconds (0 = disabled)"
    )


def main():
    """Main entry point for the gh-rivet CLI."""
    parser = argparse.ArgumentParser(
        description="Interactive TUI for GitHub Actions workflows organized by groups",
        prog="gh-rivet",
    )
    parser.add_argument(
        "--version", "-v",
        action="store_true",
        help="Show version"
    )
    add_common_options(parser)

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    browse_parser = subparsers.add_parser("browse", help="Launch TUI browser (default)")
    add_common_options(browse_parser, suppress=True)

    init_parser = subparsers.add_parser("init", help="Create a starter configuration file")
    add_common_options(init_parser, suppress=True)
    init_parser.add_argument("--force", "-f", action="store_true", help="Overwrite existing config")

    config_parser = subparsers.add_parser("config", help="Inspect configuration")
    config_parser.add_argument("action", choices=["show", "paths", "validate"], help="Config action")
    add_common_options(config_parser, suppress=True)

    state_parser = subparsers.add_parser("state", help="Inspect or clear saved navigation state")
    state_parser.add_argument("action", choices=["show", "clear"], help="State action")
    add_common_options(state_parser, suppress=True)

    args = parser.parse_args()

    if args.version:
        from . import __version__
        print(f"gh-rivet {__version__}")
        return

    setup_logging(args)

    if args.command == "init":
        code = cmd_init(args)
    elif args.command == "config":
        code = cmd_config(args)
    elif args.command == "state":
        code = cmd_state(args)
    else:
        code = cmd_browse(args)

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
