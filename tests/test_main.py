"""Tests for the command-line entry point."""

import sys

import pytest
import yaml

from gh_rivet import __version__
from gh_rivet.main import main

GIT_CONFIG = '[remote "origin"]\n\turl = https://github.com/acme/platform.git\n'


@pytest.fixture
def project(tmp_path, monkeypatch):
    """A checkout with two workflow files and isolated XDG directories."""
    root = tmp_path / "platform"
    (root / ".git").mkdir(parents=True)
    (root / ".git" / "config").write_text(GIT_CONFIG)
    workflows = root / ".github" / "workflows"
    workflows.mkdir(parents=True)
    (workflows / "release.yaml").write_text("on: push\n")
    (workflows / "ci.yml").write_text("on: push\n")
    (workflows / "README.md").write_text("docs\n")

    monkeypatch.chdir(root)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    for name in ("RIVET_REPOSITORY", "RIVET_REFRESH_INTERVAL"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def run(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["gh-rivet", *args])
    monkeypatch.setattr("gh_rivet.main.setup_logging", lambda args: None)
    try:
        main()
    except SystemExit as e:
        return e.code or 0
    return 0


class TestInit:
    """Tests for `gh-rivet init`."""

    def test_writes_starter_config(self, project, monkeypatch, capsys):
        assert run(monkeypatch, "init") == 0
        target = project / "config" / "rivet" / "config.yaml"
        data = yaml.safe_load(target.read_text())
        assert data["repository"] == "acme/platform"
        assert data["groups"] == [{
            "id": "all",
            "name": "All Workflows",
            "description": "Every workflow in the repository",
            "workflows": ["ci.yml", "release.yaml"],
        }]
        assert "Workflows:  2" in capsys.readouterr().out

    def test_refuses_to_overwrite(self, project, monkeypatch, capsys):
        run(monkeypatch, "init")
        assert run(monkeypatch, "init") == 1
        assert "already exists" in capsys.readouterr().err
        assert run(monkeypatch, "init", "--force") == 0

    def test_inaccessible_remote_repository(self, project, monkeypatch, capsys):
        class MissingRepo:
            def repository_exists(self, repository):
                return False

            def list_workflow_files(self, repository):
                raise AssertionError("should not list workflows of a missing repository")

        monkeypatch.setattr("gh_rivet.providers.get_provider", lambda **kwargs: MissingRepo())
        assert run(monkeypatch, "init", "--repo", "acme/missing") == 1
        assert "repository not found or not accessible: acme/missing" in capsys.readouterr().err
        assert not (project / "config" / "rivet" / "config.yaml").exists()

    def test_invalid_repo_flag(self, project, monkeypatch, capsys):
        assert run(monkeypatch, "init", "--repo", "not-a-repo") == 1
        assert "owner/repo" in capsys.readouterr().err


class TestConfigCommand:
    """Tests for `gh-rivet config`."""

    def test_validate(self, project, monkeypatch, capsys):
        run(monkeypatch, "init")
        capsys.readouterr()
        assert run(monkeypatch, "config", "validate") == 0
        assert "Configuration is valid: acme/platform, 1 root groups, 2 workflows" in capsys.readouterr().out

    def test_validate_without_config(self, project, monkeypatch, capsys):
        assert run(monkeypatch, "config", "validate") == 1
        assert "failed to load configuration" in capsys.readouterr().err

    def test_show_applies_cli_override(self, project, monkeypatch, capsys):
        run(monkeypatch, "init")
        capsys.readouterr()
        assert run(monkeypatch, "--refresh-interval", "15", "config", "show") == 0
        assert "refreshInterval: 15" in capsys.readouterr().out

    def test_paths(self, project, monkeypatch, capsys):
        assert run(monkeypatch, "config", "paths") == 0
        out = capsys.readouterr().out
        assert "Repo Default:" in out
        assert str(project / "config" / "rivet" / "config.yaml") in out


class TestStateCommand:
    """Tests for `gh-rivet state`."""

    def test_show_and_clear(self, project, monkeypatch, capsys):
        state_file = project / "nav.yaml"
        state_file.write_text("viewState: browsingGroups\ngroupPath: [all]\n")
        assert run(monkeypatch, "--state", str(state_file), "state", "show") == 0
        assert "- all" in capsys.readouterr().out

        assert run(monkeypatch, "--state", str(state_file), "state", "clear") == 0
        assert not state_file.exists()


class TestOptionPlacement:
    """Session options are accepted before or after the subcommand."""

    @pytest.fixture
    def browse_args(self, monkeypatch):
        captured = []

        def fake_browse(args):
            captured.append(args)
            return 0

        monkeypatch.setattr("gh_rivet.main.cmd_browse", fake_browse)
        return captured

    def test_after_subcommand(self, monkeypatch, browse_args):
        assert run(monkeypatch, "browse", "--no-state", "--refresh-interval", "10", "--state", "s.yaml") == 0
        args = browse_args[0]
        assert args.no_state is True
        assert args.refresh_interval == 10
        assert args.state == "s.yaml"

    def test_before_subcommand_survives(self, monkeypatch, browse_args):
        assert run(monkeypatch, "--no-state", "--refresh-interval", "10", "browse") == 0
        args = browse_args[0]
        assert args.no_state is True
        assert args.refresh_interval == 10

    def test_defaults(self, monkeypatch, browse_args):
        assert run(monkeypatch) == 0
        args = browse_args[0]
        assert args.no_state is False
        assert args.refresh_interval is None
        assert args.state is None


def test_version(monkeypatch, capsys):
    assert run(monkeypatch, "--version") == 0
    assert capsys.readouterr().out.strip() == f"gh-rivet {__version__}"


def test_negative_refresh_interval_rejected(monkeypatch):
    assert run(monkeypatch, "--refresh-interval", "-5", "config", "paths") == 2
