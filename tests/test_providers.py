"""Tests for run providers."""

import json
import subprocess
from datetime import datetime, timezone

import pytest

from gh_rivet.models import Run
from gh_rivet.providers import get_provider, provider_names
from gh_rivet.providers import gh_cli
from gh_rivet.providers.base import (
    ProviderError,
    ProviderCommandError,
    ProviderTimeoutError,
    RunProvider,
    sort_runs,
)
from gh_rivet.providers.gh_cli import GitHubCLIProvider, parse_workflow_paths


class FakeRun:
    """Stands in for subprocess.run and records the commands it was given."""

    def __init__(self, stdout="", returncode=0, stderr="", exc=None):
        self.stdout = stdout
        self.returncode = returncode
        self.stderr = stderr
        self.exc = exc
        self.calls = []

    def __call__(self, cmd, **kwargs):
        self.calls.append((cmd, kwargs))
        if self.exc is not None:
            raise self.exc
        return subprocess.CompletedProcess(cmd, self.returncode, stdout=self.stdout, stderr=self.stderr)


@pytest.fixture
def provider():
    return GitHubCLIProvider(repository="acme/platform", timeout=12)


def install(monkeypatch, fake):
    monkeypatch.setattr(gh_cli.subprocess, "run", fake)
    return fake


class TestRegistry:
    """Tests for provider registration."""

    def test_gh_registered(self):
        assert "gh" in provider_names()

    def test_get_provider_passes_kwargs(self):
        provider = get_provider(repository="acme/platform", timeout=5)
        assert isinstance(provider, GitHubCLIProvider)
        assert isinstance(provider, RunProvider)
        assert provider.repository == "acme/platform"
        assert provider.timeout == 5

    def test_unknown_provider(self):
        assert get_provider("nope") is None

    def test_non_positive_timeout_uses_default(self):
        assert GitHubCLIProvider(timeout=0).timeout == 30.0


class TestSortRuns:
    """Tests for run ordering."""

    def test_newest_first_then_higher_id(self):
        early = datetime(2024, 1, 1, tzinfo=timezone.utc)
        late = datetime(2024, 1, 2, tzinfo=timezone.utc)
        runs = [
            Run(1, created_at=early),
            Run(2, created_at=late),
            Run(3, created_at=late),
        ]
        assert [r.database_id for r in sort_runs(runs)] == [3, 2, 1]


class TestGitHubCLIProvider:
    """Tests for the gh-backed provider."""

    def test_list_runs(self, provider, monkeypatch):
        payload = [
            {"databaseId": 10, "displayTitle": "old", "status": "completed", "conclusion": "success",
             "createdAt": "2024-03-01T10:00:00Z", "headBranch": "main", "workflowName": "CI"},
            {"databaseId": 11, "displayTitle": "new", "status": "in_progress", "conclusion": "",
             "createdAt": "2024-03-02T10:00:00Z", "headBranch": "feature", "workflowName": "CI"},
        ]
        fake = install(monkeypatch, FakeRun(stdout=json.dumps(payload)))

        runs = provider.list_runs("ci.yml", limit=5)
        assert [r.display_title for r in runs] == ["new", "old"]

        cmd, kwargs = fake.calls[0]
        assert cmd[:3] == ["gh", "run", "list"]
        assert cmd[cmd.index("--limit") + 1] == "5"
        assert cmd[cmd.index("--workflow") + 1] == "ci.yml"
        assert cmd[cmd.index("--repo") + 1] == "acme/platform"
        assert kwargs["timeout"] == 12

    def test_list_runs_bad_json(self, provider, monkeypatch):
        install(monkeypatch, FakeRun(stdout="not json"))
        with pytest.raises(ProviderError):
            provider.list_runs("ci.yml")

    def test_failure_carries_stderr(self, provider, monkeypatch):
        install(monkeypatch, FakeRun(returncode=4, stderr="HTTP 404: Not Found\n"))
        with pytest.raises(ProviderCommandError, match="HTTP 404") as excinfo:
            provider.list_runs("ci.yml")
        assert excinfo.value.returncode == 4
        assert excinfo.value.stderr == "HTTP 404: Not Found"

    def test_timeout(self, provider, monkeypatch):
        install(monkeypatch, FakeRun(exc=subprocess.TimeoutExpired(["gh"], 12)))
        with pytest.raises(ProviderTimeoutError, match="timed out after 12s"):
            provider.list_runs("ci.yml")

    def test_missing_executable(self, provider, monkeypatch):
        install(monkeypatch, FakeRun(exc=FileNotFoundError("gh")))
        with pytest.raises(ProviderError, match="not found"):
            provider.list_runs("ci.yml")

    def test_unexecutable_gh(self, provider, monkeypatch):
        install(monkeypatch, FakeRun(exc=PermissionError(13, "Permission denied")))
        with pytest.raises(ProviderError, match="Permission denied"):
            provider.list_runs("ci.yml")

    def test_get_run_jobs(self, provider, monkeypatch):
        payload = {"jobs": [
            {"name": "build", "status": "completed", "conclusion": "success"},
            {"name": "deploy", "status": "queued", "conclusion": ""},
        ]}
        fake = install(monkeypatch, FakeRun(stdout=json.dumps(payload)))

        jobs = provider.get_run_jobs(42)
        assert [j.name for j in jobs] == ["build", "deploy"]
        assert all(j.run_id == 42 for j in jobs)
        assert fake.calls[0][0][:4] == ["gh", "run", "view", "42"]

    def test_open_in_browser(self, provider, monkeypatch):
        fake = install(monkeypatch, FakeRun())
        provider.open_workflow_in_browser("ci.yml")
        provider.open_run_in_browser(7)
        assert fake.calls[0][0][:5] == ["gh", "workflow", "view", "ci.yml", "-w"]
        assert fake.calls[1][0][:5] == ["gh", "run", "view", "7", "-w"]

    def test_repository_exists(self, provider, monkeypatch):
        install(monkeypatch, FakeRun(stdout='{"full_name": "acme/platform"}'))
        assert provider.repository_exists("acme/platform") is True

    def test_repository_not_found(self, provider, monkeypatch):
        install(monkeypatch, FakeRun(returncode=1, stderr="HTTP 404: Not Found"))
        assert provider.repository_exists("acme/missing") is False

    def test_repository_check_without_gh_raises(self, provider, monkeypatch):
        install(monkeypatch, FakeRun(exc=FileNotFoundError("gh")))
        with pytest.raises(ProviderError):
            provider.repository_exists("acme/platform")

    def test_repository_timeout_is_not_not_found(self, provider, monkeypatch):
        install(monkeypatch, FakeRun(exc=subprocess.TimeoutExpired(["gh"], 12)))
        with pytest.raises(ProviderTimeoutError):
            provider.repository_exists("acme/platform")

    def test_list_workflow_files(self, provider, monkeypatch):
        output = ".github/workflows/release.yml\n.github/workflows/ci.yml\n"
        fake = install(monkeypatch, FakeRun(stdout=output))
        assert provider.list_workflow_files("acme/platform") == ["ci.yml", "release.yml"]
        assert "--paginate" in fake.calls[0][0]


def test_parse_workflow_paths_ignores_other_lines():
    output = ".github/workflows/b.yml\nREADME.md\n\n.github/workflows/a.yaml\n"
    assert parse_workflow_paths(output) == ["a.yaml", "b.yml"]
