"""GitHub CLI (`gh`) run provider."""

import json
import logging
import shutil
import subprocess

from ..models import Job, Run
from . import register_provider
from .base import (
    DEFAULT_RUN_LIMIT,
    ProviderError,
    ProviderCommandError,
    ProviderTimeoutError,
    RunProvider,
    sort_runs,
)

logger = logging.getLogger(__name__)

RUN_FIELDS = "databaseId,displayTitle,workflowName,status,conclusion,createdAt,headBranch"
WORKFLOWS_PREFIX = ".github/workflows/"


def parse_workflow_paths(output: str) -> list[str]:
    """Strip the workflows directory prefix from `gh api` path output and sort."""
    workflows = []
    for line in output.splitlines():
        line = line.strip()
        if line.startswith(WORKFLOWS_PREFIX):
            workflows.append(line[len(WORKFLOWS_PREFIX):])
    return sorted(workflows)


@register_provider
class GitHubCLIProvider(RunProvider):
    """Fetches run data by shelling out to the GitHub CLI."""

    name = "gh"
    display_name = "GitHub CLI"
    executable = "gh"

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    def _with_repo(self, args: list[str]) -> list[str]:
        if self.repository:
            return args + ["--repo", self.repository]
        return args

    def _run(self, args: list[str], label: str) -> str:
        cmd = [self.executable] + args
        logger.debug(f"Running {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ProviderTimeoutError(f"{label} timed out after {self.timeout:g}s") from e
        except FileNotFoundError as e:
            raise ProviderError(f"{label} failed: {self.executable} executable not found") from e
        except OSError as e:
            raise ProviderError(f"{label} failed: {e}") from e

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise ProviderCommandError(
                f"{label} failed: {stderr or f'exit status {result.returncode}'}",
                returncode=result.returncode,
                stderr=stderr,
            )
        return result.stdout

    def list_runs(self, workflow: str, limit: int = DEFAULT_RUN_LIMIT) -> list[Run]:
        args = ["run", "list", "--limit", str(limit), "--json", RUN_FIELDS]
        if workflow:
            args += ["--workflow", workflow]
        output = self._run(self._with_repo(args), "gh run list")
        try:
            data = json.loads(output or "[]")
            runs = [Run.from_dict(item) for item in data]
        except (json.JSONDecodeError, TypeError, ValueError, AttributeError) as e:
            raise ProviderError(f"failed to parse workflow runs: {e}") from e
        return sort_runs(runs)

    def get_run_jobs(self, run_id: int) -> list[Job]:
        args = ["run", "view", str(run_id), "--json", "jobs"]
        output = self._run(self._with_repo(args), "gh run view")
        try:
            data = json.loads(output or "{}")
            jobs = [Job.from_dict(item) for item in data.get("jobs") or []]
        except (json.JSONDecodeError, TypeError, ValueError, AttributeError) as e:
            raise ProviderError(f"failed to parse job details: {e}") from e
        for job in jobs:
            job.run_id = run_id
        return jobs

    def open_workflow_in_browser(self, workflow: str) -> None:
        self._run(self._with_repo(["workflow", "view", workflow, "-w"]), "gh workflow view")

    def open_run_in_browser(self, run_id: int) -> None:
        self._run(self._with_repo(["run", "view", str(run_id), "-w"]), "gh run view")

    def repository_exists(self, repository: str) -> bool:
        try:
            output = self._run(["api", f"repos/{repository}"], "gh api")
        except ProviderCommandError as e:
            logger.debug(f"Repository {repository} not accessible: {e.stderr or e}")
            return False
        try:
            json.loads(output)
        except json.JSONDecodeError as e:
            raise ProviderError(f"failed to parse repository response: {e}") from e
        return True

    def list_workflow_files(self, repository: str) -> list[str]:
        args = ["api", "--paginate", f"repos/{repository}/actions/workflows", "--jq", ".workflows[].path"]
        return parse_workflow_paths(self._run(args, "gh api"))
