"""Base class for workflow run providers."""

from abc import ABC, abstractmethod

from ..models import Job, Run

DEFAULT_TIMEOUT = 30.0  # seconds
DEFAULT_RUN_LIMIT = 20


class ProviderError(Exception):
    """A call to the run data source failed."""


class ProviderTimeoutError(ProviderError):
    """A call to the run data source did not finish within its timeout."""


class ProviderCommandError(ProviderError):
    """The data source ran but reported failure (nonzero exit)."""

    def __init__(self, message: str, returncode: int = 1, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


def sort_runs(runs: list[Run]) -> list[Run]:
    """Newest first; runs created at the same instant order by higher id first."""
    return sorted(
        runs,
        key=lambda r: (r.created_at.timestamp() if r.created_at else float("-inf"), r.database_id),
        reverse=True,
    )


class RunProvider(ABC):
    """Abstract base class for run providers.

    A provider talks to one backend (the GitHub CLI, a fake in tests) and
    returns model objects. All methods may block and are called from worker
    threads.
    """

    name: str = ""  # unique identifier: "gh"
    display_name: str = ""

    def __init__(self, repository: str = "", timeout: float = DEFAULT_TIMEOUT):
        self.repository = repository
        self.timeout = timeout if timeout and timeout > 0 else DEFAULT_TIMEOUT

    def is_available(self) -> bool:
        return True

    @abstractmethod
    def list_runs(self, workflow: str, limit: int = DEFAULT_RUN_LIMIT) -> list[Run]:
        """Recent runs of one workflow, newest first."""
        ...

    @abstractmethod
    def get_run_jobs(self, run_id: int) -> list[Job]:
        ...

    @abstractmethod
    def open_workflow_in_browser(self, workflow: str) -> None:
        ...

    @abstractmethod
    def open_run_in_browser(self, run_id: int) -> None:
        ...

    @abstractmethod
    def repository_exists(self, repository: str) -> bool:
        """True if the repository is accessible, False if it is missing or private.

        Timeouts and failures to reach the data source still raise ProviderError.
        """
        ...

    @abstractmethod
    def list_workflow_files(self, repository: str) -> list[str]:
        """Workflow filenames (without the .github/workflows/ prefix), sorted."""
        ...
