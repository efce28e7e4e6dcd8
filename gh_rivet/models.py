"""Data model for groups, configuration, runs and navigation state."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional


class ConfigSource(Enum):
    """Where a configuration document was loaded from (diagnostics only)."""

    UNKNOWN = "unknown"
    USER_CONFIG = "user config"
    PROJECT_CONFIG = "project config"
    REPO_DEFAULT = "repository default"
    ENV_VAR = "environment variable"
    CLI_FLAG = "CLI flag"

    def __str__(self) -> str:
        return self.value


def _str_list(value) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"expected a list, got {type(value).__name__}")
    return [str(v) for v in value]


@dataclass
class WorkflowDef:
    """A workflow file with an optional friendly name."""

    file: str
    name: str = ""

    @property
    def display_name(self) -> str:
        return self.name or self.file

    @classmethod
    def from_dict(cls, data: dict) -> "WorkflowDef":
        if not isinstance(data, dict):
            raise TypeError(f"workflowDefs entries must be mappings, got {type(data).__name__}")
        return cls(file=str(data.get("file") or ""), name=str(data.get("name") or ""))

    def to_dict(self) -> dict:
        data = {"file": self.file}
        if self.name:
            data["name"] = self.name
        return data


@dataclass
class Group:
    """A named node holding workflows and/or nested groups."""

    id: str
    name: str
    description: str = ""
    workflows: list[str] = field(default_factory=list)
    workflow_defs: list[WorkflowDef] = field(default_factory=list)
    workflow_patterns: list[str] = field(default_factory=list)
    jobs: list[str] = field(default_factory=list)
    groups: list["Group"] = field(default_factory=list)
    pinned_workflows: list[str] = field(default_factory=list)

    def all_workflows(self) -> list[str]:
        """Own workflow filenames: plain entries first, then defs not already listed."""
        workflows = list(dict.fromkeys(self.workflows))
        for wf in self.workflow_defs:
            if wf.file not in workflows:
                workflows.append(wf.file)
        return workflows

    def workflow_def(self, filename: str) -> Optional[WorkflowDef]:
        for wf in self.workflow_defs:
            if wf.file == filename:
                return wf
        return None

    def display_name_for(self, filename: str) -> str:
        wf = self.workflow_def(filename)
        if wf and wf.name:
            return wf.name
        return filename

    def is_pinned(self, workflow_name: str) -> bool:
        return workflow_name in self.pinned_workflows

    def toggle_pin(self, workflow_name: str) -> bool:
        """Flip pin membership and return the new state."""
        if self.is_pinned(workflow_name):
            self.pinned_workflows.remove(workflow_name)
            return False
        self.pinned_workflows.append(workflow_name)
        return True

    def count_workflows(self) -> int:
        count = len(self.all_workflows())
        for child in self.groups:
            count += child.count_workflows()
        return count

    def find_child(self, group_id: str) -> Optional["Group"]:
        for child in self.groups:
            if child.id == group_id:
                return child
        return None

    @classmethod
    def from_dict(cls, data: dict) -> "Group":
        if not isinstance(data, dict):
            raise TypeError(f"groups entries must be mappings, got {type(data).__name__}")
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            description=str(data.get("description") or ""),
            workflows=_str_list(data.get("workflows")),
            workflow_defs=[WorkflowDef.from_dict(d) for d in data.get("workflowDefs") or []],
            workflow_patterns=_str_list(data.get("workflowPatterns")),
            jobs=_str_list(data.get("jobs")),
            groups=[Group.from_dict(g) for g in data.get("groups") or []],
            pinned_workflows=_str_list(data.get("pinnedWorkflows")),
        )

    def to_dict(self) -> dict:
        data: dict = {"id": self.id, "name": self.name}
        if self.description:
            data["description"] = self.description
        if self.workflows:
            data["workflows"] = list(self.workflows)
        if self.workflow_defs:
            data["workflowDefs"] = [wf.to_dict() for wf in self.workflow_defs]
        if self.workflow_patterns:
            data["workflowPatterns"] = list(self.workflow_patterns)
        if self.jobs:
            data["jobs"] = list(self.jobs)
        if self.groups:
            data["groups"] = [g.to_dict() for g in self.groups]
        if self.pinned_workflows:
            data["pinnedWorkflows"] = list(self.pinned_workflows)
        return data


@dataclass
class Preferences:
    """User-specific settings that are not meant to be shared."""

    refresh_interval: int = 0  # seconds, 0 = disabled
    theme: str = ""
    keybindings: str = ""
    custom_settings: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "Preferences":
        if not isinstance(data, dict):
            raise TypeError(f"preferences must be a mapping, got {type(data).__name__}")
        custom = data.get("customSettings") or {}
        if not isinstance(custom, dict):
            raise TypeError("preferences.customSettings must be a mapping")
        return cls(
            refresh_interval=int(data.get("refreshInterval") or 0),
            theme=str(data.get("theme") or ""),
            keybindings=str(data.get("keybindings") or ""),
            custom_settings={str(k): str(v) for k, v in custom.items()},
        )

    def to_dict(self) -> dict:
        data: dict = {}
        if self.refresh_interval:
            data["refreshInterval"] = self.refresh_interval
        if self.theme:
            data["theme"] = self.theme
        if self.keybindings:
            data["keybindings"] = self.keybindings
        if self.custom_settings:
            data["customSettings"] = dict(self.custom_settings)
        return data


@dataclass
class PinnedWorkflow:
    """A pinned workflow together with the breadcrumb of its owning group."""

    workflow_name: str
    display_name: str
    group_path: list[str]  # group names, root first
    group_ids: list[str]  # group ids, root first

    @property
    def group_name(self) -> str:
        return self.group_path[-1] if self.group_path else ""


@dataclass
class Config:
    """Root configuration document."""

    repository: str = ""
    preferences: Optional[Preferences] = None
    groups: list[Group] = field(default_factory=list)

    # Provenance, not serialized
    source: ConfigSource = field(default=ConfigSource.UNKNOWN, compare=False)
    path: Optional[Path] = field(default=None, compare=False)

    @property
    def refresh_interval(self) -> int:
        if self.preferences is not None:
            return self.preferences.refresh_interval
        return 0

    @refresh_interval.setter
    def refresh_interval(self, value: int) -> None:
        if self.preferences is None:
            self.preferences = Preferences()
        self.preferences.refresh_interval = value

    def all_pinned_workflows(self) -> list[PinnedWorkflow]:
        """Collect pinned workflows depth-first with name breadcrumbs."""
        pinned: list[PinnedWorkflow] = []

        def collect(group: Group, names: list[str], ids: list[str]) -> None:
            names = names + [group.name]
            ids = ids + [group.id]
            for wf in group.pinned_workflows:
                pinned.append(PinnedWorkflow(
                    workflow_name=wf,
                    display_name=group.display_name_for(wf),
                    group_path=names,
                    group_ids=ids,
                ))
            for child in group.groups:
                collect(child, names, ids)

        for group in self.groups:
            collect(group, [], [])
        return pinned

    def find_root(self, group_id: str) -> Optional[Group]:
        for group in self.groups:
            if group.id == group_id:
                return group
        return None

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        if not isinstance(data, dict):
            raise TypeError(f"configuration must be a mapping, got {type(data).__name__}")
        prefs = data.get("preferences")
        return cls(
            repository=str(data.get("repository") or ""),
            preferences=Preferences.from_dict(prefs) if prefs is not None else None,
            groups=[Group.from_dict(g) for g in data.get("groups") or []],
        )

    def to_dict(self) -> dict:
        data: dict = {"repository": self.repository}
        if self.preferences is not None and self.preferences.to_dict():
            data["preferences"] = self.preferences.to_dict()
        if self.groups:
            data["groups"] = [g.to_dict() for g in self.groups]
        return data


def _parse_timestamp(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass
class Run:
    """One execution of a workflow as reported by the data source."""

    database_id: int
    display_title: str = ""
    workflow_name: str = ""
    status: str = ""
    conclusion: str = ""
    created_at: Optional[datetime] = None
    head_branch: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Run":
        return cls(
            database_id=int(data.get("databaseId") or 0),
            display_title=data.get("displayTitle") or "",
            workflow_name=data.get("workflowName") or "",
            status=data.get("status") or "",
            conclusion=data.get("conclusion") or "",
            created_at=_parse_timestamp(data.get("createdAt")),
            head_branch=data.get("headBranch") or "",
        )


@dataclass
class Job:
    """A single job within a run."""

    name: str
    status: str = ""
    conclusion: str = ""
    workflow_name: str = ""
    run_id: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "Job":
        return cls(
            name=data.get("name") or "",
            status=data.get("status") or "",
            conclusion=data.get("conclusion") or "",
        )


@dataclass
class SearchResult:
    """A group or workflow matched by global search."""

    kind: str  # "group" or "workflow"
    name: str
    description: str
    group_path: list[str]  # breadcrumb of group names
    group_id: str  # the group itself, or the owning group for workflows
    workflow_name: str = ""
    score: float = 0.0

    @property
    def is_group(self) -> bool:
        return self.kind == "group"


class ViewState(str, Enum):
    """Persisted view identifiers."""

    BROWSING_GROUPS = "browsingGroups"
    PINNED_WORKFLOWS = "viewingPinnedWorkflows"
    WORKFLOW_OUTPUT = "viewingWorkflowOutput"


@dataclass
class NavigationState:
    """Snapshot of the navigational position restored at the next launch."""

    view_state: ViewState = ViewState.BROWSING_GROUPS
    group_path: list[str] = field(default_factory=list)
    selected_workflow: str = ""
    from_pinned_view: bool = False
    list_index: int = 0
    pinned_list_index: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "NavigationState":
        if not isinstance(data, dict):
            raise TypeError(f"state must be a mapping, got {type(data).__name__}")
        return cls(
            view_state=ViewState(data.get("viewState") or ViewState.BROWSING_GROUPS.value),
            group_path=_str_list(data.get("groupPath")),
            selected_workflow=str(data.get("selectedWorkflow") or ""),
            from_pinned_view=bool(data.get("fromPinnedView", False)),
            list_index=int(data.get("listIndex") or 0),
            pinned_list_index=int(data.get("pinnedListIndex") or 0),
        )

    def to_dict(self) -> dict:
        data: dict = {"viewState": self.view_state.value}
        if self.group_path:
            data["groupPath"] = list(self.group_path)
        if self.selected_workflow:
            data["selectedWorkflow"] = self.selected_workflow
        if self.from_pinned_view:
            data["fromPinnedView"] = True
        if self.list_index:
            data["listIndex"] = self.list_index
        if self.pinned_list_index:
            data["pinnedListIndex"] = self.pinned_list_index
        return data
