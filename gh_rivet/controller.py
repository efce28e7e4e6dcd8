"""Session controller: the state machine behind the TUI.

The controller owns view mode, focus, the navigation path, overlays, filters
and the refresh scheduler. It never blocks: fetches are handed to a
``submit`` callable as request objects and their results come back through
``on_runs_loaded``/``on_jobs_loaded``/``on_browser_opened``. Every handler runs
on the UI thread, one event at a time.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Union

from .config import ConfigError, save_config
from .models import Config, Group, Job, NavigationState, Run, SearchResult, ViewState
from .panels import (
    CommandPalette,
    GroupEntry,
    HelpOverlay,
    ListPanel,
    NavEntry,
    SearchOverlay,
    WorkflowEntry,
    nav_entry_label,
    pinned_label,
)
from .providers.base import DEFAULT_RUN_LIMIT
from .refresh import RefreshScheduler, TimerFactory
from .search import SearchEngine
from .state import StateError, StateStore, extract_group_ids, resolve_group_path

logger = logging.getLogger(__name__)


class ViewMode(Enum):
    BROWSING_GROUPS = "browsing groups"
    VIEWING_PINNED = "viewing pinned"
    VIEWING_RUN_OUTPUT = "viewing run output"


class Focus(Enum):
    SIDEBAR = "sidebar"
    MAIN = "main"


@dataclass(frozen=True)
class FetchRuns:
    request_id: int
    workflow: str
    limit: int = DEFAULT_RUN_LIMIT


@dataclass(frozen=True)
class FetchJobs:
    request_id: int
    run_id: int


@dataclass(frozen=True)
class OpenInBrowser:
    workflow: str = ""
    run_id: int = 0


Request = Union[FetchRuns, FetchJobs, OpenInBrowser]

_KEY_ALIASES = {
    "question_mark": "?",
    "colon": ":",
    "slash": "/",
    "space": " ",
    "esc": "escape",
}

BACK_KEYS = ("escape", "backspace", "h", "left")


def normalize_key(key: str, character: Optional[str] = None) -> str:
    """Map a terminal key event to the name used by the handlers.

    Printable characters are used as-is ("?", ":", "G"); everything else keeps
    its key name ("enter", "escape", "ctrl+f", "shift+tab").
    """
    if character and len(character) == 1 and character.isprintable():
        return character
    return _KEY_ALIASES.get(key, key)


def filter_jobs(jobs: list[Job], patterns: list[str]) -> list[Job]:
    """Keep jobs whose name matches any pattern; no patterns keeps everything."""
    if not patterns:
        return list(jobs)
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            logger.warning(f"Skipping invalid job pattern {pattern!r}: {e}")
    return [job for job in jobs if any(p.search(job.name) for p in compiled)]


def _noop_notify(message: str, severity: str = "information") -> None:
    logger.info(message)


class SessionController:
    """Interprets key events and async completions for one browsing session."""

    def __init__(
        self,
        config: Config,
        submit: Callable[[Request], None],
        timer_factory: TimerFactory,
        notify: Callable[[str, str], None] = _noop_notify,
        state_store: Optional[StateStore] = None,
        save: Callable[[Config], object] = save_config,
        on_exit: Optional[Callable[[], None]] = None,
        run_limit: int = DEFAULT_RUN_LIMIT,
    ):
        self.config = config
        self._submit = submit
        self._notify = notify
        self.state_store = state_store
        self._save = save
        self._on_exit = on_exit
        self.run_limit = run_limit

        self.view_mode = ViewMode.BROWSING_GROUPS
        self.focus = Focus.MAIN
        self.group_path: list[str] = []
        self.selected_workflow = ""
        self.selected_group_ids: list[str] = []
        self.from_pinned_view = False
        self.show_sidebar = True
        self.running = True

        self.loading = False
        self.error: Optional[str] = None
        self.runs: list[Run] = []
        self.last_updated: Optional[datetime] = None

        self.showing_jobs = False
        self.jobs_loading = False
        self.jobs_error: Optional[str] = None
        self.jobs: list[Job] = []
        self.jobs_run_id = 0

        self.nav: ListPanel[NavEntry] = ListPanel(nav_entry_label)
        self.sidebar = ListPanel(pinned_label)
        self.runs_panel: ListPanel[Run] = ListPanel(lambda r: r.display_title)

        self.search = SearchOverlay(SearchEngine(config))
        self.palette = CommandPalette()
        self.help = HelpOverlay()

        self.auto_refresh_enabled = True
        self.scheduler = RefreshScheduler(timer_factory, self.on_tick)
        self.scheduler.interval = config.refresh_interval

        self._request_seq = 0
        self._runs_request: Optional[int] = None
        self._jobs_request: Optional[int] = None

    # -- lifecycle --

    def start(self, state: Optional[NavigationState] = None) -> None:
        """Build the lists and restore a saved snapshot, if any."""
        self.rebuild_nav()
        self.rebuild_pinned()
        if state is not None:
            self.restore(state)

    def quit(self) -> None:
        if not self.running:
            return
        self.scheduler.stop()
        self.persist()
        self.running = False
        if self._on_exit is not None:
            self._on_exit()

    # -- derived state --

    @property
    def refresh_interval(self) -> int:
        return self.config.refresh_interval

    @property
    def current_groups(self) -> list[Group]:
        """The navigation path resolved against the current catalog.

        Ids that no longer resolve are dropped from the path.
        """
        groups, complete = resolve_group_path(self.config, self.group_path)
        if not complete:
            logger.debug(f"Navigation path {self.group_path} no longer resolves, truncating")
            self.group_path = extract_group_ids(groups)
        return groups

    @property
    def current_group(self) -> Optional[Group]:
        groups = self.current_groups
        return groups[-1] if groups else None

    @property
    def breadcrumb(self) -> list[str]:
        return [g.name for g in self.current_groups]

    @property
    def selected_group(self) -> Optional[Group]:
        return self._group_at(self.selected_group_ids)

    @property
    def focused_panel(self) -> Optional[ListPanel]:
        if self.focus == Focus.SIDEBAR:
            return self.sidebar
        if self.view_mode == ViewMode.VIEWING_RUN_OUTPUT:
            return self.runs_panel
        return self.nav

    @property
    def is_filtering(self) -> bool:
        panel = self.focused_panel
        return panel is not None and panel.filter.editing

    @property
    def overlay_active(self) -> bool:
        return self.help.active or self.palette.active or self.search.active

    def _group_at(self, group_ids: list[str]) -> Optional[Group]:
        groups, complete = resolve_group_path(self.config, list(group_ids))
        if not complete or not groups:
            return None
        return groups[-1]

    # -- list building --

    def rebuild_nav(self) -> None:
        """Rebuild the main list: pinned workflows, then the rest, then subgroups."""
        groups = self.current_groups
        entries: list[NavEntry] = []
        if not groups:
            for group in self.config.groups:
                entries.append(GroupEntry(group.id, group.name, f"{group.count_workflows()} workflows"))
        else:
            current = groups[-1]
            ids = tuple(self.group_path)
            workflows = current.all_workflows()
            pinned = [wf for wf in workflows if current.is_pinned(wf)]
            unpinned = [wf for wf in workflows if not current.is_pinned(wf)]
            for wf in pinned:
                entries.append(WorkflowEntry(ids, wf, True, current.display_name_for(wf)))
            for wf in unpinned:
                entries.append(WorkflowEntry(ids, wf, False, current.display_name_for(wf)))
            for child in current.groups:
                entries.append(GroupEntry(child.id, child.name, f"{child.count_workflows()} workflows"))
        self.nav.set_items(entries)

    def rebuild_pinned(self) -> None:
        self.sidebar.set_items(self.config.all_pinned_workflows())
        if not self.sidebar.items and self.focus == Focus.SIDEBAR and not self.sidebar.filter.text:
            self.set_focus(Focus.MAIN)

    # -- input dispatch --

    def handle_key(self, key: str, character: Optional[str] = None) -> None:
        if not self.running:
            return
        name = normalize_key(key, character)

        if self.help.active:
            self.help.handle_key(name)
            return
        if self.palette.active:
            command = self.palette.handle_key(name)
            if command is not None:
                self.execute_command(command.name)
            return
        if self.search.active:
            result = self.search.handle_key(name)
            if result is not None:
                self.navigate_to_search_result(result)
            return

        if self.is_filtering:
            self.focused_panel.handle_filter_key(name)
            return

        if self._handle_global_key(name):
            return

        if self.focus == Focus.SIDEBAR:
            self._handle_sidebar_key(name)
        elif self.view_mode == ViewMode.VIEWING_RUN_OUTPUT:
            self._handle_runs_key(name)
        else:
            self._handle_groups_key(name)

    def _handle_global_key(self, name: str) -> bool:
        if name in ("q", "ctrl+c"):
            self.quit()
        elif name == "?":
            self.help.toggle()
        elif name == ":":
            self.palette.open()
        elif name == "1":
            self.toggle_sidebar()
        elif name in ("tab", "shift+tab"):
            self.cycle_focus()
        elif name == "s":
            if self.show_sidebar:
                self.set_focus(Focus.SIDEBAR)
        elif name == "ctrl+f":
            self.search.open()
        elif name == "ctrl+r":
            self.refresh()
        elif name == "ctrl+t":
            self.toggle_auto_refresh()
        else:
            return False
        return True

    def _handle_sidebar_key(self, name: str) -> None:
        item = self.sidebar.selected
        if name == "enter":
            if item is not None:
                self.select_workflow(item.workflow_name, item.group_ids, from_pinned=True)
        elif name == "p":
            self.toggle_pin()
        elif name == "w":
            self.open_in_browser()
        elif name == "/":
            self.sidebar.start_filter()
        elif name in ("l", "right"):
            self.set_focus(Focus.MAIN)
        elif name in BACK_KEYS:
            self.back()
        else:
            self.sidebar.handle_movement(name)

    def _handle_groups_key(self, name: str) -> None:
        if name in ("enter", "l", "right"):
            entry = self.nav.selected
            if isinstance(entry, GroupEntry):
                self.enter_group(entry.group_id)
            elif isinstance(entry, WorkflowEntry):
                self.select_workflow(entry.workflow_name, list(entry.group_ids), from_pinned=False)
        elif name in BACK_KEYS:
            self.back()
        elif name == "p":
            self.toggle_pin()
        elif name == "w":
            self.open_in_browser()
        elif name == "/":
            self.nav.start_filter()
        else:
            self.nav.handle_movement(name)

    def _handle_runs_key(self, name: str) -> None:
        if name == "enter":
            if not self.showing_jobs:
                self.load_jobs()
        elif name in BACK_KEYS:
            if self.showing_jobs:
                self.close_jobs()
            else:
                self.back()
        elif name == "w":
            self.open_in_browser()
        elif name == "p":
            self.toggle_pin()
        else:
            self.runs_panel.handle_movement(name)

    def execute_command(self, name: str) -> None:
        logger.debug(f"Executing command {name!r}")
        if name == "quit":
            self.quit()
        elif name == "refresh":
            self.refresh()
        elif name == "search":
            self.search.open()
        elif name == "help":
            self.help.toggle()
        elif name == "pin":
            self.toggle_pin()
        elif name == "open":
            self.open_in_browser()
        elif name == "sidebar":
            self.toggle_sidebar()
        elif name == "back":
            self.back()
        elif name == "autorefresh":
            self.toggle_auto_refresh()
        else:
            logger.warning(f"Unknown command {name!r}")

    # -- focus --

    def set_focus(self, focus: Focus) -> None:
        if focus == Focus.SIDEBAR and not self.show_sidebar:
            return
        self.focus = focus
        if self.view_mode == ViewMode.VIEWING_RUN_OUTPUT:
            return
        mode = ViewMode.VIEWING_PINNED if focus == Focus.SIDEBAR else ViewMode.BROWSING_GROUPS
        if mode != self.view_mode:
            self.view_mode = mode
            self.persist()

    def cycle_focus(self) -> None:
        if self.show_sidebar:
            self.set_focus(Focus.MAIN if self.focus == Focus.SIDEBAR else Focus.SIDEBAR)

    def toggle_sidebar(self) -> None:
        self.show_sidebar = not self.show_sidebar
        if not self.show_sidebar and self.focus == Focus.SIDEBAR:
            self.set_focus(Focus.MAIN)

    # -- navigation --

    def enter_group(self, group_id: str) -> bool:
        if self.view_mode != ViewMode.BROWSING_GROUPS or self.focus != Focus.MAIN:
            return False
        current = self.current_group
        child = current.find_child(group_id) if current else self.config.find_root(group_id)
        if child is None:
            return False
        self.group_path.append(child.id)
        self.nav.clear_filter()
        self.nav.cursor = 0
        self.rebuild_nav()
        self.persist()
        return True

    def back(self) -> None:
        panel = self.focused_panel
        if panel is not None and panel.filter.text:
            panel.clear_filter()
            return

        if self.view_mode == ViewMode.VIEWING_RUN_OUTPUT:
            self._leave_run_output()
        elif self.focus == Focus.SIDEBAR:
            self.set_focus(Focus.MAIN)
        elif self.group_path:
            popped = self.group_path.pop()
            self.rebuild_nav()
            for index, entry in enumerate(self.nav.visible):
                if isinstance(entry, GroupEntry) and entry.group_id == popped:
                    self.nav.cursor = index
                    break
        self.persist()

    def _clear_selection(self) -> None:
        self.scheduler.stop()
        self._runs_request = None
        self._jobs_request = None
        self.loading = False
        self.error = None
        self.selected_workflow = ""
        self.selected_group_ids = []
        self.runs = []
        self.runs_panel.set_items([])
        self.close_jobs()

    def _leave_run_output(self) -> None:
        to_pinned = self.from_pinned_view and bool(self.sidebar.items)
        self._clear_selection()
        self.from_pinned_view = False
        if to_pinned:
            self.show_sidebar = True
            self.view_mode = ViewMode.VIEWING_PINNED
            self.focus = Focus.SIDEBAR
        else:
            self.view_mode = ViewMode.BROWSING_GROUPS
            self.focus = Focus.MAIN

    def select_workflow(
        self,
        workflow: str,
        group_ids: list[str],
        from_pinned: bool = False,
        persist: bool = True,
    ) -> None:
        """Show the run history of `workflow`, owned by the group at `group_ids`."""
        self.close_jobs()
        self.view_mode = ViewMode.VIEWING_RUN_OUTPUT
        self.focus = Focus.MAIN
        self.selected_workflow = workflow
        self.selected_group_ids = list(group_ids)
        self.from_pinned_view = from_pinned
        self.error = None
        self.runs = []
        self.runs_panel.set_items([])
        self.runs_panel.cursor = 0

        self._issue_fetch()
        if self.auto_refresh_enabled:
            self.scheduler.start(self.refresh_interval)
        if persist:
            self.persist()

    def navigate_to_search_result(self, result: SearchResult) -> None:
        """Re-resolve the result's breadcrumb by name and go there."""
        ids, complete = self._resolve_names(result.group_path)

        if not result.is_group:
            self.group_path = ids
            self.rebuild_nav()
            self.select_workflow(result.workflow_name, ids, from_pinned=False)
            return

        if self.view_mode == ViewMode.VIEWING_RUN_OUTPUT:
            self._clear_selection()
            self.from_pinned_view = False
        self.view_mode = ViewMode.BROWSING_GROUPS
        self.focus = Focus.MAIN

        if complete:
            parent = self._group_at(ids)
            siblings = parent.groups if parent is not None else self.config.groups
            for group in siblings:
                if group.name == result.name:
                    ids = ids + [group.id]
                    break
        self.group_path = ids
        self.nav.clear_filter()
        self.nav.cursor = 0
        self.rebuild_nav()
        self.persist()

    def _resolve_names(self, names: list[str]) -> tuple[list[str], bool]:
        ids: list[str] = []
        siblings = self.config.groups
        for name in names:
            match = next((g for g in siblings if g.name == name), None)
            if match is None:
                return ids, False
            ids.append(match.id)
            siblings = match.groups
        return ids, True

    # -- pins and browser --

    def _pin_target(self) -> Optional[tuple[list[str], str]]:
        if self.focus == Focus.SIDEBAR:
            item = self.sidebar.selected
            if item is not None:
                return list(item.group_ids), item.workflow_name
        elif self.view_mode == ViewMode.VIEWING_RUN_OUTPUT:
            if self.selected_workflow:
                return list(self.selected_group_ids), self.selected_workflow
        else:
            entry = self.nav.selected
            if isinstance(entry, WorkflowEntry):
                return list(entry.group_ids), entry.workflow_name
        return None

    def toggle_pin(self) -> Optional[bool]:
        """Flip the pin of the workflow under the cursor and save the config.

        A failed save is reported but the in-memory change is kept.
        Returns the new pin state, or None if nothing was pinnable.
        """
        target = self._pin_target()
        if target is None:
            return None
        group_ids, workflow = target
        group = self._group_at(group_ids)
        if group is None:
            return None

        pinned = group.toggle_pin(workflow)
        try:
            self._save(self.config)
        except ConfigError as e:
            logger.warning(f"Failed to save config after pin toggle: {e}")
            self._notify(f"Failed to save config: {e}", "error")
        else:
            self._notify("Pinned workflow" if pinned else "Unpinned workflow", "information")

        self.rebuild_nav()
        self.rebuild_pinned()
        self.persist()
        return pinned

    def open_in_browser(self) -> None:
        request: Optional[OpenInBrowser] = None
        if self.focus == Focus.SIDEBAR:
            item = self.sidebar.selected
            if item is not None:
                request = OpenInBrowser(workflow=item.workflow_name)
        elif self.view_mode == ViewMode.VIEWING_RUN_OUTPUT:
            run = self.runs_panel.selected
            if self.showing_jobs and self.jobs_run_id:
                request = OpenInBrowser(run_id=self.jobs_run_id)
            elif run is not None:
                request = OpenInBrowser(run_id=run.database_id)
            elif self.selected_workflow:
                request = OpenInBrowser(workflow=self.selected_workflow)
        else:
            entry = self.nav.selected
            if isinstance(entry, WorkflowEntry):
                request = OpenInBrowser(workflow=entry.workflow_name)

        if request is None:
            return
        self._submit(request)
        self._notify("Opening in browser...", "information")

    def on_browser_opened(self, error: Optional[Exception] = None) -> None:
        if error is not None:
            logger.warning(f"Failed to open browser: {error}")
            self._notify(f"Failed to open browser: {error}", "error")

    # -- fetching --

    def _next_request_id(self) -> int:
        self._request_seq += 1
        return self._request_seq

    def _issue_fetch(self) -> None:
        request_id = self._next_request_id()
        self._runs_request = request_id
        self.loading = True
        self._submit(FetchRuns(request_id, self.selected_workflow, self.run_limit))

    def refresh(self) -> bool:
        """Manual refresh; also restarts the auto-refresh timer."""
        if not self.selected_workflow or self.loading:
            return False
        self._issue_fetch()
        if self.auto_refresh_enabled and self.refresh_interval > 0:
            self.scheduler.start(self.refresh_interval)
        return True

    def on_tick(self) -> None:
        if not self.selected_workflow or self.loading:
            return
        self._issue_fetch()
        self.scheduler.restart()

    def toggle_auto_refresh(self) -> None:
        if self.refresh_interval <= 0:
            self._notify("Auto-refresh is off: set preferences.refreshInterval", "warning")
            return
        self.auto_refresh_enabled = not self.auto_refresh_enabled
        self.scheduler.enabled = self.auto_refresh_enabled
        if self.auto_refresh_enabled and self.selected_workflow:
            self.scheduler.start(self.refresh_interval)
        elif not self.auto_refresh_enabled:
            self.scheduler.stop()
        state = "on" if self.auto_refresh_enabled else "off"
        self._notify(f"Auto-refresh {state}", "information")

    def on_runs_loaded(self, request_id: int, runs: list[Run], error: Optional[Exception] = None) -> bool:
        """Apply a completed fetch. Returns False if the result was stale."""
        if request_id != self._runs_request:
            logger.debug(f"Discarding stale runs result {request_id}")
            return False
        self._runs_request = None
        self.loading = False
        if error is not None:
            self.error = str(error)
            self._notify(f"Failed to load runs: {error}", "error")
            return True
        self.error = None
        self.runs = list(runs)
        self.runs_panel.set_items(self.runs)
        self.last_updated = datetime.now()
        return True

    def load_jobs(self) -> None:
        run = self.runs_panel.selected
        if run is None:
            return
        request_id = self._next_request_id()
        self._jobs_request = request_id
        self.showing_jobs = True
        self.jobs_loading = True
        self.jobs_error = None
        self.jobs = []
        self.jobs_run_id = run.database_id
        self._submit(FetchJobs(request_id, run.database_id))

    def close_jobs(self) -> None:
        self._jobs_request = None
        self.showing_jobs = False
        self.jobs_loading = False
        self.jobs_error = None
        self.jobs = []
        self.jobs_run_id = 0

    def on_jobs_loaded(self, request_id: int, jobs: list[Job], error: Optional[Exception] = None) -> bool:
        if request_id != self._jobs_request:
            logger.debug(f"Discarding stale jobs result {request_id}")
            return False
        self._jobs_request = None
        self.jobs_loading = False
        if error is not None:
            self.jobs_error = str(error)
            self._notify(f"Failed to load jobs: {error}", "error")
            return True
        group = self.selected_group
        patterns = group.jobs if group is not None else []
        self.jobs = filter_jobs(jobs, patterns)
        for job in self.jobs:
            job.workflow_name = self.selected_workflow
        return True

    # -- persistence --

    def snapshot(self) -> NavigationState:
        state = NavigationState(
            group_path=list(self.group_path),
            list_index=self.nav.cursor,
            pinned_list_index=self.sidebar.cursor,
        )
        if self.view_mode == ViewMode.VIEWING_RUN_OUTPUT and self.selected_workflow:
            state.view_state = ViewState.WORKFLOW_OUTPUT
            state.selected_workflow = self.selected_workflow
            state.from_pinned_view = self.from_pinned_view
        elif self.view_mode == ViewMode.VIEWING_PINNED:
            state.view_state = ViewState.PINNED_WORKFLOWS
        else:
            state.view_state = ViewState.BROWSING_GROUPS
        return state

    def persist(self) -> None:
        if self.state_store is None:
            return
        try:
            self.state_store.save(self.snapshot())
        except StateError as e:
            logger.warning(f"Failed to save navigation state: {e}")
            self._notify(f"Failed to save state: {e}", "error")

    def restore(self, state: NavigationState) -> None:
        if state.group_path:
            _, complete = resolve_group_path(self.config, state.group_path)
            if complete:
                self.group_path = list(state.group_path)
            else:
                logger.info(f"Saved path {state.group_path} no longer exists, starting at the root")
        self.rebuild_nav()
        self.rebuild_pinned()

        self.nav.cursor = state.list_index
        self.nav.clamp()
        self.sidebar.cursor = state.pinned_list_index
        self.sidebar.clamp()

        if state.view_state == ViewState.PINNED_WORKFLOWS:
            if self.sidebar.items:
                self.show_sidebar = True
                self.focus = Focus.SIDEBAR
                self.view_mode = ViewMode.VIEWING_PINNED
        elif state.view_state == ViewState.WORKFLOW_OUTPUT and state.selected_workflow:
            owner = self._find_owner(state.selected_workflow)
            self.select_workflow(
                state.selected_workflow,
                owner,
                from_pinned=state.from_pinned_view,
                persist=False,
            )

    def _find_owner(self, workflow: str) -> list[str]:
        """Id path of the group most likely to own `workflow`."""
        current = self.current_group
        if current is not None and workflow in current.all_workflows():
            return list(self.group_path)
        for pinned in self.config.all_pinned_workflows():
            if pinned.workflow_name == workflow:
                return list(pinned.group_ids)

        def walk(groups: list[Group], ids: list[str]) -> Optional[list[str]]:
            for group in groups:
                path = ids + [group.id]
                if workflow in group.all_workflows():
                    return path
                found = walk(group.groups, path)
                if found is not None:
                    return found
            return None

        return walk(self.config.groups, []) or []
