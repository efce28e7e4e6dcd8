"""gh-rivet TUI application."""

import logging
from typing import Callable, Optional

from textual import events, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Header

from .controller import FetchJobs, FetchRuns, Focus, OpenInBrowser, Request, SessionController
from .models import Config, NavigationState
from .providers.base import ProviderError, RunProvider
from .state import StateStore
from .ui import APP_CSS, HelpBar, MainPanel, OverlayPanel, PinnedSidebar, StatusBar

logger = logging.getLogger(__name__)


class RivetApp(App):
    """Browse workflow groups and watch their runs."""

    CSS = APP_CSS
    ENABLE_COMMAND_PALETTE = False

    # Keys Textual would otherwise consume; everything else arrives via on_key
    BINDINGS = [
        Binding("ctrl+c", "dispatch_key('ctrl+c')", "Quit", show=False, priority=True),
        Binding("tab", "dispatch_key('tab')", "Switch panel", show=False, priority=True),
        Binding("shift+tab", "dispatch_key('shift+tab')", "Switch panel", show=False, priority=True),
    ]

    def __init__(
        self,
        config: Config,
        provider: RunProvider,
        state_store: Optional[StateStore] = None,
        state: Optional[NavigationState] = None,
        run_limit: Optional[int] = None,
    ):
        super().__init__()
        self.config = config
        self.provider = provider
        self.initial_state = state

        kwargs = {"run_limit": run_limit} if run_limit else {}
        self.controller = SessionController(
            config,
            submit=self._submit,
            timer_factory=self._make_timer,
            notify=self._toast,
            state_store=state_store,
            on_exit=self.exit,
            **kwargs,
        )

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Horizontal(id="body"):
            yield PinnedSidebar(id="sidebar")
            yield MainPanel(id="main")
        yield StatusBar(id="status-bar")
        yield HelpBar(id="help-bar")
        yield OverlayPanel(id="overlay")

    def on_mount(self):
        self.title = "rivet"
        self.sub_title = self.config.repository
        self.controller.start(self.initial_state)
        self.refresh_view()

    def on_resize(self, event: events.Resize) -> None:
        self.refresh_view()

    def on_key(self, event: events.Key) -> None:
        event.stop()
        event.prevent_default()
        self.controller.handle_key(event.key, event.character)
        self.refresh_view()

    def action_dispatch_key(self, key: str) -> None:
        self.controller.handle_key(key)
        self.refresh_view()

    async def action_quit(self) -> None:
        if self.controller.running:
            self.controller.quit()
        else:
            self.exit()

    def refresh_view(self) -> None:
        """Re-render every panel from controller state."""
        if not self.is_mounted:
            return
        controller = self.controller

        sidebar = self.query_one("#sidebar", PinnedSidebar)
        sidebar.set_class(not controller.show_sidebar, "hidden")
        sidebar.set_class(controller.focus == Focus.SIDEBAR, "focused")
        main = self.query_one("#main", MainPanel)
        main.set_class(controller.focus == Focus.MAIN, "focused")
        overlay = self.query_one("#overlay", OverlayPanel)
        overlay.set_class(controller.overlay_active, "visible")

        for widget in (sidebar, main, overlay):
            widget.refresh_from(controller)
        self.query_one("#status-bar", StatusBar).refresh_from(controller)
        self.query_one("#help-bar", HelpBar).refresh_from(controller)

    # -- controller collaborators --

    def _toast(self, message: str, severity: str = "information") -> None:
        self.notify(message, severity=severity, timeout=3)

    def _make_timer(self, interval: float, callback: Callable[[], None]):
        def tick():
            callback()
            self.refresh_view()

        return self.set_interval(interval, tick)

    def _submit(self, request: Request) -> None:
        if isinstance(request, FetchRuns):
            self._fetch_runs(request)
        elif isinstance(request, FetchJobs):
            self._fetch_jobs(request)
        elif isinstance(request, OpenInBrowser):
            self._open_in_browser(request)

    def _complete(self, handler: Callable, *args) -> None:
        handler(*args)
        self.refresh_view()

    @work(thread=True)
    def _fetch_runs(self, request: FetchRuns):
        """Fetch runs off the UI thread and hand the result back to the controller."""
        try:
            runs = self.provider.list_runs(request.workflow, request.limit)
        except ProviderError as e:
            logger.warning(f"Fetching runs for {request.workflow} failed: {e}")
            self.call_from_thread(self._complete, self.controller.on_runs_loaded, request.request_id, [], e)
            return
        self.call_from_thread(self._complete, self.controller.on_runs_loaded, request.request_id, runs)

    @work(thread=True)
    def _fetch_jobs(self, request: FetchJobs):
        try:
            jobs = self.provider.get_run_jobs(request.run_id)
        except ProviderError as e:
            logger.warning(f"Fetching jobs for run {request.run_id} failed: {e}")
            self.call_from_thread(self._complete, self.controller.on_jobs_loaded, request.request_id, [], e)
            return
        self.call_from_thread(self._complete, self.controller.on_jobs_loaded, request.request_id, jobs)

    @work(thread=True)
    def _open_in_browser(self, request: OpenInBrowser):
        try:
            if request.run_id:
                self.provider.open_run_in_browser(request.run_id)
            else:
                self.provider.open_workflow_in_browser(request.workflow)
        except ProviderError as e:
            self.call_from_thread(self._complete, self.controller.on_browser_opened, e)
