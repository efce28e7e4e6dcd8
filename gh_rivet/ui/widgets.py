"""UI widgets for the gh-rivet TUI."""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from rich.text import Text
from textual.widgets import Static

from ..controller import Focus, ViewMode
from ..models import Job, PinnedWorkflow, Run
from ..panels import HELP_SECTIONS, GroupEntry, ListPanel, NavEntry
from ..search import format_group_path

if TYPE_CHECKING:
    from ..controller import SessionController


def truncate(text: str, max_len: int = 100) -> str:
    """Truncate text with ellipsis."""
    if len(text) <= max_len:
        return text
    return text[:max_len - 3] + "..."


def time_ago(when: Optional[datetime], now: Optional[datetime] = None) -> str:
    if when is None:
        return "-"
    now = now or datetime.now(timezone.utc)
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    seconds = int((now - when).total_seconds())
    if seconds < 60:
        return f"{max(seconds, 0)}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def status_badge(status: str, conclusion: str) -> tuple[str, str]:
    """Icon and style for a run or job status."""
    if status and status != "completed":
        if status == "in_progress":
            return "●", "yellow"
        return "○", "dim yellow"
    if conclusion == "success":
        return "✓", "green"
    if conclusion in ("failure", "startup_failure", "timed_out"):
        return "✗", "bold red"
    if conclusion == "cancelled":
        return "⊘", "dim"
    if conclusion == "skipped":
        return "-", "dim"
    return "?", "dim"


def visible_window(count: int, cursor: int, height: int) -> range:
    """Rows to draw so that the cursor stays on screen."""
    height = max(height, 1)
    if count <= height:
        return range(count)
    start = min(max(0, cursor - height // 2), count - height)
    return range(start, start + height)


def _filter_line(panel: ListPanel) -> Optional[Text]:
    if not panel.filter.text and not panel.filter.editing:
        return None
    text = Text()
    text.append("/", style="bold yellow")
    text.append(panel.filter.text, style="yellow")
    if panel.filter.editing:
        text.append("▏", style="yellow")
    return text


class PanelWidget(Static):
    """Static region re-rendered from controller state after every event."""

    def refresh_from(self, controller: "SessionController") -> None:
        self.update(self.build(controller, self.size.width or 80, self.size.height or 20))

    def build(self, controller: "SessionController", width: int, height: int) -> Text:
        raise NotImplementedError


class PinnedSidebar(PanelWidget):
    """Pinned workflows across all groups."""

    def build(self, controller: "SessionController", width: int, height: int) -> Text:
        focused = controller.focus == Focus.SIDEBAR
        panel = controller.sidebar
        text = Text()
        text.append("📌 Pinned", style="bold cyan" if focused else "bold")
        text.append(f" ({len(panel.items)})\n", style="dim")

        filter_line = _filter_line(panel)
        if filter_line is not None:
            text.append_text(filter_line)
            text.append("\n")

        items: list[PinnedWorkflow] = panel.visible
        if not items:
            text.append("No pinned workflows\n" if not panel.items else "No matches\n", style="dim italic")
            text.append("Press p on a workflow to pin it", style="dim")
            return text

        for i in visible_window(len(items), panel.cursor, (height - 2) // 2):
            item = items[i]
            selected = focused and i == panel.cursor
            marker = "▶ " if selected else "  "
            text.append(marker, style="bold cyan")
            text.append(truncate(item.display_name, width - 4) + "\n", style="bold reverse" if selected else "white")
            text.append("  " + truncate(format_group_path(item.group_path), width - 4) + "\n", style="dim")
        return text


class MainPanel(PanelWidget):
    """Group navigation list or the run history of the selected workflow."""

    def build(self, controller: "SessionController", width: int, height: int) -> Text:
        if controller.view_mode == ViewMode.VIEWING_RUN_OUTPUT:
            if controller.showing_jobs:
                return self._build_jobs(controller, width)
            return self._build_runs(controller, width, height)
        return self._build_nav(controller, width, height)

    def _build_nav(self, controller: "SessionController", width: int, height: int) -> Text:
        focused = controller.focus == Focus.MAIN
        panel = controller.nav
        text = Text()
        crumbs = controller.breadcrumb
        title = "📁 " + (" > ".join(crumbs) if crumbs else "Groups")
        text.append(truncate(title, width) + "\n", style="bold cyan" if focused else "bold")

        filter_line = _filter_line(panel)
        if filter_line is not None:
            text.append_text(filter_line)
            text.append("\n")

        entries: list[NavEntry] = panel.visible
        if not entries:
            text.append("No matches" if panel.items else "Empty group", style="dim italic")
            return text

        for i in visible_window(len(entries), panel.cursor, height - 2):
            entry = entries[i]
            selected = focused and i == panel.cursor
            text.append("▶ " if selected else "  ", style="bold cyan")
            if isinstance(entry, GroupEntry):
                text.append("📂 ", style="bold")
                text.append(entry.name, style="bold reverse" if selected else "bold")
                text.append(f"  {entry.description}\n", style="dim")
            else:
                text.append("📌 " if entry.pinned else "📄 ")
                text.append(entry.display_name, style="reverse" if selected else "white")
                if entry.display_name != entry.workflow_name:
                    text.append(f"  {entry.workflow_name}", style="dim")
                text.append("\n")
        return text

    def _build_runs(self, controller: "SessionController", width: int, height: int) -> Text:
        text = Text()
        group = controller.selected_group
        title = controller.selected_workflow
        if group is not None:
            title = group.display_name_for(controller.selected_workflow)
        text.append(f"▶ {title}", style="bold cyan")
        if controller.loading:
            text.append("  loading…", style="yellow")
        text.append("\n")

        if controller.error:
            text.append(f"Error: {controller.error}\n", style="bold red")
            text.append("Press Ctrl+r to retry", style="dim")
            return text
        if not controller.runs:
            text.append("Loading runs..." if controller.loading else "No runs found", style="dim italic")
            return text

        runs: list[Run] = controller.runs_panel.visible
        cursor = controller.runs_panel.cursor
        for i in visible_window(len(runs), cursor, height - 2):
            run = runs[i]
            selected = i == cursor
            icon, style = status_badge(run.status, run.conclusion)
            text.append("▶ " if selected else "  ", style="bold cyan")
            text.append(f"{icon} ", style=style)
            text.append(f"{time_ago(run.created_at):>8}  ", style="cyan")
            text.append(f"{truncate(run.head_branch, 20):<20}  ", style="green")
            text.append(
                truncate(run.display_title, max(10, width - 40)) + "\n",
                style="reverse" if selected else "white",
            )
        return text

    def _build_jobs(self, controller: "SessionController", width: int) -> Text:
        text = Text()
        text.append(f"Jobs for run #{controller.jobs_run_id}\n", style="bold cyan")
        if controller.jobs_loading:
            text.append("Loading jobs...", style="dim italic")
            return text
        if controller.jobs_error:
            text.append(f"Error: {controller.jobs_error}", style="bold red")
            return text
        jobs: list[Job] = controller.jobs
        if not jobs:
            text.append("No matching jobs", style="dim italic")
            return text
        for job in jobs:
            icon, style = status_badge(job.status, job.conclusion)
            text.append(f"  {icon} ", style=style)
            text.append(truncate(job.name, width - 6) + "\n")
        return text


class StatusBar(PanelWidget):
    """Repository, refresh state and last update time."""

    def build(self, controller: "SessionController", width: int, height: int) -> Text:
        text = Text()
        text.append(f" {controller.config.repository} ", style="bold reverse")
        interval = controller.refresh_interval
        if interval > 0:
            if controller.auto_refresh_enabled:
                text.append(f"  ⟳ auto {interval}s", style="green")
            else:
                text.append("  ⟳ auto off", style="dim")
        if controller.last_updated is not None:
            text.append(f"  updated {controller.last_updated.strftime('%H:%M:%S')}", style="dim")
        return text


class HelpBar(PanelWidget):
    """Context-sensitive key hints."""

    def build(self, controller: "SessionController", width: int, height: int) -> Text:
        if controller.is_filtering:
            hints = [("enter", "apply"), ("esc", "clear"), ("↑/↓", "move")]
        elif controller.focus == Focus.SIDEBAR:
            hints = [("enter", "open"), ("p", "unpin"), ("w", "web"), ("/", "filter"), ("tab", "main")]
        elif controller.view_mode == ViewMode.VIEWING_RUN_OUTPUT:
            hints = [("enter", "jobs"), ("w", "web"), ("ctrl+r", "refresh"), ("ctrl+t", "auto"), ("esc", "back")]
        else:
            hints = [("enter", "open"), ("p", "pin"), ("w", "web"), ("/", "filter"), ("esc", "back")]
        hints += [("ctrl+f", "search"), (":", "cmd"), ("?", "help"), ("q", "quit")]

        text = Text()
        for key, label in hints:
            text.append(f" {key}", style="bold cyan")
            text.append(f" {label} ", style="dim")
        return text


class OverlayPanel(PanelWidget):
    """Help, command palette or search, whichever is active."""

    def build(self, controller: "SessionController", width: int, height: int) -> Text:
        if controller.help.active:
            return self._build_help(controller, height)
        if controller.palette.active:
            return self._build_palette(controller, width)
        if controller.search.active:
            return self._build_search(controller, width, height)
        return Text()

    def _build_help(self, controller: "SessionController", height: int) -> Text:
        lines: list[Text] = [Text(" Keyboard Shortcuts ", style="bold reverse"), Text("")]
        for title, bindings in HELP_SECTIONS:
            lines.append(Text(title, style="bold cyan"))
            for key, description in bindings:
                line = Text()
                line.append(f"  {key:<18}", style="bold")
                line.append(description, style="dim")
                lines.append(line)
            lines.append(Text(""))
        offset = controller.help.offset
        shown = lines[offset:offset + max(height, 1)]
        return Text("\n").join(shown)

    def _build_palette(self, controller: "SessionController", width: int) -> Text:
        palette = controller.palette
        text = Text()
        text.append(":", style="bold yellow")
        text.append(palette.text + "▏\n", style="yellow")
        for i, command in enumerate(palette.filtered):
            selected = i == palette.cursor
            text.append("▶ " if selected else "  ", style="bold cyan")
            text.append(f"{command.name:<12}", style="bold reverse" if selected else "bold")
            text.append(truncate(command.description, width - 16) + "\n", style="dim")
        return text

    def _build_search(self, controller: "SessionController", width: int, height: int) -> Text:
        search = controller.search
        text = Text()
        text.append("🔍 ", style="bold")
        text.append(search.text + "▏\n", style="yellow")
        if not search.text:
            text.append("Type to search groups and workflows", style="dim italic")
            return text
        if not search.results:
            text.append("No matches", style="dim italic")
            return text
        for i in visible_window(len(search.results), search.cursor, height - 1):
            result = search.results[i]
            selected = i == search.cursor
            text.append("▶ " if selected else "  ", style="bold cyan")
            text.append("📂 " if result.is_group else "📄 ")
            text.append(result.name, style="bold reverse" if selected else "bold")
            crumbs = format_group_path(result.group_path)
            text.append(f"  {truncate(crumbs, max(10, width - len(result.name) - 8))}\n", style="dim")
        return text
