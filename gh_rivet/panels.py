"""Pure-state list panels and modal overlays driven by the session controller.

Nothing here imports Textual: widgets in ``gh_rivet.ui`` render these objects
and the controller mutates them.
"""

from dataclasses import dataclass, field
from typing import Callable, Generic, Optional, TypeVar, Union

from .models import PinnedWorkflow, SearchResult
from .search import SearchEngine, fuzzy_match

T = TypeVar("T")

MOVE_KEYS = {
    "j": 1,
    "down": 1,
    "k": -1,
    "up": -1,
}


@dataclass(frozen=True)
class GroupEntry:
    """Navigation row that opens a child group."""

    group_id: str
    name: str = ""
    description: str = ""


@dataclass(frozen=True)
class WorkflowEntry:
    """Navigation row that selects a workflow owned by the group at `group_ids`."""

    group_ids: tuple[str, ...]
    workflow_name: str
    pinned: bool = False
    display_name: str = ""


NavEntry = Union[GroupEntry, WorkflowEntry]


def nav_entry_label(entry: NavEntry) -> str:
    if isinstance(entry, GroupEntry):
        return f"{entry.name} {entry.description}"
    return f"{entry.display_name} {entry.workflow_name}"


def pinned_label(item: PinnedWorkflow) -> str:
    return f"{item.display_name} {item.workflow_name} {' '.join(item.group_path)}"


@dataclass
class PanelFilter:
    text: str = ""
    editing: bool = False

    @property
    def applied(self) -> bool:
        return bool(self.text) and not self.editing


class ListPanel(Generic[T]):
    """A cursor over a list of items with an optional `/` filter."""

    def __init__(self, label: Callable[[T], str] = str):
        self._label = label
        self.items: list[T] = []
        self.cursor = 0
        self.filter = PanelFilter()

    @property
    def visible(self) -> list[T]:
        if not self.filter.text:
            return list(self.items)
        return [item for item in self.items if fuzzy_match(self.filter.text, self._label(item))]

    @property
    def selected(self) -> Optional[T]:
        visible = self.visible
        if not visible:
            return None
        return visible[min(self.cursor, len(visible) - 1)]

    def set_items(self, items: list[T]) -> None:
        self.items = list(items)
        self.clamp()

    def clamp(self) -> None:
        count = len(self.visible)
        self.cursor = max(0, min(self.cursor, count - 1)) if count else 0

    def move(self, delta: int) -> None:
        self.cursor += delta
        self.clamp()

    def home(self) -> None:
        self.cursor = 0

    def end(self) -> None:
        self.cursor = max(0, len(self.visible) - 1)

    def handle_movement(self, key: str) -> bool:
        """Apply a cursor movement key. Returns False if `key` is not one."""
        if key in MOVE_KEYS:
            self.move(MOVE_KEYS[key])
        elif key in ("home", "g"):
            self.home()
        elif key in ("end", "G"):
            self.end()
        else:
            return False
        return True

    # -- filtering --

    def start_filter(self) -> None:
        self.filter.editing = True

    def clear_filter(self) -> None:
        self.filter = PanelFilter()
        self.clamp()

    def handle_filter_key(self, key: str) -> None:
        """Edit the filter text; enter applies it, escape discards it."""
        if key == "escape":
            self.clear_filter()
        elif key == "enter":
            self.filter.editing = False
            if not self.filter.text:
                self.clear_filter()
        elif key == "backspace":
            self.filter.text = self.filter.text[:-1]
            self.cursor = 0
        elif key in ("up", "ctrl+p"):
            self.move(-1)
        elif key in ("down", "ctrl+n"):
            self.move(1)
        elif len(key) == 1:
            self.filter.text += key
            self.cursor = 0
            self.clamp()


class TextOverlay:
    """Shared state for overlays with a text input and a result cursor."""

    def __init__(self):
        self.active = False
        self.text = ""
        self.cursor = 0

    def open(self) -> None:
        self.active = True
        self.text = ""
        self.cursor = 0

    def close(self) -> None:
        self.active = False
        self.text = ""
        self.cursor = 0

    def _edit(self, key: str, count: int) -> bool:
        if key in ("up", "ctrl+p"):
            self.cursor = max(0, self.cursor - 1)
        elif key in ("down", "ctrl+n"):
            self.cursor = max(0, min(self.cursor + 1, count - 1))
        elif key == "backspace":
            self.text = self.text[:-1]
            self.cursor = 0
        elif len(key) == 1:
            self.text += key
            self.cursor = 0
        else:
            return False
        return True


class SearchOverlay(TextOverlay):
    """Global fuzzy search across groups and workflows."""

    def __init__(self, engine: SearchEngine):
        super().__init__()
        self.engine = engine
        self.results: list[SearchResult] = []

    def open(self) -> None:
        super().open()
        self.results = []

    def close(self) -> None:
        super().close()
        self.results = []

    @property
    def selected(self) -> Optional[SearchResult]:
        if not self.results:
            return None
        return self.results[min(self.cursor, len(self.results) - 1)]

    def handle_key(self, key: str) -> Optional[SearchResult]:
        """Returns the committed result on enter, otherwise None."""
        if key == "escape":
            self.close()
            return None
        if key == "enter":
            result = self.selected
            if result is not None:
                self.close()
            return result
        before = self.text
        self._edit(key, len(self.results))
        if self.text != before:
            self.results = self.engine.search(self.text)
        return None


@dataclass
class Command:
    name: str
    aliases: list[str] = field(default_factory=list)
    description: str = ""

    def matches(self, text: str) -> bool:
        return fuzzy_match(text, self.name) or any(fuzzy_match(text, a) for a in self.aliases)


DEFAULT_COMMANDS = [
    Command("quit", ["q", "exit"], "Exit the application"),
    Command("refresh", ["r"], "Refresh current view"),
    Command("search", ["s", "find"], "Open global search"),
    Command("help", ["h", "?"], "Show help"),
    Command("pin", ["p"], "Pin/unpin selected workflow"),
    Command("open", ["o", "web", "browser"], "Open in browser"),
    Command("sidebar", ["1"], "Toggle sidebar"),
    Command("back", ["b"], "Go back"),
    Command("autorefresh", ["t", "auto"], "Toggle auto-refresh"),
]


class CommandPalette(TextOverlay):
    """`:` prompt that runs a named command."""

    def __init__(self, commands: Optional[list[Command]] = None):
        super().__init__()
        self.commands = list(commands if commands is not None else DEFAULT_COMMANDS)

    @property
    def filtered(self) -> list[Command]:
        if not self.text:
            return list(self.commands)
        text = self.text.lower()
        exact = [c for c in self.commands if text == c.name or text in c.aliases]
        prefix = [c for c in self.commands if c not in exact and c.name.startswith(text)]
        rest = [c for c in self.commands if c not in exact and c not in prefix and c.matches(text)]
        return exact + prefix + rest

    @property
    def selected(self) -> Optional[Command]:
        filtered = self.filtered
        if not filtered:
            return None
        return filtered[min(self.cursor, len(filtered) - 1)]

    def handle_key(self, key: str) -> Optional[Command]:
        """Returns the command to execute on enter, otherwise None."""
        if key == "escape":
            self.close()
            return None
        if key == "enter":
            command = self.selected
            self.close()
            return command
        if key == "tab":
            command = self.selected
            if command is not None:
                self.text = command.name
                self.cursor = 0
            return None
        self._edit(key, len(self.filtered))
        return None


HELP_SECTIONS = [
    ("Global", [
        ("q / Ctrl+c", "Quit"),
        ("?", "Toggle help"),
        (":", "Command palette"),
        ("Ctrl+f", "Global search"),
        ("Tab / Shift+Tab", "Switch panel"),
        ("1", "Toggle sidebar"),
        ("s", "Focus sidebar"),
    ]),
    ("Navigation", [
        ("j / ↓", "Move down"),
        ("k / ↑", "Move up"),
        ("g / G", "Top / bottom of list"),
        ("Enter / l", "Select / enter group"),
        ("Esc / h", "Go back / cancel"),
    ]),
    ("Actions", [
        ("p", "Pin/unpin workflow"),
        ("w", "Open in browser"),
        ("Enter (runs)", "Show jobs for run"),
        ("Ctrl+r", "Refresh runs"),
        ("Ctrl+t", "Toggle auto-refresh"),
    ]),
    ("Filter Mode (/)", [
        ("/", "Start filtering"),
        ("↑/↓", "Navigate while typing"),
        ("Enter", "Confirm filter"),
        ("Esc", "Clear filter"),
    ]),
    ("Command Palette (:)", [
        ("Tab", "Autocomplete command"),
        ("Enter", "Execute command"),
        ("Esc", "Close palette"),
    ]),
]


class HelpOverlay:
    def __init__(self):
        self.active = False
        self.offset = 0

    @property
    def line_count(self) -> int:
        return sum(len(bindings) + 2 for _, bindings in HELP_SECTIONS)

    def toggle(self) -> None:
        self.active = not self.active
        self.offset = 0

    def handle_key(self, key: str) -> None:
        if key in ("escape", "q", "?"):
            self.active = False
        elif key in ("j", "down"):
            self.offset = min(self.offset + 1, max(0, self.line_count - 1))
        elif key in ("k", "up"):
            self.offset = max(0, self.offset - 1)
        elif key == "g":
            self.offset = 0
        elif key == "G":
            self.offset = max(0, self.line_count - 1)
