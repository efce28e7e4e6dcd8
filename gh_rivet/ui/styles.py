"""CSS styles for the gh-rivet TUI."""

APP_CSS = """
Screen {
    layout: vertical;
    layers: base overlay;
}

#body {
    height: 1fr;
}

#sidebar {
    width: 32%;
    height: 100%;
    border: solid $warning;
    padding: 0 1;
}

#sidebar.focused {
    border: solid $success;
}

#sidebar.hidden {
    display: none;
}

#main {
    width: 1fr;
    height: 100%;
    border: solid $primary;
    padding: 0 1;
}

#main.focused {
    border: solid $success;
}

#status-bar, #help-bar {
    height: 1;
    background: $surface;
    padding: 0 1;
}

#overlay {
    layer: overlay;
    display: none;
    width: 70%;
    height: 70%;
    offset: 15% 15%;
    border: thick $accent;
    background: $panel;
    padding: 0 1;
}

#overlay.visible {
    display: block;
}
"""
