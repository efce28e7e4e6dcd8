"""UI components for gh-rivet."""

from .widgets import (
    HelpBar,
    MainPanel,
    OverlayPanel,
    PinnedSidebar,
    StatusBar,
)
from .styles import APP_CSS

__all__ = [
    "HelpBar",
    "MainPanel",
    "OverlayPanel",
    "PinnedSidebar",
    "StatusBar",
    "APP_CSS",
]
