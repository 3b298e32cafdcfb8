"""Display policy and hosts for revealed messages.

- select_display_mode(): raw inline / compact card / delegate to panel
- ToggleRegistry: sticky per-block show/hide raw code toggles
- CompanionPanel: reference panel controller fed by block events
- ConsoleView / play_message(): rich-based terminal host
"""

from .selector import (
    BlockKey,
    DisplayMode,
    ToggleRegistry,
    ToggleState,
    select_display_mode,
)
from .panel import CompanionPanel, PanelContent
from .console import ConsoleView, lexer_for, play_message

__all__ = [
    "BlockKey",
    "DisplayMode",
    "ToggleRegistry",
    "ToggleState",
    "select_display_mode",
    "CompanionPanel",
    "PanelContent",
    "ConsoleView",
    "lexer_for",
    "play_message",
]
