"""Incremental text reveal with structural block detection.

Simulates progressive typing of an already known chat response, detects
fenced blocks (code, mermaid, dot, chartjs, threejs, html, slides) as
they are revealed, and notifies a companion panel as each block is
detected, grows and ends.

Example:
    from reveal_engine import ManualTimers, PlaybackScheduler

    timers = ManualTimers()
    scheduler = PlaybackScheduler(timers, on_block_end=print)
    scheduler.update("See: ```mermaid\\nA-->B\\n``` done.", "msg-1")
    timers.run_until_idle()
"""

from .config import RevealConfig
from .timers import ManualTimers, TimerSource
from .text import (
    Block,
    BlockType,
    Token,
    TokenKind,
    estimate_rate,
    scan_blocks,
    tokenize,
)
from .playback import (
    BlockEvent,
    BlockLifecycleDispatcher,
    LifecycleState,
    PlaybackScheduler,
    PlaybackState,
    should_animate,
)
from .render import (
    CompanionPanel,
    DisplayMode,
    ToggleRegistry,
    ToggleState,
    select_display_mode,
)

__all__ = [
    "RevealConfig",
    "ManualTimers",
    "TimerSource",
    "Block",
    "BlockType",
    "Token",
    "TokenKind",
    "estimate_rate",
    "scan_blocks",
    "tokenize",
    "BlockEvent",
    "BlockLifecycleDispatcher",
    "LifecycleState",
    "PlaybackScheduler",
    "PlaybackState",
    "should_animate",
    "CompanionPanel",
    "DisplayMode",
    "ToggleRegistry",
    "ToggleState",
    "select_display_mode",
]
