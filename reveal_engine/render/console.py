# reveal_engine/render/console.py
"""Terminal host for the reveal engine.

Plays a message through a PlaybackScheduler on the running asyncio loop
and redraws it with rich: the revealed prefix as markdown, a table of the
blocks seen so far with their display modes, and the companion panel's
active block with syntax highlighting.

Usage:
    import asyncio
    from reveal_engine.render.console import play_message

    asyncio.run(play_message(content, "msg-1"))
"""

import asyncio
from typing import Optional

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from ..config import RevealConfig
from ..playback.scheduler import PlaybackScheduler
from ..text.protocol import BlockType
from .panel import CompanionPanel

# Common language aliases mapping
LANGUAGE_ALIASES = {
    'js': 'javascript',
    'ts': 'typescript',
    'py': 'python',
    'rb': 'ruby',
    'yml': 'yaml',
    'sh': 'bash',
    'shell': 'bash',
    'zsh': 'bash',
    'md': 'markdown',
    'cs': 'csharp',
    'c++': 'cpp',
}

# Lexers for structural blocks shown in the panel
STRUCTURAL_LEXERS = {
    BlockType.MERMAID: 'text',
    BlockType.DOT: 'dot',
    BlockType.CHARTJS: 'json',
    BlockType.THREEJS: 'javascript',
    BlockType.HTML: 'html',
    BlockType.SLIDES: 'markdown',
}

CURSOR = "▌"


def lexer_for(block_type: BlockType, language: Optional[str]) -> str:
    """Pick a pygments lexer name for a block."""
    if block_type.is_structural:
        return STRUCTURAL_LEXERS[block_type]
    if not language:
        return 'text'
    return LANGUAGE_ALIASES.get(language.lower(), language.lower())


class ConsoleView:
    """Builds rich renderables from a scheduler and a companion panel."""

    def __init__(self, scheduler: PlaybackScheduler, panel: CompanionPanel,
                 theme: str = "monokai"):
        self._scheduler = scheduler
        self._panel = panel
        self._theme = theme

    def render(self) -> RenderableType:
        parts = [self._render_message()]
        blocks = self._render_blocks()
        if blocks is not None:
            parts.append(blocks)
        if self._panel.is_open and self._panel.active is not None:
            parts.append(self._render_panel())
        return Group(*parts)

    def _render_message(self) -> Panel:
        scheduler = self._scheduler
        text = scheduler.displayed_text
        if scheduler.is_typing:
            body: RenderableType = Group(Markdown(text), Text(CURSOR, style="bold"))
        elif text.strip():
            body = Markdown(text)
        else:
            body = Text("(empty)", style="dim")
        return Panel(
            body,
            title=f"message {scheduler.message_id}",
            subtitle=f"{scheduler.progress:.0%}",
            border_style="blue" if scheduler.is_typing else "dim",
        )

    def _render_blocks(self) -> Optional[Table]:
        scheduler = self._scheduler
        records = scheduler.records
        if not records:
            return None
        blocks = {b.block_id: b for b in scheduler.blocks}
        table = Table(title="blocks", show_edge=False)
        table.add_column("at", justify="right")
        table.add_column("type")
        table.add_column("language")
        table.add_column("state")
        table.add_column("display")
        for record in records:
            block = blocks.get(record.block_id)
            mode = ""
            if block is not None:
                mode = self._panel.display_mode(
                    scheduler.message_id, block, scheduler.is_typing, record.is_first,
                ).value
            table.add_row(
                str(record.block_id),
                record.block_type.value + (" *" if record.is_first else ""),
                record.language or "",
                record.state.name.lower(),
                mode,
            )
        return table

    def _render_panel(self) -> Panel:
        active = self._panel.active
        syntax = Syntax(
            active.content,
            lexer_for(active.block_type, active.language),
            theme=self._theme,
            word_wrap=True,
        )
        status = "done" if self._panel.ended else "typing"
        return Panel(syntax, title=f"panel: {active.block_type.value}",
                     subtitle=status, border_style="green")


async def play_message(
    content: str,
    message_id: str = "message",
    config: Optional[RevealConfig] = None,
    enabled: bool = True,
    panel: Optional[CompanionPanel] = None,
    console: Optional[Console] = None,
) -> PlaybackScheduler:
    """Type a message out in the terminal and wait for it to finish.

    Args:
        content: Full message text (markdown).
        message_id: Identifier shown in the title and passed to on_complete.
        config: Reveal parameters.
        enabled: False prints the message at once.
        panel: Companion panel receiving block events.
        console: Console to draw on.

    Returns:
        The (disposed) scheduler, for inspecting the final state.
    """
    loop = asyncio.get_running_loop()
    finished = loop.create_future()
    panel = panel or CompanionPanel()

    def _on_complete(_message_id: str) -> None:
        if not finished.done():
            finished.set_result(_message_id)

    scheduler = PlaybackScheduler(loop, config, on_complete=_on_complete)
    scheduler.set_listener(panel)
    view = ConsoleView(scheduler, panel)

    with Live(view.render(), console=console, refresh_per_second=20,
              vertical_overflow="visible") as live:
        scheduler.on_change = lambda _text: live.update(view.render())
        try:
            scheduler.update(content, message_id, enabled=enabled)
            if scheduler.is_typing:
                await finished
        finally:
            scheduler.dispose()
        live.update(view.render())
    return scheduler
