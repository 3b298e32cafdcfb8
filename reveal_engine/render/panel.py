# reveal_engine/render/panel.py
"""Companion panel controller.

Consumes block lifecycle callbacks and keeps track of what the side panel
shows. With auto typing on, the first block of a message opens the panel
and its content follows the block as it is typed. Other blocks only reach
the panel when the user opens them with view().
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from ..text.protocol import Block, BlockType
from .selector import BlockKey, DisplayMode, ToggleRegistry, ToggleState, select_display_mode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PanelContent:
    """What the panel is rendering."""
    block_type: BlockType
    content: str
    language: Optional[str] = None


class CompanionPanel:
    """Reference panel controller implementing the BlockListener protocol."""

    def __init__(self, auto_type: bool = True, is_open: bool = False):
        self.auto_type = auto_type
        self.is_open = is_open
        self.active: Optional[PanelContent] = None
        self.toggles = ToggleRegistry()
        self.revision = 0  # bumped whenever active content changes
        self.ended = False
        self._contents: Dict[Optional[str], str] = {}

    # ==================== BlockListener ====================

    def on_block_detected(self, block_type: BlockType, content: str,
                          language: Optional[str], is_first_block: bool) -> None:
        if self.auto_type and is_first_block:
            self.ended = False
            self._show(block_type, content, language)

    def on_block_update(self, block_type: BlockType, content: str,
                        language: Optional[str], is_first_block: bool) -> None:
        if self.auto_type and is_first_block:
            self._show(block_type, content, language)

    def on_block_end(self, block_type: BlockType, content: str,
                     language: Optional[str], is_first_block: bool) -> None:
        if self.auto_type and is_first_block:
            self._show(block_type, content, language)
            self.ended = True

    def on_restart(self, message_id: Optional[str], content: str) -> None:
        """Drop a message's toggles once its content is replaced.

        Block identity is the opener offset, so a new block at the same
        offset must not inherit the old one's toggle.
        """
        previous = self._contents.get(message_id)
        if previous is not None and previous != content:
            self.reset(message_id)
        self._contents[message_id] = content

    # ==================== User actions ====================

    def view(self, block_type: BlockType, content: str, language: Optional[str] = None) -> None:
        """Open the panel on a block chosen by the user."""
        self._show(block_type, content, language)
        self.ended = True

    def close(self) -> None:
        self.is_open = False

    def display_mode(self, message_id: Optional[str], block: Block,
                     is_streaming: bool, is_first_block: bool) -> DisplayMode:
        """Inline display mode for a block, honoring its manual toggle."""
        return select_display_mode(
            block.block_type,
            is_streaming,
            is_first_block,
            self.is_open,
            self.toggles.get(BlockKey.of(message_id, block)),
        )

    def toggle_raw(self, message_id: Optional[str], block: Block,
                   is_streaming: bool, is_first_block: bool) -> ToggleState:
        """Show/hide raw code for a block; sticky for the block's lifetime."""
        mode = self.display_mode(message_id, block, is_streaming, is_first_block)
        return self.toggles.toggle(BlockKey.of(message_id, block), mode)

    def reset(self, message_id: Optional[str]) -> None:
        """Forget toggles after a message's content changed."""
        self.toggles.clear(message_id)

    def _show(self, block_type: BlockType, content: str, language: Optional[str]) -> None:
        self.is_open = True
        new = PanelContent(block_type, content, language)
        if new == self.active:
            return
        self.active = new
        self.revision += 1
        logger.debug("Panel showing %s block (%d chars)", block_type.value, len(content))
