# reveal_engine/render/selector.py
"""Display policy for fenced blocks.

Decides, for each block the host view knows about, whether to show the
raw source inline, a compact card, or nothing inline because the
companion panel is rendering it. A user's show/hide raw code toggle is a
single tri-state per block, kept in a ToggleRegistry.
"""

from enum import Enum
from typing import Dict, Hashable, NamedTuple, Optional

from ..text.protocol import Block, BlockType


class DisplayMode(Enum):
    """How a block is displayed inline."""
    SHOW_RAW_INLINE = "show-raw-inline"
    SHOW_COMPACT_CARD = "show-compact-card"
    DELEGATE_TO_PANEL = "delegate-to-panel"


class ToggleState(Enum):
    """Manual raw code toggle for one block."""
    AUTO = "auto"
    FORCED_OPEN = "forced-open"       # raw code shown
    FORCED_CLOSED = "forced-closed"   # collapsed to a card


def select_display_mode(
    block_type: BlockType,
    is_streaming: bool,
    is_first_block: bool,
    panel_open: bool,
    toggle: ToggleState = ToggleState.AUTO,
) -> DisplayMode:
    """Pick the inline display mode for a block.

    Args:
        block_type: Type of the block.
        is_streaming: True while the message is still being typed.
        is_first_block: True for the first block of the message.
        panel_open: True when the companion panel is visible.
        toggle: Manual toggle for this block; anything but AUTO wins.

    Returns:
        The display mode.
    """
    if toggle is ToggleState.FORCED_OPEN:
        return DisplayMode.SHOW_RAW_INLINE
    if toggle is ToggleState.FORCED_CLOSED:
        return DisplayMode.SHOW_COMPACT_CARD

    if block_type.is_structural:
        if panel_open and is_first_block:
            return DisplayMode.DELEGATE_TO_PANEL
        return DisplayMode.SHOW_COMPACT_CARD

    return DisplayMode.SHOW_RAW_INLINE


class BlockKey(NamedTuple):
    """Identity of a block across renders."""
    message_id: Optional[str]
    block_id: int
    block_type: BlockType

    @classmethod
    def of(cls, message_id: Optional[str], block: Block) -> "BlockKey":
        return cls(message_id, block.block_id, block.block_type)


class ToggleRegistry:
    """Sticky manual toggles, keyed by block identity."""

    def __init__(self):
        self._toggles: Dict[Hashable, ToggleState] = {}

    def get(self, key: Hashable) -> ToggleState:
        return self._toggles.get(key, ToggleState.AUTO)

    def set(self, key: Hashable, state: ToggleState) -> None:
        if state is ToggleState.AUTO:
            self._toggles.pop(key, None)
        else:
            self._toggles[key] = state

    def toggle(self, key: Hashable, current_mode: DisplayMode) -> ToggleState:
        """Flip raw code visibility relative to what is displayed now.

        Returns:
            The new toggle state.
        """
        if current_mode is DisplayMode.SHOW_RAW_INLINE:
            state = ToggleState.FORCED_CLOSED
        else:
            state = ToggleState.FORCED_OPEN
        self._toggles[key] = state
        return state

    def clear(self, message_id: Optional[str] = None) -> None:
        """Drop toggles for one message, or all of them."""
        if message_id is None:
            self._toggles.clear()
            return
        for key in [k for k in self._toggles
                    if isinstance(k, BlockKey) and k.message_id == message_id]:
            del self._toggles[key]

    def __len__(self) -> int:
        return len(self._toggles)
