"""State and event definitions for simulated playback.

PlaybackState and the block lifecycle records are the only mutable state
of the engine. Both are owned by one PlaybackScheduler and its
BlockLifecycleDispatcher; hosts read snapshots and receive events.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

from ..text.protocol import BlockType


class PlaybackPhase(Enum):
    """Phase of a playback."""
    IDLE = "idle"           # Nothing started yet
    PLAYING = "playing"     # Ticks are being scheduled
    COMPLETE = "complete"   # Finished, skipped, superseded or torn down


@dataclass
class PlaybackState:
    """Progress of one playback.

    Attributes:
        revealed_offset: Length of the revealed prefix. Never decreases
            while playing; never exceeds the content length.
        token_index: Number of tokens revealed so far.
        is_playing: True while ticks are scheduled.
        is_complete: True once frozen.
    """
    revealed_offset: int = 0
    token_index: int = 0
    is_playing: bool = False
    is_complete: bool = False

    @property
    def phase(self) -> PlaybackPhase:
        if self.is_complete:
            return PlaybackPhase.COMPLETE
        if self.is_playing:
            return PlaybackPhase.PLAYING
        return PlaybackPhase.IDLE

    def snapshot(self) -> "PlaybackState":
        """Copy for callers outside the scheduler."""
        return replace(self)


class LifecycleState(Enum):
    """Per-block event bookkeeping. Values give the forward order."""
    UNSEEN = 0
    DETECTED = 1
    STREAMING = 2
    ENDED = 3


@dataclass
class BlockLifecycleRecord:
    """Which events already fired for one block.

    Attributes:
        block_id: Block identity (opener offset).
        block_type: Type of the block.
        language: Fence language for code blocks.
        is_first: True for the first block detected in the message.
        state: Current lifecycle state.
        last_content: Content sent with the most recent event.
    """
    block_id: int
    block_type: BlockType
    language: Optional[str] = None
    is_first: bool = False
    state: LifecycleState = LifecycleState.UNSEEN
    last_content: str = ""

    def advance(self, new_state: LifecycleState) -> None:
        """Move to new_state.

        STREAMING -> STREAMING is allowed (repeated updates); every other
        transition must go strictly forward and may not jump from UNSEEN
        straight to ENDED.

        Raises:
            ValueError: On a backward, repeated or skipping transition.
        """
        repeat_update = (
            new_state is LifecycleState.STREAMING
            and self.state is LifecycleState.STREAMING
        )
        if not repeat_update:
            if new_state.value <= self.state.value:
                raise ValueError(
                    f"block {self.block_id}: cannot go from {self.state.name} "
                    f"to {new_state.name}"
                )
            if self.state is LifecycleState.UNSEEN and new_state is not LifecycleState.DETECTED:
                raise ValueError(
                    f"block {self.block_id}: must be detected before {new_state.name}"
                )
        self.state = new_state


class BlockEventKind(Enum):
    """Kind of a block lifecycle event."""
    DETECTED = "detected"
    UPDATE = "update"
    END = "end"


@dataclass(frozen=True)
class BlockEvent:
    """One block lifecycle notification.

    Attributes:
        kind: Detected, update or end.
        block_type: Type of the block.
        content: Content so far (final content for END).
        language: Fence language for code blocks.
        is_first_block: True for the first block detected in the message.
        block_id: Block identity (opener offset).
    """
    kind: BlockEventKind
    block_type: BlockType
    content: str
    language: Optional[str]
    is_first_block: bool
    block_id: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind.value,
            "block_type": self.block_type.value,
            "content": self.content,
            "language": self.language,
            "is_first_block": self.is_first_block,
            "block_id": self.block_id,
        }


# (block_type, content, language, is_first_block)
BlockCallback = Callable[[BlockType, str, Optional[str], bool], None]

# Called with the message id once playback finishes
CompleteCallback = Callable[[str], None]


@runtime_checkable
class BlockListener(Protocol):
    """Object receiving all three block callbacks (e.g. a companion panel)."""

    def on_block_detected(self, block_type: BlockType, content: str,
                          language: Optional[str], is_first_block: bool) -> None:
        ...

    def on_block_update(self, block_type: BlockType, content: str,
                        language: Optional[str], is_first_block: bool) -> None:
        ...

    def on_block_end(self, block_type: BlockType, content: str,
                     language: Optional[str], is_first_block: bool) -> None:
        ...


__all__ = [
    "PlaybackPhase",
    "PlaybackState",
    "LifecycleState",
    "BlockLifecycleRecord",
    "BlockEventKind",
    "BlockEvent",
    "BlockCallback",
    "CompleteCallback",
    "BlockListener",
]
