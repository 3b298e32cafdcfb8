# reveal_engine/playback/dispatcher.py
"""Block lifecycle dispatcher.

On every tick the dispatcher rescans the revealed prefix and diffs the
visible blocks against its lifecycle records, firing each transition
exactly once:

    UNSEEN -> DETECTED     on_block_detected(type, content_so_far, language, is_first)
    -> STREAMING           on_block_update(type, partial_content, language, is_first)
    -> ENDED               on_block_end(type, final_content, language, is_first)

Blocks are visited in ascending start order. A block that opens and
closes within one tick still gets DETECTED before END.
"""

import logging
from typing import Dict, FrozenSet, List, Optional

from ..text.protocol import BlockType
from ..text.scanner import scan_blocks
from ..trace import trace as _trace_write
from .protocol import (
    BlockCallback,
    BlockEvent,
    BlockEventKind,
    BlockLifecycleRecord,
    BlockListener,
    LifecycleState,
)

logger = logging.getLogger(__name__)


def _trace(msg: str, include_traceback: bool = False) -> None:
    _trace_write("BlockDispatcher", msg, include_traceback=include_traceback)


class BlockLifecycleDispatcher:
    """Fires block events as a revealed prefix grows.

    Thread safety: none. The dispatcher is driven by a single scheduler on
    a single thread.
    """

    def __init__(
        self,
        block_types: Optional[FrozenSet[BlockType]] = None,
        on_block_detected: Optional[BlockCallback] = None,
        on_block_update: Optional[BlockCallback] = None,
        on_block_end: Optional[BlockCallback] = None,
    ):
        self._block_types = block_types
        self.on_block_detected = on_block_detected
        self.on_block_update = on_block_update
        self.on_block_end = on_block_end
        self._records: Dict[int, BlockLifecycleRecord] = {}
        self._first_block_id: Optional[int] = None

    def set_listener(self, listener: BlockListener) -> None:
        """Route all three callbacks to one listener object."""
        self.on_block_detected = listener.on_block_detected
        self.on_block_update = listener.on_block_update
        self.on_block_end = listener.on_block_end

    @property
    def records(self) -> List[BlockLifecycleRecord]:
        """Lifecycle records ordered by block start."""
        return [self._records[k] for k in sorted(self._records)]

    def get_record(self, block_id: int) -> Optional[BlockLifecycleRecord]:
        return self._records.get(block_id)

    @property
    def first_block_id(self) -> Optional[int]:
        return self._first_block_id

    def reset(self) -> None:
        """Forget every record; the next block detected is first again."""
        self._records.clear()
        self._first_block_id = None

    def dispatch(self, content: str, revealed: int) -> List[BlockEvent]:
        """Diff the blocks visible at ``revealed`` against the records.

        Args:
            content: Full message text.
            revealed: Length of the revealed prefix.

        Returns:
            Events fired by this call, in firing order.
        """
        events: List[BlockEvent] = []
        for block in scan_blocks(content, revealed, self._block_types).blocks:
            record = self._records.get(block.block_id)
            if record is None:
                is_first = self._first_block_id is None
                if is_first:
                    self._first_block_id = block.block_id
                record = BlockLifecycleRecord(
                    block.block_id, block.block_type, block.language, is_first,
                )
                self._records[block.block_id] = record

            if record.state is LifecycleState.ENDED:
                continue

            if record.state is LifecycleState.UNSEEN:
                record.advance(LifecycleState.DETECTED)
                events.append(self._emit(BlockEventKind.DETECTED, record, block.content))
            elif not block.closed and len(block.content) > len(record.last_content):
                record.advance(LifecycleState.STREAMING)
                events.append(self._emit(BlockEventKind.UPDATE, record, block.content))

            if block.closed:
                record.advance(LifecycleState.ENDED)
                events.append(self._emit(BlockEventKind.END, record, block.content))
        return events

    def _emit(self, kind: BlockEventKind, record: BlockLifecycleRecord, content: str) -> BlockEvent:
        record.last_content = content
        event = BlockEvent(
            kind=kind,
            block_type=record.block_type,
            content=content,
            language=record.language,
            is_first_block=record.is_first,
            block_id=record.block_id,
        )
        if kind is not BlockEventKind.UPDATE:
            _trace(f"{kind.value}: {record.block_type.value} id={record.block_id} "
                   f"first={record.is_first} len={len(content)}")

        callback = {
            BlockEventKind.DETECTED: self.on_block_detected,
            BlockEventKind.UPDATE: self.on_block_update,
            BlockEventKind.END: self.on_block_end,
        }[kind]
        if callback:
            try:
                callback(record.block_type, content, record.language, record.is_first)
            except Exception as e:
                logger.warning("Block %s callback failed: %s", kind.value, e)
                _trace(f"{kind.value} callback failed: {e}", include_traceback=True)
        return event
