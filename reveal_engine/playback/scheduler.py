# reveal_engine/playback/scheduler.py
"""Playback scheduler for simulated typing.

Reveals a fully known message one token at a time on a cooperative timer,
running the block dispatcher after every tick.

Usage:
    import asyncio
    from reveal_engine.playback import PlaybackScheduler

    loop = asyncio.get_running_loop()
    scheduler = PlaybackScheduler(
        loop,                                   # any TimerSource
        on_complete=lambda message_id: ...,
        on_block_detected=panel.on_block_detected,
    )
    scheduler.update(content, message_id)       # starts playback
    ...
    scheduler.dispose()                         # host view torn down

Timing model:
- The first tick fires after ``initial_delay_ms``.
- After a word token the next tick waits ``1000 / rate`` ms; after a
  whitespace token it waits ``whitespace_delay_ms``.
- At most one timer is pending at any time.

Restarts: update() with a different message id, content, ``enabled`` or
``is_already_complete`` cancels the pending timer, bumps the generation
counter and starts over. Every tick carries the generation it was
scheduled under; a tick from an older generation does nothing.
"""

import logging
from typing import Any, Callable, List, Optional, Tuple

from ..config import RevealConfig
from ..text.protocol import Block, RevealIssue, Token
from ..text.rate import estimate_rate, word_delay_ms
from ..text.scanner import find_blocks, scan_blocks
from ..text.tokenizer import tokenize
from ..timers import TimerHandle, TimerSource
from ..trace import trace as _trace_write
from .dispatcher import BlockLifecycleDispatcher
from .protocol import (
    BlockCallback,
    BlockLifecycleRecord,
    BlockListener,
    CompleteCallback,
    PlaybackPhase,
    PlaybackState,
)

logger = logging.getLogger(__name__)


def _trace(msg: str, include_traceback: bool = False) -> None:
    _trace_write("PlaybackScheduler", msg, include_traceback=include_traceback)


def should_animate(enable_typing: bool, is_user_message: bool, is_last_message: bool) -> bool:
    """Only the newest assistant message is typed out."""
    return enable_typing and not is_user_message and is_last_message


class PlaybackScheduler:
    """Drives progressive reveal of one message at a time.

    The scheduler owns the PlaybackState and, through its dispatcher, the
    block lifecycle records. Nothing else mutates them.

    Thread safety: none. All calls, including timer callbacks, must come
    from the thread running the timer source.
    """

    def __init__(
        self,
        timers: TimerSource,
        config: Optional[RevealConfig] = None,
        on_complete: Optional[CompleteCallback] = None,
        on_block_detected: Optional[BlockCallback] = None,
        on_block_update: Optional[BlockCallback] = None,
        on_block_end: Optional[BlockCallback] = None,
        on_change: Optional[Callable[[str], None]] = None,
        on_restart: Optional[Callable[[Optional[str], str], None]] = None,
    ):
        """Initialize an idle scheduler.

        Args:
            timers: Timer source (an asyncio loop, or ManualTimers).
            config: Reveal parameters; read from the environment if omitted.
            on_complete: Called once with the message id when playback ends.
            on_block_detected: Block callback, see BlockLifecycleDispatcher.
            on_block_update: Block callback, see BlockLifecycleDispatcher.
            on_block_end: Block callback, see BlockLifecycleDispatcher.
            on_change: Called with the displayed text whenever it changes.
            on_restart: Called with (message_id, content) each time playback
                starts over, before anything is revealed.
        """
        self._timers = timers
        self._config = config or RevealConfig()
        self.on_complete = on_complete
        self.on_change = on_change
        self.on_restart = on_restart
        self._dispatcher = BlockLifecycleDispatcher(
            self._config.block_types,
            on_block_detected=on_block_detected,
            on_block_update=on_block_update,
            on_block_end=on_block_end,
        )

        self._inputs: Optional[Tuple[Optional[str], str, bool, bool]] = None
        self._message_id: Optional[str] = None
        self._content = ""
        self._tokens: List[Token] = []
        self._blocks: List[Block] = []
        self._rate = self._config.min_rate
        self._state = PlaybackState()
        self._generation = 0
        self._timer: Optional[TimerHandle] = None
        self._complete_fired = False
        self._disposed = False

    # ==================== Inputs ====================

    def set_listener(self, listener: BlockListener) -> None:
        """Route block callbacks to one listener object.

        A listener that also defines on_restart (such as CompanionPanel)
        is told whenever playback starts over.
        """
        self._dispatcher.set_listener(listener)
        on_restart = getattr(listener, "on_restart", None)
        if on_restart is not None:
            self.on_restart = on_restart

    def update(
        self,
        content: Optional[str],
        message_id: Optional[str],
        enabled: bool = True,
        is_already_complete: bool = False,
    ) -> bool:
        """Feed the current inputs from the host view.

        Playback restarts when any input differs from the previous call;
        identical inputs are ignored.

        Args:
            content: Full message text. None is treated as empty.
            message_id: Identifier passed back to on_complete.
            enabled: False shows the whole text at once.
            is_already_complete: True shows the whole text at once.

        Returns:
            True if playback was restarted.

        Raises:
            RuntimeError: If the scheduler was disposed.
        """
        if self._disposed:
            raise RuntimeError("PlaybackScheduler used after dispose()")
        inputs = (message_id, content or "", bool(enabled), bool(is_already_complete))
        if inputs == self._inputs:
            return False
        self._inputs = inputs
        self._restart(*inputs)
        return True

    def stop(self) -> None:
        """Freeze playback where it is. on_complete is not fired."""
        self._invalidate()
        if not self._state.is_complete:
            _trace(f"stop: message={self._message_id} at {self._state.revealed_offset}")
        self._state.is_playing = False
        self._state.is_complete = True

    def dispose(self) -> None:
        """Tear down: cancel the pending timer; no callback fires afterwards."""
        if self._disposed:
            return
        self.stop()
        self._disposed = True
        _trace(f"dispose: message={self._message_id}")

    # ==================== Outputs ====================

    @property
    def displayed_text(self) -> str:
        """Revealed prefix of the content."""
        return self._content[:self._state.revealed_offset]

    @property
    def is_typing(self) -> bool:
        return self._state.is_playing

    @property
    def state(self) -> PlaybackState:
        """Snapshot of the playback state."""
        return self._state.snapshot()

    @property
    def phase(self) -> PlaybackPhase:
        return self._state.phase

    @property
    def message_id(self) -> Optional[str]:
        return self._message_id

    @property
    def content(self) -> str:
        return self._content

    @property
    def tokens(self) -> List[Token]:
        return list(self._tokens)

    @property
    def rate(self) -> float:
        """Reveal rate in tokens per second for the current content."""
        return self._rate

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def blocks(self) -> List[Block]:
        """Every block of the full content, revealed or not."""
        return list(self._blocks)

    @property
    def current_block(self) -> Optional[Block]:
        """The block being typed right now, if any."""
        if not self._state.is_playing:
            return None
        return scan_blocks(self._content, self._state.revealed_offset,
                           self._config.block_types).open

    @property
    def records(self) -> List[BlockLifecycleRecord]:
        return self._dispatcher.records

    @property
    def progress(self) -> float:
        """Fraction of the content revealed, 0.0 to 1.0."""
        if not self._content:
            return 1.0 if self._state.is_complete else 0.0
        return self._state.revealed_offset / len(self._content)

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    # ==================== Internals ====================

    def _invalidate(self) -> None:
        """Cancel the pending timer and make any in-flight tick stale."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._generation += 1

    def _restart(self, message_id: Optional[str], content: str,
                 enabled: bool, is_already_complete: bool) -> None:
        self._invalidate()
        generation = self._generation

        self._message_id = message_id
        self._content = content
        self._tokens = tokenize(content)
        self._blocks = find_blocks(content, self._config.block_types)
        self._rate = estimate_rate(content, self._config)
        self._dispatcher.reset()
        self._state = PlaybackState()
        self._complete_fired = False

        _trace(f"restart gen={generation} message={message_id} tokens={len(self._tokens)} "
               f"blocks={len(self._blocks)} rate={self._rate:.1f} enabled={enabled} "
               f"already_complete={is_already_complete}")

        self._call("on_restart", self.on_restart, message_id, content)
        if generation != self._generation:
            return

        if not enabled or is_already_complete:
            self._state.revealed_offset = len(content)
            self._state.is_complete = True
            self._notify_change()
            return

        if not content.strip():
            _trace(f"{RevealIssue.EMPTY_CONTENT.value}: message={message_id}")
            self._state.revealed_offset = len(content)
            self._finish()
            return

        self._state.is_playing = True
        self._schedule(self._config.initial_delay_ms, generation)
        self._notify_change()

    def _schedule(self, delay_ms: float, generation: int) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._timers.call_later(delay_ms / 1000.0, self._tick, generation)

    def _tick(self, generation: int) -> None:
        if generation != self._generation:
            _trace(f"{RevealIssue.STALE_CALLBACK.value}: gen={generation} "
                   f"current={self._generation}")
            return
        self._timer = None

        state = self._state
        token = self._tokens[state.token_index]
        state.token_index += 1
        state.revealed_offset = token.end

        self._dispatcher.dispatch(self._content, state.revealed_offset)
        # A callback may have restarted, stopped or disposed us
        if generation != self._generation:
            return
        self._notify_change()
        if generation != self._generation:
            return

        if state.token_index >= len(self._tokens):
            self._finish()
            return

        if token.is_whitespace:
            delay = self._config.whitespace_delay_ms
        else:
            delay = word_delay_ms(self._rate)
        self._schedule(delay, generation)

    def _finish(self) -> None:
        generation = self._generation
        self._state.is_playing = False
        self._state.is_complete = True
        _trace(f"complete: message={self._message_id} offset={self._state.revealed_offset}")
        self._notify_change()
        if generation != self._generation or self._complete_fired:
            return
        self._complete_fired = True
        self._call("on_complete", self.on_complete, self._message_id)

    def _notify_change(self) -> None:
        self._call("on_change", self.on_change, self.displayed_text)

    def _call(self, name: str, callback: Optional[Callable[..., Any]], *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.warning("%s callback failed: %s", name, e)
            _trace(f"{name} callback failed: {e}", include_traceback=True)
