"""Simulated typing playback with block lifecycle events.

Key components:
- PlaybackScheduler: reveals a message token by token on a timer source
- BlockLifecycleDispatcher: fires detected/update/end once per block transition
- PlaybackState / BlockLifecycleRecord: the state they own
"""

from .protocol import (
    BlockCallback,
    BlockEvent,
    BlockEventKind,
    BlockLifecycleRecord,
    BlockListener,
    CompleteCallback,
    LifecycleState,
    PlaybackPhase,
    PlaybackState,
)
from .dispatcher import BlockLifecycleDispatcher
from .scheduler import PlaybackScheduler, should_animate

__all__ = [
    "BlockCallback",
    "BlockEvent",
    "BlockEventKind",
    "BlockLifecycleRecord",
    "BlockListener",
    "CompleteCallback",
    "LifecycleState",
    "PlaybackPhase",
    "PlaybackState",
    "BlockLifecycleDispatcher",
    "PlaybackScheduler",
    "should_animate",
]
