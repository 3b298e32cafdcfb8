"""Opt-in trace file for following a playback tick by tick.

Set REVEAL_TRACE_LOG to a file path to record restarts, block lifecycle
transitions, discarded ticks and callback failures. Unset or empty, the
engine does no file I/O at all.

Usage:
    REVEAL_TRACE_LOG=/tmp/reveal.log python -m reveal_engine answer.md
"""

import os
import traceback
from datetime import datetime
from typing import Optional

TRACE_ENV_VAR = "REVEAL_TRACE_LOG"


def trace_path() -> Optional[str]:
    """The trace file from the environment, or None when tracing is off."""
    return os.environ.get(TRACE_ENV_VAR) or None


def trace(component: str, msg: str, *, include_traceback: bool = False) -> None:
    """Append ``[time] [component] msg`` to the trace file, if one is set.

    Failures to write are ignored; tracing never interrupts playback.

    Args:
        component: Prefix naming the writer (e.g. "PlaybackScheduler").
        msg: Message line.
        include_traceback: Append the exception being handled, if any.
    """
    path = trace_path()
    if path is None:
        return
    stamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    lines = [f"[{stamp}] [{component}] {msg}\n"]
    if include_traceback:
        tb = traceback.format_exc()
        if tb.strip() != "NoneType: None":
            lines.append(tb)
    try:
        parent = os.path.dirname(os.path.abspath(path))
        os.makedirs(parent, exist_ok=True)
        with open(path, "a") as f:
            f.writelines(lines)
    except OSError:
        pass
