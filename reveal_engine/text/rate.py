# reveal_engine/text/rate.py
"""Reveal rate estimation.

Short replies type at a conversational pace; longer replies speed up so
playback stays near the target duration, up to a ceiling rate.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..config import RevealConfig

# Average characters per word, whitespace included.
CHARS_PER_WORD = 6.0


def estimate_rate(content: Optional[str], config: Optional["RevealConfig"] = None) -> float:
    """Estimate the reveal rate for a message, in tokens per second.

    The result is positive, deterministic and non-decreasing in
    ``len(content)``. Empty or whitespace-only content gets the floor
    rate; the scheduler completes such content without ticking.

    Args:
        content: Full message text.
        config: Rate bounds; read from the environment when omitted.

    Returns:
        Reveal rate in tokens per second.
    """
    if config is None:
        from ..config import RevealConfig
        config = RevealConfig()

    if config.fixed_rate is not None:
        return config.fixed_rate

    if not content or not content.strip():
        return config.min_rate

    estimated_words = len(content) / CHARS_PER_WORD
    rate = estimated_words / config.target_seconds
    return max(config.min_rate, min(config.max_rate, rate))


def word_delay_ms(rate: float) -> float:
    """Delay after revealing a word token at the given rate."""
    return 1000.0 / rate
