"""Configuration for the reveal engine.

Defaults come from environment variables so a host can tune playback
without code changes (a .env file is loaded by the console host):

    REVEAL_MIN_RATE              Floor reveal rate, tokens/s (12)
    REVEAL_MAX_RATE              Ceiling reveal rate, tokens/s (60)
    REVEAL_TARGET_SECONDS        Playback duration aimed for (20)
    REVEAL_FIXED_RATE            Fixed rate overriding the estimate (unset)
    REVEAL_WHITESPACE_DELAY_MS   Delay after a whitespace token (50)
    REVEAL_INITIAL_DELAY_MS      Delay before the first tick (200)
    REVEAL_BLOCK_TYPES           Comma list of recognized structural tags
                                 (mermaid,dot,chartjs,threejs,html,slides)
"""

import logging
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, FrozenSet, Optional

from .text.protocol import STRUCTURAL_BLOCK_TYPES, BlockType

logger = logging.getLogger(__name__)


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    """Read a float env var, keeping the default when unset or invalid."""
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r", name, value)
        return default


def parse_block_types(value: Optional[str]) -> FrozenSet[BlockType]:
    """Parse a comma separated list of structural tags.

    Unknown names and ``code`` are skipped; ``code`` is always recognized.
    """
    if value is None:
        return STRUCTURAL_BLOCK_TYPES
    result = set()
    for name in value.split(","):
        name = name.strip().lower()
        if not name:
            continue
        try:
            block_type = BlockType(name)
        except ValueError:
            logger.warning("Ignoring unknown block type %r", name)
            continue
        if block_type.is_structural:
            result.add(block_type)
    return frozenset(result)


def _env_block_types() -> FrozenSet[BlockType]:
    return parse_block_types(os.environ.get("REVEAL_BLOCK_TYPES"))


@dataclass
class RevealConfig:
    """Tunable parameters for rate estimation, scheduling and scanning."""
    min_rate: float = field(default_factory=lambda: _env_float("REVEAL_MIN_RATE", 12.0))
    max_rate: float = field(default_factory=lambda: _env_float("REVEAL_MAX_RATE", 60.0))
    target_seconds: float = field(default_factory=lambda: _env_float("REVEAL_TARGET_SECONDS", 20.0))
    fixed_rate: Optional[float] = field(default_factory=lambda: _env_float("REVEAL_FIXED_RATE", None))
    whitespace_delay_ms: float = field(default_factory=lambda: _env_float("REVEAL_WHITESPACE_DELAY_MS", 50.0))
    initial_delay_ms: float = field(default_factory=lambda: _env_float("REVEAL_INITIAL_DELAY_MS", 200.0))
    block_types: FrozenSet[BlockType] = field(default_factory=_env_block_types)

    def __post_init__(self):
        if self.min_rate <= 0:
            raise ValueError(f"min_rate must be positive, got {self.min_rate}")
        if self.max_rate < self.min_rate:
            raise ValueError(
                f"max_rate ({self.max_rate}) must be >= min_rate ({self.min_rate})"
            )
        if self.target_seconds <= 0:
            raise ValueError(f"target_seconds must be positive, got {self.target_seconds}")
        if self.fixed_rate is not None and self.fixed_rate <= 0:
            raise ValueError(f"fixed_rate must be positive, got {self.fixed_rate}")
        if self.whitespace_delay_ms < 0 or self.initial_delay_ms < 0:
            raise ValueError("delays must not be negative")

    @classmethod
    def from_dict(cls, config: Optional[Dict[str, Any]] = None) -> "RevealConfig":
        """Build a config from a plugin-style settings dict.

        Unknown keys are ignored; missing keys fall back to the environment.
        ``block_types`` may be a comma separated string or an iterable of
        names or BlockType members.
        """
        config = dict(config or {})
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in config.items() if k in known}

        block_types = kwargs.get("block_types")
        if isinstance(block_types, str):
            kwargs["block_types"] = parse_block_types(block_types)
        elif block_types is not None:
            kwargs["block_types"] = parse_block_types(
                ",".join(b.value if isinstance(b, BlockType) else str(b) for b in block_types)
            )
        return cls(**kwargs)
