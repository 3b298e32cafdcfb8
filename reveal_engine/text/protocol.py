# reveal_engine/text/protocol.py
"""Data structures shared by the tokenizer and the block scanner.

Tokens and blocks are immutable: they derive once per distinct
(message_id, content) pair and are never edited afterwards.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional


class TokenKind(Enum):
    """Kind of a reveal token."""
    WORD = "word"
    WHITESPACE = "whitespace"


class BlockType(Enum):
    """Type of a fenced block.

    Every type except CODE is structural: it has a dedicated renderer in
    the companion panel (diagram, chart, 3D scene, live preview).
    """
    CODE = "code"
    MERMAID = "mermaid"
    DOT = "dot"
    CHARTJS = "chartjs"
    THREEJS = "threejs"
    HTML = "html"
    SLIDES = "slides"

    @property
    def is_structural(self) -> bool:
        return self is not BlockType.CODE


STRUCTURAL_BLOCK_TYPES: FrozenSet[BlockType] = frozenset(
    t for t in BlockType if t.is_structural
)


class RevealIssue(Enum):
    """Recoverable conditions the engine resolves instead of raising."""
    UNTERMINATED_FENCE = "unterminated_fence"   # closed at end of text
    EMPTY_CONTENT = "empty_content"             # short-circuits to complete
    STALE_CALLBACK = "stale_callback"           # superseded timer, discarded


@dataclass(frozen=True)
class Token:
    """A word or a whitespace run, with its offsets in the source text.

    Attributes:
        kind: Word or whitespace.
        text: The token text, exactly as it appears in the source.
        start: Offset of the first character.
        end: Offset one past the last character.
    """
    kind: TokenKind
    text: str
    start: int
    end: int

    @property
    def is_whitespace(self) -> bool:
        return self.kind is TokenKind.WHITESPACE


@dataclass(frozen=True)
class Block:
    """A fenced block found in the source text.

    Attributes:
        block_type: Structural type, or CODE for everything else.
        start: Offset of the opening fence.
        end: Offset one past the closing fence for a closed block, or the
            revealed length for an open one.
        content: Raw text between the fences (partial while open).
        language: Fence tag for CODE blocks; None for structural blocks
            and untagged fences.
        closed: True once the closing fence (or end of text) is revealed.
    """
    block_type: BlockType
    start: int
    end: int
    content: str
    language: Optional[str] = None
    closed: bool = True

    @property
    def block_id(self) -> int:
        """Stable identity within one content string: the opener offset."""
        return self.start


@dataclass(frozen=True)
class ScanResult:
    """Blocks visible in a revealed prefix.

    Attributes:
        closed: Closed blocks, ordered by start offset.
        open: The block whose opener is revealed but whose closer is not.
    """
    closed: List[Block] = field(default_factory=list)
    open: Optional[Block] = None

    @property
    def blocks(self) -> List[Block]:
        """All visible blocks, open block last."""
        if self.open is None:
            return list(self.closed)
        return self.closed + [self.open]
