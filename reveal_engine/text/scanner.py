# reveal_engine/text/scanner.py
"""Fenced block scanner for partially revealed text.

Finds ```tag fenced regions in the revealed prefix of a message. The
opener is three backticks, an optional tag, optional spaces and a
newline; the closer is the next three backticks, wherever they sit on
the line.

Scanning is incremental-safe: a block reported closed for one prefix
keeps exactly the same boundaries for every longer prefix, because each
block depends only on the text up to its closing fence and scanning
resumes right after it.
"""

import re
from typing import FrozenSet, List, Optional, Tuple

from ..trace import trace as _trace_write
from .protocol import STRUCTURAL_BLOCK_TYPES, Block, BlockType, RevealIssue, ScanResult


def _trace(msg: str) -> None:
    _trace_write("BlockScanner", msg)


FENCE = "```"

# ```tag followed by optional spaces and a newline
_OPENER_PATTERN = re.compile(r"```([^\s`]*)[ \t]*\n")

# Alternate spellings of structural tags
TAG_ALIASES = {
    "mmd": "mermaid",
    "graphviz": "dot",
    "chart": "chartjs",
    "three": "threejs",
}


def classify_tag(
    tag: str,
    block_types: Optional[FrozenSet[BlockType]] = None,
) -> Tuple[BlockType, Optional[str]]:
    """Map a fence tag to a block type and language.

    Args:
        tag: Fence tag as written (may be empty).
        block_types: Structural types to recognize. Defaults to all.

    Returns:
        (block_type, language). Structural blocks have no language;
        CODE blocks keep the tag, or None when the fence is untagged.
    """
    if block_types is None:
        block_types = STRUCTURAL_BLOCK_TYPES
    name = tag.lower()
    name = TAG_ALIASES.get(name, name)
    try:
        block_type = BlockType(name)
    except ValueError:
        block_type = BlockType.CODE
    if block_type.is_structural and block_type in block_types:
        return block_type, None
    return BlockType.CODE, tag or None


def _strip_trailing_newline(body: str) -> str:
    if body.endswith("\n"):
        return body[:-1]
    return body


def scan_blocks(
    content: Optional[str],
    revealed: Optional[int] = None,
    block_types: Optional[FrozenSet[BlockType]] = None,
) -> ScanResult:
    """Scan the revealed prefix of content for fenced blocks.

    Args:
        content: Full message text. None is treated as empty.
        revealed: Length of the revealed prefix; clamped to the content
            bounds. None scans the whole text.
        block_types: Structural types to recognize; any other tag maps
            to CODE.

    Returns:
        ScanResult with the closed blocks and at most one open block.
        When the prefix covers the whole text, an unterminated fence is
        closed at end of text, so nothing is left open.
    """
    content = content or ""
    total = len(content)
    limit = total if revealed is None else max(0, min(revealed, total))
    prefix = content[:limit]
    at_end = limit == total

    closed = []
    pos = 0
    while True:
        opener = _OPENER_PATTERN.search(prefix, pos)
        if opener is None:
            return ScanResult(closed)

        block_type, language = classify_tag(opener.group(1), block_types)
        body_start = opener.end()
        close_at = prefix.find(FENCE, body_start)

        if close_at == -1:
            body = prefix[body_start:]
            if at_end:
                _trace(f"{RevealIssue.UNTERMINATED_FENCE.value}: {block_type.value} "
                       f"at {opener.start()} closed at end of text ({total})")
                closed.append(Block(
                    block_type, opener.start(), total,
                    _strip_trailing_newline(body), language,
                ))
                return ScanResult(closed)
            # Backticks at the edge may be the start of the closing fence
            open_block = Block(
                block_type, opener.start(), limit,
                body.rstrip("`"), language, closed=False,
            )
            return ScanResult(closed, open_block)

        end = close_at + len(FENCE)
        closed.append(Block(
            block_type, opener.start(), end,
            _strip_trailing_newline(prefix[body_start:close_at]), language,
        ))
        pos = end


def find_blocks(
    content: Optional[str],
    block_types: Optional[FrozenSet[BlockType]] = None,
) -> List[Block]:
    """All blocks of the complete text, unterminated fences included."""
    return scan_blocks(content, None, block_types).closed
