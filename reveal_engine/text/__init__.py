"""Pure text functions behind the reveal engine.

- tokenize(): content -> word/whitespace tokens, losslessly rejoinable
- estimate_rate(): content -> reveal rate in tokens per second
- scan_blocks(): (content, revealed length) -> fenced blocks visible so far

Example:
    from reveal_engine.text import scan_blocks, tokenize

    tokens = tokenize(content)
    result = scan_blocks(content, revealed=tokens[5].end)
    for block in result.closed:
        print(block.block_type, block.content)
"""

from .protocol import (
    STRUCTURAL_BLOCK_TYPES,
    Block,
    BlockType,
    RevealIssue,
    ScanResult,
    Token,
    TokenKind,
)
from .tokenizer import count_words, tokenize
from .rate import estimate_rate, word_delay_ms
from .scanner import classify_tag, find_blocks, scan_blocks

__all__ = [
    "STRUCTURAL_BLOCK_TYPES",
    "Block",
    "BlockType",
    "RevealIssue",
    "ScanResult",
    "Token",
    "TokenKind",
    "count_words",
    "tokenize",
    "estimate_rate",
    "word_delay_ms",
    "classify_tag",
    "find_blocks",
    "scan_blocks",
]
