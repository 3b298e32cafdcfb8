# reveal_engine/text/tokenizer.py
"""Whitespace tokenizer for progressive reveal.

Whitespace runs are kept as tokens of their own, so joining the token
texts in order rebuilds the input exactly (repeated newlines included).
"""

import re
from typing import List, Optional

from .protocol import Token, TokenKind

_TOKEN_PATTERN = re.compile(r"(?P<word>\S+)|(?P<space>\s+)")


def tokenize(content: Optional[str]) -> List[Token]:
    """Split content into alternating word and whitespace tokens.

    Args:
        content: Source text. None is treated as empty.

    Returns:
        Tokens in source order; empty list for empty input.
    """
    if not content:
        return []
    tokens = []
    for match in _TOKEN_PATTERN.finditer(content):
        kind = TokenKind.WORD if match.lastgroup == "word" else TokenKind.WHITESPACE
        tokens.append(Token(kind, match.group(0), match.start(), match.end()))
    return tokens


def count_words(tokens: List[Token]) -> int:
    """Number of word tokens."""
    return sum(1 for t in tokens if not t.is_whitespace)
