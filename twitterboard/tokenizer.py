"""
Message tokenizer

Splits a message into words and assigns each word the palette color of
its kind: configured keyword, hashtag, mention or plain text.
"""

from typing import AbstractSet, List, Optional

from twitterboard.board_config import Palette
from twitterboard.models import Token


def tokenize(
    message: str,
    author: Optional[str],
    keywords: Optional[AbstractSet[str]],
    palette: Palette
) -> List[Token]:
    """
    Convert a message into an ordered list of colored tokens.

    The author, when present, always leads as an "@author" mention token.
    Keyword matches are exact and case-sensitive and take precedence over
    the hashtag and mention prefixes.

    Args:
        message: Message body
        author: Optional author name (without the leading '@')
        keywords: Words to highlight with the keyword color
        palette: Colors for each token kind

    Returns:
        List of Token in display order
    """
    keywords = keywords or frozenset()
    tokens: List[Token] = []

    if author:
        tokens.append(Token("@" + author, palette.mention_color))

    for word in (message or "").split():
        if word in keywords:
            color = palette.keyword_color
        elif word.startswith("#"):
            color = palette.hash_tag_color
        elif word.startswith("@"):
            color = palette.mention_color
        else:
            color = palette.text_color
        tokens.append(Token(word, color))

    return tokens
