"""
Board data models

Immutable value types passed between the notification sink, the scheduler
loop, the tokenizer and the renderer gateway.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

RGB = Tuple[int, int, int]


@dataclass(frozen=True)
class Notification:
    """A message pushed to the board by the transport."""

    message: str
    author: Optional[str] = None
    keywords: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def create(cls, message: str, author: Optional[str] = None,
               keywords: Optional[Iterable[str]] = None) -> 'Notification':
        """Build a notification, normalizing keywords to a frozenset."""
        return cls(
            message=message or '',
            author=author or None,
            keywords=frozenset(keywords or ()),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Notification':
        """
        Create a Notification from a transport payload.

        Args:
            data: Dict with 'message' and optional 'author' and 'keywords'

        Returns:
            Notification instance
        """
        keywords = data.get('keywords') or ()
        if isinstance(keywords, str):
            keywords = [keywords]
        author = data.get('author')
        return cls.create(
            message=str(data.get('message', '')),
            author=str(author) if author else None,
            keywords=[str(keyword) for keyword in keywords],
        )

    def __str__(self) -> str:
        return f"Notification(author={self.author!r}, message={self.message!r})"


@dataclass(frozen=True)
class Token:
    """A word of a message together with the color it is drawn in."""

    text: str
    color: RGB


@dataclass(frozen=True)
class RenderArtifact:
    """A rendered raster file and the pixel width the encoder reported."""

    file_path: str
    pixel_width: int
