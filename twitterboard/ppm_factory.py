"""
PPM Factory

Draws colored tokens side by side onto a strip the height of the LED
matrix and saves it as a binary PPM file for the matrix renderer.
"""

import logging
import os
from typing import Optional, Sequence

from PIL import Image, ImageDraw, ImageFont

from twitterboard.models import RGB, Token

logger = logging.getLogger(__name__)


class PPMFactory:
    """Raster encoder producing the artifact consumed by the matrix renderer."""

    def __init__(self, rows: int = 16, font_path: Optional[str] = None, font_size: int = 14):
        """
        Initialize the encoder.

        Args:
            rows: Height of the LED matrix in pixels
            font_path: Optional TrueType font; Pillow's default font is used otherwise
            font_size: Point size for the TrueType font
        """
        self.rows = rows
        self.font = self._load_font(font_path, font_size)

    def _load_font(self, font_path: Optional[str], font_size: int):
        if font_path and os.path.exists(font_path):
            try:
                return ImageFont.truetype(font_path, font_size)
            except OSError as e:
                logger.warning("Could not load font %s, using default: %s", font_path, e)
        elif font_path:
            logger.warning("Font file not found: %s, using default", font_path)
        return ImageFont.load_default()

    def encode(self, file_name: str, tokens: Sequence[Token], background: RGB) -> int:
        """
        Render tokens into a PPM file.

        Args:
            file_name: Destination path of the PPM file
            tokens: Tokens to draw, left to right
            background: Background color

        Returns:
            Width of the rendered image in pixels

        Raises:
            OSError: If the file cannot be written
        """
        measure = ImageDraw.Draw(Image.new('RGB', (1, 1)))
        gap = int(measure.textlength(" ", font=self.font)) or 1
        widths = [int(round(measure.textlength(token.text, font=self.font))) for token in tokens]
        width = max(1, sum(widths) + gap * max(0, len(tokens) - 1))

        # Center glyphs vertically on the strip
        top, bottom = measure.textbbox((0, 0), "Ag@#", font=self.font)[1::2]
        y = (self.rows - (bottom - top)) // 2 - top

        image = Image.new('RGB', (width, self.rows), tuple(background))
        draw = ImageDraw.Draw(image)
        x = 0
        for token, token_width in zip(tokens, widths):
            draw.text((x, y), token.text, font=self.font, fill=tuple(token.color))
            x += token_width + gap

        image.save(file_name, format='PPM')
        logger.debug("Saved %s (%dx%d, %d tokens)", file_name, width, self.rows, len(tokens))
        return width
