"""
Board Configuration

Immutable snapshots of the board's display settings (default message,
palette, scroll speed, repeat count) and of the renderer settings, built from
the main configuration dictionary.
"""

import logging
import re
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Tuple

from jsonschema import Draft7Validator
from PIL import ImageColor

from twitterboard.exceptions import ConfigError
from twitterboard.models import RGB

logger = logging.getLogger(__name__)

DEFAULT_RENDER_COMMAND = (
    "sudo /home/pi/display16x32/rpi-rgb-led-matrix/led-matrix -r 16 -D 1 -m {scroll_speed} {file}"
)

# Keys as sent by the push transport
_CAMEL_CASE_ALIASES = {
    'defaultMessage': 'default_message',
    'backgroundColor': 'background_color',
    'textColor': 'text_color',
    'hashTagsColor': 'hash_tag_color',
    'hashTagColor': 'hash_tag_color',
    'atTagsColor': 'mention_color',
    'mentionColor': 'mention_color',
    'keywordsColor': 'keyword_color',
    'keywordColor': 'keyword_color',
    'scrollSpeed': 'scroll_speed',
    'repeatCount': 'repeat_count',
}

_COLOR_VALUE = {
    "oneOf": [
        {"type": "string", "minLength": 1},
        {"type": "integer", "minimum": 0, "maximum": 0xFFFFFF},
        {
            "type": "array",
            "items": {"type": "integer", "minimum": 0, "maximum": 255},
            "minItems": 3,
            "maxItems": 3,
        },
    ]
}

BOARD_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "default_message": {"type": "string"},
        "background_color": _COLOR_VALUE,
        "text_color": _COLOR_VALUE,
        "hash_tag_color": _COLOR_VALUE,
        "mention_color": _COLOR_VALUE,
        "keyword_color": _COLOR_VALUE,
        "scroll_speed": {"type": "integer", "minimum": 1},
        "repeat_count": {"type": "integer"},
    },
}

_HEX_COLOR = re.compile(r'^(?:#|0[xX])([0-9a-fA-F]{6})$')
_DECIMAL_COLOR = re.compile(r'^\d+$')


def parse_color(value: Any) -> RGB:
    """
    Convert a configured color into an (r, g, b) tuple.

    Accepts '#RRGGBB', '0xRRGGBB', decimal integers, [r, g, b] lists and
    any color name Pillow's ImageColor understands.

    Raises:
        ConfigError: If the value cannot be interpreted as a color
    """
    if isinstance(value, (list, tuple)) and len(value) == 3:
        return tuple(int(channel) & 0xFF for channel in value)

    if isinstance(value, int) and not isinstance(value, bool):
        return _int_to_rgb(value)

    text = str(value).strip()
    match = _HEX_COLOR.match(text)
    if match:
        return _int_to_rgb(int(match.group(1), 16))
    if _DECIMAL_COLOR.match(text):
        return _int_to_rgb(int(text))

    try:
        return ImageColor.getrgb(text)[:3]
    except ValueError as e:
        raise ConfigError(f"Invalid color value: {value!r}", field='color') from e


def _int_to_rgb(number: int) -> RGB:
    return ((number >> 16) & 0xFF, (number >> 8) & 0xFF, number & 0xFF)


def normalize_board_keys(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Map camelCase transport keys onto snake_case configuration keys."""
    return {_CAMEL_CASE_ALIASES.get(key, key): value for key, value in raw.items()}


def validate_board_config(raw: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """
    Validate a board section against BOARD_SCHEMA.

    Returns:
        Tuple of (is_valid, list_of_error_messages)
    """
    validator = Draft7Validator(BOARD_SCHEMA)
    errors = []
    for error in sorted(validator.iter_errors(raw), key=lambda e: list(e.path)):
        path = '.'.join(str(p) for p in error.path) or '<root>'
        errors.append(f"{path}: {error.message}")
    return (not errors), errors


@dataclass(frozen=True)
class Palette:
    """Colors used to draw the different kinds of tokens."""

    text_color: RGB
    hash_tag_color: RGB
    mention_color: RGB
    keyword_color: RGB


@dataclass(frozen=True)
class BoardConfiguration:
    """
    Display settings pushed to the board.

    Instances are never mutated; an update publishes a new instance.
    """

    default_message: str = "Twitter Board"
    background_color: RGB = (0, 0, 0)
    text_color: RGB = (255, 255, 255)
    hash_tag_color: RGB = (0, 160, 255)
    mention_color: RGB = (255, 165, 0)
    keyword_color: RGB = (255, 0, 0)
    scroll_speed: int = 25  # Milliseconds per pixel
    repeat_count: int = 1

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> 'BoardConfiguration':
        """
        Create a BoardConfiguration from a board section or transport payload.

        Missing keys fall back to the defaults above.

        Raises:
            ConfigError: If the payload is not an object or fails schema validation
        """
        if raw is not None and not isinstance(raw, dict):
            raise ConfigError(
                f"Board configuration must be an object, got {type(raw).__name__}",
                field='board'
            )
        data = normalize_board_keys(raw or {})
        is_valid, errors = validate_board_config(data)
        if not is_valid:
            raise ConfigError(
                "Invalid board configuration",
                field='board',
                context={'errors': '; '.join(errors)}
            )

        defaults = cls()
        return cls(
            default_message=str(data.get('default_message', defaults.default_message)),
            background_color=parse_color(data.get('background_color', defaults.background_color)),
            text_color=parse_color(data.get('text_color', defaults.text_color)),
            hash_tag_color=parse_color(data.get('hash_tag_color', defaults.hash_tag_color)),
            mention_color=parse_color(data.get('mention_color', defaults.mention_color)),
            keyword_color=parse_color(data.get('keyword_color', defaults.keyword_color)),
            scroll_speed=int(data.get('scroll_speed', defaults.scroll_speed)),
            repeat_count=int(data.get('repeat_count', defaults.repeat_count)),
        )

    @property
    def palette(self) -> Palette:
        return Palette(
            text_color=self.text_color,
            hash_tag_color=self.hash_tag_color,
            mention_color=self.mention_color,
            keyword_color=self.keyword_color,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for serialization."""
        data = asdict(self)
        for key in ('background_color', 'text_color', 'hash_tag_color', 'mention_color', 'keyword_color'):
            data[key] = '#%02X%02X%02X' % data[key]
        return data


@dataclass(frozen=True)
class RendererSettings:
    """Settings for the raster encoder and the external matrix renderer."""

    command: str = DEFAULT_RENDER_COMMAND
    work_dir: str = "."
    default_file: str = "default.ppm"
    custom_file: str = "text.ppm"
    font_path: Optional[str] = None
    font_size: int = 14
    rows: int = 16
    terminate_timeout: float = 2.0

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'RendererSettings':
        """
        Create RendererSettings from the main configuration dictionary.

        Args:
            config: Main config dict (expects config['renderer'])

        Returns:
            RendererSettings instance
        """
        renderer_config = config.get('renderer', {})
        defaults = cls()

        command = renderer_config.get('command', defaults.command)
        if '{file}' not in command:
            raise ConfigError(
                "Renderer command must contain a {file} placeholder",
                field='renderer.command'
            )

        return cls(
            command=command,
            work_dir=str(renderer_config.get('work_dir', defaults.work_dir)),
            default_file=str(renderer_config.get('default_file', defaults.default_file)),
            custom_file=str(renderer_config.get('custom_file', defaults.custom_file)),
            font_path=renderer_config.get('font_path') or None,
            font_size=int(renderer_config.get('font_size', defaults.font_size)),
            rows=int(renderer_config.get('rows', defaults.rows)),
            terminate_timeout=float(renderer_config.get('terminate_timeout', defaults.terminate_timeout)),
        )
