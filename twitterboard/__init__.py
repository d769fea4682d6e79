"""
Twitter Board

Scrolls pushed notifications across an LED matrix, highlighting hashtags,
mentions and configured keywords.
"""

__version__ = "1.0.0"
