"""Terminal colours for log lines and help headings.

Whether colours are used depends on the ``color`` setting (``--color``,
``--no-color`` or ``auto``); in ``auto`` mode ``NO_COLOR``, ``FORCE_COLOR``
and TTY detection decide.
"""

import os
import sys
from typing import TextIO

__all__ = [
    "BOLD",
    "CYAN",
    "DIM",
    "GREEN",
    "LEVEL_STYLES",
    "RED",
    "RESET",
    "YELLOW",
    "colorize",
    "make_style",
    "set_color_mode",
    "should_colorize",
]

RESET = "\x1b[0m"

BOLD = "1"
DIM = "2"
RED = "31"
GREEN = "32"
YELLOW = "33"
CYAN = "36"

LEVEL_STYLES: dict[str, tuple[str, ...]] = {
    "SUCCESS": (GREEN, BOLD),
    "WARNING": (YELLOW, DIM),
    "ERROR": (RED, DIM),
    "CRITICAL": (RED, BOLD),
}
"""SGR codes per log level name; levels not listed are printed plain."""

_TRUE_WORDS = frozenset({"true", "yes", "on", "1"})
_FALSE_WORDS = frozenset({"false", "no", "off", "0"})


class _ColorState:
    """Holds the ``color`` setting once the configuration is resolved."""

    mode: bool | str = "auto"


_color_state = _ColorState()


def set_color_mode(mode: bool | str) -> None:
    """Record the resolved ``color`` configuration value.

    Args:
        mode: True/False to force, "auto" (or anything else) to detect
    """
    if isinstance(mode, str):
        word = mode.lower()
        if word in _TRUE_WORDS:
            mode = True
        elif word in _FALSE_WORDS:
            mode = False
    _color_state.mode = mode


def _sgr(codes: tuple[str, ...]) -> str:
    return "\x1b[" + ";".join(codes) + "m" if codes else ""


def should_colorize(stream: TextIO | None = None) -> bool:
    """Tell whether output written to `stream` (stderr by default) gets colours."""
    if isinstance(_color_state.mode, bool):
        return _color_state.mode
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    target = sys.stderr if stream is None else stream
    isatty = getattr(target, "isatty", None)
    return bool(isatty and isatty())


def colorize(text: str, *codes: str) -> str:
    """Return `text` rendered with the SGR `codes`, unchanged when none are given."""
    if not codes:
        return text
    return _sgr(codes) + text + RESET


def make_style(*codes: str) -> tuple[str, str]:
    """Return the (prefix, suffix) pair a formatter wraps a message with."""
    return _sgr(codes), RESET
