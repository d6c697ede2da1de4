"""Terminal styling and the warning/success status lines."""

from __future__ import annotations

import os
import sys

_RESET = "\x1b[0m"
_BOLD = "1"
_RED = "31"
_GREEN = "32"
_BLUE = "34"


def no_emoji() -> bool:
    """Return True when the NO_EMOJI environment variable is set."""
    return "NO_EMOJI" in os.environ


def _colors_enabled() -> bool:
    force = os.environ.get("CLICOLOR_FORCE")
    if force is not None and force != "0":
        return True
    if os.environ.get("CLICOLOR") == "0":
        return False
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


def _paint(code: str, text: object) -> str:
    text = str(text)
    if not _colors_enabled():
        return text
    return f"\x1b[{code}m{text}{_RESET}"


def bold(text: object) -> str:
    """Render text in bold when the terminal takes colours."""
    return _paint(_BOLD, text)


def red(text: object) -> str:
    """Render text in red when the terminal takes colours."""
    return _paint(_RED, text)


def green(text: object) -> str:
    """Render text in green when the terminal takes colours."""
    return _paint(_GREEN, text)


def blue(text: object) -> str:
    """Render text in blue when the terminal takes colours."""
    return _paint(_BLUE, text)


def warn(message: str) -> None:
    """Print a red warning line."""
    marker = "!" if no_emoji() else "⚠️ "
    print(f"{red(marker)} {red(message)}")


def success(message: str) -> None:
    """Print a green success line."""
    marker = "✓" if no_emoji() else "✅"
    print(f"{green(marker)} {green(message)}")