"""
Unicode helpers shared by the tokenizer and the feature extractors.

Script classes come from code-point ranges so the results stay identical
across interpreter versions.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from typing import Optional

LOGGER = logging.getLogger(__name__)

# Unicode blocks represented as (start, end, script); first match wins.
_SCRIPT_RANGES = [
    (0x0041, 0x005A, "latin"),
    (0x0061, 0x007A, "latin"),
    (0x00C0, 0x024F, "latin"),
    (0x1E00, 0x1EFF, "latin"),
    (0x0370, 0x03FF, "greek"),
    (0x1F00, 0x1FFF, "greek"),
    (0x0400, 0x052F, "cyrillic"),
    (0x0530, 0x058F, "armenian"),
    (0x0590, 0x05FF, "hebrew"),
    (0x0600, 0x06FF, "arabic"),
    (0x0750, 0x077F, "arabic"),
    (0x0900, 0x097F, "devanagari"),
    (0x0980, 0x09FF, "bengali"),
    (0x0A00, 0x0A7F, "gurmukhi"),
    (0x0A80, 0x0AFF, "gujarati"),
    (0x0B80, 0x0BFF, "tamil"),
    (0x0C00, 0x0C7F, "telugu"),
    (0x0C80, 0x0CFF, "kannada"),
    (0x0D00, 0x0D7F, "malayalam"),
    (0x0E00, 0x0E7F, "thai"),
    (0x10A0, 0x10FF, "georgian"),
    (0x1100, 0x11FF, "hangul"),
    (0x3040, 0x309F, "hiragana"),
    (0x30A0, 0x30FF, "katakana"),
    (0x3400, 0x4DBF, "han"),
    (0x4E00, 0x9FFF, "han"),
    (0xAC00, 0xD7AF, "hangul"),
]

SCRIPT_NAMES: tuple[str, ...] = tuple(
    dict.fromkeys(["other"] + [name for _, _, name in _SCRIPT_RANGES])
)
SCRIPT_INDEX = {name: idx for idx, name in enumerate(SCRIPT_NAMES)}


def script_of(char: str) -> Optional[str]:
    """
    Return the script class of a single codepoint.

    ``None`` means the codepoint is script-neutral (digits, punctuation,
    symbols, marks outside a known block). Letters outside every known block
    are classed as ``"other"``.
    """
    code = ord(char)
    for start, end, name in _SCRIPT_RANGES:
        if start <= code <= end:
            return name
    if unicodedata.category(char).startswith("L"):
        return "other"
    return None


def is_whitespace(char: str) -> bool:
    return char.isspace()


def is_decimal_digit(char: str) -> bool:
    """True for any decimal digit codepoint (general category Nd)."""
    return unicodedata.category(char) == "Nd"


def is_upper(char: str) -> bool:
    return unicodedata.category(char) == "Lu"


def is_ascii_upper(byte: int) -> bool:
    return 0x41 <= byte <= 0x5A


def remap_digits(value: str) -> str:
    """Replace every decimal digit codepoint with ``"0"``."""
    return "".join("0" if is_decimal_digit(char) else char for char in value)


def dominant_script(text: str) -> Optional[str]:
    """Most frequent script class in ``text``; ties resolve by table order."""
    counts: dict[str, int] = {}
    for char in text:
        script = script_of(char)
        if script is not None:
            counts[script] = counts.get(script, 0) + 1
    if not counts:
        return None
    return max(SCRIPT_NAMES, key=lambda name: (counts.get(name, 0), -SCRIPT_INDEX[name]))


def compile_pattern(pattern: str) -> Optional[re.Pattern[str]]:
    """Compile ``pattern``; log and return ``None`` when it is invalid."""
    try:
        return re.compile(pattern, re.UNICODE)
    except re.error as exc:
        LOGGER.warning("Failed to load pattern %r: %s", pattern, exc)
        return None
