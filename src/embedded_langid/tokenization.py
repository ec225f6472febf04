from __future__ import annotations

from typing import List, Optional, Tuple

from . import textutils
from .models import PADDING_TOKEN, Token


class Tokenizer:
    """
    Splits text on whitespace and on changes of script class.

    Script-neutral codepoints (digits, punctuation, symbols) stay with the
    run they appear in; a run that starts with them takes the script of the
    first letter it meets.
    """

    def tokenize(self, text: str, span: Optional[Tuple[int, int]] = None) -> List[Token]:
        tokens: List[Token] = []
        start: Optional[int] = None
        run_script: Optional[str] = None

        for idx, char in enumerate(text):
            if textutils.is_whitespace(char):
                if start is not None:
                    tokens.append(_make_token(text, start, idx, span))
                    start, run_script = None, None
                continue

            script = textutils.script_of(char)
            if start is None:
                start, run_script = idx, script
            elif script is not None and run_script is not None and script != run_script:
                tokens.append(_make_token(text, start, idx, span))
                start, run_script = idx, script
            elif run_script is None:
                run_script = script

        if start is not None:
            tokens.append(_make_token(text, start, len(text), span))
        return tokens


def _make_token(
    text: str, start: int, end: int, span: Optional[Tuple[int, int]]
) -> Token:
    in_span = span is not None and start < span[1] and end > span[0]
    return Token(text=text[start:end], start_char=start, end_char=end, is_in_span=in_span)


def add_padding(tokens: List[Token], count: int) -> List[Token]:
    """Surround ``tokens`` with ``count`` padding tokens on each side."""
    if count <= 0:
        return list(tokens)
    padding = [PADDING_TOKEN] * count
    return padding + list(tokens) + padding


def tokenize_text(text: str, span: Optional[Tuple[int, int]] = None) -> List[Token]:
    """Tokenize text with the default tokenizer."""
    return Tokenizer().tokenize(text, span)
