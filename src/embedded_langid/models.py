from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True, slots=True)
class Token:
    """A run of text with inclusive-exclusive character offsets."""

    text: str
    start_char: int
    end_char: int
    is_padding: bool = False
    is_in_span: bool = False


PADDING_TOKEN = Token(text="", start_char=-1, end_char=-1, is_padding=True)


@dataclass(slots=True)
class FeatureVector:
    """Sparse bucket ids plus dense values extracted from one token."""

    sparse_ids: List[int] = field(default_factory=list)
    dense_values: List[float] = field(default_factory=list)
