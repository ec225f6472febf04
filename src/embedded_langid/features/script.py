from __future__ import annotations

from typing import List, Sequence

from .. import textutils
from ..models import FeatureVector, Token


class RelevantScriptFeature:
    """Emits the index of each token's dominant script class."""

    @property
    def vocabulary_size(self) -> int:
        return len(textutils.SCRIPT_NAMES)

    @property
    def dense_dim(self) -> int:
        return 0

    def extract(self, token: Token) -> FeatureVector:
        if not isinstance(token, Token):
            raise TypeError(f"Expected Token, got {type(token).__name__}.")
        if token.is_padding:
            return FeatureVector()
        script = textutils.dominant_script(token.text)
        if script is None:
            return FeatureVector()
        return FeatureVector(sparse_ids=[textutils.SCRIPT_INDEX[script]])

    def extract_batch(self, tokens: Sequence[Token]) -> List[FeatureVector]:
        return [self.extract(token) for token in tokens]
