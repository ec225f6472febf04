from __future__ import annotations

import hashlib
from typing import List, Sequence, TypeVar

from .. import textutils
from ..config import FeatureExtractionOptions
from ..models import FeatureVector, Token

PAD_FEATURE = "<PAD>"
WORD_START = "^"
WORD_END = "$"
TRIM_SEPARATOR = "\x01"

_Seq = TypeVar("_Seq", str, bytes)


def fingerprint64(data: bytes) -> int:
    """Stable 64-bit fingerprint of a byte string."""
    digest = hashlib.blake2b(data, digest_size=8).digest()
    return int.from_bytes(digest, "little")


def _wrap_word(word: _Seq, max_word_length: int, start: _Seq, sep: _Seq, end: _Seq) -> _Seq:
    if len(word) > max_word_length:
        half = max_word_length // 2
        suffix = word[len(word) - half :]
        return start + word[:half] + sep + suffix + end
    return start + word + end


def _chargrams(feature_word: _Seq, order: int) -> List[_Seq]:
    if order == 1:
        return [feature_word[i : i + 1] for i in range(1, len(feature_word) - 1)]
    return [
        feature_word[i : i + order] for i in range(len(feature_word) - order + 1)
    ]


class HashedFeatureExtractor:
    """
    Turns tokens into hashed character n-gram ids plus dense side features.

    The byte-oriented path and the codepoint path share the trimming and
    windowing rules, so pure-ASCII tokens produce the same ids in either
    mode. Each configured regular expression is compiled once; a pattern
    that fails to compile stays in place and never matches.
    """

    def __init__(self, options: FeatureExtractionOptions) -> None:
        self.options = options
        self._patterns = [
            textutils.compile_pattern(pattern) for pattern in options.regexp_features
        ]

    @property
    def vocabulary_size(self) -> int:
        return self.options.num_buckets

    @property
    def dense_dim(self) -> int:
        return self.options.dense_dim

    def hash_token(self, value: str | bytes) -> int:
        data = value.encode("utf-8") if isinstance(value, str) else value
        return fingerprint64(data) % self.options.num_buckets

    def _word(self, token: Token) -> str:
        if self.options.remap_digits:
            return textutils.remap_digits(token.text)
        return token.text

    def feature_word(self, token: Token) -> str:
        """The sentinel-delimited (and possibly trimmed) word n-grams are cut from."""
        return _wrap_word(
            self._word(token),
            self.options.max_word_length,
            WORD_START,
            TRIM_SEPARATOR,
            WORD_END,
        )

    def extract_charactergram_features(self, token: Token) -> List[int]:
        if self.options.unicode_aware_features:
            return self.extract_charactergram_features_unicode(token)
        return self.extract_charactergram_features_ascii(token)

    def extract_charactergram_features_ascii(self, token: Token) -> List[int]:
        if token.is_padding:
            return [self.hash_token(PAD_FEATURE)]
        feature_word = _wrap_word(
            self._word(token).encode("utf-8", errors="surrogatepass"),
            self.options.max_word_length,
            WORD_START.encode(),
            TRIM_SEPARATOR.encode(),
            WORD_END.encode(),
        )
        result: List[int] = []
        for order in self.options.chargram_orders:
            result.extend(self.hash_token(gram) for gram in _chargrams(feature_word, order))
        return result

    def extract_charactergram_features_unicode(self, token: Token) -> List[int]:
        if token.is_padding:
            return [self.hash_token(PAD_FEATURE)]
        feature_word = self.feature_word(token)
        result: List[int] = []
        for order in self.options.chargram_orders:
            result.extend(
                self.hash_token(gram.encode("utf-8", errors="surrogatepass"))
                for gram in _chargrams(feature_word, order)
            )
        return result

    def _case_feature(self, token: Token) -> float:
        if not token.text:
            return -1.0
        if self.options.unicode_aware_features:
            first_upper = textutils.is_upper(token.text[0])
        else:
            first_byte = token.text.encode("utf-8", errors="surrogatepass")[0]
            first_upper = textutils.is_ascii_upper(first_byte)
        return 1.0 if first_upper else -1.0

    def _selection_mask_feature(self, token: Token) -> float:
        if token.is_in_span:
            return 1.0
        return -1.0 if self.options.unicode_aware_features else 0.0

    def extract(self, token: Token) -> FeatureVector:
        if not isinstance(token, Token):
            raise TypeError(f"Expected Token, got {type(token).__name__}.")

        dense: List[float] = []
        if self.options.extract_case_feature:
            dense.append(self._case_feature(token))
        if self.options.extract_selection_mask_feature:
            dense.append(self._selection_mask_feature(token))
        for pattern in self._patterns:
            if pattern is not None and pattern.search(token.text):
                dense.append(1.0)
            else:
                dense.append(-1.0)

        return FeatureVector(
            sparse_ids=self.extract_charactergram_features(token),
            dense_values=dense,
        )

    def extract_batch(self, tokens: Sequence[Token]) -> List[FeatureVector]:
        """Extract features for each token, preserving input order."""
        return [self.extract(token) for token in tokens]
