from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as np

from .config import ClassifierConfig
from .model.byte_source import ModelBuffer, ModelSource, describe_source, open_byte_source
from .model.store import LoadedModel, LoadResult, load_model
from .network import EmbeddingNetwork, compute_softmax
from .tokenization import Tokenizer, add_padding

LOGGER = logging.getLogger(__name__)


class LanguageClassifier:
    """
    Predicts the language of short texts with a hashed-feature embedding network.

    Construction never raises: when the model cannot be read or fails
    validation the reason is logged once and the classifier stays invalid,
    answering every query with the default language (or no scores).

    The model data is immutable after construction and safe to query from
    several threads; ``set_probability_threshold`` and
    ``set_default_language`` are not synchronized.
    """

    def __init__(self, source: ModelSource) -> None:
        self._initialize(_load_from_source(source), describe_source(source))

    @classmethod
    def from_bytes(cls, data: ModelBuffer) -> "LanguageClassifier":
        """Build a classifier from in-memory model bytes."""
        classifier = cls.__new__(cls)
        classifier._initialize(load_model(data), "<memory>")
        return classifier

    def _initialize(self, result: LoadResult, description: str) -> None:
        self.config = ClassifierConfig()
        self._tokenizer = Tokenizer()
        self._model: Optional[LoadedModel] = None
        self._network: Optional[EmbeddingNetwork] = None

        if result.model is None:
            LOGGER.error(
                "Unable to construct a valid LanguageClassifier from %s (%s); "
                "nothing should crash, but every answer will be the default language.",
                description,
                result.reason or "unknown error",
            )
            return
        model = result.model
        self._network = EmbeddingNetwork(
            model.params, [extractor.dense_dim for extractor in model.extractors]
        )
        self._model = model
        self.config.probability_threshold = model.probability_threshold
        LOGGER.info(
            "Loaded language model from %s: %d languages, %d feature domains",
            description,
            len(model.languages),
            len(model.extractors),
        )

    def is_valid(self) -> bool:
        return self._model is not None

    @property
    def languages(self) -> List[str]:
        return list(self._model.languages) if self._model is not None else []

    def set_probability_threshold(self, threshold: float) -> None:
        self.config.probability_threshold = float(threshold)

    def set_default_language(self, language: str) -> None:
        self.config.default_language = language

    def score_languages(self, text: str) -> List[float]:
        """Softmax probabilities in language-list order; empty when invalid."""
        if self._model is None or self._network is None:
            return []
        tokens = add_padding(self._tokenizer.tokenize(text), self._model.context_padding)
        features = [extractor.extract_batch(tokens) for extractor in self._model.extractors]
        scores = self._network.compute_final_scores(features)
        LOGGER.debug("Scored %d tokens: raw scores %s", len(tokens), scores)
        return compute_softmax(scores)

    def find_language(self, text: str) -> str:
        """Most probable language, or the default language when unsure."""
        scores = self.score_languages(text)
        if not scores:
            return self.config.default_language
        label = int(np.argmax(scores))
        if scores[label] < self.config.probability_threshold:
            return self.config.default_language
        return self._language_for_label(label)

    def find_languages(self, text: str) -> List[Tuple[str, float]]:
        """Every known language with its probability, in model order."""
        scores = self.score_languages(text)
        return [(self._language_for_label(idx), score) for idx, score in enumerate(scores)]

    def _language_for_label(self, label: int) -> str:
        languages = self._model.languages if self._model is not None else []
        if 0 <= label < len(languages):
            return languages[label]
        LOGGER.error("Softmax label %d outside range [0, %d)", label, len(languages))
        return self.config.default_language


def _load_from_source(source: ModelSource) -> LoadResult:
    mapped = open_byte_source(source)
    if mapped is None:
        return LoadResult(reason="unable to read model bytes")
    with mapped:
        return load_model(mapped.buffer)
