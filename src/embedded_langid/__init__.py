"""
embedded_langid package exports convenience helpers for library consumers.
"""

from __future__ import annotations

from .classifier import LanguageClassifier
from .config import (
    ClassifierConfig,
    FeatureExtractionOptions,
    FeatureSpec,
    LangIdSettings,
    config_from_dict,
    config_from_yaml,
    load_config,
)
from .features import HashedFeatureExtractor, RelevantScriptFeature, build_extractor
from .models import FeatureVector, Token
from .tokenization import Tokenizer, tokenize_text

__all__ = [
    "ClassifierConfig",
    "FeatureExtractionOptions",
    "FeatureSpec",
    "FeatureVector",
    "HashedFeatureExtractor",
    "LangIdSettings",
    "LanguageClassifier",
    "RelevantScriptFeature",
    "Token",
    "Tokenizer",
    "build_extractor",
    "config_from_dict",
    "config_from_yaml",
    "load_config",
    "tokenize_text",
]

__version__ = "0.1.0"
