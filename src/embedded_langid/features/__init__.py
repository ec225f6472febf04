from __future__ import annotations

from typing import Union

from ..config import FeatureSpec
from .hashing import HashedFeatureExtractor, fingerprint64
from .script import RelevantScriptFeature

FeatureExtractor = Union[HashedFeatureExtractor, RelevantScriptFeature]

__all__ = [
    "FeatureExtractor",
    "HashedFeatureExtractor",
    "RelevantScriptFeature",
    "build_extractor",
    "fingerprint64",
]


def build_extractor(spec: FeatureSpec) -> FeatureExtractor:
    """Factory for the fixed set of feature extractors."""
    if spec.kind == "hashed-chargrams":
        return HashedFeatureExtractor(spec.options)
    if spec.kind == "relevant-script":
        return RelevantScriptFeature()
    raise ValueError(f"Unknown feature kind '{spec.kind}'.")
