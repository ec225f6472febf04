from __future__ import annotations

import io
import math
from pathlib import Path
from typing import Sequence

import numpy as np

from embedded_langid.config import FeatureExtractionOptions, FeatureSpec
from embedded_langid.features import build_extractor
from embedded_langid.model.container import TaskSpec, write_container
from embedded_langid.model.store import (
    LANGUAGES_INPUT,
    NETWORK_INPUT,
    build_language_blob,
    build_model_bytes,
    build_network_blob,
    save_model,
)
from embedded_langid.network import EmbeddingTable, Layer, NetworkParams


def chargram_spec(name: str = "chargrams", **options: object) -> FeatureSpec:
    """A hashed-chargram feature domain with small defaults for tests."""
    settings: dict[str, object] = {"num_buckets": 64, "chargram_orders": [1, 2, 3]}
    settings.update(options)
    return FeatureSpec(
        name=name,
        kind="hashed-chargrams",
        options=FeatureExtractionOptions.from_mapping(settings),
    )


def script_spec(name: str = "script") -> FeatureSpec:
    return FeatureSpec(name=name, kind="relevant-script")


def _tables(
    features: Sequence[FeatureSpec], dim: int, rng: np.random.Generator, zero: bool
) -> list[EmbeddingTable]:
    tables = []
    for spec in features:
        rows = build_extractor(spec).vocabulary_size
        weights = (
            np.zeros((rows, dim), dtype=np.float32)
            if zero
            else rng.normal(size=(rows, dim)).astype(np.float32)
        )
        tables.append(EmbeddingTable(name=spec.name, weights=weights, combiner="mean"))
    return tables


def _input_dim(features: Sequence[FeatureSpec], dim: int) -> int:
    return sum(dim + build_extractor(spec).dense_dim for spec in features)


def constant_params(
    probabilities: Sequence[float], features: Sequence[FeatureSpec], dim: int = 4
) -> NetworkParams:
    """Network whose softmax output is ``probabilities`` for every input."""
    rng = np.random.default_rng(0)
    bias = np.array([math.log(p) for p in probabilities], dtype=np.float32)
    layer = Layer(
        weights=np.zeros((_input_dim(features, dim), len(probabilities)), dtype=np.float32),
        bias=bias,
        activation="identity",
    )
    return NetworkParams(embeddings=_tables(features, dim, rng, zero=True), layers=[layer])


def random_params(
    num_languages: int,
    features: Sequence[FeatureSpec],
    dim: int = 4,
    hidden: int = 8,
    seed: int = 7,
) -> NetworkParams:
    """Small two-layer network with random weights."""
    rng = np.random.default_rng(seed)
    input_dim = _input_dim(features, dim)
    layers = [
        Layer(
            weights=rng.normal(size=(input_dim, hidden)).astype(np.float32),
            bias=rng.normal(size=hidden).astype(np.float32),
            activation="relu",
        ),
        Layer(
            weights=rng.normal(size=(hidden, num_languages)).astype(np.float32),
            bias=rng.normal(size=num_languages).astype(np.float32),
            activation="identity",
        ),
    ]
    return NetworkParams(embeddings=_tables(features, dim, rng, zero=False), layers=layers)


def constant_model_bytes(
    probabilities: Sequence[float] = (0.9, 0.1),
    languages: Sequence[str] = ("en", "fr"),
    probability_threshold: float = 0.5,
) -> bytes:
    features = [chargram_spec()]
    return build_model_bytes(
        constant_params(probabilities, features),
        languages,
        features,
        probability_threshold=probability_threshold,
    )


def random_model_bytes(
    languages: Sequence[str] = ("en", "fr", "de", "ru"), context_padding: int = 1
) -> bytes:
    features = [
        chargram_spec(
            remap_digits=True,
            extract_case_feature=True,
            regexp_features=["^[0-9]+$"],
        ),
        script_spec(),
    ]
    return build_model_bytes(
        random_params(len(languages), features),
        languages,
        features,
        context_padding=context_padding,
    )


def write_random_model(path: Path) -> Path:
    features = [chargram_spec(), script_spec()]
    save_model(path, random_params(3, features), ["en", "fr", "ru"], features)
    return path


FEATURES = [chargram_spec()]


def model_archive(
    parameters: dict | None = None,
    inputs: dict | None = None,
    parts: dict | None = None,
    params: NetworkParams | None = None,
    languages: Sequence[str] = ("en", "fr"),
) -> bytes:
    """Model archive built piece by piece so tests can break any one piece."""
    params = params or constant_params([0.9, 0.1], FEATURES)
    task_spec = TaskSpec(
        parameters=parameters
        if parameters is not None
        else {
            "reliability_thresh": 0.5,
            "features": [spec.to_dict() for spec in FEATURES],
        },
        inputs=inputs
        if inputs is not None
        else {NETWORK_INPUT: ["network.npz"], LANGUAGES_INPUT: ["languages.json"]},
    )
    if parts is None:
        parts = {
            "network.npz": build_network_blob(params),
            "languages.json": build_language_blob(languages),
        }
    buffer = io.BytesIO()
    write_container(buffer, task_spec, parts)
    return buffer.getvalue()
