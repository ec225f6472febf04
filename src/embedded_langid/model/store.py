"""
Parsing and validation of language-identification model files.

Every check runs before any parsed array is handed to the network, so a
corrupt or adversarial model can only ever produce a failed ``LoadResult``.
"""

from __future__ import annotations

import io
import json
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Sequence, cast

import numpy as np

from ..config import FeatureSpec
from ..features import FeatureExtractor, build_extractor
from ..network import ACTIVATIONS, COMBINERS, EmbeddingTable, Layer, NetworkParams
from .byte_source import ModelBuffer
from .container import ModelContainer, ModelLoadError, TaskSpec, write_container

np = cast(Any, np)

NETWORK_INPUT = "language-identifier-network"
LANGUAGES_INPUT = "language-name-id-map"
NETWORK_PART = "network.npz"
LANGUAGES_PART = "languages.json"

THRESHOLD_PARAMETER = "reliability_thresh"
FEATURES_PARAMETER = "features"
PADDING_PARAMETER = "context_padding"


@dataclass(slots=True)
class LoadedModel:
    task_spec: TaskSpec
    features: List[FeatureSpec]
    extractors: List[FeatureExtractor]
    params: NetworkParams
    languages: List[str]
    probability_threshold: float
    context_padding: int = 0


@dataclass(slots=True)
class LoadResult:
    """Outcome of ``load_model``: a model, or the reason there is none."""

    model: Optional[LoadedModel] = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.model is not None


@dataclass(slots=True)
class _ArrayReader:
    archive: Any

    def get(self, key: str) -> Any:
        try:
            return self.archive[key]
        except KeyError as exc:
            raise ModelLoadError(f"Network parameters missing array {key}") from exc

    def floats(self, key: str, ndim: int) -> Any:
        array = self.get(key)
        if array.ndim != ndim or array.dtype.kind not in "fiu":
            raise ModelLoadError(
                f"Array {key} must be a {ndim}-d numeric array, got shape {array.shape}"
            )
        copied = np.array(array, dtype=np.float32)
        copied.setflags(write=False)
        return copied

    def strings(self, key: str) -> List[str]:
        array = self.get(key)
        if array.ndim != 1 or array.dtype.kind != "U":
            raise ModelLoadError(f"Array {key} must be a 1-d string array")
        return [str(value) for value in array.tolist()]


def parse_network_params(data: bytes) -> NetworkParams:
    """Parse an ``.npz`` network blob and validate the layer chain."""
    try:
        archive = np.load(io.BytesIO(data), allow_pickle=False)
    except (OSError, ValueError, EOFError, zipfile.BadZipFile) as exc:
        raise ModelLoadError(f"Unable to parse network parameters: {exc}") from exc
    if not hasattr(archive, "files"):
        raise ModelLoadError("Network parameters must be an npz archive")

    try:
        reader = _ArrayReader(archive)
        names = reader.strings("embedding_names")
        if not names:
            raise ModelLoadError("Network parameters declare no embeddings")
        combiners = (
            reader.strings("embedding_combiners")
            if "embedding_combiners" in archive.files
            else ["sum"] * len(names)
        )
        if len(combiners) != len(names):
            raise ModelLoadError("Need exactly one combiner per embedding")

        embeddings: List[EmbeddingTable] = []
        for idx, (name, combiner) in enumerate(zip(names, combiners)):
            if combiner not in COMBINERS:
                raise ModelLoadError(f"Unknown combiner {combiner!r} for embedding {name}")
            weights = reader.floats(f"embedding_{idx}", ndim=2)
            if weights.shape[0] == 0 or weights.shape[1] == 0:
                raise ModelLoadError(f"Embedding {name} is empty")
            embeddings.append(EmbeddingTable(name=name, weights=weights, combiner=combiner))

        activations = reader.strings("layer_activations")
        if not activations:
            raise ModelLoadError("Network parameters declare no layers")
        layers: List[Layer] = []
        for idx, activation in enumerate(activations):
            if activation not in ACTIVATIONS:
                raise ModelLoadError(f"Unknown activation {activation!r} for layer {idx}")
            weights = reader.floats(f"layer_{idx}_weights", ndim=2)
            bias = reader.floats(f"layer_{idx}_bias", ndim=1)
            if bias.shape[0] != weights.shape[1]:
                raise ModelLoadError(
                    f"Layer {idx} bias has {bias.shape[0]} entries for "
                    f"{weights.shape[1]} outputs"
                )
            if layers and layers[-1].output_dim != weights.shape[0]:
                raise ModelLoadError(
                    f"Layer {idx} expects {weights.shape[0]} inputs but layer "
                    f"{idx - 1} produces {layers[-1].output_dim}"
                )
            layers.append(Layer(weights=weights, bias=bias, activation=activation))
    except (OSError, ValueError, EOFError, zipfile.BadZipFile) as exc:
        raise ModelLoadError(f"Corrupt network parameters: {exc}") from exc
    finally:
        archive.close()

    return NetworkParams(embeddings=embeddings, layers=layers)


def _parse_list_of_strings(data: str | bytes, what: str) -> List[str]:
    try:
        parsed = json.loads(data)
    except (UnicodeDecodeError, ValueError) as exc:
        raise ModelLoadError(f"Unable to parse {what}: {exc}") from exc
    if not isinstance(parsed, list) or not all(isinstance(v, str) for v in parsed):
        raise ModelLoadError(f"{what} is not a list of strings")
    return parsed


def parse_language_list(data: bytes) -> List[str]:
    """
    Parse the known-language list.

    The blob is a list of records holding exactly one record, and that
    record is itself a serialized list of language codes.
    """
    records = _parse_list_of_strings(data, f"TaskInput {LANGUAGES_INPUT}")
    if len(records) != 1:
        raise ModelLoadError(
            f"Wrong number of records in TaskInput {LANGUAGES_INPUT} : {len(records)}"
        )
    languages = _parse_list_of_strings(records[0], "dictionary with known languages")
    if not languages:
        raise ModelLoadError("Dictionary with known languages is empty")
    return languages


def parse_feature_specs(task_spec: TaskSpec) -> List[FeatureSpec]:
    raw = task_spec.parameters.get(FEATURES_PARAMETER)
    if not isinstance(raw, list) or not raw:
        raise ModelLoadError(f"Parameter {FEATURES_PARAMETER} must be a non-empty list")
    try:
        return [FeatureSpec.from_mapping(item) for item in raw]
    except (TypeError, ValueError, OverflowError) as exc:
        raise ModelLoadError(f"Invalid feature spec: {exc}") from exc


def _check_consistency(
    params: NetworkParams, extractors: Sequence[FeatureExtractor], languages: List[str]
) -> None:
    if len(params.embeddings) != len(extractors):
        raise ModelLoadError(
            f"Model declares {len(extractors)} features but "
            f"{len(params.embeddings)} embeddings"
        )
    for table, extractor in zip(params.embeddings, extractors):
        if table.rows != extractor.vocabulary_size:
            raise ModelLoadError(
                f"Embedding {table.name} has {table.rows} rows, feature emits ids "
                f"in [0, {extractor.vocabulary_size})"
            )
    input_dim = params.embedding_dim + sum(ex.dense_dim for ex in extractors)
    if params.layers[0].input_dim != input_dim:
        raise ModelLoadError(
            f"First layer expects {params.layers[0].input_dim} inputs, "
            f"features produce {input_dim}"
        )
    if params.output_dim != len(languages):
        raise ModelLoadError(
            f"Network has {params.output_dim} outputs for {len(languages)} languages"
        )


def _load(data: ModelBuffer) -> LoadedModel:
    with ModelContainer(data) as container:
        task_spec = container.task_spec
        if not task_spec.has(THRESHOLD_PARAMETER):
            raise ModelLoadError(f"Missing required parameter {THRESHOLD_PARAMETER}")
        threshold = task_spec.get(THRESHOLD_PARAMETER, 0.0)
        padding = task_spec.get(PADDING_PARAMETER, 0)
        if padding < 0:
            raise ModelLoadError(f"{PADDING_PARAMETER} must not be negative")

        features = parse_feature_specs(task_spec)
        params = parse_network_params(container.read_input(NETWORK_INPUT))
        languages = parse_language_list(container.read_input(LANGUAGES_INPUT))

    extractors = [build_extractor(spec) for spec in features]
    _check_consistency(params, extractors, languages)
    return LoadedModel(
        task_spec=task_spec,
        features=features,
        extractors=extractors,
        params=params,
        languages=languages,
        probability_threshold=threshold,
        context_padding=padding,
    )


def load_model(data: ModelBuffer) -> LoadResult:
    """Parse model bytes; never raises for malformed input."""
    try:
        return LoadResult(model=_load(data))
    except ModelLoadError as exc:
        return LoadResult(reason=str(exc))
    except (TypeError, ValueError, OverflowError) as exc:
        return LoadResult(reason=f"Malformed model: {exc}")


def build_network_blob(params: NetworkParams) -> bytes:
    arrays: dict[str, Any] = {
        "embedding_names": np.array([table.name for table in params.embeddings]),
        "embedding_combiners": np.array([table.combiner for table in params.embeddings]),
        "layer_activations": np.array([layer.activation for layer in params.layers]),
    }
    for idx, table in enumerate(params.embeddings):
        arrays[f"embedding_{idx}"] = np.asarray(table.weights, dtype=np.float32)
    for idx, layer in enumerate(params.layers):
        arrays[f"layer_{idx}_weights"] = np.asarray(layer.weights, dtype=np.float32)
        arrays[f"layer_{idx}_bias"] = np.asarray(layer.bias, dtype=np.float32)
    buffer = io.BytesIO()
    np.savez(buffer, **arrays)
    return buffer.getvalue()


def build_language_blob(languages: Sequence[str]) -> bytes:
    return json.dumps([json.dumps(list(languages))]).encode("utf-8")


def build_model_bytes(
    params: NetworkParams,
    languages: Sequence[str],
    features: Sequence[FeatureSpec],
    probability_threshold: float = 0.5,
    context_padding: int = 0,
) -> bytes:
    """Serialize a model into the archive format read by ``load_model``."""
    task_spec = TaskSpec(
        parameters={
            THRESHOLD_PARAMETER: float(probability_threshold),
            PADDING_PARAMETER: int(context_padding),
            FEATURES_PARAMETER: [spec.to_dict() for spec in features],
        },
        inputs={NETWORK_INPUT: [NETWORK_PART], LANGUAGES_INPUT: [LANGUAGES_PART]},
    )
    buffer = io.BytesIO()
    write_container(
        buffer,
        task_spec,
        {
            NETWORK_PART: build_network_blob(params),
            LANGUAGES_PART: build_language_blob(languages),
        },
    )
    return buffer.getvalue()


def save_model(
    path: Path,
    params: NetworkParams,
    languages: Sequence[str],
    features: Sequence[FeatureSpec],
    probability_threshold: float = 0.5,
    context_padding: int = 0,
) -> None:
    """Persist a model archive to ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(
        build_model_bytes(
            params, languages, features, probability_threshold, context_padding
        )
    )
