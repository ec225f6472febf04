from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Sequence, cast

import numpy as np

from .models import FeatureVector

Array = Any
np = cast(Any, np)

COMBINERS = ("sum", "mean", "sqrtn")


def _relu(x: Array) -> Array:
    return np.maximum(x, 0.0)


def _identity(x: Array) -> Array:
    return x


def _sigmoid(x: Array) -> Array:
    return 1.0 / (1.0 + np.exp(-x))


ACTIVATIONS: Dict[str, Callable[[Array], Array]] = {
    "relu": _relu,
    "identity": _identity,
    "tanh": np.tanh,
    "sigmoid": _sigmoid,
}


@dataclass(frozen=True, slots=True)
class EmbeddingTable:
    name: str
    weights: Array
    combiner: str = "sum"

    @property
    def rows(self) -> int:
        return int(self.weights.shape[0])

    @property
    def dim(self) -> int:
        return int(self.weights.shape[1])


@dataclass(frozen=True, slots=True)
class Layer:
    weights: Array
    bias: Array
    activation: str = "relu"

    @property
    def input_dim(self) -> int:
        return int(self.weights.shape[0])

    @property
    def output_dim(self) -> int:
        return int(self.weights.shape[1])


@dataclass(frozen=True, slots=True)
class NetworkParams:
    """Immutable trained parameters: embedding tables and feed-forward layers."""

    embeddings: List[EmbeddingTable]
    layers: List[Layer]

    @property
    def output_dim(self) -> int:
        return self.layers[-1].output_dim

    @property
    def embedding_dim(self) -> int:
        return sum(table.dim for table in self.embeddings)


def _pool_scale(combiner: str, count: int) -> float:
    if count == 0 or combiner == "sum":
        return 1.0
    if combiner == "mean":
        return 1.0 / count
    return 1.0 / float(np.sqrt(count))


class EmbeddingNetwork:
    """
    Feed-forward evaluator over pooled sparse embeddings and dense values.

    ``features_per_domain[i]`` holds the feature vectors produced for
    embedding table ``i``. The input vector is every pooled embedding in
    table order followed by every pooled dense block in table order.
    """

    def __init__(self, params: NetworkParams, dense_dims: Sequence[int]) -> None:
        if len(dense_dims) != len(params.embeddings):
            raise ValueError("Need one dense dimension per embedding table.")
        self.params = params
        self.dense_dims = list(dense_dims)

    @property
    def input_dim(self) -> int:
        return self.params.embedding_dim + sum(self.dense_dims)

    def _pool_domain(
        self, table: EmbeddingTable, dense_dim: int, vectors: Sequence[FeatureVector]
    ) -> tuple[Array, Array]:
        ids = [feature_id for vector in vectors for feature_id in vector.sparse_ids]
        if ids:
            index = np.asarray(ids, dtype=np.int64)
            if index.min() < 0 or index.max() >= table.rows:
                raise ValueError(
                    f"Feature id outside [0, {table.rows}) for embedding {table.name}"
                )
            embedded = table.weights[index].sum(axis=0)
        else:
            embedded = np.zeros(table.dim, dtype=np.float32)

        dense = np.zeros(dense_dim, dtype=np.float32)
        for vector in vectors:
            if len(vector.dense_values) != dense_dim:
                raise ValueError(
                    f"Expected {dense_dim} dense values for embedding {table.name}, "
                    f"got {len(vector.dense_values)}"
                )
            if dense_dim:
                dense += np.asarray(vector.dense_values, dtype=np.float32)

        embedded = embedded * _pool_scale(table.combiner, len(ids))
        dense = dense * _pool_scale(table.combiner, len(vectors))
        return embedded, dense

    def compute_final_scores(
        self, features_per_domain: Sequence[Sequence[FeatureVector]]
    ) -> Array:
        """Return raw (pre-softmax) scores, one per output class."""
        if len(features_per_domain) != len(self.params.embeddings):
            raise ValueError(
                f"Expected features for {len(self.params.embeddings)} embeddings, "
                f"got {len(features_per_domain)}"
            )
        embedded_parts: List[Array] = []
        dense_parts: List[Array] = []
        for table, dense_dim, vectors in zip(
            self.params.embeddings, self.dense_dims, features_per_domain
        ):
            embedded, dense = self._pool_domain(table, dense_dim, vectors)
            embedded_parts.append(embedded)
            dense_parts.append(dense)

        x = np.concatenate(embedded_parts + dense_parts).astype(np.float32)
        for layer in self.params.layers:
            x = ACTIVATIONS[layer.activation](x @ layer.weights + layer.bias)
        return x


def compute_softmax(scores: Sequence[float] | Array) -> List[float]:
    """Numerically stable softmax; an empty input yields an empty list."""
    values = np.asarray(scores, dtype=np.float64)
    if values.size == 0:
        return []
    exps = np.exp(values - values.max())
    return [float(v) for v in exps / exps.sum()]
