import io
import json
import zipfile

import numpy as np
import pytest

from embedded_langid.model.container import TASK_SPEC_NAME, ModelContainer, ModelLoadError
from embedded_langid.model.store import (
    LANGUAGES_INPUT,
    NETWORK_INPUT,
    build_language_blob,
    build_network_blob,
    load_model,
    parse_language_list,
)
from embedded_langid.network import Layer, NetworkParams
from tests.utils import (
    FEATURES,
    chargram_spec,
    constant_params,
    model_archive,
    random_model_bytes,
)


def test_valid_model_loads():
    result = load_model(model_archive())

    assert result.ok
    assert result.model.languages == ["en", "fr"]
    assert result.model.probability_threshold == 0.5
    assert result.model.params.output_dim == 2
    assert not result.model.params.layers[0].weights.flags.writeable


def test_model_with_script_feature_and_dense_values_loads():
    result = load_model(random_model_bytes())
    assert result.ok, result.reason
    assert result.model.context_padding == 1
    assert [spec.kind for spec in result.model.features] == [
        "hashed-chargrams",
        "relevant-script",
    ]


def test_missing_network_input_is_rejected():
    result = load_model(model_archive(inputs={LANGUAGES_INPUT: ["languages.json"]}))
    assert not result.ok
    assert NETWORK_INPUT in result.reason


def test_input_with_two_parts_is_rejected():
    result = load_model(
        model_archive(
            inputs={
                NETWORK_INPUT: ["network.npz", "network.npz"],
                LANGUAGES_INPUT: ["languages.json"],
            }
        )
    )
    assert not result.ok
    assert "2 parts" in result.reason


def test_missing_archive_member_is_rejected():
    parts = {"languages.json": build_language_blob(["en", "fr"])}
    assert not load_model(model_archive(parts=parts)).ok


def test_language_list_needs_exactly_one_record():
    parts = {
        "network.npz": build_network_blob(constant_params([0.9, 0.1], FEATURES)),
        "languages.json": json.dumps(['["en", "fr"]', '["de"]']).encode(),
    }
    result = load_model(model_archive(parts=parts))
    assert not result.ok
    assert "Wrong number of records" in result.reason


def test_language_record_must_be_a_list_of_strings():
    assert parse_language_list(build_language_blob(["en", "fr"])) == ["en", "fr"]

    parts = {
        "network.npz": build_network_blob(constant_params([0.9, 0.1], FEATURES)),
        "languages.json": json.dumps(['{"en": 0}']).encode(),
    }
    assert not load_model(model_archive(parts=parts)).ok


def test_language_count_must_match_output_dimension():
    result = load_model(model_archive(languages=("en", "fr", "de")))
    assert not result.ok
    assert "3 languages" in result.reason


def test_layer_dimension_mismatch_is_rejected():
    params = constant_params([0.5, 0.5], FEATURES)
    broken = NetworkParams(
        embeddings=params.embeddings,
        layers=[
            Layer(
                weights=np.zeros((4, 3), dtype=np.float32),
                bias=np.zeros(3, dtype=np.float32),
            ),
            Layer(
                weights=np.zeros((5, 2), dtype=np.float32),
                bias=np.zeros(2, dtype=np.float32),
                activation="identity",
            ),
        ],
    )
    result = load_model(model_archive(params=broken))
    assert not result.ok
    assert "expects 5 inputs" in result.reason


def test_embedding_rows_must_match_bucket_count():
    features = [chargram_spec(num_buckets=32)]
    params = constant_params([0.9, 0.1], features)
    result = load_model(model_archive(params=params))
    assert not result.ok
    assert "32 rows" in result.reason


def test_unknown_activation_is_rejected():
    params = constant_params([0.9, 0.1], FEATURES)
    broken = NetworkParams(
        embeddings=params.embeddings,
        layers=[Layer(params.layers[0].weights, params.layers[0].bias, "softsign")],
    )
    assert not load_model(model_archive(params=broken)).ok


def test_threshold_parameter_is_required():
    parameters = {"features": [spec.to_dict() for spec in FEATURES]}
    result = load_model(model_archive(parameters=parameters))
    assert not result.ok
    assert "reliability_thresh" in result.reason


def test_garbage_bytes_are_rejected():
    assert not load_model(b"").ok
    assert not load_model(b"not a model at all").ok
    assert not load_model(model_archive()[:200]).ok


def test_network_blob_that_is_not_npz_is_rejected():
    parts = {
        "network.npz": b"\x00" * 64,
        "languages.json": build_language_blob(["en", "fr"]),
    }
    assert not load_model(model_archive(parts=parts)).ok


def test_infinite_context_padding_is_rejected():
    parameters = {
        "reliability_thresh": 0.5,
        "context_padding": float("inf"),
        "features": [spec.to_dict() for spec in FEATURES],
    }
    result = load_model(model_archive(parameters=parameters))
    assert not result.ok
    assert "context_padding" in result.reason


@pytest.mark.parametrize("option", ["max_word_length", "num_buckets"])
def test_infinite_feature_option_is_rejected(option):
    feature = FEATURES[0].to_dict()
    feature["options"][option] = float("inf")
    parameters = {"reliability_thresh": 0.5, "features": [feature]}
    result = load_model(model_archive(parameters=parameters))
    assert not result.ok
    assert "Invalid feature spec" in result.reason


def test_non_mapping_task_spec_closes_archive(monkeypatch):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr(TASK_SPEC_NAME, "- just\n- a list\n")
    closed = []
    original_close = zipfile.ZipFile.close

    def _close(self):
        closed.append(self)
        original_close(self)

    monkeypatch.setattr(zipfile.ZipFile, "close", _close)

    with pytest.raises(ModelLoadError) as excinfo:
        ModelContainer(buffer.getvalue())
    assert "mapping" in str(excinfo.value)
    assert closed
    assert not load_model(buffer.getvalue()).ok
