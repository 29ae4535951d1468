"""Tests for model and log persistence."""

import json

import numpy as np
import pytest

from sachi.core.event_log import LogEntry
from sachi.core.persistence import (
    ModelFileError,
    export_model,
    import_model,
    load_log,
    load_model,
    save_log,
    save_model
)
from sachi.core.prototype_store import PrototypeStore


@pytest.fixture
def store() -> PrototypeStore:
    store = PrototypeStore()
    store.train("kettle", np.array([0.1, 0.2, 0.3, 0.4]))
    store.train("kettle", np.array([0.3, 0.3, 0.2, 0.2]))
    store.train("door", np.array([1.0 / 3, 1.0 / 7, 0.0, 0.5]))
    return store


def test_model_round_trip_preserves_vectors(tmp_path, store):
    path = tmp_path / "model.json"
    save_model(path, store)

    restored = load_model(path, PrototypeStore())
    assert restored.labels == ["kettle", "door"]
    for label in restored.labels:
        np.testing.assert_array_equal(restored.get(label).vector, store.get(label).vector)
    assert restored.get("kettle").example_count == 2


def test_saved_model_shape(tmp_path, store):
    path = tmp_path / "model.json"
    export_model(path, store)
    data = json.loads(path.read_text())
    assert data["version"] == 1
    assert set(data["prototypes"][0]) == {"label", "vector", "exampleCount"}


def test_load_missing_or_malformed_model_is_empty(tmp_path):
    assert len(load_model(tmp_path / "absent.json", PrototypeStore())) == 0

    path = tmp_path / "broken.json"
    path.write_text("{not json")
    assert len(load_model(path, PrototypeStore())) == 0

    path.write_text(json.dumps({"version": 1, "prototypes": [{"label": "", "vector": []}]}))
    assert len(load_model(path, PrototypeStore())) == 0


def test_load_legacy_list(tmp_path):
    path = tmp_path / "legacy.json"
    path.write_text(json.dumps([{"label": "bell", "vector": [0.5, 0.5], "examples": 3}]))
    store = load_model(path, PrototypeStore())
    assert store.get("bell").example_count == 3


def test_import_merge_overwrites_same_label(tmp_path, store):
    path = tmp_path / "incoming.json"
    path.write_text(json.dumps({"version": 1, "prototypes": [
        {"label": "door", "vector": [0.0, 1.0, 0.0, 0.0], "exampleCount": 4},
        {"label": "bell", "vector": [0.25, 0.25, 0.25, 0.25], "exampleCount": 1},
    ]}))

    assert import_model(path, store) == 2
    assert store.labels == ["kettle", "door", "bell"]
    assert store.get("door").example_count == 4


def test_import_replace_drops_existing(tmp_path, store):
    path = tmp_path / "incoming.json"
    path.write_text(json.dumps({"version": 1, "prototypes": [
        {"label": "bell", "vector": [0.25, 0.25, 0.25, 0.25], "exampleCount": 1},
    ]}))
    import_model(path, store, mode="replace")
    assert store.labels == ["bell"]


@pytest.mark.parametrize("content", [
    "[1, 2",
    json.dumps({"prototypes": [{"label": "x", "vector": [0.1, "a"]}]}),
    json.dumps({"prototypes": [{"label": "ok", "vector": [0.1]}, {"vector": [0.2]}]}),
    json.dumps({"prototypes": [{"label": "x", "vector": [0.1], "exampleCount": 0}]}),
    json.dumps("just a string"),
])
def test_invalid_import_leaves_store_untouched(tmp_path, store, content):
    path = tmp_path / "bad.json"
    path.write_text(content)
    before = {p.label: p.vector.copy() for p in store}

    with pytest.raises(ModelFileError):
        import_model(path, store, mode="replace")

    assert store.labels == list(before)
    for label, vector in before.items():
        np.testing.assert_array_equal(store.get(label).vector, vector)


def test_import_unknown_mode(tmp_path, store):
    with pytest.raises(ValueError):
        import_model(tmp_path / "x.json", store, mode="append")


def test_log_round_trip(tmp_path):
    from datetime import datetime, timezone

    entries = [
        LogEntry(datetime(2024, 1, 1, tzinfo=timezone.utc), "Dog", 0.7, 0.65, "Left", "fa-dog"),
        LogEntry(datetime(2024, 1, 1, 0, 0, 5, tzinfo=timezone.utc), "kettle", 0.9, None, "Unknown", "fa-wave-square"),
    ]
    path = tmp_path / "nested" / "logs.json"
    save_log(path, entries)
    assert load_log(path) == entries


def test_load_malformed_log_is_empty(tmp_path):
    path = tmp_path / "logs.json"
    path.write_text(json.dumps({"label": "not a list"}))
    assert load_log(path) == []
    path.write_text(json.dumps([{"label": "no timestamp"}]))
    assert load_log(path) == []
    assert load_log(tmp_path / "absent.json") == []
