"""Tests for the command-line entry point."""

import json

import numpy as np
import pytest
import yaml
from scipy.io import wavfile

from sachi import main as cli
from sachi.audio import capture as capture_module

from conftest import FakeCapture


@pytest.fixture
def settings(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.safe_dump({
        "system": {"data_dir": str(tmp_path / "data"), "log_level": "WARNING"},
        "audio": {"embedding": {"provider": "none"}},
    }))
    return path


def run(settings, *argv) -> int:
    return cli.main(["--config", str(settings), *argv])


def write_tone(path, freq):
    tone = 0.4 * np.sin(2 * np.pi * freq * np.arange(16000) / 16000)
    wavfile.write(path, 16000, tone.astype(np.float32))
    return str(path)


def test_train_list_delete(settings, tmp_path, capsys):
    wav = write_tone(tmp_path / "hum.wav", 200)
    assert run(settings, "train", "hum", wav, wav) == 0
    assert "hum: 2 examples" in capsys.readouterr().out

    assert run(settings, "labels") == 0
    assert "hum" in capsys.readouterr().out

    assert run(settings, "delete", "hum") == 0
    assert run(settings, "delete", "hum") == 1


def test_train_missing_file_fails(settings, tmp_path):
    assert run(settings, "train", "hum", str(tmp_path / "absent.wav")) == 1


def test_model_export_import(settings, tmp_path):
    run(settings, "train", "hum", write_tone(tmp_path / "a.wav", 200))
    exported = tmp_path / "shared.json"
    assert run(settings, "export-model", str(exported)) == 0
    assert json.loads(exported.read_text())["prototypes"][0]["label"] == "hum"

    assert run(settings, "reset") == 0
    assert run(settings, "import-model", str(exported), "--replace") == 0
    model = json.loads((tmp_path / "data" / "sachi_model_v1.json").read_text())
    assert [p["label"] for p in model["prototypes"]] == ["hum"]


def test_invalid_import_fails(settings, tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{")
    assert run(settings, "import-model", str(bad)) == 1


def test_export_empty_logs_fails(settings, tmp_path):
    assert run(settings, "export-logs", str(tmp_path / "out.csv")) == 1


def test_export_and_clear_logs(settings, tmp_path):
    log_file = tmp_path / "data" / "sachi_logs_v1.json"
    log_file.parent.mkdir(parents=True)
    log_file.write_text(json.dumps([{
        "timestamp": "2024-01-01T00:00:00+00:00", "label": "Dog", "similarity": 0.5,
        "confidence": 0.5, "direction": "Left", "icon_hint": "fa-dog",
    }]))

    out = tmp_path / "out.csv"
    assert run(settings, "export-logs", str(out), "--format", "csv") == 0
    assert out.read_text().startswith('"when","label"')

    assert run(settings, "clear-logs") == 0
    assert json.loads(log_file.read_text()) == []


def test_listen_capture_failure(settings, monkeypatch):
    monkeypatch.setattr(capture_module, "AudioCapture", lambda **kwargs: FakeCapture(fail=True))
    assert run(settings, "listen", "--duration", "0.1") == 1
