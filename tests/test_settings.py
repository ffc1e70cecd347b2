"""Settings loading from defaults, environment, JSON and YAML files."""

from __future__ import annotations

import json
import logging
import textwrap

import pytest

from WordVectors.errors import ConfigError
from WordVectors.logging_config import JSONFormatter, setup_logging
from WordVectors.settings import LoaderSettings, load_settings


def test_defaults(loader_settings):
    settings = loader_settings()

    assert settings.vocabulary_location == "vocab.json"
    assert settings.vector_locations == ["vectors.f32"]
    assert settings.max_concurrent_fetches == 4
    assert settings.log_level == "INFO"


def test_environment_overrides(loader_settings, monkeypatch):
    loader_settings()
    monkeypatch.setenv("WORDVEC_CHUNK_SIZE_BYTES", "4096")
    monkeypatch.setenv("WORDVEC_VECTOR_LOCATIONS", '["a.part0", "a.part1"]')
    monkeypatch.setenv("WORDVEC_LOG_LEVEL", "debug")

    settings = LoaderSettings()

    assert settings.chunk_size_bytes == 4096
    assert settings.vector_locations == ["a.part0", "a.part1"]
    assert settings.log_level == "DEBUG"


def test_load_settings_reads_yaml(tmp_path, loader_settings):
    loader_settings()
    config_path = tmp_path / "wordvec.yaml"
    config_path.write_text(
        textwrap.dedent(
            """
            base_url: https://cdn.example.org/model/
            vector_locations:
              - vectors.f32.part0
              - vectors.f32.part1
            max_concurrent_fetches: 2
            """
        ).strip(),
        encoding="utf-8",
    )

    settings = load_settings(config_path)

    assert settings.base_url == "https://cdn.example.org/model/"
    assert settings.vector_locations == ["vectors.f32.part0", "vectors.f32.part1"]
    assert settings.max_concurrent_fetches == 2


def test_load_settings_reads_json(tmp_path, loader_settings):
    loader_settings()
    config_path = tmp_path / "wordvec.json"
    config_path.write_text(json.dumps({"default_top_k": 3}), encoding="utf-8")

    assert load_settings(config_path).default_top_k == 3


@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "max_concurrent_fetches: 0\n",
        "log_level: LOUD\n",
        "vector_locations: []\n",
        "key: [unclosed\n",
    ],
)
def test_load_settings_rejects_invalid_files(tmp_path, loader_settings, content):
    loader_settings()
    config_path = tmp_path / "wordvec.yaml"
    config_path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_settings(config_path)


def test_load_settings_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_settings(tmp_path / "absent.yaml")


def test_json_formatter_includes_extra_fields():
    record = logging.makeLogRecord(
        {"name": "WordVectors.test", "levelname": "INFO", "msg": "part fetched", "stage": "fetch", "bytes": 12}
    )

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "part fetched"
    assert payload["stage"] == "fetch"
    assert payload["bytes"] == 12


def test_setup_logging_is_idempotent(tmp_path):
    log_file = tmp_path / "logs" / "wordvec.jsonl"

    setup_logging("DEBUG", log_file)
    logger = setup_logging("WARNING", log_file)

    managed = [handler for handler in logger.handlers if getattr(handler, "_wordvec_managed", False)]
    assert len(managed) == 2
    assert logger.level == logging.WARNING

    logger.warning("vector part fetched", extra={"stage": "fetch", "part": 1})
    for handler in managed:
        handler.flush()
    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[-1])["part"] == 1

    for handler in managed:
        logger.removeHandler(handler)
        handler.close()
