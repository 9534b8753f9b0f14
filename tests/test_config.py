import os

import pytest
import yaml

from indexclone.config import (
    DEFAULT_MAX_BATCH_SIZE,
    DEFAULT_MAX_RECORDS_PER_QUERY,
    MigrationConfig,
)
from indexclone.errors import ConfigError


def _write(path, raw):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(raw, f)


def test_load_config_defaults_when_missing(tmp_config_path):
    config = MigrationConfig.load(tmp_config_path)
    assert config.max_batch_size == DEFAULT_MAX_BATCH_SIZE == 9500
    assert config.max_records_per_query == DEFAULT_MAX_RECORDS_PER_QUERY == 90000
    assert config.copy_definition is False
    assert config.similarity == "BM25"
    assert config.field_map == {}


def test_load_config_reads_existing(tmp_config_path):
    _write(tmp_config_path, {
        "max_batch_size": 500,
        "max_records_per_query": 5000,
        "copy_definition": True,
        "similarity": "classic",
        "field_map": {"oldFieldOne": "newFieldOne"},
        "exclude_fields": ["internal"],
        "log_level": "debug",
    })
    config = MigrationConfig.load(tmp_config_path)
    assert config.max_batch_size == 500
    assert config.max_records_per_query == 5000
    assert config.copy_definition is True
    assert config.similarity == "classic"
    assert config.field_map == {"oldFieldOne": "newFieldOne"}
    assert config.exclude_fields == ["internal"]
    assert config.log_level == "debug"


def test_load_config_null_similarity_keeps_source(tmp_config_path):
    _write(tmp_config_path, {"similarity": None})
    assert MigrationConfig.load(tmp_config_path).similarity is None


def test_load_empty_file(tmp_config_path):
    _write(tmp_config_path, None)
    config = MigrationConfig.load(tmp_config_path)
    assert config.max_batch_size == DEFAULT_MAX_BATCH_SIZE


def test_save_config(tmp_config_path):
    config = MigrationConfig(
        config_path=tmp_config_path,
        max_batch_size=100,
        max_records_per_query=1000,
        field_map={"a": "b"},
    )
    config.save()

    with open(tmp_config_path) as f:
        raw = yaml.safe_load(f)
    assert raw["max_batch_size"] == 100
    assert raw["max_records_per_query"] == 1000
    assert raw["field_map"] == {"a": "b"}
    assert "exclude_fields" not in raw

    assert MigrationConfig.load(tmp_config_path).field_map == {"a": "b"}


def test_batch_must_be_smaller_than_window(tmp_config_path):
    _write(tmp_config_path, {"max_batch_size": 100, "max_records_per_query": 100})
    with pytest.raises(ConfigError, match="smaller than"):
        MigrationConfig.load(tmp_config_path)


@pytest.mark.parametrize("changes", [
    {"max_batch_size": 0},
    {"max_batch_size": "ten"},
    {"max_records_per_query": True},
    {"retry_total": -1},
    {"similarity": "TF-IDF"},
    {"field_map": ["a"]},
    {"exclude_fields": "a"},
    {"log_level": "chatty"},
])
def test_invalid_values_rejected(changes):
    config = MigrationConfig(**changes)
    with pytest.raises(ConfigError):
        config.validate()


def test_non_mapping_file_rejected(tmp_config_path):
    _write(tmp_config_path, ["a", "b"])
    with pytest.raises(ConfigError):
        MigrationConfig.load(tmp_config_path)
