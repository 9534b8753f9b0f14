"""Configuration management for indexclone."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from indexclone.errors import ConfigError

DEFAULT_CONFIG_PATH = os.path.expanduser("~/.indexclone/config.yaml")

# Azure AI Search caps $skip at 100000; stay well under it
DEFAULT_MAX_BATCH_SIZE = 9500
DEFAULT_MAX_RECORDS_PER_QUERY = 90000
DEFAULT_SIMILARITY = "BM25"
DEFAULT_RETRY_TOTAL = 3
DEFAULT_LOG_LEVEL = "INFO"

SIMILARITY_CHOICES = ("BM25", "classic")


@dataclass
class MigrationConfig:
    config_path: str = DEFAULT_CONFIG_PATH
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE
    max_records_per_query: int = DEFAULT_MAX_RECORDS_PER_QUERY
    copy_definition: bool = False
    similarity: str | None = DEFAULT_SIMILARITY
    retry_total: int = DEFAULT_RETRY_TOTAL
    field_map: dict[str, str] = field(default_factory=dict)
    exclude_fields: list[str] = field(default_factory=list)
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def load(cls, config_path: str = DEFAULT_CONFIG_PATH) -> MigrationConfig:
        path = Path(config_path)
        if not path.exists():
            return cls(config_path=config_path)

        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")

        config = cls(
            config_path=config_path,
            max_batch_size=raw.get("max_batch_size", DEFAULT_MAX_BATCH_SIZE),
            max_records_per_query=raw.get("max_records_per_query", DEFAULT_MAX_RECORDS_PER_QUERY),
            copy_definition=raw.get("copy_definition", False),
            similarity=raw.get("similarity", DEFAULT_SIMILARITY),
            retry_total=raw.get("retry_total", DEFAULT_RETRY_TOTAL),
            field_map=raw.get("field_map") or {},
            exclude_fields=raw.get("exclude_fields") or [],
            log_level=raw.get("log_level", DEFAULT_LOG_LEVEL),
        )
        config.validate()
        return config

    def save(self) -> None:
        path = Path(self.config_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        raw: dict = {
            "max_batch_size": self.max_batch_size,
            "max_records_per_query": self.max_records_per_query,
            "copy_definition": self.copy_definition,
            "similarity": self.similarity,
            "retry_total": self.retry_total,
            "log_level": self.log_level,
        }
        if self.field_map:
            raw["field_map"] = dict(self.field_map)
        if self.exclude_fields:
            raw["exclude_fields"] = list(self.exclude_fields)
        with open(path, "w") as f:
            yaml.dump(raw, f, default_flow_style=False)

    def validate(self) -> None:
        for name in ("max_batch_size", "max_records_per_query", "retry_total"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ConfigError(f"{name} must be an integer, got {value!r}")
        if self.max_batch_size < 1:
            raise ConfigError("max_batch_size must be >= 1")
        if self.max_records_per_query <= self.max_batch_size:
            raise ConfigError(
                f"max_batch_size ({self.max_batch_size}) must be smaller than "
                f"max_records_per_query ({self.max_records_per_query})"
            )
        if self.retry_total < 0:
            raise ConfigError("retry_total must be >= 0")
        if self.similarity is not None and self.similarity not in SIMILARITY_CHOICES:
            raise ConfigError(
                f"similarity must be one of {', '.join(SIMILARITY_CHOICES)} or null, "
                f"got {self.similarity!r}"
            )
        if not isinstance(self.field_map, dict):
            raise ConfigError("field_map must be a mapping of old name to new name")
        if not isinstance(self.exclude_fields, list):
            raise ConfigError("exclude_fields must be a list of field names")
        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise ConfigError(f"Unknown log_level {self.log_level!r}")
