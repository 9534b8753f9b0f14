"""indexclone command line: copy an Azure AI Search index between services."""

from __future__ import annotations

import argparse
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Any

from azure.core.exceptions import AzureError

from indexclone.backends.azure_search import AzureIndexDefinitions, AzureSearchCollection
from indexclone.config import DEFAULT_CONFIG_PATH, SIMILARITY_CHOICES, MigrationConfig
from indexclone.definition import clone_definition_if_missing
from indexclone.errors import ArgumentError, ConfigError, PaginationError
from indexclone.filters import KeysetFilter
from indexclone.mapping import build_mapper
from indexclone.migrate import RunReport, migrate

logger = logging.getLogger(__name__)

# Leading zeros, underscores and sexagesimal forms stay strings
_INT_RE = re.compile(r"-?(0|[1-9]\d*)")
_FLOAT_RE = re.compile(r"-?(0|[1-9]\d*)\.\d+")

HELP_PARAMS = frozenset({"/?", "/h", "--help", "help", "-H", "-h"})

USAGE = (
    "usage: indexclone <source-service> <source-key> <destination-service> "
    "<destination-key> <index-name> <ordering-field> [copy-definition] "
    "[--destination-index NAME] [--config PATH] [--max-batch-size N] "
    "[--max-records-per-query N] [--resume-from VALUE] [--similarity {BM25,classic,none}] "
    "[--log-level LEVEL]"
)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def is_help_param(value: str) -> bool:
    return value in HELP_PARAMS


def parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ArgumentError(f"copy-definition must be 'true' or 'false', got {value!r}")


def parse_scalar(value: str) -> Any:
    """Read a command-line value as a number where it is written as one.

    Anything else stays a string; format_filter_value renders booleans and
    dates bare and quotes the rest.
    """
    if _INT_RE.fullmatch(value):
        return int(value)
    if _FLOAT_RE.fullmatch(value):
        return float(value)
    return value


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of exiting."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise ArgumentError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(prog="indexclone", usage=USAGE, add_help=False)
    parser.add_argument("source_service", help="Source search service name or URL")
    parser.add_argument("source_key", help="Source admin key")
    parser.add_argument("destination_service", help="Destination search service name or URL")
    parser.add_argument("destination_key", help="Destination admin key")
    parser.add_argument("index_name", help="Index to copy")
    parser.add_argument("ordering_field", help="Sortable, filterable field used for keyset paging")
    parser.add_argument("copy_definition", nargs="?", default=None, help="true to copy the index definition")
    parser.add_argument("--destination-index", default=None, help="Destination index name (default: same as source)")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to config file")
    parser.add_argument("--max-batch-size", type=int, default=None, help="Documents per write batch")
    parser.add_argument("--max-records-per-query", type=int, default=None, help="Records read before recomposing the query")
    parser.add_argument("--resume-from", default=None, metavar="VALUE", help="Start at ordering field >= VALUE")
    parser.add_argument("--similarity", choices=[*SIMILARITY_CHOICES, "none"], default=None, help="Similarity algorithm for copied definitions")
    parser.add_argument("--log-level", default=None, help="Logging level (default: INFO)")
    return parser


def parse_args(argv: list[str]) -> argparse.Namespace:
    args = build_parser().parse_args(argv)
    if args.copy_definition is not None:
        args.copy_definition = parse_bool(args.copy_definition)
    return args


def load_config(args: argparse.Namespace) -> MigrationConfig:
    """Read the config file and apply command-line overrides."""
    config = MigrationConfig.load(args.config)
    if args.max_batch_size is not None:
        config.max_batch_size = args.max_batch_size
    if args.max_records_per_query is not None:
        config.max_records_per_query = args.max_records_per_query
    if args.copy_definition is not None:
        config.copy_definition = args.copy_definition
    if args.similarity is not None:
        config.similarity = None if args.similarity == "none" else args.similarity
    if args.log_level is not None:
        config.log_level = args.log_level
    config.validate()
    return config


def run(args: argparse.Namespace, config: MigrationConfig) -> RunReport:
    """Optionally copy the index definition, then migrate every document."""
    destination_index = args.destination_index or args.index_name
    source = AzureSearchCollection(
        args.source_service, args.source_key, args.index_name, retry_total=config.retry_total
    )
    destination = AzureSearchCollection(
        args.destination_service, args.destination_key, destination_index,
        retry_total=config.retry_total,
    )

    print(f"Migration started {datetime.now(timezone.utc).isoformat()}")
    if config.copy_definition:
        clone_definition_if_missing(
            AzureIndexDefinitions(args.source_service, args.source_key, retry_total=config.retry_total),
            AzureIndexDefinitions(args.destination_service, args.destination_key, retry_total=config.retry_total),
            args.index_name,
            destination_index,
            similarity=config.similarity,
        )

    print(f"Commencing data migration for {args.index_name} to {destination.endpoint}")
    start_filter = (
        KeysetFilter(args.ordering_field, parse_scalar(args.resume_from)) if args.resume_from else None
    )
    return migrate(
        source,
        destination,
        args.ordering_field,
        config=config,
        mapper=build_mapper(config.field_map, config.exclude_fields),
        start_filter=start_filter,
    )


def format_report(report: RunReport) -> str:
    lines = [
        f"Migrated {report.succeeded} successfully, {report.failed} failed",
        f"Migration took {report.elapsed:.2f}s",
    ]
    if report.duplicates:
        lines.append(f"Re-fetched boundary documents rewritten: {report.duplicates}")
    if report.failed_keys:
        lines.append("Failed keys: " + ", ".join(report.failed_keys))
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    """Entry point for the indexclone command."""
    argv = list(sys.argv[1:] if argv is None else argv)

    if len(argv) == 1 and is_help_param(argv[0]):
        print(USAGE)
        return EXIT_OK

    try:
        args = parse_args(argv)
        config = load_config(args)
    except (ArgumentError, ConfigError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        print(USAGE, file=sys.stderr)
        return EXIT_USAGE

    logging.basicConfig(level=config.log_level.upper(), stream=sys.stderr)

    try:
        report = run(args, config)
    except PaginationError as exc:
        logger.error("Migration stopped: %s", exc)
        if exc.report is not None:
            print(format_report(exc.report))
        return EXIT_FAILED
    except AzureError:
        logger.exception("Migration failed")
        return EXIT_FAILED
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return EXIT_INTERRUPTED

    print(format_report(report))
    print(f"Migration completed {datetime.now(timezone.utc).isoformat()}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
