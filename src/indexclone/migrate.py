"""Migrate documents between search collections."""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field

from indexclone.backend import DestinationCollection, SourceCollection
from indexclone.batch import BatchAccumulator
from indexclone.config import MigrationConfig
from indexclone.errors import PaginationError
from indexclone.filters import KeysetFilter
from indexclone.mapping import DocumentMapper, identity
from indexclone.pager import KeysetPager
from indexclone.sink import BatchResult, WriteSink

logger = logging.getLogger(__name__)


class MigrationState(enum.Enum):
    INIT = "init"
    PAGING = "paging"
    FLUSHING = "flushing"
    RECOMPOSING = "recomposing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RunReport:
    """Run-level totals.

    Each source document counts once in `succeeded` or `failed`; extra writes of
    re-fetched boundary documents count in `duplicates`. The only counter that
    can shrink is `failed`, when a re-fetched write lands a document whose first
    write failed.
    """

    succeeded: int = 0
    failed: int = 0
    duplicates: int = 0
    actions: int = 0
    batches: int = 0
    queries: int = 0
    pages: int = 0
    failed_keys: list[str] = field(default_factory=list)
    elapsed: float = 0.0
    state: MigrationState = MigrationState.INIT
    batch_sizes: list[int] = field(default_factory=list)

    def fold(self, result: BatchResult) -> None:
        """Add one flushed batch's outcomes to the totals."""
        self.batches += 1
        self.actions += result.actions
        self.succeeded += result.succeeded
        self.failed += result.failed
        self.failed_keys.extend(result.failed_keys)
        for outcome in result.refetched:
            self.duplicates += 1
            if outcome.succeeded and outcome.key in self.failed_keys:
                self.failed_keys.remove(outcome.key)
                self.failed -= 1
                self.succeeded += 1
        self.batch_sizes.append(result.actions)


class Migrator:
    """Drives a KeysetPager, maps documents, and flushes batches to a WriteSink."""

    def __init__(
        self,
        source: SourceCollection,
        destination: DestinationCollection,
        ordering_field: str,
        config: MigrationConfig | None = None,
        mapper: DocumentMapper = identity,
        start_filter: KeysetFilter | None = None,
    ) -> None:
        self._config = config or MigrationConfig()
        self._config.validate()
        self._pager = KeysetPager(
            source,
            ordering_field,
            max_records_per_query=self._config.max_records_per_query,
            start_filter=start_filter,
        )
        self._accumulator = BatchAccumulator(self._config.max_batch_size)
        self._sink = WriteSink(destination)
        self._mapper = mapper
        self.report = RunReport()

    @property
    def state(self) -> MigrationState:
        return self.report.state

    def run(self) -> RunReport:
        report = self.report
        start = time.perf_counter()
        try:
            while self._next_query():
                report.state = MigrationState.PAGING
                while (page := self._pager.next_page()) is not None:
                    report.pages += 1
                    for index, document in enumerate(page.documents):
                        self._accumulator.append(
                            self._mapper(document), refetched=index in page.refetched
                        )
                        if self._accumulator.is_full():
                            self._flush()
                            report.state = MigrationState.PAGING
                # Nothing pending may straddle a query boundary
                self._flush()
        except PaginationError as exc:
            exc.report = report
            report.state = MigrationState.FAILED
            report.elapsed = time.perf_counter() - start
            logger.error(
                "Pagination aborted after %d succeeded, %d failed in %d queries",
                report.succeeded,
                report.failed,
                report.queries,
            )
            raise

        report.state = MigrationState.DONE
        report.elapsed = time.perf_counter() - start
        return report

    def _next_query(self) -> bool:
        if self.report.state is not MigrationState.INIT:
            self.report.state = MigrationState.RECOMPOSING
        more = self._pager.advance()
        self.report.queries = self._pager.queries
        return more

    def _flush(self) -> None:
        if not self._accumulator:
            return
        self.report.state = MigrationState.FLUSHING
        self.report.fold(self._sink.send(self._accumulator.drain()))


def migrate(
    source: SourceCollection,
    destination: DestinationCollection,
    ordering_field: str,
    config: MigrationConfig | None = None,
    mapper: DocumentMapper = identity,
    start_filter: KeysetFilter | None = None,
) -> RunReport:
    """Copy every document from source to destination.

    Returns the run report. Raises PaginationError if keyset pagination cannot
    continue; batches flushed before the error stay written.
    """
    migrator = Migrator(source, destination, ordering_field, config, mapper, start_filter)
    report = migrator.run()
    logger.info(
        "Migrated %d successfully, %d failed (%d actions, %d re-fetched) in %.2fs",
        report.succeeded,
        report.failed,
        report.actions,
        report.duplicates,
        report.elapsed,
    )
    return report
