"""Send write batches to a destination and tally per-document outcomes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from indexclone.backend import DestinationCollection, WriteOutcome
from indexclone.batch import WriteAction

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Counts for one flushed batch.

    Outcomes of re-fetched boundary documents are not counted here; they are
    kept in ``refetched`` so the run report can reconcile them by key against
    the first write of the same document.
    """

    actions: int = 0
    succeeded: int = 0
    failed: int = 0
    failed_keys: list[str] = field(default_factory=list)
    refetched: list[WriteOutcome] = field(default_factory=list)


class WriteSink:
    """Flushes batches to a DestinationCollection.

    Failed actions are reported and counted, never retried. Actions the
    destination returned no outcome for count as failed.
    """

    def __init__(self, destination: DestinationCollection) -> None:
        self._destination = destination

    def send(self, batch: list[WriteAction]) -> BatchResult:
        if not batch:
            return BatchResult()

        outcomes = self._destination.write(batch)
        result = BatchResult(actions=len(batch))
        for action, outcome in zip(batch, outcomes):
            if not outcome.succeeded:
                logger.warning(
                    "Failed to write document with key value %s: %s",
                    outcome.key,
                    outcome.error_message or "unknown error",
                )
            if action.refetched:
                result.refetched.append(outcome)
            elif outcome.succeeded:
                result.succeeded += 1
            else:
                result.failed += 1
                result.failed_keys.append(outcome.key)

        if len(outcomes) != len(batch):
            logger.warning(
                "Destination returned %d outcomes for %d actions",
                len(outcomes),
                len(batch),
            )
            result.failed += max(len(batch) - len(outcomes), 0)

        logger.info(
            "Batch indexed: %d actions, %d succeeded, %d failed",
            result.actions,
            result.succeeded + sum(1 for o in result.refetched if o.succeeded),
            result.failed + sum(1 for o in result.refetched if not o.succeeded),
        )
        return result
