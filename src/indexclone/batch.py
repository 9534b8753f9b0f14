"""Size-bounded write batches."""

from __future__ import annotations

from dataclasses import dataclass

from indexclone.backend import Document

MERGE_OR_UPLOAD = "mergeOrUpload"


@dataclass
class WriteAction:
    """A single upsert of one document into the destination."""

    document: Document
    action: str = MERGE_OR_UPLOAD
    refetched: bool = False


class BatchAccumulator:
    """Collects write actions until ``max_batch_size`` is reached.

    The accumulator performs no validation of document shape; callers check
    ``is_full()`` after each append and ``drain()`` to hand the batch off.
    """

    def __init__(self, max_batch_size: int) -> None:
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be >= 1")
        self._max_batch_size = max_batch_size
        self._actions: list[WriteAction] = []

    @property
    def max_batch_size(self) -> int:
        return self._max_batch_size

    def append(self, document: Document, refetched: bool = False) -> None:
        self._actions.append(WriteAction(document=document, refetched=refetched))

    def is_full(self) -> bool:
        return len(self._actions) >= self._max_batch_size

    def drain(self) -> list[WriteAction]:
        """Return the current batch and start a new, empty one."""
        batch = self._actions
        self._actions = []
        return batch

    def __len__(self) -> int:
        return len(self._actions)

    def __bool__(self) -> bool:
        return bool(self._actions)
