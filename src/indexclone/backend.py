"""Collection protocols for indexclone sources and destinations."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from indexclone.filters import KeysetFilter

if TYPE_CHECKING:
    from indexclone.batch import WriteAction

Document = dict[str, Any]


@dataclass
class Page:
    """One page of results from a source query."""

    documents: list[Document]
    continuation_token: str | None = None
    # Indices of documents already yielded by the previous query
    refetched: frozenset[int] = field(default_factory=frozenset)

    @property
    def is_last(self) -> bool:
        return not self.continuation_token

    def __len__(self) -> int:
        return len(self.documents)


@dataclass
class WriteOutcome:
    """Result of a single write action against a destination."""

    key: str
    succeeded: bool
    error_message: str | None = None
    status_code: int | None = None


class SourceQuery(Protocol):
    """A composed query whose results are consumed page by page."""

    def pages(self) -> Iterator[Page]: ...


class SourceCollection(Protocol):
    """Read side of a document collection."""

    def query(
        self, ordering_field: str, filter: KeysetFilter | None = None
    ) -> SourceQuery: ...


class DestinationCollection(Protocol):
    """Write side of a document collection. Writes are merge-or-upload."""

    def write(self, actions: list[WriteAction]) -> list[WriteOutcome]: ...


class DefinitionStore(Protocol):
    """Schema (index definition) access for a search service."""

    def has_definition(self, name: str) -> bool: ...

    def get_definition(self, name: str) -> Any: ...

    def put_definition(
        self, definition: Any, name: str, similarity: str | None = None
    ) -> None: ...
