"""In-process collection backend for indexclone.

Behaves like a search index as far as the migration engine can tell: results
are ordered by the requested field with missing values first, filters are
inclusive lower bounds, pages carry continuation tokens, and reading past the
result window is an error. Writes merge fields into existing documents.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Iterator

from indexclone.backend import Document, Page, WriteOutcome
from indexclone.batch import WriteAction
from indexclone.filters import KeysetFilter, comparable_value


class ResultWindowExceeded(RuntimeError):
    """A query tried to skip past the collection's result window."""


class MemoryQuery:
    """SourceQuery over a snapshot of a MemoryCollection."""

    def __init__(
        self,
        documents: list[Document],
        page_size: int,
        result_window: int | None,
    ) -> None:
        self._documents = documents
        self._page_size = page_size
        self._result_window = result_window
        self.pages_read = 0

    def pages(self) -> Iterator[Page]:
        skip = 0
        while True:
            if self._result_window is not None and skip >= self._result_window:
                raise ResultWindowExceeded(
                    f"skip={skip} is past the result window of {self._result_window}"
                )
            chunk = self._documents[skip:skip + self._page_size]
            skip += len(chunk)
            more = skip < len(self._documents)
            self.pages_read += 1
            yield Page(
                documents=[copy.deepcopy(d) for d in chunk],
                continuation_token=str(skip) if more else None,
            )
            if not more:
                return


class MemoryCollection:
    """SourceCollection, DestinationCollection and DefinitionStore in one dict."""

    def __init__(
        self,
        documents: Iterable[Document] | None = None,
        key_field: str = "id",
        page_size: int = 50,
        result_window: int | None = None,
        fail_keys: Iterable[str] = (),
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self.key_field = key_field
        self.page_size = page_size
        self.result_window = result_window
        self.fail_keys = set(fail_keys)
        self._documents: dict[str, Document] = {}
        self.definitions: dict[str, dict] = {}
        self.filters: list[str | None] = []
        self.write_sizes: list[int] = []
        self.queries: list[MemoryQuery] = []
        for document in documents or ():
            self._documents[str(document[key_field])] = dict(document)

    def query(self, ordering_field: str, filter: KeysetFilter | None = None) -> MemoryQuery:
        self.filters.append(filter.to_odata() if filter else None)
        matching = [
            d for d in self._documents.values() if filter is None or filter.matches(d)
        ]
        matching.sort(key=lambda d: self._sort_key(d, ordering_field))
        query = MemoryQuery(matching, self.page_size, self.result_window)
        self.queries.append(query)
        return query

    @staticmethod
    def _sort_key(document: Document, ordering_field: str) -> tuple:
        value = document.get(ordering_field)
        if value is None:
            return (0, 0)
        return (1, comparable_value(value))

    def write(self, actions: list[WriteAction]) -> list[WriteOutcome]:
        self.write_sizes.append(len(actions))
        outcomes: list[WriteOutcome] = []
        for action in actions:
            document = action.document
            raw_key = document.get(self.key_field)
            if raw_key is None:
                outcomes.append(WriteOutcome(
                    key="", succeeded=False,
                    error_message=f"Document is missing key field '{self.key_field}'",
                    status_code=400,
                ))
                continue
            key = str(raw_key)
            if key in self.fail_keys:
                outcomes.append(WriteOutcome(
                    key=key, succeeded=False,
                    error_message="Rejected by destination", status_code=400,
                ))
                continue
            existing = self._documents.get(key)
            if existing is None:
                self._documents[key] = dict(document)
            else:
                existing.update(document)
            outcomes.append(WriteOutcome(key=key, succeeded=True, status_code=200))
        return outcomes

    def get(self, key: str) -> Document | None:
        document = self._documents.get(key)
        return dict(document) if document is not None else None

    def count(self) -> int:
        return len(self._documents)

    def has_definition(self, name: str) -> bool:
        return name in self.definitions

    def get_definition(self, name: str) -> dict:
        if name not in self.definitions:
            raise KeyError(f"Index '{name}' not found")
        return copy.deepcopy(self.definitions[name])

    def put_definition(
        self, definition: dict, name: str, similarity: str | None = None
    ) -> None:
        stored = copy.deepcopy(definition)
        stored["name"] = name
        if similarity is not None:
            stored["similarity"] = similarity
        self.definitions[name] = stored
