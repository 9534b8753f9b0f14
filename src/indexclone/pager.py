"""Keyset pagination over a source collection with a capped result window.

Search services refuse to page arbitrarily deep into one query's results. The
pager reads pages from the active query until either the query is exhausted
or ``max_records_per_query`` records have been read, then recomposes the query
with an inclusive lower bound on the ordering field taken from the last
document it handed out.

Usage::

    pager = KeysetPager(source, "seq", max_records_per_query=90000)
    while pager.advance():
        while (page := pager.next_page()) is not None:
            ...
        # flush anything pending before the next query is composed
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterator

from indexclone.backend import Document, Page, SourceCollection
from indexclone.errors import PaginationError
from indexclone.filters import KeysetFilter

logger = logging.getLogger(__name__)

_MISSING = object()


class PagerState(enum.Enum):
    READY = "ready"
    PAGING = "paging"
    BOUNDARY = "boundary"
    DONE = "done"
    FAILED = "failed"


class KeysetPager:
    """Explicit state machine driving keyset pagination.

    States:
        READY     no query composed yet
        PAGING    a query is active and may have more pages
        BOUNDARY  the active query hit the window cap; a new query is needed
        DONE      a query returned a page with no continuation token
        FAILED    the boundary document cannot seed a new query
    """

    def __init__(
        self,
        source: SourceCollection,
        ordering_field: str,
        max_records_per_query: int,
        start_filter: KeysetFilter | None = None,
    ) -> None:
        if max_records_per_query < 1:
            raise ValueError("max_records_per_query must be >= 1")
        self._source = source
        self._ordering_field = ordering_field
        self._max_records = max_records_per_query

        self.state = PagerState.READY
        self.filter: KeysetFilter | None = start_filter
        self.records_since_query = 0
        self.continuation_token: str | None = None
        self.queries = 0

        self._pages: Iterator[Page] | None = None
        self._last_document: Document | None = None
        # Trailing documents of the active query sharing the last ordering value
        self._boundary_run: list[Document] = []
        self._boundary_value: object = _MISSING
        # Boundary run of the previous query, matched against the new query's head
        self._pending_refetch: list[Document] = []
        self._pending_value: object = _MISSING

    @property
    def ordering_field(self) -> str:
        return self._ordering_field

    @property
    def max_records_per_query(self) -> int:
        return self._max_records

    def advance(self) -> bool:
        """Compose the next query. Returns False once the collection is exhausted."""
        if self.state is PagerState.READY:
            self._compose(self.filter)
            return True
        if self.state is PagerState.BOUNDARY:
            self._compose(self._next_filter())
            return True
        if self.state is PagerState.DONE:
            return False
        if self.state is PagerState.FAILED:
            raise PaginationError("Pager failed; no further queries can be composed")
        raise RuntimeError("advance() called while the active query still has pages")

    def next_page(self) -> Page | None:
        """Return the next page of the active query, or None when it has stopped."""
        if self.state is not PagerState.PAGING or self._pages is None:
            return None

        page = next(self._pages, None)
        if page is None:
            # Iterator ended without an explicit empty token
            self._finish(PagerState.DONE)
            return None

        page = self._mark_refetched(page)
        self.records_since_query += len(page.documents)
        self.continuation_token = page.continuation_token
        self._track_boundary(page.documents)

        logger.debug(
            "Page of %d documents (%d in query, token=%s)",
            len(page.documents),
            self.records_since_query,
            "yes" if page.continuation_token else "none",
        )

        if page.is_last:
            self._finish(PagerState.DONE)
        elif self.records_since_query >= self._max_records:
            self._finish(PagerState.BOUNDARY)
        return page

    def _compose(self, filter: KeysetFilter | None) -> None:
        self.filter = filter
        self.records_since_query = 0
        self.continuation_token = None
        self._pages = iter(self._source.query(self._ordering_field, filter).pages())
        self.queries += 1
        self.state = PagerState.PAGING
        logger.info(
            "Composed query %d ordered by %s%s",
            self.queries,
            self._ordering_field,
            f" with filter {filter}" if filter else "",
        )

    def _finish(self, state: PagerState) -> None:
        # Drop the page iterator so the service-side query is not read any further
        self._pages = None
        self.state = state

    def _next_filter(self) -> KeysetFilter:
        document = self._last_document
        value = _MISSING if document is None else document.get(self._ordering_field, _MISSING)
        if value is _MISSING or value is None:
            self.state = PagerState.FAILED
            raise PaginationError(
                f"Boundary document has no value for ordering field '{self._ordering_field}'",
                field=self._ordering_field,
                value=None if value is _MISSING else value,
            )

        new_filter = KeysetFilter(self._ordering_field, value)
        if self.filter is not None and self.filter.to_odata() == new_filter.to_odata():
            self.state = PagerState.FAILED
            raise PaginationError(
                f"{self.records_since_query} records share {self._ordering_field}={value!r}; "
                "the lower bound cannot advance past the result window",
                field=self._ordering_field,
                value=value,
            )

        self._pending_refetch = self._boundary_run
        self._pending_value = self._boundary_value
        self._boundary_run = []
        self._boundary_value = _MISSING
        return new_filter

    def _track_boundary(self, documents: list[Document]) -> None:
        for document in documents:
            value = document.get(self._ordering_field, _MISSING)
            if value is _MISSING or value != self._boundary_value:
                self._boundary_run = []
                self._boundary_value = value
            self._boundary_run.append(document)
            self._last_document = document

    def _mark_refetched(self, page: Page) -> Page:
        if not self._pending_refetch:
            return page
        refetched = set(page.refetched)
        for index, document in enumerate(page.documents):
            if document.get(self._ordering_field, _MISSING) != self._pending_value:
                self._pending_refetch = []
                break
            if document in self._pending_refetch:
                refetched.add(index)
                self._pending_refetch.remove(document)
                if not self._pending_refetch:
                    break
        return Page(
            documents=page.documents,
            continuation_token=page.continuation_token,
            refetched=frozenset(refetched),
        )
