import pytest

from indexclone.backends.memory import MemoryCollection
from indexclone.errors import PaginationError
from indexclone.filters import KeysetFilter
from indexclone.pager import KeysetPager, PagerState

from conftest import make_docs


def _drain(pager):
    """Run the pager to completion, returning the seq values per query."""
    per_query = []
    while pager.advance():
        values = []
        while (page := pager.next_page()) is not None:
            values.extend(d["seq"] for d in page.documents)
        per_query.append(values)
    return per_query


def test_single_query_when_under_window():
    src = MemoryCollection(make_docs(5), page_size=2)
    pager = KeysetPager(src, "seq", max_records_per_query=100)
    assert _drain(pager) == [[1, 2, 3, 4, 5]]
    assert pager.state is PagerState.DONE
    assert pager.queries == 1
    assert src.filters == [None]


def test_window_cap_recomposes_query():
    """R=3 over 7 documents: recompose after the 3rd and 6th, finish on the 7th."""
    src = MemoryCollection(make_docs(7), page_size=1, result_window=3)
    pager = KeysetPager(src, "seq", max_records_per_query=3)

    assert _drain(pager) == [[1, 2, 3], [3, 4, 5], [5, 6, 7]]
    assert src.filters == [None, "seq ge 3", "seq ge 5"]
    assert all(q.pages_read <= 3 for q in src.queries)


def test_window_cap_stops_mid_query_even_with_more_pages():
    src = MemoryCollection(make_docs(10), page_size=2)
    pager = KeysetPager(src, "seq", max_records_per_query=6)

    assert pager.advance()
    pages = []
    while (page := pager.next_page()) is not None:
        pages.append(page)
    assert sum(len(p) for p in pages) == 6
    assert pages[-1].continuation_token is not None
    assert pager.state is PagerState.BOUNDARY
    assert pager.records_since_query == 6

    assert pager.advance()
    assert pager.records_since_query == 0
    assert pager.filter == KeysetFilter("seq", 6)


def test_empty_token_ends_run_even_at_window_cap():
    src = MemoryCollection(make_docs(4), page_size=2)
    pager = KeysetPager(src, "seq", max_records_per_query=4)
    assert _drain(pager) == [[1, 2, 3, 4]]
    assert pager.queries == 1


def test_boundary_document_is_flagged_as_refetched():
    src = MemoryCollection(make_docs(10), page_size=2)
    pager = KeysetPager(src, "seq", max_records_per_query=6)
    refetched = []
    while pager.advance():
        while (page := pager.next_page()) is not None:
            refetched.extend(page.documents[i]["seq"] for i in sorted(page.refetched))
    assert refetched == [6]


def test_trailing_run_of_equal_values_is_flagged():
    docs = [{"id": f"d{i}", "seq": v} for i, v in enumerate([1, 2, 3, 3, 4, 5])]
    src = MemoryCollection(docs, page_size=1)
    pager = KeysetPager(src, "seq", max_records_per_query=4)
    refetched = []
    while pager.advance():
        while (page := pager.next_page()) is not None:
            refetched.extend(page.documents[i]["id"] for i in sorted(page.refetched))
    assert sorted(refetched) == ["d2", "d3"]


def test_empty_collection():
    pager = KeysetPager(MemoryCollection(), "seq", max_records_per_query=3)
    assert _drain(pager) == [[]]
    assert pager.state is PagerState.DONE


def test_start_filter_is_used_for_first_query():
    src = MemoryCollection(make_docs(5), page_size=5)
    pager = KeysetPager(src, "seq", max_records_per_query=10, start_filter=KeysetFilter("seq", 4))
    assert _drain(pager) == [[4, 5]]
    assert src.filters == ["seq ge 4"]


def test_missing_ordering_field_on_boundary_raises():
    docs = [{"id": "a", "seq": 1}, {"id": "b", "seq": 2}, {"id": "c"}]
    # No document carries the ordering field
    src = MemoryCollection(docs, page_size=1)
    pager = KeysetPager(src, "other", max_records_per_query=2)
    assert pager.advance()
    while pager.next_page() is not None:
        pass
    assert pager.state is PagerState.BOUNDARY
    with pytest.raises(PaginationError) as excinfo:
        pager.advance()
    assert excinfo.value.field == "other"
    assert pager.state is PagerState.FAILED


def test_null_ordering_value_on_boundary_raises():
    docs = [{"id": "a", "seq": None}, {"id": "b", "seq": None}, {"id": "c", "seq": 1}]
    src = MemoryCollection(docs, page_size=1)
    pager = KeysetPager(src, "seq", max_records_per_query=2)
    pager.advance()
    while pager.next_page() is not None:
        pass
    with pytest.raises(PaginationError):
        pager.advance()


def test_window_of_identical_values_raises_instead_of_looping():
    docs = [{"id": f"d{i}", "seq": 1} for i in range(5)]
    src = MemoryCollection(docs, page_size=1)
    pager = KeysetPager(src, "seq", max_records_per_query=2)
    with pytest.raises(PaginationError, match="cannot advance"):
        _drain(pager)
    assert src.filters == [None, "seq ge 1"]


def test_advance_while_paging_is_an_error():
    pager = KeysetPager(MemoryCollection(make_docs(5), page_size=1), "seq", max_records_per_query=10)
    pager.advance()
    pager.next_page()
    with pytest.raises(RuntimeError):
        pager.advance()


def test_rejects_non_positive_window():
    with pytest.raises(ValueError):
        KeysetPager(MemoryCollection(), "seq", max_records_per_query=0)
