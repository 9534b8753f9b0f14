import logging

import pytest

from indexclone.backends.memory import MemoryCollection
from indexclone.definition import clone_definition_if_missing

DEFINITION = {
    "name": "products",
    "fields": [{"name": "id", "key": True}, {"name": "seq", "sortable": True}],
    "similarity": "classic",
}


@pytest.fixture
def source_defs():
    store = MemoryCollection()
    store.definitions["products"] = dict(DEFINITION)
    return store


def test_copies_definition_when_missing(source_defs):
    dst = MemoryCollection()
    assert clone_definition_if_missing(source_defs, dst, "products") is True
    copied = dst.definitions["products"]
    assert copied["fields"] == DEFINITION["fields"]
    assert copied["similarity"] == "BM25"


def test_copies_under_new_name(source_defs):
    dst = MemoryCollection()
    clone_definition_if_missing(source_defs, dst, "products", "products-v2")
    assert "products-v2" in dst.definitions
    assert dst.definitions["products-v2"]["name"] == "products-v2"
    assert "products" not in dst.definitions


def test_similarity_none_keeps_source_value(source_defs):
    dst = MemoryCollection()
    clone_definition_if_missing(source_defs, dst, "products", similarity=None)
    assert dst.definitions["products"]["similarity"] == "classic"


def test_skips_existing_destination(source_defs, caplog):
    dst = MemoryCollection()
    dst.definitions["products"] = {"name": "products", "fields": []}
    with caplog.at_level(logging.INFO, logger="indexclone.definition"):
        assert clone_definition_if_missing(source_defs, dst, "products") is False
    assert dst.definitions["products"]["fields"] == []
    assert "skipping definition copy" in caplog.text


def test_missing_source_definition_raises():
    with pytest.raises(KeyError):
        clone_definition_if_missing(MemoryCollection(), MemoryCollection(), "nope")
