"""Document mappers applied between the source and the destination.

A mapper takes one source document and returns the document to write. Because
keyset pagination re-fetches the boundary document of each query, mappers must
be idempotent: mapping the same document twice has to produce the same write.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from indexclone.backend import Document

DocumentMapper = Callable[[Document], Document]


def identity(document: Document) -> Document:
    """Default mapper: copy the document unchanged."""
    return document


class FieldMapper:
    """Rename and drop fields for migrations that change document shape."""

    def __init__(
        self,
        rename: dict[str, str] | None = None,
        exclude: Iterable[str] = (),
    ) -> None:
        self._rename = dict(rename or {})
        self._exclude = frozenset(exclude)

    def __call__(self, document: Document) -> Document:
        mapped: Document = {}
        for name, value in document.items():
            if name in self._exclude:
                continue
            mapped[self._rename.get(name, name)] = value
        return mapped

    def __bool__(self) -> bool:
        return bool(self._rename or self._exclude)


def build_mapper(
    field_map: dict[str, str] | None = None,
    exclude_fields: Iterable[str] = (),
) -> DocumentMapper:
    """Return a FieldMapper when any field changes are configured, else identity."""
    mapper = FieldMapper(field_map, exclude_fields)
    return mapper if mapper else identity
