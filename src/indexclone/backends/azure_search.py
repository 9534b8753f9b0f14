"""Azure AI Search backend for indexclone."""

from __future__ import annotations

import logging
from collections.abc import Iterator

from azure.core.credentials import AzureKeyCredential
from azure.search.documents import SearchClient
from azure.search.documents.indexes import SearchIndexClient
from azure.search.documents.indexes.models import (
    BM25SimilarityAlgorithm,
    ClassicSimilarityAlgorithm,
    SearchIndex,
)

from indexclone.backend import Document, Page, WriteOutcome
from indexclone.batch import WriteAction
from indexclone.filters import KeysetFilter

logger = logging.getLogger(__name__)

SEARCH_DOMAIN = "search.windows.net"
# Result annotations added by the service that are not part of the document
_METADATA_PREFIX = "@search."

_SIMILARITIES = {
    "BM25": BM25SimilarityAlgorithm,
    "classic": ClassicSimilarityAlgorithm,
}


def service_endpoint(service: str) -> str:
    """Expand a bare service name to its endpoint URL."""
    if service.startswith(("https://", "http://")):
        return service.rstrip("/")
    return f"https://{service}.{SEARCH_DOMAIN}"


def _clean(result: dict) -> Document:
    return {k: v for k, v in result.items() if not k.startswith(_METADATA_PREFIX)}


class AzureSearchQuery:
    """SourceQuery over one ``search()`` call, consumed with ``by_page()``."""

    def __init__(
        self, client: SearchClient, ordering_field: str, filter: KeysetFilter | None
    ) -> None:
        self._client = client
        self._ordering_field = ordering_field
        self._filter = filter.to_odata() if filter else None

    def pages(self) -> Iterator[Page]:
        results = self._client.search(
            search_text="*",
            filter=self._filter,
            order_by=[self._ordering_field],
        )
        page_iterator = results.by_page()
        for page in page_iterator:
            documents = [_clean(r) for r in page]
            yield Page(
                documents=documents,
                continuation_token=page_iterator.continuation_token,
            )


class AzureSearchCollection:
    """SourceCollection and DestinationCollection backed by one search index."""

    def __init__(
        self,
        service: str,
        key: str,
        index_name: str,
        retry_total: int = 3,
        client: SearchClient | None = None,
    ) -> None:
        self.endpoint = service_endpoint(service)
        self.index_name = index_name
        self._client = client or SearchClient(
            self.endpoint,
            index_name,
            AzureKeyCredential(key),
            retry_total=retry_total,
        )

    def query(self, ordering_field: str, filter: KeysetFilter | None = None) -> AzureSearchQuery:
        return AzureSearchQuery(self._client, ordering_field, filter)

    def write(self, actions: list[WriteAction]) -> list[WriteOutcome]:
        documents = [a.document for a in actions]
        results = self._client.merge_or_upload_documents(documents=documents)
        return [
            WriteOutcome(
                key=r.key,
                succeeded=r.succeeded,
                error_message=r.error_message,
                status_code=r.status_code,
            )
            for r in results
        ]


class AzureIndexDefinitions:
    """DefinitionStore backed by a SearchIndexClient."""

    def __init__(
        self,
        service: str,
        key: str,
        retry_total: int = 3,
        client: SearchIndexClient | None = None,
    ) -> None:
        self.endpoint = service_endpoint(service)
        self._client = client or SearchIndexClient(
            self.endpoint,
            AzureKeyCredential(key),
            retry_total=retry_total,
        )

    def has_definition(self, name: str) -> bool:
        return name in set(self._client.list_index_names())

    def get_definition(self, name: str) -> SearchIndex:
        return self._client.get_index(name)

    def put_definition(
        self, definition: SearchIndex, name: str, similarity: str | None = None
    ) -> None:
        definition.name = name
        definition.e_tag = None
        if similarity is not None:
            definition.similarity = _SIMILARITIES[similarity]()
        self._client.create_or_update_index(definition, allow_index_downtime=True)
        logger.info("Wrote index definition '%s' to %s", name, self.endpoint)
