"""Copy an index definition (schema) from the source service to the destination."""

from __future__ import annotations

import logging
import time

from indexclone.backend import DefinitionStore

logger = logging.getLogger(__name__)


def clone_definition_if_missing(
    source: DefinitionStore,
    destination: DefinitionStore,
    name: str,
    destination_name: str | None = None,
    similarity: str | None = "BM25",
) -> bool:
    """Write the source definition to the destination unless it already exists.

    Returns True if a definition was written.
    """
    destination_name = destination_name or name
    if destination.has_definition(destination_name):
        logger.info("Destination already has index '%s', skipping definition copy", destination_name)
        return False

    start = time.perf_counter()
    definition = source.get_definition(name)
    logger.info("Retrieved index definition '%s'", name)
    destination.put_definition(definition, destination_name, similarity=similarity)
    logger.info(
        "Wrote index definition '%s' in %dms",
        destination_name,
        (time.perf_counter() - start) * 1000,
    )
    return True
