from __future__ import annotations

import logging
from typing import Sequence

from .models import Candidates, SearchHit, SourceReference
from .modrinth import ModrinthClient

logger = logging.getLogger(__name__)


def suggest_index(reference: SourceReference, hits: Sequence[SearchHit]) -> int:
    """Index of the first hit whose author (case-insensitive) and title (exact) match, else -1."""
    author = reference.author.lower()
    for index, hit in enumerate(hits):
        if hit.author.lower() == author and hit.title == reference.name:
            return index
    return -1


async def search_candidates(client: ModrinthClient, reference: SourceReference) -> Candidates:
    hits = await client.search(reference.name)
    index = suggest_index(reference, hits)
    if not hits:
        logger.info("No Modrinth candidates for %s", reference.label)
    elif index < 0:
        logger.debug("No exact match for %s among %d hit(s)", reference.label, len(hits))
    return Candidates(reference=reference, hits=list(hits), suggested_index=index)
