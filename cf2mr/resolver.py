from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

from .console import Operator
from .models import Candidates, ResolvedMatch, SearchHit, Unresolved, UnresolvedReason

logger = logging.getLogger(__name__)

SKIP_LABEL = "Skip (no match on Modrinth)"


@dataclass
class Disambiguation:
    matches: List[ResolvedMatch] = field(default_factory=list)
    unresolved: List[Unresolved] = field(default_factory=list)


def hit_label(hit: SearchHit) -> str:
    return f"{hit.title} by {hit.author} [{hit.project_type}] {hit.url}"


def disambiguate(candidates: Sequence[Candidates], operator: Operator) -> Disambiguation:
    """Ask the operator to confirm or override each automatic match, in input order."""

    result = Disambiguation()
    total = len(candidates)
    for number, entry in enumerate(candidates, start=1):
        reference = entry.reference
        if entry.error is not None:
            logger.warning("Search failed for %s: %s", reference.label, entry.error)
            result.unresolved.append(
                Unresolved(reference=reference, reason=UnresolvedReason.REMOTE_ERROR, detail=entry.error)
            )
            continue

        options = [SKIP_LABEL] + [hit_label(hit) for hit in entry.hits]
        default = entry.suggested_index + 1 if entry.suggestion is not None else 0
        title = f"[{number}/{total}] {reference.label}"
        if reference.source_url:
            title += f" - {reference.source_url}"
        choice = operator.choose(title, options, default=default)

        if choice <= 0 or choice > len(entry.hits):
            reason = UnresolvedReason.SKIPPED if entry.hits else UnresolvedReason.NO_CANDIDATES
            result.unresolved.append(Unresolved(reference=reference, reason=reason))
            continue

        result.matches.append(ResolvedMatch(reference=reference, hit=entry.hits[choice - 1]))

    logger.info("%d matched, %d left unresolved after review", len(result.matches), len(result.unresolved))
    return result
