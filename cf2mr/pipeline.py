from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .batching import Sleeper, chunk_requests, cooldown_count
from .config import ConvertSettings
from .console import Operator
from .manifest import Manifest, build_manifest, write_manifest
from .matching import search_candidates
from .models import (
    Candidates,
    Resolved,
    ResolutionOutcome,
    ResolvedMatch,
    SourceReference,
    Unresolved,
    UnresolvedReason,
)
from .modrinth import RATE_LIMIT_DOCS, RATE_LIMIT_NOTICE, ModrinthClient, ModrinthError
from .resolver import disambiguate
from .selection import select_file

logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    manifest: Manifest
    outcomes: List[ResolutionOutcome]
    written: bool

    @property
    def resolved(self) -> List[Resolved]:
        return [outcome for outcome in self.outcomes if isinstance(outcome, Resolved)]

    @property
    def unresolved(self) -> List[Unresolved]:
        return [outcome for outcome in self.outcomes if isinstance(outcome, Unresolved)]


async def resolve_references(
    references: Sequence[SourceReference],
    settings: ConvertSettings,
    client: ModrinthClient,
    operator: Operator,
    *,
    sleep: Sleeper = asyncio.sleep,
) -> List[ResolutionOutcome]:
    """Search, review and pick a file for every reference. Returns one outcome per reference."""

    async def search(reference: SourceReference) -> Candidates:
        try:
            return await search_candidates(client, reference)
        except ModrinthError as exc:
            return Candidates(reference=reference, error=str(exc))

    candidates = await chunk_requests(
        references,
        search,
        settings.chunk_size,
        cooldown=settings.cooldown_seconds,
        sleep=sleep,
        label="search",
    )
    if client.rate_limit_remaining is not None:
        logger.info("Remaining search requests: %d", client.rate_limit_remaining)

    review = disambiguate(candidates, operator)

    async def select(match: ResolvedMatch) -> ResolutionOutcome:
        try:
            return await select_file(client, match, operator, settings)
        except ModrinthError as exc:
            logger.warning("Version lookup failed for %s: %s", match.hit.title, exc)
            return Unresolved(
                reference=match.reference,
                reason=UnresolvedReason.REMOTE_ERROR,
                hit=match.hit,
                detail=str(exc),
            )

    selected = await chunk_requests(
        review.matches,
        select,
        settings.chunk_size,
        cooldown=settings.cooldown_seconds,
        sleep=sleep,
        label="version lookup",
    )
    return sorted([*selected, *review.unresolved], key=lambda outcome: outcome.reference.position)


async def convert(
    references: Sequence[SourceReference],
    settings: ConvertSettings,
    operator: Operator,
    *,
    client: Optional[ModrinthClient] = None,
    sleep: Sleeper = asyncio.sleep,
) -> Optional[ConversionResult]:
    """Run the whole conversion. Returns ``None`` when the operator declines to start."""

    logger.info(RATE_LIMIT_NOTICE)
    logger.info("For more information, visit %s", RATE_LIMIT_DOCS)
    waits = cooldown_count(len(references), settings.chunk_size)
    if waits:
        logger.info("The search phase alone will pause %d time(s) for %ss", waits, settings.cooldown_seconds)
    if not operator.confirm("Do you want to proceed?", default=False):
        return None

    if client is None:
        async with ModrinthClient(settings) as owned:
            outcomes = await resolve_references(references, settings, owned, operator, sleep=sleep)
    else:
        outcomes = await resolve_references(references, settings, client, operator, sleep=sleep)

    manifest = build_manifest(outcomes, settings)
    if len(manifest.files) != len(references):
        raise RuntimeError(
            f"Pack index has {len(manifest.files)} entries for {len(references)} references."
        )
    written = write_manifest(manifest, settings.output)
    return ConversionResult(manifest=manifest, outcomes=outcomes, written=written)
