"""Pick the concrete file for each matched project.

Each escalation level returns a tagged outcome so the levels can be driven
and tested independently:

* filtered lookup  -> ``Found`` or ``Escalate``
* release choice   -> ``ReleaseRecord`` or ``Abandoned``
* file choice      -> ``Found`` or ``Abandoned``
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from .config import ConvertSettings
from .console import Operator
from .models import (
    FileRecord,
    ReleaseRecord,
    Resolved,
    ResolutionOutcome,
    ResolvedMatch,
    Unresolved,
    UnresolvedReason,
)
from .modrinth import ModrinthClient

logger = logging.getLogger(__name__)

NONE_LABEL = "None (leave unresolved)"


@dataclass(frozen=True)
class Found:
    file: FileRecord


@dataclass(frozen=True)
class Escalate:
    reason: str
    # Set when the lookup was already unfiltered, so escalation can reuse it.
    unfiltered: Optional[List[ReleaseRecord]] = None


@dataclass(frozen=True)
class Abandoned:
    reason: UnresolvedReason


async def filtered_lookup(
    client: ModrinthClient, match: ResolvedMatch, settings: ConvertSettings
) -> Union[Found, Escalate]:
    """First release under the loader/version filter, then its primary (or first) file."""

    hit = match.hit
    filtered = hit.project_type == "mod"
    if filtered:
        releases = await client.list_versions(
            hit.project_id,
            loaders=settings.loader_filter,
            game_versions=settings.version_filter,
        )
    else:
        # Resource packs and shaders are not tied to a loader or game version.
        releases = await client.list_versions(hit.project_id)

    unfiltered = None if filtered else releases
    if not releases:
        return Escalate("no release matched the version/loader filter", unfiltered)
    file = releases[0].preferred_file()
    if file is None:
        return Escalate(f"release {releases[0].release_id} has no files", unfiltered)
    return Found(file)


def release_label(release: ReleaseRecord) -> str:
    name = release.version_number or release.release_id
    versions = ", ".join(release.game_versions) or "-"
    loaders = ", ".join(release.loaders) or "-"
    return f"{name} | game versions: {versions} | loaders: {loaders}"


def file_label(file: FileRecord) -> str:
    return f"{file.filename} (primary)" if file.is_primary else file.filename


def choose_release(
    operator: Operator, match: ResolvedMatch, releases: Sequence[ReleaseRecord]
) -> Union[ReleaseRecord, Abandoned]:
    title = f"No compatible release for {match.hit.title} ({match.hit.url}); pick one manually"
    options = [NONE_LABEL] + [release_label(release) for release in releases]
    choice = operator.choose(title, options, default=0)
    if choice <= 0 or choice > len(releases):
        reason = UnresolvedReason.ABANDONED_RELEASE if releases else UnresolvedReason.NO_RELEASE
        return Abandoned(reason)
    return releases[choice - 1]


def choose_file(operator: Operator, match: ResolvedMatch, release: ReleaseRecord) -> Union[Found, Abandoned]:
    title = f"Files of {match.hit.title} {release.version_number or release.release_id}"
    options = [NONE_LABEL] + [file_label(file) for file in release.files]
    choice = operator.choose(title, options, default=0)
    if choice <= 0 or choice > len(release.files):
        return Abandoned(UnresolvedReason.ABANDONED_FILE)
    return Found(release.files[choice - 1])


async def select_file(
    client: ModrinthClient,
    match: ResolvedMatch,
    operator: Operator,
    settings: ConvertSettings,
) -> ResolutionOutcome:
    step = await filtered_lookup(client, match, settings)
    if isinstance(step, Found):
        return Resolved(reference=match.reference, hit=match.hit, file=step.file)

    logger.info("Escalating %s: %s", match.hit.title, step.reason)
    releases: List[ReleaseRecord]
    if step.unfiltered is not None:
        releases = step.unfiltered
    else:
        releases = await client.list_versions(match.hit.project_id)

    release = choose_release(operator, match, releases)
    if isinstance(release, Abandoned):
        return Unresolved(reference=match.reference, reason=release.reason, hit=match.hit)

    picked = choose_file(operator, match, release)
    if isinstance(picked, Abandoned):
        return Unresolved(reference=match.reference, reason=picked.reason, hit=match.hit)
    return Resolved(reference=match.reference, hit=match.hit, file=picked.file)
