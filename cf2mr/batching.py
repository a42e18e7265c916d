from __future__ import annotations

import asyncio
import logging
import math
from typing import Awaitable, Callable, List, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

Sleeper = Callable[[float], Awaitable[None]]


def split_chunks(items: Sequence[T], chunk_size: int) -> List[List[T]]:
    if chunk_size < 1:
        raise ValueError("chunk_size must be at least 1")
    return [list(items[start : start + chunk_size]) for start in range(0, len(items), chunk_size)]


async def chunk_requests(
    items: Sequence[T],
    action: Callable[[T], Awaitable[R]],
    chunk_size: int,
    *,
    cooldown: float = 60.0,
    sleep: Sleeper = asyncio.sleep,
    label: str = "request",
) -> List[R]:
    """Run ``action`` over ``items`` one at a time, pausing between fixed-size chunks.

    Items inside a chunk are awaited sequentially and the cooldown is applied
    between chunks only, never after the last one. Results come back in input
    order. Exceptions raised by ``action`` are not caught here; callers that
    need partial-failure tolerance wrap ``action`` themselves.
    """

    chunks = split_chunks(items, chunk_size)
    total = len(items)
    results: List[R] = []
    done = 0

    for chunk_index, chunk in enumerate(chunks, start=1):
        logger.debug("Starting %s chunk %d/%d (%d item(s))", label, chunk_index, len(chunks), len(chunk))
        for item in chunk:
            results.append(await action(item))
            done += 1
            logger.debug("%s %d/%d done", label.capitalize(), done, total)

        if chunk_index < len(chunks):
            logger.info(
                "Rate limit: waiting %ss after %s chunk %d/%d",
                _format_seconds(cooldown),
                label,
                chunk_index,
                len(chunks),
            )
            await sleep(cooldown)

    return results


def cooldown_count(total: int, chunk_size: int) -> int:
    if total <= 0:
        return 0
    return math.ceil(total / chunk_size) - 1


def _format_seconds(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.1f}"
