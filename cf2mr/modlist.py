from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List

from bs4 import BeautifulSoup

from .models import SourceReference

logger = logging.getLogger(__name__)

_AUTHOR_SUFFIX = re.compile(r"\(by .*\)")
_NAME_PREFIX = re.compile(r".*\(by ")


class ModlistError(RuntimeError):
    """Raised when the CurseForge modlist cannot be read."""


def split_label(text: str) -> tuple[str, str]:
    """Split ``"Name (by Author)"`` into its parts. Labels without an author keep an empty one."""
    if "(by " not in text:
        return text.strip(), ""
    name = _AUTHOR_SUFFIX.sub("", text).strip()
    author = _NAME_PREFIX.sub("", text).replace(")", "", 1).strip()
    return name, author


def parse_modlist_html(html: str) -> List[SourceReference]:
    soup = BeautifulSoup(html, "html.parser")
    references: List[SourceReference] = []
    for anchor in soup.select("li > a"):
        name, author = split_label(anchor.get_text())
        href = anchor.get("href")
        references.append(
            SourceReference(
                position=len(references),
                name=name,
                author=author,
                source_url=str(href) if href else None,
            )
        )
    return references


def read_modlist(path: Path) -> List[SourceReference]:
    resolved = Path(path).expanduser().resolve()
    if not resolved.is_file():
        raise ModlistError(f"The file does not exist: {resolved}")
    logger.info("Reading modlist file %s", resolved)
    references = parse_modlist_html(resolved.read_text(encoding="utf-8", errors="replace"))
    logger.info("%d mods to be processed", len(references))
    return references
