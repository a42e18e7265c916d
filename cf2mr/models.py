from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

MODRINTH_SITE = "https://modrinth.com"

PROJECT_TYPE_DIRS = {
    "mod": "mods",
    "resourcepack": "resourcepacks",
    "shader": "shaderpacks",
}
DEFAULT_PROJECT_DIR = "mods"


@dataclass(frozen=True)
class SourceReference:
    """One entry of the CurseForge modlist, identified by its input position."""

    position: int
    name: str
    author: str
    source_url: Optional[str] = None

    @property
    def label(self) -> str:
        return f"{self.name} (by {self.author})" if self.author else self.name


@dataclass(frozen=True)
class SearchHit:
    project_id: str
    title: str
    author: str
    project_type: str
    slug: str

    @property
    def url(self) -> str:
        return f"{MODRINTH_SITE}/{self.project_type}/{self.slug}"


@dataclass(frozen=True)
class Candidates:
    """Search output for one reference: every hit plus the automatic guess."""

    reference: SourceReference
    hits: List[SearchHit] = field(default_factory=list)
    suggested_index: int = -1
    error: Optional[str] = None

    @property
    def suggestion(self) -> Optional[SearchHit]:
        if 0 <= self.suggested_index < len(self.hits):
            return self.hits[self.suggested_index]
        return None


@dataclass(frozen=True)
class ResolvedMatch:
    reference: SourceReference
    hit: SearchHit


@dataclass(frozen=True)
class FileRecord:
    filename: str
    url: str
    sha1: str
    sha512: str
    size_bytes: int
    is_primary: bool = False


@dataclass(frozen=True)
class ReleaseRecord:
    release_id: str
    game_versions: List[str] = field(default_factory=list)
    loaders: List[str] = field(default_factory=list)
    files: List[FileRecord] = field(default_factory=list)
    version_number: Optional[str] = None

    def preferred_file(self) -> Optional[FileRecord]:
        for file in self.files:
            if file.is_primary:
                return file
        return self.files[0] if self.files else None


class UnresolvedReason(str, Enum):
    NO_CANDIDATES = "no-candidates"
    SKIPPED = "skipped"
    NO_RELEASE = "no-release"
    ABANDONED_RELEASE = "abandoned-release"
    ABANDONED_FILE = "abandoned-file"
    REMOTE_ERROR = "remote-error"


@dataclass(frozen=True)
class Resolved:
    reference: SourceReference
    hit: SearchHit
    file: FileRecord

    @property
    def project_type(self) -> str:
        return self.hit.project_type

    @property
    def path(self) -> str:
        root = PROJECT_TYPE_DIRS.get(self.project_type, DEFAULT_PROJECT_DIR)
        return f"{root}/{self.file.filename}"


@dataclass(frozen=True)
class Unresolved:
    reference: SourceReference
    reason: UnresolvedReason
    hit: Optional[SearchHit] = None
    detail: Optional[str] = None

    @property
    def comment(self) -> str:
        if self.reference.source_url:
            return self.reference.source_url
        if self.hit is not None:
            return self.hit.url
        return self.reference.label


ResolutionOutcome = Union[Resolved, Unresolved]
