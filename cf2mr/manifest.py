from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import ConvertSettings
from .models import DEFAULT_PROJECT_DIR, PROJECT_TYPE_DIRS, Resolved, ResolutionOutcome, Unresolved

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1
GAME = "minecraft"

LOADER_DEPENDENCY_KEYS = {
    "forge": "forge",
    "neoforge": "neoforge",
    "fabric": "fabric-loader",
    "quilt": "quilt-loader",
}


class ManifestError(RuntimeError):
    """Raised when a pack index cannot be loaded or updated."""


class FileHashes(BaseModel):
    model_config = ConfigDict(extra="allow")

    sha1: str = ""
    sha512: str = ""


class FileEnv(BaseModel):
    model_config = ConfigDict(extra="allow")

    client: str = "required"
    server: str = "unsupported"


class ManifestFile(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    comment: Optional[str] = Field(default=None, alias="_comment")
    path: str = ""
    hashes: FileHashes = Field(default_factory=FileHashes)
    env: Optional[FileEnv] = None
    downloads: List[str] = Field(default_factory=list)
    file_size: int = Field(default=0, alias="fileSize")

    @property
    def is_placeholder(self) -> bool:
        return not self.hashes.sha1


class Manifest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    dependencies: Dict[str, str] = Field(default_factory=dict)
    files: List[ManifestFile] = Field(default_factory=list)
    name: str
    version_id: str = Field(alias="versionId")
    game: str = GAME
    format_version: int = Field(default=FORMAT_VERSION, alias="formatVersion")


def dependency_block(settings: ConvertSettings) -> Dict[str, str]:
    loader = settings.loader.lower()
    key = LOADER_DEPENDENCY_KEYS.get(loader, loader)
    return {GAME: settings.minecraft_version, key: settings.loader_version}


def resolved_file(outcome: Resolved) -> ManifestFile:
    return ManifestFile(
        path=outcome.path,
        hashes=FileHashes(sha1=outcome.file.sha1, sha512=outcome.file.sha512),
        env=FileEnv(),
        downloads=[outcome.file.url],
        file_size=outcome.file.size_bytes,
    )


def placeholder_file(outcome: Unresolved) -> ManifestFile:
    return ManifestFile(comment=outcome.comment)


def build_manifest(outcomes: Sequence[ResolutionOutcome], settings: ConvertSettings) -> Manifest:
    """One file entry per outcome, ordered by the position of the source reference."""

    ordered = sorted(outcomes, key=lambda outcome: outcome.reference.position)
    files = [
        resolved_file(outcome) if isinstance(outcome, Resolved) else placeholder_file(outcome)
        for outcome in ordered
    ]
    return Manifest(
        dependencies=dependency_block(settings),
        files=files,
        name=settings.pack_name,
        version_id=settings.version_id,
    )


def dump_manifest(manifest: Manifest) -> str:
    return manifest.model_dump_json(by_alias=True, exclude_none=True, indent=2)


def write_manifest(manifest: Manifest, path: Path) -> bool:
    """Write the index once. Failures are logged and reported through the return value."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dump_manifest(manifest), encoding="utf-8")
    except OSError as exc:
        logger.error("Failed to write %s: %s", path, exc)
        return False
    logger.info("Wrote %d file entries to %s", len(manifest.files), path)
    return True


def load_manifest(path: Path) -> Manifest:
    if not path.exists():
        raise ManifestError(f"Pack index not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return Manifest.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ManifestError(f"Invalid pack index {path}: {exc}") from exc


def pending_entries(manifest: Manifest) -> List[Tuple[int, ManifestFile]]:
    return [(index, entry) for index, entry in enumerate(manifest.files) if entry.is_placeholder]


def _digests(path: Path) -> Tuple[str, str, int]:
    sha1 = hashlib.sha1()
    sha512 = hashlib.sha512()
    size = 0
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            sha1.update(chunk)
            sha512.update(chunk)
            size += len(chunk)
    return sha1.hexdigest(), sha512.hexdigest(), size


def fill_placeholder(
    manifest: Manifest,
    index: int,
    file_path: Path,
    url: str,
    *,
    project_type: str = "mod",
) -> ManifestFile:
    """Back-fill a placeholder from a manually downloaded file.

    The file lands under the directory of ``project_type`` (mods for unknown types).
    """

    if index < 0 or index >= len(manifest.files):
        raise ManifestError(f"Entry {index} does not exist (index has {len(manifest.files)} files).")
    entry = manifest.files[index]
    if not entry.is_placeholder:
        raise ManifestError(f"Entry {index} ({entry.path}) is already resolved.")
    if not file_path.is_file():
        raise ManifestError(f"Downloaded file '{file_path}' does not exist.")

    sha1, sha512, size = _digests(file_path)
    entry.hashes = FileHashes(sha1=sha1, sha512=sha512)
    root = PROJECT_TYPE_DIRS.get(project_type, DEFAULT_PROJECT_DIR)
    entry.path = f"{root}/{file_path.name}"
    entry.env = FileEnv()
    entry.downloads.append(url)
    entry.file_size = size
    return entry
