from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_FILENAME = ".cf2mr.json"
DEFAULT_ENV_FILENAME = ".env"
DEFAULT_OUTPUT = Path("modrinth.index.json")
DEFAULT_API_BASE = "https://api.modrinth.com/v2"
DEFAULT_USER_AGENT = "cf2mr/dev"

# Modrinth allows 300 requests per minute per IP; half of that per chunk
# leaves room for the version lookups issued in the second phase.
DEFAULT_CHUNK_SIZE = 150
DEFAULT_COOLDOWN_SECONDS = 60.0


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded."""


class FileConfig(BaseModel):
    minecraft_version: Optional[str] = None
    game_versions: Optional[List[str]] = None
    loader: Optional[str] = None
    loader_version: Optional[str] = None
    pack_name: Optional[str] = None
    version_id: Optional[str] = None
    output: Optional[Path] = None
    chunk_size: Optional[int] = None
    cooldown_seconds: Optional[float] = None
    api_base: Optional[str] = None
    api_user_agent: Optional[str] = None
    request_timeout: Optional[float] = None


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CF2MR_", extra="ignore")

    minecraft_version: Optional[str] = None
    loader: Optional[str] = None
    loader_version: Optional[str] = None
    game_versions: Optional[List[str]] = None
    pack_name: Optional[str] = None
    version_id: Optional[str] = None
    output: Optional[Path] = None
    chunk_size: Optional[int] = None
    cooldown_seconds: Optional[float] = None
    api_base: Optional[str] = None
    api_user_agent: Optional[str] = None
    request_timeout: Optional[float] = None


class ConvertSettings(BaseModel):
    """Everything a conversion run needs, passed explicitly to each stage."""

    minecraft_version: str = "1.20.1"
    game_versions: List[str] = Field(default_factory=lambda: ["1.20.1", "1.20"])
    loader: str = "forge"
    loader_version: str = "47.2.20"
    pack_name: str = "Converted Modpack"
    version_id: str = "0.1.0"
    output: Path = DEFAULT_OUTPUT
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, ge=1)
    cooldown_seconds: float = Field(default=DEFAULT_COOLDOWN_SECONDS, ge=0)
    api_base: str = DEFAULT_API_BASE
    api_user_agent: str = DEFAULT_USER_AGENT
    request_timeout: float = Field(default=30.0, gt=0)

    @property
    def loader_filter(self) -> List[str]:
        return [self.loader.lower()] if self.loader else []

    @property
    def version_filter(self) -> List[str]:
        if self.game_versions:
            return list(self.game_versions)
        return [self.minecraft_version]


def _coerce_path(base: Path, value: Path | str) -> Path:
    path = value if isinstance(value, Path) else Path(value)
    return path if path.is_absolute() else (base / path)


def _load_file_config(path: Path) -> FileConfig:
    if not path.exists():
        return FileConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:  # pragma: no cover - config errors are user-facing
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a JSON object.")
    try:
        return FileConfig(**data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {path}: {exc}") from exc


def load_config(root: Path | None = None, **overrides: object) -> ConvertSettings:
    """Load settings from .cf2mr.json, then CF2MR_* env vars, then explicit overrides.

    Overrides whose value is ``None`` are ignored so CLI options can be passed
    through unconditionally.
    """

    base = Path(root).expanduser().resolve() if root is not None else Path.cwd()
    env_file = base / DEFAULT_ENV_FILENAME
    env_settings = EnvSettings(
        _env_file=env_file if env_file.exists() else None,
    )
    file_cfg = _load_file_config(base / DEFAULT_CONFIG_FILENAME)

    values: dict[str, object] = {}
    for layer in (file_cfg, env_settings):
        for key, value in layer.model_dump().items():
            if value is not None:
                values[key] = value
    for key, value in overrides.items():
        if value is not None:
            values[key] = value

    if "output" in values:
        values["output"] = _coerce_path(base, values["output"])  # type: ignore[arg-type]
    else:
        values["output"] = base / DEFAULT_OUTPUT

    # A new target version without an explicit filter list should filter on itself.
    if "minecraft_version" in values and "game_versions" not in values:
        values["game_versions"] = [values["minecraft_version"]]

    try:
        return ConvertSettings(**values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc
