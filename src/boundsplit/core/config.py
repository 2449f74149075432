from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..chunking.capacity import ChunkCapacity


class Settings(BaseSettings):
    # Capacity
    SPLIT_MAX_SIZE: int = Field(default=1000, ge=0)
    SPLIT_MIN_SIZE: Optional[int] = Field(default=None, ge=0)  # range lower bound

    # Splitter
    SPLIT_TRIM: bool = False  # Strip boundary whitespace from chunks
    SPLIT_SIZER: str = "characters"  # characters|graphemes|bytes|tiktoken|huggingface
    SPLIT_MODEL: str = "cl100k_base"  # Encoding/model name for token sizers

    # Observability
    LOG_FORMAT: str = "auto"  # json|plain|auto
    LOG_LEVEL: str = "info"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    def capacity(
        self, max_size: Optional[int] = None, min_size: Optional[int] = None
    ) -> ChunkCapacity:
        """Configured capacity, with any explicitly given size taking precedence."""
        max_size = self.SPLIT_MAX_SIZE if max_size is None else max_size
        min_size = self.SPLIT_MIN_SIZE if min_size is None else min_size
        if min_size is None:
            return ChunkCapacity(max_size)
        return ChunkCapacity.coerce((min_size, max_size))

    @classmethod
    def load_config(cls, config_file: Optional[str] = None) -> "Settings":
        """Load settings with config file -> env -> CLI precedence."""
        config_path = Path(config_file) if config_file else _discover_config_file()
        config_data = _read_config_file(config_path) if config_path else {}

        # Config file values only fill fields the environment left unset
        settings = cls()
        overrides = {
            key: value
            for key, value in config_data.items()
            if key in cls.model_fields and key not in settings.model_fields_set
        }
        if not overrides:
            return settings
        return cls(**{**settings.model_dump(), **overrides})


def _discover_config_file() -> Optional[Path]:
    for ext in ("yaml", "yml", "toml"):
        candidate = Path(f".boundsplit.{ext}")
        if candidate.exists():
            return candidate
    return None


def _read_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    if path.suffix in (".yaml", ".yml"):
        import yaml  # type: ignore[import-untyped]

        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    if path.suffix == ".toml":
        import tomllib

        with open(path, "rb") as f:
            return tomllib.load(f)
    return {}


# Replaced by load_config() during CLI startup
SETTINGS = Settings()
