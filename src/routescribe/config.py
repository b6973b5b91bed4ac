"""Settings for a routescribe run, read from ROUTESCRIBE_* environment variables or a .env file."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from routescribe.source.model import DEFAULT_KIND_ORDER, MappingKind


def _split_list(v):
    # env values arrive raw: '["a", "b"]' or 'a,b'
    if not isinstance(v, str):
        return v
    text = v.strip()
    if text.startswith("["):
        return json.loads(text)
    return [x.strip() for x in text.split(",") if x.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ROUTESCRIBE_", env_file=".env", extra="ignore")

    # Output
    output_dir: str = ".routescribe"
    output_name: str = "routes"

    # Recognized mapping decorators, in priority order
    recognized_kinds: Annotated[list[MappingKind], NoDecode] = list(DEFAULT_KIND_ORDER)

    # Scanning
    max_file_bytes: int = 500_000
    extra_ignores: Annotated[list[str], NoDecode] = []

    # Observability
    log_level: str = "WARNING"

    @field_validator("recognized_kinds", mode="before")
    @classmethod
    def parse_kinds(cls, v):
        """Accept "GetMapping", "get_mapping" or "GET" spellings."""
        out = []
        for item in _split_list(v):
            if isinstance(item, MappingKind):
                out.append(item)
                continue
            out.append(kind_from_name(str(item)))
        return out

    @field_validator("extra_ignores", mode="before")
    @classmethod
    def parse_ignores(cls, v):
        return _split_list(v)

    def report_path_for(self, repo_root: Path) -> Path:
        return repo_root / self.output_dir / self.output_name


def kind_from_name(name: str) -> MappingKind:
    key = name.strip()
    for kind in MappingKind:
        if key in (kind.value, kind.snake_name, kind.name, kind.name.lower()):
            return kind
    raise ValueError(f"Unknown mapping kind: {name!r}")


@lru_cache
def get_settings() -> Settings:
    return Settings()
