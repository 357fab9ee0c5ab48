from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence

DEFAULT_CHOICE_LIMIT = 500

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_flag(env: Mapping[str, str], key: str, default: bool) -> bool:
    value = env.get(key)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class DiffConfig:
    """Analysis flags threaded through every stage of a comparison."""

    show_all: bool = False  # Also report functions that did not change
    body_only: bool = False  # Declaration starts at the body's opening brace
    nested_comments: bool = True  # "/* /* */ */" is one comment
    choice_limit: int = DEFAULT_CHOICE_LIMIT  # Max branch choices evaluated per file

    def __post_init__(self) -> None:
        if self.choice_limit <= 0:
            raise ValueError(f"choice_limit must be positive, got {self.choice_limit}")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "DiffConfig":
        """Build a config from ``ADIFF_*`` environment variables."""
        env = os.environ if env is None else env
        limit = env.get("ADIFF_CHOICE_LIMIT", "").strip()
        return cls(
            show_all=_env_flag(env, "ADIFF_SHOW_ALL", False),
            body_only=_env_flag(env, "ADIFF_BODY_ONLY", False),
            nested_comments=_env_flag(env, "ADIFF_NESTED_COMMENTS", True),
            choice_limit=int(limit) if limit else DEFAULT_CHOICE_LIMIT,
        )


@dataclass(frozen=True)
class RuntimeConfig:
    """Run-level knobs that do not change how a file pair is analyzed."""

    report_path: Optional[Path] = None  # YAML report destination
    # Directory mode: which files count as C sources
    source_suffixes: Sequence[str] = (".c",)
    excluded_suffixes: Sequence[str] = (".int.c",)

    def is_source_file(self, name: str) -> bool:
        if any(name.endswith(suffix) for suffix in self.excluded_suffixes):
            return False
        return any(name.endswith(suffix) for suffix in self.source_suffixes)
