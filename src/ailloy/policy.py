"""Policy configuration and enforcement helpers."""

from __future__ import annotations

import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from ailloy.errors import InputError, PolicyError

MutableRefPolicy = Literal["warn", "error", "allow"]

LOCK_FILE_NAME = "ailloy.lock"
CACHE_DIR_ENV = "AILLOY_CACHE_DIR"


class MutableRefWarning(UserWarning):
    """Warning raised when resolving a mutable branch pin."""


def default_cache_dir() -> Path:
    """Return the cache root, `~/.ailloy/cache` unless overridden by environment."""
    override = os.environ.get(CACHE_DIR_ENV)
    if override:
        return Path(override)
    return Path.home() / ".ailloy" / "cache"


@dataclass(frozen=True, slots=True)
class Policy:
    cache_dir: Path = field(default_factory=default_cache_dir)
    lock_path: Path = Path(LOCK_FILE_NAME)
    mutable_ref_policy: MutableRefPolicy = "warn"
    lock_timeout: float = 30.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "cache_dir", Path(self.cache_dir))
        object.__setattr__(self, "lock_path", Path(self.lock_path))
        if self.lock_timeout <= 0:
            raise InputError(
                "Policy lock_timeout must be positive.",
                context={"lock_timeout": str(self.lock_timeout)},
            )


def enforce_mutable_ref_policy(*, source: str, branch: str, policy: MutableRefPolicy) -> None:
    if policy == "allow":
        return
    if policy == "warn":
        warnings.warn(
            f"Branch pin `{branch}` for {source} is mutable; consider using a semver tag.",
            MutableRefWarning,
            stacklevel=3,
        )
        return
    if policy == "error":
        raise PolicyError(
            "Mutable branch pins are not allowed by policy.",
            hint="Pin a semver tag or commit SHA, or relax mutable_ref_policy.",
            context={"operation": "resolve_version", "source": source, "branch": branch},
        )
    raise InputError(f"Unsupported mutable_ref_policy value: {policy}")
