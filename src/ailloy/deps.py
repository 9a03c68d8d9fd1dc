"""Lock file maintenance: re-resolving (recast) and pin verification (quench)."""

from __future__ import annotations

import dataclasses
import warnings
from collections.abc import Sequence
from dataclasses import dataclass

from ailloy.errors import FoundryError, LockfileError, NotFoundError
from ailloy.fetch.fetcher import Fetcher
from ailloy.fetch.git import GitClient
from ailloy.lockfile import (
    LockEntry,
    LockFile,
    build_entry,
    read_lockfile,
    reference_from_entry,
    update_lockfile,
)
from ailloy.observability import StructuredLogger
from ailloy.policy import Policy
from ailloy.resolver import resolve_version


class SkippedDependencyWarning(UserWarning):
    """Warning raised when a locked dependency could not be re-resolved."""


@dataclass(frozen=True, slots=True)
class RecastChange:
    name: str
    source: str
    old_version: str
    old_commit: str
    new_version: str
    new_commit: str


def recast(
    *,
    git: GitClient,
    policy: Policy,
    names: Sequence[str] = (),
    dry_run: bool = False,
    logger: StructuredLogger | None = None,
) -> list[RecastChange]:
    """Re-resolve locked molds to their newest tags, ignoring lock stickiness.

    Entries that fail to resolve are skipped with a warning. Unless
    ``dry_run`` is set, new versions are fetched into the cache and the lock
    file is updated.
    """
    logger = logger if logger is not None else StructuredLogger()
    lockfile = _require_lockfile(policy)
    entries = _select_entries(lockfile, names)
    fetcher = Fetcher(git, policy.cache_dir, logger=logger)

    changes: list[RecastChange] = []
    updated: list[LockEntry] = []
    for entry in entries:
        try:
            ref = reference_from_entry(entry)
            resolved = resolve_version(ref, git, mutable_ref_policy=policy.mutable_ref_policy)
        except FoundryError as exc:
            warnings.warn(
                f"Skipping {entry.name}: {exc}",
                SkippedDependencyWarning,
                stacklevel=2,
            )
            continue

        if resolved.tag == entry.version and resolved.commit == entry.commit:
            logger.log(
                operation="recast",
                source=entry.source,
                version=entry.version,
                message="Already up to date.",
            )
            continue

        changes.append(
            RecastChange(
                name=entry.name,
                source=entry.source,
                old_version=entry.version,
                old_commit=entry.commit,
                new_version=resolved.tag,
                new_commit=resolved.commit,
            )
        )
        if dry_run:
            continue
        try:
            fetcher.fetch(ref, resolved)
        except FoundryError as exc:
            warnings.warn(
                f"Could not cache {entry.name}@{resolved.tag}: {exc}",
                SkippedDependencyWarning,
                stacklevel=2,
            )
        updated.append(dataclasses.replace(build_entry(ref, resolved), name=entry.name))

    if updated:

        def apply_updates(lock: LockFile) -> None:
            for item in updated:
                lock.upsert_entry(item)

        update_lockfile(
            policy.lock_path,
            apply_updates,
            timeout=policy.lock_timeout,
        )
        for change in changes:
            logger.log(
                operation="recast",
                source=change.source,
                version=change.new_version,
                message=f"Updated from {change.old_version}.",
                extra={"commit": change.new_commit},
            )
    return changes


def quench(*, policy: Policy) -> list[LockEntry]:
    """Verify every locked mold is pinned to both a version and a commit."""
    lockfile = _require_lockfile(policy)
    unpinned = [entry.name for entry in lockfile.molds if not entry.version or not entry.commit]
    if unpinned:
        raise LockfileError(
            "Some dependencies are not fully pinned.",
            hint="Run recast to re-resolve them.",
            context={"path": str(policy.lock_path), "unpinned": ", ".join(unpinned)},
        )
    return list(lockfile.molds)


def _require_lockfile(policy: Policy) -> LockFile:
    lockfile = read_lockfile(policy.lock_path)
    if lockfile is None or not lockfile.molds:
        raise LockfileError(
            "No lock file found.",
            hint="Resolve a mold first so its version is recorded.",
            context={"path": str(policy.lock_path)},
        )
    return lockfile


def _select_entries(lockfile: LockFile, names: Sequence[str]) -> list[LockEntry]:
    if not names:
        return list(lockfile.molds)
    selected: list[LockEntry] = []
    for name in names:
        entry = lockfile.find_entry_by_name(name)
        if entry is None:
            raise NotFoundError(
                f"Dependency {name!r} not found in lock file.",
                context={"available": ", ".join(item.name for item in lockfile.molds)},
            )
        selected.append(entry)
    return selected


__all__ = ["RecastChange", "SkippedDependencyWarning", "quench", "recast"]
