"""Lockfile resolution helpers."""

from __future__ import annotations

from datetime import datetime, timezone

from ailloy.errors import InputError
from ailloy.lockfile.model import LockEntry
from ailloy.reference import Reference, SpecifierKind
from ailloy.resolver import ResolvedVersion


def locked_satisfies(ref: Reference, entry: LockEntry) -> bool:
    """Whether ``entry`` may stand in for a live resolution of ``ref``.

    Latest and constraint references stick to whatever was locked until the
    entry is removed. Exact references must name the locked version. Branch
    and SHA references always resolve again.
    """
    if ref.kind in (SpecifierKind.LATEST, SpecifierKind.CONSTRAINT):
        return True
    if ref.kind is SpecifierKind.EXACT:
        return entry.version.removeprefix("v") == ref.version.removeprefix("v")
    return False


def build_entry(
    ref: Reference,
    resolved: ResolvedVersion,
    *,
    now: datetime | None = None,
) -> LockEntry:
    return LockEntry(
        name=ref.repo,
        source=ref.cache_key,
        version=resolved.tag,
        commit=resolved.commit,
        subpath=ref.subpath,
        timestamp=now or datetime.now(timezone.utc),
    )


def reference_from_entry(entry: LockEntry) -> Reference:
    """Rebuild a latest-tracking reference from a lock entry's source."""
    parts = entry.source.split("/", 2)
    if len(parts) < 3 or not all(parts):
        raise InputError(
            f"Invalid lock entry source {entry.source!r}: expected <host>/<owner>/<repo>.",
            context={"source": entry.source, "name": entry.name},
        )
    host, owner, repo = parts
    return Reference(
        host=host,
        owner=owner,
        repo=repo,
        subpath=entry.subpath,
        kind=SpecifierKind.LATEST,
    )
