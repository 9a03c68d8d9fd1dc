"""Single entry point: reference -> lock lookup -> remote resolution -> fetch -> lock update."""

from __future__ import annotations

import warnings

from ailloy.errors import LockfileError
from ailloy.fetch.fetcher import Fetcher
from ailloy.fetch.git import GitClient, SubprocessGit
from ailloy.fetch.view import MoldFS
from ailloy.lockfile import build_entry, locked_satisfies, read_lockfile, update_lockfile
from ailloy.observability import StructuredLogger
from ailloy.policy import Policy
from ailloy.reference import Reference, parse_reference
from ailloy.resolver import ResolvedVersion, resolve_version


class LockfileWarning(UserWarning):
    """Warning raised when the lock file cannot be read or written."""


def resolve(
    raw: str,
    *,
    git: GitClient | None = None,
    policy: Policy | None = None,
    logger: StructuredLogger | None = None,
) -> MoldFS:
    """Resolve a raw mold reference and return a read-only view of the mold."""
    ref = parse_reference(raw)
    return resolve_with(
        ref,
        git if git is not None else SubprocessGit(),
        policy=policy if policy is not None else Policy(),
        logger=logger,
    )


def resolve_with(
    ref: Reference,
    git: GitClient,
    *,
    policy: Policy,
    logger: StructuredLogger | None = None,
) -> MoldFS:
    logger = logger if logger is not None else StructuredLogger()

    resolved = _locked_version(ref, policy=policy, logger=logger)
    if resolved is None:
        resolved = resolve_version(ref, git, mutable_ref_policy=policy.mutable_ref_policy)
        logger.log(
            operation="resolve_remote",
            source=ref.cache_key,
            version=resolved.tag,
            message="Resolved version from remote.",
            extra={"commit": resolved.commit, "kind": ref.kind.value},
        )

    mold = Fetcher(git, policy.cache_dir, logger=logger).fetch(ref, resolved)
    _record_resolution(ref, resolved, policy=policy, logger=logger)
    return mold


def _locked_version(
    ref: Reference,
    *,
    policy: Policy,
    logger: StructuredLogger,
) -> ResolvedVersion | None:
    try:
        lockfile = read_lockfile(policy.lock_path)
    except LockfileError as exc:
        _degraded(ref, logger=logger, operation="lock_read", detail=f"reading lock file: {exc}")
        return None
    if lockfile is None:
        return None
    entry = lockfile.find_entry(ref.cache_key)
    if entry is None or not entry.version or not entry.commit:
        return None
    if not locked_satisfies(ref, entry):
        return None
    logger.log(
        operation="lock_hit",
        source=ref.cache_key,
        version=entry.version,
        message="Using locked version.",
        extra={"commit": entry.commit},
    )
    return ResolvedVersion(tag=entry.version, commit=entry.commit)


def _record_resolution(
    ref: Reference,
    resolved: ResolvedVersion,
    *,
    policy: Policy,
    logger: StructuredLogger,
) -> None:
    entry = build_entry(ref, resolved)
    try:
        update_lockfile(
            policy.lock_path,
            lambda lock: lock.upsert_entry(entry),
            timeout=policy.lock_timeout,
        )
    except (LockfileError, OSError) as exc:
        _degraded(ref, logger=logger, operation="lock_write", detail=f"updating lock file: {exc}")
        return
    logger.log(
        operation="lock_write",
        source=ref.cache_key,
        version=resolved.tag,
        message="Recorded resolution in lock file.",
        extra={"path": str(policy.lock_path)},
    )


def _degraded(ref: Reference, *, logger: StructuredLogger, operation: str, detail: str) -> None:
    warnings.warn(detail, LockfileWarning, stacklevel=4)
    logger.log(
        operation=operation,
        source=ref.cache_key,
        version=None,
        message=detail,
        level="warning",
    )


__all__ = ["LockfileWarning", "resolve", "resolve_with"]
