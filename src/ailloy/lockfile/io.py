"""Lockfile parser and serializer."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from ailloy.errors import LockfileError
from ailloy.lockfile.locking import exclusive_lock
from ailloy.lockfile.model import API_VERSION, LockEntry, LockFile


def serialize_lockfile(lockfile: LockFile) -> str:
    payload = {
        "apiVersion": lockfile.api_version,
        "molds": [_entry_payload(entry) for entry in lockfile.molds],
    }
    return yaml.safe_dump(payload, sort_keys=False, default_flow_style=False)


def parse_lockfile(raw: str) -> LockFile:
    try:
        payload = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise LockfileError("Invalid lockfile YAML.", hint=str(exc)) from exc

    if payload is None:
        return LockFile()
    if not isinstance(payload, dict):
        raise LockfileError("Invalid lockfile payload type.")

    api_version = payload.get("apiVersion", API_VERSION)
    if not isinstance(api_version, str) or not api_version:
        raise LockfileError("Invalid lockfile `apiVersion` value.")
    molds_raw = payload.get("molds") or []
    if not isinstance(molds_raw, list):
        raise LockfileError("Invalid lockfile `molds` value.")
    return LockFile(
        api_version=api_version,
        molds=[_parse_entry(item) for item in molds_raw],
    )


def read_lockfile(path: str | Path) -> LockFile | None:
    """Read the lock file at ``path``; a missing file yields None."""
    lock_path = Path(path)
    try:
        raw = lock_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as exc:
        raise LockfileError(
            "Lockfile could not be read.",
            hint=str(exc),
            context={"path": str(lock_path)},
        ) from exc
    return parse_lockfile(raw)


def write_lockfile(lockfile: LockFile, path: str | Path) -> Path:
    """Rewrite the whole lock file atomically."""
    lock_path = Path(path)
    try:
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{lock_path.name}.", suffix=".tmp", dir=str(lock_path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(serialize_lockfile(lockfile))
            os.chmod(temp_name, 0o644)
            os.replace(temp_name, lock_path)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise LockfileError(
            "Lockfile could not be written.",
            hint=str(exc),
            context={"path": str(lock_path)},
        ) from exc
    return lock_path


def update_lockfile(
    path: str | Path,
    mutate: Callable[[LockFile], None],
    *,
    timeout: float,
) -> LockFile:
    """Read, mutate and rewrite the lock file while holding an exclusive lock.

    A missing or unparseable lock file starts from an empty one.
    """
    with exclusive_lock(path, timeout=timeout) as lock_path:
        try:
            lockfile = read_lockfile(lock_path) or LockFile()
        except LockfileError:
            lockfile = LockFile()
        mutate(lockfile)
        write_lockfile(lockfile, lock_path)
    return lockfile


def _entry_payload(entry: LockEntry) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "name": entry.name,
        "source": entry.source,
        "version": entry.version,
        "commit": entry.commit,
    }
    if entry.subpath:
        payload["subpath"] = entry.subpath
    payload["timestamp"] = entry.timestamp
    return payload


def _parse_entry(item: Any) -> LockEntry:
    if not isinstance(item, dict):
        raise LockfileError("Invalid mold entry in lockfile.")
    return LockEntry(
        name=_required_str(item, "name"),
        source=_required_str(item, "source"),
        version=_optional_str(item, "version"),
        commit=_optional_str(item, "commit"),
        subpath=_optional_str(item, "subpath"),
        timestamp=_required_timestamp(item, "timestamp"),
    )


def _required_str(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise LockfileError(f"Invalid lockfile `{key}` value.")
    return value


def _optional_str(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise LockfileError(f"Invalid lockfile `{key}` value.")
    return value


def _required_timestamp(payload: dict[str, Any], key: str) -> datetime:
    value = payload.get(key)
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError as exc:
            raise LockfileError(f"Invalid lockfile `{key}` value.", hint=str(exc)) from exc
    if not isinstance(value, datetime):
        raise LockfileError(f"Invalid lockfile `{key}` value.")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value
