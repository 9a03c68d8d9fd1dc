"""Lockfile typed model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

API_VERSION = "v1"


@dataclass(frozen=True, slots=True)
class LockEntry:
    name: str
    source: str
    version: str
    commit: str
    timestamp: datetime
    subpath: str = ""


@dataclass(slots=True)
class LockFile:
    api_version: str = API_VERSION
    molds: list[LockEntry] = field(default_factory=list)

    def find_entry(self, source: str) -> LockEntry | None:
        for entry in self.molds:
            if entry.source == source:
                return entry
        return None

    def find_entry_by_name(self, name: str) -> LockEntry | None:
        for entry in self.molds:
            if entry.name == name:
                return entry
        return None

    def upsert_entry(self, entry: LockEntry) -> None:
        """Replace the entry with the same source, or append a new one."""
        for index, existing in enumerate(self.molds):
            if existing.source == entry.source:
                self.molds[index] = entry
                return
        self.molds.append(entry)


__all__ = ["API_VERSION", "LockEntry", "LockFile"]
