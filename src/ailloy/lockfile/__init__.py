"""Lock file that pins resolved mold versions per origin repository."""

from .io import parse_lockfile, read_lockfile, serialize_lockfile, update_lockfile, write_lockfile
from .locking import exclusive_lock
from .model import API_VERSION, LockEntry, LockFile
from .resolve import build_entry, locked_satisfies, reference_from_entry

__all__ = [
    "API_VERSION",
    "LockEntry",
    "LockFile",
    "build_entry",
    "exclusive_lock",
    "locked_satisfies",
    "parse_lockfile",
    "read_lockfile",
    "reference_from_entry",
    "serialize_lockfile",
    "update_lockfile",
    "write_lockfile",
]
