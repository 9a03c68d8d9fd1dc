"""Public package entrypoint for SCM-native mold resolution."""

from .cache import CacheEntry, clean_cache, clean_mold, is_cached, list_cached_molds
from .deps import RecastChange, SkippedDependencyWarning, quench, recast
from .errors import (
    ErrorCode,
    FoundryError,
    InputError,
    LockfileError,
    NotFoundError,
    PathEscapeError,
    PolicyError,
    RemoteError,
)
from .fetch import GitClient, MoldFS, SubprocessGit, extract_tar
from .fetch.fetcher import Fetcher
from .lockfile import LockEntry, LockFile
from .observability import StructuredLogger
from .policy import MutableRefWarning, Policy, default_cache_dir
from .reference import Reference, SpecifierKind, is_remote_reference, parse_reference
from .resolve import LockfileWarning, resolve, resolve_with
from .resolver import ResolvedVersion, resolve_version

__all__ = [
    "CacheEntry",
    "ErrorCode",
    "Fetcher",
    "FoundryError",
    "GitClient",
    "InputError",
    "LockEntry",
    "LockFile",
    "LockfileError",
    "LockfileWarning",
    "MoldFS",
    "MutableRefWarning",
    "NotFoundError",
    "PathEscapeError",
    "Policy",
    "PolicyError",
    "RecastChange",
    "Reference",
    "RemoteError",
    "ResolvedVersion",
    "SkippedDependencyWarning",
    "SpecifierKind",
    "StructuredLogger",
    "SubprocessGit",
    "clean_cache",
    "clean_mold",
    "default_cache_dir",
    "extract_tar",
    "is_cached",
    "is_remote_reference",
    "list_cached_molds",
    "parse_reference",
    "quench",
    "recast",
    "resolve",
    "resolve_version",
    "resolve_with",
]
