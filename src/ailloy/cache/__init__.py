"""Mold cache layout APIs."""

from .layout import (
    BARE_CLONE_DIR,
    MANIFEST_NAMES,
    CacheEntry,
    bare_clone_dir,
    clean_cache,
    clean_mold,
    has_manifest,
    is_cached,
    list_cached_molds,
    snapshot_root,
    version_dir,
)

__all__ = [
    "BARE_CLONE_DIR",
    "MANIFEST_NAMES",
    "CacheEntry",
    "bare_clone_dir",
    "clean_cache",
    "clean_mold",
    "has_manifest",
    "is_cached",
    "list_cached_molds",
    "snapshot_root",
    "version_dir",
]
