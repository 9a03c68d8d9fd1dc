"""On-disk cache layout: `<root>/<host>/<owner>/<repo>/{git,<tag>}`."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

from ailloy.reference import Reference
from ailloy.safepath import safe_join

BARE_CLONE_DIR = "git"
MANIFEST_NAMES = ("mold.yaml", "ingot.yaml")


@dataclass(frozen=True, slots=True)
class CacheEntry:
    host: str
    owner: str
    repo: str
    versions: tuple[str, ...] = ()

    @property
    def cache_key(self) -> str:
        return f"{self.host}/{self.owner}/{self.repo}"


def bare_clone_dir(cache_dir: Path, ref: Reference) -> Path:
    return Path(cache_dir) / ref.cache_key / BARE_CLONE_DIR


def version_dir(cache_dir: Path, ref: Reference, tag: str) -> Path:
    return Path(cache_dir) / ref.cache_key / tag


def snapshot_root(cache_dir: Path, ref: Reference, tag: str) -> Path:
    """Version directory joined with the reference's subpath, if any."""
    root = version_dir(cache_dir, ref, tag)
    return root / ref.subpath if ref.subpath else root


def has_manifest(directory: Path) -> bool:
    return any((directory / name).is_file() for name in MANIFEST_NAMES)


def is_cached(cache_dir: Path, ref: Reference, tag: str) -> bool:
    return has_manifest(snapshot_root(cache_dir, ref, tag))


def list_cached_molds(cache_dir: Path) -> list[CacheEntry]:
    root = Path(cache_dir)
    if not root.is_dir():
        return []
    entries: list[CacheEntry] = []
    for host in _subdirs(root):
        for owner in _subdirs(host):
            for repo in _subdirs(owner):
                versions = tuple(
                    version.name for version in _subdirs(repo) if version.name != BARE_CLONE_DIR
                )
                entries.append(
                    CacheEntry(host=host.name, owner=owner.name, repo=repo.name, versions=versions)
                )
    return entries


def clean_mold(cache_dir: Path, ref: Reference) -> Path:
    """Remove every cached artifact of one mold; returns the removed directory."""
    target = safe_join(cache_dir, ref.cache_key, operation="clean_mold", allow_base=False)
    if target.exists():
        shutil.rmtree(target)
    return target


def clean_cache(cache_dir: Path) -> list[Path]:
    """Remove everything under the cache root, leaving the root itself in place."""
    root = Path(cache_dir)
    if not root.is_dir():
        return []
    removed: list[Path] = []
    for child in sorted(root.iterdir()):
        target = safe_join(root, child.name, operation="clean_cache", allow_base=False)
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        else:
            target.unlink()
        removed.append(target)
    return removed


def _subdirs(directory: Path) -> list[Path]:
    return sorted(
        (child for child in directory.iterdir() if child.is_dir() and not child.is_symlink()),
        key=lambda child: child.name,
    )

