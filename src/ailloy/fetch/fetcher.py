"""Bare-clone caching and version snapshot extraction."""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

from ailloy.cache.layout import BARE_CLONE_DIR, has_manifest
from ailloy.errors import InputError, NotFoundError
from ailloy.fetch.archive import extract_tar
from ailloy.fetch.git import GitClient
from ailloy.fetch.view import MoldFS
from ailloy.observability import StructuredLogger
from ailloy.reference import Reference
from ailloy.resolver import ResolvedVersion
from ailloy.safepath import safe_join


class Fetcher:
    """Materialize resolved mold versions under a cache root.

    Each origin gets one bare clone (`<key>/git`) that is created once and
    refreshed on every fetch. Each resolved tag is archived out of the bare
    clone into its own snapshot directory exactly once.
    """

    def __init__(
        self,
        git: GitClient,
        cache_dir: str | Path,
        *,
        logger: StructuredLogger | None = None,
    ) -> None:
        self.git = git
        self.cache_dir = Path(cache_dir)
        self.logger = logger if logger is not None else StructuredLogger()

    def fetch(self, ref: Reference, resolved: ResolvedVersion) -> MoldFS:
        if resolved.tag.split("/", 1)[0] == BARE_CLONE_DIR:
            raise InputError(
                f"Version {resolved.tag!r} collides with the reserved bare clone directory.",
                context={"operation": "fetch", "source": ref.cache_key},
            )
        bare_dir = safe_join(
            self.cache_dir, ref.cache_key, BARE_CLONE_DIR, operation="fetch", allow_base=False
        )
        snapshot_dir = safe_join(
            self.cache_dir, ref.cache_key, resolved.tag, operation="fetch", allow_base=False
        )
        root = self._subpath_root(ref, snapshot_dir)

        self._ensure_bare_clone(ref, bare_dir)
        if has_manifest(root):
            self.logger.log(
                operation="snapshot_hit",
                source=ref.cache_key,
                version=resolved.tag,
                message="Using cached version snapshot.",
            )
        else:
            self._checkout_version(ref, resolved, bare_dir=bare_dir, snapshot_dir=snapshot_dir)

        return self._validate(ref, resolved, root)

    def _ensure_bare_clone(self, ref: Reference, bare_dir: Path) -> None:
        if (bare_dir / "HEAD").exists():
            self.git.fetch_all(bare_dir)
            self.logger.log(
                operation="fetch_update",
                source=ref.cache_key,
                version=None,
                message="Updated bare clone.",
                extra={"path": str(bare_dir)},
            )
            return
        bare_dir.parent.mkdir(parents=True, exist_ok=True)
        self.git.clone_bare(ref.clone_url, bare_dir)
        self.logger.log(
            operation="fetch_clone",
            source=ref.cache_key,
            version=None,
            message="Created bare clone.",
            extra={"url": ref.clone_url, "path": str(bare_dir)},
        )

    def _checkout_version(
        self,
        ref: Reference,
        resolved: ResolvedVersion,
        *,
        bare_dir: Path,
        snapshot_dir: Path,
    ) -> None:
        payload = self.git.archive(bare_dir, resolved.tag)
        snapshot_dir.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=".extract-", dir=str(snapshot_dir.parent)))
        try:
            os.chmod(staging, 0o755)
            written = extract_tar(payload, staging)
            if snapshot_dir.exists():
                shutil.rmtree(snapshot_dir)
            os.rename(staging, snapshot_dir)
        finally:
            if staging.exists():
                shutil.rmtree(staging, ignore_errors=True)
        self.logger.log(
            operation="snapshot_extract",
            source=ref.cache_key,
            version=resolved.tag,
            message="Extracted version snapshot.",
            extra={"path": str(snapshot_dir), "files": len(written)},
        )

    def _subpath_root(self, ref: Reference, snapshot_dir: Path) -> Path:
        if not ref.subpath:
            return snapshot_dir
        return safe_join(
            snapshot_dir, ref.subpath, operation="navigate_subpath", allow_base=False
        )

    def _validate(self, ref: Reference, resolved: ResolvedVersion, root: Path) -> MoldFS:
        location = f"{ref.cache_key}@{resolved.tag}"
        if ref.subpath:
            location += f"//{ref.subpath}"
        if not root.is_dir():
            raise NotFoundError(
                f"Subpath {ref.subpath!r} does not exist in {ref.cache_key}@{resolved.tag}.",
                context={"operation": "fetch", "path": str(root)},
            )
        if not has_manifest(root):
            raise NotFoundError(
                f"No mold.yaml or ingot.yaml found at {location}.",
                context={"operation": "fetch", "path": str(root)},
            )
        return MoldFS(root=root)


__all__ = ["Fetcher"]
