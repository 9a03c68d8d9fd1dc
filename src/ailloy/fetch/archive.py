"""Tar extraction that refuses entries escaping the destination directory."""

from __future__ import annotations

import io
import os
import tarfile
from pathlib import Path

from ailloy.errors import RemoteError
from ailloy.safepath import safe_join

DIR_MODE = 0o755
FILE_MODE_MASK = 0o644


def extract_tar(data: bytes, dest_dir: str | Path) -> list[Path]:
    """Extract directories and regular files from ``data`` into ``dest_dir``.

    Every entry is validated before anything is written, so an archive with a
    single escaping member leaves the filesystem untouched. Links and special
    files are skipped. Returns the written file paths.
    """
    destination = Path(dest_dir)
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:") as archive:
            members = archive.getmembers()
            targets = [
                safe_join(destination, member.name, operation="extract_tar")
                for member in members
            ]
            written: list[Path] = []
            for member, target in zip(members, targets):
                if member.isdir():
                    target.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
                    os.chmod(target, DIR_MODE)
                elif member.isfile():
                    target.parent.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
                    source = archive.extractfile(member)
                    payload = source.read() if source is not None else b""
                    target.write_bytes(payload)
                    os.chmod(target, member.mode & FILE_MODE_MASK)
                    written.append(target)
    except tarfile.TarError as exc:
        raise RemoteError(
            "Archive is not a readable tar stream.",
            hint=str(exc),
            context={"operation": "extract_tar", "destination": str(destination)},
        ) from exc
    return written
