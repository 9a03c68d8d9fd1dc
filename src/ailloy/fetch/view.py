"""Read-only view over a fetched mold directory."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ailloy.cache.layout import MANIFEST_NAMES
from ailloy.errors import NotFoundError
from ailloy.safepath import safe_join


@dataclass(frozen=True, slots=True)
class MoldFS:
    """Read helpers confined to one fetched mold directory.

    ``root`` is a path into the shared cache snapshot, not a private copy.
    Every other resolution of the same version sees that tree, so callers
    must not write through it.
    """

    root: Path

    @property
    def manifest_name(self) -> str:
        for name in MANIFEST_NAMES:
            if (self.root / name).is_file():
                return name
        raise NotFoundError(
            "No mold.yaml or ingot.yaml found.",
            context={"operation": "read_mold", "path": str(self.root)},
        )

    def path(self, name: str) -> Path:
        return safe_join(self.root, name, operation="read_mold")

    def exists(self, name: str) -> bool:
        return self.path(name).exists()

    def read_bytes(self, name: str) -> bytes:
        return self.path(name).read_bytes()

    def read_text(self, name: str, *, encoding: str = "utf-8") -> str:
        return self.path(name).read_text(encoding=encoding)

    def files(self) -> list[str]:
        """Relative POSIX paths of every regular file in the view, sorted."""
        return sorted(
            item.relative_to(self.root).as_posix()
            for item in self.root.rglob("*")
            if item.is_file()
        )
