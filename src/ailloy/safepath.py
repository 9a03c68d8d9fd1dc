"""Validated path composition shared by subpath navigation, extraction and cleaning."""

from __future__ import annotations

import os
from pathlib import Path

from ailloy.errors import PathEscapeError


def safe_join(
    base: str | Path,
    *parts: str,
    operation: str,
    allow_base: bool = True,
) -> Path:
    """Join ``parts`` onto ``base`` and reject results outside ``base``.

    Both sides are made absolute and lexically normalised (no symlink
    resolution) before the prefix comparison. With ``allow_base=False`` the
    result must be a strict descendant.
    """
    root = Path(os.path.abspath(base))
    target = Path(os.path.normpath(os.path.join(root, *parts)))
    inside = target == root or target.is_relative_to(root)
    if not inside or (target == root and not allow_base):
        raise PathEscapeError(
            "Path escapes its root directory.",
            hint="Reject the input; it was crafted to leave the intended directory.",
            context={
                "operation": operation,
                "root": str(root),
                "path": "/".join(parts),
                "resolved": str(target),
            },
        )
    return target

