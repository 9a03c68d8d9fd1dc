"""Shared test fixtures."""

from __future__ import annotations

import io
import tarfile
from collections.abc import Callable
from pathlib import Path

import pytest

from ailloy.errors import RemoteError
from ailloy.policy import Policy

TAGS_OUTPUT = "\n".join(
    [
        "c000000000000000000000000000000000000001\trefs/tags/v0.1.0",
        "c000000000000000000000000000000000000002\trefs/tags/v0.2.0",
        "a000000000000000000000000000000000000003\trefs/tags/v1.0.0",
        "c000000000000000000000000000000000000003\trefs/tags/v1.0.0^{}",
        "c000000000000000000000000000000000000004\trefs/tags/v1.1.0",
        "c000000000000000000000000000000000000005\trefs/tags/v1.2.3",
        "c000000000000000000000000000000000000006\trefs/tags/v2.0.0",
        "d000000000000000000000000000000000000000\trefs/tags/not-semver",
    ]
) + "\n"

MOLD_FILES = {"mold.yaml": "name: widget\n", "commands/hello.md": "hello\n"}


class FakeGit:
    """In-memory `GitClient` that records every call."""

    def __init__(
        self,
        *,
        tags_output: str = TAGS_OUTPUT,
        branches: dict[str, str] | None = None,
        archives: dict[str, bytes] | None = None,
    ) -> None:
        self.tags_output = tags_output
        self.branches = dict(branches or {})
        self.archives = dict(archives or {})
        self.calls: list[tuple[str, ...]] = []

    def ls_remote_tags(self, url: str) -> str:
        self.calls.append(("ls_remote_tags", url))
        return self.tags_output

    def ls_remote_branch(self, url: str, branch: str) -> str:
        self.calls.append(("ls_remote_branch", url, branch))
        commit = self.branches.get(branch)
        return f"{commit}\trefs/heads/{branch}\n" if commit else ""

    def clone_bare(self, url: str, dest: Path) -> None:
        self.calls.append(("clone_bare", url, str(dest)))
        dest.mkdir(parents=True)
        (dest / "HEAD").write_text("ref: refs/heads/main\n", encoding="utf-8")

    def fetch_all(self, bare_dir: Path) -> None:
        self.calls.append(("fetch_all", str(bare_dir)))

    def archive(self, bare_dir: Path, tag: str) -> bytes:
        self.calls.append(("archive", str(bare_dir), tag))
        if tag not in self.archives:
            raise RemoteError(
                "Git command failed.",
                context={
                    "argv": f"git -C {bare_dir} archive --format=tar {tag}",
                    "output": f"fatal: not a valid object name: {tag}",
                },
            )
        return self.archives[tag]

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)


def build_tarball(files: dict[str, str], *, modes: dict[str, int] | None = None) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as archive:
        for name, content in files.items():
            payload = content.encode("utf-8")
            info = tarfile.TarInfo(name=name)
            info.size = len(payload)
            info.mode = (modes or {}).get(name, 0o644)
            archive.addfile(info, io.BytesIO(payload))
    return buffer.getvalue()


@pytest.fixture
def tarball() -> Callable[..., bytes]:
    """Build an in-memory tar archive from a mapping of path to text content."""
    return build_tarball


@pytest.fixture
def fake_git() -> FakeGit:
    """Fake git serving the standard tag listing and a mold archive for every tag."""
    archive = build_tarball(MOLD_FILES)
    tags = ["v0.1.0", "v0.2.0", "v1.0.0", "v1.1.0", "v1.2.3", "v2.0.0"]
    return FakeGit(archives={tag: archive for tag in tags})


@pytest.fixture
def make_git() -> type[FakeGit]:
    """Factory for fake git clients with custom tags, branches or archives."""
    return FakeGit


@pytest.fixture
def policy(tmp_path: Path) -> Policy:
    """Policy rooted in the test's temporary directory."""
    return Policy(cache_dir=tmp_path / "cache", lock_path=tmp_path / "project" / "ailloy.lock")
