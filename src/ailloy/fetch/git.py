"""Git capability used by version resolution and the fetcher."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Protocol

from ailloy.errors import RemoteError


class GitClient(Protocol):
    def ls_remote_tags(self, url: str) -> str:
        """Return `git ls-remote --tags` output for ``url``."""

    def ls_remote_branch(self, url: str, branch: str) -> str:
        """Return `git ls-remote` output for ``refs/heads/<branch>`` on ``url``."""

    def clone_bare(self, url: str, dest: Path) -> None:
        """Create a bare clone of ``url`` at ``dest``."""

    def fetch_all(self, bare_dir: Path) -> None:
        """Fetch new refs into an existing bare clone."""

    def archive(self, bare_dir: Path, tag: str) -> bytes:
        """Return a tar archive of ``tag`` produced from the bare clone."""


class SubprocessGit:
    """`GitClient` that shells out to the `git` executable."""

    def __init__(self, *, executable: str = "git", timeout: float | None = None) -> None:
        self.executable = executable
        self.timeout = timeout

    def ls_remote_tags(self, url: str) -> str:
        return self._run(["ls-remote", "--tags", url]).decode("utf-8", errors="replace")

    def ls_remote_branch(self, url: str, branch: str) -> str:
        output = self._run(["ls-remote", url, f"refs/heads/{branch}"])
        return output.decode("utf-8", errors="replace")

    def clone_bare(self, url: str, dest: Path) -> None:
        self._run(["clone", "--bare", "--quiet", url, str(dest)])

    def fetch_all(self, bare_dir: Path) -> None:
        # Bare clones carry no fetch refspec; map branches and tags explicitly.
        self._run(
            [
                "-C",
                str(bare_dir),
                "fetch",
                "--quiet",
                "--force",
                "--tags",
                "origin",
                "+refs/heads/*:refs/heads/*",
            ]
        )

    def archive(self, bare_dir: Path, tag: str) -> bytes:
        return self._run(["-C", str(bare_dir), "archive", "--format=tar", tag])

    def _run(self, argv: list[str]) -> bytes:
        command = [self.executable, *argv]
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        try:
            completed = subprocess.run(
                command,
                check=False,
                capture_output=True,
                timeout=self.timeout,
                env=env,
            )
        except subprocess.TimeoutExpired as exc:
            raise RemoteError(
                "Git command timed out.",
                hint="Check network reachability of the origin repository.",
                context={"argv": " ".join(command), "timeout": str(self.timeout)},
            ) from exc
        except OSError as exc:
            raise RemoteError(
                "Git executable could not be started.",
                hint="Install git and make sure it is on PATH.",
                context={"argv": " ".join(command), "error": str(exc)},
            ) from exc
        if completed.returncode != 0:
            raise RemoteError(
                "Git command failed.",
                hint="Inspect repository/ref inputs and git installation.",
                context={
                    "argv": " ".join(command),
                    "output": _combined_output(completed),
                },
            )
        return completed.stdout


def _combined_output(completed: subprocess.CompletedProcess[bytes]) -> str:
    parts = []
    for stream in (completed.stdout, completed.stderr):
        if stream:
            parts.append(stream.decode("utf-8", errors="replace").strip())
    return "\n".join(part for part in parts if part)
