"""Advisory locking that serializes read-modify-write cycles on a lock file."""

from __future__ import annotations

import fcntl
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ailloy.errors import LockfileError

POLL_INTERVAL = 0.05

_THREAD_MUTEXES: dict[str, threading.Lock] = {}
_THREAD_MUTEXES_GUARD = threading.Lock()


def _thread_mutex(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _THREAD_MUTEXES_GUARD:
        return _THREAD_MUTEXES.setdefault(key, threading.Lock())


@contextmanager
def exclusive_lock(path: str | Path, *, timeout: float) -> Iterator[Path]:
    """Hold an exclusive lock for ``path`` via the sidecar ``<path>.lock``.

    An in-process mutex keyed by the resolved path covers threads; ``flock``
    on the sidecar covers other processes. The sidecar is left in place so
    every contender locks the same inode.
    """
    target = Path(path)
    sidecar = target.with_name(target.name + ".lock")
    sidecar.parent.mkdir(parents=True, exist_ok=True)
    deadline = time.monotonic() + timeout

    mutex = _thread_mutex(sidecar)
    if not mutex.acquire(timeout=timeout):
        raise _timeout_error(target, timeout)
    try:
        with open(sidecar, "a+") as handle:
            while True:
                try:
                    fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except OSError:
                    if time.monotonic() >= deadline:
                        raise _timeout_error(target, timeout) from None
                    time.sleep(POLL_INTERVAL)
            try:
                yield target
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
    finally:
        mutex.release()


def _timeout_error(target: Path, timeout: float) -> LockfileError:
    return LockfileError(
        "Timed out waiting for the lock file to become available.",
        hint="Another resolution is updating the lock file; retry when it finishes.",
        context={"path": str(target), "timeout": str(timeout)},
    )
