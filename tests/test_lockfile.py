import threading
from datetime import datetime, timezone
from pathlib import Path

import pytest
import yaml

from ailloy.errors import InputError, LockfileError
from ailloy.lockfile import (
    LockEntry,
    LockFile,
    build_entry,
    exclusive_lock,
    locked_satisfies,
    parse_lockfile,
    read_lockfile,
    reference_from_entry,
    serialize_lockfile,
    update_lockfile,
    write_lockfile,
)
from ailloy.reference import SpecifierKind, parse_reference
from ailloy.resolver import ResolvedVersion

NOW = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


def test_lockfile_roundtrip_preserves_entries(tmp_path: Path) -> None:
    lockfile = LockFile(
        molds=[
            _entry("widget", "github.com/acme/widget", "v1.2.3"),
            _entry("tools", "gitlab.com/team/tools", "v0.1.0", subpath="molds/claude"),
        ]
    )
    path = tmp_path / "ailloy.lock"

    write_lockfile(lockfile, path)

    assert read_lockfile(path) == lockfile


def test_serialized_lockfile_layout() -> None:
    text = serialize_lockfile(LockFile(molds=[_entry("widget", "github.com/acme/widget", "v1.2.3")]))
    payload = yaml.safe_load(text)

    assert text.startswith("apiVersion: v1\nmolds:\n")
    assert list(payload["molds"][0]) == ["name", "source", "version", "commit", "timestamp"]
    assert payload["molds"][0]["timestamp"] == NOW


def test_parse_lockfile_accepts_string_timestamps_and_missing_pins() -> None:
    lockfile = parse_lockfile(
        "apiVersion: v1\n"
        "molds:\n"
        "  - name: widget\n"
        "    source: github.com/acme/widget\n"
        "    timestamp: '2024-05-01T12:30:00'\n"
    )

    entry = lockfile.molds[0]
    assert entry.version == ""
    assert entry.commit == ""
    assert entry.timestamp == NOW


def test_read_lockfile_missing_returns_none(tmp_path: Path) -> None:
    assert read_lockfile(tmp_path / "ailloy.lock") is None


def test_read_lockfile_rejects_undecodable_bytes(tmp_path: Path) -> None:
    path = tmp_path / "ailloy.lock"
    path.write_bytes(b"\xff\xfe")

    with pytest.raises(LockfileError) as excinfo:
        read_lockfile(path)

    assert excinfo.value.context["path"] == str(path)


def test_empty_lockfile_parses_as_empty() -> None:
    assert parse_lockfile("") == LockFile()


@pytest.mark.parametrize(
    "raw",
    [
        "molds: [unterminated",
        "- just\n- a list\n",
        "apiVersion: v1\nmolds: nope\n",
        "apiVersion: v1\nmolds:\n  - source: github.com/acme/widget\n    timestamp: 2024-05-01\n",
        "apiVersion: v1\nmolds:\n  - name: w\n    source: s\n    timestamp: yesterday\n",
    ],
)
def test_parse_lockfile_rejects_invalid_content(raw: str) -> None:
    with pytest.raises(LockfileError):
        parse_lockfile(raw)


def test_upsert_entry_replaces_by_source() -> None:
    lockfile = LockFile(molds=[_entry("widget", "github.com/acme/widget", "v1.0.0")])

    lockfile.upsert_entry(_entry("widget", "github.com/acme/widget", "v2.0.0"))
    lockfile.upsert_entry(_entry("widget", "github.com/other/widget", "v0.1.0"))

    assert [entry.version for entry in lockfile.molds] == ["v2.0.0", "v0.1.0"]
    assert lockfile.find_entry("github.com/acme/widget").version == "v2.0.0"
    assert lockfile.find_entry_by_name("widget").source == "github.com/acme/widget"
    assert lockfile.find_entry("github.com/nobody/widget") is None


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("github.com/acme/widget", True),
        ("github.com/acme/widget@^1.0.0", True),
        ("github.com/acme/widget@^3.0.0", True),
        ("github.com/acme/widget@v1.2.3", True),
        ("github.com/acme/widget@1.2.3", True),
        ("github.com/acme/widget@v1.2.4", False),
        ("github.com/acme/widget@main", False),
        ("github.com/acme/widget@abc1234", False),
    ],
)
def test_locked_satisfies(raw: str, expected: bool) -> None:
    entry = _entry("widget", "github.com/acme/widget", "v1.2.3")

    assert locked_satisfies(parse_reference(raw), entry) is expected


def test_build_entry_and_reference_from_entry() -> None:
    ref = parse_reference("github.com/acme/widget@^1.0.0//molds/claude")

    entry = build_entry(ref, ResolvedVersion(tag="v1.2.3", commit="c" * 40), now=NOW)
    rebuilt = reference_from_entry(entry)

    assert entry == LockEntry(
        name="widget",
        source="github.com/acme/widget",
        version="v1.2.3",
        commit="c" * 40,
        timestamp=NOW,
        subpath="molds/claude",
    )
    assert rebuilt.cache_key == "github.com/acme/widget"
    assert rebuilt.subpath == "molds/claude"
    assert rebuilt.kind is SpecifierKind.LATEST


def test_reference_from_entry_rejects_bad_source() -> None:
    with pytest.raises(InputError):
        reference_from_entry(_entry("widget", "widget", "v1.0.0"))


def test_update_lockfile_creates_and_mutates(tmp_path: Path) -> None:
    path = tmp_path / "project" / "ailloy.lock"

    update_lockfile(path, lambda lock: lock.upsert_entry(_entry("a", "h/o/a", "v1.0.0")), timeout=5)
    result = update_lockfile(
        path, lambda lock: lock.upsert_entry(_entry("b", "h/o/b", "v2.0.0")), timeout=5
    )

    assert [entry.name for entry in result.molds] == ["a", "b"]
    assert read_lockfile(path) == result
    assert (tmp_path / "project" / "ailloy.lock.lock").exists()


def test_update_lockfile_replaces_unparseable_file(tmp_path: Path) -> None:
    path = tmp_path / "ailloy.lock"
    path.write_text("molds: [unterminated", encoding="utf-8")

    update_lockfile(path, lambda lock: lock.upsert_entry(_entry("a", "h/o/a", "v1.0.0")), timeout=5)

    assert [entry.name for entry in read_lockfile(path).molds] == ["a"]


def test_concurrent_updates_keep_every_entry(tmp_path: Path) -> None:
    path = tmp_path / "ailloy.lock"
    names = [f"mold{index}" for index in range(8)]

    def worker(name: str) -> None:
        update_lockfile(
            path, lambda lock: lock.upsert_entry(_entry(name, f"h/o/{name}", "v1.0.0")), timeout=10
        )

    threads = [threading.Thread(target=worker, args=(name,)) for name in names]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(entry.name for entry in read_lockfile(path).molds) == names


def test_exclusive_lock_times_out_while_held(tmp_path: Path) -> None:
    path = tmp_path / "ailloy.lock"
    held = threading.Event()
    release = threading.Event()
    errors: list[LockfileError] = []

    def holder() -> None:
        with exclusive_lock(path, timeout=5):
            held.set()
            release.wait(5)

    def contender() -> None:
        try:
            with exclusive_lock(path, timeout=0.2):
                pass
        except LockfileError as exc:
            errors.append(exc)

    holding = threading.Thread(target=holder)
    holding.start()
    held.wait(5)
    contending = threading.Thread(target=contender)
    contending.start()
    contending.join()
    release.set()
    holding.join()

    assert len(errors) == 1
    assert errors[0].context["path"] == str(path)


def _entry(name: str, source: str, version: str, *, subpath: str = "") -> LockEntry:
    return LockEntry(
        name=name,
        source=source,
        version=version,
        commit="c" * 40,
        timestamp=NOW,
        subpath=subpath,
    )
