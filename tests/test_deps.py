from datetime import datetime, timezone

import pytest

from ailloy import Policy, RecastChange, SkippedDependencyWarning, quench, recast
from ailloy.errors import LockfileError, NotFoundError, RemoteError
from ailloy.lockfile import LockEntry, LockFile, read_lockfile, write_lockfile

OLD_COMMIT = "c000000000000000000000000000000000000003"
NEW_COMMIT = "c000000000000000000000000000000000000006"


def test_recast_moves_entries_to_newest_tag(policy: Policy, fake_git) -> None:
    _write_lock(policy, _entry("my-widget", "github.com/acme/widget", "v1.0.0", OLD_COMMIT))

    changes = recast(git=fake_git, policy=policy)

    assert changes == [
        RecastChange(
            name="my-widget",
            source="github.com/acme/widget",
            old_version="v1.0.0",
            old_commit=OLD_COMMIT,
            new_version="v2.0.0",
            new_commit=NEW_COMMIT,
        )
    ]
    entry = read_lockfile(policy.lock_path).find_entry("github.com/acme/widget")
    assert entry.name == "my-widget"
    assert (entry.version, entry.commit) == ("v2.0.0", NEW_COMMIT)
    assert (policy.cache_dir / "github.com" / "acme" / "widget" / "v2.0.0" / "mold.yaml").is_file()


def test_recast_dry_run_reports_without_writing(policy: Policy, fake_git) -> None:
    _write_lock(policy, _entry("widget", "github.com/acme/widget", "v1.0.0", OLD_COMMIT))
    before = policy.lock_path.read_text(encoding="utf-8")

    changes = recast(git=fake_git, policy=policy, dry_run=True)

    assert [change.new_version for change in changes] == ["v2.0.0"]
    assert policy.lock_path.read_text(encoding="utf-8") == before
    assert fake_git.count("archive") == 0


def test_recast_skips_up_to_date_entries(policy: Policy, fake_git) -> None:
    _write_lock(policy, _entry("widget", "github.com/acme/widget", "v2.0.0", NEW_COMMIT))
    before = policy.lock_path.read_text(encoding="utf-8")

    assert recast(git=fake_git, policy=policy) == []
    assert policy.lock_path.read_text(encoding="utf-8") == before


def test_recast_selects_entries_by_name(policy: Policy, fake_git) -> None:
    _write_lock(
        policy,
        _entry("widget", "github.com/acme/widget", "v1.0.0", OLD_COMMIT),
        _entry("gadget", "github.com/acme/gadget", "v1.0.0", OLD_COMMIT),
    )

    changes = recast(git=fake_git, policy=policy, names=["gadget"])

    assert [change.name for change in changes] == ["gadget"]
    lockfile = read_lockfile(policy.lock_path)
    assert lockfile.find_entry("github.com/acme/widget").version == "v1.0.0"
    assert lockfile.find_entry("github.com/acme/gadget").version == "v2.0.0"


def test_recast_unknown_name_is_not_found(policy: Policy, fake_git) -> None:
    _write_lock(policy, _entry("widget", "github.com/acme/widget", "v1.0.0", OLD_COMMIT))

    with pytest.raises(NotFoundError) as excinfo:
        recast(git=fake_git, policy=policy, names=["missing"])

    assert excinfo.value.context["available"] == "widget"


def test_recast_warns_and_skips_unresolvable_entries(policy: Policy, make_git, tarball) -> None:
    class PartlyOfflineGit(make_git):
        def ls_remote_tags(self, url: str) -> str:
            if "gadget" in url:
                raise RemoteError("Git command failed.", context={"output": "fatal: unreachable"})
            return super().ls_remote_tags(url)

    git = PartlyOfflineGit(archives={"v2.0.0": tarball({"mold.yaml": "name: widget\n"})})
    _write_lock(
        policy,
        _entry("widget", "github.com/acme/widget", "v1.0.0", OLD_COMMIT),
        _entry("gadget", "github.com/acme/gadget", "v1.0.0", OLD_COMMIT),
    )

    with pytest.warns(SkippedDependencyWarning, match="gadget"):
        changes = recast(git=git, policy=policy)

    assert [change.name for change in changes] == ["widget"]
    assert read_lockfile(policy.lock_path).find_entry("github.com/acme/gadget").version == "v1.0.0"


def test_recast_requires_lock_file(policy: Policy, fake_git) -> None:
    with pytest.raises(LockfileError):
        recast(git=fake_git, policy=policy)


def test_quench_returns_pinned_entries(policy: Policy) -> None:
    entry = _entry("widget", "github.com/acme/widget", "v1.0.0", OLD_COMMIT)
    _write_lock(policy, entry)

    assert quench(policy=policy) == [entry]


def test_quench_rejects_unpinned_entries(policy: Policy) -> None:
    _write_lock(
        policy,
        _entry("widget", "github.com/acme/widget", "v1.0.0", OLD_COMMIT),
        _entry("gadget", "github.com/acme/gadget", "", ""),
    )

    with pytest.raises(LockfileError) as excinfo:
        quench(policy=policy)

    assert excinfo.value.context["unpinned"] == "gadget"


def test_quench_requires_lock_file(policy: Policy) -> None:
    with pytest.raises(LockfileError):
        quench(policy=policy)


def _entry(name: str, source: str, version: str, commit: str) -> LockEntry:
    return LockEntry(
        name=name,
        source=source,
        version=version,
        commit=commit,
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def _write_lock(policy: Policy, *entries: LockEntry) -> None:
    write_lockfile(LockFile(molds=list(entries)), policy.lock_path)
