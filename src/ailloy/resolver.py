"""Resolve mold references to concrete tag/commit pairs via `git ls-remote`."""

from __future__ import annotations

import re
from dataclasses import dataclass

from ailloy.errors import NotFoundError
from ailloy.fetch.git import GitClient
from ailloy.policy import MutableRefPolicy, enforce_mutable_ref_policy
from ailloy.reference import Reference, SpecifierKind
from ailloy.versioning import highest_version, parse_range, parse_tag_version

TAG_LINE_PATTERN = re.compile(r"^([0-9a-f]+)\trefs/tags/(.+)$")
DEREF_SUFFIX = "^{}"


@dataclass(frozen=True, slots=True)
class ResolvedVersion:
    tag: str
    commit: str


def resolve_version(
    ref: Reference,
    git: GitClient,
    *,
    mutable_ref_policy: MutableRefPolicy = "warn",
) -> ResolvedVersion:
    """Resolve ``ref`` against its origin without needing a local clone."""
    if ref.kind is SpecifierKind.SHA:
        return ResolvedVersion(tag=ref.version, commit=ref.version)
    if ref.kind is SpecifierKind.LATEST:
        return _resolve_latest(ref, git)
    if ref.kind is SpecifierKind.EXACT:
        return _resolve_exact(ref, git)
    if ref.kind is SpecifierKind.CONSTRAINT:
        return _resolve_constraint(ref, git)
    return _resolve_branch(ref, git, mutable_ref_policy=mutable_ref_policy)


def parse_ls_remote_tags(output: str) -> dict[str, str]:
    """Map semver tag names to commits from `git ls-remote --tags` output.

    Annotated tags list the tag object and then a ``^{}`` line with the commit
    it points at. The dereferenced commit always wins; a plain line only fills
    a tag that has no commit yet, so line order does not matter.
    """
    tags: dict[str, str] = {}
    for line in output.splitlines():
        match = TAG_LINE_PATTERN.match(line.strip())
        if match is None:
            continue
        commit, name = match.groups()
        is_deref = name.endswith(DEREF_SUFFIX)
        if is_deref:
            name = name.removesuffix(DEREF_SUFFIX)
        if parse_tag_version(name) is None:
            continue
        if is_deref or name not in tags:
            tags[name] = commit
    return tags


def remote_tags(url: str, git: GitClient) -> dict[str, str]:
    return parse_ls_remote_tags(git.ls_remote_tags(url))


def _resolve_latest(ref: Reference, git: GitClient) -> ResolvedVersion:
    best = highest_version(remote_tags(ref.clone_url, git))
    if best is None:
        raise NotFoundError(
            f"No semver tags found for {ref.cache_key}.",
            hint="Tag a release such as v1.0.0 or pin a branch or commit.",
            context={"operation": "resolve_version", "source": ref.cache_key},
        )
    return ResolvedVersion(tag=best[0], commit=best[1])


def _resolve_exact(ref: Reference, git: GitClient) -> ResolvedVersion:
    tags = remote_tags(ref.clone_url, git)
    for candidate in (ref.version, f"v{ref.version}", ref.version.removeprefix("v")):
        if candidate in tags:
            return ResolvedVersion(tag=candidate, commit=tags[candidate])
    raise NotFoundError(
        f"Tag {ref.version!r} not found in {ref.cache_key}.",
        context={
            "operation": "resolve_version",
            "source": ref.cache_key,
            "available": ", ".join(sorted(tags)),
        },
    )


def _resolve_constraint(ref: Reference, git: GitClient) -> ResolvedVersion:
    constraint = parse_range(ref.version)
    best = highest_version(remote_tags(ref.clone_url, git), constraint)
    if best is None:
        raise NotFoundError(
            f"No tag matching {ref.version!r} for {ref.cache_key}.",
            context={
                "operation": "resolve_version",
                "source": ref.cache_key,
                "constraint": str(constraint),
            },
        )
    return ResolvedVersion(tag=best[0], commit=best[1])


def _resolve_branch(
    ref: Reference,
    git: GitClient,
    *,
    mutable_ref_policy: MutableRefPolicy,
) -> ResolvedVersion:
    enforce_mutable_ref_policy(
        source=ref.cache_key,
        branch=ref.version,
        policy=mutable_ref_policy,
    )
    output = git.ls_remote_branch(ref.clone_url, ref.version)
    for line in output.splitlines():
        fields = line.split()
        if len(fields) >= 2:
            return ResolvedVersion(tag=ref.version, commit=fields[0])
    raise NotFoundError(
        f"Branch {ref.version!r} not found in {ref.cache_key}.",
        context={"operation": "resolve_version", "source": ref.cache_key},
    )


__all__ = [
    "ResolvedVersion",
    "parse_ls_remote_tags",
    "remote_tags",
    "resolve_version",
]
