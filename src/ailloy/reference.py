"""Mold reference parsing.

A reference names a mold by its origin repository, an optional version
specifier and an optional subpath inside the repository::

    [https://|http://|git@]<host>[:/]<owner>/<repo>[.git][@<version>][//<subpath>]
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from ailloy.errors import InputError

SHA_PATTERN = re.compile(r"^[0-9a-f]{7,40}$")
SEMVER_PREFIX_PATTERN = re.compile(r"^v?\d+\.\d+\.\d+")
CONSTRAINT_PREFIXES = ("~", "^", ">", "=", "<", "!")
REMOTE_PREFIXES = ("https://", "http://", "git@")


class SpecifierKind(StrEnum):
    LATEST = "latest"
    CONSTRAINT = "constraint"
    EXACT = "exact"
    BRANCH = "branch"
    SHA = "sha"


@dataclass(frozen=True, slots=True)
class Reference:
    host: str
    owner: str
    repo: str
    version: str = ""
    subpath: str = ""
    kind: SpecifierKind = SpecifierKind.LATEST

    @property
    def cache_key(self) -> str:
        return f"{self.host}/{self.owner}/{self.repo}"

    @property
    def clone_url(self) -> str:
        return f"https://{self.host}/{self.owner}/{self.repo}.git"

    def __str__(self) -> str:
        text = self.cache_key
        if self.version:
            text += f"@{self.version}"
        if self.subpath:
            text += f"//{self.subpath}"
        return text


def parse_reference(raw: str) -> Reference:
    """Parse a raw mold reference string into a `Reference`."""
    if not raw:
        raise InputError("Empty mold reference.", context={"reference": raw})

    text = raw
    for scheme in ("https://", "http://"):
        if text.startswith(scheme):
            text = text[len(scheme) :]
            break

    if text.startswith("git@"):
        text = text[len("git@") :].replace(":", "/", 1)

    # Subpath first so a `//` inside it is never mistaken for version syntax.
    subpath = ""
    if "//" in text:
        text, subpath = text.split("//", 1)

    version = ""
    if "@" in text:
        text, version = text.rsplit("@", 1)

    text = text.removesuffix(".git")

    parts = text.split("/")
    if len(parts) < 3:
        raise InputError(
            f"Invalid reference {raw!r}: expected <host>/<owner>/<repo>.",
            context={"reference": raw},
        )
    host, owner, repo = parts[0], parts[1], "/".join(parts[2:])
    if not host or not owner or not repo:
        raise InputError(
            f"Invalid reference {raw!r}: host, owner, and repo must be non-empty.",
            context={"reference": raw},
        )

    return Reference(
        host=host,
        owner=owner,
        repo=repo,
        version=version,
        subpath=subpath,
        kind=classify_version(version),
    )


def classify_version(version: str) -> SpecifierKind:
    if version in ("", "latest"):
        return SpecifierKind.LATEST
    if SHA_PATTERN.fullmatch(version):
        return SpecifierKind.SHA
    if version.startswith(CONSTRAINT_PREFIXES):
        return SpecifierKind.CONSTRAINT
    if SEMVER_PREFIX_PATTERN.match(version):
        return SpecifierKind.EXACT
    return SpecifierKind.BRANCH


def is_remote_reference(text: str) -> bool:
    """Tell a remote mold reference apart from a local filesystem path."""
    if not text:
        return False
    if text.startswith(REMOTE_PREFIXES):
        return True
    if text[0] in "/.~":
        return False
    first_segment = text.split("/", 1)[0]
    return "." in first_segment


__all__ = [
    "Reference",
    "SpecifierKind",
    "classify_version",
    "is_remote_reference",
    "parse_reference",
]
