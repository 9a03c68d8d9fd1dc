"""Semantic-version tags and range expressions on top of `semver`.

Tags are parsed and ordered with `semver.Version`, so pre-release tags such
as ``v1.0.0-1`` or ``v1.3.0-next.1`` sort below their release. Range text
in the caret/tilde dialect used by mold references is translated into one
group of clauses per `||` alternative.
"""

from __future__ import annotations

import operator
import re
from collections.abc import Callable
from dataclasses import dataclass

import semver

from ailloy.errors import InputError

TAG_PATTERN = re.compile(
    r"^\d+(?:\.\d+){0,2}(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$"
)
CLAUSE_PATTERN = re.compile(
    r"\s*(?P<op>\^|~>|~|>=|<=|!=|==|=|>|<)?\s*"
    r"(?P<version>v?[0-9xX*][0-9A-Za-z.*+-]*)\s*,?"
)
WILDCARDS = ("x", "X", "*")

OPERATORS: dict[str, Callable[[semver.Version, semver.Version], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
}


def parse_tag_version(tag: str) -> semver.Version | None:
    """Return the semantic version of ``tag``, or None when it is not semver."""
    name = tag.removeprefix("v")
    if not TAG_PATTERN.fullmatch(name):
        return None
    try:
        return semver.Version.parse(name, optional_minor_and_patch=True)
    except ValueError:
        return None


@dataclass(frozen=True, slots=True)
class Clause:
    op: str
    version: semver.Version
    # Exclusive upper bound of a negated wildcard such as `!=1.2.x`.
    ceiling: semver.Version | None = None

    def matches(self, candidate: semver.Version) -> bool:
        if self.ceiling is not None:
            return not (self.version <= candidate < self.ceiling)
        return OPERATORS[self.op](candidate, self.version)

    def __str__(self) -> str:
        if self.ceiling is not None:
            return f"!=[{self.version}, {self.ceiling})"
        return f"{self.op}{self.version}"


@dataclass(frozen=True, slots=True)
class VersionRange:
    text: str
    alternatives: tuple[tuple[Clause, ...], ...]

    def contains(self, version: semver.Version) -> bool:
        return any(_satisfies(clauses, version) for clauses in self.alternatives)

    def __str__(self) -> str:
        return " || ".join(
            ", ".join(str(clause) for clause in clauses) or "*" for clauses in self.alternatives
        )


def parse_range(text: str) -> VersionRange:
    """Translate a range expression such as ``^1.2.0 || >=3.0.0, <4`` into a `VersionRange`."""
    alternatives = tuple(
        tuple(_parse_clauses(alternative, text=text)) for alternative in text.split("||")
    )
    return VersionRange(text=text, alternatives=alternatives)


def highest_version(
    tags: dict[str, str],
    constraint: VersionRange | None = None,
) -> tuple[str, str] | None:
    """Pick the highest semver tag, optionally filtered by ``constraint``.

    Returns ``(tag, commit)`` or None when no tag qualifies.
    """
    candidates: list[tuple[semver.Version, str, str]] = []
    for tag, commit in tags.items():
        version = parse_tag_version(tag)
        if version is None:
            continue
        if constraint is not None and not constraint.contains(version):
            continue
        candidates.append((version, tag, commit))
    if not candidates:
        return None
    _, tag, commit = max(candidates)
    return tag, commit


def _satisfies(clauses: tuple[Clause, ...], version: semver.Version) -> bool:
    if not all(clause.matches(version) for clause in clauses):
        return False
    if version.prerelease is None:
        return True
    # A pre-release only qualifies when a clause names a pre-release of the same release.
    return any(
        clause.version.prerelease is not None and _release(clause.version) == _release(version)
        for clause in clauses
    )


def _release(version: semver.Version) -> tuple[int, int, int]:
    return version.major, version.minor, version.patch


def _parse_clauses(alternative: str, *, text: str) -> list[Clause]:
    if not alternative.strip():
        raise _invalid(text, "empty range alternative")
    clauses: list[Clause] = []
    position = 0
    while position < len(alternative):
        if not alternative[position:].strip():
            break
        match = CLAUSE_PATTERN.match(alternative, position)
        if match is None or match.end() == position:
            raise _invalid(text, f"unexpected input at {alternative[position:].strip()!r}")
        clauses.extend(_translate(match.group("op") or "=", match.group("version"), text=text))
        position = match.end()
    return clauses


def _translate(op: str, raw_version: str, *, text: str) -> list[Clause]:
    numbers, prerelease = _split_version(raw_version, text=text)
    given = len(numbers)
    floor = _floor(numbers, prerelease, raw_version=raw_version, text=text)

    if op in ("=", "=="):
        if given == 3:
            return [Clause("==", floor)]
        if given == 0:
            return []
        return [Clause(">=", floor), Clause("<", _bump(numbers, given - 1))]
    if op == "!=":
        if given == 3:
            return [Clause("!=", floor)]
        if given == 0:
            raise _invalid(text, "`!=` needs a version")
        return [Clause("!=", floor, ceiling=_bump(numbers, given - 1))]
    if op == ">":
        if given == 3:
            return [Clause(">", floor)]
        if given == 0:
            raise _invalid(text, "`>` needs a version")
        return [Clause(">=", _bump(numbers, given - 1))]
    if op == ">=":
        return [Clause(">=", floor)]
    if op == "<":
        return [Clause("<", floor)]
    if op == "<=":
        if given == 3:
            return [Clause("<=", floor)]
        if given == 0:
            return []
        return [Clause("<", _bump(numbers, given - 1))]
    if op in ("~", "~>"):
        if given == 0:
            return []
        ceiling = _bump(numbers, 1 if given >= 2 else 0)
        return [Clause(">=", floor), Clause("<", ceiling)]
    if op == "^":
        if given == 0:
            return []
        major = numbers[0]
        if major > 0 or given == 1:
            ceiling = _bump(numbers, 0)
        elif given == 2 or numbers[1] > 0:
            ceiling = _bump(numbers, 1)
        else:
            ceiling = _bump(numbers, 2)
        return [Clause(">=", floor), Clause("<", ceiling)]
    raise _invalid(text, f"unsupported operator {op!r}")


def _split_version(raw_version: str, *, text: str) -> tuple[list[int], str]:
    core = raw_version.removeprefix("v").split("+", 1)[0]
    prerelease = ""
    if "-" in core:
        core, prerelease = core.split("-", 1)
    numbers: list[int] = []
    pieces = core.split(".")
    if len(pieces) > 3:
        raise _invalid(text, f"too many version components in {raw_version!r}")
    for piece in pieces:
        if piece in WILDCARDS:
            break
        if not piece.isdigit():
            raise _invalid(text, f"invalid version {raw_version!r}")
        numbers.append(int(piece))
    if prerelease and len(numbers) != 3:
        raise _invalid(text, f"pre-release needs a full version in {raw_version!r}")
    return numbers, prerelease


def _floor(numbers: list[int], prerelease: str, *, raw_version: str, text: str) -> semver.Version:
    padded = numbers + [0] * (3 - len(numbers))
    rendered = ".".join(str(part) for part in padded)
    if prerelease:
        rendered += f"-{prerelease}"
    try:
        return semver.Version.parse(rendered)
    except ValueError as exc:
        raise _invalid(text, f"invalid version {raw_version!r}") from exc


def _bump(numbers: list[int], index: int) -> semver.Version:
    padded = numbers + [0] * (3 - len(numbers))
    bumped = padded[:index] + [padded[index] + 1] + [0] * (2 - index)
    return semver.Version(*bumped)


def _invalid(text: str, detail: str) -> InputError:
    return InputError(
        f"Invalid semver constraint {text!r}.",
        hint=detail,
        context={"constraint": text},
    )


__all__ = ["Clause", "VersionRange", "highest_version", "parse_range", "parse_tag_version"]
