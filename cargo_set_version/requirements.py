"""Cargo version requirement parsing, matching and upgrading.

A requirement such as ``"1.2"``, ``"^1.2.3"``, ``"=1.0.0"``, ``"~0.4"`` or
``">=1.0, <2.0"`` is a comma-separated list of comparators. Matching follows
Cargo's rules, including its pre-release rule: a pre-release version only
matches when some comparator names the same ``major.minor.patch`` with a
pre-release of its own.

upgrade_requirement() rewrites a requirement so that it matches a new
version while keeping its operator and its number of components.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum

import semver

from .errors import InvalidRequirement, UnsupportedRequirement
from .versions import parse_version


class Op(str, Enum):
    """Comparison operator of a single comparator."""

    EXACT = "="
    GREATER = ">"
    GREATER_EQ = ">="
    LESS = "<"
    LESS_EQ = "<="
    TILDE = "~"
    CARET = "^"
    WILDCARD = "*"


RANGE_OPS = {Op.GREATER, Op.GREATER_EQ, Op.LESS, Op.LESS_EQ}

_COMPARATOR_RE = re.compile(
    r"""
    ^(?P<op>>=|<=|>|<|=|~|\^)?\s*
    (?P<major>[0-9]+|[*xX])
    (?:\.(?P<minor>[0-9]+|[*xX]))?
    (?:\.(?P<patch>[0-9]+|[*xX]))?
    (?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?
    $
    """,
    re.VERBOSE,
)

_WILDCARDS = {"*", "x", "X"}


@dataclass(frozen=True)
class Comparator:
    """One ``op major[.minor[.patch[-pre]]]`` term of a requirement.

    ``bare`` marks a caret comparator written without its ``^``.
    """

    op: Op
    major: int
    minor: int | None = None
    patch: int | None = None
    pre: str = ""
    bare: bool = field(default=False, compare=False)

    def __str__(self) -> str:
        if self.op is Op.WILDCARD:
            if self.minor is None:
                return f"{self.major}.*"
            return f"{self.major}.{self.minor}.*"
        text = "" if self.bare else self.op.value
        text += str(self.major)
        if self.minor is not None:
            text += f".{self.minor}"
        if self.patch is not None:
            text += f".{self.patch}"
        if self.pre:
            text += f"-{self.pre}"
        return text


def _number(text: str, requirement: str) -> int:
    if len(text) > 1 and text.startswith("0"):
        raise InvalidRequirement(
            f"invalid requirement `{requirement}`: leading zero in `{text}`"
        )
    return int(text)


def _parse_comparator(text: str, requirement: str) -> Comparator | None:
    """Parse one comparator; None for a bare ``*`` which matches anything."""
    match = _COMPARATOR_RE.match(text)
    if not match:
        raise InvalidRequirement(f"invalid requirement `{requirement}`")

    op_text = match.group("op")
    parts = [match.group("major"), match.group("minor"), match.group("patch")]
    pre = match.group("pre") or ""

    # Everything after the first wildcard must be a wildcard or absent
    wildcard_at = next((i for i, p in enumerate(parts) if p in _WILDCARDS), None)
    if wildcard_at is not None:
        if any(p is not None and p not in _WILDCARDS for p in parts[wildcard_at:]):
            raise InvalidRequirement(f"invalid requirement `{requirement}`")
        if pre:
            raise InvalidRequirement(
                f"invalid requirement `{requirement}`: pre-release after wildcard"
            )
        parts = parts[:wildcard_at] + [None] * (3 - wildcard_at)
        if wildcard_at == 0:
            if op_text:
                raise InvalidRequirement(
                    f"invalid requirement `{requirement}`: unexpected wildcard"
                )
            return None

    if pre and parts[2] is None:
        raise InvalidRequirement(
            f"invalid requirement `{requirement}`: pre-release needs a full version"
        )

    major, minor, patch = (
        _number(p, requirement) if p is not None else None for p in parts
    )

    if wildcard_at is not None:
        if op_text in (None, "="):
            op = Op.WILDCARD
        elif op_text in ("^", "~", ">=", "<="):
            op = Op(op_text)
        else:
            raise InvalidRequirement(
                f"invalid requirement `{requirement}`: "
                f"unexpected wildcard after `{op_text}`"
            )
    else:
        op = Op(op_text) if op_text else Op.CARET

    return Comparator(
        op=op, major=major, minor=minor, patch=patch, pre=pre, bare=op_text is None
    )


def parse_requirement(requirement: str) -> list[Comparator]:
    """Parse a requirement string into its comparators.

    An empty list means the requirement matches every version (``"*"``).

    Raises:
        InvalidRequirement: If the string is not a valid Cargo requirement.
    """
    if not requirement.strip():
        raise InvalidRequirement("invalid requirement ``: empty string")
    comparators: list[Comparator] = []
    for part in requirement.split(","):
        part = part.strip()
        if not part:
            raise InvalidRequirement(
                f"invalid requirement `{requirement}`: empty comparator"
            )
        comparator = _parse_comparator(part, requirement)
        if comparator is not None:
            comparators.append(comparator)
    return comparators


def _compare_pre(left: str, right: str) -> int:
    """Order two pre-release strings; the empty string (a release) is highest."""
    return semver.Version(0, 0, 0, prerelease=left or None).compare(
        semver.Version(0, 0, 0, prerelease=right or None)
    )


def _matches_exact(cmp: Comparator, ver: semver.Version, pre: str) -> bool:
    if ver.major != cmp.major:
        return False
    if cmp.minor is not None and ver.minor != cmp.minor:
        return False
    if cmp.patch is not None and ver.patch != cmp.patch:
        return False
    return pre == cmp.pre


def _matches_greater(cmp: Comparator, ver: semver.Version, pre: str) -> bool:
    if ver.major != cmp.major:
        return ver.major > cmp.major
    if cmp.minor is None:
        return False
    if ver.minor != cmp.minor:
        return ver.minor > cmp.minor
    if cmp.patch is None:
        return False
    if ver.patch != cmp.patch:
        return ver.patch > cmp.patch
    return _compare_pre(pre, cmp.pre) > 0


def _matches_less(cmp: Comparator, ver: semver.Version, pre: str) -> bool:
    if ver.major != cmp.major:
        return ver.major < cmp.major
    if cmp.minor is None:
        return False
    if ver.minor != cmp.minor:
        return ver.minor < cmp.minor
    if cmp.patch is None:
        return False
    if ver.patch != cmp.patch:
        return ver.patch < cmp.patch
    return _compare_pre(pre, cmp.pre) < 0


def _matches_tilde(cmp: Comparator, ver: semver.Version, pre: str) -> bool:
    if ver.major != cmp.major:
        return False
    if cmp.minor is not None and ver.minor != cmp.minor:
        return False
    if cmp.patch is not None and ver.patch != cmp.patch:
        return ver.patch > cmp.patch
    return _compare_pre(pre, cmp.pre) >= 0


def _matches_caret(cmp: Comparator, ver: semver.Version, pre: str) -> bool:
    if ver.major != cmp.major:
        return False
    if cmp.minor is None:
        return True
    if cmp.patch is None:
        if cmp.major > 0:
            return ver.minor >= cmp.minor
        return ver.minor == cmp.minor

    if cmp.major > 0:
        if ver.minor != cmp.minor:
            return ver.minor > cmp.minor
        if ver.patch != cmp.patch:
            return ver.patch > cmp.patch
    elif cmp.minor > 0:
        if ver.minor != cmp.minor:
            return False
        if ver.patch != cmp.patch:
            return ver.patch > cmp.patch
    elif ver.minor != cmp.minor or ver.patch != cmp.patch:
        return False
    return _compare_pre(pre, cmp.pre) >= 0


def _matches_comparator(cmp: Comparator, ver: semver.Version) -> bool:
    pre = ver.prerelease or ""
    if cmp.op is Op.EXACT:
        return _matches_exact(cmp, ver, pre)
    if cmp.op is Op.WILDCARD:
        if ver.major != cmp.major:
            return False
        return cmp.minor is None or ver.minor == cmp.minor
    if cmp.op is Op.GREATER:
        return _matches_greater(cmp, ver, pre)
    if cmp.op is Op.GREATER_EQ:
        return _matches_exact(cmp, ver, pre) or _matches_greater(cmp, ver, pre)
    if cmp.op is Op.LESS:
        return _matches_less(cmp, ver, pre)
    if cmp.op is Op.LESS_EQ:
        return _matches_exact(cmp, ver, pre) or _matches_less(cmp, ver, pre)
    if cmp.op is Op.TILDE:
        return _matches_tilde(cmp, ver, pre)
    return _matches_caret(cmp, ver, pre)


def _pre_is_compatible(cmp: Comparator, ver: semver.Version) -> bool:
    return (
        cmp.major == ver.major
        and cmp.minor == ver.minor
        and cmp.patch == ver.patch
        and bool(cmp.pre)
    )


def matches_requirement(
    comparators: list[Comparator], version: semver.Version
) -> bool:
    """Check whether version satisfies every comparator, Cargo style."""
    if not all(_matches_comparator(cmp, version) for cmp in comparators):
        return False
    if not version.prerelease:
        return True
    return any(_pre_is_compatible(cmp, version) for cmp in comparators)


def _set_comparator(cmp: Comparator, version: semver.Version) -> Comparator:
    """Point a comparator at version, keeping its operator and precision."""
    if cmp.op in RANGE_OPS and _matches_comparator(cmp, version):
        return cmp

    minor = version.minor if cmp.minor is not None else None
    patch = version.patch if cmp.patch is not None else None
    if cmp.op is Op.WILDCARD:
        return replace(cmp, major=version.major, minor=minor)

    pre = version.prerelease or ""
    if pre:
        # A partial version can never match a pre-release
        minor, patch = version.minor, version.patch
    return replace(cmp, major=version.major, minor=minor, patch=patch, pre=pre)


def format_requirement(comparators: list[Comparator]) -> str:
    if not comparators:
        return "*"
    return ", ".join(str(cmp) for cmp in comparators)


def upgrade_requirement(
    requirement: str, version: semver.Version | str
) -> str | None:
    """Rewrite a requirement so it matches version, preserving its style.

    Returns None when the requirement is left untouched: it is ``"*"``,
    its range comparators already admit the version, or it already names
    the version at its own precision.

    Examples:
        upgrade_requirement("1.2", "1.3.0") → "1.3"
        upgrade_requirement("^1.2.3", "2.0.0") → "^2.0.0"
        upgrade_requirement("=1.2.3", "1.3.0") → "=1.3.0"
        upgrade_requirement("1.3", "1.3.0") → None
        upgrade_requirement(">=1.0", "1.3.0") → None

    Raises:
        InvalidRequirement: If requirement cannot be parsed.
        UnsupportedRequirement: If no rewrite of it can match version.
    """
    if isinstance(version, str):
        version = parse_version(version)

    comparators = parse_requirement(requirement)
    if not comparators:
        return None

    upgraded = [_set_comparator(cmp, version) for cmp in comparators]
    new_requirement = format_requirement(upgraded)
    if not matches_requirement(upgraded, version):
        raise UnsupportedRequirement(
            f"cannot upgrade requirement `{requirement}` to match {version}"
        )
    if new_requirement == requirement:
        return None
    return new_requirement
