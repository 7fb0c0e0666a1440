"""Version parsing and bumping utilities.

Resolves the new version for a package from either an explicit target
version or a relative bump level. Resolution returns None when the package
would keep its current version, which callers treat as "nothing to do".
"""

from __future__ import annotations

from enum import Enum
from typing import Union

import semver
from pydantic import BaseModel

from .errors import InvalidReleaseLevel, InvalidVersion, VersionDowngrade


class BumpLevel(str, Enum):
    """Relative increment applied to the current version."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    RELEASE = "release"
    RC = "rc"
    BETA = "beta"
    ALPHA = "alpha"


# Pre-release identifiers in increasing order of maturity
PRE_RELEASE_ORDER = {"alpha": 0, "beta": 1, "rc": 2}


def parse_version(version_str: str) -> semver.Version:
    """Parse a strict SemVer string (``MAJOR.MINOR.PATCH[-PRE][+BUILD]``).

    Raises:
        InvalidVersion: If the string is not valid SemVer.
    """
    try:
        return semver.Version.parse(version_str.strip())
    except (TypeError, ValueError) as exc:
        raise InvalidVersion(f"invalid version `{version_str}`: {exc}") from exc


def with_metadata(version: semver.Version, metadata: str | None) -> semver.Version:
    """Return version with its build metadata replaced by metadata.

    The result is re-parsed so that a malformed metadata string is rejected.
    """
    if metadata is None:
        return version
    return parse_version(f"{version.replace(build=None)}+{metadata}")


def _prerelease_parts(version: semver.Version) -> tuple[str, int | None] | None:
    """Split ``alpha.3`` into ``("alpha", 3)``; None for release versions."""
    if not version.prerelease:
        return None
    ident, _, number = version.prerelease.partition(".")
    if not number:
        return ident, None
    if not number.isdigit():
        raise InvalidVersion(
            f"unsupported pre-release `{version.prerelease}` in {version}"
        )
    return ident, int(number)


def _bump_prerelease(version: semver.Version, level: BumpLevel) -> semver.Version:
    parts = _prerelease_parts(version)
    if parts is None:
        # 1.2.3 → 1.2.4-alpha.1
        return version.bump_patch().replace(prerelease=f"{level.value}.1")

    ident, number = parts
    if PRE_RELEASE_ORDER.get(ident, -1) > PRE_RELEASE_ORDER[level.value]:
        raise InvalidReleaseLevel(
            f"cannot bump {version} to {level.value}: {ident} is a later release level"
        )
    next_number = (number or 0) + 1 if ident == level.value else 1
    return version.replace(prerelease=f"{level.value}.{next_number}", build=None)


def bump_version(
    version: semver.Version, level: BumpLevel, metadata: str | None = None
) -> semver.Version:
    """Apply a bump level to a version.

    Examples:
        1.2.3 major → 2.0.0
        1.2.3 minor → 1.3.0
        1.2.3 patch → 1.2.4, 1.2.3-rc.1 patch → 1.2.3
        1.2.3-rc.1 release → 1.2.3, 1.2.3 release → 1.2.3
        1.2.3 alpha → 1.2.4-alpha.1, 1.2.4-alpha.1 beta → 1.2.4-beta.1
    """
    if level is BumpLevel.MAJOR:
        bumped = version.bump_major()
    elif level is BumpLevel.MINOR:
        bumped = version.bump_minor()
    elif level is BumpLevel.PATCH:
        if version.prerelease:
            bumped = version.replace(prerelease=None, build=None)
        else:
            bumped = version.bump_patch()
    elif level is BumpLevel.RELEASE:
        bumped = version.replace(prerelease=None) if version.prerelease else version
    else:
        bumped = _bump_prerelease(version, level)
    return with_metadata(bumped, metadata)


class RelativeTarget(BaseModel):
    """Compute the new version from the current one."""

    level: BumpLevel

    def bump(
        self, current: semver.Version, metadata: str | None = None
    ) -> semver.Version | None:
        bumped = bump_version(current, self.level, metadata)
        # Compare text so a metadata-only change still counts
        if str(bumped) == str(current):
            return None
        return bumped


class AbsoluteTarget(BaseModel):
    """Set the version exactly.

    Attributes:
        version: Target version string, already validated as SemVer.
    """

    version: str

    def bump(
        self, current: semver.Version, metadata: str | None = None
    ) -> semver.Version | None:
        target = parse_version(self.version)
        if current.compare(target) > 0:
            raise VersionDowngrade(f"cannot downgrade from {current} to {target}")
        if target.build is None:
            if metadata is not None:
                target = with_metadata(target, metadata)
            elif current.build is not None:
                target = target.replace(build=current.build)
        # semver precedence ignores build metadata; the text does not
        if str(target) == str(current):
            return None
        return target


TargetVersion = Union[AbsoluteTarget, RelativeTarget]


def target_from_args(
    version: str | None, bump: BumpLevel | str | None
) -> TargetVersion:
    """Build the target from the (mutually exclusive) CLI inputs.

    Defaults to a release-level bump when neither is given.

    Raises:
        InvalidVersion: If version is not valid SemVer.
        ValueError: If both version and bump are given, or bump is unknown.
    """
    if version is not None and bump is not None:
        raise ValueError("an explicit version and --bump are mutually exclusive")
    if version is not None:
        return AbsoluteTarget(version=str(parse_version(version)))
    if bump is not None:
        return RelativeTarget(level=BumpLevel(bump))
    return RelativeTarget(level=BumpLevel.RELEASE)


def resolve_target(
    current: str, target: TargetVersion, metadata: str | None = None
) -> semver.Version | None:
    """Resolve the next version for a package, or None if it is unchanged."""
    return target.bump(parse_version(current), metadata)
