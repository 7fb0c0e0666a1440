"""Exceptions raised by cargo-set-version.

Every failure that should abort a run derives from SetVersionError so the
CLI can report it with one handler. Dependency entries that simply don't
point at the bumped package are not errors and never reach this module.
"""

from __future__ import annotations


class SetVersionError(Exception):
    """Base class for all cargo-set-version failures."""


class InvalidVersion(SetVersionError):
    """A version string is not valid SemVer."""


class InvalidReleaseLevel(SetVersionError):
    """A pre-release bump would move backwards (e.g. rc → beta)."""


class VersionDowngrade(SetVersionError):
    """An explicit target version is lower than the current version."""


class ManifestError(SetVersionError):
    """A Cargo.toml could not be found, read, parsed or written."""


class InvalidRequirement(SetVersionError):
    """A dependency's version requirement could not be parsed."""


class UnsupportedRequirement(SetVersionError):
    """A requirement cannot be rewritten to match the new version."""
