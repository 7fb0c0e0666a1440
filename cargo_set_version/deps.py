"""Locating dependency entries that point at a bumped crate.

A dependent is found by where its ``path`` leads, not by the dependency's
name: a path dependency can be renamed (``foo = { package = "bar", ... }``)
but its location on disk is authoritative. Two directories are the same
crate when their canonical absolute paths are equal.
"""

from __future__ import annotations

from pathlib import Path

from .errors import ManifestError
from .toml import LocalManifest


def canonicalize(path: Path) -> Path:
    """Resolve symlinks and ``..`` to an absolute path that must exist."""
    return path.resolve(strict=True)


def crate_root(manifest_path: Path) -> Path:
    """Canonical directory of a package's own manifest.

    Raises:
        ManifestError: If the directory cannot be resolved.
    """
    try:
        return canonicalize(manifest_path.parent)
    except (OSError, RuntimeError) as exc:
        raise ManifestError(
            f"failed to resolve `{manifest_path.parent}`: {exc}"
        ) from exc


def resolve_dep_root(dependent_dir: Path, relpath: str) -> Path | None:
    """Resolve a dependency ``path`` against the dependent's directory.

    Returns the canonical directory, or None when it doesn't exist or can't
    be resolved. Never raises: most entries have no usable path and simply
    don't match.
    """
    try:
        return canonicalize(dependent_dir / relpath)
    except (OSError, RuntimeError):
        return None


def find_dependents(manifest: LocalManifest, root: Path) -> list[tuple[str, dict]]:
    """Find the dependency entries in manifest that point at root.

    An entry is eligible when it has a ``version`` requirement and a
    ``path`` that canonicalizes to root.

    Args:
        manifest: The dependent manifest to scan.
        root: Canonical directory of the bumped crate (see crate_root()).

    Returns:
        (dependency key, entry table) pairs, in manifest order.
    """
    matches: list[tuple[str, dict]] = []
    for key, entry in manifest.dependency_entries():
        if "version" not in entry:
            continue
        relpath = entry.get("path")
        if not isinstance(relpath, str):
            continue
        if resolve_dep_root(manifest.directory, relpath) == root:
            matches.append((key, entry))
    return matches
