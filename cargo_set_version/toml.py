"""Cargo.toml reading and writing utilities.

Uses tomlkit to preserve formatting and comments when modifying manifests.
Only the ``version`` values a run touches change on disk; everything else
in the file round-trips untouched.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import TOMLKitError

from .errors import ManifestError

MANIFEST_NAME = "Cargo.toml"

# Dependency tables at the top level and under [target.<cfg>]
DEPENDENCY_KINDS = ("dependencies", "dev-dependencies", "build-dependencies")


def load_manifest(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a Cargo.toml file.

    Returns a TOMLDocument that preserves formatting when modified and saved.

    Raises:
        ManifestError: If the file cannot be read or is not valid TOML.
    """
    try:
        return tomlkit.parse(path.read_text())
    except OSError as exc:
        raise ManifestError(f"failed to read `{path}`: {exc}") from exc
    except TOMLKitError as exc:
        raise ManifestError(f"failed to parse `{path}`: {exc}") from exc


def save_manifest(path: Path, doc: tomlkit.TOMLDocument) -> None:
    """Save a TOMLDocument back to disk, preserving original formatting."""
    try:
        path.write_text(tomlkit.dumps(doc))
    except OSError as exc:
        raise ManifestError(f"failed to write `{path}`: {exc}") from exc


def get_package_name(doc: tomlkit.TOMLDocument, fallback: str) -> str:
    """Extract [package].name, or fallback when there is no [package]."""
    return str(doc.get("package", {}).get("name", fallback))


def get_package_version(doc: tomlkit.TOMLDocument) -> Any:
    """Extract the raw [package].version item, defaulting to '0.0.0'.

    Inherited versions come back as the ``{ workspace = true }`` table.
    """
    return doc.get("package", {}).get("version", "0.0.0")


def get_package_workspace(doc: tomlkit.TOMLDocument) -> str | None:
    """Extract [package].workspace, the explicit path to the workspace root."""
    workspace = doc.get("package", {}).get("workspace")
    return str(workspace) if isinstance(workspace, str) else None


def is_inherited(value: Any) -> bool:
    """True for a ``{ workspace = true }`` field."""
    return isinstance(value, dict) and bool(value.get("workspace"))


def check_version_settable(doc: tomlkit.TOMLDocument, path: Path) -> None:
    """Ensure [package].version can be written in this manifest.

    Raises:
        ManifestError: If there is no [package] table, or the version is
            inherited from the workspace.
    """
    package = doc.get("package")
    if not isinstance(package, dict):
        raise ManifestError(f"`{path}` has no [package] table")
    if is_inherited(package.get("version")):
        raise ManifestError(
            f"`{path}` inherits its version from the workspace; "
            "set [workspace.package].version instead"
        )


def get_workspace_package_version(doc: tomlkit.TOMLDocument) -> str | None:
    """Extract [workspace.package].version, if the workspace defines one."""
    version = doc.get("workspace", {}).get("package", {}).get("version")
    return str(version) if version is not None else None


def get_workspace_member_globs(doc: tomlkit.TOMLDocument) -> list[str]:
    """Extract [workspace].members glob patterns (e.g. "crates/*")."""
    return [str(m) for m in doc.get("workspace", {}).get("members", [])]


def get_workspace_exclude(doc: tomlkit.TOMLDocument) -> list[str]:
    """Extract [workspace].exclude paths."""
    return [str(m) for m in doc.get("workspace", {}).get("exclude", [])]


def iter_dependency_tables(doc: tomlkit.TOMLDocument) -> Iterator[dict]:
    """Yield every dependency table in a manifest.

    Covers:
    - [dependencies], [dev-dependencies], [build-dependencies]
    - the same three under each [target.<cfg>]
    - [workspace.dependencies]
    """
    for kind in DEPENDENCY_KINDS:
        table = doc.get(kind)
        if isinstance(table, dict):
            yield table

    targets = doc.get("target")
    if isinstance(targets, dict):
        for platform in targets.values():
            if not isinstance(platform, dict):
                continue
            for kind in DEPENDENCY_KINDS:
                table = platform.get(kind)
                if isinstance(table, dict):
                    yield table

    workspace_deps = doc.get("workspace", {}).get("dependencies")
    if isinstance(workspace_deps, dict):
        yield workspace_deps


class LocalManifest:
    """An in-memory, editable Cargo.toml.

    Edits mark the manifest dirty; write() persists the document. Use
    edit_manifest() rather than calling write() directly.
    """

    def __init__(self, path: Path, doc: tomlkit.TOMLDocument) -> None:
        self.path = path
        self.doc = doc
        self.dirty = False

    @classmethod
    def load(cls, path: Path) -> LocalManifest:
        return cls(path, load_manifest(path))

    @property
    def directory(self) -> Path:
        return self.path.parent

    def set_package_version(self, version: str) -> None:
        """Set [package].version.

        Raises:
            ManifestError: If the manifest has no [package] table, or its
                version is inherited from the workspace.
        """
        check_version_settable(self.doc, self.path)
        self.doc["package"]["version"] = version
        self.dirty = True

    def dependency_entries(self) -> Iterator[tuple[str, dict]]:
        """Yield (key, entry) for every table-like dependency entry.

        Plain string entries (``serde = "1.0"``) carry no path and are
        skipped.
        """
        for table in iter_dependency_tables(self.doc):
            for key, entry in table.items():
                if isinstance(entry, dict):
                    yield str(key), entry

    def set_dependency_version(self, entry: dict, requirement: str) -> None:
        entry["version"] = requirement
        self.dirty = True

    def write(self) -> None:
        save_manifest(self.path, self.doc)


@contextmanager
def edit_manifest(path: Path, *, dry_run: bool = False) -> Iterator[LocalManifest]:
    """Load a manifest, yield it for editing, then persist it.

    The manifest is written once, on a clean exit, and only if it was
    changed and this isn't a dry run. An exception inside the block leaves
    the file untouched.
    """
    manifest = LocalManifest.load(path)
    yield manifest
    if manifest.dirty and not dry_run:
        manifest.write()
