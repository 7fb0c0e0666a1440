"""Data models for cargo-set-version.

These Pydantic models represent the workspace as read from Cargo.toml files
and the changes a set-version run makes to it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field


class Package(BaseModel):
    """A workspace crate whose own manifest is a candidate for bumping.

    Attributes:
        name: Crate name from [package].name.
        version: Current version string from [package].version (or the
                 workspace's [workspace.package].version when inherited).
        manifest_path: Absolute path to the crate's Cargo.toml.
    """

    name: str
    version: str
    manifest_path: Path


class WorkspaceMember(BaseModel):
    """A manifest scanned for dependency entries pointing at a bumped crate.

    The workspace root manifest is a member too, even when it is virtual,
    so that [workspace.dependencies] entries get upgraded.
    """

    name: str
    manifest_path: Path


class PackageSelection(BaseModel):
    """Which packages a run bumps.

    Built once from --package / --workspace / --all; nothing downstream
    re-checks that those flags were mutually exclusive.

    Attributes:
        mode: "default" (the package at --manifest-path, or every package
              of a virtual workspace), "workspace" (every package), or
              "packages" (only those named in pkgids).
        pkgids: Package ids (``name`` or ``name@version``) for "packages".
    """

    mode: Literal["default", "workspace", "packages"] = "default"
    pkgids: list[str] = Field(default_factory=list)


class VersionBump(BaseModel):
    """Records a version change for a package."""

    name: str
    old: str
    new: str


class RequirementChange(BaseModel):
    """Records a rewritten dependency requirement in a dependent manifest.

    Attributes:
        member: Name of the manifest that holds the dependency entry.
        dependency: Key of the dependency entry (may differ from the crate
                    name when the dependency is renamed).
        old: Requirement string before the rewrite.
        new: Requirement string after the rewrite.
    """

    member: str
    dependency: str
    old: str
    new: str


class PropagationReport(BaseModel):
    """Everything a set-version run changed (or would change, on a dry run)."""

    bumped: list[VersionBump] = Field(default_factory=list)
    requirements: list[RequirementChange] = Field(default_factory=list)
    written: list[Path] = Field(default_factory=list)
