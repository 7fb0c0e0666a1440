"""Workspace discovery: which manifests exist and which packages to bump.

Reads [workspace].members from the root Cargo.toml to find member
directories, then extracts name and version from each member's manifest.
"""

from __future__ import annotations

import glob
from pathlib import Path

from .errors import ManifestError
from .models import Package, PackageSelection, WorkspaceMember
from .toml import (
    MANIFEST_NAME,
    get_package_name,
    get_package_version,
    get_package_workspace,
    get_workspace_exclude,
    get_workspace_member_globs,
    get_workspace_package_version,
    is_inherited,
    load_manifest,
)


def find_manifest(start: Path | None = None) -> Path:
    """Find the nearest Cargo.toml in start (default: cwd) or its ancestors.

    Raises:
        ManifestError: If no Cargo.toml exists up to the filesystem root.
    """
    start = (start or Path.cwd()).resolve()
    for directory in (start, *start.parents):
        candidate = directory / MANIFEST_NAME
        if candidate.is_file():
            return candidate
    raise ManifestError(
        f"could not find `{MANIFEST_NAME}` in `{start}` or any parent directory"
    )


def _member_dirs(root_manifest: Path) -> list[Path]:
    """Expand [workspace].members globs into resolved member directories."""
    doc = load_manifest(root_manifest)
    root_dir = root_manifest.parent
    excluded = {(root_dir / e).resolve() for e in get_workspace_exclude(doc)}

    dirs: list[Path] = []
    for pattern in get_workspace_member_globs(doc):
        for match in sorted(glob.glob(str(root_dir / pattern))):
            p = Path(match).resolve()
            if p in dirs or any(p.is_relative_to(e) for e in excluded):
                continue
            if (p / MANIFEST_NAME).is_file():
                dirs.append(p)
    return dirs


def find_workspace_root(manifest_path: Path) -> Path:
    """Find the root manifest of the workspace manifest_path belongs to.

    The manifest is its own root if it has a [workspace] table. A
    [package].workspace key names the root explicitly. Otherwise the
    nearest ancestor Cargo.toml with a [workspace] table that lists this
    package as a member is the root. A package outside any workspace is its
    own root.

    Raises:
        ManifestError: If [package].workspace names a directory that is not
            a workspace root, or one that doesn't list this package.
    """
    manifest_path = manifest_path.resolve()
    doc = load_manifest(manifest_path)
    if "workspace" in doc:
        return manifest_path

    package_dir = manifest_path.parent
    explicit = get_package_workspace(doc)
    if explicit is not None:
        candidate = (package_dir / explicit / MANIFEST_NAME).resolve()
        if not candidate.is_file() or "workspace" not in load_manifest(candidate):
            raise ManifestError(
                f"`{manifest_path}` points to `{explicit}` as its workspace "
                "root, but no workspace manifest was found there"
            )
        if package_dir not in _member_dirs(candidate):
            raise ManifestError(
                f"`{manifest_path}` believes it's in the workspace at "
                f"`{candidate}`, but is not a member of it"
            )
        return candidate

    for directory in package_dir.parents:
        candidate = directory / MANIFEST_NAME
        if not candidate.is_file():
            continue
        if "workspace" not in load_manifest(candidate):
            continue
        if package_dir in _member_dirs(candidate):
            return candidate
        # Only the nearest [workspace] ancestor can own this package
        break
    return manifest_path


def _resolve_manifest_path(manifest_path: Path | None) -> Path:
    if manifest_path is None:
        return find_manifest()
    if not manifest_path.is_file():
        raise ManifestError(f"manifest path `{manifest_path}` does not exist")
    return manifest_path.resolve()


def workspace_members(manifest_path: Path | None = None) -> list[WorkspaceMember]:
    """List every manifest in the workspace, root manifest first.

    The root is included even for a virtual workspace, so entries in its
    [workspace.dependencies] table are considered dependents too.
    """
    root = find_workspace_root(_resolve_manifest_path(manifest_path))
    root_doc = load_manifest(root)

    members = [
        WorkspaceMember(
            name=get_package_name(root_doc, root.parent.name), manifest_path=root
        )
    ]
    if "workspace" not in root_doc:
        return members

    for d in _member_dirs(root):
        path = d / MANIFEST_NAME
        if path == root:
            continue
        doc = load_manifest(path)
        members.append(
            WorkspaceMember(name=get_package_name(doc, d.name), manifest_path=path)
        )
    return members


def workspace_packages(manifest_path: Path | None = None) -> list[Package]:
    """List the members that are packages (have a [package] table).

    Inherited versions (``version.workspace = true``) are reported with the
    workspace's [workspace.package].version.
    """
    members = workspace_members(manifest_path)
    root_doc = load_manifest(members[0].manifest_path)

    packages: list[Package] = []
    for member in members:
        doc = load_manifest(member.manifest_path)
        if "package" not in doc:
            continue
        version = get_package_version(doc)
        if is_inherited(version):
            version = get_workspace_package_version(root_doc)
            if version is None:
                raise ManifestError(
                    f"`{member.manifest_path}` inherits its version but the "
                    "workspace defines no [workspace.package].version"
                )
        packages.append(
            Package(
                name=member.name,
                version=str(version),
                manifest_path=member.manifest_path,
            )
        )
    return packages


def _matches_pkgid(package: Package, pkgid: str) -> bool:
    """Match a package against ``name`` or ``name@version``."""
    name, _, version = pkgid.partition("@")
    return package.name == name and (not version or package.version == version)


def resolve_manifests(
    manifest_path: Path | None, selection: PackageSelection
) -> list[Package]:
    """Resolve the packages a run should bump.

    Args:
        manifest_path: Manifest to start from; defaults to the nearest
                       Cargo.toml above the current directory.
        selection: Which packages are in scope.

    Returns:
        Packages in workspace order (or pkgid order for "packages").

    Raises:
        ManifestError: If a pkgid matches no package, or a manifest can't
                       be read.
    """
    manifest_path = _resolve_manifest_path(manifest_path)
    packages = workspace_packages(manifest_path)

    if selection.mode == "workspace":
        return packages

    if selection.mode == "packages":
        selected: list[Package] = []
        for pkgid in selection.pkgids:
            found = next((p for p in packages if _matches_pkgid(p, pkgid)), None)
            if found is None:
                raise ManifestError(
                    f"package ID specification `{pkgid}` did not match any packages"
                )
            selected.append(found)
        return selected

    # Default: the package at manifest_path, or every package when virtual
    own = [p for p in packages if p.manifest_path == manifest_path]
    return own or packages
