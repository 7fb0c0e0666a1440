"""Set-version pipeline: resolve → bump → propagate.

For each package in scope:
1. Resolve its next version (skip it if unchanged)
2. Rewrite [package].version in its own Cargo.toml
3. Find every workspace member with a path dependency on it
4. Upgrade those dependencies' version requirements to keep matching

Dependents are searched across the whole workspace, not just the packages
selected for bumping. A dry run does all of the above and reports it, but
writes nothing.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import semver

from .deps import crate_root, find_dependents
from .models import (
    Package,
    PackageSelection,
    PropagationReport,
    RequirementChange,
    VersionBump,
    WorkspaceMember,
)
from .requirements import upgrade_requirement
from .shell import status, warn
from .toml import check_version_settable, edit_manifest, load_manifest
from .versions import TargetVersion, resolve_target
from .workspace import resolve_manifests, workspace_members


def propagate_to_dependents(
    package: Package,
    new_version: semver.Version,
    members: Iterable[WorkspaceMember],
    report: PropagationReport,
    *,
    dry_run: bool = False,
) -> None:
    """Upgrade every member's path dependency on package to match new_version.

    Each member manifest is written at most once, after all of its entries
    have been updated, and only if something changed.
    """
    root = crate_root(package.manifest_path)
    for member in members:
        with edit_manifest(member.manifest_path, dry_run=dry_run) as manifest:
            for key, entry in find_dependents(manifest, root):
                raw = entry.get("version")
                # A non-string requirement is treated as matching anything
                old_req = str(raw) if isinstance(raw, str) else "*"
                new_req = upgrade_requirement(old_req, new_version)
                if new_req is None:
                    continue
                status(
                    "Updating",
                    f"{member.name}'s dependency from {old_req} to {new_req}",
                )
                manifest.set_dependency_version(entry, new_req)
                report.requirements.append(
                    RequirementChange(
                        member=member.name, dependency=key, old=old_req, new=new_req
                    )
                )
            if manifest.dirty and not dry_run:
                report.written.append(member.manifest_path)


def set_version(
    packages: Iterable[Package],
    members: list[WorkspaceMember],
    target: TargetVersion,
    *,
    metadata: str | None = None,
    exclude: Iterable[str] = (),
    dry_run: bool = False,
) -> PropagationReport:
    """Bump packages and propagate the new versions to their dependents.

    Args:
        packages: Packages in scope, in the order to process them.
        members: Every manifest in the workspace (searched for dependents).
        target: Explicit version or bump level.
        metadata: Build metadata to attach to new versions.
        exclude: Package names to leave alone entirely.
        dry_run: Compute and report, but don't write any manifest.

    Returns:
        A report of every version and requirement changed.

    Raises:
        SetVersionError: On any resolution, requirement or manifest failure.
            Version and manifest checks run before anything is written;
            a requirement failure after that leaves earlier writes in place.
    """
    excluded = set(exclude)
    report = PropagationReport()

    # Every package is resolved and checked before the first write
    plan: list[tuple[Package, semver.Version]] = []
    for package in packages:
        if package.name in excluded:
            continue
        next_version = resolve_target(package.version, target, metadata)
        if next_version is None:
            continue
        check_version_settable(
            load_manifest(package.manifest_path), package.manifest_path
        )
        plan.append((package, next_version))

    for package, next_version in plan:
        with edit_manifest(package.manifest_path, dry_run=dry_run) as manifest:
            manifest.set_package_version(str(next_version))
            status(
                "Upgrading", f"{package.name} from {package.version} to {next_version}"
            )
            report.bumped.append(
                VersionBump(
                    name=package.name, old=package.version, new=str(next_version)
                )
            )
            if not dry_run:
                report.written.append(package.manifest_path)

        propagate_to_dependents(
            package, next_version, members, report, dry_run=dry_run
        )

    return report


def run_set_version(
    target: TargetVersion,
    selection: PackageSelection,
    *,
    manifest_path: Path | None = None,
    metadata: str | None = None,
    exclude: Iterable[str] = (),
    dry_run: bool = False,
) -> PropagationReport:
    """Execute a full set-version run against the workspace on disk."""
    packages = resolve_manifests(manifest_path, selection)
    members = workspace_members(manifest_path)

    report = set_version(
        packages,
        members,
        target,
        metadata=metadata,
        exclude=exclude,
        dry_run=dry_run,
    )

    if dry_run:
        warn("aborting set-version due to dry run")
    return report
