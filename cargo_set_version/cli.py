"""CLI entry point for cargo-set-version.

Installed as ``cargo-set-version`` so that cargo finds it as the
``set-version`` subcommand: ``cargo set-version --bump minor``.
"""

from __future__ import annotations

from pathlib import Path

import click

from cargo_set_version.errors import InvalidVersion, SetVersionError
from cargo_set_version.models import PackageSelection
from cargo_set_version.pipeline import run_set_version
from cargo_set_version.shell import warn
from cargo_set_version.versions import BumpLevel, target_from_args


def _selection(
    pkgids: tuple[str, ...], workspace: bool, all_: bool
) -> PackageSelection:
    """Turn --package / --workspace / --all into a single selection."""
    if pkgids and (workspace or all_):
        raise click.UsageError("--package cannot be used with --workspace or --all")
    if workspace and all_:
        raise click.UsageError("--workspace and --all are mutually exclusive")
    if all_:
        warn("The flag `--all` has been deprecated in favor of `--workspace`")
    if workspace or all_:
        return PackageSelection(mode="workspace")
    if pkgids:
        return PackageSelection(mode="packages", pkgids=list(pkgids))
    return PackageSelection()


@click.group()
@click.version_option(package_name="cargo-set-version")
def cli() -> None:
    """Cargo workspace version management."""


@cli.command("set-version")
@click.argument("target", required=False)
@click.option(
    "--bump",
    type=click.Choice([level.value for level in BumpLevel]),
    help="Increment manifest version.",
)
@click.option(
    "-m",
    "--metadata",
    help="Specify the version metadata field (e.g. a wrapped library's version).",
)
@click.option(
    "--manifest-path",
    type=click.Path(dir_okay=False, path_type=Path),
    metavar="PATH",
    help="Path to the manifest to upgrade.",
)
@click.option(
    "-p",
    "--package",
    "pkgids",
    multiple=True,
    metavar="PKGID",
    help="Package id of the crate to change the version of (repeatable).",
)
@click.option(
    "--all",
    "all_",
    is_flag=True,
    help="[deprecated in favor of `--workspace`]",
)
@click.option("--workspace", is_flag=True, help="Modify all packages in the workspace.")
@click.option(
    "--dry-run", is_flag=True, help="Print changes to be made without making them."
)
@click.option(
    "--exclude",
    multiple=True,
    metavar="NAME",
    help="Crates to exclude and not modify (repeatable).",
)
def set_version_cmd(
    target: str | None,
    bump: str | None,
    metadata: str | None,
    manifest_path: Path | None,
    pkgids: tuple[str, ...],
    all_: bool,
    workspace: bool,
    dry_run: bool,
    exclude: tuple[str, ...],
) -> None:
    """Change a package's version in the local manifest file (Cargo.toml).

    TARGET is the version to change manifests to. Without TARGET or
    --bump, pre-release versions are released (1.2.3-rc.1 → 1.2.3).
    """
    if target is not None and bump is not None:
        raise click.UsageError("TARGET and --bump are mutually exclusive")
    try:
        target_version = target_from_args(target, bump)
    except InvalidVersion as exc:
        raise click.BadParameter(str(exc), param_hint="TARGET") from exc

    selection = _selection(pkgids, workspace, all_)

    try:
        run_set_version(
            target_version,
            selection,
            manifest_path=manifest_path,
            metadata=metadata,
            exclude=exclude,
            dry_run=dry_run,
        )
    except SetVersionError as exc:
        raise click.ClickException(str(exc)) from exc
