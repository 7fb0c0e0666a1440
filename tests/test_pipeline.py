"""Tests for cargo_set_version.pipeline."""

from __future__ import annotations

from pathlib import Path

import pytest
import tomlkit

from cargo_set_version.errors import InvalidRequirement, ManifestError, VersionDowngrade
from cargo_set_version.models import PackageSelection, RequirementChange, VersionBump
from cargo_set_version.pipeline import run_set_version, set_version
from cargo_set_version.versions import AbsoluteTarget, BumpLevel, RelativeTarget
from cargo_set_version.workspace import workspace_members, workspace_packages

MINOR = RelativeTarget(level=BumpLevel.MINOR)


def _doc(workspace: Path, crate: str | None = None) -> tomlkit.TOMLDocument:
    path = workspace / "Cargo.toml"
    if crate is not None:
        path = workspace / "crates" / crate / "Cargo.toml"
    return tomlkit.parse(path.read_text())


def _snapshot(workspace: Path) -> dict[Path, str]:
    return {p: p.read_text() for p in sorted(workspace.rglob("Cargo.toml"))}


def _run(workspace: Path, target=MINOR, *pkgids: str, **kwargs):
    selection = PackageSelection(mode="packages", pkgids=list(pkgids or ["a"]))
    return run_set_version(
        target, selection, manifest_path=workspace / "Cargo.toml", **kwargs
    )


class TestSetVersion:
    """Bumping ``a`` from 1.2.3 with a minor bump."""

    def test_bumps_own_manifest(self, workspace: Path) -> None:
        report = _run(workspace)

        assert _doc(workspace, "a")["package"]["version"] == "1.3.0"
        assert report.bumped == [VersionBump(name="a", old="1.2.3", new="1.3.0")]

    def test_partial_requirement_keeps_style(self, workspace: Path) -> None:
        _run(workspace)

        text = (workspace / "crates" / "b" / "Cargo.toml").read_text()
        assert 'a = { path = "../a", version = "1.3" }' in text
        assert "# keep this comment" in text
        assert 'serde = "1.0"' in text

    def test_exact_pin(self, workspace: Path) -> None:
        _run(workspace)
        assert _doc(workspace, "c")["dependencies"]["a"]["version"] == "=1.3.0"

    def test_entry_without_path_untouched(self, workspace: Path) -> None:
        before = (workspace / "crates" / "d" / "Cargo.toml").read_text()
        _run(workspace)
        assert (workspace / "crates" / "d" / "Cargo.toml").read_text() == before

    def test_matches_by_path_not_name(self, workspace: Path) -> None:
        _run(workspace)

        doc = _doc(workspace, "e")
        assert doc["dev-dependencies"]["aliased"]["version"] == "~1.3.0"
        # Named "a" but points at d
        assert doc["build-dependencies"]["a"]["version"] == "1.2"
        # Already matches 1.3.0 at its own precision
        assert doc["target"]["cfg(unix)"]["dependencies"]["a"]["version"] == "1"

    def test_workspace_dependencies(self, workspace: Path) -> None:
        _run(workspace)
        assert _doc(workspace)["workspace"]["dependencies"]["a"]["version"] == "1.3.0"

    def test_excluded_workspace_dir_untouched(self, workspace: Path) -> None:
        _run(workspace)
        doc = _doc(workspace, "ignored")
        assert doc["dependencies"]["a"]["version"] == "=1.2.3"

    def test_reports_requirement_changes(self, workspace: Path) -> None:
        report = _run(workspace)

        changes = [(c.member, c.dependency, c.old, c.new) for c in report.requirements]
        assert changes[1:] == [
            ("b", "a", "1.2", "1.3"),
            ("c", "a", "=1.2.3", "=1.3.0"),
            ("e", "aliased", "~1.2.3", "~1.3.0"),
        ]
        # Root [workspace.dependencies] comes first
        assert changes[0][1:] == ("a", "1.2.3", "1.3.0")

    def test_writes_each_manifest_once(self, workspace: Path) -> None:
        report = _run(workspace)
        assert len(report.written) == len(set(report.written))
        assert {p.parent.name for p in report.written} >= {"a", "b", "c", "e"}

    def test_status_output(
        self, workspace: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        _run(workspace)

        err = capsys.readouterr().err
        assert "   Upgrading a from 1.2.3 to 1.3.0" in err
        assert "    Updating b's dependency from 1.2 to 1.3" in err
        assert "    Updating c's dependency from =1.2.3 to =1.3.0" in err


class TestDryRun:
    def test_no_files_change(self, workspace: Path) -> None:
        before = _snapshot(workspace)
        report = _run(workspace, dry_run=True)

        assert _snapshot(workspace) == before
        assert report.written == []
        assert len(report.requirements) == 4

    def test_same_messages_as_real_run(
        self, workspace: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        dry = _run(workspace, dry_run=True)
        dry_err = capsys.readouterr().err
        real = _run(workspace)
        real_err = capsys.readouterr().err

        warning = "warning: aborting set-version due to dry run\n"
        assert dry_err.replace(warning, "") == real_err
        assert dry.bumped == real.bumped
        assert dry.requirements == real.requirements

    def test_warns(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        _run(workspace, dry_run=True)
        err = capsys.readouterr().err
        assert "Upgrading a from 1.2.3 to 1.3.0" in err
        assert "warning: aborting set-version due to dry run" in err


class TestExclude:
    def test_excluded_package_not_bumped(self, workspace: Path) -> None:
        before = (workspace / "crates" / "a" / "Cargo.toml").read_text()
        selection = PackageSelection(mode="workspace")
        report = run_set_version(
            MINOR, selection, manifest_path=workspace / "Cargo.toml", exclude=["a"]
        )

        assert (workspace / "crates" / "a" / "Cargo.toml").read_text() == before
        assert [b.name for b in report.bumped] == ["b", "c", "d", "e"]
        # Nothing pointing at a changed; e's build dependency points at d
        assert report.requirements == [
            RequirementChange(member="e", dependency="a", old="1.2", new="2.1")
        ]


class TestNoChange:
    def test_equal_absolute_target(
        self, workspace: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        before = _snapshot(workspace)
        report = _run(workspace, AbsoluteTarget(version="1.2.3"))

        assert _snapshot(workspace) == before
        assert report.bumped == []
        assert report.requirements == []
        assert capsys.readouterr().err == ""

    def test_downgrade_aborts_before_writing(self, workspace: Path) -> None:
        before = _snapshot(workspace)
        with pytest.raises(VersionDowngrade):
            _run(workspace, AbsoluteTarget(version="1.0.0"))
        assert _snapshot(workspace) == before


class TestErrors:
    def test_malformed_requirement_aborts(self, workspace: Path) -> None:
        b = workspace / "crates" / "b" / "Cargo.toml"
        b.write_text(b.read_text().replace('version = "1.2"', 'version = "one.two"'))
        before_b = b.read_text()

        with pytest.raises(InvalidRequirement):
            _run(workspace)

        # No rollback: a was already written, b never was
        assert _doc(workspace, "a")["package"]["version"] == "1.3.0"
        assert b.read_text() == before_b

    def test_inherited_version_aborts_before_writing(self, tmp_path: Path) -> None:
        (tmp_path / "Cargo.toml").write_text(
            '[workspace]\nmembers = ["a", "x"]\n\n'
            '[workspace.package]\nversion = "1.0.0"\n'
        )
        (tmp_path / "a").mkdir()
        (tmp_path / "a" / "Cargo.toml").write_text(
            '[package]\nname = "a"\nversion = "1.0.0"\n'
        )
        (tmp_path / "x").mkdir()
        (tmp_path / "x" / "Cargo.toml").write_text(
            '[package]\nname = "x"\nversion.workspace = true\n\n'
            '[dependencies]\na = { path = "../a", version = "1.0" }\n'
        )
        before = _snapshot(tmp_path)

        with pytest.raises(ManifestError, match="inherits its version"):
            run_set_version(
                MINOR,
                PackageSelection(mode="workspace"),
                manifest_path=tmp_path / "Cargo.toml",
            )

        assert _snapshot(tmp_path) == before


class TestMultiplePackages:
    def test_dependent_also_bumped(self, workspace: Path) -> None:
        _run(workspace, RelativeTarget(level=BumpLevel.PATCH), "a", "c")

        doc = _doc(workspace, "c")
        assert doc["package"]["version"] == "0.1.1"
        assert doc["dependencies"]["a"]["version"] == "=1.2.4"
        # "1.2" still names 1.2.4 at its precision
        assert _doc(workspace, "b")["dependencies"]["a"]["version"] == "1.2"


def test_set_version_with_explicit_members(workspace: Path) -> None:
    """Dependents are found among all members, not just the bumped packages."""
    packages = [
        p for p in workspace_packages(workspace / "Cargo.toml") if p.name == "a"
    ]
    members = workspace_members(workspace / "Cargo.toml")

    report = set_version(packages, members, AbsoluteTarget(version="2.0.0"))

    assert report.bumped == [VersionBump(name="a", old="1.2.3", new="2.0.0")]
    assert _doc(workspace, "b")["dependencies"]["a"]["version"] == "2.0"
    assert _doc(workspace, "c")["dependencies"]["a"]["version"] == "=2.0.0"
