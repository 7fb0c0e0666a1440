"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
import tomlkit

ROOT_MANIFEST = """\
[workspace]
members = ["crates/*"]
exclude = ["crates/ignored"]

[workspace.dependencies]
a = { path = "crates/a", version = "1.2.3" }
"""

CRATES = {
    "a": """\
[package]
name = "a"
version = "1.2.3"
edition = "2021"
""",
    "b": """\
[package]
name = "b"
version = "0.4.0"

[dependencies]
# keep this comment
a = { path = "../a", version = "1.2" }
serde = "1.0"
""",
    "c": """\
[package]
name = "c"
version = "0.1.0"

[dependencies.a]
path = "../a"
version = "=1.2.3"
""",
    "d": """\
[package]
name = "d"
version = "2.0.0"

[dependencies]
a = { version = "1.2" }
""",
    "e": """\
[package]
name = "e"
version = "0.0.1"

[dev-dependencies]
aliased = { package = "a", path = "../a", version = "~1.2.3" }

[build-dependencies]
a = { path = "../d", version = "1.2" }

[target.'cfg(unix)'.dependencies]
a = { path = "../a", version = "1" }
""",
    "ignored": """\
[package]
name = "ignored"
version = "9.9.9"

[dependencies]
a = { path = "../a", version = "=1.2.3" }
""",
}


def write_workspace(root: Path, crates: dict[str, str], root_manifest: str) -> Path:
    """Write a Cargo workspace under root and return the root manifest path."""
    (root / "Cargo.toml").write_text(root_manifest)
    for name, manifest in crates.items():
        crate_dir = root / "crates" / name
        (crate_dir / "src").mkdir(parents=True)
        (crate_dir / "Cargo.toml").write_text(manifest)
        (crate_dir / "src" / "lib.rs").write_text("")
    return root / "Cargo.toml"


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a sample Cargo workspace and return its root directory.

    Crate ``a`` (1.2.3) is depended on by path from ``b`` (caret "1.2"),
    ``c`` (exact "=1.2.3"), ``e`` (renamed, tilde; plus a target-specific
    entry) and the root's [workspace.dependencies]. ``d`` names ``a``
    without a path, and ``e`` has a build dependency called ``a`` that
    points at ``d``. ``ignored`` is excluded from the workspace.
    """
    write_workspace(tmp_path, CRATES, ROOT_MANIFEST)
    return tmp_path


@pytest.fixture
def sample_manifest() -> tomlkit.TOMLDocument:
    """Create a sample manifest document with every kind of dependency table."""
    content = """\
[package]
name = "my-crate"
version = "2.0.0"

[dependencies]
serde = "1.0"
local = { path = "../local", version = "0.3" }

[dev-dependencies]
helper = { path = "../helper", version = "1" }

[build-dependencies]
cc = "1.0"

[target.'cfg(windows)'.dependencies]
winapi = { version = "0.3" }

[workspace]
members = ["crates/*", "tools/*"]

[workspace.dependencies]
shared = { path = "crates/shared", version = "4.1.0" }
"""
    return tomlkit.parse(content)
