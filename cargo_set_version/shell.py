"""Terminal output helpers.

Status lines mimic cargo's own output: a right-aligned action word followed
by the message. Everything goes to stderr so stdout stays clean for callers.
"""

from __future__ import annotations

import sys

STATUS_WIDTH = 12


def status(action: str, msg: str) -> None:
    """Print a cargo-style status line.

    Example: ``   Upgrading foo from 1.0.0 to 1.1.0``
    """
    print(f"{action:>{STATUS_WIDTH}} {msg}", file=sys.stderr)


def warn(msg: str) -> None:
    """Print a warning. Warnings never abort the run."""
    print(f"warning: {msg}", file=sys.stderr)
