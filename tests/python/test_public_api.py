"""Tests for package root public API imports."""

from __future__ import annotations

import tomllib
from pathlib import Path

import meeting_approval as ma
from meeting_approval import (
    ApprovalCoordinator,
    ApprovalListCache,
    MeetingRecord,
    SubmissionCoordinator,
    __version__,
    calculate_expense,
)


def test_public_api_exports() -> None:
    """Core API symbols should be importable from the package root."""
    required_exports = {
        "__version__",
        "MeetingRecord",
        "SubmissionCoordinator",
        "ApprovalCoordinator",
        "ApprovalListCache",
        "calculate_expense",
        "visible_fields",
        "editable_fields",
    }

    assert required_exports.issubset(set(ma.__all__))
    assert all(hasattr(ma, name) for name in ma.__all__)
    assert callable(calculate_expense)
    assert MeetingRecord is not None
    assert SubmissionCoordinator is not None
    assert ApprovalCoordinator is not None
    assert ApprovalListCache is not None


def test_version_matches_pyproject() -> None:
    """Package __version__ should align with pyproject.toml."""
    pyproject_path = Path(__file__).resolve().parents[2] / "pyproject.toml"
    data = tomllib.loads(pyproject_path.read_text(encoding="utf-8"))

    assert data["project"]["version"] == __version__
