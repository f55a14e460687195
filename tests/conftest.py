from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from govlint.models import IssueRecord, Severity

SPEC_YAML = "openapi: 3.0.0\ninfo:\n  title: Demo\n  version: '1'\npaths: {}\n"

GOVERNANCE_TABLE = (
    "Validation Type: Governance\n"
    "┌───────┬──────────┬─────────────────────┬──────────────────┐\n"
    "│ Range │ Severity │ Description         │ Path             │\n"
    "├───────┼──────────┼─────────────────────┼──────────────────┤\n"
    "│ 4:12  │ error    │ Missing description │ #/paths/~1foo/get│\n"
    "└───────┴──────────┴─────────────────────┴──────────────────┘\n"
)


@pytest.fixture
def spec_yaml() -> str:
    return SPEC_YAML


@pytest.fixture
def governance_table() -> str:
    return GOVERNANCE_TABLE


@pytest.fixture
def make_issue():
    def _make(
        severity: Severity = Severity.ERROR,
        *,
        message: str = "Missing description",
        line: int = 1,
        column: int = 1,
    ) -> IssueRecord:
        return IssueRecord(severity=severity, message=message, line=line, column=column)

    return _make
