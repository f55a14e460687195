"""Issue records produced from governance tool output."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Severity(StrEnum):
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    HINT = "hint"

    @property
    def rank(self) -> int:
        """Higher is more severe: error > warn > info > hint."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK: dict[Severity, int] = {
    Severity.ERROR: 3,
    Severity.WARN: 2,
    Severity.INFO: 1,
    Severity.HINT: 0,
}

DEFAULT_CATEGORY = "governance"


def rule_for_category(category: str) -> str:
    return f"{category}-rule"


@dataclass(frozen=True)
class IssueRecord:
    """One governance violation reported by the external tool.

    ``line`` and ``column`` are the tool's 1-based positions; both are ``0``
    when the row carried no parseable range.
    """

    severity: Severity
    message: str
    rule: str = rule_for_category(DEFAULT_CATEGORY)
    line: int = 0
    column: int = 0
    path: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "line", max(0, int(self.line)))
        object.__setattr__(self, "column", max(0, int(self.column)))

    def to_payload(self) -> dict[str, object]:
        return {
            "severity": self.severity.value,
            "line": self.line,
            "column": self.column,
            "message": self.message,
            "rule": self.rule,
            "path": self.path,
        }


@dataclass(frozen=True)
class IssueSummary:
    total: int = 0
    error: int = 0
    warn: int = 0
    info: int = 0
    hint: int = 0

    def to_payload(self) -> dict[str, int]:
        return {
            "total": self.total,
            "error": self.error,
            "warn": self.warn,
            "info": self.info,
            "hint": self.hint,
        }
