"""Severity normalization, issue summaries and the aggregate governance score."""

from __future__ import annotations

import math
from collections import Counter
from typing import Iterable

from govlint.models import IssueRecord, IssueSummary, Severity

MAX_SCORE = 100.0

SEVERITY_WEIGHTS: dict[Severity, float] = {
    Severity.ERROR: 10.0,
    Severity.WARN: 2.5,
    Severity.INFO: 0.5,
    Severity.HINT: 0.05,
}

_SEVERITY_ALIASES: dict[str, Severity] = {
    "error": Severity.ERROR,
    "errors": Severity.ERROR,
    "warn": Severity.WARN,
    "warning": Severity.WARN,
    "warnings": Severity.WARN,
    "info": Severity.INFO,
    "information": Severity.INFO,
}


def normalize_severity(value: object) -> Severity:
    """Map any raw severity token onto one of the four canonical levels.

    Unknown, empty and ``None`` values fall through to ``hint``; the function
    never raises and ``normalize_severity(normalize_severity(x))`` is stable.
    """
    if value is None:
        return Severity.HINT
    text = str(value).strip().casefold()
    return _SEVERITY_ALIASES.get(text, Severity.HINT)


def summarize_issues(issues: Iterable[IssueRecord]) -> IssueSummary:
    counts: Counter[Severity] = Counter()
    total = 0
    for issue in issues:
        counts[normalize_severity(issue.severity)] += 1
        total += 1
    return IssueSummary(
        total=total,
        error=counts[Severity.ERROR],
        warn=counts[Severity.WARN],
        info=counts[Severity.INFO],
        hint=counts[Severity.HINT],
    )


def compute_score(issues: Iterable[IssueRecord]) -> float:
    # Deductions are summed first so the result does not depend on issue order.
    deduction = math.fsum(
        SEVERITY_WEIGHTS[normalize_severity(issue.severity)] for issue in issues
    )
    return round(max(0.0, MAX_SCORE - deduction), 2)
