"""Parse the governance tool's text output into issue records.

The tool prints one box-drawn table per validation type::

    Validation Type: Governance
    ┌───────┬──────────┬─────────────────────┬──────────────────┐
    │ Range │ Severity │ Description         │ Path             │
    ├───────┼──────────┼─────────────────────┼──────────────────┤
    │ 4:12  │ error    │ Missing description │ #/paths/~1foo/get│
    └───────┴──────────┴─────────────────────┴──────────────────┘

    ✖ 1 problem (1 error, 0 warnings, 0 infos, 0 hints)

The format is not a formal contract, so parsing never raises. When no table
row is recognized, the closing summary sentence is used to synthesize
position-less issues so that aggregate counts stay accurate.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Literal

from govlint.models import (
    DEFAULT_CATEGORY,
    IssueRecord,
    IssueSummary,
    Severity,
    rule_for_category,
)
from govlint.severity import normalize_severity, summarize_issues

logger = logging.getLogger(__name__)

ParseOrigin = Literal["table", "summary", "none"]

# Upper bound on issues synthesized from one summary sentence.
MAX_SUMMARY_ISSUES = 10_000

_ANSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]")
_VALIDATION_TYPE_RE = re.compile(r"Validation Type:\s*(\w+)", re.IGNORECASE)
_CELL_SPLIT_RE = re.compile(r"[│┃]")
_SEPARATOR_CELL_RE = re.compile(r"^[─━═┄┈┼├┤┬┴┌┐└┘╭╮╰╯\s]+$")
_RANGE_RE = re.compile(r"^(\d+):(\d+)$")
_SUMMARY_RE = re.compile(
    r"(\d+)\s+problems?\s*\(\s*(\d+)\s+errors?,\s*(\d+)\s+warnings?,"
    r"\s*(\d+)\s+infos?,\s*(\d+)\s+hints?\s*\)",
    re.IGNORECASE,
)
_HEADER_MARKERS = ("Range", "Severity")
_FALLBACK_MESSAGES: dict[Severity, str] = {
    Severity.ERROR: "Governance error",
    Severity.WARN: "Governance warning",
    Severity.INFO: "Governance info",
    Severity.HINT: "Governance hint",
}


@dataclass(frozen=True)
class ParsedOutput:
    issues: list[IssueRecord] = field(default_factory=list)
    summary: IssueSummary = field(default_factory=IssueSummary)
    origin: ParseOrigin = "none"


def strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text)


def has_parse_error_banner(raw: str) -> bool:
    """True when the tool reported that it could not read the specification."""
    clean = strip_ansi(raw)
    return "Error:" in clean and "Couldn't parse" in clean


def first_error_line(raw: str) -> str | None:
    for line in strip_ansi(raw).splitlines():
        stripped = line.strip()
        if "Error:" in stripped:
            return stripped
    return None


def _split_cells(line: str) -> list[str]:
    return [cell.strip() for cell in _CELL_SPLIT_RE.split(line) if cell.strip()]


def _is_header_row(cells: list[str]) -> bool:
    return any(marker in cell for cell in cells for marker in _HEADER_MARKERS)


def _is_separator_row(cells: list[str]) -> bool:
    return all(_SEPARATOR_CELL_RE.match(cell) for cell in cells)


def _parse_position(range_cell: str) -> tuple[int, int]:
    match = _RANGE_RE.match(range_cell)
    if match is None:
        return 0, 0
    return int(match.group(1)), int(match.group(2))


def _parse_table_rows(lines: list[str]) -> list[IssueRecord]:
    issues: list[IssueRecord] = []
    category = DEFAULT_CATEGORY
    for line in lines:
        header = _VALIDATION_TYPE_RE.search(line)
        if header is not None:
            category = header.group(1).lower()
            continue
        if not _CELL_SPLIT_RE.search(line):
            continue
        cells = _split_cells(line)
        if not cells or _is_header_row(cells) or _is_separator_row(cells):
            continue
        if len(cells) < 3:
            continue
        range_cell, severity_cell, description = cells[0], cells[1], cells[2]
        path = cells[3] if len(cells) > 3 else ""
        line_no, column = _parse_position(range_cell)
        issues.append(
            IssueRecord(
                severity=normalize_severity(severity_cell),
                message=description,
                rule=rule_for_category(category),
                line=line_no,
                column=column,
                path=path,
            )
        )
    return issues


def _issues_from_summary(clean: str) -> list[IssueRecord]:
    match = _SUMMARY_RE.search(clean)
    if match is None:
        return []
    counts = {
        Severity.ERROR: int(match.group(2)),
        Severity.WARN: int(match.group(3)),
        Severity.INFO: int(match.group(4)),
        Severity.HINT: int(match.group(5)),
    }
    issues: list[IssueRecord] = []
    for severity, count in counts.items():
        count = min(count, MAX_SUMMARY_ISSUES - len(issues))
        if count < counts[severity]:
            logger.warning(
                "Summary reports %d %s issues; keeping %d",
                counts[severity],
                severity.value,
                count,
            )
        issues.extend(
            IssueRecord(
                severity=severity,
                message=_FALLBACK_MESSAGES[severity],
                rule=rule_for_category(DEFAULT_CATEGORY),
            )
            for _ in range(count)
        )
    return issues


def parse_output(raw: str | None) -> ParsedOutput:
    clean = strip_ansi(raw or "")
    issues = _parse_table_rows(clean.splitlines())
    origin: ParseOrigin = "table"
    if not issues:
        issues = _issues_from_summary(clean)
        origin = "summary" if issues else "none"
    # Counts come from the final list, never from the summary sentence.
    return ParsedOutput(
        issues=issues,
        summary=summarize_issues(issues),
        origin=origin,
    )
