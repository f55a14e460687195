"""Map issue records onto LSP diagnostics."""

from __future__ import annotations

from lsprotocol.types import Diagnostic, DiagnosticSeverity, Position, Range

from govlint.models import IssueRecord, Severity

DIAGNOSTIC_SOURCE = "postman-governance"

_LSP_SEVERITY: dict[str, DiagnosticSeverity] = {
    Severity.ERROR.value: DiagnosticSeverity.Error,
    Severity.WARN.value: DiagnosticSeverity.Warning,
    Severity.INFO.value: DiagnosticSeverity.Information,
    Severity.HINT.value: DiagnosticSeverity.Hint,
}


def to_lsp_severity(severity: object) -> DiagnosticSeverity:
    return _LSP_SEVERITY.get(str(severity), DiagnosticSeverity.Hint)


def create_range(line: int, column: int) -> Range:
    """Convert the tool's 1-based position into a one-character 0-based range.

    The tool reports no end position, so the range always spans
    ``[column, column + 1)`` on the reported line.
    """
    start_line = max(0, line - 1)
    start_character = max(0, column - 1)
    return Range(
        start=Position(line=start_line, character=start_character),
        end=Position(line=start_line, character=start_character + 1),
    )


def to_diagnostic(issue: IssueRecord) -> Diagnostic:
    return Diagnostic(
        range=create_range(issue.line, issue.column),
        message=issue.message,
        severity=to_lsp_severity(issue.severity),
        source=DIAGNOSTIC_SOURCE,
        code=issue.rule,
    )


def failure_diagnostic(message: str) -> Diagnostic:
    return Diagnostic(
        range=create_range(0, 0),
        message=f"Postman linting failed: {message}",
        severity=DiagnosticSeverity.Error,
        source=DIAGNOSTIC_SOURCE,
    )
