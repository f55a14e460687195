"""govlint package root."""

from govlint.models import IssueRecord, IssueSummary, Severity
from govlint.process import ProcessFailure, ProcessTimeout

__all__ = [
    "__version__",
    "IssueRecord",
    "IssueSummary",
    "ProcessFailure",
    "ProcessTimeout",
    "Severity",
]

__version__ = "0.1.0"
