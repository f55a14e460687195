"""Score one API specification file with the external governance tool."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from govlint.models import IssueRecord, IssueSummary
from govlint.parser import (
    ParseOrigin,
    first_error_line,
    has_parse_error_banner,
    parse_output,
)
from govlint.process import (
    DEFAULT_TOOL_TIMEOUT_SECONDS,
    ProcessFailure,
    run_tool,
)
from govlint.severity import compute_score

logger = logging.getLogger(__name__)

LINT_ARGS = ("api", "lint")
SPEC_PARSE_FAILURE = "Failed to parse API specification"


@dataclass(frozen=True)
class ScoreResult:
    score: float
    issues: list[IssueRecord] = field(default_factory=list)
    summary: IssueSummary = field(default_factory=IssueSummary)
    origin: ParseOrigin = "none"
    api: str = ""
    exit_code: int = 0


class GovernanceScorer:
    def __init__(
        self,
        api_key: str,
        *,
        cli_path: str = "postman",
        timeout: float = DEFAULT_TOOL_TIMEOUT_SECONDS,
        runner=run_tool,
    ) -> None:
        self._api_key = api_key
        self.cli_path = cli_path
        self.timeout = timeout
        self._run = runner

    async def score_spec_file(self, spec_path: Path) -> ScoreResult:
        """Lint ``spec_path`` and score the reported issues.

        Raises ``ProcessFailure`` when the tool cannot run, times out, cannot
        read the specification, or exits non-zero with only an error banner.
        An empty output is a clean result.
        """
        result = await self._run(
            self.cli_path,
            [*LINT_ARGS, str(spec_path)],
            api_key=self._api_key,
            timeout=self.timeout,
        )
        if has_parse_error_banner(result.output):
            raise ProcessFailure(SPEC_PARSE_FAILURE)
        parsed = parse_output(result.output)
        if result.exit_code != 0 and not parsed.issues:
            error_line = first_error_line(result.output)
            if error_line is not None:
                raise ProcessFailure(error_line)
        if parsed.origin == "summary":
            logger.info(
                "No issue table recognized for %s; using summary counts", spec_path.name
            )
        return ScoreResult(
            score=compute_score(parsed.issues),
            issues=parsed.issues,
            summary=parsed.summary,
            origin=parsed.origin,
            api=spec_path.name,
            exit_code=result.exit_code,
        )
