from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer

from govlint.auth import LOGIN_HINT, AuthProvider
from govlint.cli_check import CliValidator
from govlint.config import resolve_settings
from govlint.process import API_KEY_ENV, DEFAULT_TOOL_TIMEOUT_SECONDS, ProcessFailure
from govlint.schema import IssueDTO, IssueSummaryDTO, LintResult
from govlint.scorer import GovernanceScorer

app = typer.Typer(add_completion=False)

_REDACTED = "[REDACTED]"


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _emit_json(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))


def _resolve_api_key(api_key: str | None, postmanrc: Path | None) -> str:
    if api_key:
        return api_key
    status = AuthProvider(postmanrc).get_auth_status()
    if not status.is_authenticated or not status.api_key:
        raise typer.BadParameter(
            f"{status.error or 'No Postman API key found.'} "
            f"(or pass --api-key / set {API_KEY_ENV}; login with: {LOGIN_HINT})"
        )
    return status.api_key


@app.command("serve")
def serve(
    log_level: str = typer.Option("WARNING", "--log-level"),
) -> None:
    """Run the language server over stdio."""
    _configure_logging(log_level)
    from govlint import server

    server.start()


@app.command("lint")
def lint(
    spec: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    cli_path: Optional[str] = typer.Option(None, "--cli-path"),
    api_key: Optional[str] = typer.Option(None, "--api-key", envvar=API_KEY_ENV),
    postmanrc: Optional[Path] = typer.Option(None, "--postmanrc"),
    timeout: float = typer.Option(DEFAULT_TOOL_TIMEOUT_SECONDS, "--timeout"),
    as_json: bool = typer.Option(False, "--json"),
    log_level: str = typer.Option("WARNING", "--log-level"),
) -> None:
    """Lint one API specification and print its issues and score."""
    _configure_logging(log_level)
    settings = resolve_settings(root=spec.parent)
    scorer = GovernanceScorer(
        _resolve_api_key(api_key, postmanrc),
        cli_path=cli_path or settings.cli_path,
        timeout=timeout,
    )
    try:
        result = asyncio.run(scorer.score_spec_file(spec))
    except ProcessFailure as exc:
        if as_json:
            _emit_json(LintResult(success=False, error=str(exc)).to_wire())
        else:
            typer.echo(f"Postman linting failed: {exc}", err=True)
        raise typer.Exit(code=2)
    if as_json:
        _emit_json(
            LintResult(
                success=True,
                issues=[IssueDTO.from_issue(issue) for issue in result.issues],
                summary=IssueSummaryDTO.from_summary(result.summary),
                score=result.score,
            ).to_wire()
        )
    else:
        for issue in result.issues:
            location = f"{spec}:{issue.line}:{issue.column}"
            suffix = f" ({issue.path})" if issue.path else ""
            typer.echo(
                f"{location}: {issue.severity.value} {issue.message} [{issue.rule}]{suffix}"
            )
        summary = result.summary
        typer.echo(
            f"{summary.total} problems ({summary.error} errors, {summary.warn} warnings, "
            f"{summary.info} infos, {summary.hint} hints); score {result.score:.2f}"
        )
    raise typer.Exit(code=1 if result.summary.error else 0)


@app.command("auth-status")
def auth_status(
    postmanrc: Optional[Path] = typer.Option(None, "--postmanrc"),
) -> None:
    """Show whether a Postman API key is available."""
    payload = AuthProvider(postmanrc).get_auth_status().to_wire()
    if "apiKey" in payload:
        payload["apiKey"] = _REDACTED
    _emit_json(payload)
    raise typer.Exit(code=0 if payload["isAuthenticated"] else 1)


@app.command("cli-info")
def cli_info(
    cli_path: str = typer.Option("postman", "--cli-path"),
    check_lint: bool = typer.Option(False, "--check-lint"),
) -> None:
    """Probe the governance CLI for availability and version."""
    validator = CliValidator(cli_path)
    info = asyncio.run(validator.validate_cli())
    payload = info.to_wire()
    if check_lint:
        payload["lintCommand"] = asyncio.run(validator.validate_lint_command()).to_wire()
    _emit_json(payload)
    raise typer.Exit(code=0 if info.available else 1)


def main() -> None:  # pragma: no cover
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
