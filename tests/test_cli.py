from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from govlint import cli
from govlint.models import IssueRecord, Severity
from govlint.process import ProcessFailure
from govlint.scorer import ScoreResult
from govlint.severity import compute_score, summarize_issues

runner = CliRunner()


class _StubScorer:
    issues: list[IssueRecord] = []
    failure: Exception | None = None
    created: list[dict] = []

    def __init__(self, api_key: str, *, cli_path: str, timeout: float) -> None:
        type(self).created.append({"api_key": api_key, "cli_path": cli_path, "timeout": timeout})

    async def score_spec_file(self, spec_path: Path) -> ScoreResult:
        if self.failure is not None:
            raise self.failure
        return ScoreResult(
            score=compute_score(self.issues),
            issues=list(self.issues),
            summary=summarize_issues(self.issues),
            origin="table",
            api=spec_path.name,
        )


def _stub(monkeypatch, *, issues=(), failure=None) -> type[_StubScorer]:
    stub = type(
        "Stub", (_StubScorer,), {"issues": list(issues), "failure": failure, "created": []}
    )
    monkeypatch.setattr(cli, "GovernanceScorer", stub)
    return stub


def _spec(tmp_path: Path, spec_yaml: str) -> Path:
    path = tmp_path / "openapi.yaml"
    path.write_text(spec_yaml)
    return path


def test_lint_json_reports_issues_and_error_exit(tmp_path, spec_yaml, monkeypatch) -> None:
    issue = IssueRecord(severity=Severity.ERROR, message="Missing description", line=4, column=12)
    stub = _stub(monkeypatch, issues=[issue])
    result = runner.invoke(
        cli.app, ["lint", str(_spec(tmp_path, spec_yaml)), "--api-key", "PMAK-x", "--json"]
    )
    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert payload["success"] is True
    assert payload["score"] == 90.0
    assert payload["summary"] == {"total": 1, "error": 1, "warn": 0, "info": 0, "hint": 0}
    assert payload["issues"][0]["line"] == 4
    assert stub.created == [{"api_key": "PMAK-x", "cli_path": "postman", "timeout": 600.0}]


def test_lint_text_output_and_clean_exit(tmp_path, spec_yaml, monkeypatch) -> None:
    issue = IssueRecord(severity=Severity.WARN, message="Use tags", line=2, column=1)
    _stub(monkeypatch, issues=[issue])
    result = runner.invoke(
        cli.app, ["lint", str(_spec(tmp_path, spec_yaml)), "--api-key", "PMAK-x"]
    )
    assert result.exit_code == 0
    assert "warn Use tags [governance-rule]" in result.stdout
    assert "1 problems (0 errors, 1 warnings" in result.stdout
    assert "score 97.50" in result.stdout


def test_lint_uses_project_cli_path(tmp_path, spec_yaml, monkeypatch) -> None:
    (tmp_path / "govlint.toml").write_text('[lint]\ncliPath = "/opt/postman"\n')
    stub = _stub(monkeypatch)
    result = runner.invoke(
        cli.app, ["lint", str(_spec(tmp_path, spec_yaml)), "--api-key", "PMAK-x"]
    )
    assert result.exit_code == 0
    assert stub.created[0]["cli_path"] == "/opt/postman"


def test_lint_failure_exit_code(tmp_path, spec_yaml, monkeypatch) -> None:
    _stub(monkeypatch, failure=ProcessFailure("Failed to parse API specification"))
    result = runner.invoke(
        cli.app,
        ["lint", str(_spec(tmp_path, spec_yaml)), "--api-key", "PMAK-x", "--json"],
    )
    assert result.exit_code == 2
    payload = json.loads(result.stdout)
    assert payload["success"] is False
    assert payload["error"] == "Failed to parse API specification"


def test_lint_without_credentials_is_usage_error(tmp_path, spec_yaml, monkeypatch) -> None:
    monkeypatch.delenv("POSTMAN_API_KEY", raising=False)
    _stub(monkeypatch)
    result = runner.invoke(
        cli.app,
        ["lint", str(_spec(tmp_path, spec_yaml)), "--postmanrc", str(tmp_path / "absent")],
    )
    assert result.exit_code == 2


def test_auth_status_redacts_key(tmp_path) -> None:
    rc = tmp_path / "postmanrc"
    rc.write_text(
        json.dumps({"login": {"_profiles": [{"alias": "default", "postmanApiKey": "PMAK-secret"}]}})
    )
    result = runner.invoke(cli.app, ["auth-status", "--postmanrc", str(rc)])
    assert result.exit_code == 0
    assert "PMAK-secret" not in result.stdout
    payload = json.loads(result.stdout)
    assert payload == {"isAuthenticated": True, "apiKey": "[REDACTED]", "profile": "default"}


def test_auth_status_unauthenticated(tmp_path) -> None:
    result = runner.invoke(cli.app, ["auth-status", "--postmanrc", str(tmp_path / "absent")])
    assert result.exit_code == 1
    assert json.loads(result.stdout)["isAuthenticated"] is False


def test_cli_info_missing_binary(tmp_path) -> None:
    result = runner.invoke(cli.app, ["cli-info", "--cli-path", str(tmp_path / "no-such-postman")])
    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert payload["available"] is False
    assert "not found" in payload["error"]
