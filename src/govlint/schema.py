from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from govlint.models import IssueRecord, IssueSummary


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class IssueDTO(WireModel):
    severity: str
    line: int = 0
    column: int = 0
    message: str
    rule: str
    path: str = ""

    @classmethod
    def from_issue(cls, issue: IssueRecord) -> "IssueDTO":
        return cls.model_validate(issue.to_payload())


class IssueSummaryDTO(WireModel):
    total: int = 0
    error: int = 0
    warn: int = 0
    info: int = 0
    hint: int = 0

    @classmethod
    def from_summary(cls, summary: IssueSummary) -> "IssueSummaryDTO":
        return cls.model_validate(summary.to_payload())


class LintResult(WireModel):
    success: bool
    issues: List[IssueDTO] = []
    summary: IssueSummaryDTO = Field(default_factory=IssueSummaryDTO)
    score: Optional[float] = None
    error: Optional[str] = None
    timestamp: str = Field(default_factory=utc_timestamp)


class AuthStatus(WireModel):
    is_authenticated: bool
    api_key: Optional[str] = None
    profile: Optional[str] = None
    error: Optional[str] = None


class CliInfo(WireModel):
    available: bool
    version: Optional[str] = None
    path: str
    error: Optional[str] = None


class LintCommandStatus(WireModel):
    success: bool
    error: Optional[str] = None


class LintDocumentRequest(WireModel):
    uri: str


class SettingsPayload(BaseModel):
    """The client's ``postmanLintServer`` configuration section.

    Every field is optional; missing or null values keep the current default.
    """

    model_config = ConfigDict(extra="ignore")

    enable: Optional[bool] = None
    cli_path: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("cliPath", "postmanCliPath", "cli_path"),
    )
    lint_on_save: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("lintOnSave", "lint_on_save")
    )
    lint_on_change: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("lintOnChange", "lint_on_change")
    )
    lint_on_change_delay: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("lintOnChangeDelay", "lint_on_change_delay"),
    )
    max_file_size: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("maxFileSize", "max_file_size"),
    )
