"""Check that the governance CLI is installed and supports ``api lint``."""

from __future__ import annotations

import re

from govlint.process import CapturedOutput, run_captured
from govlint.schema import CliInfo, LintCommandStatus

UNKNOWN_VERSION = "unknown"
MIN_MAJOR_VERSION = 1

_VERSION_PATTERNS = (
    re.compile(r"version\s+(\d+\.\d+\.\d+)", re.IGNORECASE),
    re.compile(r"v?(\d+\.\d+\.\d+)"),
)


def extract_version(output: str) -> str:
    for pattern in _VERSION_PATTERNS:
        match = pattern.search(output)
        if match:
            return match.group(1)
    return UNKNOWN_VERSION


def is_version_compatible(version: str) -> bool:
    # An undeterminable version is given the benefit of the doubt.
    if version == UNKNOWN_VERSION:
        return True
    try:
        major = int(version.split(".")[0])
    except ValueError:
        return True
    return major >= MIN_MAJOR_VERSION


class CliValidator:
    def __init__(self, cli_path: str = "postman", *, runner=run_captured) -> None:
        self.cli_path = cli_path
        self._run = runner

    async def validate_cli(self) -> CliInfo:
        result: CapturedOutput = await self._run(self.cli_path, ["--version"])
        if not (result.success and result.stdout.strip()):
            return CliInfo(
                available=False,
                path=self.cli_path,
                error=(
                    f"Postman CLI not found at '{self.cli_path}'. Please install "
                    "Postman CLI or update the path in settings."
                ),
            )
        version = extract_version(result.stdout)
        if not is_version_compatible(version):
            return CliInfo(
                available=False,
                version=version,
                path=self.cli_path,
                error=(
                    f"Postman CLI version {version} is not compatible. "
                    "Please update to the latest version."
                ),
            )
        return CliInfo(available=True, version=version, path=self.cli_path)

    async def validate_lint_command(self) -> LintCommandStatus:
        result = await self._run(self.cli_path, ["api", "lint", "--help"])
        if result.success:
            return LintCommandStatus(success=True)
        return LintCommandStatus(
            success=False,
            error=(
                'Postman CLI does not support the "api lint" command. '
                "Please update to the latest version."
            ),
        )
