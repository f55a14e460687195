"""Decide when to lint each open document and publish the results.

Per document the flow is ``Idle -> Gated-Out | Queued -> Running ->
Published -> Idle``. A save runs immediately, an edit arms (or re-arms) a
debounce timer, and closing a document clears its diagnostics.

Two runs for the same document may overlap because a tool run in flight is
never aborted. Every run takes a fresh sequence token when it starts, and a
run whose token has been superseded by the time it finishes drops its result,
so the published diagnostics always belong to the most recently started run.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import os
import tempfile
from contextlib import contextmanager
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Awaitable, Callable, Iterable, Iterator, Protocol
from urllib.parse import unquote, urlparse

from lsprotocol.types import Diagnostic

from govlint.auth import LOGIN_HINT, AuthProvider
from govlint.cli_check import CliValidator
from govlint.config import DEFAULT_SETTINGS, LintSettings
from govlint.diagnostics import failure_diagnostic, to_diagnostic
from govlint.process import ProcessFailure
from govlint.schema import AuthStatus, CliInfo, IssueDTO, IssueSummaryDTO, LintResult
from govlint.scorer import GovernanceScorer, ScoreResult

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".yaml", ".yml", ".json")
API_SPEC_MARKERS = ("openapi:", '"openapi"', "swagger:", '"swagger"')
DEFAULT_ARTIFACT_SUFFIX = ".yaml"
SCORER_NOT_INITIALIZED = "Governance scorer not initialized"

Publish = Callable[[str, list[Diagnostic]], None]
TextLookup = Callable[[str], str | None]


class Scorer(Protocol):
    def score_spec_file(self, spec_path: Path) -> Awaitable[ScoreResult]: ...


ScorerFactory = Callable[[str, LintSettings], Scorer]
CliCheckerFactory = Callable[[str], CliValidator]


class Gate(Enum):
    RUN = "run"
    SKIP = "skip"
    CLEAR = "clear"


def _uri_path(uri: str) -> PurePosixPath:
    parsed = urlparse(uri)
    return PurePosixPath(unquote(parsed.path) if parsed.scheme else uri)


def is_supported_file(uri: str) -> bool:
    return _uri_path(uri).name.lower().endswith(SUPPORTED_EXTENSIONS)


def is_api_spec_content(text: str) -> bool:
    return any(marker in text for marker in API_SPEC_MARKERS)


def artifact_suffix(uri: str) -> str:
    suffix = _uri_path(uri).suffix.lower()
    return suffix if suffix in SUPPORTED_EXTENSIONS else DEFAULT_ARTIFACT_SUFFIX


def evaluate_gates(
    uri: str, text: str, settings: LintSettings, *, scorer_ready: bool
) -> Gate:
    """Pre-run checks. ``CLEAR`` means skip and wipe stale diagnostics."""
    if not settings.enable or not scorer_ready:
        return Gate.SKIP
    if len(text) > settings.max_file_size:
        logger.warning(
            "File %s exceeds maximum size limit (%d bytes)", uri, settings.max_file_size
        )
        return Gate.CLEAR
    if not is_supported_file(uri):
        return Gate.SKIP
    if not is_api_spec_content(text):
        return Gate.CLEAR
    return Gate.RUN


@contextmanager
def spec_artifact(text: str, suffix: str = DEFAULT_ARTIFACT_SUFFIX) -> Iterator[Path]:
    """Write ``text`` to a uniquely named temporary file for the tool to read."""
    fd, raw_path = tempfile.mkstemp(prefix="postman-lint-", suffix=suffix)
    path = Path(raw_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        yield path
    finally:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Failed to clean up temp file %s: %s", path, exc)


def _default_scorer_factory(api_key: str, settings: LintSettings) -> Scorer:
    return GovernanceScorer(api_key, cli_path=settings.cli_path)


class ValidationOrchestrator:
    def __init__(
        self,
        publish: Publish,
        get_text: TextLookup,
        *,
        settings: LintSettings = DEFAULT_SETTINGS,
        auth_provider: AuthProvider | None = None,
        cli_checker_factory: CliCheckerFactory = CliValidator,
        scorer_factory: ScorerFactory = _default_scorer_factory,
        open_uris: Callable[[], Iterable[str]] = tuple,
    ) -> None:
        self._publish = publish
        self._get_text = get_text
        self._auth = auth_provider or AuthProvider()
        self._cli_checker_factory = cli_checker_factory
        self._scorer_factory = scorer_factory
        self._open_uris = open_uris
        self.settings = settings
        self.cli_checker = cli_checker_factory(settings.cli_path)
        self.scorer: Scorer | None = None
        self._pending: dict[str, asyncio.TimerHandle] = {}
        self._tokens = itertools.count(1)
        self._current_token: dict[str, int] = {}
        self._tasks: set[asyncio.Task] = set()

    async def initialize(self) -> str | None:
        """Check the CLI and credential; return a warning for the host if unusable.

        The scorer stays unset (and linting disabled) until the next
        successful initialization.
        """
        self.scorer = None
        cli_info = await self.cli_checker.validate_cli()
        if not cli_info.available:
            message = cli_info.error or (
                f"Postman CLI not found at '{self.settings.cli_path}'. Please "
                "install Postman CLI or update the path in settings."
            )
            logger.warning(message)
            return message
        auth = self._auth.get_auth_status()
        if not auth.is_authenticated or not auth.api_key:
            message = f"Postman CLI authentication required. Please run: {LOGIN_HINT}"
            logger.warning(message)
            return message
        self.scorer = self._scorer_factory(auth.api_key, self.settings)
        logger.info("Governance linting ready (cli %s)", cli_info.version)
        return None

    async def update_settings(self, settings: LintSettings) -> str | None:
        self.settings = settings
        self.cli_checker = self._cli_checker_factory(settings.cli_path)
        warning = await self.initialize()
        for uri in list(self._open_uris()):
            text = self._get_text(uri)
            if text is not None:
                self._spawn(self.validate(uri, text))
        return warning

    async def on_save(self, uri: str) -> None:
        if not self.settings.lint_on_save:
            return
        text = self._get_text(uri)
        if text is not None:
            await self.validate(uri, text)

    def on_change(self, uri: str) -> None:
        settings = self.settings
        if not settings.lint_on_change:
            return
        self._cancel_pending(uri)
        loop = asyncio.get_running_loop()
        self._pending[uri] = loop.call_later(
            settings.lint_on_change_delay_seconds, self._fire, uri
        )

    def on_close(self, uri: str) -> None:
        self._cancel_pending(uri)
        # Any run still in flight for this document must not republish.
        self._current_token.pop(uri, None)
        self._publish(uri, [])

    def has_pending(self, uri: str) -> bool:
        return uri in self._pending

    def _cancel_pending(self, uri: str) -> None:
        handle = self._pending.pop(uri, None)
        if handle is not None:
            handle.cancel()

    def _fire(self, uri: str) -> None:
        self._pending.pop(uri, None)
        text = self._get_text(uri)
        if text is None:
            return
        self._spawn(self.validate(uri, text))

    def _spawn(self, coro: Awaitable[None]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _begin(self, uri: str) -> int:
        token = next(self._tokens)
        self._current_token[uri] = token
        return token

    def _is_current(self, uri: str, token: int) -> bool:
        return self._current_token.get(uri) == token

    async def validate(self, uri: str, text: str) -> None:
        settings = self.settings
        scorer = self.scorer
        gate = evaluate_gates(uri, text, settings, scorer_ready=scorer is not None)
        if gate is Gate.SKIP:
            return
        token = self._begin(uri)
        if gate is Gate.CLEAR:
            self._publish(uri, [])
            return
        try:
            result = await self._score(scorer, text, artifact_suffix(uri))
            diagnostics = [to_diagnostic(issue) for issue in result.issues]
        except ProcessFailure as exc:
            logger.error("Error validating %s: %s", uri, exc)
            diagnostics = [failure_diagnostic(str(exc))]
        except Exception as exc:
            logger.exception("Unexpected error validating %s", uri)
            diagnostics = [failure_diagnostic(str(exc))]
        if not self._is_current(uri, token):
            logger.debug("Discarding superseded lint result for %s", uri)
            return
        self._publish(uri, diagnostics)

    async def _score(self, scorer: Scorer, text: str, suffix: str) -> ScoreResult:
        with spec_artifact(text, suffix) as path:
            return await scorer.score_spec_file(path)

    async def lint_content(
        self, text: str, suffix: str = DEFAULT_ARTIFACT_SUFFIX
    ) -> LintResult:
        scorer = self.scorer
        if scorer is None:
            return LintResult(success=False, error=SCORER_NOT_INITIALIZED)
        try:
            result = await self._score(scorer, text, suffix)
        except ProcessFailure as exc:
            return LintResult(success=False, error=str(exc))
        except Exception as exc:
            logger.exception("Unexpected error linting content")
            return LintResult(success=False, error=str(exc))
        return LintResult(
            success=True,
            issues=[IssueDTO.from_issue(issue) for issue in result.issues],
            summary=IssueSummaryDTO.from_summary(result.summary),
            score=result.score,
        )

    async def lint_document(self, uri: str) -> LintResult | None:
        text = self._get_text(uri)
        if text is None:
            return None
        return await self.lint_content(text, artifact_suffix(uri))

    def check_auth_status(self) -> AuthStatus:
        return self._auth.get_auth_status()

    async def get_cli_info(self) -> CliInfo:
        return await self.cli_checker.validate_cli()

    async def join(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def shutdown(self) -> None:
        for uri in list(self._pending):
            self._cancel_pending(uri)
