from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Mapping

from pygls.lsp.server import LanguageServer
from pydantic import ValidationError
from lsprotocol.types import (
    INITIALIZED,
    SHUTDOWN,
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_SAVE,
    WORKSPACE_DID_CHANGE_CONFIGURATION,
    ConfigurationItem,
    ConfigurationParams,
    Diagnostic,
    DidChangeConfigurationParams,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidSaveTextDocumentParams,
    InitializedParams,
    MessageType,
    PublishDiagnosticsParams,
    ShowMessageParams,
)

from govlint import __version__
from govlint.config import CONFIG_SECTION, resolve_settings
from govlint.orchestrator import ValidationOrchestrator
from govlint.schema import LintDocumentRequest

logger = logging.getLogger(__name__)

LINT_DOCUMENT_REQUEST = f"{CONFIG_SECTION}/lintDocument"
CHECK_AUTH_STATUS_REQUEST = f"{CONFIG_SECTION}/checkAuthStatus"
GET_CLI_INFO_REQUEST = f"{CONFIG_SECTION}/getCliInfo"


class GovernanceLanguageServer(LanguageServer):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.orchestrator = ValidationOrchestrator(
            publish=self.publish,
            get_text=self.document_text,
            open_uris=lambda: list(self.workspace.text_documents),
        )

    @property
    def root(self) -> Path | None:
        root_path = self.workspace.root_path
        return Path(root_path) if root_path else None

    def document_text(self, uri: str) -> str | None:
        if uri not in self.workspace.text_documents:
            return None
        return self.workspace.get_text_document(uri).source

    def publish(self, uri: str, diagnostics: list[Diagnostic]) -> None:
        self.text_document_publish_diagnostics(
            PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
        )

    def warn(self, message: str) -> None:
        self.window_show_message(
            ShowMessageParams(type=MessageType.Warning, message=message)
        )


server = GovernanceLanguageServer("govlint", __version__)


def _param_value(params: object, key: str) -> object:
    if isinstance(params, Mapping):
        return params.get(key)
    if isinstance(params, (list, tuple)) and params:
        return _param_value(params[0], key)
    return getattr(params, key, None)


def _as_plain(value: object) -> object:
    if isinstance(value, Mapping):
        return {str(key): _as_plain(item) for key, item in value.items()}
    if hasattr(value, "_asdict"):
        return _as_plain(value._asdict())
    if hasattr(value, "__dict__") and not isinstance(value, type):
        return _as_plain(vars(value))
    return value


def _settings_section(raw: object) -> object:
    """Accept either the bare section or a ``{postmanLintServer: {...}}`` wrapper."""
    plain = _as_plain(raw)
    if isinstance(plain, Mapping) and isinstance(plain.get(CONFIG_SECTION), Mapping):
        return plain[CONFIG_SECTION]
    return plain


def _supports_configuration_pull(ls: LanguageServer) -> bool:
    capabilities = ls.client_capabilities
    workspace = capabilities.workspace if capabilities else None
    return bool(workspace and workspace.configuration)


async def _fetch_settings_payload(ls: LanguageServer, pushed: object = None) -> object:
    if _supports_configuration_pull(ls):
        items = await ls.workspace_configuration_async(
            ConfigurationParams(items=[ConfigurationItem(section=CONFIG_SECTION)])
        )
        return _settings_section(items[0] if items else None)
    return _settings_section(pushed)


async def _reload_settings(ls: GovernanceLanguageServer, pushed: object = None) -> None:
    payload = await _fetch_settings_payload(ls, pushed)
    settings = resolve_settings(payload, root=ls.root)
    warning = await ls.orchestrator.update_settings(settings)
    if warning:
        ls.warn(warning)


@server.feature(INITIALIZED)
async def initialized(ls: GovernanceLanguageServer, params: InitializedParams) -> None:
    await _reload_settings(ls)


@server.feature(WORKSPACE_DID_CHANGE_CONFIGURATION)
async def did_change_configuration(
    ls: GovernanceLanguageServer, params: DidChangeConfigurationParams
) -> None:
    await _reload_settings(ls, params.settings)


@server.feature(TEXT_DOCUMENT_DID_SAVE)
async def did_save(ls: GovernanceLanguageServer, params: DidSaveTextDocumentParams) -> None:
    await ls.orchestrator.on_save(params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: GovernanceLanguageServer, params: DidChangeTextDocumentParams) -> None:
    ls.orchestrator.on_change(params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CLOSE)
def did_close(ls: GovernanceLanguageServer, params: DidCloseTextDocumentParams) -> None:
    ls.orchestrator.on_close(params.text_document.uri)


@server.feature(SHUTDOWN)
def shutdown(ls: GovernanceLanguageServer, params: object = None) -> None:
    ls.orchestrator.shutdown()


@server.feature(LINT_DOCUMENT_REQUEST)
async def lint_document(ls: GovernanceLanguageServer, params: object) -> dict | None:
    try:
        request = LintDocumentRequest.model_validate({"uri": _param_value(params, "uri")})
    except ValidationError as exc:
        logger.warning("Invalid %s request: %s", LINT_DOCUMENT_REQUEST, exc)
        return None
    result = await ls.orchestrator.lint_document(request.uri)
    return result.to_wire() if result is not None else None


@server.feature(CHECK_AUTH_STATUS_REQUEST)
def check_auth_status(ls: GovernanceLanguageServer, params: object = None) -> dict:
    return ls.orchestrator.check_auth_status().to_wire()


@server.feature(GET_CLI_INFO_REQUEST)
async def get_cli_info(ls: GovernanceLanguageServer, params: object = None) -> dict:
    return (await ls.orchestrator.get_cli_info()).to_wire()


def start(start_fn: Callable[[], None] | None = None) -> None:
    """Start the language server over stdio."""
    (start_fn or server.start_io)()


if __name__ == "__main__":  # pragma: no cover
    start()  # pragma: no cover
