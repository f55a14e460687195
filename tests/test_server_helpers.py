from __future__ import annotations

import asyncio
from types import SimpleNamespace

from govlint import server
from govlint.config import CONFIG_SECTION
from govlint.schema import AuthStatus, LintResult


def test_request_methods_are_namespaced() -> None:
    assert server.LINT_DOCUMENT_REQUEST == "postmanLintServer/lintDocument"
    assert server.CHECK_AUTH_STATUS_REQUEST == "postmanLintServer/checkAuthStatus"
    assert server.GET_CLI_INFO_REQUEST == "postmanLintServer/getCliInfo"


def test_param_value_accepts_mapping_list_and_object() -> None:
    assert server._param_value({"uri": "file:///a.yaml"}, "uri") == "file:///a.yaml"
    assert server._param_value([{"uri": "file:///b.yaml"}], "uri") == "file:///b.yaml"
    assert server._param_value(SimpleNamespace(uri="file:///c.yaml"), "uri") == "file:///c.yaml"
    assert server._param_value(None, "uri") is None
    assert server._param_value([], "uri") is None


def test_settings_section_unwraps_namespace() -> None:
    wrapped = {CONFIG_SECTION: {"enable": False}}
    assert server._settings_section(wrapped) == {"enable": False}
    assert server._settings_section({"lintOnSave": True}) == {"lintOnSave": True}
    nested = SimpleNamespace(**{CONFIG_SECTION: SimpleNamespace(cliPath="/bin/postman")})
    assert server._settings_section(nested) == {"cliPath": "/bin/postman"}
    assert server._settings_section(None) is None


def test_configuration_pull_detection() -> None:
    pull = SimpleNamespace(
        client_capabilities=SimpleNamespace(workspace=SimpleNamespace(configuration=True))
    )
    push = SimpleNamespace(client_capabilities=SimpleNamespace(workspace=None))
    assert server._supports_configuration_pull(pull)
    assert not server._supports_configuration_pull(push)


def test_pushed_settings_used_without_pull_support() -> None:
    ls = SimpleNamespace(client_capabilities=None)
    pushed = {CONFIG_SECTION: {"lintOnChange": True}}
    payload = asyncio.run(server._fetch_settings_payload(ls, pushed))
    assert payload == {"lintOnChange": True}


def test_start_uses_injected_callable() -> None:
    calls: list[str] = []
    server.start(lambda: calls.append("started"))
    assert calls == ["started"]


class _FakeOrchestrator:
    def __init__(self) -> None:
        self.requested: list[str] = []

    async def lint_document(self, uri: str) -> LintResult | None:
        self.requested.append(uri)
        if uri.endswith("missing.yaml"):
            return None
        return LintResult(success=True, score=100.0)

    def check_auth_status(self) -> AuthStatus:
        return AuthStatus(is_authenticated=False, error="no key")


def test_lint_document_request_handler() -> None:
    orchestrator = _FakeOrchestrator()
    ls = SimpleNamespace(orchestrator=orchestrator)
    wire = asyncio.run(server.lint_document(ls, {"uri": "file:///api.yaml"}))
    assert wire is not None
    assert wire["success"] is True
    assert wire["score"] == 100.0
    assert wire["summary"]["total"] == 0
    assert asyncio.run(server.lint_document(ls, {"uri": "file:///missing.yaml"})) is None
    assert asyncio.run(server.lint_document(ls, {})) is None
    assert orchestrator.requested == ["file:///api.yaml", "file:///missing.yaml"]


def test_check_auth_status_handler_uses_camel_case() -> None:
    ls = SimpleNamespace(orchestrator=_FakeOrchestrator())
    assert server.check_auth_status(ls) == {"isAuthenticated": False, "error": "no key"}
