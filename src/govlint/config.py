from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, time
from pathlib import Path
from typing import Mapping, TypeAlias
import tomllib

from pydantic import ValidationError

from govlint.schema import SettingsPayload

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "govlint.toml"
CONFIG_SECTION = "postmanLintServer"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


@dataclass(frozen=True)
class LintSettings:
    """Process-wide validation settings.

    Instances are never mutated; a configuration change builds a new one and
    swaps it in with a single assignment.
    """

    enable: bool = True
    cli_path: str = "postman"
    lint_on_save: bool = True
    lint_on_change: bool = False
    lint_on_change_delay: int = 500
    max_file_size: int = 1_048_576

    @property
    def lint_on_change_delay_seconds(self) -> float:
        return self.lint_on_change_delay / 1000.0


DEFAULT_SETTINGS = LintSettings()


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        logger.warning("Ignoring malformed %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def lint_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    data = load_config(root=root, config_path=config_path)
    section = data.get("lint", {})
    return section if isinstance(section, dict) else {}


def merge_payload(payload: Mapping[str, object], defaults: Mapping[str, object]) -> dict[str, object]:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged


def _settings_fields(raw: object, *, origin: str) -> dict[str, object]:
    if raw is None:
        return {}
    try:
        payload = SettingsPayload.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Ignoring invalid %s settings: %s", origin, exc)
        return {}
    return payload.model_dump()


def resolve_settings(
    payload: object = None,
    *,
    root: Path | None = None,
    config_path: Path | None = None,
) -> LintSettings:
    """Overlay client settings on ``govlint.toml`` defaults on built-in defaults.

    The overlay is shallow: each non-null key replaces the value beneath it.
    """
    merged = merge_payload(
        _settings_fields(lint_defaults(root, config_path), origin=DEFAULT_CONFIG_NAME),
        asdict(DEFAULT_SETTINGS),
    )
    merged = merge_payload(_settings_fields(payload, origin=CONFIG_SECTION), merged)
    return LintSettings(**merged)
