"""Read the Postman CLI credential from the local login profile store."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Mapping

from govlint.schema import AuthStatus

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_ALIAS = "default"
LOGIN_HINT = "postman login --with-api-key YOUR_KEY"


def default_postmanrc_path() -> Path:
    return Path.home() / ".postman" / "postmanrc"


def load_json_object_path(path: Path, *, encoding: str = "utf-8") -> dict[str, object]:
    if not path.exists():
        return {}
    try:
        payload = json.loads(path.read_text(encoding=encoding))
    except (OSError, UnicodeError, json.JSONDecodeError) as exc:
        logger.warning("Failed to read %s: %s", path, exc)
        return {}
    return dict(payload) if isinstance(payload, Mapping) else {}


def select_profile(config: Mapping[str, object]) -> dict[str, object] | None:
    login = config.get("login")
    if not isinstance(login, Mapping):
        return None
    profiles = login.get("_profiles")
    if not isinstance(profiles, list):
        return None
    candidates = [profile for profile in profiles if isinstance(profile, Mapping)]
    if not candidates:
        return None
    for profile in candidates:
        if profile.get("alias") == DEFAULT_PROFILE_ALIAS:
            return dict(profile)
    return dict(candidates[0])


class AuthProvider:
    def __init__(self, postmanrc_path: Path | None = None) -> None:
        self.postmanrc_path = postmanrc_path or default_postmanrc_path()

    def has_postmanrc_file(self) -> bool:
        return self.postmanrc_path.is_file()

    def get_api_key(self) -> str | None:
        return self.get_auth_status().api_key

    def get_auth_status(self) -> AuthStatus:
        profile = select_profile(load_json_object_path(self.postmanrc_path))
        api_key = profile.get("postmanApiKey") if profile else None
        if not isinstance(api_key, str) or not api_key:
            return AuthStatus(
                is_authenticated=False,
                error=f"No Postman API key found. Please run: {LOGIN_HINT}",
            )
        name = profile.get("alias") or profile.get("id") or "unknown"
        return AuthStatus(is_authenticated=True, api_key=api_key, profile=str(name))
