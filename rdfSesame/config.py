from __future__ import annotations

"""Immutable client configuration loaded from YAML and the environment."""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping
from urllib.parse import unquote, urlsplit, urlunsplit

import yaml

CONFIG_ENV = "SESAME_CONFIG"
DEFAULT_URL = "http://localhost:8080/openrdf-sesame"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_URL_LENGTH = 2500


def _coerce_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _coerce_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def split_userinfo(url: str) -> tuple[str, str | None, str | None]:
    """Return ``url`` without userinfo plus the username and password it carried."""

    parts = urlsplit(url)
    if parts.username is None and parts.password is None:
        return url.rstrip("/"), None, None
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    bare = urlunsplit((parts.scheme, host, parts.path, parts.query, parts.fragment))
    username = unquote(parts.username) if parts.username is not None else None
    password = unquote(parts.password) if parts.password is not None else None
    return bare.rstrip("/"), username, password


@dataclass(frozen=True, slots=True)
class SesameConfig:
    """Settings shared by every request a client issues.

    Instances are never mutated; use :meth:`with_headers` or
    :func:`dataclasses.replace` to derive a modified copy.
    """

    url: str = DEFAULT_URL
    headers: Mapping[str, str] = field(default_factory=dict)
    timeout: float = DEFAULT_TIMEOUT
    username: str | None = None
    password: str | None = None
    proxies: Mapping[str, str] = field(default_factory=dict)
    verify: bool = True
    max_url_length: int = DEFAULT_MAX_URL_LENGTH
    follow_redirects: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "url", self.url.rstrip("/"))
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        object.__setattr__(self, "proxies", MappingProxyType(dict(self.proxies)))

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "SesameConfig":
        """Build a config for ``url``, moving any ``user:pass@`` into credentials."""

        bare, username, password = split_userinfo(str(url))
        kwargs.setdefault("username", username)
        kwargs.setdefault("password", password)
        return cls(url=bare, **kwargs)

    @property
    def auth(self) -> tuple[str, str] | None:
        if self.username is None:
            return None
        return (self.username, self.password or "")

    def with_url(self, url: str) -> "SesameConfig":
        bare, username, password = split_userinfo(str(url))
        return replace(
            self,
            url=bare,
            username=username if username is not None else self.username,
            password=password if password is not None else self.password,
        )

    def with_headers(self, **headers: str) -> "SesameConfig":
        merged = dict(self.headers)
        merged.update(headers)
        return replace(self, headers=merged)


def config_path() -> Path | None:
    env = os.getenv(CONFIG_ENV)
    return Path(env) if env else None


def _from_mapping(raw: Mapping[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    if raw.get("url"):
        values["url"] = str(raw["url"])
    if isinstance(raw.get("headers"), Mapping):
        values["headers"] = {str(k): str(v) for k, v in raw["headers"].items()}
    if "timeout" in raw:
        values["timeout"] = _coerce_float(raw["timeout"], DEFAULT_TIMEOUT)
    auth = raw.get("auth")
    if not isinstance(auth, Mapping):
        auth = {}
    if auth.get("username") is not None:
        values["username"] = str(auth["username"])
    if auth.get("password") is not None:
        values["password"] = str(auth["password"])
    if isinstance(raw.get("proxies"), Mapping):
        values["proxies"] = {str(k): str(v) for k, v in raw["proxies"].items()}
    if "verify" in raw:
        values["verify"] = bool(raw["verify"])
    if "max_url_length" in raw:
        values["max_url_length"] = max(
            1, _coerce_int(raw["max_url_length"], DEFAULT_MAX_URL_LENGTH)
        )
    if "follow_redirects" in raw:
        values["follow_redirects"] = bool(raw["follow_redirects"])
    return values


def _from_env() -> dict[str, Any]:
    values: dict[str, Any] = {}
    if os.getenv("SESAME_URL"):
        values["url"] = os.environ["SESAME_URL"]
    if os.getenv("SESAME_USERNAME"):
        values["username"] = os.environ["SESAME_USERNAME"]
    if os.getenv("SESAME_PASSWORD"):
        values["password"] = os.environ["SESAME_PASSWORD"]
    if os.getenv("SESAME_TIMEOUT"):
        values["timeout"] = _coerce_float(os.environ["SESAME_TIMEOUT"], DEFAULT_TIMEOUT)
    if os.getenv("SESAME_MAX_URL_LENGTH"):
        values["max_url_length"] = max(
            1, _coerce_int(os.environ["SESAME_MAX_URL_LENGTH"], DEFAULT_MAX_URL_LENGTH)
        )
    return values


def load_config(path: Path | None = None) -> SesameConfig:
    """Load settings from YAML (if present) with environment overrides."""

    if path is None:
        path = config_path()
    values: dict[str, Any] = {}
    if path is not None and path.exists():
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        if isinstance(raw, Mapping):
            values.update(_from_mapping(raw))
    values.update(_from_env())
    url = values.pop("url", DEFAULT_URL)
    return SesameConfig.from_url(url, **values)


__all__ = [
    "CONFIG_ENV",
    "DEFAULT_URL",
    "DEFAULT_MAX_URL_LENGTH",
    "SesameConfig",
    "config_path",
    "load_config",
    "split_userinfo",
]
