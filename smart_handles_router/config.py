"""Shared configuration loader for the router agent.

A single YAML file carries two sections: ``rpc`` describes how to reach the
ledger collaborator's JSON-RPC endpoint and ``router`` describes the monitoring
session.  Environment variables override the ``rpc`` section; explicit
overrides (usually CLI flags) override both.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml

from .model import (
    DEFAULT_NETWORK,
    DEFAULT_POLLING_INTERVAL_MS,
    SUPPORTED_NETWORKS,
    ActionIntent,
    ProcessingMode,
    SessionConfig,
)


class ConfigurationError(RuntimeError):
    """Raised when configuration is invalid."""


DEFAULT_CONFIG_NAME = "router.config.yaml"
DEFAULT_CONFIG_PATH = Path.cwd() / DEFAULT_CONFIG_NAME
DEFAULT_RPC_PORT = 8090


@dataclass
class RPCConfig:
    """Connection details for the ledger collaborator's JSON-RPC endpoint."""

    user: str
    password: str
    host: str = "127.0.0.1"
    port: int = DEFAULT_RPC_PORT
    use_https: bool = False
    wallet: str | None = None

    @property
    def base_url(self) -> str:
        scheme = "https" if self.use_https else "http"
        return f"{scheme}://{self.host}:{self.port}"


def _resolve_path(config_path: str | Path | None) -> tuple[Path, bool]:
    if config_path is not None:
        return Path(config_path).expanduser(), True
    return DEFAULT_CONFIG_PATH, False


def _load_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigurationError(f"Config file not found: {path}")
        return {}

    try:
        loaded = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - delegated to PyYAML
        raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Expected {path} to contain a YAML object")
    return loaded


def _section(file_config: Mapping[str, Any], name: str, path: Path) -> dict[str, Any]:
    section = file_config.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Expected '{name}' to be a mapping in {path}")
    return section


def _coerce_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "y", "on"}:
            return True
        if normalized in {"0", "false", "no", "n", "off"}:
            return False
    return None


def _coerce_port(raw: Any, *, source: str) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid port in {source}: {raw}") from exc


def _first_value(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None:
            return value
    return default


def _parse_endpoint(raw: str | None) -> tuple[str | None, int | None, bool | None]:
    if not raw:
        return None, None, None
    parsed = urlparse(raw)
    if not parsed.scheme and not parsed.hostname:
        raise ConfigurationError(f"Invalid RPC endpoint URL: {raw}")
    host = parsed.hostname or None
    port = parsed.port
    use_https = parsed.scheme.lower() == "https" if parsed.scheme else None
    return host, port, use_https


def load_rpc_config(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> RPCConfig:
    """Load ledger RPC configuration from environment variables and optional YAML."""

    env_map = os.environ if env is None else env
    path, explicit_path = _resolve_path(config_path)
    rpc_section = _section(_load_config_file(path, required=explicit_path), "rpc", path)
    override_map = dict(overrides or {})

    env_port = _coerce_port(env_map.get("ROUTER_RPC_PORT"), source="environment")
    env_use_https = _coerce_bool(env_map.get("ROUTER_RPC_USE_HTTPS"))
    env_endpoint = env_map.get("ROUTER_RPC_ENDPOINT") or env_map.get("ROUTER_RPC_URL")

    endpoint_host, endpoint_port, endpoint_use_https = _parse_endpoint(
        _first_value(override_map.get("endpoint"), env_endpoint, rpc_section.get("endpoint"))
    )

    resolved_user = _first_value(
        override_map.get("user"), env_map.get("ROUTER_RPC_USER"), rpc_section.get("user")
    )
    resolved_password = _first_value(
        override_map.get("password"),
        env_map.get("ROUTER_RPC_PASSWORD"),
        rpc_section.get("password"),
    )
    if not resolved_user or not resolved_password:
        raise ConfigurationError(
            "RPC credentials must be provided via ROUTER_RPC_* environment variables or a config file"
        )

    resolved_host = _first_value(
        override_map.get("host"),
        endpoint_host,
        env_map.get("ROUTER_RPC_HOST"),
        rpc_section.get("host"),
        "127.0.0.1",
    )
    resolved_port = _first_value(
        _coerce_port(override_map.get("port"), source="overrides"),
        endpoint_port,
        env_port,
        _coerce_port(rpc_section.get("port"), source=f"{path} rpc.port"),
        DEFAULT_RPC_PORT,
    )
    resolved_use_https = _first_value(
        _coerce_bool(override_map.get("use_https")),
        endpoint_use_https,
        env_use_https,
        _coerce_bool(rpc_section.get("use_https")),
        False,
    )
    resolved_wallet = _first_value(
        override_map.get("wallet"), env_map.get("ROUTER_RPC_WALLET"), rpc_section.get("wallet")
    )

    return RPCConfig(
        user=str(resolved_user),
        password=str(resolved_password),
        host=resolved_host,
        port=resolved_port,
        use_https=bool(resolved_use_https),
        wallet=resolved_wallet,
    )


def _optional_mapping(raw: Any, key: str) -> Mapping[str, Any] | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Expected router.{key} to be a mapping")
    return raw


def _parse_enum(enum_cls: Any, raw: Any, key: str) -> Any:
    if isinstance(raw, enum_cls):
        return raw
    for member in enum_cls:
        if isinstance(raw, str) and raw.strip().lower() == member.value.lower():
            return member
    choices = ", ".join(member.value for member in enum_cls)
    raise ConfigurationError(f"Invalid router.{key}: {raw!r} (expected one of {choices})")


def _parse_interval(raw: Any) -> int:
    try:
        interval = int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid router.polling_interval: {raw!r}") from exc
    if interval <= 0:
        raise ConfigurationError("router.polling_interval must be a positive number of milliseconds")
    return interval


def load_session_config(
    *,
    config_path: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> SessionConfig:
    """Load the monitoring session configuration from the ``router`` section.

    ``overrides`` take precedence over file values; ``None`` values are ignored
    so CLI flags that were not given leave the file untouched.
    """

    path, _ = _resolve_path(config_path)
    router_section = _section(_load_config_file(path, required=True), "router", path)
    merged = dict(router_section)
    merged.update({key: value for key, value in (overrides or {}).items() if value is not None})

    for key in ("script_cbor", "script_target", "route_destination"):
        if not merged.get(key):
            raise ConfigurationError(f"Missing required setting router.{key} in {path}")

    script_cbor = str(merged["script_cbor"]).strip().lower()
    try:
        bytes.fromhex(script_cbor)
    except ValueError as exc:
        raise ConfigurationError("router.script_cbor must be a hex string") from exc

    network = str(merged.get("network") or DEFAULT_NETWORK)
    if network not in SUPPORTED_NETWORKS:
        raise ConfigurationError(
            f"Invalid router.network: {network} (expected one of {', '.join(SUPPORTED_NETWORKS)})"
        )

    reclaim = _coerce_bool(_first_value(merged.get("reclaim"), False))
    if reclaim is None:
        raise ConfigurationError(f"Invalid router.reclaim: {merged.get('reclaim')!r}")
    quiet = _coerce_bool(_first_value(merged.get("quiet"), False))
    if quiet is None:
        raise ConfigurationError(f"Invalid router.quiet: {merged.get('quiet')!r}")

    return SessionConfig(
        label=str(merged.get("label") or ""),
        network=network,
        polling_interval_ms=_parse_interval(
            merged.get("polling_interval", DEFAULT_POLLING_INTERVAL_MS)
        ),
        script_cbor=script_cbor,
        script_target=_parse_enum(ProcessingMode, merged["script_target"], "script_target"),
        route_destination=str(merged["route_destination"]),
        intent=ActionIntent.RECLAIM if reclaim else ActionIntent.ROUTE,
        advanced_reclaim_config=_optional_mapping(
            merged.get("advanced_reclaim_config"), "advanced_reclaim_config"
        ),
        simple_route_config=_optional_mapping(
            merged.get("simple_route_config"), "simple_route_config"
        ),
        advanced_route_config=_optional_mapping(
            merged.get("advanced_route_config"), "advanced_route_config"
        ),
        advanced_route_request=_optional_mapping(
            merged.get("advanced_route_request"), "advanced_route_request"
        ),
        quiet=quiet,
        extra=_optional_mapping(merged.get("extra"), "extra") or {},
    )
