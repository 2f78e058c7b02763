"""Configuration helpers for the bc-cli command line."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from bc_cli.wallet import DEFAULT_WALLET_DIR

DEFAULT_CONFIG_PATH = Path.home() / ".bestchains" / "config.yaml"
DEPOSITORY_SERVER_ENV_VAR = "BC_DEPOSITORY_SERVER"
MARKET_SERVER_ENV_VAR = "BC_MARKET_SERVER"
ID_TOKEN_ENV_VAR = "BC_ID_TOKEN"
WALLET_DIR_ENV_VAR = "BC_WALLET_DIR"


@dataclass(frozen=True)
class CLIConfig:
    depository_server: str | None = None
    market_server: str | None = None
    id_token: str | None = None
    wallet_dir: str = str(DEFAULT_WALLET_DIR)


class ConfigError(ValueError):
    """Raised when CLI config is invalid."""


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"failed to read config {path}: {exc}") from exc

    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigError("config must be a mapping")
    return payload


def _section(source: dict[str, Any], *keys: str) -> dict[str, Any]:
    current: Any = source
    for key in keys:
        current = current.get(key, {})
        if current is None:
            return {}
        if not isinstance(current, dict):
            raise ConfigError(f"{'.'.join(keys)} must be a mapping")
    return current


def _optional_str(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{field_name} must be a string")
    return value.strip() or None


def _env_or(env_var: str, configured: str | None) -> str | None:
    env_value = os.getenv(env_var)
    if env_value and env_value.strip():
        return env_value.strip()
    return configured


def load_cli_config(path: str | Path | None = None) -> CLIConfig:
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    parsed = _load_yaml(config_path) if config_path.exists() else {}

    depository_server = _optional_str(
        _section(parsed, "saas", "depository").get("server"), "saas.depository.server"
    )
    market_server = _optional_str(
        _section(parsed, "saas", "market").get("server"), "saas.market.server"
    )
    id_token = _optional_str(_section(parsed, "auth").get("idtoken"), "auth.idtoken")
    wallet_dir = _optional_str(parsed.get("wallet"), "wallet")

    return CLIConfig(
        depository_server=_env_or(DEPOSITORY_SERVER_ENV_VAR, depository_server),
        market_server=_env_or(MARKET_SERVER_ENV_VAR, market_server),
        id_token=_env_or(ID_TOKEN_ENV_VAR, id_token),
        wallet_dir=_env_or(WALLET_DIR_ENV_VAR, wallet_dir) or str(DEFAULT_WALLET_DIR),
    )
