from __future__ import annotations

import pytest

from bc_cli.cli.config import ConfigError, load_cli_config
from bc_cli.wallet import DEFAULT_WALLET_DIR


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch) -> None:
    for name in ("BC_DEPOSITORY_SERVER", "BC_MARKET_SERVER", "BC_ID_TOKEN", "BC_WALLET_DIR"):
        monkeypatch.delenv(name, raising=False)


def test_missing_config_uses_defaults(tmp_path) -> None:
    config = load_cli_config(tmp_path / "missing.yaml")

    assert config.depository_server is None
    assert config.market_server is None
    assert config.id_token is None
    assert config.wallet_dir == str(DEFAULT_WALLET_DIR)


def test_nested_sections_are_read(tmp_path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "saas:\n"
        "  depository:\n"
        "    server: http://depository.local\n"
        "  market:\n"
        "    server: http://market.local\n"
        "auth:\n"
        "  idtoken: token-1\n"
        "wallet: /tmp/wallet\n",
        encoding="utf-8",
    )

    config = load_cli_config(config_path)

    assert config.depository_server == "http://depository.local"
    assert config.market_server == "http://market.local"
    assert config.id_token == "token-1"
    assert config.wallet_dir == "/tmp/wallet"


def test_env_overrides_config_file(tmp_path, monkeypatch) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("saas:\n  market:\n    server: http://market.local\n", encoding="utf-8")
    monkeypatch.setenv("BC_MARKET_SERVER", "https://env.market.example")
    monkeypatch.setenv("BC_WALLET_DIR", str(tmp_path / "wallet"))

    config = load_cli_config(config_path)

    assert config.market_server == "https://env.market.example"
    assert config.wallet_dir == str(tmp_path / "wallet")


def test_empty_file_is_allowed(tmp_path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("", encoding="utf-8")
    assert load_cli_config(config_path).depository_server is None


@pytest.mark.parametrize(
    "content",
    [
        "saas: [\n",
        "- just\n- a list\n",
        "saas: 3\n",
        "saas:\n  depository:\n    server: 8080\n",
    ],
)
def test_invalid_config_raises(tmp_path, content: str) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_cli_config(config_path)
