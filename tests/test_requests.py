from __future__ import annotations

import base64
import json
from urllib.parse import parse_qsl

import pytest

from bc_cli.account import Account
from bc_cli.envelope import SignedEnvelope, verify_envelope
from bc_cli.errors import NonceFetchError, NotFoundError
from bc_cli.requests import (
    build_depository_value,
    build_market_repository_request,
    build_signed_depository_request,
    build_untrusted_depository_request,
)
from bc_cli.wallet import LocalWallet


def _stub_fetcher(nonce: int, calls: list[str] | None = None):
    def fetch(address: str) -> int:
        if calls is not None:
            calls.append(address)
        return nonce

    return fetch


def test_depository_value_encodes_record_in_field_order() -> None:
    value_b64 = build_depository_value(
        name="report",
        content_type="pdf",
        content_id="abc123",
        platform="bestchains",
        trusted_timestamp="1680000000",
    )
    raw = base64.b64decode(value_b64)

    assert raw == (
        b'{"name":"report","contentType":"pdf","contentID":"abc123",'
        b'"trustedTimestamp":"1680000000","platform":"bestchains"}'
    )


def test_depository_value_defaults_timestamp_to_now(monkeypatch) -> None:
    monkeypatch.setattr("bc_cli.requests.time.time", lambda: 1700000000.5)
    value = json.loads(
        base64.b64decode(
            build_depository_value(name="n", content_type="t", content_id="i", platform="p")
        )
    )
    assert value["trustedTimestamp"] == "1700000000"


def test_untrusted_request_has_value_only() -> None:
    request = build_untrusted_depository_request("dmFsdWU=")

    assert request.trusted is False
    assert request.path == "/basic/putUntrustValue"
    assert request.fields == (("value", "dmFsdWU="),)
    assert request.field("message") is None
    assert request.encode() == "value=dmFsdWU%3D"


def test_signed_depository_request(tmp_path) -> None:
    wallet = LocalWallet(tmp_path)
    account = Account.create()
    wallet.store(account)
    calls: list[str] = []

    request = build_signed_depository_request(
        wallet=wallet,
        address=account.address,
        value_b64="dmFsdWU=",
        nonce_fetcher=_stub_fetcher(11, calls),
    )

    assert calls == [account.address]
    assert request.trusted is True
    assert request.path == "/basic/putValue"
    assert [key for key, _ in request.fields] == ["message", "value"]
    envelope = SignedEnvelope.from_base64(request.field("message"))
    assert envelope.nonce == 11
    assert verify_envelope(envelope, "dmFsdWU=") is True
    assert parse_qsl(request.encode()) == list(request.fields)


def test_market_repository_request(tmp_path) -> None:
    wallet = LocalWallet(tmp_path)
    account = Account.create()
    wallet.store(account)

    request = build_market_repository_request(
        wallet=wallet,
        address=account.address,
        repo_url="https://example.com/charts",
        nonce_fetcher=_stub_fetcher(2),
    )

    assert request.path == "/market/repo"
    assert [key for key, _ in request.fields] == ["message", "url"]
    envelope = SignedEnvelope.from_base64(request.field("message"))
    assert verify_envelope(envelope, "https://example.com/charts") is True


def test_signed_request_for_unknown_account(tmp_path) -> None:
    wallet = LocalWallet(tmp_path)
    calls: list[str] = []

    with pytest.raises(NotFoundError):
        build_signed_depository_request(
            wallet=wallet,
            address="0x" + "5" * 40,
            value_b64="dmFsdWU=",
            nonce_fetcher=_stub_fetcher(1, calls),
        )
    assert calls == []


def test_nonce_failure_propagates(tmp_path) -> None:
    wallet = LocalWallet(tmp_path)
    account = Account.create()
    wallet.store(account)

    def failing(address: str) -> int:
        raise NonceFetchError(f"failed to fetch nonce for {address}")

    with pytest.raises(NonceFetchError):
        build_market_repository_request(
            wallet=wallet,
            address=account.address,
            repo_url="https://example.com/charts",
            nonce_fetcher=failing,
        )


def test_end_to_end_account_lifecycle(tmp_path) -> None:
    wallet = LocalWallet(tmp_path / "wallet")
    account = Account.create()
    wallet.store(account)
    assert wallet.list() == [account.address]

    request = build_signed_depository_request(
        wallet=wallet,
        address=account.address,
        value_b64="abc",
        nonce_fetcher=_stub_fetcher(7),
    )
    envelope = SignedEnvelope.from_base64(request.field("message"))
    assert envelope.nonce == 7
    assert envelope.public_key
    assert envelope.signature

    wallet.delete_many(account.address)
    assert wallet.list() == []
    with pytest.raises(NotFoundError):
        wallet.get(account.address)
