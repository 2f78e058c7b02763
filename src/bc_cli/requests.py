"""Form request builders for depository and market-repository create calls."""

from __future__ import annotations

import base64
import json
import time
from dataclasses import dataclass
from urllib.parse import urlencode

from bc_cli.client import NonceFetcher
from bc_cli.depository import PUT_UNTRUSTED_VALUE_PATH, PUT_VALUE_PATH, ValueDepository
from bc_cli.wallet import LocalWallet

MARKET_CREATE_REPOSITORY_PATH = "/market/repo"
MARKET_CURRENT_NONCE_PATH = "/market/nonce"


@dataclass(frozen=True)
class FormRequest:
    """Form body ready for submission.

    ``trusted`` is False only for untrusted depository values, which carry no
    ``message`` field and no signature.
    """

    path: str
    fields: tuple[tuple[str, str], ...]
    trusted: bool

    def encode(self) -> str:
        return urlencode(self.fields)

    def field(self, name: str) -> str | None:
        for key, value in self.fields:
            if key == name:
                return value
        return None


def build_depository_value(
    *,
    name: str,
    content_type: str,
    content_id: str,
    platform: str,
    trusted_timestamp: str | None = None,
) -> str:
    record = ValueDepository(
        name=name,
        content_type=content_type,
        content_id=content_id,
        trusted_timestamp=trusted_timestamp or str(int(time.time())),
        platform=platform,
    )
    raw = json.dumps(record.model_dump(by_alias=True), separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def build_untrusted_depository_request(value_b64: str) -> FormRequest:
    return FormRequest(
        path=PUT_UNTRUSTED_VALUE_PATH,
        fields=(("value", value_b64),),
        trusted=False,
    )


def _signed_message(
    wallet: LocalWallet,
    address: str,
    nonce_fetcher: NonceFetcher,
    payload: str,
) -> str:
    account = wallet.get(address)
    nonce = nonce_fetcher(account.address)
    return account.sign_and_encode(nonce, payload)


def build_signed_depository_request(
    *,
    wallet: LocalWallet,
    address: str,
    value_b64: str,
    nonce_fetcher: NonceFetcher,
) -> FormRequest:
    message = _signed_message(wallet, address, nonce_fetcher, value_b64)
    return FormRequest(
        path=PUT_VALUE_PATH,
        fields=(("message", message), ("value", value_b64)),
        trusted=True,
    )


def build_market_repository_request(
    *,
    wallet: LocalWallet,
    address: str,
    repo_url: str,
    nonce_fetcher: NonceFetcher,
) -> FormRequest:
    message = _signed_message(wallet, address, nonce_fetcher, repo_url)
    return FormRequest(
        path=MARKET_CREATE_REPOSITORY_PATH,
        fields=(("message", message), ("url", repo_url)),
        trusted=True,
    )
