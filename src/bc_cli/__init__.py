"""bc-cli public surface."""

from bc_cli.account import Account
from bc_cli.client import Credentials, NonceFetcher, ServiceClient
from bc_cli.crypto.keycodec import (
    address_of,
    decode_private_key,
    encode_private_key,
    generate_private_key,
)
from bc_cli.envelope import SignedEnvelope, verify_envelope
from bc_cli.errors import (
    AccountExistsError,
    AddressMismatchError,
    BCError,
    CorruptRecordError,
    InvalidKeyError,
    KeyDecodeError,
    KeyGenerationError,
    NonceFetchError,
    NotFoundError,
    ServiceRequestError,
    ServiceUnavailableError,
    SigningError,
    StorageError,
)
from bc_cli.requests import (
    FormRequest,
    build_depository_value,
    build_market_repository_request,
    build_signed_depository_request,
    build_untrusted_depository_request,
)
from bc_cli.wallet import LocalWallet

__all__ = [
    "Account",
    "LocalWallet",
    "Credentials",
    "NonceFetcher",
    "ServiceClient",
    "SignedEnvelope",
    "verify_envelope",
    "FormRequest",
    "build_depository_value",
    "build_untrusted_depository_request",
    "build_signed_depository_request",
    "build_market_repository_request",
    "generate_private_key",
    "encode_private_key",
    "decode_private_key",
    "address_of",
    "BCError",
    "KeyGenerationError",
    "KeyDecodeError",
    "InvalidKeyError",
    "SigningError",
    "StorageError",
    "AccountExistsError",
    "NotFoundError",
    "CorruptRecordError",
    "AddressMismatchError",
    "NonceFetchError",
    "ServiceUnavailableError",
    "ServiceRequestError",
]
