"""P-256 key generation, PEM codec and address derivation.

Private keys are stored as SEC1 DER wrapped in a ``PRIVATE KEY`` PEM block,
the framing used by existing Bestchains wallets. Decoding also
accepts PKCS#8 DER and the ``EC PRIVATE KEY`` label.

Address format:
- 0x<40 lowercase hex chars>
taken from the last 20 bytes of keccak256(uncompressed_point[1:]).
"""

from __future__ import annotations

import base64
import binascii
import re
import textwrap

from Crypto.Hash import keccak
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_der_private_key,
)

from bc_cli.errors import InvalidKeyError, KeyDecodeError, KeyGenerationError

PEM_LABEL = "PRIVATE KEY"
ADDRESS_LENGTH = 20

_ACCEPTED_LABELS = frozenset({PEM_LABEL, "EC PRIVATE KEY"})
_PEM_BLOCK_RE = re.compile(
    rb"-----BEGIN ([A-Z0-9 ]+)-----\r?\n(.*?)-----END \1-----",
    re.DOTALL,
)
_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")


def generate_private_key() -> ec.EllipticCurvePrivateKey:
    try:
        return ec.generate_private_key(ec.SECP256R1())
    except Exception as exc:
        raise KeyGenerationError(f"failed to generate P-256 key: {exc}") from exc


def encode_private_key(private_key: ec.EllipticCurvePrivateKey) -> bytes:
    der = private_key.private_bytes(
        Encoding.DER,
        PrivateFormat.TraditionalOpenSSL,
        NoEncryption(),
    )
    body = "\n".join(textwrap.wrap(base64.b64encode(der).decode("ascii"), 64))
    return f"-----BEGIN {PEM_LABEL}-----\n{body}\n-----END {PEM_LABEL}-----\n".encode("ascii")


def _pem_to_der(data: bytes) -> bytes:
    match = _PEM_BLOCK_RE.search(data)
    if match is None:
        raise KeyDecodeError("no PEM block found in private key data")
    label = match.group(1).decode("ascii")
    if label not in _ACCEPTED_LABELS:
        raise KeyDecodeError(f"unexpected PEM block type: {label}")
    try:
        return base64.b64decode(b"".join(match.group(2).split()), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise KeyDecodeError("PEM body is not valid base64") from exc


def decode_private_key(data: bytes) -> ec.EllipticCurvePrivateKey:
    if not isinstance(data, (bytes, bytearray)):
        raise KeyDecodeError("private key data must be bytes")
    der = _pem_to_der(bytes(data))
    try:
        private_key = load_der_private_key(der, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise KeyDecodeError(f"failed to parse private key: {exc}") from exc

    if not isinstance(private_key, ec.EllipticCurvePrivateKey):
        raise KeyDecodeError("private key is not an elliptic-curve key")
    if not isinstance(private_key.curve, ec.SECP256R1):
        raise KeyDecodeError(f"private key uses unsupported curve: {private_key.curve.name}")
    return private_key


def address_of(public_key: ec.EllipticCurvePublicKey) -> str:
    if not isinstance(public_key, ec.EllipticCurvePublicKey) or not isinstance(
        public_key.curve, ec.SECP256R1
    ):
        raise InvalidKeyError("public key is not a P-256 key")
    point = public_key.public_bytes(Encoding.X962, PublicFormat.UncompressedPoint)
    digest = keccak.new(digest_bits=256, data=point[1:]).digest()
    return "0x" + digest[-ADDRESS_LENGTH:].hex()


def is_address(value: str) -> bool:
    return bool(_ADDRESS_RE.match(value))
