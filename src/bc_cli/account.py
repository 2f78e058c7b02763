"""Local accounts: an address paired with its PEM-encoded P-256 private key."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from pathlib import Path

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from bc_cli.crypto.keycodec import (
    address_of,
    decode_private_key,
    encode_private_key,
    generate_private_key,
)
from bc_cli.envelope import MAX_NONCE, SignedEnvelope, message_to_sign
from bc_cli.errors import KeyDecodeError, KeyGenerationError, SigningError


@dataclass(frozen=True)
class Account:
    address: str
    private_key_pem: bytes

    @classmethod
    def create(cls) -> "Account":
        private_key = generate_private_key()
        try:
            address = address_of(private_key.public_key())
            encoded = encode_private_key(private_key)
        except Exception as exc:
            raise KeyGenerationError(f"failed to encode generated key: {exc}") from exc
        return cls(address=address, private_key_pem=encoded)

    @classmethod
    def import_from(cls, private_key_pem: bytes) -> "Account":
        """Build an account from existing key material.

        The address is always recomputed from the key; the input bytes are kept
        verbatim so a re-stored account is byte-identical to what was imported.
        """
        private_key = decode_private_key(private_key_pem)
        return cls(address=address_of(private_key.public_key()), private_key_pem=bytes(private_key_pem))

    @classmethod
    def import_file(cls, path: str | Path) -> "Account":
        try:
            data = Path(path).read_bytes()
        except OSError as exc:
            raise KeyDecodeError(f"failed to read private key file: {path}") from exc
        return cls.import_from(data)

    @property
    def signer(self) -> ec.EllipticCurvePrivateKey:
        return decode_private_key(self.private_key_pem)

    @property
    def public_key_der(self) -> bytes:
        return self.signer.public_key().public_bytes(
            Encoding.DER, PublicFormat.SubjectPublicKeyInfo
        )

    def sign_and_encode(self, nonce: int, *payload_parts: str) -> str:
        """Sign ``nonce`` followed by ``payload_parts`` and return the base64 envelope."""
        if isinstance(nonce, bool) or not isinstance(nonce, int) or not 0 <= nonce <= MAX_NONCE:
            raise SigningError(f"nonce must be an unsigned 64-bit integer, got {nonce!r}")

        signer = self.signer
        try:
            message = message_to_sign(nonce, *payload_parts)
            signature = signer.sign(message, ec.ECDSA(hashes.SHA256()))
            public_key_der = signer.public_key().public_bytes(
                Encoding.DER, PublicFormat.SubjectPublicKeyInfo
            )
        except Exception as exc:
            raise SigningError(f"failed to sign message: {exc}") from exc

        envelope = SignedEnvelope(
            nonce=nonce,
            public_key=base64.b64encode(public_key_der).decode("ascii"),
            signature=base64.b64encode(signature).decode("ascii"),
        )
        return envelope.to_base64()
