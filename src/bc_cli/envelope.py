"""Signed message envelope exchanged with the application services."""

from __future__ import annotations

import base64
import binascii
import json

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from bc_cli.crypto.ecdsa_verify import verify_ecdsa

MAX_NONCE = 2**64 - 1


class SignedEnvelope(BaseModel):
    """Wire form of a signed message.

    Field order is significant: the receiving service recovers the signer
    from ``publicKey`` and ``signature``, so independent implementations must
    serialize the same bytes for the same inputs.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    nonce: int = Field(..., ge=0, le=MAX_NONCE, strict=True)
    public_key: str = Field("", alias="publicKey")
    signature: str = ""

    def canonical_json(self) -> bytes:
        return json.dumps(
            self.model_dump(by_alias=True),
            separators=(",", ":"),
            ensure_ascii=False,
        ).encode("utf-8")

    def to_base64(self) -> str:
        return base64.b64encode(self.canonical_json()).decode("ascii")

    @classmethod
    def from_base64(cls, data: str) -> "SignedEnvelope":
        try:
            raw = base64.b64decode(data, validate=True)
            return cls.model_validate(json.loads(raw))
        except (binascii.Error, ValueError, ValidationError) as exc:
            raise ValueError(f"invalid signed envelope: {exc}") from exc


def message_to_sign(nonce: int, *payload_parts: str) -> bytes:
    """Bytes covered by the envelope signature: decimal nonce then each part."""
    return str(nonce).encode("ascii") + b"".join(part.encode("utf-8") for part in payload_parts)


def verify_envelope(envelope: SignedEnvelope, *payload_parts: str) -> bool:
    if not envelope.public_key or not envelope.signature:
        return False
    try:
        public_key_der = base64.b64decode(envelope.public_key, validate=True)
        signature = base64.b64decode(envelope.signature, validate=True)
    except (binascii.Error, ValueError):
        return False
    return verify_ecdsa(signature, message_to_sign(envelope.nonce, *payload_parts), public_key_der)
