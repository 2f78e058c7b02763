"""bc-cli error types."""

from __future__ import annotations


class BCError(RuntimeError):
    """Base bc-cli error."""


class KeyGenerationError(BCError):
    """A fresh key pair could not be generated or encoded."""


class KeyDecodeError(BCError):
    """Encoded private key material could not be parsed."""


class InvalidKeyError(BCError):
    """Key is not on the expected curve."""


class SigningError(BCError):
    """Message signing failed."""


class StorageError(BCError):
    """Wallet storage could not be read or written."""


class AccountExistsError(StorageError):
    """Account file already exists and overwriting was not requested."""

    def __init__(self, message: str, *, address: str) -> None:
        super().__init__(message)
        self.address = address


class NotFoundError(BCError):
    """Account is not present in the wallet."""

    def __init__(self, message: str, *, address: str) -> None:
        super().__init__(message)
        self.address = address


class CorruptRecordError(BCError):
    """Stored account record is unreadable or inconsistent."""


class AddressMismatchError(CorruptRecordError):
    """Stored account address does not match its file name."""

    def __init__(self, message: str, *, expected: str, actual: str) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class ServiceUnavailableError(BCError):
    """Application service could not be reached."""


class ServiceRequestError(ServiceUnavailableError):
    """Application service answered with a non-success status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class NonceFetchError(BCError):
    """Current nonce for an account could not be obtained."""
