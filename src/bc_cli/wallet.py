"""File-backed wallet: one JSON record per account, named by its address."""

from __future__ import annotations

import base64
import binascii
import json
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError

from bc_cli.account import Account
from bc_cli.crypto.keycodec import is_address
from bc_cli.errors import (
    AccountExistsError,
    AddressMismatchError,
    CorruptRecordError,
    KeyDecodeError,
    NotFoundError,
    StorageError,
)

DEFAULT_WALLET_DIR = Path.home() / ".bestchains" / "wallet"


class WalletRecord(BaseModel):
    """On-disk account record. ``privKey`` carries the PEM bytes as base64."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    address: str
    privKey: str

    @classmethod
    def from_account(cls, account: Account) -> "WalletRecord":
        return cls(
            address=account.address,
            privKey=base64.b64encode(account.private_key_pem).decode("ascii"),
        )

    def private_key_pem(self) -> bytes:
        return base64.b64decode(self.privKey, validate=True)


def _chmod_owner_only(path: Path) -> None:
    if os.name != "posix":
        return
    path.chmod(0o600)


class LocalWallet:
    """Wallet rooted at a local directory.

    There is no locking: two processes storing the same address race with
    last-writer-wins, and ``delete_many`` is not atomic across addresses.
    """

    def __init__(self, home: str | Path | None = None) -> None:
        root = Path(home) if home else DEFAULT_WALLET_DIR
        root = root.expanduser()
        if root.exists() and not root.is_dir():
            raise StorageError(f"wallet path is not a directory: {root}")
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"failed to create wallet dir {root}: {exc}") from exc
        self.home = root

    def _path(self, address: str) -> Path:
        if not address or "/" in address or os.sep in address or address in {".", ".."}:
            raise NotFoundError(f"invalid account address: {address!r}", address=address)
        return self.home / address

    def store(self, account: Account, *, overwrite: bool = True) -> Path:
        target = self._path(account.address)
        serialized = WalletRecord.from_account(account).model_dump_json()
        flags = os.O_WRONLY | os.O_CREAT | (os.O_TRUNC if overwrite else os.O_EXCL)
        try:
            fd = os.open(target, flags, 0o600)
        except FileExistsError as exc:
            raise AccountExistsError(
                f"account {account.address} already exists",
                address=account.address,
            ) from exc
        except OSError as exc:
            raise StorageError(f"failed to write account file {target}: {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                # An existing file keeps its old mode under O_TRUNC.
                _chmod_owner_only(target)
                handle.write(serialized)
        except OSError as exc:
            raise StorageError(f"failed to write account file {target}: {exc}") from exc
        return target

    def get(self, address: str) -> Account:
        path = self._path(address)
        if not path.is_file():
            raise NotFoundError(f"account {address} not found in {self.home}", address=address)

        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise StorageError(f"failed to read account file {path}: {exc}") from exc

        try:
            record = WalletRecord.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as exc:
            raise CorruptRecordError(f"invalid account file {path}: {exc}") from exc

        if record.address != address:
            raise AddressMismatchError(
                f"expected account {address} but got {record.address}",
                expected=address,
                actual=record.address,
            )

        try:
            account = Account.import_from(record.private_key_pem())
        except (binascii.Error, ValueError, KeyDecodeError) as exc:
            raise CorruptRecordError(f"failed to parse private key of account {address}: {exc}") from exc

        if account.address != record.address:
            raise CorruptRecordError(
                f"account {address} private key derives address {account.address}"
            )
        return account

    def list(self) -> list[str]:
        try:
            entries = list(os.scandir(self.home))
        except OSError as exc:
            raise StorageError(f"failed to read wallet dir {self.home}: {exc}") from exc

        addresses: list[str] = []
        for entry in entries:
            if entry.is_dir():
                continue
            if not is_address(entry.name):
                continue
            addresses.append(entry.name)
        return addresses

    def delete_many(self, *addresses: str) -> list[str]:
        """Delete accounts in order, stopping at the first failure.

        Accounts removed before the failure stay removed and later ones are
        not touched. Returns the deleted addresses when all succeed.
        """
        deleted: list[str] = []
        for address in addresses:
            path = self._path(address)
            if path.is_dir():
                raise NotFoundError(
                    f"failed to delete account {address}: not found",
                    address=address,
                )
            try:
                path.unlink()
            except FileNotFoundError as exc:
                raise NotFoundError(
                    f"failed to delete account {address}: not found",
                    address=address,
                ) from exc
            except OSError as exc:
                raise StorageError(f"failed to delete account {address}: {exc}") from exc
            deleted.append(address)
        return deleted
