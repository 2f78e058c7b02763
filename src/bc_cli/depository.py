"""Depository records, queries and certificate downloads."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from bc_cli.client import ServiceClient
from bc_cli.errors import BCError, ServiceRequestError

PUT_VALUE_PATH = "/basic/putValue"
PUT_UNTRUSTED_VALUE_PATH = "/basic/putUntrustValue"
CURRENT_NONCE_PATH = "/basic/currentNonce"
LIST_PATH = "/basic/depositories"
GET_PATH = "/basic/depositories/{kid}"
CERTIFICATE_PATH = "/basic/depositories/certificate/{kid}"

DEFAULT_HEADERS = ("index", "kid", "platform", "operator", "owner", "blockNumber", "time")
DOWNLOAD_CONCURRENCY = 3


class ValueDepository(BaseModel):
    """Content record notarized by a depository create call."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str
    content_type: str = Field(alias="contentType")
    content_id: str = Field(alias="contentID")
    trusted_timestamp: str = Field(alias="trustedTimestamp")
    platform: str


class Depository(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    index: str = ""
    kid: str = ""
    platform: str = ""
    operator: str = ""
    owner: str = ""
    block_number: int = Field(0, alias="blockNumber")
    name: str = ""
    content_name: str = Field("", alias="contentName")
    content_id: str = Field("", alias="contentID")
    content_type: str = Field("", alias="contentType")
    trusted_timestamp: str = Field("", alias="trustedTimestamp")

    def _formatted_time(self) -> str:
        try:
            seconds = int(self.trusted_timestamp)
        except ValueError:
            return self.trusted_timestamp
        return datetime.fromtimestamp(seconds, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")

    def get_by_header(self, header: str) -> str:
        if header in {"index", "kid", "platform", "operator", "owner", "name"}:
            return getattr(self, header)
        if header == "blockNumber":
            return str(self.block_number)
        if header == "contentName":
            return self.content_name
        if header in {"id", "contentID"}:
            return self.content_id
        if header in {"time", "trustedTimestamp"}:
            return self._formatted_time()
        if header in {"type", "contentType"}:
            return self.content_type
        return "<none>"


class DepositoryPage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    data: list[Depository] = Field(default_factory=list)
    count: int = 0


def _parse(model: type[BaseModel], payload: object, what: str):
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ServiceRequestError(f"unexpected {what} response: {exc}") from exc


def list_depositories(
    client: ServiceClient,
    *,
    from_: int = 0,
    size: int = 10,
    kid: str | None = None,
    name: str | None = None,
    content_name: str | None = None,
) -> DepositoryPage:
    params: dict[str, str] = {}
    if from_:
        params["from"] = str(from_)
    if size:
        params["size"] = str(size)
    if kid:
        params["kid"] = kid
    if name:
        params["name"] = name
    if content_name:
        params["contentName"] = content_name
    return _parse(DepositoryPage, client.get_json(LIST_PATH, params=params), "depository list")


def get_depository(client: ServiceClient, kid: str) -> Depository:
    return _parse(Depository, client.get_json(GET_PATH.format(kid=kid)), "depository")


@dataclass
class DownloadReport:
    downloaded: dict[str, Path] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)


def _unique(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


def download_certificates(
    client: ServiceClient,
    kids: Iterable[str],
    *,
    style: str = "",
    output_dir: str | Path = ".",
    max_workers: int = DOWNLOAD_CONCURRENCY,
) -> DownloadReport:
    """Download certificate PDFs with at most ``max_workers`` requests in flight.

    A failed download is recorded in the report and does not stop the others.
    Returns only after every download has finished.
    """
    target_dir = Path(output_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    report = DownloadReport()

    def _fetch(kid: str) -> Path:
        target = target_dir / f"{kid}.pdf"
        params = {"style": style} if style else None
        client.download(CERTIFICATE_PATH.format(kid=kid), target, params=params)
        return target

    unique_kids = _unique(kids)
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        futures = {kid: pool.submit(_fetch, kid) for kid in unique_kids}
    for kid, future in futures.items():
        try:
            report.downloaded[kid] = future.result()
        except (BCError, OSError) as exc:
            report.errors[kid] = str(exc)
    return report
