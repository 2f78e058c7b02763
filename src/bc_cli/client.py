"""HTTP client for the depository and market application services."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Callable, Iterable

from bc_cli.envelope import MAX_NONCE
from bc_cli.errors import NonceFetchError, ServiceRequestError, ServiceUnavailableError

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

NonceFetcher = Callable[[str], int]


@dataclass(frozen=True)
class Credentials:
    """Bearer credential attached to every outbound call."""

    id_token: str | None = None

    def headers(self) -> dict[str, str]:
        if not self.id_token:
            return {}
        return {"Authorization": f"Bearer {self.id_token}"}


@dataclass
class ServiceClient:
    base_url: str
    credentials: Credentials = field(default_factory=Credentials)
    timeout: float = 10.0
    retries: int = 2
    verify_tls: bool = True

    def __post_init__(self) -> None:
        try:
            import requests
            from requests.adapters import HTTPAdapter
            from urllib3.util.retry import Retry
        except Exception as exc:  # pragma: no cover
            raise ServiceUnavailableError(f"requests stack unavailable: {exc}") from exc

        self._requests = requests
        self._session = requests.Session()
        self._session.verify = self.verify_tls
        retry = Retry(
            total=max(0, int(self.retries)),
            connect=max(0, int(self.retries)),
            read=max(0, int(self.retries)),
            status=max(0, int(self.retries)),
            status_forcelist=(429, 500, 502, 503, 504),
            backoff_factor=0.2,
            # Signed form posts are single-use.
            allowed_methods=("GET",),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict | None = None,
        form: Iterable[tuple[str, str]] | None = None,
        stream: bool = False,
    ):
        headers = dict(self.credentials.headers())
        data = None
        if form is not None:
            headers["Content-Type"] = FORM_CONTENT_TYPE
            data = list(form)
        try:
            response = self._session.request(
                method,
                self._url(path),
                params=params,
                data=data,
                headers=headers or None,
                timeout=self.timeout,
                stream=stream,
            )
        except Exception as exc:
            raise ServiceUnavailableError(str(exc)) from exc

        if response.status_code != 200:
            body = response.text
            raise ServiceRequestError(
                f"service request failed: {response.status_code} {body}".rstrip(),
                status_code=response.status_code,
                body=body,
            )
        return response

    def get_json(self, path: str, *, params: dict | None = None) -> object:
        response = self._request("GET", path, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise ServiceRequestError(
                f"service returned invalid JSON for {path}",
                status_code=response.status_code,
                body=response.text,
            ) from exc

    def post_form(self, path: str, fields: Iterable[tuple[str, str]]) -> str:
        return self._request("POST", path, form=fields).text

    def get_nonce(self, path: str, address: str) -> int:
        try:
            payload = self.get_json(path, params={"account": address})
        except ServiceUnavailableError as exc:
            raise NonceFetchError(f"failed to fetch nonce for {address}: {exc}") from exc

        nonce = payload.get("nonce") if isinstance(payload, dict) else None
        if isinstance(nonce, bool) or not isinstance(nonce, int) or not 0 <= nonce <= MAX_NONCE:
            raise NonceFetchError(f"invalid nonce response for {address}: {payload!r}")
        return nonce

    def nonce_fetcher(self, path: str) -> NonceFetcher:
        return partial(self.get_nonce, path)

    def download(self, path: str, target: Path, *, params: dict | None = None) -> int:
        """Stream ``path`` into ``target`` and return the number of bytes written."""
        response = self._request("GET", path, params=params, stream=True)
        written = 0
        try:
            with target.open("wb") as handle:
                for chunk in response.iter_content(chunk_size=64 * 1024):
                    if chunk:
                        handle.write(chunk)
                        written += len(chunk)
        except self._requests.RequestException as exc:
            raise ServiceUnavailableError(f"download of {path} interrupted: {exc}") from exc
        finally:
            response.close()
        return written


__all__ = ["Credentials", "NonceFetcher", "ServiceClient"]
