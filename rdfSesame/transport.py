from __future__ import annotations

"""One-shot HTTP exchanges built on :mod:`requests`."""

import time
from typing import Mapping, NamedTuple, Optional, Protocol, Union

import requests

from .config import SesameConfig
from .exceptions import TransportError
from .utils.log_json import JsonLogger

_logger = JsonLogger("transport")

Body = Union[str, bytes, None]


class HttpResponse(NamedTuple):
    status: int
    headers: Mapping[str, str]
    body: str

    @property
    def content_type(self) -> str:
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value
        return ""


class HttpClient(Protocol):
    """Anything able to perform a single blocking HTTP request."""

    def get(self, url: str, headers: Optional[Mapping[str, str]] = None, body: Body = None) -> HttpResponse: ...

    def post(self, url: str, headers: Optional[Mapping[str, str]] = None, body: Body = None) -> HttpResponse: ...

    def put(self, url: str, headers: Optional[Mapping[str, str]] = None, body: Body = None) -> HttpResponse: ...

    def delete(self, url: str, headers: Optional[Mapping[str, str]] = None, body: Body = None) -> HttpResponse: ...


class RequestsTransport:
    """Stateless transport: every call is a fresh ``requests.request``.

    No session is kept, so instances can be shared between threads.
    """

    def __init__(self, config: Optional[SesameConfig] = None) -> None:
        self.config = config or SesameConfig()

    def request(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        body: Body = None,
    ) -> HttpResponse:
        merged = dict(self.config.headers)
        merged.update(headers or {})
        data = body.encode("utf-8") if isinstance(body, str) else body
        _logger.debug("http.request", method=method, url=url)
        started = time.perf_counter()
        try:
            resp = requests.request(
                method,
                url,
                headers=merged,
                data=data,
                timeout=self.config.timeout,
                auth=self.config.auth,
                proxies=dict(self.config.proxies) or None,
                verify=self.config.verify,
                allow_redirects=self.config.follow_redirects,
            )
        except requests.RequestException as exc:
            _logger.error("http.transport_error", method=method, url=url, error=str(exc))
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        _logger.debug(
            "http.response",
            method=method,
            url=url,
            status=resp.status_code,
            latency_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        if "charset" not in resp.headers.get("Content-Type", "").lower():
            resp.encoding = "utf-8"
        return HttpResponse(resp.status_code, dict(resp.headers), resp.text)

    def get(self, url: str, headers: Optional[Mapping[str, str]] = None, body: Body = None) -> HttpResponse:
        return self.request("GET", url, headers, body)

    def post(self, url: str, headers: Optional[Mapping[str, str]] = None, body: Body = None) -> HttpResponse:
        return self.request("POST", url, headers, body)

    def put(self, url: str, headers: Optional[Mapping[str, str]] = None, body: Body = None) -> HttpResponse:
        return self.request("PUT", url, headers, body)

    def delete(self, url: str, headers: Optional[Mapping[str, str]] = None, body: Body = None) -> HttpResponse:
        return self.request("DELETE", url, headers, body)


__all__ = ["HttpResponse", "HttpClient", "RequestsTransport"]
