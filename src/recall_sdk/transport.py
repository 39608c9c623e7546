"""Transport adapter boundary: one HTTP exchange per call."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Protocol

import httpx

from .operations import Operation
from .security import sanitize_headers
from .signals import AbortSignal, await_with_signal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestParams:
    """Per-call request inputs. Layers derive modified copies with ``replace``."""

    path: Mapping[str, str] | None = None
    query: Mapping[str, Any] | None = None
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)
    signal: AbortSignal | None = None
    idempotency_key: str | None = None
    on_request: Callable[[httpx.Request], None] | None = None


@dataclass(frozen=True)
class TransportResult:
    status: int
    status_text: str
    data: Any
    headers: Mapping[str, str] = field(default_factory=dict)
    request: httpx.Request | None = None
    response: httpx.Response | None = None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300


Call = Callable[[Operation, RequestParams], Awaitable[TransportResult]]


class Transport(Protocol):
    async def perform(self, operation: Operation, params: RequestParams) -> TransportResult:
        """Perform one exchange. Must honor ``params.signal`` and raise on network failure.

        Adapters that build an ``httpx.Request`` pass it to ``params.on_request``
        so timeout errors can report which request was abandoned.
        """
        ...


def _parse_response(response: httpx.Response) -> Any:
    if response.status_code == 204:
        return None
    if not response.content:
        return None
    content_type = response.headers.get("content-type", "")
    if "json" not in content_type.lower():
        return response.text
    try:
        return response.json()
    except ValueError:
        return response.text


class HttpxTransport:
    """Transport adapter backed by ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient, *, base_url: str) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")

    async def perform(self, operation: Operation, params: RequestParams) -> TransportResult:
        url = self._base_url + operation.build_path(params.path)
        headers = dict(params.headers)
        kwargs: dict[str, Any] = {"headers": headers}
        if params.query:
            kwargs["params"] = params.query
        if params.body is not None:
            kwargs["json"] = params.body
        request = self._client.build_request(operation.method, url, **kwargs)
        if params.on_request is not None:
            params.on_request(request)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "recall request: %s %s headers=%s",
                operation.method,
                request.url,
                sanitize_headers(headers),
            )

        response = await await_with_signal(self._client.send(request), params.signal)
        try:
            data = _parse_response(response)
        finally:
            await response.aclose()

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "recall response: %s %s status=%d",
                operation.method,
                request.url,
                response.status_code,
            )

        return TransportResult(
            status=response.status_code,
            status_text=response.reason_phrase,
            data=data,
            headers=response.headers,
            request=request,
            response=response,
        )
