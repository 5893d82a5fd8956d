from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from .codec import WireRequest
from .errors import BadUrlError, BadWebdriverUrlError, ConnectionLostError, RequestFailedError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WireResponse:
    status_code: int
    content_type: str | None
    text: str


def parse_webdriver_url(webdriver_url: str) -> httpx.URL:
    try:
        url = httpx.URL(webdriver_url)
    except (httpx.InvalidURL, TypeError) as exc:
        raise BadWebdriverUrlError(webdriver_url) from exc
    if url.scheme not in {"http", "https"} or not url.host:
        raise BadWebdriverUrlError(webdriver_url)
    return url


class HttpTransport:
    """The one HTTP connection pool a session actor talks through."""

    def __init__(
        self,
        webdriver_url: str,
        timeout_seconds: float = 60.0,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = parse_webdriver_url(webdriver_url)
        self.timeout_seconds = timeout_seconds
        self.http_transport = http_transport
        self._client: httpx.AsyncClient | None = None

    @property
    def user(self) -> str | None:
        return self.url.username or None

    @property
    def password(self) -> str | None:
        return self.url.password or None

    async def start(self) -> None:
        auth = None
        if self.user is not None or self.password is not None:
            auth = httpx.BasicAuth(self.user or "", self.password or "")
        base_url = self.url.copy_with(username=None, password=None)
        self._client = httpx.AsyncClient(
            base_url=base_url,
            auth=auth,
            timeout=self.timeout_seconds,
            transport=self.http_transport,
        )

    async def stop(self) -> None:
        if self._client is None:
            return
        client = self._client
        self._client = None
        await client.aclose()

    async def send(self, request: WireRequest, user_agent: str | None = None) -> WireResponse:
        client = self._require_client()
        headers: dict[str, str] = {}
        if user_agent is not None:
            headers["User-Agent"] = user_agent
        content = request.encode_body()
        if content is not None:
            headers["Content-Type"] = "application/json"
            headers["Content-Length"] = str(len(content))

        logger.debug(f"{request.method} {request.path}")
        try:
            response = await client.request(request.method, request.path, content=content, headers=headers)
        except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
            raise RequestFailedError(str(exc)) from exc
        except httpx.HTTPError as exc:
            raise ConnectionLostError(str(exc)) from exc

        text = response.content.decode("utf-8", errors="replace")
        return WireResponse(
            status_code=response.status_code,
            content_type=response.headers.get("content-type"),
            text=text,
        )

    async def raw(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        content: bytes | None = None,
    ) -> httpx.Response:
        if not httpx.URL(url).is_absolute_url:
            raise BadUrlError(url)
        client = self._require_client()
        try:
            return await client.request(method, url, headers=headers, content=content, auth=None)
        except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
            raise RequestFailedError(str(exc)) from exc
        except httpx.HTTPError as exc:
            raise ConnectionLostError(str(exc)) from exc

    def _require_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("Transport is not started")
        return self._client
