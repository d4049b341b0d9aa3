import asyncio
import contextlib
from dataclasses import dataclass
from typing import Any, Union

from .errors import RequestError
from .types import DEFAULT_TIMEOUT


@dataclass(frozen=True)
class TransportResponse:
    """A fully read response, independent of the HTTP library that produced it.

    Header names are lowercased.
    """

    status: int
    headers: dict[str, str]
    content: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300  # noqa: PLR2004

    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


def _lower_headers(items) -> dict[str, str]:
    return {str(k).lower(): str(v) for k, v in items}


# ---------- requests (sync) ----------
class RequestsTransport:
    def __init__(self, session=None, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout
        if session is None:
            import requests  # noqa: PLC0415

            self.session = requests.Session()
            self._own_session = True
        else:
            self.session = session
            self._own_session = False

    def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        params: Union[dict[str, str], None] = None,
        json: Any = None,
    ) -> TransportResponse:
        import requests  # noqa: PLC0415

        try:
            resp = self.session.request(
                method, url, headers=headers, params=params, json=json, timeout=self.timeout
            )
            content = resp.content
        except requests.RequestException as e:
            raise RequestError(f"request failed: {e}") from e
        return TransportResponse(int(resp.status_code), _lower_headers(resp.headers.items()), content)

    def close(self):
        if self._own_session:
            with contextlib.suppress(Exception):
                self.session.close()


# ---------- httpx (async) ----------
class HttpxTransport:
    def __init__(self, client=None, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout
        if client is None:
            import httpx  # noqa: PLC0415

            self.client = httpx.AsyncClient(timeout=timeout)
            self._own_client = True
        else:
            self.client = client
            self._own_client = False

    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        params: Union[dict[str, str], None] = None,
        json: Any = None,
    ) -> TransportResponse:
        import httpx  # noqa: PLC0415

        try:
            resp = await self.client.request(
                method, url, headers=headers, params=params, json=json
            )
        except httpx.HTTPError as e:
            raise RequestError(f"request failed: {e}") from e
        return TransportResponse(resp.status_code, _lower_headers(resp.headers.items()), resp.content)

    async def aclose(self):
        if self._own_client:
            await self.client.aclose()


# ---------- aiohttp (async) ----------
class AiohttpTransport:
    def __init__(self, session=None, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout
        # aiohttp sessions must be created inside a running loop; defer until first send
        self.session = session
        self._own_session = session is None

    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        params: Union[dict[str, str], None] = None,
        json: Any = None,
    ) -> TransportResponse:
        import aiohttp  # noqa: PLC0415

        if self.session is None:
            self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
        try:
            async with self.session.request(
                method, url, headers=headers, params=params, json=json
            ) as resp:
                content = await resp.read()
                return TransportResponse(resp.status, _lower_headers(resp.headers.items()), content)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RequestError(f"request failed: {e!r}") from e

    async def aclose(self):
        if self._own_session and self.session is not None:
            await self.session.close()
            self.session = None


def coerce_transport(transport: Union[object, None], timeout: float = DEFAULT_TIMEOUT):
    """Turn None | "requests" | transport instance into a blocking transport."""
    if transport is None or transport == "requests":
        return RequestsTransport(timeout=timeout)
    if isinstance(transport, str):
        raise ValueError("Unknown transport string. Use 'requests' or pass a transport object.")
    if callable(getattr(transport, "send", None)):
        return transport
    raise TypeError("transport must be None, 'requests', or an object with a send() method")


def coerce_async_transport(transport: Union[object, None], timeout: float = DEFAULT_TIMEOUT):
    """Turn None | "httpx" | "aiohttp" | transport instance into an async transport.

    Accepted inputs:
      - None / "httpx" -> HttpxTransport (owns a fresh httpx.AsyncClient)
      - "aiohttp"      -> AiohttpTransport (owns a lazily created ClientSession)
      - any object exposing an async send(method, url, headers, params, json)
    """
    if transport is None:
        return HttpxTransport(timeout=timeout)
    if isinstance(transport, str):
        name = transport.lower()
        if name == "httpx":
            return HttpxTransport(timeout=timeout)
        if name == "aiohttp":
            return AiohttpTransport(timeout=timeout)
        raise ValueError(
            "Unknown transport string. Use 'httpx' or 'aiohttp', or pass a transport object."
        )
    if callable(getattr(transport, "send", None)):
        return transport
    raise TypeError("transport must be None, 'httpx'|'aiohttp', or an object with a send() method")
