import asyncio
import contextlib
import dataclasses
import enum
import json
import logging
import math
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Union

from .adapters import TransportResponse, coerce_async_transport, coerce_transport
from .auth import Auth, ConsumerKey, NoAuth, OAuthCredentials, UserToken, coerce_auth
from .errors import AuthRequiredError, DecodeError, HttpError, RequestError
from .models import AboutResponse, ApiResponse, Identity
from .ratelimit import parse_rate_limit
from .types import (
    DEFAULT_BASE_URL,
    DEFAULT_TIMEOUT,
    DEFAULT_USER_AGENT,
    AuthLevel,
    OutputFormat,
    RetryConfig,
)

TOO_MANY_REQUESTS = 429

_CONFIG_KEYS = {
    "base_url",
    "auth",
    "output_format",
    "retry_config",
    "max_retries",
    "base_delay",
    "backoff_factor",
    "timeout",
}


@dataclass(frozen=True)
class ClientConfig:
    """Read-only settings shared by every call made through one client."""

    user_agent: str
    base_url: str = DEFAULT_BASE_URL
    output_format: OutputFormat = OutputFormat.DISCOGS
    auth: Auth = field(default_factory=NoAuth)
    retry: RetryConfig = field(default_factory=RetryConfig)
    timeout: float = DEFAULT_TIMEOUT


# ---------- Common helpers ----------


def retry_delay(retry: RetryConfig, attempt: int) -> float:
    """Backoff before retry number ``attempt`` (0-based), in seconds.

    base_delay * backoff_factor ** attempt, rounded to whole milliseconds and
    never below 1ms.
    """
    delay_ms = math.floor(retry.base_delay * 1000.0 * retry.backoff_factor**attempt + 0.5)
    return max(1, delay_ms) / 1000.0


def _is_absolute(path: str) -> bool:
    return path.startswith(("http://", "https://"))


def _is_record(value: Any) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def _record_items(value: Any):
    if _is_record(value):
        return [(f.name, getattr(value, f.name)) for f in dataclasses.fields(value)]
    return list(value.items())


def _flatten_query(query: Any, params: dict[str, str]) -> None:
    for k, v in _record_items(query):
        if v is None:
            continue
        # nested records (e.g. pagination) contribute their fields at the top level
        if _is_record(v) or isinstance(v, Mapping):
            _flatten_query(v, params)
            continue
        if isinstance(v, bool):
            v = "true" if v else "false"
        elif isinstance(v, enum.Enum):
            v = v.value
        params[str(k)] = str(v)


def _encode_query(query: Any) -> Union[dict[str, str], None]:
    if query is None:
        return None
    params: dict[str, str] = {}
    _flatten_query(query, params)
    return params


def _encode_body(body: Any) -> Any:
    """JSON-ready form of a request body: enums by value, unset record fields left out."""
    if _is_record(body):
        return {k: _encode_body(v) for k, v in _record_items(body) if v is not None}
    if isinstance(body, enum.Enum):
        return body.value
    if isinstance(body, Mapping):
        return {k: _encode_body(v) for k, v in body.items()}
    if isinstance(body, (list, tuple)):
        return [_encode_body(v) for v in body]
    return body


def _error_message(resp: TransportResponse) -> str:
    try:
        payload = json.loads(resp.content)
    except ValueError:
        return "unknown error"
    if isinstance(payload, dict) and isinstance(payload.get("message"), str):
        return payload["message"]
    return resp.text()


def _decode_json(resp: TransportResponse, model: Union[Callable[[Any], Any], None]) -> Any:
    try:
        payload = json.loads(resp.content)
    except ValueError as e:
        raise DecodeError(f"json parse failed: {e}") from e
    if model is None:
        return payload
    try:
        return model(payload)
    except (KeyError, TypeError, ValueError) as e:
        name = getattr(model, "__qualname__", repr(model))
        raise DecodeError(f"payload does not match {name}: {e!r}") from e


def _resolve_config(
    user_agent: Union[str, None], config: Union[ClientConfig, None], kwargs: dict
) -> ClientConfig:
    if config is not None:
        if user_agent is not None or kwargs:
            raise TypeError("pass either config or individual settings, not both")
        return config
    unknown = set(kwargs) - _CONFIG_KEYS
    if unknown:
        raise TypeError(f"unexpected client settings: {sorted(unknown)}")
    if not user_agent:
        raise ValueError("user_agent is required")
    rconf = kwargs.get("retry_config")
    if rconf is None:
        rconf = RetryConfig(
            max_retries=kwargs.get("max_retries", 0),
            base_delay=kwargs.get("base_delay", 2.0),
            backoff_factor=kwargs.get("backoff_factor", 2.7),
        )
    return ClientConfig(
        user_agent=user_agent,
        base_url=kwargs.get("base_url", DEFAULT_BASE_URL),
        output_format=kwargs.get("output_format", OutputFormat.DISCOGS),
        auth=coerce_auth(kwargs.get("auth")),
        retry=rconf,
        timeout=kwargs.get("timeout", DEFAULT_TIMEOUT),
    )


# ---------- Base dispatcher (shared logic; I/O handled by subclasses) ----------


class _Dispatcher:
    def __init__(self, config: ClientConfig, log_level: Union[int, None] = None):
        """Initialize a _Dispatcher.

        Args:
            config (ClientConfig): settings shared by every call of this client
            log_level (int | None): level for the "discogs_api" logger
        """
        self._config = config
        self._logger = logging.getLogger("discogs_api")
        if log_level is not None:
            with contextlib.suppress(Exception):
                self._logger.setLevel(log_level)

    @property
    def config(self) -> ClientConfig:
        return self._config

    def auth_level(self) -> AuthLevel:
        return self._config.auth.level()

    def _ensure_auth(self, required: AuthLevel) -> None:
        # Checked before anything touches the network.
        required = AuthLevel(required)
        current = self._config.auth.level()
        if current < required:
            raise AuthRequiredError(required, current)

    def _absolute_url(self, path: str) -> str:
        if _is_absolute(path):
            return path
        base = self._config.base_url.rstrip("/")
        return f"{base}/{path.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        headers = {
            "User-Agent": self._config.user_agent,
            "Accept": self._config.output_format.accept_header_value(),
        }
        # rebuilt per attempt so OAuth gets a fresh nonce/timestamp
        authorization = self._config.auth.authorization_header()
        if authorization is not None:
            headers["Authorization"] = authorization
        return headers

    def _prepare(self, path: str, query: Any, body: Any, required: AuthLevel):
        self._ensure_auth(required)
        return self._absolute_url(path), _encode_query(query), _encode_body(body)

    def _backoff(self, method: str, url: str, resp: TransportResponse, attempt: int):
        """Return the delay before the next attempt, or None when resp is terminal."""
        retry = self._config.retry
        if resp.status != TOO_MANY_REQUESTS or attempt >= retry.max_retries:
            return None
        delay = retry_delay(retry, attempt)
        self._logger.info(
            f"429 on {method} {url}; retry {attempt + 1}/{retry.max_retries} in {delay:.3f}s"
        )
        return delay

    def _finish(self, resp: TransportResponse) -> TransportResponse:
        if resp.ok:
            return resp
        raise HttpError(resp.status, _error_message(resp))

    @staticmethod
    def _envelope(resp: TransportResponse, data: Any) -> ApiResponse:
        return ApiResponse(data=data, rate_limit=parse_rate_limit(resp.headers))


# ---------- Builder ----------


class ClientBuilder:
    """Chainable construction of a client.

    Usage:
        client = DiscogsClient.builder("my-app/1.0").user_token("abc").build()
        aclient = AsyncDiscogsClient.builder("my-app/1.0").transport("aiohttp").build()
    """

    def __init__(self, user_agent: str, client_cls=None):
        self._client_cls = client_cls or DiscogsClient
        self._user_agent = user_agent
        self._base_url = DEFAULT_BASE_URL
        self._auth: Auth = NoAuth()
        self._output_format = OutputFormat.DISCOGS
        self._retry = RetryConfig()
        self._timeout = DEFAULT_TIMEOUT
        self._transport = None
        self._log_level = None

    def base_url(self, base_url: str) -> "ClientBuilder":
        self._base_url = base_url
        return self

    def auth(self, auth: Auth) -> "ClientBuilder":
        self._auth = coerce_auth(auth)
        return self

    def user_token(self, token: str) -> "ClientBuilder":
        self._auth = UserToken(token)
        return self

    def consumer_key(self, consumer_key: str, consumer_secret: str) -> "ClientBuilder":
        self._auth = ConsumerKey(consumer_key, consumer_secret)
        return self

    def oauth(
        self,
        consumer_key: str,
        consumer_secret: str,
        access_token: str,
        access_token_secret: str,
    ) -> "ClientBuilder":
        self._auth = OAuthCredentials(
            consumer_key, consumer_secret, access_token, access_token_secret
        )
        return self

    def output_format(self, output_format: OutputFormat) -> "ClientBuilder":
        self._output_format = output_format
        return self

    def retry(self, retry: RetryConfig) -> "ClientBuilder":
        self._retry = retry
        return self

    def timeout(self, timeout: float) -> "ClientBuilder":
        self._timeout = timeout
        return self

    def transport(self, transport) -> "ClientBuilder":
        self._transport = transport
        return self

    def log_level(self, log_level: int) -> "ClientBuilder":
        self._log_level = log_level
        return self

    def config(self) -> ClientConfig:
        return ClientConfig(
            user_agent=self._user_agent,
            base_url=self._base_url,
            output_format=self._output_format,
            auth=self._auth,
            retry=self._retry,
            timeout=self._timeout,
        )

    def build(self):
        return self._client_cls(
            config=self.config(), transport=self._transport, log_level=self._log_level
        )


# ---------- Sync client (requests) ----------


class DiscogsClient(_Dispatcher):
    def __init__(
        self,
        user_agent: Union[str, None] = None,
        *,
        config: Union[ClientConfig, None] = None,
        transport: Union[object, None] = None,
        log_level: Union[int, None] = None,
        **kwargs,
    ):
        """Initialize a DiscogsClient.

        Args:
            user_agent (str | None): User-Agent sent with every request
            config (ClientConfig | None): complete settings; excludes the keyword settings
            transport (object | None): "requests" (default) or an object with send()
            log_level (int | None): level for the "discogs_api" logger
            kwargs:
            - base_url: str
            - auth: NoAuth | UserToken | ConsumerKey | OAuthCredentials
            - output_format: OutputFormat
            - retry_config: RetryConfig object
            - max_retries: int
            - base_delay: float (seconds)
            - backoff_factor: float
            - timeout: float (seconds)
        """
        super().__init__(_resolve_config(user_agent, config, kwargs), log_level)
        self._transport = coerce_transport(transport, self._config.timeout)

    # convenience constructors
    @classmethod
    def builder(cls, user_agent: str) -> ClientBuilder:
        return ClientBuilder(user_agent, cls)

    @classmethod
    def with_default_user_agent(cls) -> ClientBuilder:
        return ClientBuilder(DEFAULT_USER_AGENT, cls)

    @classmethod
    def with_user_token(cls, user_agent: str, token: str) -> "DiscogsClient":
        return cls.builder(user_agent).user_token(token).build()

    @classmethod
    def with_default_user_agent_and_user_token(cls, token: str) -> "DiscogsClient":
        return cls.with_default_user_agent().user_token(token).build()

    def close(self):
        close = getattr(self._transport, "close", None)
        if close is not None:
            close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # public API
    def about(self) -> ApiResponse[AboutResponse]:
        return self.request_json("GET", "/", model=AboutResponse.from_dict)

    def get_identity(self) -> ApiResponse[Identity]:
        return self.request_json(
            "GET", "/oauth/identity", required=AuthLevel.USER, model=Identity.from_dict
        )

    def request_json(
        self,
        method: str,
        path: str,
        *,
        query: Any = None,
        body: Any = None,
        required: AuthLevel = AuthLevel.NONE,
        model: Union[Callable[[Any], Any], None] = None,
    ) -> ApiResponse:
        resp = self._send_with_retry(method, path, query, body, required)
        return self._envelope(resp, _decode_json(resp, model))

    def request_empty(
        self,
        method: str,
        path: str,
        *,
        query: Any = None,
        body: Any = None,
        required: AuthLevel = AuthLevel.NONE,
    ) -> ApiResponse[None]:
        resp = self._send_with_retry(method, path, query, body, required)
        return self._envelope(resp, None)

    def request_bytes(
        self,
        method: str,
        path: str,
        *,
        query: Any = None,
        body: Any = None,
        required: AuthLevel = AuthLevel.NONE,
    ) -> ApiResponse[bytes]:
        resp = self._send_with_retry(method, path, query, body, required)
        return self._envelope(resp, resp.content)

    # internal
    def _sleep(self, delay: float):
        time.sleep(delay)

    def _send_with_retry(
        self, method: str, path: str, query: Any, body: Any, required: AuthLevel
    ) -> TransportResponse:
        url, params, payload = self._prepare(path, query, body, required)
        attempt = 0
        while True:
            self._logger.debug(f"req start method={method} url={url} attempt={attempt}")
            try:
                resp = self._transport.send(
                    method, url, self._headers(), params=params, json=payload
                )
            except RequestError as e:
                self._logger.warning(f"request error method={method} url={url}: {e}")
                raise
            self._logger.debug(f"req done method={method} url={url} status={resp.status}")
            delay = self._backoff(method, url, resp, attempt)
            if delay is None:
                return self._finish(resp)
            self._sleep(delay)
            attempt += 1


# ---------- Async client (httpx/aiohttp) ----------


class AsyncDiscogsClient(_Dispatcher):
    def __init__(
        self,
        user_agent: Union[str, None] = None,
        *,
        config: Union[ClientConfig, None] = None,
        transport: Union[object, None] = None,
        log_level: Union[int, None] = None,
        **kwargs,
    ):
        """Initialize an AsyncDiscogsClient.

        Same settings as DiscogsClient; transport is "httpx" (default), "aiohttp",
        or an object with an async send().
        """
        super().__init__(_resolve_config(user_agent, config, kwargs), log_level)
        self._transport = coerce_async_transport(transport, self._config.timeout)

    @classmethod
    def builder(cls, user_agent: str) -> ClientBuilder:
        return ClientBuilder(user_agent, cls)

    @classmethod
    def with_default_user_agent(cls) -> ClientBuilder:
        return ClientBuilder(DEFAULT_USER_AGENT, cls)

    @classmethod
    def with_user_token(cls, user_agent: str, token: str) -> "AsyncDiscogsClient":
        return cls.builder(user_agent).user_token(token).build()

    @classmethod
    def with_default_user_agent_and_user_token(cls, token: str) -> "AsyncDiscogsClient":
        return cls.with_default_user_agent().user_token(token).build()

    async def aclose(self):
        aclose = getattr(self._transport, "aclose", None)
        if aclose is not None:
            await aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
        return False

    async def about(self) -> ApiResponse[AboutResponse]:
        return await self.request_json("GET", "/", model=AboutResponse.from_dict)

    async def get_identity(self) -> ApiResponse[Identity]:
        return await self.request_json(
            "GET", "/oauth/identity", required=AuthLevel.USER, model=Identity.from_dict
        )

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        query: Any = None,
        body: Any = None,
        required: AuthLevel = AuthLevel.NONE,
        model: Union[Callable[[Any], Any], None] = None,
    ) -> ApiResponse:
        resp = await self._send_with_retry(method, path, query, body, required)
        return self._envelope(resp, _decode_json(resp, model))

    async def request_empty(
        self,
        method: str,
        path: str,
        *,
        query: Any = None,
        body: Any = None,
        required: AuthLevel = AuthLevel.NONE,
    ) -> ApiResponse[None]:
        resp = await self._send_with_retry(method, path, query, body, required)
        return self._envelope(resp, None)

    async def request_bytes(
        self,
        method: str,
        path: str,
        *,
        query: Any = None,
        body: Any = None,
        required: AuthLevel = AuthLevel.NONE,
    ) -> ApiResponse[bytes]:
        resp = await self._send_with_retry(method, path, query, body, required)
        return self._envelope(resp, resp.content)

    async def _sleep(self, delay: float):
        # the only suspension point besides network I/O; cancellation lands here too
        await asyncio.sleep(delay)

    async def _send_with_retry(
        self, method: str, path: str, query: Any, body: Any, required: AuthLevel
    ) -> TransportResponse:
        url, params, payload = self._prepare(path, query, body, required)
        attempt = 0
        while True:
            self._logger.debug(f"req start method={method} url={url} attempt={attempt}")
            try:
                resp = await self._transport.send(
                    method, url, self._headers(), params=params, json=payload
                )
            except RequestError as e:
                self._logger.warning(f"request error method={method} url={url}: {e}")
                raise
            self._logger.debug(f"req done method={method} url={url} status={resp.status}")
            delay = self._backoff(method, url, resp, attempt)
            if delay is None:
                return self._finish(resp)
            await self._sleep(delay)
            attempt += 1
