import logging
import secrets
import string
import time
from dataclasses import dataclass
from typing import Union
from urllib.parse import parse_qsl, quote_plus

from .adapters import TransportResponse, coerce_async_transport, coerce_transport
from .errors import HttpError, InvalidOAuthResponse
from .types import DEFAULT_BASE_URL, DEFAULT_TIMEOUT

AUTHORIZE_URL = "https://discogs.com/oauth/authorize"
NONCE_LENGTH = 64
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

_NONCE_ALPHABET = string.ascii_letters + string.digits

logger = logging.getLogger("discogs_api")


@dataclass(frozen=True)
class RequestToken:
    token: str
    token_secret: str
    callback_confirmed: bool
    authorize_url: str


@dataclass(frozen=True)
class AccessToken:
    access_token: str
    access_token_secret: str


# ---------- signing (PLAINTEXT) ----------


def oauth_nonce() -> str:
    nonce = "".join(secrets.choice(_NONCE_ALPHABET) for _ in range(NONCE_LENGTH))
    return _nonce_safe(nonce)


def _nonce_safe(nonce: str) -> str:
    return "".join(c for c in nonce if c.isascii() and c.isalnum())


def oauth_timestamp() -> int:
    return int(time.time())


def form_encode(value: str) -> str:
    """application/x-www-form-urlencoded serialisation: `*` kept, `~` escaped."""
    return quote_plus(value, safe="*").replace("~", "%7E")


def request_token_header(consumer_key: str, consumer_secret: str, callback_url: str) -> str:
    """Authorization header for the request-token step (no token issued yet)."""
    return (
        f'OAuth oauth_consumer_key="{consumer_key}", '
        f'oauth_nonce="{oauth_nonce()}", '
        f'oauth_signature="{consumer_secret}&", '
        f'oauth_signature_method="PLAINTEXT", '
        f'oauth_timestamp="{oauth_timestamp()}", '
        f'oauth_callback="{form_encode(callback_url)}"'
    )


def access_token_header(
    consumer_key: str,
    consumer_secret: str,
    request_token: str,
    request_token_secret: str,
    verifier: str,
) -> str:
    """Authorization header for exchanging a verified request token."""
    return (
        f'OAuth oauth_consumer_key="{consumer_key}", '
        f'oauth_nonce="{oauth_nonce()}", '
        f'oauth_token="{request_token}", '
        f'oauth_signature="{consumer_secret}&{request_token_secret}", '
        f'oauth_signature_method="PLAINTEXT", '
        f'oauth_timestamp="{oauth_timestamp()}", '
        f'oauth_verifier="{verifier}"'
    )


def build_oauth_header(
    consumer_key: str,
    consumer_secret: str,
    access_token: str,
    access_token_secret: str,
) -> str:
    """Authorization header for API calls made with a full OAuth credential.

    A fresh nonce and timestamp are generated on every call.
    """
    return (
        f'OAuth oauth_consumer_key="{consumer_key}", '
        f'oauth_token="{access_token}", '
        f'oauth_signature_method="PLAINTEXT", '
        f'oauth_signature="{consumer_secret}&{access_token_secret}", '
        f'oauth_timestamp="{oauth_timestamp()}", '
        f'oauth_nonce="{oauth_nonce()}", '
        f'oauth_token_secret="{access_token_secret}", '
        f'oauth_version="1.0"'
    )


def parse_oauth_form(raw: str) -> dict[str, str]:
    # The OAuth endpoints answer with form-encoded pairs, not JSON.
    return dict(parse_qsl(raw, keep_blank_values=True))


# ---------- handshake ----------


class _OAuthBase:
    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        user_agent: str,
        base_url: str = DEFAULT_BASE_URL,
        authorize_url: str = AUTHORIZE_URL,
    ):
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.user_agent = user_agent
        self.base_url = base_url.rstrip("/")
        self.authorize_url = authorize_url

    def _headers(self, authorization: str) -> dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Content-Type": FORM_CONTENT_TYPE,
            "Authorization": authorization,
        }

    def _request_token_call(self, callback_url: str) -> tuple[str, dict[str, str]]:
        url = f"{self.base_url}/oauth/request_token"
        header = request_token_header(self.consumer_key, self.consumer_secret, callback_url)
        return url, self._headers(header)

    def _access_token_call(
        self, request_token: str, request_token_secret: str, verifier: str
    ) -> tuple[str, dict[str, str]]:
        url = f"{self.base_url}/oauth/access_token"
        header = access_token_header(
            self.consumer_key,
            self.consumer_secret,
            request_token,
            request_token_secret,
            verifier,
        )
        return url, self._headers(header)

    @staticmethod
    def _token_pair(resp: TransportResponse) -> tuple[dict[str, str], str, str]:
        if not resp.ok:
            raise HttpError(resp.status, resp.text())
        text = resp.text()
        values = parse_oauth_form(text)
        token = values.get("oauth_token")
        token_secret = values.get("oauth_token_secret")
        if token is None or token_secret is None:
            raise InvalidOAuthResponse(text)
        return values, token, token_secret

    def _parse_request_token(self, resp: TransportResponse) -> RequestToken:
        values, token, token_secret = self._token_pair(resp)
        return RequestToken(
            token=token,
            token_secret=token_secret,
            callback_confirmed=values.get("oauth_callback_confirmed") == "true",
            authorize_url=f"{self.authorize_url}?oauth_token={token}",
        )

    def _parse_access_token(self, resp: TransportResponse) -> AccessToken:
        _, token, token_secret = self._token_pair(resp)
        return AccessToken(access_token=token, access_token_secret=token_secret)


class OAuthClient(_OAuthBase):
    """Blocking three-legged OAuth exchange.

    Usage:
        oauth = OAuthClient(key, secret, "my-app/1.0")
        req = oauth.request_token("https://example.com/callback")
        # send the user to req.authorize_url, collect the verifier
        access = oauth.access_token(req.token, req.token_secret, verifier)
    """

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        user_agent: str,
        base_url: str = DEFAULT_BASE_URL,
        authorize_url: str = AUTHORIZE_URL,
        transport: Union[object, None] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(consumer_key, consumer_secret, user_agent, base_url, authorize_url)
        self._transport = coerce_transport(transport, timeout)

    def request_token(self, callback_url: str) -> RequestToken:
        url, headers = self._request_token_call(callback_url)
        logger.debug(f"oauth request_token url={url}")
        resp = self._transport.send("GET", url, headers)
        return self._parse_request_token(resp)

    def access_token(
        self, request_token: str, request_token_secret: str, verifier: str
    ) -> AccessToken:
        url, headers = self._access_token_call(request_token, request_token_secret, verifier)
        logger.debug(f"oauth access_token url={url}")
        resp = self._transport.send("POST", url, headers)
        return self._parse_access_token(resp)

    def close(self):
        close = getattr(self._transport, "close", None)
        if close is not None:
            close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class AsyncOAuthClient(_OAuthBase):
    """Async variant of OAuthClient; transport is "httpx" (default) or "aiohttp"."""

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        user_agent: str,
        base_url: str = DEFAULT_BASE_URL,
        authorize_url: str = AUTHORIZE_URL,
        transport: Union[object, None] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(consumer_key, consumer_secret, user_agent, base_url, authorize_url)
        self._transport = coerce_async_transport(transport, timeout)

    async def request_token(self, callback_url: str) -> RequestToken:
        url, headers = self._request_token_call(callback_url)
        logger.debug(f"oauth request_token url={url}")
        resp = await self._transport.send("GET", url, headers)
        return self._parse_request_token(resp)

    async def access_token(
        self, request_token: str, request_token_secret: str, verifier: str
    ) -> AccessToken:
        url, headers = self._access_token_call(request_token, request_token_secret, verifier)
        logger.debug(f"oauth access_token url={url}")
        resp = await self._transport.send("POST", url, headers)
        return self._parse_access_token(resp)

    async def aclose(self):
        aclose = getattr(self._transport, "aclose", None)
        if aclose is not None:
            await aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
        return False
