import re
from unittest.mock import MagicMock

import httpx
import pytest
import requests

from discogs_api import (
    AccessToken,
    AsyncOAuthClient,
    HttpError,
    HttpxTransport,
    InvalidOAuthResponse,
    OAuthClient,
    RequestError,
    RequestsTransport,
)
from discogs_api.oauth import form_encode, oauth_nonce, parse_oauth_form


def _resp(status, body):
    resp = MagicMock()
    resp.status_code = status
    resp.headers = {"Content-Type": "application/x-www-form-urlencoded"}
    resp.content = body.encode()
    return resp


def _oauth(*responses):
    sess = MagicMock()
    sess.request.side_effect = list(responses)
    client = OAuthClient(
        "ck",
        "cs",
        "test-agent",
        base_url="http://provider.test/",
        transport=RequestsTransport(session=sess),
    )
    return client, sess


def test_nonce_is_64_ascii_alphanumerics():
    nonce = oauth_nonce()
    assert re.fullmatch(r"[A-Za-z0-9]{64}", nonce)
    assert nonce != oauth_nonce()


def test_parse_oauth_form():
    assert parse_oauth_form("a=1&b=x%20y&c=") == {"a": "1", "b": "x y", "c": ""}


def test_request_token_round_trip():
    client, sess = _oauth(
        _resp(200, "oauth_token=T&oauth_token_secret=S&oauth_callback_confirmed=true")
    )
    rt = client.request_token("https://example.com/callback")
    assert rt.token == "T"
    assert rt.token_secret == "S"
    assert rt.callback_confirmed is True
    assert rt.authorize_url == "https://discogs.com/oauth/authorize?oauth_token=T"

    args, kwargs = sess.request.call_args
    assert args == ("GET", "http://provider.test/oauth/request_token")
    headers = kwargs["headers"]
    assert headers["User-Agent"] == "test-agent"
    assert headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert re.fullmatch(
        r'OAuth oauth_consumer_key="ck", oauth_nonce="[A-Za-z0-9]{64}", '
        r'oauth_signature="cs&", oauth_signature_method="PLAINTEXT", '
        r'oauth_timestamp="\d+", oauth_callback="https%3A%2F%2Fexample.com%2Fcallback"',
        headers["Authorization"],
    )


def test_callback_not_confirmed():
    client, _ = _oauth(_resp(200, "oauth_token=T&oauth_token_secret=S"))
    assert client.request_token("oob").callback_confirmed is False


def test_request_token_missing_field():
    client, _ = _oauth(_resp(200, "oauth_token=T"))
    with pytest.raises(InvalidOAuthResponse) as exc_info:
        client.request_token("oob")
    assert exc_info.value.body == "oauth_token=T"


def test_request_token_http_error():
    client, _ = _oauth(_resp(401, "Invalid consumer."))
    with pytest.raises(HttpError) as exc_info:
        client.request_token("oob")
    assert exc_info.value.status == 401  # noqa: PLR2004
    assert exc_info.value.message == "Invalid consumer."


def test_access_token_exchange():
    client, sess = _oauth(_resp(200, "oauth_token=AT&oauth_token_secret=ATS"))
    at = client.access_token("T", "S", "verif")
    assert at == AccessToken(access_token="AT", access_token_secret="ATS")

    args, kwargs = sess.request.call_args
    assert args == ("POST", "http://provider.test/oauth/access_token")
    assert re.fullmatch(
        r'OAuth oauth_consumer_key="ck", oauth_nonce="[A-Za-z0-9]{64}", '
        r'oauth_token="T", oauth_signature="cs&S", oauth_signature_method="PLAINTEXT", '
        r'oauth_timestamp="\d+", oauth_verifier="verif"',
        kwargs["headers"]["Authorization"],
    )


def test_access_token_missing_secret():
    client, _ = _oauth(_resp(200, "oauth_token=AT"))
    with pytest.raises(InvalidOAuthResponse):
        client.access_token("T", "S", "verif")


def test_no_retry_on_429():
    client, sess = _oauth(_resp(429, "slow down"), _resp(200, "oauth_token=T&oauth_token_secret=S"))
    with pytest.raises(HttpError):
        client.request_token("oob")
    assert sess.request.call_count == 1


@pytest.mark.asyncio
async def test_async_handshake():
    def handler(request):
        if request.url.path == "/oauth/request_token":
            assert request.method == "GET"
            return httpx.Response(
                200, text="oauth_token=T&oauth_token_secret=S&oauth_callback_confirmed=true"
            )
        assert request.method == "POST"
        assert 'oauth_verifier="v"' in request.headers["authorization"]
        return httpx.Response(200, text="oauth_token=AT&oauth_token_secret=ATS")

    mock = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    async with AsyncOAuthClient(
        "ck",
        "cs",
        "test-agent",
        base_url="http://provider.test",
        authorize_url="http://provider.test/authorize",
        transport=HttpxTransport(client=mock),
    ) as oauth:
        rt = await oauth.request_token("https://example.com/cb")
        assert rt.authorize_url == "http://provider.test/authorize?oauth_token=T"
        at = await oauth.access_token(rt.token, rt.token_secret, "v")
        assert at.access_token == "AT"
        assert at.access_token_secret == "ATS"


def test_callback_form_encoding_keeps_star_and_escapes_tilde():
    assert form_encode("https://x.test/cb?a=b c*~") == "https%3A%2F%2Fx.test%2Fcb%3Fa%3Db+c*%7E"

    client, sess = _oauth(_resp(200, "oauth_token=T&oauth_token_secret=S"))
    client.request_token("https://x.test/~me*")
    _, kwargs = sess.request.call_args
    assert kwargs["headers"]["Authorization"].endswith(
        'oauth_callback="https%3A%2F%2Fx.test%2F%7Eme*"'
    )


def test_transport_failure_is_request_error_without_retry():
    client, sess = _oauth(requests.ConnectionError("refused"))
    with pytest.raises(RequestError) as exc_info:
        client.request_token("oob")
    assert isinstance(exc_info.value.__cause__, requests.ConnectionError)
    assert sess.request.call_count == 1


@pytest.mark.asyncio
async def test_async_transport_failure_is_request_error_without_retry():
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        raise httpx.ConnectError("refused", request=request)

    mock = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    async with AsyncOAuthClient(
        "ck",
        "cs",
        "test-agent",
        base_url="http://provider.test",
        transport=HttpxTransport(client=mock),
    ) as oauth:
        with pytest.raises(RequestError) as exc_info:
            await oauth.access_token("T", "S", "v")
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
    assert calls["n"] == 1
    await mock.aclose()
