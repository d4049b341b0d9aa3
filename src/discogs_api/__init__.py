from .adapters import AiohttpTransport, HttpxTransport, RequestsTransport, TransportResponse
from .auth import Auth, ConsumerKey, NoAuth, OAuthCredentials, UserToken
from .client import (
    AsyncDiscogsClient,
    ClientBuilder,
    ClientConfig,
    DiscogsClient,
    retry_delay,
)
from .errors import (
    AuthRequiredError,
    DecodeError,
    DiscogsError,
    HttpError,
    InvalidOAuthResponse,
    RequestError,
)
from .models import AboutResponse, AboutStatistics, ApiResponse, Identity
from .oauth import AccessToken, AsyncOAuthClient, OAuthClient, RequestToken
from .ratelimit import RateLimit, parse_rate_limit
from .types import VERSION, AuthLevel, OutputFormat, RetryConfig

__version__ = VERSION

__all__ = [
    "AuthLevel",
    "OutputFormat",
    "RetryConfig",
    "Auth",
    "NoAuth",
    "UserToken",
    "ConsumerKey",
    "OAuthCredentials",
    "ClientConfig",
    "ClientBuilder",
    "DiscogsClient",
    "AsyncDiscogsClient",
    "retry_delay",
    "ApiResponse",
    "AboutResponse",
    "AboutStatistics",
    "Identity",
    "RateLimit",
    "parse_rate_limit",
    "OAuthClient",
    "AsyncOAuthClient",
    "RequestToken",
    "AccessToken",
    "RequestsTransport",
    "HttpxTransport",
    "AiohttpTransport",
    "TransportResponse",
    "DiscogsError",
    "AuthRequiredError",
    "HttpError",
    "RequestError",
    "DecodeError",
    "InvalidOAuthResponse",
]
