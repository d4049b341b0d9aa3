from dataclasses import dataclass, field
from typing import Union

from .oauth import build_oauth_header
from .types import AuthLevel

# Credentials are a closed set of independent frozen records; callers dispatch
# on level()/authorization_header() only.


@dataclass(frozen=True)
class NoAuth:
    def level(self) -> AuthLevel:
        return AuthLevel.NONE

    def authorization_header(self) -> Union[str, None]:
        return None


@dataclass(frozen=True)
class UserToken:
    """Personal access token from the Discogs developer settings page."""

    token: str = field(repr=False)

    def level(self) -> AuthLevel:
        return AuthLevel.USER

    def authorization_header(self) -> Union[str, None]:
        return f"Discogs token={self.token}"


@dataclass(frozen=True)
class ConsumerKey:
    """Application key/secret pair; grants consumer-level access only."""

    consumer_key: str
    consumer_secret: str = field(repr=False)

    def level(self) -> AuthLevel:
        return AuthLevel.CONSUMER

    def authorization_header(self) -> Union[str, None]:
        return f"Discogs key={self.consumer_key}, secret={self.consumer_secret}"


@dataclass(frozen=True)
class OAuthCredentials:
    consumer_key: str
    consumer_secret: str = field(repr=False)
    access_token: str
    access_token_secret: str = field(repr=False)

    def level(self) -> AuthLevel:
        return AuthLevel.USER

    def authorization_header(self) -> Union[str, None]:
        return build_oauth_header(
            self.consumer_key,
            self.consumer_secret,
            self.access_token,
            self.access_token_secret,
        )


Auth = Union[NoAuth, UserToken, ConsumerKey, OAuthCredentials]

AUTH_TYPES = (NoAuth, UserToken, ConsumerKey, OAuthCredentials)


def coerce_auth(auth: Union[Auth, None]) -> Auth:
    """Turn None | Auth variant into an Auth variant."""
    if auth is None:
        return NoAuth()
    if isinstance(auth, AUTH_TYPES):
        return auth
    raise TypeError(
        "auth must be None, NoAuth, UserToken, ConsumerKey, or OAuthCredentials"
    )
