from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar, Union

from .ratelimit import RateLimit

T = TypeVar("T")


@dataclass(frozen=True)
class ApiResponse(Generic[T]):
    """Decoded payload of a successful call plus the rate-limit snapshot, if any."""

    data: T
    rate_limit: Union[RateLimit, None] = None


def _extra(payload: dict[str, Any], known: set[str]) -> dict[str, Any]:
    return {k: v for k, v in payload.items() if k not in known}


@dataclass(frozen=True)
class AboutStatistics:
    releases: int
    artists: int
    labels: int

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "AboutStatistics":
        return cls(
            releases=int(payload["releases"]),
            artists=int(payload["artists"]),
            labels=int(payload["labels"]),
        )


@dataclass(frozen=True)
class AboutResponse:
    hello: str
    api_version: str
    documentation_url: str
    statistics: AboutStatistics
    extra: dict[str, Any] = field(default_factory=dict)

    _FIELDS = frozenset({"hello", "api_version", "documentation_url", "statistics"})

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "AboutResponse":
        return cls(
            hello=payload["hello"],
            api_version=payload["api_version"],
            documentation_url=payload["documentation_url"],
            statistics=AboutStatistics.from_dict(payload["statistics"]),
            extra=_extra(payload, set(cls._FIELDS)),
        )


@dataclass(frozen=True)
class Identity:
    id: int
    username: str
    resource_url: str
    consumer_name: Union[str, None] = None
    extra: dict[str, Any] = field(default_factory=dict)

    _FIELDS = frozenset({"id", "username", "resource_url", "consumer_name"})

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Identity":
        return cls(
            id=int(payload["id"]),
            username=payload["username"],
            resource_url=payload["resource_url"],
            consumer_name=payload.get("consumer_name"),
            extra=_extra(payload, set(cls._FIELDS)),
        )
