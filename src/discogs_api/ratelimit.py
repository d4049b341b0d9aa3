from collections.abc import Mapping
from dataclasses import dataclass
from typing import Union

RATELIMIT_HEADER = "x-discogs-ratelimit"
RATELIMIT_USED_HEADER = "x-discogs-ratelimit-used"
RATELIMIT_REMAINING_HEADER = "x-discogs-ratelimit-remaining"


@dataclass(frozen=True)
class RateLimit:
    limit: int
    used: int
    remaining: int


def _header(headers: Mapping[str, str], name: str) -> Union[str, None]:
    for k, v in headers.items():
        if k.lower() == name:
            return v
    return None


def _parse_unsigned(value: Union[str, None]) -> Union[int, None]:
    if value is None:
        return None
    value = value.strip()
    if not (value.isascii() and value.isdigit()):
        return None
    return int(value)


def parse_rate_limit(headers: Mapping[str, str]) -> Union[RateLimit, None]:
    """Read the three Discogs rate-limit headers; any gap yields None, never a partial result."""
    limit = _parse_unsigned(_header(headers, RATELIMIT_HEADER))
    used = _parse_unsigned(_header(headers, RATELIMIT_USED_HEADER))
    remaining = _parse_unsigned(_header(headers, RATELIMIT_REMAINING_HEADER))
    if limit is None or used is None or remaining is None:
        return None
    return RateLimit(limit=limit, used=used, remaining=remaining)
