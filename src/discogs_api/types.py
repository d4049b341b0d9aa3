import enum
from dataclasses import dataclass

DEFAULT_BASE_URL = "https://api.discogs.com"
VERSION = "0.1.0"
DEFAULT_TIMEOUT = 30.0
DEFAULT_USER_AGENT = f"discogs-api-python/{VERSION}"


class AuthLevel(enum.IntEnum):
    """Capability tier, used both as a requirement and as what a credential grants."""

    NONE = 0
    CONSUMER = 1
    USER = 2


class OutputFormat(enum.Enum):
    DISCOGS = "discogs"
    PLAINTEXT = "plaintext"
    HTML = "html"

    def accept_header_value(self) -> str:
        return f"application/vnd.discogs.v2.{self.value}+json"


@dataclass(frozen=True)
class RetryConfig:
    # Only 429 responses are retried; 0 disables retries entirely.
    max_retries: int = 0
    # seconds
    base_delay: float = 2.0
    backoff_factor: float = 2.7

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        if self.backoff_factor < 1:
            raise ValueError("backoff_factor must be >= 1")