"""Defines common Value Objects used across the API client contexts.

These objects represent simple values like endpoint paths, tokens and the
retry policy, ensuring consistency and type safety.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, NewType, TypedDict

# === Core Value Objects ===

Endpoint = NewType("Endpoint", str)          # Path suffix appended to the base URL, e.g. '/candidates'
AccessToken = NewType("AccessToken", str)    # Bearer token sent in the Authorization header
RefreshToken = NewType("RefreshToken", str)  # Token exchanged at /auth/refresh for a new pair

# === Storage Keys ===
AUTH_TOKEN_KEY = "auth_token"
REFRESH_TOKEN_KEY = "refresh_token"

# === Retry Defaults ===
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_SECONDS = 1.0
DEFAULT_MAX_DELAY_SECONDS = 30.0
DEFAULT_JITTER_SECONDS = 1.0
DEFAULT_RETRY_STATUSES: FrozenSet[int] = frozenset({429, 500, 502, 503, 504})


@dataclass(frozen=True)
class RetryPolicy:
    """Value Object representing retry backoff configuration."""
    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay: float = DEFAULT_BASE_DELAY_SECONDS
    max_delay: float = DEFAULT_MAX_DELAY_SECONDS
    jitter: float = DEFAULT_JITTER_SECONDS
    retry_statuses: FrozenSet[int] = field(default=DEFAULT_RETRY_STATUSES)

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay < 0 or self.max_delay < 0 or self.jitter < 0:
            raise ValueError("Delays must be non-negative")
        # Accept any iterable of ints from config while keeping the field hashable
        object.__setattr__(self, "retry_statuses", frozenset(int(s) for s in self.retry_statuses))

    def is_retryable(self, status: int) -> bool:
        return status in self.retry_statuses


# --- Structured Data ---
class LoginCredentials(TypedDict):
    """Body sent to /auth/login."""
    username: str
    password: str


class RegistrationData(TypedDict, total=False):
    """Body sent to /auth/register."""
    email: str
    password: str
    firstName: str
    lastName: str
    centerName: str


class AuthResponse(TypedDict, total=False):
    """Body returned by /auth/login, /auth/register and /auth/refresh."""
    token: str
    refreshToken: str
    user: Dict[str, Any]
