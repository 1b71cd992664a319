"""Domain Events related to API calls and resilience.

Examples include events for when calls are rate limited, retried, fail, or succeed.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


# --- Specific API Events ---

@dataclass
class ApiCallInitiated(DomainEvent):
    """Event triggered when a request is about to be sent."""
    method: str
    endpoint: str
    attempt_number: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when a request completes with a 2xx status."""
    method: str
    endpoint: str
    status: int
    latency_ms: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when a request fails definitively (after retries)."""
    method: str
    endpoint: str
    error_type: str
    error_message: str
    status: Optional[int] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class RateLimited(DomainEvent):
    """Event triggered when the server answers 429."""
    endpoint: str
    wait_time_seconds: float
    retry_after_header: Optional[float] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed request."""
    endpoint: str
    status: int
    attempt_number: int
    delay_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class TokenRefreshAttempted(DomainEvent):
    """Event triggered after a 401 led to a refresh attempt."""
    endpoint: str
    succeeded: bool
    timestamp: float = field(default_factory=time.time)
