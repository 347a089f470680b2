"""Domain Events related to upstream calls and resilience.

Examples include events for when calls are deferred by the rate limiter,
retried, fail, succeed, or when the collection workaround falls back.
"""

import logging
from dataclasses import dataclass, field
import time
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


# --- Specific Upstream Events ---

@dataclass
class UpstreamCallInitiated(DomainEvent):
    """Event triggered when an HTTP call to the upstream is about to be made."""
    path: str
    attempt_number: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class UpstreamCallSucceeded(DomainEvent):
    """Event triggered when an upstream call succeeds."""
    path: str
    latency_ms: float
    attempts: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class UpstreamCallFailed(DomainEvent):
    """Event triggered when an upstream call fails definitively (after retries)."""
    path: str
    error_type: str
    error_message: str
    attempts: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class UpstreamCallDeferred(DomainEvent):
    """Event triggered when a call waits on the shared rate-limit watermark."""
    wait_time_seconds: float
    path: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed upstream call."""
    path: str
    attempt_number: int
    delay_seconds: float
    reason: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class CollectionFallbackTriggered(DomainEvent):
    """Event triggered when the split collection fetch falls back to one unfiltered call."""
    username: str
    reason: str
    timestamp: float = field(default_factory=time.time)


def dispatch_event(event: DomainEvent) -> None:
    """Publishes an event. There are no subscribers yet, so events go to the log."""
    logger.debug(f"EVENT: {event}")
