"""
Error Taxonomy

Faults raised by the ingestion and aggregation core. The HTTP layer maps them
to transport status codes:

- ValidationFault  -> 400 (caller's fault, not retryable)
- RateLimitDenied  -> 429 (caller should back off)
- StorageFault     -> 500 (opaque to the caller, safe to retry)

PartialDataFault is never raised. It records a batch item that was dropped
while the rest of the request was persisted.
"""

from dataclasses import dataclass
from typing import Optional


class AnalyticsError(Exception):
    """Base class for all analytics core faults"""


class ValidationFault(AnalyticsError):
    """A required field is missing or malformed"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class RateLimitDenied(AnalyticsError):
    """The admission controller refused a beacon"""

    def __init__(self, source_key: str, retry_after_seconds: int):
        super().__init__("Rate limit exceeded")
        self.source_key = source_key
        self.retry_after_seconds = retry_after_seconds


class StorageFault(AnalyticsError):
    """The underlying store failed or a constraint was violated unexpectedly"""


@dataclass(frozen=True)
class PartialDataFault:
    """A dropped sub-item of a batch"""
    index: int
    reason: str
