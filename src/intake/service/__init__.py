"""Complaint service package."""

from intake.service.complaints import ComplaintService, Subscription
from intake.service.events import ConnectionEvents
from intake.service.rate_limit import RateLimiter
from intake.service.retry import backoff_delay, execute_with_retry

__all__ = [
    "ComplaintService",
    "ConnectionEvents",
    "RateLimiter",
    "Subscription",
    "backoff_delay",
    "execute_with_retry",
]
