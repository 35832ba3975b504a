"""HTTP transport: authenticated client, retry policy and auth session."""

from educore.infrastructure.http.client import TransportClient, classify_response
from educore.infrastructure.http.retry import NO_RETRY, RetryPolicy, default_should_retry
from educore.infrastructure.http.session import AuthSession

__all__ = [
    "NO_RETRY",
    "AuthSession",
    "RetryPolicy",
    "TransportClient",
    "classify_response",
    "default_should_retry",
]
