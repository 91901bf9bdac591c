"""
Resilience infrastructure - retry logic and circuit breakers for the provider call.
"""

from .retry_service import (
    RetryService,
    BackoffPolicy,
    CircuitBreaker,
    CircuitBreakerState,
    CircuitBreakerError,
    RETRIABLE_ERRORS,
    NON_RETRIABLE_ERRORS,
    get_retry_service,
    is_retriable
)

__all__ = [
    'RetryService',
    'BackoffPolicy',
    'CircuitBreaker',
    'CircuitBreakerState',
    'CircuitBreakerError',
    'RETRIABLE_ERRORS',
    'NON_RETRIABLE_ERRORS',
    'get_retry_service',
    'is_retriable'
]
