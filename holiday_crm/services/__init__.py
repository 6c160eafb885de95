"""
Business logic services for the holiday CRM booking core.

This module contains validation, error classification, retry, pricing and the
booking lifecycle with its append-only timeline.
"""

from .errors import (
    AppError,
    ErrorClassifier,
    ErrorCode,
    ErrorTracker,
    SentryErrorTracker,
    StorageError,
    ValidationError,
)
from .validation import Validator
from .retry import RetryExecutor, with_retry
from .pricing import PricingEngine
from .timeline import BookingTimeline
from .booking_lifecycle import (
    BookingLifecycle,
    DocumentGenerator,
    PermissiveTransitionPolicy,
    StrictTransitionPolicy,
    TransitionPolicy,
    compute_analytics,
)

__all__ = [
    'AppError',
    'ErrorClassifier',
    'ErrorCode',
    'ErrorTracker',
    'SentryErrorTracker',
    'StorageError',
    'ValidationError',
    'Validator',
    'RetryExecutor',
    'with_retry',
    'PricingEngine',
    'BookingTimeline',
    'BookingLifecycle',
    'DocumentGenerator',
    'PermissiveTransitionPolicy',
    'StrictTransitionPolicy',
    'TransitionPolicy',
    'compute_analytics',
]
