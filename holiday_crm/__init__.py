"""
Holiday CRM booking core.

Validation, error classification, retry, dynamic pricing and the booking
lifecycle for the cruise and hotel booking dashboards.
"""

__version__ = "0.1.0"
