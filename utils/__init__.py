"""
Utility modules for the backend application.

This package contains shared helpers used across the apps.
"""

from .monitoring import ServiceMonitor, track_service_operation
from .validation import clean_form, clean_serializer

__all__ = ["ServiceMonitor", "track_service_operation", "clean_form", "clean_serializer"]
