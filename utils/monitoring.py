"""
Sentry monitoring utilities for the service layer.
Provides a decorator and helpers for tracking performance and errors.

All sentry_sdk calls are no-ops until ``sentry_sdk.init`` has run (see
settings.SENTRY_DSN), so services can always be decorated.
"""

import functools
import logging
import time
from typing import Callable, Dict, Optional

import sentry_sdk
from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError

logger = logging.getLogger(__name__)

# domain outcomes, not faults: breadcrumb only, never captured
EXPECTED_ERRORS = (ValidationError, ObjectDoesNotExist, PermissionDenied)

# Performance thresholds (in seconds)
SLOW_OPERATION_THRESHOLD = 2.0
CRITICAL_OPERATION_THRESHOLD = 5.0


class ServiceMonitor:
    """Breadcrumbs and log levels for service operations."""

    COMPONENT_SERVICE = "service"

    @staticmethod
    def add_breadcrumb(message: str, category: str = "service", level: str = "info", data: Optional[Dict] = None):
        sentry_sdk.add_breadcrumb(category=category, message=message, level=level, data=data or {})

    @staticmethod
    def log_level_for(execution_time: float) -> int:
        if execution_time > CRITICAL_OPERATION_THRESHOLD:
            return logging.ERROR
        if execution_time > SLOW_OPERATION_THRESHOLD:
            return logging.WARNING
        return logging.DEBUG


def _module_of(func: Callable) -> str:
    return (func.__module__ or "service").split(".")[0]


def track_service_operation(operation_name: str):
    """
    Decorator to track service layer operations with Sentry spans.

    Records execution time on the span, leaves breadcrumbs, logs slow calls
    and captures exceptions before re-raising them.

    Usage:
        @track_service_operation("custom_gpt.create")
        def create(self, data, user_id):
            ...
    """

    def decorator(func: Callable) -> Callable:
        module = _module_of(func)
        category = f"{module}.{ServiceMonitor.COMPONENT_SERVICE}"

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            ServiceMonitor.add_breadcrumb(
                f"Starting service operation: {operation_name}",
                category=category,
                data={"function": func.__name__},
            )
            with sentry_sdk.start_span(op=f"service.{module}", name=f"service.{operation_name}") as span:
                span.set_tag("operation", operation_name)
                start_time = time.time()
                try:
                    result = func(*args, **kwargs)
                except Exception as exc:
                    execution_time = time.time() - start_time
                    span.set_data("execution_time", execution_time)
                    span.set_data("status", "error")
                    span.set_data("error_type", type(exc).__name__)
                    ServiceMonitor.add_breadcrumb(
                        f"Error in {operation_name}: {exc}",
                        category=category,
                        level="error",
                    )
                    if isinstance(exc, EXPECTED_ERRORS):
                        logger.info("Service %s rejected: %s", operation_name, exc)
                        raise
                    sentry_sdk.capture_exception(exc)
                    logger.error(
                        "Service %s failed after %.3fs [%s: %s]",
                        operation_name, execution_time, type(exc).__name__, exc,
                    )
                    raise

                execution_time = time.time() - start_time
                span.set_data("execution_time", execution_time)
                span.set_data("status", "success")
                logger.log(
                    ServiceMonitor.log_level_for(execution_time),
                    "Service %s completed in %.3fs", operation_name, execution_time,
                )
                return result

        return wrapper

    return decorator
