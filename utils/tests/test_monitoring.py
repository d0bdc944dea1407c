"""
Tests for the Sentry monitoring decorator used by the service layer.
"""

import logging
from unittest.mock import MagicMock, patch

from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError
from django.test import SimpleTestCase

from utils.monitoring import (
    CRITICAL_OPERATION_THRESHOLD,
    SLOW_OPERATION_THRESHOLD,
    ServiceMonitor,
    track_service_operation,
)


class LogLevelTestCase(SimpleTestCase):

    def test_thresholds(self):
        self.assertEqual(SLOW_OPERATION_THRESHOLD, 2.0)
        self.assertEqual(CRITICAL_OPERATION_THRESHOLD, 5.0)

    def test_log_level_for(self):
        self.assertEqual(ServiceMonitor.log_level_for(0.1), logging.DEBUG)
        self.assertEqual(ServiceMonitor.log_level_for(2.5), logging.WARNING)
        self.assertEqual(ServiceMonitor.log_level_for(6.0), logging.ERROR)


@patch("utils.monitoring.sentry_sdk")
class TrackServiceOperationTestCase(SimpleTestCase):
    """The decorator records spans and breadcrumbs and re-raises everything"""

    def test_success_returns_result(self, mock_sentry):
        span = mock_sentry.start_span.return_value.__enter__.return_value

        @track_service_operation("demo.add")
        def add(a, b):
            return a + b

        self.assertEqual(add(2, 3), 5)
        mock_sentry.start_span.assert_called_once_with(op="service.utils", name="service.demo.add")
        span.set_tag.assert_called_once_with("operation", "demo.add")
        span.set_data.assert_any_call("status", "success")
        mock_sentry.capture_exception.assert_not_called()

    def test_keeps_function_metadata(self, mock_sentry):
        @track_service_operation("demo.named")
        def named():
            """Docstring."""

        self.assertEqual(named.__name__, "named")
        self.assertEqual(named.__doc__, "Docstring.")

    def test_expected_errors_are_not_captured(self, mock_sentry):
        for error in (ValidationError("bad"), ObjectDoesNotExist("missing"), PermissionDenied("no")):
            with self.subTest(error=type(error).__name__):
                @track_service_operation("demo.reject")
                def reject():
                    raise error

                with self.assertRaises(type(error)):
                    reject()

        mock_sentry.capture_exception.assert_not_called()

    def test_unexpected_errors_are_captured_and_reraised(self, mock_sentry):
        span = mock_sentry.start_span.return_value.__enter__.return_value
        failure = RuntimeError("boom")

        @track_service_operation("demo.fail")
        def fail():
            raise failure

        with self.assertLogs("utils.monitoring", level="ERROR") as logs:
            with self.assertRaises(RuntimeError):
                fail()

        mock_sentry.capture_exception.assert_called_once_with(failure)
        span.set_data.assert_any_call("error_type", "RuntimeError")
        self.assertIn("demo.fail", logs.output[0])

    def test_breadcrumbs(self, mock_sentry):
        @track_service_operation("demo.crumbs")
        def crumbs():
            return None

        crumbs()
        mock_sentry.add_breadcrumb.assert_called_once_with(
            category="utils.service",
            message="Starting service operation: demo.crumbs",
            level="info",
            data={"function": "crumbs"},
        )

    @patch("utils.monitoring.time")
    def test_slow_operation_logs_warning(self, mock_time, mock_sentry):
        mock_time.time.side_effect = [100.0, 103.0]

        @track_service_operation("demo.slow")
        def slow():
            return "done"

        with self.assertLogs("utils.monitoring", level="WARNING") as logs:
            self.assertEqual(slow(), "done")
        self.assertIn("Service demo.slow completed in 3.000s", logs.output[0])


class CleanHelpersTestCase(SimpleTestCase):

    def test_clean_serializer_flattens_errors(self):
        from utils import clean_serializer

        serializer = MagicMock()
        serializer.is_valid.return_value = False
        serializer.errors = {"name": ["Required."], "apiKeys": "Not a dict."}

        with self.assertRaises(ValidationError) as cm:
            clean_serializer(serializer)
        self.assertEqual(cm.exception.message_dict, {"name": ["Required."], "apiKeys": ["Not a dict."]})

    def test_clean_serializer_returns_validated_data(self):
        from utils import clean_serializer

        serializer = MagicMock()
        serializer.is_valid.return_value = True
        serializer.validated_data = {"name": "x"}
        self.assertEqual(clean_serializer(serializer), {"name": "x"})
