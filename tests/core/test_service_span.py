"""Tests for the service_span context manager."""

import pytest
from app.core.telemetry import service_span
from opentelemetry.trace import SpanKind, StatusCode

from tests.helpers.otel import assert_span_status, spans_named


class TestServiceSpan:
    """Tests for service_span context manager."""

    def test_service_span_sets_ok_status_on_success(self, otel_enabled_provider: tuple) -> None:
        _, exporter = otel_enabled_provider

        with service_span("test.operation", "test-service"):
            pass

        spans = spans_named(exporter, "test.operation")
        assert len(spans) == 1
        assert_span_status(spans[0], StatusCode.OK)

    def test_service_span_records_error_and_propagates(self, otel_enabled_provider: tuple) -> None:
        """Test that exceptions mark the span ERROR and are not swallowed."""
        _, exporter = otel_enabled_provider

        error_msg = "Test error"
        with (
            pytest.raises(ValueError, match=error_msg),
            service_span("test.operation", "test-service"),
        ):
            raise ValueError(error_msg)

        spans = spans_named(exporter, "test.operation")
        assert len(spans) == 1
        assert_span_status(spans[0], StatusCode.ERROR, check_exception=True)

    def test_service_span_sets_kind_and_attributes(self, otel_enabled_provider: tuple) -> None:
        _, exporter = otel_enabled_provider

        with service_span("transport.fetch", "tfl", kind=SpanKind.CLIENT, url="https://api.tfl.gov.uk/Line"):
            pass

        span = spans_named(exporter, "transport.fetch")[0]
        assert span.kind == SpanKind.CLIENT
        assert span.attributes is not None
        assert span.attributes["peer.service"] == "tfl"
        assert span.attributes["url"] == "https://api.tfl.gov.uk/Line"
