"""Tests for the app factory and mounted routes."""

import logging

from fastapi.testclient import TestClient

from experiencess.api.factory import create_app
from experiencess.observability.logging import JsonFormatter


class TestRoutes:
    def test_health_available(self):
        client = TestClient(create_app())
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_booking_routes_mounted(self):
        paths = {route.path for route in create_app().routes}
        assert "/api/booking" in paths
        assert "/api/booking/commit" in paths
        assert "/api/booking/{booking_id}/questions" in paths
        assert "/api/booking/{booking_id}/payment-intent" in paths
        assert "/api/availability/{availability_id}/configure" in paths
        assert "/api/payment/webhook" in paths

    def test_docs_disabled(self):
        client = TestClient(create_app())
        assert client.get("/docs").status_code == 404


class TestCorrelationId:
    """Tests for correlation ID middleware."""

    def test_generates_correlation_id(self):
        client = TestClient(create_app())
        response = client.get("/health")
        assert "X-Correlation-ID" in response.headers
        # UUID format check
        assert len(response.headers["X-Correlation-ID"]) == 36

    def test_preserves_incoming_correlation_id(self):
        client = TestClient(create_app())
        response = client.get("/health", headers={"X-Correlation-ID": "test-123"})
        assert response.headers["X-Correlation-ID"] == "test-123"


class TestPackageLogging:
    def test_package_logger_gets_json_handler(self):
        create_app()
        package_logger = logging.getLogger("experiencess")

        assert any(isinstance(h.formatter, JsonFormatter) for h in package_logger.handlers)
        assert package_logger.level == logging.INFO

    def test_domain_logger_reaches_package_handler(self):
        create_app()
        domain_logger = logging.getLogger("experiencess.domain.commit")

        assert domain_logger.propagate is True
        assert domain_logger.getEffectiveLevel() == logging.INFO
        assert not domain_logger.handlers
