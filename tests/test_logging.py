import logging
import uuid

import pytest

from config.settings import mask_sensitive_data

pytestmark = pytest.mark.unit


class TestCorrelationIdMiddleware:
    def test_returns_provided_request_id(self, client):
        custom_id = "my-custom-request-id-123"
        response = client.get("/health", HTTP_X_REQUEST_ID=custom_id)
        assert response["X-Request-ID"] == custom_id

    def test_generates_uuid_when_no_request_id(self, client):
        response = client.get("/health")
        request_id = response["X-Request-ID"]
        parsed = uuid.UUID(request_id, version=4)
        assert str(parsed) == request_id

    def test_correlation_id_in_logs(self, client, caplog):
        custom_id = "log-test-correlation-456"
        with caplog.at_level(logging.INFO):
            client.get("/health", HTTP_X_REQUEST_ID=custom_id)
        found = any(custom_id in record.getMessage() for record in caplog.records)
        assert found, (
            f"correlation_id '{custom_id}' not found in log records: "
            f"{[r.getMessage() for r in caplog.records]}"
        )

    def test_api_responses_carry_request_id(self, api_client_with_correlation):
        client, cid = api_client_with_correlation
        response = client.get("/api/v1/products/")
        assert response["X-Request-ID"] == cid


class TestSensitiveDataMasking:
    @pytest.mark.parametrize("key", ["otp", "code", "password", "token"])
    def test_sensitive_keys_masked(self, key):
        result = mask_sensitive_data(None, None, {"event": "test", key: "482913"})
        assert result[key] == "***MASKED***"

    def test_password_masked_in_values(self):
        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_bearer_header_masked_in_values(self):
        event_dict = {"event": "test", "header": "authorization: eyJhbGciOi.abc"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "eyJhbGciOi" not in result["header"]

    def test_token_masked_in_values(self):
        event_dict = {"event": "test", "header": "token=abc123xyz"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "abc123xyz" not in result["header"]
        assert "***MASKED***" in result["header"]

    def test_non_sensitive_data_unchanged(self):
        event_dict = {"event": "order.placed", "order_number": "TUA-12345678-AB12C"}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["order_number"] == "TUA-12345678-AB12C"
        assert result["event"] == "order.placed"

    def test_phone_is_not_masked(self):
        result = mask_sensitive_data(None, None, {"event": "otp.issued", "phone": "01711111111"})
        assert result["phone"] == "01711111111"
