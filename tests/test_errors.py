"""
Tests for Image Proxy Error Classes
"""

import pytest
from unittest.mock import Mock

from image_proxy.errors import (
    ProxyError, ConfigurationError, ValidationError, UpstreamError,
    JobFailedError, TimeoutError, UnknownResponseFormatError,
    create_upstream_error, extract_error_message, redact_secrets
)


def make_response(status_code, json_data=None, text=""):
    response = Mock()
    response.status_code = status_code
    if json_data is None:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = json_data
    response.text = text
    return response


class TestProxyError:
    """Test base error class"""

    def test_basic_error(self):
        err = ProxyError("Something went wrong")
        assert err.message == "Something went wrong"
        assert err.details == {}
        assert str(err) == "Something went wrong"
        assert err.http_status == 500

    def test_to_dict(self):
        err = ProxyError("Test error", {"foo": "bar"})
        assert err.to_dict() == {"error": "Test error"}

    def test_to_dict_redacts_secrets(self):
        err = ProxyError("bad key sk-1 rejected")
        assert err.to_dict(["sk-1", None]) == {"error": "bad key *** rejected"}


class TestStatusMapping:
    """Each error kind answers with its own HTTP status"""

    def test_validation_is_client_error(self):
        assert ValidationError("Missing prompt in request body").http_status == 400

    @pytest.mark.parametrize("err", [
        ConfigurationError(),
        UpstreamError("boom", provider="openai", status_code=502),
        JobFailedError("job-1", "out of memory"),
        TimeoutError("job-1", 80, 1.5),
        UnknownResponseFormatError("text/html"),
    ])
    def test_provider_failures_are_server_errors(self, err):
        assert err.http_status == 500


class TestConfigurationError:

    def test_field_recorded(self):
        err = ConfigurationError("OPENAI_API_KEY not configured", field="OPENAI_API_KEY")
        assert err.field == "OPENAI_API_KEY"
        assert err.details == {"field": "OPENAI_API_KEY"}


class TestUpstreamError:

    def test_str_includes_provider_and_status(self):
        err = UpstreamError("Rate limited", provider="replicate", status_code=429)
        assert str(err) == "[replicate] HTTP 429: Rate limited"
        assert err.message == "Rate limited"

    def test_str_without_status(self):
        err = UpstreamError("Connection refused", provider="openai")
        assert str(err) == "[openai] Connection refused"


class TestJobErrors:

    def test_job_failed_carries_detail(self):
        err = JobFailedError("abc", "CUDA out of memory")
        assert err.message == "Prediction failed: CUDA out of memory"
        assert err.job_id == "abc"

    def test_job_failed_structured_detail(self):
        err = JobFailedError("abc", {"code": "nsfw"})
        assert '"code": "nsfw"' in err.message

    def test_job_failed_without_detail(self):
        assert "unknown error" in JobFailedError("abc").message

    def test_timeout_message_is_fixed(self):
        err = TimeoutError("abc", 80, 1.5)
        assert err.message == "Prediction timed out after 80 polling attempts"


class TestExtractErrorMessage:

    def test_openai_style(self):
        payload = {"error": {"message": "Billing hard limit reached", "type": "invalid_request_error"}}
        assert extract_error_message(payload) == "Billing hard limit reached"

    def test_string_error(self):
        assert extract_error_message({"error": "Model is loading"}) == "Model is loading"

    def test_detail(self):
        assert extract_error_message({"detail": "Invalid version"}) == "Invalid version"

    def test_falls_back_to_json(self):
        assert extract_error_message({"status": 418}) == '{"status": 418}'

    def test_empty(self):
        assert extract_error_message(None) is None
        assert extract_error_message("") is None


class TestCreateUpstreamError:

    def test_json_body(self):
        response = make_response(400, {"error": {"message": "Your prompt was rejected"}})
        err = create_upstream_error("openai", response)
        assert isinstance(err, UpstreamError)
        assert err.message == "Your prompt was rejected"
        assert err.status_code == 400
        assert err.provider == "openai"

    def test_text_body(self):
        response = make_response(502, text="Bad Gateway")
        err = create_upstream_error("replicate", response)
        assert err.message == "Bad Gateway"
        assert err.payload == "Bad Gateway"

    def test_empty_body(self):
        err = create_upstream_error("huggingface", make_response(503, text=""))
        assert err.message == "HTTP 503"


class TestRedactSecrets:

    def test_replaces_all_secrets(self):
        message = "key sk-abc and token r8_xyz were rejected"
        assert redact_secrets(message, ["sk-abc", "r8_xyz", None]) == \
            "key *** and token *** were rejected"

    def test_no_secrets(self):
        assert redact_secrets("plain", []) == "plain"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
