"""Tests for configuration loading and validation."""

from dataclasses import replace

import pytest

from chatbridge.config import (
    AppConfig,
    ProxyConfig,
    SessionConfig,
    WebhookConfig,
    _validate_config,
)


class TestConfigValidation:
    def test_default_config_passes_validation(self):
        config = AppConfig()
        _validate_config(config)  # should not raise

    def test_invalid_proxy_timeout(self):
        config = replace(AppConfig(), proxy=replace(ProxyConfig(), timeout_sec=0))
        with pytest.raises(ValueError, match="CHAT_PROXY_TIMEOUT"):
            _validate_config(config)

    def test_invalid_webhook_timeout(self):
        config = replace(AppConfig(), webhook=replace(WebhookConfig(), timeout_sec=-1.0))
        with pytest.raises(ValueError, match="WEBHOOK_TIMEOUT"):
            _validate_config(config)

    def test_invalid_port(self):
        config = replace(AppConfig(), webhook=replace(WebhookConfig(), port=70000))
        with pytest.raises(ValueError, match="PROXY_PORT"):
            _validate_config(config)

    def test_empty_storage_key(self):
        config = replace(AppConfig(), session=replace(SessionConfig(), storage_key="  "))
        with pytest.raises(ValueError, match="SESSION_STORAGE_KEY"):
            _validate_config(config)

    def test_webhook_url_must_be_http(self):
        config = replace(AppConfig(), webhook=replace(WebhookConfig(), url="ftp://example.com"))
        with pytest.raises(ValueError, match="AUTOMATION_WEBHOOK_URL"):
            _validate_config(config)

    def test_proxy_url_must_be_http(self):
        config = replace(AppConfig(), proxy=replace(ProxyConfig(), endpoint_url="/api/chatbot"))
        with pytest.raises(ValueError, match="CHAT_PROXY_URL"):
            _validate_config(config)

    def test_safe_int_parsing(self):
        from chatbridge.config import _safe_int

        assert _safe_int("NONEXISTENT_VAR_12345", "42") == 42

    def test_safe_float_parsing(self):
        from chatbridge.config import _safe_float

        assert _safe_float("NONEXISTENT_VAR_12345", "3.14") == pytest.approx(3.14)

    def test_safe_float_rejects_garbage(self, monkeypatch):
        from chatbridge.config import _safe_float

        monkeypatch.setenv("CHATBRIDGE_TEST_FLOAT", "soon")
        with pytest.raises(ValueError, match="CHATBRIDGE_TEST_FLOAT"):
            _safe_float("CHATBRIDGE_TEST_FLOAT", "1.0")
