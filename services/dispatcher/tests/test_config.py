"""Tests for dispatcher configuration."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from dispatcher.config import DispatchConfig, ProviderConfig


class TestDispatchConfig:
    def test_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            config = DispatchConfig()

        assert config.max_concurrency == 10
        assert config.max_attempts == 3
        assert config.backoff_base_seconds == 0.5
        assert config.backoff_cap_seconds == 30.0
        assert config.backoff_jitter == 0.2
        assert config.attempt_timeout_seconds == 10.0
        assert config.result_sinks == ["log"]
        assert config.log_level == "INFO"

    def test_from_env(self) -> None:
        env = {
            "DISPATCH_MAX_CONCURRENCY": "4",
            "DISPATCH_MAX_ATTEMPTS": "6",
            "DISPATCH_RESULT_SINKS": '["LOG", "sql"]',
            "DISPATCH_LOG_LEVEL": "DEBUG",
        }
        with patch.dict(os.environ, env, clear=True):
            config = DispatchConfig()

        assert config.max_concurrency == 4
        assert config.max_attempts == 6
        assert config.result_sinks == ["log", "sql"]
        assert config.log_level == "DEBUG"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"max_concurrency": 0},
            {"max_attempts": 0},
            {"backoff_jitter": 1.5},
            {"attempt_timeout_seconds": 0},
            {"backoff_base_seconds": 5, "backoff_cap_seconds": 1},
            {"result_sinks": ["log", "carrier-pigeon"]},
        ],
    )
    def test_invalid_values_rejected(self, overrides: dict) -> None:
        with pytest.raises(ValidationError):
            DispatchConfig(**overrides)


class TestProviderConfig:
    def test_reads_base_urls_from_env(self) -> None:
        env = {
            "EMAIL_API_BASE_URL": "https://mail.example.com",
            "SMS_API_BASE_URL": "https://sms.example.com",
        }
        with patch.dict(os.environ, env, clear=True):
            config = ProviderConfig()

        assert config.base_url_for("email") == "https://mail.example.com"
        assert config.base_url_for("SMS") == "https://sms.example.com"
        assert config.base_url_for("push") is None

    def test_empty_string_treated_as_unset(self) -> None:
        config = ProviderConfig(email_api_base_url="")

        assert config.base_url_for("email") is None

    def test_unknown_channel(self) -> None:
        with pytest.raises(ValueError):
            ProviderConfig().base_url_for("fax")
