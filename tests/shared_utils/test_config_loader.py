"""
Comprehensive tests for shared_utils.config_loader.

Covers the field validators, get_api_base_url(), evidence/dedupe defaults,
get_settings() caching with the Secrets Manager fallback, and
get_secret_from_aws().
"""

import os
from unittest.mock import MagicMock, patch

import pytest

from shared_utils.config_loader import Settings, get_settings, get_secret_from_aws


def _settings(base_settings_kwargs, **overrides) -> Settings:
    return Settings(**{**base_settings_kwargs, **overrides})


# ---------------------------------------------------------------------------
# validate_llm_provider
# ---------------------------------------------------------------------------


class TestValidateLLMProvider:
    @pytest.mark.parametrize("provider", ["openai", "gemini", "anthropic"])
    def test_supported(self, base_settings_kwargs, provider: str) -> None:
        s = _settings(base_settings_kwargs, default_llm_provider=provider)
        assert s.default_llm_provider == provider

    def test_case_insensitive(self, base_settings_kwargs) -> None:
        s = _settings(base_settings_kwargs, default_llm_provider="Anthropic")
        assert s.default_llm_provider == "anthropic"

    def test_invalid_raises(self, base_settings_kwargs) -> None:
        with pytest.raises(ValueError, match="default_llm_provider"):
            _settings(base_settings_kwargs, default_llm_provider="bedrock")


# ---------------------------------------------------------------------------
# validate_environment / validate_cache_ttl
# ---------------------------------------------------------------------------


class TestValidateEnvironment:
    @pytest.mark.parametrize(
        "input_val, expected",
        [
            ("development", "development"),
            ("staging", "staging"),
            ("PRODUCTION", "production"),
        ],
    )
    def test_valid_environments(self, base_settings_kwargs, input_val: str, expected: str) -> None:
        s = _settings(base_settings_kwargs, environment=input_val)
        assert s.environment == expected

    def test_invalid_raises(self, base_settings_kwargs) -> None:
        with pytest.raises(ValueError, match="environment"):
            _settings(base_settings_kwargs, environment="alpha")


class TestValidateCacheTTL:
    def test_non_positive_ttl_raises(self, base_settings_kwargs) -> None:
        with pytest.raises(ValueError, match="company_cache_ttl_seconds"):
            _settings(base_settings_kwargs, company_cache_ttl_seconds=0)


# ---------------------------------------------------------------------------
# get_api_base_url
# ---------------------------------------------------------------------------


class TestGetApiBaseUrl:
    def test_default_http(self, base_settings_kwargs) -> None:
        s = _settings(base_settings_kwargs, api_host="api.test.com", api_port=8000)
        assert s.get_api_base_url() == "http://api.test.com:8000"

    def test_https_443_omits_port(self, base_settings_kwargs) -> None:
        s = _settings(base_settings_kwargs, api_host="api.test.com", api_port=443, api_protocol="https")
        assert s.get_api_base_url() == "https://api.test.com"

    def test_http_80_omits_port(self, base_settings_kwargs) -> None:
        s = _settings(base_settings_kwargs, api_host="localhost", api_port=80)
        assert s.get_api_base_url() == "http://localhost"


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestSettingsDefaults:
    def test_evidence_and_dedupe_defaults(self, base_settings_kwargs) -> None:
        s = _settings(base_settings_kwargs)
        assert s.aws_region == "eu-west-2"
        assert s.dedupe_table_name == ""
        assert s.product_knowledge_path == ""
        assert s.company_cache_ttl_seconds == 300.0

    def test_retry_defaults(self, base_settings_kwargs) -> None:
        s = _settings(base_settings_kwargs)
        assert s.llm_max_retries == 3
        assert s.llm_backoff_seconds == 0.5


# ---------------------------------------------------------------------------
# get_secret_from_aws
# ---------------------------------------------------------------------------


class TestGetSecretFromAWS:
    @patch("shared_utils.config_loader.boto3.client")
    def test_success(self, mock_client_ctor) -> None:
        mock_client = MagicMock()
        mock_client.get_secret_value.return_value = {
            "SecretString": '{"openai_api_key": "sk-test123"}'
        }
        mock_client_ctor.return_value = mock_client

        result = get_secret_from_aws("my-secret", "openai_api_key", "eu-west-2")
        assert result == "sk-test123"
        mock_client_ctor.assert_called_once_with("secretsmanager", region_name="eu-west-2")

    @patch("shared_utils.config_loader.boto3.client")
    def test_no_secret_string_returns_empty(self, mock_client_ctor) -> None:
        mock_client = MagicMock()
        mock_client.get_secret_value.return_value = {"SecretBinary": b"binary"}
        mock_client_ctor.return_value = mock_client

        assert get_secret_from_aws("my-secret", "openai_api_key") == ""

    @patch("shared_utils.config_loader.boto3.client")
    def test_missing_key_returns_empty(self, mock_client_ctor) -> None:
        mock_client = MagicMock()
        mock_client.get_secret_value.return_value = {"SecretString": '{"other_key": "val"}'}
        mock_client_ctor.return_value = mock_client

        assert get_secret_from_aws("my-secret", "openai_api_key") == ""

    @patch("shared_utils.config_loader.boto3.client")
    def test_exception_returns_empty(self, mock_client_ctor) -> None:
        mock_client_ctor.side_effect = Exception("no credentials")
        assert get_secret_from_aws("my-secret", "openai_api_key") == ""


# ---------------------------------------------------------------------------
# get_settings caching
# ---------------------------------------------------------------------------


class TestGetSettings:
    def test_get_settings_reads_environment(self) -> None:
        get_settings.cache_clear()
        with patch.dict(os.environ, {
            "DEFAULT_LLM_PROVIDER": "Gemini",
            "GEMINI_API_KEY": "g-test",
            "ENVIRONMENT": "staging",
        }, clear=False):
            settings = get_settings()
            assert isinstance(settings, Settings)
            assert settings.default_llm_provider == "gemini"
            assert settings.environment == "staging"
            assert get_settings() is settings

        get_settings.cache_clear()

    @patch("shared_utils.config_loader.get_secret_from_aws", return_value="sk-from-secrets")
    def test_openai_key_from_secrets_manager(self, mock_secret) -> None:
        get_settings.cache_clear()
        with patch.dict(os.environ, {
            "OPENAI_SECRET_NAME": "sales-assistant/openai",
            "OPENAI_API_KEY": "",
            "ENVIRONMENT": "development",
        }, clear=False):
            settings = get_settings()
            assert settings.openai_api_key == "sk-from-secrets"
            mock_secret.assert_called_once_with(
                "sales-assistant/openai", "openai_api_key", settings.aws_region
            )

        get_settings.cache_clear()
