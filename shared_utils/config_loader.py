from pydantic_settings import BaseSettings
from pydantic import field_validator, ConfigDict
from functools import lru_cache
from typing import Optional
import json

import boto3

from shared_utils.constants import Defaults, LogScope
from shared_utils.logging_utils import get_scoped_logger

logger = get_scoped_logger(LogScope.CONFIG)


def get_secret_from_aws(secret_name: str, key: str, region: str = Defaults.AWS_REGION) -> str:
    """Fetch a single key of a JSON secret from AWS Secrets Manager.

    Args:
        secret_name: Name of the secret in Secrets Manager
        key: Key inside the secret JSON document
        region: AWS region

    Returns:
        Secret value or empty string if fetch fails
    """
    try:
        client = boto3.client("secretsmanager", region_name=region)
        response = client.get_secret_value(SecretId=secret_name)
        if "SecretString" in response:
            secret = json.loads(response["SecretString"])
            return secret.get(key, "")
        return ""
    except Exception as e:
        logger.warning("secret_fetch_failed", secret_name=secret_name, error=str(e))
        return ""


class Settings(BaseSettings):
    """Application configuration with environment variable precedence.

    Precedence: 1) Environment Variables > 2) .env file > 3) Class defaults
    """
    # Application metadata
    app_name: str = "Sales Assistant"
    app_version: str = "1.0.0"
    app_description: str = "Question routing and evidence composition over sales meeting transcripts"
    api_version: str = "v1"

    # API Base URL Configuration
    api_host: str = "localhost"
    api_port: int = 8000
    api_protocol: str = "http"

    # LLM Configuration
    default_llm_provider: str = "openai"
    openai_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    openai_secret_name: Optional[str] = None
    llm_max_retries: int = Defaults.MAX_RETRIES
    llm_backoff_seconds: float = Defaults.BACKOFF_SECONDS

    # AWS
    aws_region: str = Defaults.AWS_REGION
    aws_endpoint_url: str = ""
    dedupe_table_name: str = ""  # empty -> in-memory dedupe only

    # Evidence sources
    product_knowledge_path: str = ""
    transcript_data_path: str = ""  # JSON seed for the in-memory transcript store
    company_cache_ttl_seconds: float = Defaults.COMPANY_CACHE_TTL_SECONDS

    # Environment
    environment: str = "development"
    log_level: str = Defaults.LOG_LEVEL

    model_config = ConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @field_validator('default_llm_provider')
    @classmethod
    def validate_llm_provider(cls, v: str) -> str:
        """Validate LLM provider is supported."""
        valid_providers = {"openai", "gemini", "anthropic"}
        if v.lower() not in valid_providers:
            raise ValueError(f"default_llm_provider must be one of {valid_providers}, got {v}")
        return v.lower()

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is recognized."""
        valid_envs = {"development", "staging", "production"}
        if v.lower() not in valid_envs:
            raise ValueError(f"environment must be one of {valid_envs}, got {v}")
        return v.lower()

    @field_validator('company_cache_ttl_seconds')
    @classmethod
    def validate_cache_ttl(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("company_cache_ttl_seconds must be positive")
        return v

    def get_api_base_url(self) -> str:
        """Get full API base URL constructed from host, port and protocol.

        Returns:
            Full API base URL (e.g., "http://localhost:8000")
        """
        # Standard ports are omitted
        port_str = "" if (
            (self.api_protocol == "http" and self.api_port == 80) or
            (self.api_protocol == "https" and self.api_port == 443)
        ) else f":{self.api_port}"

        return f"{self.api_protocol}://{self.api_host}{port_str}"


@lru_cache()
def get_settings() -> Settings:
    """Load and cache application settings.

    If OPENAI_SECRET_NAME is provided and no key is set in the environment,
    fetches the OpenAI API key from AWS Secrets Manager.

    Returns:
        Validated Settings instance

    Raises:
        ValueError: If settings are invalid
    """
    settings = Settings()

    if settings.openai_secret_name and not settings.openai_api_key:
        secret_key = get_secret_from_aws(
            settings.openai_secret_name, "openai_api_key", settings.aws_region
        )
        if secret_key:
            settings.openai_api_key = secret_key
            logger.debug("fetched_openai_key_from_secrets_manager")

    # Secrets are reported as present/absent only
    logger.info(
        "configuration_loaded",
        environment=settings.environment,
        default_llm_provider=settings.default_llm_provider,
        openai_key_configured=bool(settings.openai_api_key),
        gemini_key_configured=bool(settings.gemini_api_key),
        anthropic_key_configured=bool(settings.anthropic_api_key),
        dedupe_table=settings.dedupe_table_name or "in-memory",
    )

    return settings
