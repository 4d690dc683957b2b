"""Environment-driven settings for the natural-language command Lambda.

Every field can be set through an ``NL_``-prefixed environment variable
(``NL_PROVIDER=gemini-free``) or a local ``.env`` file. Secrets may be given
directly or as the name of an SSM SecureString parameter; see
``nl_api.infra.runtime.resolve_secret``.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    AWS_REGION,
    DEFAULT_API_BASE_URL,
    DEFAULT_BEDROCK_MODEL,
    DEFAULT_GEMINI_MODEL,
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_MODEL_TIMEOUT_SECONDS,
    DEFAULT_OLLAMA_BASE_URL,
    DEFAULT_OLLAMA_MODEL,
    DEFAULT_OPENAI_MODEL,
    DEFAULT_PROVIDER,
    DEFAULT_REST_TIMEOUT_SECONDS,
    DEFAULT_SPEC_URL,
    DEFAULT_VERTEX_LOCATION,
    DEFAULT_VERTEX_MODEL,
    GEMINI_API_BASE_URL,
    GEMINI_API_KEY_PARAMETER_NAME,
    LANGSMITH_API_KEY_PARAMETER_NAME,
    OPENAI_API_KEY_PARAMETER_NAME,
    Orchestration,
    Provider,
)


class NlSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="NL_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    provider: Provider = DEFAULT_PROVIDER
    orchestration: Orchestration = "direct"
    spec_url: str = DEFAULT_SPEC_URL
    api_base_url: str = DEFAULT_API_BASE_URL
    rest_timeout_seconds: float = Field(default=DEFAULT_REST_TIMEOUT_SECONDS, gt=0)
    model_timeout_seconds: float = Field(default=DEFAULT_MODEL_TIMEOUT_SECONDS, gt=0)
    init_max_attempts: int = Field(default=30, ge=1)
    init_retry_interval_seconds: float = Field(default=1.0, ge=0)
    max_output_tokens: int = Field(default=DEFAULT_MAX_OUTPUT_TOKENS, ge=1, le=8192)

    # Gemini via Vertex AI
    vertex_project_id: str | None = None
    vertex_location: str = DEFAULT_VERTEX_LOCATION
    vertex_model: str = DEFAULT_VERTEX_MODEL

    # Gemini via AI Studio REST
    gemini_api_key: str | None = None
    gemini_api_key_parameter: str | None = GEMINI_API_KEY_PARAMETER_NAME
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_base_url: str = GEMINI_API_BASE_URL

    # Ollama
    ollama_base_url: str = DEFAULT_OLLAMA_BASE_URL
    ollama_model: str = DEFAULT_OLLAMA_MODEL

    # OpenAI
    openai_api_key: str | None = None
    openai_api_key_parameter: str | None = OPENAI_API_KEY_PARAMETER_NAME
    openai_model: str = DEFAULT_OPENAI_MODEL
    openai_base_url: str | None = None

    # Bedrock
    bedrock_model_id: str = DEFAULT_BEDROCK_MODEL
    aws_region: str = AWS_REGION

    langsmith_api_key: str | None = None
    langsmith_api_key_parameter: str | None = LANGSMITH_API_KEY_PARAMETER_NAME


@lru_cache(maxsize=1)
def get_settings() -> NlSettings:
    return NlSettings()
