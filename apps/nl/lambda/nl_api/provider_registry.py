"""Provider strategy lookup table, keyed by the configured provider id."""

from collections.abc import Callable

from .config import NlSettings
from .errors import ConfigurationError
from .infra.runtime import (
    get_bedrock_runnable,
    get_gemini_api_key,
    get_genai_runnable,
    get_model_http_runnable,
    get_openai_chat_runnable,
)
from .openapi.converter import SchemaConverter
from .providers.base import ProviderStrategy
from .providers.bedrock_provider import BedrockStrategy
from .providers.gemini_free_provider import GeminiFreeStrategy
from .providers.gemini_vertex_provider import GeminiVertexStrategy
from .providers.ollama_provider import OllamaStrategy
from .providers.openai_provider import OpenAIStrategy

StrategyFactory = Callable[[NlSettings, SchemaConverter], ProviderStrategy]


STRATEGY_FACTORIES: dict[str, StrategyFactory] = {
    "gemini-vertex": lambda settings, converter: GeminiVertexStrategy(
        converter=converter,
        get_genai_runnable=get_genai_runnable,
        model=settings.vertex_model,
        max_output_tokens=settings.max_output_tokens,
    ),
    "gemini-free": lambda settings, converter: GeminiFreeStrategy(
        converter=converter,
        get_model_http_runnable=get_model_http_runnable,
        get_api_key=get_gemini_api_key,
        model=settings.gemini_model,
        base_url=settings.gemini_base_url,
    ),
    "ollama": lambda settings, converter: OllamaStrategy(
        converter=converter,
        get_model_http_runnable=get_model_http_runnable,
        model=settings.ollama_model,
        base_url=settings.ollama_base_url,
    ),
    "openai": lambda settings, converter: OpenAIStrategy(
        converter=converter,
        get_chat_runnable=get_openai_chat_runnable,
        model=settings.openai_model,
        max_output_tokens=settings.max_output_tokens,
    ),
    "bedrock": lambda settings, converter: BedrockStrategy(
        converter=converter,
        get_bedrock_runnable=get_bedrock_runnable,
        model_id=settings.bedrock_model_id,
        max_output_tokens=settings.max_output_tokens,
    ),
}
ALLOWED_PROVIDERS = set(STRATEGY_FACTORIES)


def build_strategy(settings: NlSettings, converter: SchemaConverter) -> ProviderStrategy:
    factory = STRATEGY_FACTORIES.get(settings.provider)
    if factory is None:
        raise ConfigurationError(
            f"No strategy found for provider: {settings.provider}. "
            f"Valid values: {', '.join(sorted(ALLOWED_PROVIDERS))}"
        )
    return factory(settings, converter)
