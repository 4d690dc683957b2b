"""Runtime infrastructure helpers for credentials, tracing, HTTP clients and provider runnables."""

import logging
import os
from functools import lru_cache
from typing import Any

import boto3
import httpx
from botocore.config import Config
from google import genai
from langchain_aws import ChatBedrockConverse
from langchain_core.messages import AIMessage
from langchain_core.runnables import Runnable, RunnableLambda
from langsmith import traceable
from langsmith.run_trees import get_cached_client
from openai import OpenAI

from nl_api.config import get_settings
from nl_api.constants import LANGSMITH_PROJECT, MAX_UPSTREAM_DETAIL_LENGTH
from nl_api.errors import ConfigurationError, UpstreamFailureError

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_ssm_client() -> Any:
    return boto3.client("ssm", region_name=get_settings().aws_region)


def _read_parameter(parameter_name: str) -> str:
    parameter = get_ssm_client().get_parameter(Name=parameter_name, WithDecryption=True)
    secret = parameter["Parameter"].get("Value")
    if not secret:
        raise RuntimeError(f"SSM parameter {parameter_name} is empty")
    return secret


def resolve_secret(value: str | None, parameter_name: str | None, label: str) -> str:
    """Return an explicitly configured secret, else read it from SSM Parameter Store."""
    if value:
        return value
    if not parameter_name:
        raise ConfigurationError(f"{label} is not configured")
    try:
        return _read_parameter(parameter_name)
    except Exception as exc:
        raise ConfigurationError(f"{label} could not be read from SSM: {exc}") from exc


def _langsmith_api_key() -> str | None:
    settings = get_settings()
    try:
        return resolve_secret(
            settings.langsmith_api_key, settings.langsmith_api_key_parameter, "LangSmith API key"
        )
    except ConfigurationError:
        logger.warning("LangSmith API key unavailable; tracing stays off", exc_info=True)
        return None


@lru_cache(maxsize=1)
def ensure_langsmith_configured() -> None:
    """Export the LangSmith tracing environment once per container."""
    api_key = _langsmith_api_key()
    if api_key is None:
        for name in ("LANGSMITH_TRACING", "LANGSMITH_API_KEY"):
            os.environ.pop(name, None)
        return

    os.environ.update({"LANGSMITH_TRACING": "true", "LANGSMITH_API_KEY": api_key})
    os.environ.setdefault("LANGSMITH_PROJECT", LANGSMITH_PROJECT)
    logger.info("LangSmith tracing enabled", extra={"project": os.environ["LANGSMITH_PROJECT"]})


def _tracing_enabled() -> bool:
    return os.environ.get("LANGSMITH_TRACING", "").lower() == "true" and bool(
        os.environ.get("LANGSMITH_API_KEY")
    )


def flush_langsmith_traces() -> None:
    """Block until queued runs are sent; Lambda may freeze the container after the response."""
    if not _tracing_enabled():
        return
    try:
        get_cached_client().flush()
    except Exception:
        logger.warning("LangSmith trace flush failed", exc_info=True)


@lru_cache(maxsize=1)
def get_rest_http_client() -> httpx.Client:
    return httpx.Client(timeout=get_settings().rest_timeout_seconds)


@lru_cache(maxsize=1)
def get_model_http_client() -> httpx.Client:
    return httpx.Client(timeout=get_settings().model_timeout_seconds)


@lru_cache(maxsize=1)
def get_gemini_api_key() -> str:
    settings = get_settings()
    return resolve_secret(
        settings.gemini_api_key, settings.gemini_api_key_parameter, "Gemini API key"
    )


@lru_cache(maxsize=1)
def get_openai_client() -> OpenAI:
    """Create an OpenAI client with LangSmith tracing configuration."""
    ensure_langsmith_configured()
    settings = get_settings()
    api_key = resolve_secret(
        settings.openai_api_key, settings.openai_api_key_parameter, "OpenAI API key"
    )
    return OpenAI(
        api_key=api_key,
        base_url=settings.openai_base_url,
        timeout=settings.model_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_genai_client() -> genai.Client:
    """Create a Gen AI SDK client bound to Vertex AI."""
    ensure_langsmith_configured()
    settings = get_settings()
    if not settings.vertex_project_id:
        raise ConfigurationError("Vertex project id is not configured")
    return genai.Client(
        vertexai=True,
        project=settings.vertex_project_id,
        location=settings.vertex_location,
        http_options=genai.types.HttpOptions(
            timeout=int(settings.model_timeout_seconds * 1000)
        ),
    )


@traceable(run_type="llm", name="openai.chat.completions.create")
def _invoke_openai_chat_completions(request_params: dict[str, Any]) -> Any:
    client = get_openai_client()
    return client.chat.completions.create(**request_params)


@lru_cache(maxsize=1)
def get_openai_chat_runnable() -> Runnable[dict[str, Any], Any]:
    return RunnableLambda(_invoke_openai_chat_completions).with_config(
        {"run_name": "nl_lambda_openai_chat_completions"}
    )


@traceable(run_type="llm", name="genai.models.generate_content")
def _invoke_genai_generate_content(request_params: dict[str, Any]) -> Any:
    client = get_genai_client()
    return client.models.generate_content(**request_params)


@lru_cache(maxsize=1)
def get_genai_runnable() -> Runnable[dict[str, Any], Any]:
    return RunnableLambda(_invoke_genai_generate_content).with_config(
        {"run_name": "nl_lambda_genai_generate_content"}
    )


@lru_cache(maxsize=8)
def get_bedrock_chat_model(model_id: str, max_tokens: int) -> ChatBedrockConverse:
    settings = get_settings()
    return ChatBedrockConverse(
        model=model_id,
        region_name=settings.aws_region,
        max_tokens=max_tokens,
        config=Config(
            connect_timeout=settings.model_timeout_seconds,
            read_timeout=settings.model_timeout_seconds,
        ),
    )


def _invoke_bedrock_converse(params: dict[str, Any]) -> AIMessage:
    model = get_bedrock_chat_model(params["model_id"], params["max_tokens"])
    if params.get("tools"):
        return model.bind_tools(params["tools"]).invoke(params["messages"])
    return model.invoke(params["messages"])


@lru_cache(maxsize=1)
def get_bedrock_runnable() -> Runnable[dict[str, Any], AIMessage]:
    return RunnableLambda(_invoke_bedrock_converse).with_config(
        {"run_name": "nl_lambda_bedrock_converse"}
    )


@traceable(run_type="llm", name="model.http.post")
def _invoke_model_http(params: dict[str, Any]) -> dict[str, Any]:
    """POST a JSON body to a model endpoint and return the decoded JSON response."""
    try:
        response = get_model_http_client().post(
            params["url"], json=params["json"], headers=params.get("headers") or {}
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise UpstreamFailureError(
            "Model endpoint returned an error",
            upstream=params["provider"],
            status_code=exc.response.status_code,
            detail=exc.response.text[:MAX_UPSTREAM_DETAIL_LENGTH] or None,
        ) from exc
    except httpx.HTTPError as exc:
        raise UpstreamFailureError(
            "Model endpoint is unreachable", upstream=params["provider"], detail=str(exc)
        ) from exc

    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamFailureError(
            "Model endpoint returned invalid JSON", upstream=params["provider"]
        ) from exc


@lru_cache(maxsize=1)
def get_model_http_runnable() -> Runnable[dict[str, Any], dict[str, Any]]:
    return RunnableLambda(_invoke_model_http).with_config({"run_name": "nl_lambda_model_http"})
