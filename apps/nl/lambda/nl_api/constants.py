"""Shared constants and literal types for the natural-language command Lambda."""

from typing import Literal

OPENAI_API_KEY_PARAMETER_NAME = "/nl-app/openai-api-key"
GEMINI_API_KEY_PARAMETER_NAME = "/nl-app/gemini-api-key"
LANGSMITH_API_KEY_PARAMETER_NAME = "/nl-app/langsmith-api-key"
AWS_REGION = "ap-northeast-1"
LANGSMITH_PROJECT = "nl-rest-bridge"

DEFAULT_PROVIDER = "ollama"
DEFAULT_SPEC_URL = "http://localhost:8080/v3/api-docs"
DEFAULT_API_BASE_URL = "http://localhost:8080"
DEFAULT_REST_TIMEOUT_SECONDS = 30.0
DEFAULT_MODEL_TIMEOUT_SECONDS = 60.0

DEFAULT_VERTEX_LOCATION = "us-central1"
DEFAULT_VERTEX_MODEL = "gemini-1.5-pro"
DEFAULT_GEMINI_MODEL = "gemini-1.5-flash"
GEMINI_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"
DEFAULT_OLLAMA_MODEL = "llama3.1"
DEFAULT_OPENAI_MODEL = "gpt-4.1-mini"
DEFAULT_BEDROCK_MODEL = "global.anthropic.claude-haiku-4-5-20251001-v1:0"
DEFAULT_MAX_OUTPUT_TOKENS = 1000

OPENAPI_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")
SUPPORTED_HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")
BODY_HTTP_METHODS = frozenset({"POST", "PUT", "PATCH"})
JSON_CONTENT_TYPE = "application/json"

CLARIFICATION_MESSAGE = (
    "The model could not determine which API to call. Please rephrase your request."
)
NOT_READY_MESSAGE = "Orchestrator is still initializing, please retry."
UPDATED_ACKNOWLEDGEMENT = '{"result":"updated"}'
DELETED_ACKNOWLEDGEMENT = '{"result":"deleted"}'
NOT_READY_RETRY_AFTER_SECONDS = 5
MAX_UPSTREAM_DETAIL_LENGTH = 500
MAX_COMMAND_LENGTH = 4000

LOCAL_MODEL_ANSWER_PROMPT = (
    'The user asked: "{question}"\n\n'
    'You called the API function "{operation_id}" and got this result:\n{api_result}\n\n'
    "Please answer the user's question in plain English using only the data above."
)

# Canonical parameter types keyed by the lower-cased OpenAPI type or format.
TYPE_MAPPING: dict[str, str] = {
    "integer": "INTEGER",
    "int32": "INTEGER",
    "int64": "INTEGER",
    "number": "NUMBER",
    "float": "NUMBER",
    "double": "NUMBER",
    "boolean": "BOOLEAN",
    "array": "ARRAY",
    "object": "OBJECT",
}
FALLBACK_TYPE = "STRING"

Provider = Literal["gemini-vertex", "gemini-free", "ollama", "openai", "bedrock"]
Orchestration = Literal["direct", "langgraph"]
ToolDialect = Literal["typed", "json"]
ParameterSource = Literal["path", "query", "body"]
