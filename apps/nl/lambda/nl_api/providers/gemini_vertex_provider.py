"""Gemini on Vertex AI through the Gen AI SDK, using typed tool schemas."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from google.genai import types
from langchain_core.runnables import Runnable

from nl_api.openapi.converter import SchemaConverter
from nl_api.openapi.tool_schemas import typed_function_declaration

from .base import FunctionCallDecision, invoke_model, normalize_arguments, require_context

logger = logging.getLogger(__name__)

PROVIDER_ID = "gemini-vertex"


@dataclass(frozen=True)
class VertexTurn:
    user_content: types.Content
    model_content: types.Content


def _response_content(response: Any) -> types.Content | None:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    return candidates[0].content


def _extract_text(content: types.Content | None) -> str:
    if content is None or not content.parts:
        return ""
    return "".join(part.text for part in content.parts if part.text).strip()


class GeminiVertexStrategy:
    def __init__(
        self,
        converter: SchemaConverter,
        get_genai_runnable: Callable[[], Runnable[dict[str, Any], Any]],
        model: str,
        max_output_tokens: int,
    ) -> None:
        self._converter = converter
        self._get_genai_runnable = get_genai_runnable
        self._model = model
        self._max_output_tokens = max_output_tokens
        self._tool: types.Tool | None = None

    def provider_id(self) -> str:
        return PROVIDER_ID

    def init(self, spec_source: str) -> None:
        loaded = self._converter.load(spec_source, "typed")
        declarations = [
            typed_function_declaration(operation, loaded.tool_for(operation.operation_id))
            for operation in loaded.operations
        ]
        self._tool = types.Tool(function_declarations=declarations)

    def _config(self) -> types.GenerateContentConfig:
        if self._tool is None:
            raise RuntimeError("Tools are not loaded; call init() first")
        return types.GenerateContentConfig(
            tools=[self._tool],
            max_output_tokens=self._max_output_tokens,
        )

    def ask(self, user_message: str) -> FunctionCallDecision | None:
        user_content = types.Content(role="user", parts=[types.Part.from_text(text=user_message)])
        response = invoke_model(
            self._get_genai_runnable,
            {"model": self._model, "contents": [user_content], "config": self._config()},
            provider=PROVIDER_ID,
            step="ask",
        )

        model_content = _response_content(response)
        parts = model_content.parts if model_content is not None else None
        function_call = next(
            (part.function_call for part in parts or [] if part.function_call), None
        )
        if function_call is None or not function_call.name:
            logger.info("Model answered without a function call", extra={"provider": PROVIDER_ID})
            return None

        return FunctionCallDecision(
            operation_id=function_call.name,
            arguments=normalize_arguments(function_call.args),
            provider_context=VertexTurn(user_content=user_content, model_content=model_content),
        )

    def respond(self, user_message: str, decision: FunctionCallDecision, api_result: str) -> str:
        turn: VertexTurn = require_context(decision, VertexTurn, PROVIDER_ID)
        function_response = types.Content(
            role="user",
            parts=[
                types.Part.from_function_response(
                    name=decision.operation_id, response={"result": api_result}
                )
            ],
        )
        response = invoke_model(
            self._get_genai_runnable,
            {
                "model": self._model,
                "contents": [turn.user_content, turn.model_content, function_response],
                "config": self._config(),
            },
            provider=PROVIDER_ID,
            step="respond",
        )
        return _extract_text(_response_content(response))
