"""OpenAI Chat Completions function calling."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from langchain_core.runnables import Runnable

from nl_api.openapi.converter import SchemaConverter
from nl_api.openapi.tool_schemas import openai_tool_declaration

from .base import FunctionCallDecision, invoke_model, normalize_arguments, require_context

logger = logging.getLogger(__name__)

PROVIDER_ID = "openai"


@dataclass(frozen=True)
class OpenAITurn:
    messages: tuple[dict[str, Any], ...]
    tool_call_id: str


class OpenAIStrategy:
    def __init__(
        self,
        converter: SchemaConverter,
        get_chat_runnable: Callable[[], Runnable[dict[str, Any], Any]],
        model: str,
        max_output_tokens: int,
    ) -> None:
        self._converter = converter
        self._get_chat_runnable = get_chat_runnable
        self._model = model
        self._max_output_tokens = max_output_tokens
        self._tools: list[dict[str, Any]] | None = None

    def provider_id(self) -> str:
        return PROVIDER_ID

    def init(self, spec_source: str) -> None:
        loaded = self._converter.load(spec_source, "json")
        self._tools = [
            openai_tool_declaration(operation, loaded.tool_for(operation.operation_id))
            for operation in loaded.operations
        ]

    def _complete(self, messages: list[dict[str, Any]], step: str) -> Any:
        if self._tools is None:
            raise RuntimeError("Tools are not loaded; call init() first")
        request_params: dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "max_completion_tokens": self._max_output_tokens,
        }
        if self._tools:
            request_params["tools"] = self._tools
        response = invoke_model(
            self._get_chat_runnable, request_params, provider=PROVIDER_ID, step=step
        )
        logger.info(
            "Chat completion generated",
            extra={
                "model": response.model,
                "usage_prompt_tokens": response.usage.prompt_tokens if response.usage else None,
                "usage_completion_tokens": (
                    response.usage.completion_tokens if response.usage else None
                ),
                "response_id": response.id,
            },
        )
        return response.choices[0].message

    def ask(self, user_message: str) -> FunctionCallDecision | None:
        user_turn = {"role": "user", "content": user_message}
        message = self._complete([user_turn], "ask")
        if not message.tool_calls:
            logger.info("Model answered without a function call", extra={"provider": PROVIDER_ID})
            return None

        tool_call = message.tool_calls[0]
        assistant_turn = {
            "role": "assistant",
            "content": None,
            "tool_calls": [
                {
                    "id": tool_call.id,
                    "type": "function",
                    "function": {
                        "name": tool_call.function.name,
                        "arguments": tool_call.function.arguments,
                    },
                }
            ],
        }
        return FunctionCallDecision(
            operation_id=tool_call.function.name,
            arguments=normalize_arguments(tool_call.function.arguments),
            provider_context=OpenAITurn(
                messages=(user_turn, assistant_turn), tool_call_id=tool_call.id
            ),
        )

    def respond(self, user_message: str, decision: FunctionCallDecision, api_result: str) -> str:
        turn: OpenAITurn = require_context(decision, OpenAITurn, PROVIDER_ID)
        tool_turn = {"role": "tool", "tool_call_id": turn.tool_call_id, "content": api_result}
        message = self._complete([*turn.messages, tool_turn], "respond")
        return (message.content or "").strip()
