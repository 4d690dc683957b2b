"""Bedrock (Claude) function calling through LangChain's Converse integration."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from langchain_core.messages import AIMessage, HumanMessage, ToolMessage
from langchain_core.runnables import Runnable

from nl_api.openapi.converter import SchemaConverter
from nl_api.openapi.tool_schemas import openai_tool_declaration

from .base import FunctionCallDecision, invoke_model, normalize_arguments, require_context

logger = logging.getLogger(__name__)

PROVIDER_ID = "bedrock"


@dataclass(frozen=True)
class BedrockTurn:
    human_message: HumanMessage
    ai_message: AIMessage
    tool_call_id: str


def _message_text(response: AIMessage) -> str:
    content = ""
    if isinstance(response.content, str):
        content = response.content
    elif isinstance(response.content, list):
        content = "".join(
            block.get("text", "") if isinstance(block, dict) else str(block)
            for block in response.content
        )
    return content.strip()


class BedrockStrategy:
    def __init__(
        self,
        converter: SchemaConverter,
        get_bedrock_runnable: Callable[[], Runnable[dict[str, Any], AIMessage]],
        model_id: str,
        max_output_tokens: int,
    ) -> None:
        self._converter = converter
        self._get_bedrock_runnable = get_bedrock_runnable
        self._model_id = model_id
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

    def _converse(self, messages: list[Any], step: str) -> AIMessage:
        if self._tools is None:
            raise RuntimeError("Tools are not loaded; call init() first")
        response = invoke_model(
            self._get_bedrock_runnable,
            {
                "model_id": self._model_id,
                "messages": messages,
                "tools": self._tools,
                "max_tokens": self._max_output_tokens,
            },
            provider=PROVIDER_ID,
            step=step,
        )
        usage = response.usage_metadata
        logger.info(
            "Bedrock response generated",
            extra={
                "model": self._model_id,
                "usage_prompt_tokens": usage.get("input_tokens") if usage else None,
                "usage_completion_tokens": usage.get("output_tokens") if usage else None,
                "tool_call_count": len(response.tool_calls),
            },
        )
        return response

    def ask(self, user_message: str) -> FunctionCallDecision | None:
        human_message = HumanMessage(content=user_message)
        response = self._converse([human_message], "ask")
        if not response.tool_calls:
            logger.info("Model answered without a function call", extra={"provider": PROVIDER_ID})
            return None

        tool_call = response.tool_calls[0]
        return FunctionCallDecision(
            operation_id=tool_call["name"],
            arguments=normalize_arguments(tool_call.get("args")),
            provider_context=BedrockTurn(
                human_message=human_message,
                ai_message=response,
                tool_call_id=tool_call.get("id") or "",
            ),
        )

    def respond(self, user_message: str, decision: FunctionCallDecision, api_result: str) -> str:
        turn: BedrockTurn = require_context(decision, BedrockTurn, PROVIDER_ID)
        tool_message = ToolMessage(content=api_result, tool_call_id=turn.tool_call_id)
        response = self._converse([turn.human_message, turn.ai_message, tool_message], "respond")
        return _message_text(response)
