"""Local models served by Ollama.

Local models follow tool-result turns poorly, so ``respond`` sends one
self-contained prompt with the raw API result instead of a function-response
turn, and falls back to the raw result when the model says nothing.
"""

import logging
from collections.abc import Callable
from typing import Any

from langchain_core.runnables import Runnable

from nl_api.constants import LOCAL_MODEL_ANSWER_PROMPT
from nl_api.errors import EmptyModelReplyError
from nl_api.openapi.converter import SchemaConverter
from nl_api.openapi.tool_schemas import openai_tool_declaration

from .base import FunctionCallDecision, invoke_model, normalize_arguments

logger = logging.getLogger(__name__)

PROVIDER_ID = "ollama"


def _message_content(response: dict[str, Any]) -> str:
    message = response.get("message") or {}
    content = message.get("content")
    if not isinstance(content, str) or not content.strip():
        raise EmptyModelReplyError("Local model returned an empty answer")
    return content.strip()


class OllamaStrategy:
    def __init__(
        self,
        converter: SchemaConverter,
        get_model_http_runnable: Callable[[], Runnable[dict[str, Any], dict[str, Any]]],
        model: str,
        base_url: str,
    ) -> None:
        self._converter = converter
        self._get_model_http_runnable = get_model_http_runnable
        self._model = model
        self._chat_url = f"{base_url.rstrip('/')}/api/chat"
        self._tools: list[dict[str, Any]] | None = None

    def provider_id(self) -> str:
        return PROVIDER_ID

    def init(self, spec_source: str) -> None:
        loaded = self._converter.load(spec_source, "json")
        self._tools = [
            openai_tool_declaration(operation, loaded.tool_for(operation.operation_id))
            for operation in loaded.operations
        ]

    def _chat(self, body: dict[str, Any], step: str) -> dict[str, Any]:
        return invoke_model(
            self._get_model_http_runnable,
            {"provider": PROVIDER_ID, "url": self._chat_url, "json": body},
            provider=PROVIDER_ID,
            step=step,
        )

    def ask(self, user_message: str) -> FunctionCallDecision | None:
        if self._tools is None:
            raise RuntimeError("Tools are not loaded; call init() first")
        response = self._chat(
            {
                "model": self._model,
                "messages": [{"role": "user", "content": user_message}],
                "tools": self._tools,
                "stream": False,
            },
            "ask",
        )

        tool_calls = (response.get("message") or {}).get("tool_calls") or []
        function = (tool_calls[0].get("function") or {}) if tool_calls else {}
        if not function.get("name"):
            logger.info("Model answered without a function call", extra={"provider": PROVIDER_ID})
            return None

        return FunctionCallDecision(
            operation_id=function["name"],
            arguments=normalize_arguments(function.get("arguments")),
            provider_context=tuple(tool_calls),
        )

    def respond(self, user_message: str, decision: FunctionCallDecision, api_result: str) -> str:
        prompt = LOCAL_MODEL_ANSWER_PROMPT.format(
            question=user_message,
            operation_id=decision.operation_id,
            api_result=api_result,
        )
        response = self._chat(
            {
                "model": self._model,
                "messages": [{"role": "user", "content": prompt}],
                "stream": False,
            },
            "respond",
        )
        try:
            return _message_content(response)
        except EmptyModelReplyError:
            logger.warning(
                "Local model returned empty content; returning raw API result",
                extra={"provider": PROVIDER_ID, "operation_id": decision.operation_id},
            )
            return api_result
