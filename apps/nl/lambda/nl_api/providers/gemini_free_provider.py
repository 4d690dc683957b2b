"""Gemini via the AI Studio REST API, without an SDK.

The REST endpoint is stateless, so the turns needed by ``respond`` travel in
the decision's ``provider_context`` as a ``GeminiConversation`` value.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from langchain_core.runnables import Runnable

from nl_api.openapi.converter import SchemaConverter
from nl_api.openapi.tool_schemas import json_function_declaration

from .base import FunctionCallDecision, invoke_model, normalize_arguments, require_context

logger = logging.getLogger(__name__)

PROVIDER_ID = "gemini-free"


@dataclass(frozen=True)
class GeminiConversation:
    turns: tuple[dict[str, Any], ...]


def _candidate_content(response: dict[str, Any]) -> dict[str, Any]:
    candidates = response.get("candidates") or []
    if not candidates:
        return {}
    return candidates[0].get("content") or {}


class GeminiFreeStrategy:
    def __init__(
        self,
        converter: SchemaConverter,
        get_model_http_runnable: Callable[[], Runnable[dict[str, Any], dict[str, Any]]],
        get_api_key: Callable[[], str],
        model: str,
        base_url: str,
    ) -> None:
        self._converter = converter
        self._get_model_http_runnable = get_model_http_runnable
        self._get_api_key = get_api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._tools: list[dict[str, Any]] | None = None

    def provider_id(self) -> str:
        return PROVIDER_ID

    def init(self, spec_source: str) -> None:
        loaded = self._converter.load(spec_source, "json")
        declarations = [
            json_function_declaration(operation, loaded.tool_for(operation.operation_id))
            for operation in loaded.operations
        ]
        self._tools = [{"function_declarations": declarations}]

    def _generate(self, contents: list[dict[str, Any]], step: str) -> dict[str, Any]:
        if self._tools is None:
            raise RuntimeError("Tools are not loaded; call init() first")
        return invoke_model(
            self._get_model_http_runnable,
            {
                "provider": PROVIDER_ID,
                "url": f"{self._base_url}/models/{self._model}:generateContent",
                "headers": {"x-goog-api-key": self._get_api_key()},
                "json": {"contents": contents, "tools": self._tools},
            },
            provider=PROVIDER_ID,
            step=step,
        )

    def ask(self, user_message: str) -> FunctionCallDecision | None:
        user_turn = {"role": "user", "parts": [{"text": user_message}]}
        content = _candidate_content(self._generate([user_turn], "ask"))

        for part in content.get("parts") or []:
            function_call = part.get("functionCall")
            if not function_call or not function_call.get("name"):
                continue
            model_turn = {"role": "model", "parts": content["parts"]}
            return FunctionCallDecision(
                operation_id=function_call["name"],
                arguments=normalize_arguments(function_call.get("args")),
                provider_context=GeminiConversation(turns=(user_turn, model_turn)),
            )

        logger.info("Model answered without a function call", extra={"provider": PROVIDER_ID})
        return None

    def respond(self, user_message: str, decision: FunctionCallDecision, api_result: str) -> str:
        conversation: GeminiConversation = require_context(
            decision, GeminiConversation, PROVIDER_ID
        )
        function_turn = {
            "role": "user",
            "parts": [
                {
                    "functionResponse": {
                        "name": decision.operation_id,
                        "response": {"result": api_result},
                    }
                }
            ],
        }
        content = _candidate_content(
            self._generate([*conversation.turns, function_turn], "respond")
        )
        return "".join(part.get("text", "") for part in content.get("parts") or []).strip()
