"""Provider strategy interface and the shared tool-call decision model."""

import json
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from langchain_core.runnables import Runnable

from nl_api.errors import ConfigurationError, NlCommandError, UpstreamFailureError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FunctionCallDecision:
    """The model's choice for one user turn: which operation to call and with what."""

    operation_id: str
    arguments: Mapping[str, Any]
    # Whatever the issuing strategy needs to continue the conversation in respond().
    provider_context: Any = field(default=None, repr=False, compare=False)


class ProviderStrategy(Protocol):
    def provider_id(self) -> str:
        """Identifier matching the configured provider name."""
        ...

    def init(self, spec_source: str) -> None:
        """Load tool declarations for every operation of the API description."""
        ...

    def ask(self, user_message: str) -> FunctionCallDecision | None:
        """Ask the model which operation to call; ``None`` when it declines."""
        ...

    def respond(self, user_message: str, decision: FunctionCallDecision, api_result: str) -> str:
        """Turn the REST result into a natural-language reply."""
        ...


def _normalize_value(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, Mapping):
        return {str(key): _normalize_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_normalize_value(item) for item in value]
    return value


def normalize_arguments(raw: Any) -> dict[str, Any]:
    """Coerce model-issued arguments (dict, JSON string or nothing) into a plain dict."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError:
            logger.warning("Model returned non-JSON function arguments", extra={"raw": raw[:200]})
            raw = {}
    if not isinstance(raw, Mapping):
        return {}
    return _normalize_value(raw)


def invoke_model(
    get_runnable: Callable[[], Runnable[dict[str, Any], Any]],
    params: dict[str, Any],
    *,
    provider: str,
    step: str,
) -> Any:
    """Invoke a provider runnable, mapping transport failures to ``UpstreamFailureError``."""
    start = time.time()
    try:
        response = get_runnable().invoke(
            params,
            config={
                "run_name": f"nl_{step}",
                "tags": ["nl-api", provider],
                "metadata": {"step": step},
            },
        )
    except (NlCommandError, ConfigurationError):
        raise
    except Exception as exc:
        raise UpstreamFailureError(
            f"Model call failed during {step}", upstream=provider, detail=str(exc)
        ) from exc

    logger.info(
        "Model call completed",
        extra={
            "provider": provider,
            "step": step,
            "model_duration_ms": int((time.time() - start) * 1000),
        },
    )
    return response


def require_context(decision: FunctionCallDecision, context_type: type, provider: str) -> Any:
    context = decision.provider_context
    if not isinstance(context, context_type):
        raise ValueError(f"Decision for {decision.operation_id} was not issued by {provider}")
    return context
