"""Provider-neutral orchestration of natural-language commands.

The orchestrator owns what is the same for every provider: the ready gate,
resolving the model's chosen operation against the registry and executing the
REST call. Talking to the model is delegated to the active ``ProviderStrategy``.
"""

import logging
import threading

from nl_api.constants import NOT_READY_MESSAGE
from nl_api.errors import NotReadyError
from nl_api.openapi.converter import SchemaConverter
from nl_api.openapi.models import OperationDescriptor
from nl_api.orchestration.base import CommandFlow
from nl_api.providers.base import FunctionCallDecision, ProviderStrategy
from nl_api.rest.executor import RestExecutor

logger = logging.getLogger(__name__)


class NlOrchestrator:
    def __init__(
        self,
        strategy: ProviderStrategy,
        converter: SchemaConverter,
        executor: RestExecutor,
        flow: CommandFlow,
        spec_source: str,
    ) -> None:
        self._strategy = strategy
        self._converter = converter
        self._executor = executor
        self._flow = flow
        self._spec_source = spec_source
        self._ready = threading.Event()
        # Registry and provider tool list are rebuilt together, one init at a time.
        self._init_lock = threading.Lock()

    @property
    def provider_id(self) -> str:
        return self._strategy.provider_id()

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    def initialize(self) -> None:
        logger.info("Initializing orchestrator", extra={"provider": self.provider_id})
        self._load_tools()
        logger.info(
            "Orchestrator ready",
            extra={"provider": self.provider_id, "operation_count": len(self.operations())},
        )

    def reload(self) -> int:
        """Reload the registry; also recovers an orchestrator whose initialization gave up."""
        self._load_tools()
        operation_count = len(self.operations())
        logger.info("Operation registry reloaded", extra={"operation_count": operation_count})
        return operation_count

    def _load_tools(self) -> None:
        with self._init_lock:
            self._strategy.init(self._spec_source)
        self._ready.set()

    def operations(self) -> tuple[OperationDescriptor, ...]:
        self._ensure_ready()
        return self._converter.operations()

    def process(self, user_message: str) -> str:
        self._ensure_ready()
        return self._flow.run(self._strategy, self._execute_decision, user_message)

    def _ensure_ready(self) -> None:
        if not self._ready.is_set():
            raise NotReadyError(NOT_READY_MESSAGE)

    def _execute_decision(self, decision: FunctionCallDecision) -> str:
        logger.info(
            "Model selected operation",
            extra={
                "operation_id": decision.operation_id,
                "argument_names": sorted(decision.arguments),
            },
        )
        operation = self._converter.lookup(decision.operation_id)
        return self._executor.execute(operation, decision.arguments)
