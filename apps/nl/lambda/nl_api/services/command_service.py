"""Application service for natural-language command requests."""

import logging
import time

from nl_api.schemas import (
    CommandRequest,
    CommandResponse,
    OperationMetadata,
    ReloadResponse,
    StatusResponse,
)
from nl_api.services.orchestrator import NlOrchestrator

logger = logging.getLogger(__name__)


class CommandService:
    def __init__(self, orchestrator: NlOrchestrator) -> None:
        self._orchestrator = orchestrator

    def handle_command(self, request: CommandRequest) -> CommandResponse:
        logger.info(
            "Command request received",
            extra={
                "provider": self._orchestrator.provider_id,
                "message_length": len(request.message),
            },
        )
        start = time.time()
        reply = self._orchestrator.process(request.message)
        logger.info(
            "Command reply generated",
            extra={
                "command_duration_ms": int((time.time() - start) * 1000),
                "reply_length": len(reply),
            },
        )
        return CommandResponse(reply=reply)

    def list_operations(self) -> list[OperationMetadata]:
        return [
            OperationMetadata.from_descriptor(descriptor)
            for descriptor in self._orchestrator.operations()
        ]

    def reload(self) -> ReloadResponse:
        return ReloadResponse(operation_count=self._orchestrator.reload())

    def status(self) -> StatusResponse:
        return StatusResponse(
            ready=self._orchestrator.is_ready, provider=self._orchestrator.provider_id
        )
