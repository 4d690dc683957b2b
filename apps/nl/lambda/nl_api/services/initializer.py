"""Deferred orchestrator initialization.

The API description is often served by the same process that hosts this
router, so loading it during startup would wait on a server that is not yet
accepting connections. Initialization therefore runs on a background thread
and retries until the description can be fetched.
"""

import logging
import threading
import time
from collections.abc import Callable

from nl_api.errors import UpstreamFailureError
from nl_api.services.orchestrator import NlOrchestrator

logger = logging.getLogger(__name__)


def initialize_with_retry(
    orchestrator: NlOrchestrator,
    max_attempts: int,
    retry_interval_seconds: float,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    for attempt in range(1, max_attempts + 1):
        try:
            orchestrator.initialize()
            return True
        except UpstreamFailureError as exc:
            logger.warning(
                "Orchestrator initialization failed; will retry",
                extra={"attempt": attempt, "max_attempts": max_attempts, "error": str(exc)},
            )
            if attempt < max_attempts:
                sleep(retry_interval_seconds)
        except Exception:
            logger.exception("Orchestrator initialization failed permanently")
            return False

    logger.error("Orchestrator initialization gave up", extra={"max_attempts": max_attempts})
    return False


def initialize_in_background(
    orchestrator: NlOrchestrator, max_attempts: int, retry_interval_seconds: float
) -> threading.Thread:
    thread = threading.Thread(
        target=initialize_with_retry,
        args=(orchestrator, max_attempts, retry_interval_seconds),
        name="nl-orchestrator-init",
        daemon=True,
    )
    thread.start()
    return thread
