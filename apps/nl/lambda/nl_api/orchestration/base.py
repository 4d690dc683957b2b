"""Command flow interface: one ask → execute → respond round trip."""

from collections.abc import Callable
from typing import Protocol

from nl_api.providers.base import FunctionCallDecision, ProviderStrategy

ExecuteDecision = Callable[[FunctionCallDecision], str]


class CommandFlow(Protocol):
    def run(self, strategy: ProviderStrategy, execute: ExecuteDecision, user_message: str) -> str:
        """Drive one user message through the strategy and the REST executor."""
