"""Sequential command flow."""

from nl_api.constants import CLARIFICATION_MESSAGE
from nl_api.orchestration.base import CommandFlow, ExecuteDecision
from nl_api.providers.base import ProviderStrategy


class DirectCommandFlow(CommandFlow):
    def run(self, strategy: ProviderStrategy, execute: ExecuteDecision, user_message: str) -> str:
        decision = strategy.ask(user_message)
        if decision is None:
            return CLARIFICATION_MESSAGE
        api_result = execute(decision)
        return strategy.respond(user_message, decision, api_result)
