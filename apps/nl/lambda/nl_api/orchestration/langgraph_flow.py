"""LangGraph-based command flow."""

from typing import Literal, NotRequired, TypedDict, cast

from langgraph.graph import END, START, StateGraph

from nl_api.constants import CLARIFICATION_MESSAGE
from nl_api.providers.base import FunctionCallDecision, ProviderStrategy

from .base import CommandFlow, ExecuteDecision


class CommandGraphState(TypedDict):
    strategy: ProviderStrategy
    execute: ExecuteDecision
    user_message: str
    decision: NotRequired[FunctionCallDecision | None]
    api_result: NotRequired[str]
    reply: NotRequired[str]


class LangGraphCommandFlow(CommandFlow):
    def __init__(self) -> None:
        graph = StateGraph(CommandGraphState)
        graph.add_node("ask", self._ask)
        graph.add_node("execute", self._execute)
        graph.add_node("respond", self._respond)
        graph.add_node("clarify", self._clarify)
        graph.add_edge(START, "ask")
        graph.add_conditional_edges("ask", self._route_after_ask, ["execute", "clarify"])
        graph.add_edge("execute", "respond")
        graph.add_edge("respond", END)
        graph.add_edge("clarify", END)
        self._graph = graph.compile()

    def _ask(self, state: CommandGraphState) -> dict[str, FunctionCallDecision | None]:
        return {"decision": state["strategy"].ask(state["user_message"])}

    def _route_after_ask(self, state: CommandGraphState) -> Literal["execute", "clarify"]:
        return "clarify" if state.get("decision") is None else "execute"

    def _execute(self, state: CommandGraphState) -> dict[str, str]:
        decision = cast("FunctionCallDecision", state["decision"])
        return {"api_result": state["execute"](decision)}

    def _respond(self, state: CommandGraphState) -> dict[str, str]:
        decision = cast("FunctionCallDecision", state["decision"])
        reply = state["strategy"].respond(state["user_message"], decision, state["api_result"])
        return {"reply": reply}

    def _clarify(self, state: CommandGraphState) -> dict[str, str]:
        return {"reply": CLARIFICATION_MESSAGE}

    def run(self, strategy: ProviderStrategy, execute: ExecuteDecision, user_message: str) -> str:
        initial_state: CommandGraphState = {
            "strategy": strategy,
            "execute": execute,
            "user_message": user_message,
        }
        result = cast("CommandGraphState", self._graph.invoke(initial_state))
        reply = result.get("reply")
        if reply is None:
            raise RuntimeError("LangGraph execution did not produce a reply")
        return reply
