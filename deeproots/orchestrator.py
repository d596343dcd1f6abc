"""Multi-tier query resolution: fleet, inventory, knowledge base, then AI."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol

from .models import AnswerSource, AskResponse
from .search import FleetSearch, InventorySearch, KnowledgeSearch

logger = logging.getLogger("deeproots.query")

FLEET_KEYWORDS = (
    "truck",
    "vehicle",
    "fleet",
    "license",
    "maintenance",
    "ford",
    "chevy",
    "gmc",
    "silverado",
    "f-150",
    "f150",
)

EMPTY_QUERY_MESSAGE = "Please provide a search query."
NOT_FOUND_MESSAGE = "No matching items found in inventory, trucks, or knowledge base. AI assistant not configured."
AI_EMPTY_MESSAGE = "I'm having trouble connecting to my AI assistant. Please check the API key or try again later."
APOLOGY_MESSAGE = (
    "I apologize, but I encountered an error while searching. Please try again or contact support."
)


class Assistant(Protocol):
    def ask(self, prompt: str, context: Optional[str] = None) -> str:
        ...


@dataclass
class ResolutionContext:
    """Mutable state shared by the tier steps of one resolve call."""
    query: str
    is_fleet_query: bool
    answer: Optional[str] = None
    source: Optional[AnswerSource] = None

    @property
    def resolved(self) -> bool:
        return self.answer is not None


@dataclass
class TierStep:
    """One tier in the fallback order."""
    name: str
    fn: Callable[[ResolutionContext], None]
    skip_if: Optional[Callable[[ResolutionContext], bool]] = None


class TierRunner:
    """Runs tier steps in order until one of them resolves the context."""

    def __init__(self, steps: List[TierStep]) -> None:
        self._steps = steps

    def run(self, context: ResolutionContext) -> None:
        """Purpose: Execute tiers in order, honoring skip rules and stopping on an answer.
        Inputs/Outputs: Input is a mutable ResolutionContext; no return value.
        Side Effects / State: Steps set answer and source on the context.
        Dependencies: Depends on TierStep.fn and TierStep.skip_if semantics.
        Failure Modes: Exceptions in a step are logged and that tier is treated
            as producing no answer.
        If Removed: The orchestrator cannot fall through tiers.
        Testing Notes: Verify a raising step does not stop later steps.
        """
        # Stop at the first tier that produces an answer.
        for step in self._steps:
            if context.resolved:
                return
            if step.skip_if and step.skip_if(context):
                continue
            try:
                step.fn(context)
            except Exception:
                logger.exception("tier failed tier=%s query=%s", step.name, context.query)


def is_fleet_query(query: str) -> bool:
    lowered = query.lower()
    return any(keyword in lowered for keyword in FLEET_KEYWORDS)


class QueryOrchestrator:
    """Answers a free-text question from the first tier that knows about it."""

    def __init__(
        self,
        inventory: InventorySearch,
        knowledge: KnowledgeSearch,
        fleet: Optional[FleetSearch] = None,
        assistant: Optional[Assistant] = None,
    ) -> None:
        """Purpose: Wire the resolvers and optional AI fallback into a tier runner.
        Inputs/Outputs: Inputs are the resolvers and optional assistant; no return value.
        Side Effects / State: Builds the TierRunner used by resolve.
        Dependencies: FleetSearch is optional; without it both fleet tiers are skipped.
        Failure Modes: None at construction time.
        If Removed: Callers would need to implement the fallback order themselves.
        Testing Notes: Pass stub resolvers to check the order of calls.
        """
        # Fleet-first for fleet-flavored questions, fleet as fallback otherwise.
        self._inventory = inventory
        self._knowledge = knowledge
        self._fleet = fleet
        self._assistant = assistant
        self._runner = TierRunner(
            [
                TierStep(
                    "fleet",
                    self._search_fleet,
                    skip_if=lambda ctx: self._fleet is None or not ctx.is_fleet_query,
                ),
                TierStep("inventory", self._search_inventory),
                TierStep(
                    "fleet_fallback",
                    self._search_fleet,
                    skip_if=lambda ctx: self._fleet is None or ctx.is_fleet_query,
                ),
                TierStep("knowledge", self._search_knowledge),
                TierStep("assistant", self._ask_assistant),
            ]
        )

    def resolve(self, query: str) -> AskResponse:
        """Purpose: Produce an answer and its source for any input; never raises.
        Inputs/Outputs: Input is the raw question; output is an AskResponse.
        Side Effects / State: Resolvers may populate the response cache.
        Dependencies: TierRunner plus the injected resolvers and assistant.
        Failure Modes: Blank input yields source=error; an AI failure yields the
            apology with source=error.
        If Removed: The /api/ask endpoint has nothing to call.
        Testing Notes: Use resolvers over an empty store to reach the last tier.
        """
        # Reject blank input, then walk the tiers.
        if not query or not query.strip():
            response = AskResponse(answer=EMPTY_QUERY_MESSAGE, source=AnswerSource.ERROR)
            logger.info("query=%r source=%s", query, response.source.value)
            return response

        context = ResolutionContext(query=query, is_fleet_query=is_fleet_query(query))
        try:
            self._runner.run(context)
        except Exception:
            logger.exception("resolve failed query=%s", query)
            context.answer = APOLOGY_MESSAGE
            context.source = AnswerSource.ERROR

        if context.answer is None or context.source is None:
            context.answer = NOT_FOUND_MESSAGE
            context.source = AnswerSource.NONE
        logger.info("query=%r source=%s", query, context.source.value)
        return AskResponse(answer=context.answer, source=context.source)

    def _search_fleet(self, context: ResolutionContext) -> None:
        if self._fleet is None:
            return
        self._accept(context, self._fleet.search(context.query), AnswerSource.TRUCKS)

    def _search_inventory(self, context: ResolutionContext) -> None:
        self._accept(context, self._inventory.search(context.query), AnswerSource.INVENTORY)

    def _search_knowledge(self, context: ResolutionContext) -> None:
        self._accept(context, self._knowledge.search(context.query), AnswerSource.KNOWLEDGE)

    def _ask_assistant(self, context: ResolutionContext) -> None:
        if self._assistant is None:
            return
        try:
            answer = self._assistant.ask(context.query)
        except Exception:
            logger.exception("assistant failed query=%s", context.query)
            context.answer = APOLOGY_MESSAGE
            context.source = AnswerSource.ERROR
            return
        context.answer = answer or AI_EMPTY_MESSAGE
        context.source = AnswerSource.AI

    @staticmethod
    def _accept(context: ResolutionContext, answer: Optional[str], source: AnswerSource) -> None:
        if answer:
            context.answer = answer
            context.source = source
