from typing import Any, Dict, List, Optional, Tuple, TypedDict
from datetime import date
from langgraph.graph import StateGraph, END
import random
import structlog

from agents.cache.intent_cache import IntentCache
from agents.input_classifier.input_classifier import InputClassifier
from agents.llm_extractor.extractor_agent import LLMExtractorAgent
from agents.pattern_extractor.extension import is_extension_request
from agents.pattern_extractor.pattern_extractor import PatternExtractionEngine
from models.agent_models import ConversationResponse, TripParameters
from models.classification_models import ClassificationResult
from models.conversation_models import ConversationContext, ConversationState
from models.intent_models import ParsedIntent, overlay_intent
from orchestrator.conversation_state import ConversationStateManager
from orchestrator.question_generator import (
    QuestionGenerator, build_trip_parameters, required_fields_missing,
)
from orchestrator.response_analyzer import (
    is_asking_for_help, is_greeting, is_information_question, is_modification_request,
    is_uncertain, mentions_vague_region,
)
from services.llm_client import LLMClient

logger = structlog.get_logger()

READY_MESSAGE = "I have all the information needed to create your itinerary."
INFORMATION_QUESTION_PREFIX = "I'm here to help you plan your trip."

# Set by the itinerary generator; turns never move a session out of these
GENERATOR_STATES = frozenset([
    ConversationState.GENERATING,
    ConversationState.SHOWING_ITINERARY,
    ConversationState.AWAITING_FEEDBACK,
])


class TurnState(TypedDict):
    # Core identifiers
    session_id: str
    message: str
    today: date
    has_history: bool
    prior_intent: ParsedIntent

    # Node outputs
    classification: Optional[ClassificationResult]
    information_question: bool
    pattern_result: ParsedIntent
    is_extension: bool
    cache_hit: bool
    extracted: ParsedIntent
    source: str
    context: Optional[ConversationContext]

    # Result
    missing_fields: List[str]
    response: Optional[ConversationResponse]


def is_complete(intent: ParsedIntent) -> bool:
    """Destination, duration and at least one date: nothing left for the model to find"""
    return bool(intent.destination and intent.duration and intent.has_dates)


def destinations_conflict(first: ParsedIntent, second: ParsedIntent) -> bool:
    if not first.destination or not second.destination:
        return False
    first_names = {name.lower() for name in first.destination_list()}
    second_names = {name.lower() for name in second.destination_list()}
    return first_names != second_names


class TravelOrchestrator:
    """
    Runs one conversation turn as a LangGraph state graph:

    classify_input -> extract_patterns -> (lookup_cache) -> (extract_with_model)
    -> update_context -> resolve_next_step

    Information questions ("what's the weather in Paris?") go straight from
    classify_input to resolve_next_step and leave the intent untouched.
    """

    def __init__(self, llm_client: Optional[LLMClient] = None,
                 state_manager: Optional[ConversationStateManager] = None,
                 intent_cache: Optional[IntentCache] = None,
                 today: Optional[date] = None,
                 rng: Optional[random.Random] = None,
                 timeout_seconds: Optional[float] = None):
        self.fixed_today = today
        self.classifier = InputClassifier()
        self.extractor = LLMExtractorAgent(llm_client=llm_client, today=today, timeout_seconds=timeout_seconds)
        self.state_manager = state_manager or ConversationStateManager()
        self.intent_cache = intent_cache or IntentCache()
        self.question_generator = QuestionGenerator(rng)
        self.turn_graph = self._build_turn_graph()

    def _build_turn_graph(self) -> StateGraph:
        """Build the per-message extraction and resolution workflow"""
        workflow = StateGraph(TurnState)

        workflow.add_node("classify_input", self._classify_input)
        workflow.add_node("extract_patterns", self._extract_patterns)
        workflow.add_node("lookup_cache", self._lookup_cache)
        workflow.add_node("extract_with_model", self._extract_with_model)
        workflow.add_node("update_context", self._update_context)
        workflow.add_node("resolve_next_step", self._resolve_next_step)

        workflow.set_entry_point("classify_input")
        workflow.add_conditional_edges(
            "classify_input",
            self._route_input,
            {"extract": "extract_patterns", "answer": "resolve_next_step"}
        )

        # Patterns found everything: skip cache and model
        workflow.add_conditional_edges(
            "extract_patterns",
            self._patterns_complete,
            {"complete": "update_context", "incomplete": "lookup_cache"}
        )
        workflow.add_conditional_edges(
            "lookup_cache",
            self._cache_result,
            {"hit": "update_context", "miss": "extract_with_model"}
        )
        workflow.add_edge("extract_with_model", "update_context")
        workflow.add_edge("update_context", "resolve_next_step")
        workflow.add_edge("resolve_next_step", END)

        return workflow.compile()

    def _today(self) -> date:
        return self.fixed_today or date.today()

    # ======================= PUBLIC API =======================

    async def process_message(self, message: str, serialized_context: Optional[str] = None,
                              session_id: Optional[str] = None) -> ConversationResponse:
        """Process one user message and return either a question or a ready signal"""
        logger.info("Processing message",
                    message=message[:100],
                    has_context=bool(serialized_context),
                    context_size=len(serialized_context or ""))

        restored = None
        if serialized_context:
            restored = self.state_manager.parse_context(serialized_context)
            session_id = restored.session_id if restored else None
        if not session_id:
            session_id = self.state_manager.create_context().session_id

        async with self.state_manager.session_lock(session_id):
            self._restore_context(restored, session_id)
            context = self.state_manager.add_message(session_id, "user", message)

            state: TurnState = {
                "session_id": session_id,
                "message": message,
                "today": self._today(),
                "has_history": context.has_history,
                "prior_intent": context.intent.model_copy(deep=True),

                "classification": None,
                "information_question": False,
                "pattern_result": ParsedIntent(),
                "is_extension": False,
                "cache_hit": False,
                "extracted": ParsedIntent(),
                "source": "none",
                "context": context,

                "missing_fields": [],
                "response": None,
            }

            try:
                result = await self.turn_graph.ainvoke(state)
                return result["response"]
            except Exception as e:
                logger.error("Turn pipeline failed", session_id=session_id, error=str(e))
                return self._respond(self.state_manager.get_or_create_context(session_id), None, "error")

    async def extract_intent(self, message: str) -> ParsedIntent:
        """Stateless extraction of a single message, without touching any session"""
        try:
            pattern_result = PatternExtractionEngine(self._today()).extract_with_patterns(message)
        except Exception as e:
            logger.error("Pattern extraction failed", message=message[:100], error=str(e))
            pattern_result = ParsedIntent()
        if is_complete(pattern_result):
            return pattern_result

        cached = self.intent_cache.get_intent(message)
        if cached is not None and not destinations_conflict(pattern_result, cached):
            return overlay_intent(cached, pattern_result)

        self.extractor.today = self._today()
        return await self.extractor.extract_with_model(message, None, pattern_result)

    def mark_generation_started(self, session_id: str, generation_id: str) -> Optional[ConversationContext]:
        """Record that the external itinerary generator picked up this session"""
        context = self.state_manager.get_context(session_id)
        if context is None:
            logger.warning("Generation started for unknown session", session_id=session_id)
            return None
        context.generation_id = generation_id
        return self.state_manager.update_state(session_id, ConversationState.GENERATING)

    def cleanup_expired(self) -> Dict[str, int]:
        return {
            "contexts_removed": self.state_manager.cleanup_expired_contexts(),
            "cache_entries_removed": self.intent_cache.clean_expired(),
        }

    def _restore_context(self, restored: Optional[ConversationContext], session_id: str) -> ConversationContext:
        """Called with the session lock held"""
        if restored is not None:
            context = self.state_manager.install_context(restored)
            if context is None:
                # Idle past the session TTL
                return self.state_manager.create_context(session_id)
            return context
        return self.state_manager.get_or_create_context(session_id)

    # ======================= TURN WORKFLOW NODES =======================

    async def _classify_input(self, state: TurnState) -> TurnState:
        classification = self.classifier.classify(state["message"], state["has_history"])
        state["classification"] = classification
        state["information_question"] = (
            classification.type == "question" and is_information_question(state["message"])
        )
        return state

    def _route_input(self, state: TurnState) -> str:
        if state["information_question"]:
            logger.info("Information question, intent left unchanged", session_id=state["session_id"])
            return "answer"
        return "extract"

    async def _extract_patterns(self, state: TurnState) -> TurnState:
        engine = PatternExtractionEngine(state["today"])
        prior_intent = state["prior_intent"]

        state["pattern_result"] = engine.extract_with_patterns(state["message"], prior_intent)
        state["extracted"] = state["pattern_result"]
        state["source"] = "patterns"
        state["is_extension"] = bool(prior_intent.destination and is_extension_request(state["message"]))

        logger.info("Pattern extraction",
                    session_id=state["session_id"],
                    extracted=state["pattern_result"].summary(),
                    complete=is_complete(state["pattern_result"]))
        return state

    def _patterns_complete(self, state: TurnState) -> str:
        return "complete" if is_complete(state["pattern_result"]) else "incomplete"

    async def _lookup_cache(self, state: TurnState) -> TurnState:
        # Extension results depend on the prior intent, not just the message
        if state["is_extension"]:
            state["cache_hit"] = False
            return state

        cached = self.intent_cache.get_intent(state["message"])
        if cached is None:
            state["cache_hit"] = False
            return state

        if destinations_conflict(state["pattern_result"], cached):
            logger.info("Ignoring cached intent with a different destination",
                        session_id=state["session_id"],
                        pattern_destination=state["pattern_result"].destination,
                        cached_destination=cached.destination)
            state["cache_hit"] = False
            return state

        # The cache only fills what the patterns left empty
        state["extracted"] = overlay_intent(cached, state["pattern_result"])
        state["cache_hit"] = True
        state["source"] = "cache"
        return state

    def _cache_result(self, state: TurnState) -> str:
        return "hit" if state["cache_hit"] else "miss"

    async def _extract_with_model(self, state: TurnState) -> TurnState:
        self.extractor.today = state["today"]
        pattern_result = state["pattern_result"]

        extracted = await self.extractor.extract_with_model(state["message"], state["prior_intent"], pattern_result)
        state["extracted"] = extracted

        if extracted != pattern_result:
            state["source"] = "model"
            if not state["is_extension"]:
                self.intent_cache.set_intent(state["message"], extracted)
        return state

    async def _update_context(self, state: TurnState) -> TurnState:
        state["context"] = self.state_manager.update_intent(state["session_id"], state["extracted"])
        return state

    async def _resolve_next_step(self, state: TurnState) -> TurnState:
        context = state["context"]
        state["missing_fields"] = required_fields_missing(context.intent)
        reply, reply_kind = self._compose_reply(state)
        state["response"] = self._respond(context, state["classification"], state["source"], reply, reply_kind)
        return state

    def _compose_reply(self, state: TurnState) -> Tuple[Optional[str], Optional[str]]:
        """
        Dialogue reply for turns that need more than the next question.
        Returns (None, None) when the default question or ready message applies.
        """
        context = state["context"]
        message = state["message"]
        missing_fields = state["missing_fields"]
        extracted = state["extracted"]
        generator = self.question_generator

        if context.state in GENERATOR_STATES:
            classification = state["classification"]
            modification = is_modification_request(message) or bool(
                classification and classification.type == "modification"
            )
            return generator.generate_feedback_reply(message, modification), "feedback"

        if state["information_question"]:
            if not missing_fields:
                return None, None
            question = generator.next_question(missing_fields[0], context.intent)
            return f"{INFORMATION_QUESTION_PREFIX} {question}", "information_question"

        if extracted.is_empty() and context.intent.is_empty() and (is_greeting(message) or is_asking_for_help(message)):
            return generator.generate_greeting(), "greeting"

        if missing_fields and extracted.is_empty() and is_uncertain(message):
            return generator.generate_uncertainty_help(missing_fields[0]), "uncertainty_help"

        if missing_fields and missing_fields[0] == "destination" and mentions_vague_region(message):
            return generator.generate_follow_up("destination"), "follow_up"

        if not missing_fields:
            unchanged = context.state == ConversationState.READY_TO_GENERATE and context.intent == state["prior_intent"]
            if not unchanged:
                return generator.generate_confirmation(context.intent), "confirmation"
        return None, None

    def _respond(self, context: ConversationContext, classification: Optional[ClassificationResult],
                 source: str, reply: Optional[str] = None, reply_kind: Optional[str] = None) -> ConversationResponse:
        session_id = context.session_id
        missing_fields = required_fields_missing(context.intent)
        trip_parameters: Optional[TripParameters] = None

        if not missing_fields:
            try:
                trip_parameters = build_trip_parameters(context.intent)
            except ValueError as e:
                logger.warning("Trip parameters out of range", session_id=session_id, error=str(e))
                missing_fields = ["start_date"]
                if reply_kind == "confirmation":
                    reply, reply_kind = None, None

        if missing_fields:
            next_state = self.state_manager.get_state_for_field(missing_fields[0])
            response_type = "question"
            if reply is None:
                reply, reply_kind = self.question_generator.next_question(missing_fields[0], context.intent), "question"
        else:
            next_state = ConversationState.READY_TO_GENERATE
            response_type = "ready"
            if reply is None:
                reply, reply_kind = READY_MESSAGE, "ready"

        if context.state in GENERATOR_STATES:
            logger.debug("Keeping generator-owned state", session_id=session_id, state=context.state.value)
        else:
            self.state_manager.update_state(session_id, next_state)
        context = self.state_manager.add_message(session_id, "assistant", reply)

        logger.info("Turn resolved",
                    session_id=session_id,
                    type=response_type,
                    reply=reply_kind,
                    missing_fields=missing_fields,
                    source=source)

        return ConversationResponse(
            type=response_type,
            message=reply,
            session_id=session_id,
            intent=context.intent.model_copy(deep=True),
            missing_fields=missing_fields,
            can_generate=not missing_fields,
            classification=classification,
            trip_parameters=trip_parameters,
            context=self.state_manager.serialize_context(context),
            metadata={"source": source, "state": context.state.value, "reply": reply_kind},
        )
