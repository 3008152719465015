#!/usr/bin/env python3
"""
End-to-end conversation tests for the travel orchestrator
"""

import asyncio
import random
from datetime import date

from models.conversation_models import ConversationState
from models.intent_models import ParsedIntent
from orchestrator.question_generator import GREETINGS
from orchestrator.travel_orchestrator import READY_MESSAGE, TravelOrchestrator, destinations_conflict, is_complete
from services.llm_client import LLMClient

TODAY = date(2026, 10, 14)


class FakeLLMClient(LLMClient):
    def __init__(self, replies=None, delay=0.0):
        self.replies = list(replies or [])
        self.delay = delay
        self.prompts = []

    async def complete(self, system_instructions, user_prompt, temperature=None, max_tokens=None):
        self.prompts.append(user_prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.replies.pop(0) if self.replies else ""


def make_orchestrator(client=None):
    orchestrator = TravelOrchestrator(today=TODAY, rng=random.Random(1))
    orchestrator.extractor.llm_client = client
    return orchestrator


def test_complete_request_is_ready_in_one_turn():
    orchestrator = make_orchestrator()
    response = asyncio.run(orchestrator.process_message("3 days in London starting november 5"))

    assert response.type == "ready"
    assert response.message.startswith("Perfect! Let me confirm the details:")
    assert "• Destination: London" in response.message
    assert "• Duration: 3 days" in response.message
    assert response.can_generate
    assert response.missing_fields == []
    assert response.classification.type == "structured"
    assert response.metadata == {"source": "patterns", "state": "ready_to_generate", "reply": "confirmation"}

    parameters = response.trip_parameters
    assert parameters.destination == "London"
    assert parameters.start_date == "2026-11-05"
    assert parameters.end_date == "2026-11-07"
    assert parameters.duration == 3
    assert parameters.travelers.adults == 1


def test_missing_date_produces_question():
    orchestrator = make_orchestrator()
    response = asyncio.run(orchestrator.process_message("I want to go to Paris for 5 days"))

    assert response.type == "question"
    assert response.missing_fields == ["start_date"]
    assert "Paris" in response.message
    assert response.message.endswith("(5 days)")
    assert not response.can_generate
    assert response.trip_parameters is None
    assert response.metadata["state"] == "collecting_dates"


def test_multi_turn_with_serialized_context():
    orchestrator = make_orchestrator()
    first = asyncio.run(orchestrator.process_message("I want to go to Paris for 5 days"))
    second = asyncio.run(orchestrator.process_message("starting November 5", serialized_context=first.context))

    assert second.session_id == first.session_id
    assert second.type == "ready"
    assert second.intent.destination == "Paris"
    assert second.intent.duration == 5
    assert second.intent.start_date == "2026-11-05"
    assert second.intent.end_date == "2026-11-09"

    context = orchestrator.state_manager.get_context(first.session_id)
    assert [m.role for m in context.messages] == ["user", "assistant", "user", "assistant"]


def test_multi_turn_by_session_id():
    orchestrator = make_orchestrator()
    first = asyncio.run(orchestrator.process_message("Paris for 5 days", session_id="s1"))
    second = asyncio.run(orchestrator.process_message("next friday", session_id="s1"))

    assert first.session_id == "s1"
    assert second.type == "ready"
    assert second.trip_parameters.start_date == "2026-10-16"
    assert second.trip_parameters.end_date == "2026-10-20"


def test_destination_asked_first():
    orchestrator = make_orchestrator()
    response = asyncio.run(orchestrator.process_message("asdfghjkl qwerty"))

    assert response.type == "question"
    assert response.missing_fields == ["destination", "start_date", "duration"]
    assert response.classification.type == "ambiguous"
    assert response.metadata["state"] == "collecting_destination"


def test_extension_turn_extends_the_trip():
    orchestrator = make_orchestrator()
    first = asyncio.run(orchestrator.process_message("5 days in London", session_id="trip"))
    second = asyncio.run(orchestrator.process_message("add 3 days in Paris", session_id="trip"))

    assert first.missing_fields == ["start_date"]
    assert second.intent.destinations == ["London", "Paris"]
    assert second.intent.duration == 8
    assert second.intent.modification_request == "add 3 days in Paris"
    assert second.classification.type == "modification"
    assert second.message.endswith("(8 days)")


def test_corrupt_context_starts_a_fresh_session():
    orchestrator = make_orchestrator()
    response = asyncio.run(orchestrator.process_message("3 days in Rome", serialized_context="{broken"))

    assert response.session_id.startswith("session-")
    assert response.type == "question"
    assert response.intent.destination == "Rome"


def test_model_result_is_cached_for_the_next_session():
    client = FakeLLMClient(['{"destination": "Paris", "start_date": "2026-12-01", "duration": 4}'])
    orchestrator = make_orchestrator(client)

    first = asyncio.run(orchestrator.process_message("somewhere romantic in december"))
    second = asyncio.run(orchestrator.process_message("somewhere romantic in december"))

    assert first.type == "ready"
    assert first.metadata["source"] == "model"
    assert first.trip_parameters.destination == "Paris"
    assert first.trip_parameters.end_date == "2026-12-04"

    assert second.session_id != first.session_id
    assert second.type == "ready"
    assert second.metadata["source"] == "cache"
    assert second.intent.destination == "Paris"
    assert len(client.prompts) == 1


def test_cached_intent_with_other_destination_is_ignored():
    orchestrator = make_orchestrator()
    orchestrator.intent_cache.set_intent(
        "romantic trip to Rome", ParsedIntent(destination="Paris", duration=4, start_date="2026-12-01")
    )

    response = asyncio.run(orchestrator.process_message("romantic trip to Rome"))

    assert response.intent.destination == "Rome"
    assert response.intent.duration is None
    assert response.metadata["source"] == "patterns"


def test_pipeline_failure_still_answers():
    orchestrator = make_orchestrator()

    def broken_classify(message, has_conversation_history=False):
        raise RuntimeError("classifier exploded")

    orchestrator.classifier.classify = broken_classify
    response = asyncio.run(orchestrator.process_message("3 days in London", session_id="s1"))

    assert response.type == "question"
    assert response.session_id == "s1"
    assert response.metadata["source"] == "error"


def test_concurrent_turns_on_one_session_are_serialized():
    orchestrator = make_orchestrator()

    async def run_both():
        return await asyncio.gather(
            orchestrator.process_message("Paris for 5 days", session_id="s1"),
            orchestrator.process_message("starting november 5", session_id="s1"),
        )

    asyncio.run(run_both())
    context = orchestrator.state_manager.get_context("s1")

    assert context.message_count == 4
    assert context.intent.destination == "Paris"
    assert context.intent.start_date == "2026-11-05"
    assert context.state == ConversationState.READY_TO_GENERATE


def test_mark_generation_started():
    orchestrator = make_orchestrator()
    response = asyncio.run(orchestrator.process_message("3 days in London starting november 5"))

    context = orchestrator.mark_generation_started(response.session_id, "gen-42")

    assert context.state == ConversationState.GENERATING
    assert context.generation_id == "gen-42"
    assert orchestrator.mark_generation_started("unknown", "gen-43") is None


def test_extract_intent_is_stateless():
    orchestrator = make_orchestrator()
    intent = asyncio.run(orchestrator.extract_intent("3 days in London"))

    assert intent.destination == "London"
    assert intent.duration == 3
    assert len(orchestrator.state_manager.store) == 0


def test_cleanup_expired():
    orchestrator = make_orchestrator()
    assert orchestrator.cleanup_expired() == {"contexts_removed": 0, "cache_entries_removed": 0}


def test_helpers():
    assert is_complete(ParsedIntent(destination="Rome", duration=3, start_date="2026-11-01"))
    assert not is_complete(ParsedIntent(destination="Rome", duration=3))

    assert destinations_conflict(ParsedIntent(destination="Rome"), ParsedIntent(destination="Paris"))
    assert not destinations_conflict(ParsedIntent(destination="Rome"), ParsedIntent(destination="rome"))
    assert not destinations_conflict(ParsedIntent(), ParsedIntent(destination="Paris"))


def test_repeated_ready_turn_without_changes_gives_ready_message():
    orchestrator = make_orchestrator()
    first = asyncio.run(orchestrator.process_message("3 days in London starting november 5", session_id="s1"))
    second = asyncio.run(orchestrator.process_message("yes", session_id="s1"))

    assert first.metadata["reply"] == "confirmation"
    assert second.type == "ready"
    assert second.message == READY_MESSAGE
    assert second.metadata["reply"] == "ready"


def test_changed_ready_intent_is_confirmed_again():
    orchestrator = make_orchestrator()
    asyncio.run(orchestrator.process_message("3 days in London starting november 5", session_id="s1"))
    response = asyncio.run(orchestrator.process_message("make it 4 days", session_id="s1"))

    assert response.type == "ready"
    assert "• Duration: 4 days" in response.message
    assert response.trip_parameters.end_date == "2026-11-08"


def test_feedback_during_generation_keeps_generator_state():
    orchestrator = make_orchestrator()
    first = asyncio.run(orchestrator.process_message("3 days in London starting november 5"))
    orchestrator.mark_generation_started(first.session_id, "gen-1")

    response = asyncio.run(orchestrator.process_message("make it more relaxed", session_id=first.session_id))
    context = orchestrator.state_manager.get_context(first.session_id)

    assert context.state == ConversationState.GENERATING
    assert context.generation_id == "gen-1"
    assert context.intent.preferences.pace == "relaxed"
    assert response.metadata["state"] == "generating"
    assert response.metadata["reply"] == "feedback"
    assert response.message == "I'll help you modify the itinerary. What specific changes would you like?"
    assert response.can_generate
    assert [m.role for m in context.messages] == ["user", "assistant", "user", "assistant"]


def test_thanks_while_itinerary_is_shown():
    orchestrator = make_orchestrator()
    first = asyncio.run(orchestrator.process_message("3 days in London starting november 5", session_id="s1"))
    orchestrator.state_manager.update_state(first.session_id, ConversationState.SHOWING_ITINERARY)

    response = asyncio.run(orchestrator.process_message("thanks, looks perfect", session_id="s1"))

    assert response.message.startswith("You're welcome!")
    assert orchestrator.state_manager.get_context("s1").state == ConversationState.SHOWING_ITINERARY


def test_other_feedback_asks_what_to_change():
    orchestrator = make_orchestrator()
    asyncio.run(orchestrator.process_message("3 days in London starting november 5", session_id="s1"))
    orchestrator.state_manager.update_state("s1", ConversationState.AWAITING_FEEDBACK)

    response = asyncio.run(orchestrator.process_message("hmm", session_id="s1"))

    assert response.message == "Is there anything you'd like to change about the itinerary?"
    assert response.metadata["state"] == "awaiting_feedback"


def test_huge_numbers_do_not_break_a_turn():
    orchestrator = make_orchestrator()
    response = asyncio.run(orchestrator.process_message("Rome in 9999999999 days", session_id="s1"))

    assert response.metadata["source"] != "error"
    assert response.intent.destination == "Rome"
    assert response.intent.start_date is None
    assert response.missing_fields == ["start_date", "duration"]


def test_extract_intent_with_huge_numbers():
    orchestrator = make_orchestrator()

    intent = asyncio.run(orchestrator.extract_intent("9999999999 days in Rome"))

    assert intent.destination == "Rome"
    assert intent.duration is None


def test_concurrent_turns_with_the_same_serialized_context_keep_both_messages():
    orchestrator = make_orchestrator(FakeLLMClient(delay=0.05))
    first = asyncio.run(orchestrator.process_message("Paris for 5 days"))

    async def run_both():
        return await asyncio.gather(
            orchestrator.process_message("with my wife", serialized_context=first.context),
            orchestrator.process_message("starting november 5", serialized_context=first.context),
        )

    asyncio.run(run_both())
    context = orchestrator.state_manager.get_context(first.session_id)
    user_messages = [m.content for m in context.messages if m.role == "user"]

    assert user_messages == ["Paris for 5 days", "with my wife", "starting november 5"]
    assert context.message_count == 6
    assert context.intent.travelers.adults == 2
    assert context.intent.start_date == "2026-11-05"


def test_stale_serialized_context_does_not_roll_back_the_session():
    orchestrator = make_orchestrator()
    first = asyncio.run(orchestrator.process_message("Paris for 5 days"))
    asyncio.run(orchestrator.process_message("starting november 5", serialized_context=first.context))

    response = asyncio.run(orchestrator.process_message("with my wife", serialized_context=first.context))

    assert response.intent.start_date == "2026-11-05"
    assert response.intent.travelers.adults == 2
    assert orchestrator.state_manager.get_context(first.session_id).message_count == 6


def test_greeting_on_an_empty_conversation():
    orchestrator = make_orchestrator()
    response = asyncio.run(orchestrator.process_message("Hello there!"))

    assert response.type == "question"
    assert response.metadata["reply"] == "greeting"
    assert response.message in GREETINGS
    assert response.missing_fields == ["destination", "start_date", "duration"]
    assert response.metadata["state"] == "collecting_destination"


def test_greeting_with_a_trip_is_handled_as_a_request():
    orchestrator = make_orchestrator()
    response = asyncio.run(orchestrator.process_message("Hi! 3 days in London starting november 5"))

    assert response.type == "ready"
    assert response.metadata["reply"] == "confirmation"


def test_uncertain_reply_gets_suggestions():
    orchestrator = make_orchestrator()
    asyncio.run(orchestrator.process_message("Paris for 5 days", session_id="s1"))
    response = asyncio.run(orchestrator.process_message("I'm not sure", session_id="s1"))

    assert response.type == "question"
    assert response.metadata["reply"] == "uncertainty_help"
    assert response.message == (
        "No worries! You can say things like 'next week', 'in March', or specific dates. What sounds good to you?"
    )
    assert response.missing_fields == ["start_date"]


def test_vague_region_gets_a_follow_up():
    orchestrator = make_orchestrator()
    response = asyncio.run(orchestrator.process_message("somewhere in Europe"))

    assert response.intent.destination is None
    assert response.metadata["reply"] == "follow_up"


def test_information_question_leaves_the_intent_alone():
    orchestrator = make_orchestrator()
    response = asyncio.run(orchestrator.process_message("What's the weather like in Paris?"))

    assert response.classification.type == "question"
    assert response.intent.destination is None
    assert response.metadata["source"] == "none"
    assert response.metadata["reply"] == "information_question"
    assert response.message.startswith("I'm here to help you plan your trip. ")


def test_request_phrased_as_a_question_is_still_extracted():
    orchestrator = make_orchestrator()
    response = asyncio.run(orchestrator.process_message("Can you plan 3 days in Rome starting november 5?"))

    assert response.intent.destination == "Rome"
    assert response.type == "ready"
