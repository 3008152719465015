#!/usr/bin/env python3
"""
Tests for the model-assisted extractor, run against a scripted LLM client
"""

import asyncio
from datetime import date

import pytest

from agents.llm_extractor.extractor_agent import LLMExtractorAgent
from agents.llm_extractor.prompts import build_extraction_prompt, build_simple_prompt
from models.intent_models import ParsedIntent
from services.llm_client import LLMClient, LLMClientError

TODAY = date(2026, 10, 14)


class FakeLLMClient(LLMClient):
    """Replies from a script and records every prompt it receives"""

    def __init__(self, replies=None, error=None, delay=0.0):
        self.replies = list(replies or [])
        self.error = error
        self.delay = delay
        self.prompts = []

    async def complete(self, system_instructions, user_prompt, temperature=None, max_tokens=None):
        self.prompts.append(user_prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.replies.pop(0) if self.replies else ""


def make_agent(client, timeout_seconds=5.0):
    return LLMExtractorAgent(llm_client=client, today=TODAY, timeout_seconds=timeout_seconds)


PARIS_5 = ParsedIntent(destination="Paris", destinations=["Paris"], duration=5)


def test_model_fills_missing_start_date():
    client = FakeLLMClient(['{"start_date": "2026-11-05"}'])
    intent = asyncio.run(make_agent(client).extract_with_model("Paris for 5 days early november", None, PARIS_5))

    assert intent.destination == "Paris"
    assert intent.duration == 5
    assert intent.start_date == "2026-11-05"
    assert intent.end_date == "2026-11-09"
    assert len(client.prompts) == 1


def test_model_values_override_pattern_values():
    client = FakeLLMClient(['{"destination": "Nice", "duration": 4}'])
    intent = asyncio.run(make_agent(client).extract_with_model("Nice for 4 days", None, PARIS_5))

    assert intent.destination == "Nice"
    assert intent.destinations == ["Nice"]
    assert intent.duration == 4


def test_empty_model_values_do_not_erase_pattern_values():
    client = FakeLLMClient(['{"destination": "", "duration": null, "start_date": "2026-11-05"}'])
    intent = asyncio.run(make_agent(client).extract_with_model("Paris, 5 days", None, PARIS_5))

    assert intent.destination == "Paris"
    assert intent.duration == 5
    assert intent.start_date == "2026-11-05"


def test_unparseable_reply_retries_with_simple_prompt():
    client = FakeLLMClient(["I'm not sure what you mean", '{"destination": "Rome"}'])
    intent = asyncio.run(make_agent(client).extract_with_model("somewhere italian", None, ParsedIntent()))

    assert intent.destination == "Rome"
    assert len(client.prompts) == 2
    assert client.prompts[1] == build_simple_prompt("somewhere italian", TODAY)


def test_two_unparseable_replies_fall_back_to_patterns():
    client = FakeLLMClient(["nope", "still nope"])
    intent = asyncio.run(make_agent(client).extract_with_model("Paris for 5 days", None, PARIS_5))

    assert intent == PARIS_5
    assert len(client.prompts) == 2


def test_timeout_falls_back_to_patterns():
    client = FakeLLMClient(['{"destination": "Rome"}'], delay=1.0)
    intent = asyncio.run(make_agent(client, timeout_seconds=0.01).extract_with_model("Paris", None, PARIS_5))

    assert intent == PARIS_5


def test_client_error_falls_back_to_patterns():
    client = FakeLLMClient(error=LLMClientError("quota exceeded"))
    intent = asyncio.run(make_agent(client).extract_with_model("Paris", None, PARIS_5))

    assert intent == PARIS_5
    assert len(client.prompts) == 1


def test_no_client_returns_pattern_result():
    agent = make_agent(FakeLLMClient())
    agent.llm_client = None

    assert not agent.ai_available
    assert asyncio.run(agent.extract_with_model("Paris", None, PARIS_5)) == PARIS_5


def test_extension_folds_model_addition_into_prior_trip():
    prior = ParsedIntent(destination="London", destinations=["London"], duration=5)
    client = FakeLLMClient(['{"destination": "Paris", "duration": 3}'])

    intent = asyncio.run(make_agent(client).extract_with_model("add 3 days in Paris", prior, ParsedIntent()))

    assert intent.destinations == ["London", "Paris"]
    assert intent.destination == "London, Paris"
    assert intent.duration == 8
    assert intent.modification_request == "add 3 days in Paris"
    assert "ADDITIONAL days" in client.prompts[0]


def test_extension_end_date_uses_new_total():
    prior = ParsedIntent(destination="London", duration=5, start_date="2026-11-01")
    client = FakeLLMClient(['{"destination": "Paris", "duration": 3, "start_date": "2026-11-01"}'])

    intent = asyncio.run(make_agent(client).extract_with_model("add 3 days in Paris", prior, ParsedIntent()))

    assert intent.duration == 8
    assert intent.end_date == "2026-11-08"


def test_pii_is_masked_before_the_model_sees_it():
    client = FakeLLMClient(['{"destination": "Rome"}'])
    message = "Rome trip, email me at jane.doe@example.com or call 555-123-4567"
    asyncio.run(make_agent(client).extract_with_model(message, None, ParsedIntent()))

    prompt = client.prompts[0]
    assert "jane.doe@example.com" not in prompt
    assert "555-123-4567" not in prompt
    assert "[EMAIL]" in prompt
    assert "[PHONE]" in prompt


def test_sanitize_pii():
    agent = make_agent(FakeLLMClient())
    sanitized = agent._sanitize_pii(
        "card 4111 1111 1111 1111, passport AB1234567, ssn 123-45-6789, +1 415 555 0100"
    )

    assert "[CARD]" in sanitized
    assert "[PASSPORT]" in sanitized
    assert "[SSN]" in sanitized
    assert "[PHONE]" in sanitized
    assert "4111" not in sanitized
    assert "AB1234567" not in sanitized
    assert agent._sanitize_pii("") == ""


def test_validate_extracted_intent_keeps_only_well_typed_values():
    agent = make_agent(FakeLLMClient())
    intent = agent.validate_extracted_intent({
        "destination": "Rome, Florence",
        "startDate": "2026-11-05",
        "endDate": "11/09/2026",
        "duration": "400",
        "travelers": {"adults": "2", "children": -1},
        "preferences": {"budget": "LUXURY", "pace": "fast", "interests": ["Food", "food", "Art"]},
    })

    assert intent.destinations == ["Rome", "Florence"]
    assert intent.destination == "Rome, Florence"
    assert intent.start_date == "2026-11-05"
    assert intent.end_date is None
    assert intent.duration is None
    assert intent.travelers.adults == 2
    assert intent.travelers.children == 0
    assert intent.preferences.budget == "luxury"
    assert intent.preferences.pace is None
    assert intent.preferences.interests == ["food", "art"]


def test_validate_extracted_intent_accepts_top_level_fields():
    agent = make_agent(FakeLLMClient())
    intent = agent.validate_extracted_intent({
        "destination": "Oslo",
        "duration": 4.0,
        "adults": 3,
        "budget": "mid",
        "interests": ["nature"],
        "modificationRequest": "make it longer",
    })

    assert intent.duration == 4
    assert intent.travelers.adults == 3
    assert intent.preferences.budget == "mid"
    assert intent.preferences.interests == ["nature"]
    assert intent.modification_request == "make it longer"


def test_validate_extracted_intent_rejects_non_dicts():
    agent = make_agent(FakeLLMClient())
    assert agent.validate_extracted_intent(["Paris"]).is_empty()
    assert agent.validate_extracted_intent({"duration": True, "start_date": "2026-02-30"}).is_empty()


def test_run_wraps_result_in_standard_output():
    client = FakeLLMClient(['{"destination": "Rome", "duration": 3}'])
    output = asyncio.run(make_agent(client).run({"message": "rome for a few days"}, "session-1"))

    assert output["agent"] == "LLMExtractorAgent"
    assert output["data"]["intent"]["destination"] == "Rome"
    assert output["data"]["intent"]["duration"] == 3
    assert output["metadata"] == {"ai_available": True}


def test_run_requires_a_message():
    with pytest.raises(ValueError):
        asyncio.run(make_agent(FakeLLMClient()).run({}, "session-1"))


def test_prompt_mentions_today_and_prior_trip():
    prior = ParsedIntent(destination="London", duration=5)
    prompt = build_extraction_prompt("make it longer", TODAY, prior)

    assert "Current date: 2026-10-14" in prompt
    assert "destination=London" in prompt
    assert 'User message: "make it longer"' in prompt
