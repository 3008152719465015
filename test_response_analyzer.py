#!/usr/bin/env python3
"""
Tests for reply detection: greetings, help requests, uncertainty and information questions
"""

import pytest

from orchestrator.response_analyzer import (
    is_asking_for_help, is_greeting, is_information_question, is_modification_request,
    is_satisfied, is_uncertain, mentions_vague_region,
)


@pytest.mark.parametrize("message", ["I'm not sure", "no idea", "Maybe", "you pick", "dunno, whatever"])
def test_uncertain(message):
    assert is_uncertain(message)


@pytest.mark.parametrize("message", ["Paris for 5 days", "mayberry", ""])
def test_not_uncertain(message):
    assert not is_uncertain(message)


def test_greeting_needs_a_whole_word_at_the_start():
    assert is_greeting("Hi there")
    assert is_greeting("good morning! I need a trip")
    assert not is_greeting("hiking in the Alps")
    assert not is_greeting("well, hello")


def test_asking_for_help():
    assert is_asking_for_help("Can you help me?")
    assert is_asking_for_help("plan a trip")
    assert not is_asking_for_help("Paris for 5 days")
    assert not is_asking_for_help("airplane food")


def test_satisfied_and_modification():
    assert is_satisfied("Thanks a lot")
    assert is_satisfied("looks great")
    assert not is_satisfied("goodbye")
    assert is_modification_request("can we add a museum day")
    assert not is_modification_request("adding nothing")


def test_vague_region():
    assert mentions_vague_region("somewhere in Europe")
    assert mentions_vague_region("the middle east in spring")
    assert not mentions_vague_region("Paris")


@pytest.mark.parametrize("message", [
    "What's the weather like in Paris?",
    "Is it cold in Oslo in December?",
    "tell me about Kyoto",
    "Why is Venice sinking?",
])
def test_information_questions(message):
    assert is_information_question(message)


@pytest.mark.parametrize("message", [
    "How about Rome?",
    "what about Lisbon",
    "Paris?",
    "Can you plan 3 days in Rome?",
    "Could you help with a trip to Bali?",
    "3 days in London",
])
def test_not_information_questions(message):
    assert not is_information_question(message)
