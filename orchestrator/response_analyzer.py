"""
Detects the kind of reply a message is, beyond the fields it carries:
greetings, requests for help, uncertainty, feedback on a finished
itinerary and information questions that should not change the trip.
"""

import re
from typing import List

from agents.pattern_extractor.vocabulary import VAGUE_REGIONS


def _phrase_pattern(phrases: List[str]) -> re.Pattern:
    alternatives = '|'.join(re.escape(phrase) for phrase in sorted(phrases, key=len, reverse=True))
    return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)


UNCERTAIN_PATTERN = _phrase_pattern([
    "i don't know", "i'm not sure", "not sure", "maybe", "possibly", "i guess", "whatever",
    "doesn't matter", "no idea", "dunno", "help me decide", "you choose", "you pick", "suggest something",
])

GREETING_PATTERN = re.compile(
    r"^\s*(?:hello|hi|hey|greetings|good morning|good afternoon|good evening|howdy)\b", re.IGNORECASE
)

HELP_PATTERN = _phrase_pattern([
    "help", "assist", "plan", "create", "make", "build", "can you", "could you", "would you", "will you",
])

SATISFIED_PATTERN = re.compile(r"\b(?:thanks?|thank you|perfect|great|good|nice)\b", re.IGNORECASE)

MODIFICATION_PATTERN = _phrase_pattern([
    "change", "modify", "update", "add", "remove", "replace", "switch", "different", "instead",
])

INFORMATION_QUESTION_PATTERN = re.compile(
    r"^\s*(?:what|when|where|how|why|which|who|is|are|does|do|did|will|tell me about)\b", re.IGNORECASE
)
SUGGESTION_PATTERN = re.compile(r"^\s*(?:how|what)\s+about\b", re.IGNORECASE)

VAGUE_REGION_PATTERN = _phrase_pattern(sorted(VAGUE_REGIONS))


def is_uncertain(message: str) -> bool:
    return bool(UNCERTAIN_PATTERN.search(message or ""))


def is_greeting(message: str) -> bool:
    return bool(GREETING_PATTERN.search(message or ""))


def is_asking_for_help(message: str) -> bool:
    return bool(HELP_PATTERN.search(message or ""))


def is_satisfied(message: str) -> bool:
    return bool(SATISFIED_PATTERN.search(message or ""))


def is_modification_request(message: str) -> bool:
    return bool(MODIFICATION_PATTERN.search(message or ""))


def mentions_vague_region(message: str) -> bool:
    """True for "somewhere in Europe": a region, not a place to plan around"""
    return bool(VAGUE_REGION_PATTERN.search(message or ""))


def is_information_question(message: str) -> bool:
    """
    A question asking for information rather than a trip, such as
    "what's the weather like in Paris?".

    Suggestions ("how about Rome?"), bare answers ("Paris?") and requests
    for help ("can you plan 3 days in Rome?") are not information questions.
    """
    text = message or ""
    if not INFORMATION_QUESTION_PATTERN.search(text):
        return False
    if SUGGESTION_PATTERN.search(text):
        return False
    return not is_asking_for_help(text)
