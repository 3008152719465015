import re
from typing import List, Optional

from agents.pattern_extractor.vocabulary import (
    BUDGET_KEYWORDS, INTEREST_ALIASES, INTEREST_KEYWORDS, NUMBER_PATTERN,
    PACE_KEYWORDS, parse_number,
)
from models.intent_models import TravelPreferences, Travelers

SOLO_PATTERN = re.compile(r"\b(?:solo|alone|by myself|just me|on my own)\b", re.IGNORECASE)
COUPLE_PATTERN = re.compile(
    r"\b(?:couple\b(?!\s+of\b)|honeymoon|two of us|my (?:wife|husband|partner|girlfriend|boyfriend|fiance|fiancee)\b)",
    re.IGNORECASE,
)
FAMILY_PATTERN = re.compile(rf"\bfamily of\s+({NUMBER_PATTERN})\b", re.IGNORECASE)
ADULTS_PATTERN = re.compile(
    rf"\b({NUMBER_PATTERN})\s+(?:adults?|people|persons|travell?ers|guests|friends)\b", re.IGNORECASE
)
CHILDREN_PATTERN = re.compile(rf"\b({NUMBER_PATTERN})\s+(?:children|child|kids?)\b", re.IGNORECASE)

DOLLAR_TIER_PATTERN = re.compile(r"(?<![\w$])(\${1,3})(?![\w$])")

MUST_SEE_PATTERN = re.compile(
    r"\b(?:must[\s-]see|must visit|have to see|want to see|don't want to miss|can't miss)\s+(?:the\s+)?([^,.;!?]+)",
    re.IGNORECASE,
)
AVOID_PATTERN = re.compile(
    r"\b(?:avoid|avoiding|skip|skipping|stay away from|not interested in)\s+(?:the\s+)?([^,.;!?]+)",
    re.IGNORECASE,
)


def parse_travelers(text: str) -> Optional[Travelers]:
    adults = None
    children = None

    family = FAMILY_PATTERN.search(text)
    if family:
        size = parse_number(family.group(1))
        return Travelers(adults=2, children=max(0, size - 2))

    explicit_adults = ADULTS_PATTERN.search(text)
    explicit_children = CHILDREN_PATTERN.search(text)

    if explicit_adults:
        adults = parse_number(explicit_adults.group(1))
    elif COUPLE_PATTERN.search(text):
        adults = 2
    elif SOLO_PATTERN.search(text):
        adults = 1

    if explicit_children:
        children = parse_number(explicit_children.group(1))

    if adults is None and children is None:
        return None
    if adults is None:
        # Children never travel alone
        adults = 1
    return Travelers(adults=adults, children=children or 0)


def _contains(text: str, phrase: str) -> bool:
    return re.search(r'\b' + re.escape(phrase) + r'\b', text) is not None


def parse_budget(text: str) -> Optional[str]:
    lowered = text.lower()
    # "mid-range budget" is mid, so the plain budget words are checked last
    for tier in ('luxury', 'mid', 'budget'):
        if any(_contains(lowered, keyword) for keyword in BUDGET_KEYWORDS[tier]):
            return tier

    dollars = DOLLAR_TIER_PATTERN.search(text)
    if dollars:
        return {1: 'budget', 2: 'mid', 3: 'luxury'}[len(dollars.group(1))]
    return None


def parse_interests(text: str) -> List[str]:
    """Interest keywords in the order they are mentioned, deduplicated"""
    lowered = text.lower()
    found = []
    vocabulary = {keyword: keyword for keyword in INTEREST_KEYWORDS}
    vocabulary.update(INTEREST_ALIASES)
    for surface, interest in vocabulary.items():
        match = re.search(r'\b' + re.escape(surface) + r'\b', lowered)
        if match:
            found.append((match.start(), interest))

    interests = []
    for _, interest in sorted(found):
        if interest not in interests:
            interests.append(interest)
    return interests


def parse_pace(text: str) -> Optional[str]:
    lowered = text.lower()
    for pace in ('packed', 'relaxed', 'moderate'):
        if any(_contains(lowered, keyword) for keyword in PACE_KEYWORDS[pace]):
            return pace
    return None


def _split_items(phrase: str) -> List[str]:
    phrase = re.split(r'\b(?:but|because|while|since)\b', phrase, maxsplit=1)[0]
    items = re.split(r'\s*(?:,|\band\b|&)\s*', phrase)
    return [item.strip() for item in items if item.strip()]


def parse_must_see(text: str) -> List[str]:
    items = []
    for match in MUST_SEE_PATTERN.finditer(text):
        items.extend(_split_items(match.group(1)))
    return items


def parse_avoid(text: str) -> List[str]:
    items = []
    for match in AVOID_PATTERN.finditer(text):
        items.extend(_split_items(match.group(1)))
    return items


def parse_preferences(text: str) -> Optional[TravelPreferences]:
    preferences = TravelPreferences(
        budget=parse_budget(text),
        interests=parse_interests(text),
        pace=parse_pace(text),
        must_see=parse_must_see(text),
        avoid=parse_avoid(text),
    )
    return None if preferences.is_empty() else preferences
