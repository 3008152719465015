import re
from typing import List, Optional, Tuple

from agents.pattern_extractor.vocabulary import (
    KNOWN_CITY_REGEX, NUMBER_PATTERN, VAGUE_REGIONS, find_known_cities,
    is_place_stopword, parse_number, title_case,
)

# "3 days in London then 2 days in Paris"
SEGMENT_PATTERN = re.compile(
    rf'\b({NUMBER_PATTERN})[\s-]+(days?|nights?|weeks?)\s+(?:in|at)\s+'
    r"([A-Za-z][A-Za-z'\-]*(?:\s+[A-Za-z][A-Za-z'\-]*){0,3}?)"
    r'(?=\s*(?:,|;|\.|!|\?|$|\bthen\b|\band\b|\bfollowed\b|\bafter\b|\bbefore\b|\bfor\b|\bstarting\b|\bfrom\b|\bon\b|\bwith\b|\bin\b|\bplus\b))',
    re.IGNORECASE,
)

ORIGIN_PATTERN = re.compile(
    r'\b(?:from|leaving|departing(?:\s+from)?|flying\s+from|out\s+of)\s+([A-Za-z][A-Za-z ]*)',
    re.IGNORECASE,
)

# Case-sensitive: the place itself must be capitalized
LOCATIVE_PATTERN = re.compile(
    r"\b(?:in|to|at|visit|visiting|around|explore|exploring)\s+"
    r"([A-Z][a-zA-Z'\-]+(?:\s+(?:de|del|da|la|le)?\s*[A-Z][a-zA-Z'\-]+)*)"
)


def clean_place(raw: str) -> Optional[str]:
    """Normalize a matched place phrase, or None when it is not a usable destination"""
    raw = raw.strip(" ,.'")
    if not raw:
        return None

    known = KNOWN_CITY_REGEX.match(raw)
    if known:
        return title_case(known.group(1))

    # Unknown places keep only their leading capitalized words
    words = []
    for word in raw.split():
        if not word[0].isupper():
            break
        words.append(word)
    if not words:
        return None

    name = ' '.join(words)
    if is_place_stopword(name) or name.lower() in VAGUE_REGIONS:
        return None
    return title_case(name)


def parse_segments(text: str) -> List[Tuple[str, int]]:
    """Per-city stays as (city, days) in message order"""
    segments = []
    for match in SEGMENT_PATTERN.finditer(text):
        city = clean_place(match.group(3))
        if not city:
            continue
        days = parse_number(match.group(1))
        if match.group(2).lower().startswith('week'):
            days *= 7
        segments.append((city, days))
    return segments


def _origin_cities(text: str) -> List[str]:
    origins = []
    for match in ORIGIN_PATTERN.finditer(text):
        known = KNOWN_CITY_REGEX.match(match.group(1))
        if known:
            origins.append(known.group(1).lower())
    return origins


def parse_known_cities(text: str) -> List[str]:
    cities = find_known_cities(text)
    if len(cities) > 1:
        origins = _origin_cities(text)
        remaining = [city for city in cities if city not in origins]
        if remaining:
            cities = remaining
    return [title_case(city) for city in cities]


def parse_locative_place(text: str) -> Optional[str]:
    for match in LOCATIVE_PATTERN.finditer(text):
        place = clean_place(match.group(1))
        if place:
            return place
    return None


def parse_destinations(text: str) -> List[str]:
    """
    Ordered destinations mentioned in the message.

    Known cities are listed in the order they appear. Without a known city,
    the first capitalized place after a locative preposition is used.
    """
    cities = parse_known_cities(text)
    if cities:
        return cities
    place = parse_locative_place(text)
    return [place] if place else []
