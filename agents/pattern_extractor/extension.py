"""
Trip extension requests: "add 3 days in Paris", "extend my trip by a week".

An extension is only meaningful against an existing intent. New cities are
appended to the prior destinations and the added days are summed onto the
prior duration.
"""

import re
from typing import Any, Dict, List, Optional

from agents.pattern_extractor.date_parser import within_trip_limit
from agents.pattern_extractor.vocabulary import NUMBER_PATTERN, parse_number
from models.intent_models import ParsedIntent

EXTENSION_PATTERNS = [
    re.compile(rf'\badd\s+(?:another|{NUMBER_PATTERN})\s+(?:more\s+)?(?:days?|nights?|weeks?)\b', re.IGNORECASE),
    re.compile(r'\bextend\b.*\b(?:trip|stay|holiday|vacation)\b', re.IGNORECASE),
    re.compile(r'\badd\b.*\bto\b.*\b(?:trip|itinerary)\b', re.IGNORECASE),
    re.compile(r'\bafter\b.*\b(?:trip|stay)\b', re.IGNORECASE),
]

ADDED_DAYS_PATTERN = re.compile(
    rf'\b(?:add|extend(?:\s+\w+){{0,3}}\s+by)\s+(another|{NUMBER_PATTERN})\s+(?:more\s+)?(days?|nights?|weeks?)\b',
    re.IGNORECASE,
)


def is_extension_request(message: str) -> bool:
    return any(pattern.search(message) for pattern in EXTENSION_PATTERNS)


def parse_added_days(message: str) -> Optional[int]:
    """Days the message adds to the trip, from "add N days" or "extend ... by N days" """
    match = ADDED_DAYS_PATTERN.search(message)
    if not match:
        return None
    amount_token = match.group(1).lower()
    amount = 1 if amount_token == 'another' else parse_number(amount_token)
    if match.group(2).lower().startswith('week'):
        amount *= 7
    return amount if within_trip_limit(amount) else None


def combine_destinations(existing: List[str], new: List[str]) -> List[str]:
    """Append cities not already present, compared case-insensitively"""
    combined = list(existing)
    seen = {city.lower() for city in existing}
    for city in new:
        if city.lower() not in seen:
            combined.append(city)
            seen.add(city.lower())
    return combined


def apply_extension(prior: ParsedIntent, new_destinations: List[str],
                    added_days: Optional[int], message: str) -> Dict[str, Any]:
    """
    Fields for an extension turn.

    With no prior duration the added days cannot be turned into a total, so
    duration is left out and the question flow asks for it.
    """
    fields: Dict[str, Any] = {"modification_request": message}

    destinations = combine_destinations(prior.destination_list(), new_destinations)
    if destinations:
        fields["destinations"] = destinations
        fields["destination"] = ", ".join(destinations)

    if added_days and prior.duration and within_trip_limit(prior.duration + added_days):
        fields["duration"] = prior.duration + added_days

    return fields
