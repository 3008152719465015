from datetime import date
from typing import Any, Dict, Optional
import structlog

from agents.pattern_extractor.date_parser import DateParser, parse_duration, within_trip_limit
from agents.pattern_extractor.destination_parser import parse_destinations, parse_segments
from agents.pattern_extractor.extension import (
    apply_extension, is_extension_request, parse_added_days,
)
from agents.pattern_extractor.preference_parser import parse_preferences, parse_travelers
from models.intent_models import ParsedIntent

logger = structlog.get_logger()


class PatternExtractionEngine:
    """
    Deterministic rule-based extraction of a ParsedIntent from one message.

    Each sub-extractor looks at the message independently and contributes a
    field only when it finds evidence for it. ``today`` is fixed at
    construction so repeated runs give equal results.
    """

    def __init__(self, today: Optional[date] = None):
        self.today = today or date.today()
        self.date_parser = DateParser(self.today)

    def extract_with_patterns(self, message: str, prior_intent: Optional[ParsedIntent] = None) -> ParsedIntent:
        text = (message or "").strip()
        if not text:
            return ParsedIntent()

        fields: Dict[str, Any] = {}
        fields.update(self._extract_destinations_and_duration(text))

        dates = self.date_parser.parse(text)
        if dates:
            fields.update(dates)

        travelers = parse_travelers(text)
        if travelers:
            fields["travelers"] = travelers

        preferences = parse_preferences(text)
        if preferences:
            fields["preferences"] = preferences

        if prior_intent and prior_intent.destination and is_extension_request(text):
            added_days = parse_added_days(text) or parse_duration(text)
            new_destinations = fields.get("destinations") or []
            extension = apply_extension(prior_intent, new_destinations, added_days, text)
            if "duration" not in extension:
                fields.pop("duration", None)
            fields.update(extension)
            logger.info("Extension request detected",
                        category="pattern_extractor",
                        destinations=extension.get("destinations"),
                        duration=extension.get("duration"))

        intent = ParsedIntent(**fields).with_derived_fields()

        logger.debug("Pattern extraction complete",
                     category="pattern_extractor",
                     extracted=intent.summary())
        return intent

    def _extract_destinations_and_duration(self, text: str) -> Dict[str, Any]:
        fields: Dict[str, Any] = {}

        segments = parse_segments(text)
        if len(segments) >= 2:
            destinations = []
            for city, _ in segments:
                if city.lower() not in [d.lower() for d in destinations]:
                    destinations.append(city)
            fields["destinations"] = destinations
            total = sum(days for _, days in segments)
            if within_trip_limit(total):
                fields["duration"] = total
            return fields

        destinations = parse_destinations(text)
        if destinations:
            fields["destinations"] = destinations

        duration = parse_duration(text)
        if duration:
            fields["duration"] = duration
        return fields
