"""
Missing-field resolution and follow-up questions.

A trip is ready for itinerary generation once it has a destination, at
least one date and a duration. The resolver never fills a gap with a
default: anything missing becomes a question.
"""

import random
from datetime import timedelta
from typing import List, Optional

from models.agent_models import TripParameters
from models.intent_models import ParsedIntent, Travelers, parse_iso_date
from orchestrator.response_analyzer import is_satisfied

REQUIRED_FIELDS = ["destination", "start_date", "duration"]

# Intent fields that share a template
FIELD_TEMPLATES = {"start_date": "dates", "end_date": "dates"}

SUGGESTIONS = {
    "destination": [
        "Popular destinations include Paris, Tokyo, Barcelona, New York, and Bali.",
        "Are you looking for beaches, mountains, cities, or cultural experiences?",
        "Would you prefer Europe, Asia, Americas, or somewhere else?",
    ],
    "dates": [
        "You can say things like 'next week', 'in March', or specific dates.",
        "Consider seasons - spring (Mar-May), summer (Jun-Aug), fall (Sep-Nov), or winter (Dec-Feb).",
        "Weekday travel is often less crowded and more affordable than weekends.",
    ],
    "duration": [
        "A weekend getaway is typically 2-3 days.",
        "A standard city break is usually 4-5 days.",
        "For multiple cities, consider at least 7-10 days.",
    ],
    "preferences": [
        "Popular activities include sightseeing, museums, local cuisine, shopping, and cultural experiences.",
        "Feel free to mention any special requirements or preferences.",
    ],
}

FOLLOW_UPS = {
    "destination": [
        "Any specific city in mind?",
        "Which part of the region interests you?",
        "Do you have a particular city in mind?",
    ],
    "dates": [
        "Do you have specific dates in mind?",
        "Are your dates flexible?",
        "Is there a particular month you prefer?",
    ],
    "duration": [
        "Do you have a specific number of days in mind?",
        "Are you flexible with the duration?",
    ],
    "travelers": [
        "How many people in total?",
        "Are there any children in your group?",
    ],
}

GREETINGS = [
    "Hello! I'd be happy to help you plan your trip. Where would you like to go?",
    ("Hi there! Ready to plan an amazing trip? Let's start with your destination - "
     "where are you thinking of traveling?"),
    "Welcome! I'm here to help create your perfect itinerary. What destination do you have in mind?",
    "Hello! Let's plan your next adventure. Where would you like to visit?",
]


def required_fields_missing(intent: ParsedIntent) -> List[str]:
    """Missing required fields in the order they should be asked about"""
    missing = []
    if not intent.destination:
        missing.append("destination")
    if not intent.start_date and not intent.end_date:
        missing.append("start_date")
    if not intent.duration and not intent.with_derived_fields().duration:
        missing.append("duration")
    return missing


def can_generate(intent: ParsedIntent) -> bool:
    return not required_fields_missing(intent)


def build_trip_parameters(intent: ParsedIntent) -> TripParameters:
    """
    Complete trip request for the itinerary generator.

    Raises:
        ValueError: if a required field is still missing
    """
    missing = required_fields_missing(intent)
    if missing:
        raise ValueError(f"Missing required fields: {missing}")

    intent = intent.with_derived_fields()
    start = parse_iso_date(intent.start_date)
    end = parse_iso_date(intent.end_date)
    duration = intent.duration

    if not duration:
        raise ValueError(f"Cannot derive a duration from {intent.start_date} to {intent.end_date}")
    try:
        if not start and end:
            start = end - timedelta(days=duration - 1)
        if not end:
            end = start + timedelta(days=duration - 1)
    except OverflowError:
        raise ValueError(f"Trip of {duration} days from {intent.start_date or intent.end_date} is out of range")

    return TripParameters(
        destination=intent.destination,
        destinations=intent.destination_list(),
        start_date=start.isoformat(),
        end_date=end.isoformat(),
        duration=duration,
        travelers=intent.travelers or Travelers(adults=1, children=0),
        preferences=intent.preferences.model_dump(exclude_none=True) if intent.preferences else {},
    )


class QuestionGenerator:
    """Picks a natural follow-up question for the next missing field"""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def variants(self, field: str, intent: ParsedIntent) -> List[str]:
        destination = intent.destination

        if field == "destination":
            return [
                "Where would you like to travel?",
                "What destination do you have in mind?",
                "Which city or country would you like to visit?",
            ]
        if field in ("start_date", "dates"):
            if destination:
                return [
                    f"When would you like to visit {destination}?",
                    f"What dates are you planning to travel to {destination}?",
                    f"When are you thinking of going to {destination}?",
                ]
            return [
                "When would you like to travel?",
                "What are your travel dates?",
                "When are you planning this trip?",
            ]
        if field == "duration":
            if destination:
                return [
                    f"How many days would you like to spend in {destination}?",
                    f"How long will your {destination} trip be?",
                    f"What's the duration of your stay in {destination}?",
                ]
            return [
                "How many days are you planning to travel?",
                "How long would you like your trip to be?",
                "What's the duration of your trip?",
            ]
        return [f"Please provide your {field.replace('_', ' ')}"]

    def next_question(self, field: str, intent: ParsedIntent) -> str:
        question = self.rng.choice(self.variants(field, intent))
        if field in ("start_date", "dates") and intent.duration:
            return f"{question} ({intent.duration} days)"
        return question

    # Dialogue beyond the next question

    def generate_suggestions(self, field: str) -> str:
        """A hint for a user who is unsure what to answer"""
        suggestions = SUGGESTIONS.get(FIELD_TEMPLATES.get(field, field))
        if not suggestions:
            return "Take your time to think about what would work best for you."
        return self.rng.choice(suggestions)

    def generate_uncertainty_help(self, field: str) -> str:
        suggestions = SUGGESTIONS.get(FIELD_TEMPLATES.get(field, field))
        if not suggestions:
            return "No problem! Take your time to think about it, and let me know when you're ready."
        return f"No worries! {suggestions[0]} What sounds good to you?"

    def generate_follow_up(self, field: str) -> str:
        """Narrower question for an answer that was too vague"""
        follow_ups = FOLLOW_UPS.get(FIELD_TEMPLATES.get(field, field))
        if not follow_ups:
            return "Could you be more specific?"
        return self.rng.choice(follow_ups)

    def generate_greeting(self) -> str:
        return self.rng.choice(GREETINGS)

    def generate_confirmation(self, intent: ParsedIntent) -> str:
        """Summary of the collected trip, asking the user to confirm it"""
        parts = ["Perfect! Let me confirm the details:"]

        if intent.destination:
            parts.append(f"• Destination: {intent.destination}")
        if intent.start_date:
            parts.append(f"• Starting: {intent.start_date}")
        elif intent.end_date:
            parts.append(f"• Ending: {intent.end_date}")
        duration = intent.duration or intent.with_derived_fields().duration
        if duration:
            parts.append(f"• Duration: {duration} days")
        if intent.travelers:
            parts.append(f"• Travelers: {describe_travelers(intent.travelers)}")
        if intent.preferences and intent.preferences.interests:
            parts.append(f"• Interests: {', '.join(intent.preferences.interests)}")

        parts.append("\nIs this correct? (Yes to proceed, or tell me what to change)")
        return "\n".join(parts)

    def generate_feedback_reply(self, message: str, is_modification: bool) -> str:
        """Reply to a message that arrives once the itinerary is being generated or shown"""
        if is_modification:
            return "I'll help you modify the itinerary. What specific changes would you like?"
        if is_satisfied(message):
            return "You're welcome! Have an amazing trip! Feel free to ask if you need any more help."
        return "Is there anything you'd like to change about the itinerary?"


def describe_travelers(travelers: Travelers) -> str:
    if travelers.adults + travelers.children == 1:
        return "Solo traveler"
    description = f"{travelers.adults} adult" + ("" if travelers.adults == 1 else "s")
    if travelers.children:
        description += f", {travelers.children} " + ("child" if travelers.children == 1 else "children")
    return description
