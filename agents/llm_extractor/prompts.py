from datetime import date, timedelta
from typing import Optional

from models.intent_models import ParsedIntent

SYSTEM_INSTRUCTIONS = "Extract travel information and return ONLY valid JSON."


def build_extraction_prompt(message: str, today: date, prior_intent: Optional[ParsedIntent] = None,
                            is_extension: bool = False) -> str:
    """Main extraction prompt with date rules and few-shot examples"""
    current_year = today.year
    next_year = current_year + 1
    in_two_weeks = (today + timedelta(days=14)).isoformat()

    context_info = ""
    if prior_intent and not prior_intent.is_empty():
        context_info = f"\nCurrent trip: {prior_intent.summary()}"

    extension_info = ""
    destination_rule = "city name; several cities as \"City A, City B\""
    duration_rule = "number of days, \"weekend\"=3, \"week\"=7"
    if is_extension:
        extension_info = (
            "\nIMPORTANT: This message EXTENDS the current trip. Return only what it adds: "
            "the NEW destination and the number of ADDITIONAL days. Do not repeat the current trip."
        )
        destination_rule = "only the new city being added"
        duration_rule = "only the additional days, not the new total"

    return f"""Extract travel information from the user message and return ONLY valid JSON.

Current date: {today.isoformat()}
Current year: {current_year}
User message: "{message}"{context_info}{extension_info}

Extract these fields (omit any field the message does not state, never guess):
- destination: string ({destination_rule})
- duration: number ({duration_rule})
- start_date: string (YYYY-MM-DD)
- end_date: string (YYYY-MM-DD)
- travelers: {{"adults": number, "children": number}}
- preferences: {{"budget": "budget"|"mid"|"luxury", "interests": string[], "pace": "relaxed"|"moderate"|"packed"}}
- modification_request: string (only if the message changes an existing trip)

Date rules:
- "next month" = first day of next month
- "in 2 weeks" = {in_two_weeks}
- "october 15" = {current_year}-10-15 if still ahead, else {next_year}-10-15
- "december 20 to december 27" = both start_date and end_date

Examples:
Input: "3 day trip to london"
Output: {{"destination":"London","duration":3}}

Input: "paris for 5 days starting october 15"
Output: {{"destination":"Paris","duration":5,"start_date":"{_future(today, 10, 15)}"}}

Input: "3 days in London then 2 days in Paris"
Output: {{"destination":"London, Paris","duration":5}}

Input: "weekend in Rome and Florence"
Output: {{"destination":"Rome, Florence","duration":3}}

Input: "somewhere warm with my wife, nothing fancy"
Output: {{"travelers":{{"adults":2,"children":0}},"preferences":{{"budget":"budget"}}}}

RETURN ONLY THE JSON OBJECT, NO OTHER TEXT:"""


def build_simple_prompt(message: str, today: date) -> str:
    """Shorter retry prompt used after an unparseable reply"""
    return f"""Extract travel details. Reply with JSON only.

Examples:
"3 day trip to london" -> {{"destination":"London","duration":3}}
"paris october 15" -> {{"destination":"Paris","start_date":"{_future(today, 10, 15)}"}}

Now extract from: "{message}"

JSON:"""


def _future(today: date, month: int, day: int) -> str:
    candidate = date(today.year, month, day)
    if candidate < today:
        candidate = date(today.year + 1, month, day)
    return candidate.isoformat()
