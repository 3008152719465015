"""
Input classifier: decides how a message should be parsed.

Classification is pure and deterministic. Rules are checked from most to
least specific: questions, modifications, structured requests,
conversational phrasing, and finally ambiguous input.
"""

import re
from typing import List
import structlog

from agents.pattern_extractor.vocabulary import (
    KNOWN_CITIES, VAGUE_REGIONS, find_known_cities,
)
from models.classification_models import ClassificationMetadata, ClassificationResult

logger = structlog.get_logger()

STRUCTURED_PATTERNS = [
    re.compile(r'^\d+\s+days?\s+in\s+\w+', re.IGNORECASE),
    re.compile(r'^from\s+\w+\s+to\s+\w+', re.IGNORECASE),
    re.compile(r'^(?:long\s+)?(?:weekend|week)\s+in\s+\w+', re.IGNORECASE),
    re.compile(r'^\w+\s+to\s+\w+\s+for\s+\d+\s+days?', re.IGNORECASE),
    re.compile(r'^plan\s+(?:a\s*)?\d+\s+(?:days?|weeks?)\s+trip', re.IGNORECASE),
    re.compile(r'^(?:flying|fly|flight)\s+from\s+\w+\s+to\s+\w+', re.IGNORECASE),
    re.compile(r'^\d+\s+weeks?\s+in\s+[\w\s,]+', re.IGNORECASE),
    re.compile(r'^visiting\s+[\w\s,]+\s+for\s+\d+\s+days?', re.IGNORECASE),
    re.compile(r'^from\s+\w+\s+for\s+\d+\s+(?:days?|weeks?)', re.IGNORECASE),
    re.compile(r'plan.*\d+.*days?.*in.*\w+', re.IGNORECASE),
    re.compile(r'\d+\s+days?\s+in\s+\w+.*and.*\d+.*in\s+\w+', re.IGNORECASE),
]

MODIFICATION_PATTERNS = [
    re.compile(r'^(?:add|remove|change|modify|update|extend|shorten)\b', re.IGNORECASE),
    re.compile(r'^make\s+it\s+(?:more|less)\s+\w+', re.IGNORECASE),
    re.compile(r'^(?:can|could)\s+(?:you|we)\s+(?:add|change|remove)\b', re.IGNORECASE),
    re.compile(r'\binstead\s+of\b', re.IGNORECASE),
    re.compile(r"^(?:no|not|don't)\s+\w+", re.IGNORECASE),
    re.compile(r'^(?:switch|swap|replace)\s+\w+', re.IGNORECASE),
    re.compile(r'^actually\b', re.IGNORECASE),
    re.compile(r"^(?:let's|lets)\s+(?:add|remove|change|go|visit)\b", re.IGNORECASE),
]

QUESTION_PATTERNS = [
    re.compile(r'^(?:what|when|where|how|why|which|who)\b', re.IGNORECASE),
    re.compile(r'\?$'),
    re.compile(r'^(?:is|are|can|could|should|would|will)\b', re.IGNORECASE),
    re.compile(r'^tell\s+me\s+about\b', re.IGNORECASE),
    re.compile(r'^(?:do|does|did)\s+(?:you|i|we)\b', re.IGNORECASE),
]

CONVERSATIONAL_PATTERNS = [
    re.compile(r'^(?:i|we)\s+(?:want|need|would like|prefer)\b', re.IGNORECASE),
    re.compile(r'^(?:please|kindly)\b', re.IGNORECASE),
    re.compile(r'^(?:that|this)\s+(?:sounds|looks|seems)\b', re.IGNORECASE),
    re.compile(r'^(?:perfect|great|awesome|good|okay|fine)\b', re.IGNORECASE),
    re.compile(r'^(?:hmm|well|actually|maybe)\b', re.IGNORECASE),
    re.compile(r'^(?:yes|yeah|yep|sure|ok|okay)\b', re.IGNORECASE),
    re.compile(r'^(?:no|nope|nah)\b', re.IGNORECASE),
    re.compile(r"^i(?:'m|\s+am)\s+(?:thinking|looking|planning)\b", re.IGNORECASE),
    re.compile(r'^how\s+about\b', re.IGNORECASE),
]

DATE_PATTERNS = [
    re.compile(r'\b\d+\s*days?\b', re.IGNORECASE),
    re.compile(r'\b\d+\s*weeks?\b', re.IGNORECASE),
    re.compile(r'\b\d+\s*months?\b', re.IGNORECASE),
    re.compile(r'\bweekend\b', re.IGNORECASE),
    re.compile(r'\b(?:january|february|march|april|may|june|july|august|september|october|november|december)\b',
               re.IGNORECASE),
    re.compile(r'\b\d{1,2}/\d{1,2}(?:/\d{2,4})?\b'),
    re.compile(r'\b\d{1,2}-\d{1,2}(?:-\d{2,4})?\b'),
    re.compile(r'\bnext\s+(?:week|month|year|weekend)\b', re.IGNORECASE),
    re.compile(r'\bthis\s+(?:week|month|year|weekend)\b', re.IGNORECASE),
    re.compile(r'\b(?:tomorrow|today|yesterday)\b', re.IGNORECASE),
    re.compile(r'\b(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b', re.IGNORECASE),
]

LOCATIVE_PATTERN = re.compile(r'\b(?:in|to|from|visit|visiting|explore|exploring)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)')

TOPIC_KEYWORDS = re.compile(
    r'\b(?:budget|luxury|romantic|adventure|family|business|relaxing|cultural|foodie|nightlife|beach|'
    r'mountain|city|nature|historic|modern|traditional|local|authentic|off-the-beaten-path)\b',
    re.IGNORECASE,
)
CONSTRAINT_KEYWORDS = re.compile(
    r"\b(?:must|need|require|essential|important|prefer|avoid|don't|no|not|without|except|only|just)\b",
    re.IGNORECASE,
)

DESCRIPTIONS = {
    "structured": "Clear travel request with destinations and dates",
    "conversational": "Natural language request needing interpretation",
    "modification": "Request to modify existing itinerary",
    "question": "Question requiring an answer",
    "ambiguous": "Unclear request needing clarification",
}


class InputClassifier:
    """Chooses a parsing strategy (traditional, ai or hybrid) for a message"""

    def classify(self, message: str, has_conversation_history: bool = False) -> ClassificationResult:
        text = (message or "").strip()
        normalized = text.lower()
        result = ClassificationResult()

        if len(normalized) < 3:
            result.type = "ambiguous"
            result.suggested_parser = "ai"
            result.requires_context = True
            return result

        result.metadata = ClassificationMetadata(
            key_phrases=self.extract_key_phrases(text),
            detected_entities=self.extract_entities(text),
            complexity=self.calculate_complexity(text),
        )
        result.has_destinations = self.has_destinations(text)
        result.has_dates = self.has_dates(text)

        if self._matches(QUESTION_PATTERNS, normalized):
            result.type = "question"
            result.is_question = True
            result.requires_context = True
            result.suggested_parser = "ai"
            result.confidence = "high"

        elif self._matches(MODIFICATION_PATTERNS, normalized):
            result.type = "modification"
            result.has_modification_intent = True
            result.requires_context = True
            result.suggested_parser = "ai"
            result.confidence = "high" if has_conversation_history else "medium"

        elif self._matches(STRUCTURED_PATTERNS, normalized):
            result.type = "structured"
            result.suggested_parser = "traditional"
            result.confidence = "high"
            if result.metadata.complexity > 5:
                result.suggested_parser = "hybrid"
                result.confidence = "medium"

        elif self._matches(CONVERSATIONAL_PATTERNS, normalized):
            result.type = "conversational"
            result.requires_context = has_conversation_history
            if result.has_destinations:
                result.suggested_parser = "hybrid"
                result.confidence = "medium"
            else:
                result.suggested_parser = "ai"
                result.confidence = "medium" if has_conversation_history else "low"

        else:
            result.type = "ambiguous"
            result.confidence = "low"
            if result.has_destinations or result.has_dates:
                result.suggested_parser = "hybrid"
            else:
                result.suggested_parser = "ai"
                result.requires_context = True

        logger.info("Input classified",
                    category="input_classifier",
                    type=result.type,
                    confidence=result.confidence,
                    parser=result.suggested_parser,
                    complexity=result.metadata.complexity,
                    has_destinations=result.has_destinations,
                    has_dates=result.has_dates)
        return result

    @staticmethod
    def _matches(patterns: List[re.Pattern], text: str) -> bool:
        return any(pattern.search(text) for pattern in patterns)

    def has_destinations(self, text: str) -> bool:
        if find_known_cities(text):
            return True

        # A capitalized place after a preposition counts when it is known or has two or more words
        for match in LOCATIVE_PATTERN.finditer(text):
            location = match.group(1).lower()
            if location in VAGUE_REGIONS:
                continue
            if location in KNOWN_CITIES or len(location.split()) >= 2:
                return True
        return False

    def has_dates(self, text: str) -> bool:
        return self._matches(DATE_PATTERNS, text)

    def calculate_complexity(self, text: str) -> int:
        complexity = 0

        if len(text) > 50:
            complexity += 1
        if len(text) > 100:
            complexity += 2
        if len(text) > 200:
            complexity += 2

        sentences = [s for s in re.split(r'[.!?]', text) if s.strip()]
        if len(sentences) > 1:
            complexity += len(sentences) - 1

        clauses = [c for c in re.split(r'[,;]', text) if c.strip()]
        if len(clauses) > 2:
            complexity += min(len(clauses) - 2, 3)

        destinations = find_known_cities(text)
        if len(destinations) > 1:
            complexity += len(destinations) - 1

        topics = TOPIC_KEYWORDS.findall(text)
        complexity += min(len(topics), 3)

        constraints = CONSTRAINT_KEYWORDS.findall(text)
        complexity += min(len(constraints), 2)

        return min(complexity, 10)

    def extract_key_phrases(self, text: str) -> List[str]:
        phrases = []

        for match in re.finditer(r'\b\d+\s*days?\s+in\s+[\w\s]+\b|\b\w+(?:\s+\w+){0,4}\s+for\s+\d+\s*days?\b', text, re.IGNORECASE):
            phrases.append(match.group(0).strip())

        for match in re.finditer(r'\b\d+\s*(?:days?|weeks?|months?)\b', text, re.IGNORECASE):
            phrases.append(match.group(0).strip())

        preference_matches = re.finditer(r'\b(?:want|need|prefer|looking for|would like)\s+[\w\s]{3,20}\b',
                                         text, re.IGNORECASE)
        for match in list(preference_matches)[:3]:
            phrases.append(match.group(0).strip())

        for match in re.finditer(r'\b(?:from|to|in|at|visit|visiting)\s+([A-Z][\w\s]{2,20})\b', text):
            if len(phrases) < 10:
                phrases.append(match.group(0).strip())

        return list(dict.fromkeys(phrases))

    def extract_entities(self, text: str) -> List[str]:
        entities = [f"CITY:{city}" for city in find_known_cities(text)]
        lowered = text.lower()

        entities.extend(f"NUM:{number}" for number in re.findall(r'\b\d+\b', text))
        entities.extend(
            f"MONTH:{month}" for month in re.findall(
                r'\b(january|february|march|april|may|june|july|august|september|october|november|december)\b',
                lowered)
        )
        entities.extend(
            f"DAY:{day}" for day in re.findall(
                r'\b(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b', lowered)
        )
        entities.extend(
            f"KEYWORD:{keyword}" for keyword in re.findall(
                r'\b(weekend|summer|winter|spring|fall|autumn|christmas|easter|thanksgiving)\b', lowered)
        )
        return list(dict.fromkeys(entities))

    def requires_ai(self, result: ClassificationResult) -> bool:
        """Whether the message needs model assistance beyond the pattern engine"""
        return (
            result.suggested_parser in ("ai", "hybrid")
            or result.confidence == "low"
            or result.requires_context
            or result.type in ("modification", "question")
        )

    def describe(self, result: ClassificationResult) -> str:
        return DESCRIPTIONS[result.type]

    def explain(self, message: str, result: ClassificationResult) -> str:
        """Multi-line explanation of a classification, for debugging"""
        lines = [
            f'Input: "{message}"',
            f"Type: {result.type} ({self.describe(result)})",
            f"Confidence: {result.confidence}",
            f"Parser: {result.suggested_parser}",
        ]
        if result.has_destinations:
            lines.append("✓ Contains destinations")
        if result.has_dates:
            lines.append("✓ Contains dates/duration")
        if result.has_modification_intent:
            lines.append("✓ Has modification intent")
        if result.is_question:
            lines.append("✓ Is a question")
        if result.requires_context:
            lines.append("✓ Requires conversation context")
        lines.append(f"Complexity: {result.metadata.complexity}/10")
        if result.metadata.detected_entities:
            lines.append(f"Entities: {', '.join(result.metadata.detected_entities)}")
        return "\n".join(lines)
