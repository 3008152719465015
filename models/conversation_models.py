from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from models.intent_models import ParsedIntent


class ConversationState(str, Enum):
    INITIAL = "initial"
    COLLECTING_DESTINATION = "collecting_destination"
    COLLECTING_DATES = "collecting_dates"
    COLLECTING_DURATION = "collecting_duration"
    COLLECTING_TRAVELERS = "collecting_travelers"
    COLLECTING_PREFERENCES = "collecting_preferences"
    READY_TO_GENERATE = "ready_to_generate"
    GENERATING = "generating"
    SHOWING_ITINERARY = "showing_itinerary"
    AWAITING_FEEDBACK = "awaiting_feedback"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ConversationMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=utc_now)


class ConversationContext(BaseModel):
    """Per-session conversation state, owned by the ConversationStateManager"""
    session_id: str
    state: ConversationState = ConversationState.INITIAL
    intent: ParsedIntent = Field(default_factory=ParsedIntent)
    messages: List[ConversationMessage] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utc_now)
    message_count: int = 0
    generation_id: Optional[str] = None

    @property
    def current_intent(self) -> ParsedIntent:
        return self.intent

    @property
    def has_history(self) -> bool:
        return len(self.messages) > 1
