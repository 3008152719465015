from pydantic import BaseModel
from typing import Dict, List, Any, Literal, Optional

from models.classification_models import ClassificationResult
from models.intent_models import ParsedIntent, Travelers


class TripParameters(BaseModel):
    """Complete trip request handed to the itinerary generator"""
    destination: str
    destinations: List[str] = []
    start_date: str
    end_date: str
    duration: int
    travelers: Travelers
    preferences: Dict[str, Any] = {}


class ConversationResponse(BaseModel):
    """Standard response format for every conversation turn"""
    type: Literal["question", "ready"]
    message: str
    session_id: str
    intent: ParsedIntent
    missing_fields: List[str] = []
    can_generate: bool = False
    classification: Optional[ClassificationResult] = None
    trip_parameters: Optional[TripParameters] = None
    context: str = ""
    metadata: Dict[str, Any] = {}
