from typing import List, Literal
from pydantic import BaseModel, Field

InputType = Literal["structured", "conversational", "modification", "question", "ambiguous"]
Confidence = Literal["high", "medium", "low"]
SuggestedParser = Literal["traditional", "ai", "hybrid"]


class ClassificationMetadata(BaseModel):
    key_phrases: List[str] = Field(default_factory=list)
    detected_entities: List[str] = Field(default_factory=list)
    complexity: int = Field(0, ge=0, le=10)


class ClassificationResult(BaseModel):
    """Per-message classification, not persisted beyond the current turn"""
    type: InputType = "ambiguous"
    confidence: Confidence = "low"
    has_destinations: bool = False
    has_dates: bool = False
    has_modification_intent: bool = False
    is_question: bool = False
    requires_context: bool = False
    suggested_parser: SuggestedParser = "traditional"
    metadata: ClassificationMetadata = Field(default_factory=ClassificationMetadata)
