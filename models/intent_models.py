from datetime import date, timedelta
from typing import List, Optional, Literal
from pydantic import BaseModel, Field

BudgetTier = Literal["budget", "mid", "luxury"]
TravelPace = Literal["relaxed", "moderate", "packed"]


class Travelers(BaseModel):
    adults: int = Field(0, ge=0, description="Number of adult travelers")
    children: int = Field(0, ge=0, description="Number of children")


class TravelPreferences(BaseModel):
    budget: Optional[BudgetTier] = Field(None, description="Budget tier")
    interests: List[str] = Field(default_factory=list, description="Deduplicated interest keywords")
    pace: Optional[TravelPace] = Field(None, description="Preferred trip pace")
    must_see: List[str] = Field(default_factory=list, description="Places the traveler insists on")
    avoid: List[str] = Field(default_factory=list, description="Things to leave out")

    def is_empty(self) -> bool:
        return not (self.budget or self.interests or self.pace or self.must_see or self.avoid)


class ParsedIntent(BaseModel):
    """Accumulating structured trip request. Every field is optional."""

    destination: Optional[str] = Field(None, description="Display destination, comma-joined for multi-city trips")
    destinations: Optional[List[str]] = Field(None, description="Ordered cities for multi-city trips")
    start_date: Optional[str] = Field(None, description="Start date in YYYY-MM-DD format")
    end_date: Optional[str] = Field(None, description="End date in YYYY-MM-DD format")
    duration: Optional[int] = Field(None, gt=0, description="Trip duration in days")
    travelers: Optional[Travelers] = None
    preferences: Optional[TravelPreferences] = None
    modification_request: Optional[str] = Field(None, description="Raw text of a change or extension request")

    @property
    def has_dates(self) -> bool:
        return bool(self.start_date or self.end_date)

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)

    def destination_list(self) -> List[str]:
        """Destinations as a list, splitting the display string when no list was stored"""
        if self.destinations:
            return list(self.destinations)
        if self.destination:
            return [part.strip() for part in self.destination.split(",") if part.strip()]
        return []

    def with_derived_fields(self) -> "ParsedIntent":
        """
        Fill fields that follow from others:
        duration from both dates (inclusive), end date from start date and duration.
        """
        data = self.model_dump()

        if data.get("destinations"):
            data["destination"] = ", ".join(data["destinations"])

        start = parse_iso_date(data.get("start_date"))
        end = parse_iso_date(data.get("end_date"))

        if start and end and not data.get("duration") and end >= start:
            data["duration"] = (end - start).days + 1

        if start and data.get("duration") and not end:
            try:
                data["end_date"] = (start + timedelta(days=data["duration"] - 1)).isoformat()
            except OverflowError:
                # Past date.max: leave the end date open
                pass

        return ParsedIntent(**data)

    def summary(self) -> str:
        """Short human-readable form used in prompts and logs"""
        parts = []
        if self.destination:
            parts.append(f"destination={self.destination}")
        if self.duration:
            parts.append(f"duration={self.duration} days")
        if self.start_date:
            parts.append(f"start={self.start_date}")
        if self.end_date:
            parts.append(f"end={self.end_date}")
        if self.travelers:
            parts.append(f"travelers={self.travelers.adults} adults/{self.travelers.children} children")
        if self.preferences and self.preferences.budget:
            parts.append(f"budget={self.preferences.budget}")
        return ", ".join(parts) if parts else "nothing yet"


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _union(first: Optional[List[str]], second: Optional[List[str]]) -> List[str]:
    """Order-preserving union, case-insensitive"""
    seen = set()
    result = []
    for item in (first or []) + (second or []):
        key = item.strip().lower()
        if key and key not in seen:
            seen.add(key)
            result.append(item.strip())
    return result


def _has_value(value) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list)) and len(value) == 0:
        return False
    if isinstance(value, TravelPreferences) and value.is_empty():
        return False
    return True


def overlay_intent(base: ParsedIntent, update: ParsedIntent) -> ParsedIntent:
    """
    Merge an extractor result over a base result.

    Starts from ``base`` and overwrites a field only when ``update`` carries a
    non-empty value for it. Used to lay model output over the pattern result.
    """
    merged = base.model_dump()
    for field_name in ParsedIntent.model_fields:
        value = getattr(update, field_name)
        if _has_value(value):
            merged[field_name] = value.model_dump() if isinstance(value, BaseModel) else value

    if _has_value(update.destination) and not update.destinations:
        # A bare display string replaces the whole list
        merged["destinations"] = update.destination_list() or None

    return ParsedIntent(**merged).with_derived_fields()


def _merge_preferences(base: Optional[TravelPreferences],
                       update: Optional[TravelPreferences]) -> Optional[TravelPreferences]:
    if not update or update.is_empty():
        return base
    if not base:
        return update
    return TravelPreferences(
        budget=update.budget or base.budget,
        interests=_union(base.interests, update.interests),
        pace=update.pace or base.pace,
        must_see=_union(base.must_see, update.must_see),
        avoid=_union(base.avoid, update.avoid),
    )


def merge_intents(base: ParsedIntent, update: ParsedIntent) -> ParsedIntent:
    """
    Context-level merge of a turn's extraction into the accumulated intent.

    New non-null scalar values overwrite old ones. Destinations and the list
    preferences are unioned in order. Extension turns arrive already combined
    by the extractors, so the union leaves them unchanged.
    """
    merged = base.model_dump()

    for field_name in ("start_date", "end_date", "duration", "modification_request"):
        value = getattr(update, field_name)
        if _has_value(value):
            merged[field_name] = value

    if update.travelers is not None:
        merged["travelers"] = update.travelers.model_dump()

    preferences = _merge_preferences(base.preferences, update.preferences)
    merged["preferences"] = preferences.model_dump() if preferences else None

    new_destinations = update.destination_list()
    if new_destinations:
        combined = _union(base.destination_list(), new_destinations)
        merged["destinations"] = combined
        merged["destination"] = ", ".join(combined)

    # Stale derived values are dropped so they are recomputed from the new inputs
    if not update.end_date and (update.start_date or update.duration) and merged.get("start_date"):
        merged["end_date"] = None
    if not update.duration and update.start_date and update.end_date:
        merged["duration"] = None

    return ParsedIntent(**merged).with_derived_fields()
