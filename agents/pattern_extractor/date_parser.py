"""
Date and duration extraction from free text.

Dates are resolved against a fixed ``today`` captured when the parser is
built, so the same message always yields the same dates.
"""

import re
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from agents.pattern_extractor.vocabulary import (
    MONTHS, MONTH_PATTERN, NUMBER_PATTERN, WEEKDAYS, WEEKDAY_PATTERN, parse_number,
)
from config.conversation_config import ConversationConfig

DateFields = Dict[str, object]

ORDINAL = r'(?:st|nd|rd|th)?'
YEAR = r'(?:,?\s*(\d{4}))?'

RANGE_PATTERN = re.compile(
    rf'\b({MONTH_PATTERN})\.?\s+(\d{{1,2}}){ORDINAL}\s*(?:to|-|–|until|till|through|thru)\s*'
    rf'(?:({MONTH_PATTERN})\.?\s+)?(\d{{1,2}}){ORDINAL}\b{YEAR}',
    re.IGNORECASE,
)

# "10-15 March" / "10th to 15th of March"
DAY_FIRST_RANGE_PATTERN = re.compile(
    rf'\b(\d{{1,2}}){ORDINAL}\s*(?:to|-|–|until|till|through)\s*(\d{{1,2}}){ORDINAL}\s+(?:of\s+)?({MONTH_PATTERN})\b{YEAR}',
    re.IGNORECASE,
)

ISO_PATTERN = re.compile(r'\b(\d{4})-(\d{2})-(\d{2})\b')

ORDINAL_OF_MONTH_PATTERN = re.compile(
    rf'\b(?:on\s+)?the\s+(\d{{1,2}}){ORDINAL}\s+of\s+({MONTH_PATTERN})\b{YEAR}',
    re.IGNORECASE,
)

MONTH_DAY_PATTERN = re.compile(
    rf'\b({MONTH_PATTERN})\.?\s+(\d{{1,2}}){ORDINAL}\b(?!\s*(?:days?|nights?|weeks?|people|adults?))(?:,?\s*(\d{{4}}))?',
    re.IGNORECASE,
)

DAY_MONTH_PATTERN = re.compile(
    rf'\b(\d{{1,2}}){ORDINAL}\s+(?:of\s+)?({MONTH_PATTERN})\b{YEAR}',
    re.IGNORECASE,
)

MONTH_ONLY_PATTERN = re.compile(
    r'\b(?:in|during|around|for|by|this|next|early|late|mid)[\s-]+'
    r'(january|february|march|april|may|june|july|august|september|october|november|december)\b(?:\s+(\d{4}))?',
    re.IGNORECASE,
)

DAYS_PATTERN = re.compile(rf'(?<!\bin\s)\b({NUMBER_PATTERN})[\s-]+(?:days?|nights?)\b', re.IGNORECASE)
WEEKS_PATTERN = re.compile(rf'(?<!\bin\s)\b({NUMBER_PATTERN})[\s-]+weeks?\b', re.IGNORECASE)


def month_number(token: str) -> int:
    """1-based month for a full or abbreviated month name"""
    token = token.lower().rstrip('.')
    for index, name in enumerate(MONTHS):
        if name.startswith(token[:3]):
            return index + 1
    raise ValueError(f"Unknown month: {token}")


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except (ValueError, OverflowError):
        return None


def within_trip_limit(days: Optional[int]) -> bool:
    return days is not None and 0 < days <= ConversationConfig.MAX_TRIP_DAYS


def parse_duration(text: str) -> Optional[int]:
    """
    Trip length in days, or None when the text states none.

    "N days/nights" (but not "in N days"), "N weeks", "a fortnight" and
    "weekend"/"long weekend". Weeks and days in one phrase add up.
    Lengths beyond ``MAX_TRIP_DAYS`` are not trips and yield None.
    """
    days = DAYS_PATTERN.search(text)
    weeks = WEEKS_PATTERN.search(text)

    total = 0
    if weeks:
        total += parse_number(weeks.group(1)) * 7
    if days:
        total += parse_number(days.group(1))
    if total > 0:
        return total if within_trip_limit(total) else None

    lowered = text.lower()
    if re.search(r'\bfortnight\b', lowered):
        return 14
    if re.search(r'\bweekend\b', lowered):
        return ConversationConfig.WEEKEND_DAYS
    return None


class DateParser:
    """Resolves date expressions in a message to ISO start/end dates"""

    def __init__(self, today: Optional[date] = None):
        self.today = today or date.today()

        # First match wins
        self.matchers: List[Tuple[str, Callable[[str], Optional[DateFields]]]] = [
            ("range", self._match_range),
            ("explicit_start", self._match_explicit_start),
            ("relative", self._match_relative),
            ("month_only", self._match_month_only),
        ]

    def parse(self, text: str) -> Optional[DateFields]:
        """
        Returns a dict with ``start_date`` and optionally ``end_date`` and
        ``duration`` (inclusive day count of a range), or None.
        """
        for _, matcher in self.matchers:
            result = matcher(text)
            if result:
                return result
        return None

    def matched_rule(self, text: str) -> Optional[str]:
        for name, matcher in self.matchers:
            if matcher(text):
                return name
        return None

    # Year inference

    def infer_date(self, month: int, day: int, year: Optional[int] = None) -> Optional[date]:
        """A date without a year is this year, or next year once it has passed"""
        if year:
            return _safe_date(year, month, day)
        candidate = _safe_date(self.today.year, month, day)
        if candidate and candidate < self.today:
            candidate = _safe_date(self.today.year + 1, month, day)
        return candidate

    def _build_range(self, start: Optional[date], end: Optional[date]) -> Optional[DateFields]:
        if not start or not end:
            return None
        if end < start:
            # "Dec 28 to Jan 3" crosses into the next year
            end = _safe_date(end.year + 1, end.month, end.day)
            if not end:
                return None
        return {
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "duration": (end - start).days + 1,
        }

    # (a) ranges

    def _match_range(self, text: str) -> Optional[DateFields]:
        match = RANGE_PATTERN.search(text)
        if match:
            start_month = month_number(match.group(1))
            end_month = month_number(match.group(3)) if match.group(3) else start_month
            year = int(match.group(5)) if match.group(5) else None
            return self._resolve_range(start_month, int(match.group(2)), end_month, int(match.group(4)), year)

        match = DAY_FIRST_RANGE_PATTERN.search(text)
        if match:
            month = month_number(match.group(3))
            year = int(match.group(4)) if match.group(4) else None
            return self._resolve_range(month, int(match.group(1)), month, int(match.group(2)), year)
        return None

    def _resolve_range(self, start_month: int, start_day: int, end_month: int, end_day: int,
                       year: Optional[int]) -> Optional[DateFields]:
        if year:
            # A trailing year belongs to the end date: "Dec 28 to Jan 3 2027"
            end = _safe_date(year, end_month, end_day)
            start_year = year if start_month <= end_month else year - 1
            start = _safe_date(start_year, start_month, start_day)
        else:
            start = self.infer_date(start_month, start_day)
            end = _safe_date(start.year if start else self.today.year, end_month, end_day)
        return self._build_range(start, end)

    # (b) explicit start dates

    def _match_explicit_start(self, text: str) -> Optional[DateFields]:
        match = ISO_PATTERN.search(text)
        if match:
            start = _safe_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
            if start:
                return {"start_date": start.isoformat()}

        match = ORDINAL_OF_MONTH_PATTERN.search(text)
        if match:
            year = int(match.group(3)) if match.group(3) else None
            start = self.infer_date(month_number(match.group(2)), int(match.group(1)), year)
            if start:
                return {"start_date": start.isoformat()}

        match = MONTH_DAY_PATTERN.search(text)
        if match:
            year = int(match.group(3)) if match.group(3) else None
            start = self.infer_date(month_number(match.group(1)), int(match.group(2)), year)
            if start:
                return {"start_date": start.isoformat()}

        match = DAY_MONTH_PATTERN.search(text)
        if match:
            year = int(match.group(3)) if match.group(3) else None
            start = self.infer_date(month_number(match.group(2)), int(match.group(1)), year)
            if start:
                return {"start_date": start.isoformat()}
        return None

    # (c) relative expressions

    def next_monday(self) -> date:
        return self.today + timedelta(days=(0 - self.today.weekday()) % 7 or 7)

    def _match_relative(self, text: str) -> Optional[DateFields]:
        lowered = text.lower()
        today = self.today
        start = None

        weekday_next_week = re.search(rf'\b({WEEKDAY_PATTERN})\s+next\s+week\b', lowered)
        next_weekday = re.search(rf'\bnext\s+({WEEKDAY_PATTERN})\b', lowered)
        this_weekday = re.search(rf'\b(?:this|on)\s+({WEEKDAY_PATTERN})\b', lowered)
        in_n = re.search(rf'\bin\s+({NUMBER_PATTERN})\s+(days?|weeks?)\b', lowered)

        if weekday_next_week:
            start = self.next_monday() + timedelta(days=WEEKDAYS.index(weekday_next_week.group(1)))
        elif re.search(r'\bnext\s+week\b', lowered):
            start = self.next_monday()
        elif next_weekday:
            target = WEEKDAYS.index(next_weekday.group(1))
            start = today + timedelta(days=(target - today.weekday()) % 7 or 7)
        elif re.search(r'\bnext\s+month\b', lowered):
            if today.month == 12:
                start = date(today.year + 1, 1, 1)
            else:
                start = date(today.year, today.month + 1, 1)
        elif in_n:
            amount = parse_number(in_n.group(1))
            if in_n.group(2).startswith('week'):
                amount *= 7
            if within_trip_limit(amount):
                start = today + timedelta(days=amount)
        elif re.search(r'\bday after tomorrow\b', lowered):
            start = today + timedelta(days=2)
        elif re.search(r'\btomorrow\b', lowered):
            start = today + timedelta(days=1)
        elif re.search(r'\b(?:today|tonight)\b', lowered):
            start = today
        elif re.search(r'\bthis\s+weekend\b', lowered):
            start = today + timedelta(days=(5 - today.weekday()) % 7)
        elif re.search(r'\bnext\s+weekend\b', lowered):
            start = today + timedelta(days=(5 - today.weekday()) % 7 + 7)
        elif this_weekday:
            target = WEEKDAYS.index(this_weekday.group(1))
            start = today + timedelta(days=(target - today.weekday()) % 7)

        if start:
            return {"start_date": start.isoformat()}
        return None

    # (d) month only

    def _match_month_only(self, text: str) -> Optional[DateFields]:
        match = MONTH_ONLY_PATTERN.search(text)
        if not match:
            return None
        month = month_number(match.group(1))
        if match.group(2):
            year = int(match.group(2))
        elif month < self.today.month:
            year = self.today.year + 1
        else:
            year = self.today.year
        start = _safe_date(year, month, 1)
        return {"start_date": start.isoformat()} if start else None
