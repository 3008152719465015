"""
Fixed vocabularies shared by the input classifier and the pattern extraction engine.
"""

import re
from typing import Dict, List

KNOWN_CITIES = frozenset([
    'london', 'paris', 'tokyo', 'rome', 'barcelona', 'amsterdam', 'berlin',
    'dubai', 'singapore', 'bangkok', 'lisbon', 'granada', 'madrid', 'milan',
    'vienna', 'prague', 'budapest', 'istanbul', 'cairo', 'sydney', 'melbourne',
    'san francisco', 'los angeles', 'new york', 'chicago', 'miami', 'seattle',
    'boston', 'toronto', 'vancouver', 'montreal', 'mexico city', 'cancun',
    'buenos aires', 'rio de janeiro', 'sao paulo', 'lima', 'bogota', 'athens',
    'santorini', 'copenhagen', 'stockholm', 'oslo', 'helsinki', 'reykjavik',
    'dublin', 'edinburgh', 'munich', 'frankfurt', 'zurich', 'geneva', 'brussels',
    'luxembourg', 'monaco', 'venice', 'florence', 'naples', 'porto', 'seville',
    'valencia', 'bilbao', 'krakow', 'warsaw', 'beijing', 'shanghai', 'hong kong',
    'taipei', 'seoul', 'osaka', 'kyoto', 'delhi', 'mumbai', 'bangalore', 'chennai',
    'kolkata', 'jakarta', 'bali', 'manila', 'kuala lumpur', 'ho chi minh', 'hanoi',
    'phnom penh', 'colombo', 'kathmandu', 'tel aviv', 'jerusalem', 'amman',
    'beirut', 'doha', 'abu dhabi', 'muscat', 'casablanca', 'marrakech', 'tunis',
    'johannesburg', 'cape town', 'nairobi', 'lagos', 'accra', 'addis ababa',
])

# Regions are too broad to plan a trip around
VAGUE_REGIONS = frozenset([
    'europe', 'asia', 'africa', 'america', 'south america', 'north america',
    'australia', 'antarctica', 'oceania', 'middle east', 'caribbean', 'scandinavia',
])

MONTHS = [
    'january', 'february', 'march', 'april', 'may', 'june',
    'july', 'august', 'september', 'october', 'november', 'december',
]

WEEKDAYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']

# Full names and common abbreviations, longest alternative first
MONTH_PATTERN = (
    r'jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?|'
    r'sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?'
)

WEEKDAY_PATTERN = '|'.join(WEEKDAYS)

NUMBER_WORDS: Dict[str, int] = {
    'a': 1, 'an': 1, 'one': 1, 'two': 2, 'three': 3, 'four': 4, 'five': 5,
    'six': 6, 'seven': 7, 'eight': 8, 'nine': 9, 'ten': 10, 'eleven': 11,
    'twelve': 12, 'fourteen': 14, 'fifteen': 15, 'twenty': 20, 'thirty': 30,
}

NUMBER_PATTERN = r'\d+|' + '|'.join(sorted(NUMBER_WORDS, key=len, reverse=True))

INTEREST_KEYWORDS: List[str] = [
    'culture', 'history', 'food', 'adventure', 'relaxation', 'nightlife',
    'shopping', 'nature', 'architecture', 'museums', 'beaches', 'hiking',
    'photography', 'local cuisine', 'wine', 'art', 'music', 'festivals',
    'sports', 'wellness', 'spa', 'luxury', 'family', 'romantic', 'backpacking',
    'outdoor', 'urban', 'rural', 'coastal', 'mountain', 'desert', 'wildlife',
]

# Surface forms that map onto an interest keyword
INTEREST_ALIASES: Dict[str, str] = {
    'museum': 'museums',
    'beach': 'beaches',
    'foodie': 'food',
    'cuisine': 'food',
    'hike': 'hiking',
    'historical': 'history',
    'historic': 'history',
    'cultural': 'culture',
    'festival': 'festivals',
    'mountains': 'mountain',
    'relaxing': 'relaxation',
    'romance': 'romantic',
}

BUDGET_KEYWORDS: Dict[str, List[str]] = {
    'budget': ['budget', 'cheap', 'affordable', 'economical', 'low-cost', 'low cost', 'hostel', 'backpack'],
    'mid': ['mid-range', 'mid range', 'midrange', 'standard', 'comfortable'],
    'luxury': ['luxury', 'luxurious', 'premium', 'high-end', 'first-class', 'first class',
               'exclusive', 'upscale', 'five-star', '5-star'],
}

PACE_KEYWORDS: Dict[str, List[str]] = {
    'relaxed': ['relaxed', 'slow', 'leisurely', 'chill', 'laid-back', 'laid back', 'slow-paced',
                'plenty of time', 'few activities'],
    'moderate': ['moderate pace', 'balanced', 'moderate'],
    'packed': ['packed', 'busy', 'intensive', 'fast-paced', 'action-packed',
               'see everything', 'as much as possible'],
}


def parse_number(token: str) -> int:
    """Digits or a number word as an int"""
    token = token.strip().lower()
    if token.isdigit():
        return int(token)
    return NUMBER_WORDS[token]


def title_case(name: str) -> str:
    return ' '.join(word.capitalize() for word in name.split())


def _city_regex() -> re.Pattern:
    # Longest names first so "new york" wins over any shorter overlap
    names = sorted(KNOWN_CITIES, key=len, reverse=True)
    return re.compile(r'\b(' + '|'.join(re.escape(name) for name in names) + r')\b', re.IGNORECASE)


KNOWN_CITY_REGEX = _city_regex()


def find_known_cities(text: str) -> List[str]:
    """Known cities in the order they appear, lowercase, without duplicates"""
    found = []
    for match in KNOWN_CITY_REGEX.finditer(text):
        city = match.group(1).lower()
        if city not in found:
            found.append(city)
    return found


def is_place_stopword(name: str) -> bool:
    """True for capitalized words that are not places (months, weekdays, regions)"""
    lowered = name.strip().lower()
    first = lowered.split()[0] if lowered else ''
    return (
        lowered in VAGUE_REGIONS
        or first in MONTHS
        or first in WEEKDAYS
        or first in ('i', 'we', 'my', 'the', 'a', 'an', 'next', 'this')
        or re.fullmatch(MONTH_PATTERN, first) is not None
    )
