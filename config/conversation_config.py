import os
from dotenv import load_dotenv

load_dotenv()


class ConversationConfig:
    """Limits for the intent cache and conversation sessions"""

    # Intent cache
    INTENT_CACHE_TTL_SECONDS: int = int(os.getenv("INTENT_CACHE_TTL_SECONDS", "3600"))  # 1 hour
    INTENT_CACHE_MAX_ENTRIES: int = int(os.getenv("INTENT_CACHE_MAX_ENTRIES", "100"))
    FUZZY_MATCH_RATIO: float = 0.7
    FUZZY_MIN_MATCH_WORDS: int = 2

    # Sessions
    SESSION_TTL_HOURS: int = int(os.getenv("SESSION_TTL_HOURS", "24"))
    MAX_MESSAGES: int = int(os.getenv("MAX_CONVERSATION_MESSAGES", "20"))
    PRESERVE_FIRST_MESSAGE: bool = os.getenv("PRESERVE_FIRST_MESSAGE", "true").lower() == "true"

    # "weekend" always means Friday to Sunday
    WEEKEND_DAYS: int = 3

    # Longest trip or relative offset ("in N days") taken from free text
    MAX_TRIP_DAYS: int = 365
