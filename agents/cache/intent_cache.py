import re
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, List, Optional
import structlog

from config.conversation_config import ConversationConfig
from models.intent_models import ParsedIntent

logger = structlog.get_logger()

FILLER_PATTERN = re.compile(r"\b(?:please|could you|can you|i want to|i'd like to|i would like to)\b")


class CacheEntry:
    __slots__ = ("key", "value", "timestamp")

    def __init__(self, key: str, value: ParsedIntent, timestamp: float):
        self.key = key
        self.value = value
        self.timestamp = timestamp


class IntentCache:
    """
    In-memory cache of extracted intents keyed by normalized message text.

    Entries expire after ``ttl_seconds`` and are evicted lazily on read.
    When the cache is full the oldest insertion is evicted on write.
    """

    def __init__(self, ttl_seconds: Optional[float] = None, max_entries: Optional[int] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Args:
            ttl_seconds: Entry lifetime (default: INTENT_CACHE_TTL_SECONDS, 1 hour)
            max_entries: Capacity before the oldest entry is evicted (default: 100)
            clock: Monotonic time source, injectable for tests
        """
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else ConversationConfig.INTENT_CACHE_TTL_SECONDS
        self.max_entries = max_entries if max_entries is not None else ConversationConfig.INTENT_CACHE_MAX_ENTRIES
        self.clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get_cache_key(self, message: str) -> str:
        return re.sub(r"\s+", " ", (message or "").lower().strip())

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp > self.ttl_seconds

    def _get_locked(self, key: str) -> Optional[ParsedIntent]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._expired(entry, self.clock()):
            del self._entries[key]
            logger.debug("Cache entry expired", category="intent_cache", cache_key=key)
            return None
        return entry.value

    def _set_locked(self, key: str, value: ParsedIntent) -> None:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.max_entries:
            oldest_key, _ = self._entries.popitem(last=False)
            logger.debug("Evicted oldest cache entry", category="intent_cache", cache_key=oldest_key)
        self._entries[key] = CacheEntry(key, value.model_copy(deep=True), self.clock())

    def get(self, key: str) -> Optional[ParsedIntent]:
        with self._lock:
            value = self._get_locked(key)
        if value is None:
            return None
        logger.debug("Cache hit", category="intent_cache", cache_key=key)
        return value.model_copy(deep=True)

    def set(self, key: str, value: ParsedIntent) -> None:
        with self._lock:
            self._set_locked(key, value)
            size = len(self._entries)
        logger.debug("Added to cache", category="intent_cache", cache_key=key, cache_size=size)

    def has(self, key: str) -> bool:
        with self._lock:
            return self._get_locked(key) is not None

    def get_intent(self, message: str) -> Optional[ParsedIntent]:
        """Exact match on the normalized message, then a fuzzy word-overlap match"""
        key = self.get_cache_key(message)
        with self._lock:
            value = self._get_locked(key)
            if value is not None:
                self._hits += 1
                logger.info("Cache hit", category="intent_cache", cache_key=key)
                return value.model_copy(deep=True)

            words = key.split()
            min_match_words = max(ConversationConfig.FUZZY_MIN_MATCH_WORDS,
                                  int(len(words) * ConversationConfig.FUZZY_MATCH_RATIO))
            now = self.clock()
            for cached_key, entry in self._entries.items():
                cached_words = set(cached_key.split())
                matching = [word for word in words if word in cached_words]
                if len(matching) >= min_match_words and not self._expired(entry, now):
                    self._hits += 1
                    logger.info("Fuzzy cache hit", category="intent_cache", original=message, matched=cached_key)
                    return entry.value.model_copy(deep=True)

            self._misses += 1
        logger.debug("Cache miss", category="intent_cache", cache_key=key)
        return None

    def set_intent(self, message: str, intent: ParsedIntent) -> None:
        """Store the intent under the message and its common variations"""
        key = self.get_cache_key(message)
        with self._lock:
            self._set_locked(key, intent)
            for variation in self.generate_variations(message):
                variation_key = self.get_cache_key(variation)
                if variation_key and self._get_locked(variation_key) is None:
                    self._set_locked(variation_key, intent)
        logger.info("Intent cached", category="intent_cache", cache_key=key)

    def generate_variations(self, message: str) -> List[str]:
        variations = []
        lowered = (message or "").lower()

        without_fillers = re.sub(r"\s+", " ", FILLER_PATTERN.sub("", lowered)).strip()
        if without_fillers != lowered.strip():
            variations.append(without_fillers)

        date_normalized = re.sub(r"\bnext week\b", "7 days", lowered)
        date_normalized = re.sub(r"\bthis weekend\b", "3 days", date_normalized)
        date_normalized = re.sub(r"\bnext month\b", "30 days", date_normalized)
        if date_normalized != lowered:
            variations.append(date_normalized)

        return variations

    def clean_expired(self) -> int:
        with self._lock:
            now = self.clock()
            expired = [key for key, entry in self._entries.items() if self._expired(entry, now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("Cleaned expired cache entries", category="intent_cache", removed=len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            size = len(self._entries)
            self._entries.clear()
        logger.debug("Cleared cache", category="intent_cache", entries_removed=size)

    def get_cache_stats(self) -> Dict[str, Any]:
        with self._lock:
            now = self.clock()
            oldest = min((entry.timestamp for entry in self._entries.values()), default=None)
            return {
                "size": len(self._entries),
                "max_entries": self.max_entries,
                "ttl_seconds": self.ttl_seconds,
                "oldest_entry_age_seconds": now - oldest if oldest is not None else None,
                "hits": self._hits,
                "misses": self._misses,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
