import asyncio
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional
import structlog
from pydantic import ValidationError

from config.conversation_config import ConversationConfig
from models.conversation_models import ConversationContext, ConversationMessage, ConversationState, utc_now
from models.intent_models import ParsedIntent, merge_intents
from orchestrator.question_generator import required_fields_missing
from orchestrator.session_store import InMemorySessionStore, SessionStore

logger = structlog.get_logger()

FIELD_STATES = {
    "destination": ConversationState.COLLECTING_DESTINATION,
    "start_date": ConversationState.COLLECTING_DATES,
    "dates": ConversationState.COLLECTING_DATES,
    "duration": ConversationState.COLLECTING_DURATION,
    "travelers": ConversationState.COLLECTING_TRAVELERS,
    "preferences": ConversationState.COLLECTING_PREFERENCES,
}


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class ConversationStateManager:
    """
    Owns conversation contexts for the lifetime of their sessions.

    Contexts idle for longer than the session TTL are treated as gone. The
    message history is capped, always keeping the first message as an anchor.
    """

    def __init__(self, store: Optional[SessionStore] = None,
                 ttl_hours: Optional[float] = None,
                 max_messages: Optional[int] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.store = store or InMemorySessionStore()
        self.ttl = timedelta(hours=ttl_hours if ttl_hours is not None else ConversationConfig.SESSION_TTL_HOURS)
        self.max_messages = max_messages or ConversationConfig.MAX_MESSAGES
        self.clock = clock
        self._locks: Dict[str, asyncio.Lock] = {}

    # Lifecycle

    def create_context(self, session_id: Optional[str] = None) -> ConversationContext:
        now = self.clock()
        if not session_id:
            session_id = f"session-{int(now.timestamp() * 1000)}-{secrets.token_hex(5)[:9]}"

        context = ConversationContext(session_id=session_id, last_updated=now)
        self.store.put(context)
        logger.info("Initialized new conversation", category="conversation_state", session_id=session_id)
        return context

    def _is_expired(self, context: ConversationContext) -> bool:
        return self.clock() - _as_utc(context.last_updated) > self.ttl

    def get_context(self, session_id: str) -> Optional[ConversationContext]:
        context = self.store.get(session_id)
        if context is None:
            return None
        if self._is_expired(context):
            self.store.delete(session_id)
            self._locks.pop(session_id, None)
            logger.info("Expired conversation state", category="conversation_state", session_id=session_id)
            return None
        return context

    def get_or_create_context(self, session_id: Optional[str]) -> ConversationContext:
        if session_id:
            context = self.get_context(session_id)
            if context is not None:
                return context
        return self.create_context(session_id)

    def reset_context(self, session_id: str) -> ConversationContext:
        self.store.delete(session_id)
        logger.info("Cleared conversation state", category="conversation_state", session_id=session_id)
        return self.create_context(session_id)

    def cleanup_expired_contexts(self) -> int:
        expired = self.store.expire(self.clock() - self.ttl)
        for session_id in expired:
            self._locks.pop(session_id, None)
        if expired:
            logger.info("Cleaned up expired conversations", category="conversation_state", removed=len(expired))
        return len(expired)

    def session_lock(self, session_id: str) -> asyncio.Lock:
        """Lock serializing the turns of one session"""
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    # Updates

    def _require(self, session_id: str) -> ConversationContext:
        return self.get_or_create_context(session_id)

    def add_message(self, session_id: str, role: str, content: str) -> ConversationContext:
        context = self._require(session_id)
        now = self.clock()
        context.messages.append(ConversationMessage(role=role, content=content, timestamp=now))
        context.message_count += 1

        if len(context.messages) > self.max_messages:
            if ConversationConfig.PRESERVE_FIRST_MESSAGE:
                context.messages = [context.messages[0]] + context.messages[-(self.max_messages - 1):]
            else:
                context.messages = context.messages[-self.max_messages:]
            logger.debug(f"Trimmed conversation history to {self.max_messages} messages",
                         category="conversation_state", session_id=session_id)

        context.last_updated = now
        self.store.put(context)
        return context

    def update_intent(self, session_id: str, partial: ParsedIntent) -> ConversationContext:
        context = self._require(session_id)
        context.intent = merge_intents(context.intent, partial)
        context.last_updated = self.clock()
        self.store.put(context)
        logger.debug("Intent updated", category="conversation_state",
                     session_id=session_id, intent=context.intent.summary())
        return context

    def update_state(self, session_id: str, state: ConversationState) -> ConversationContext:
        context = self._require(session_id)
        if context.state != state:
            logger.info("Conversation state changed", category="conversation_state",
                        session_id=session_id, previous=context.state.value, state=state.value)
        context.state = state
        context.last_updated = self.clock()
        self.store.put(context)
        return context

    def get_state_for_field(self, field: str) -> ConversationState:
        return FIELD_STATES.get(field, ConversationState.INITIAL)

    def get_missing_fields(self, context: ConversationContext) -> List[str]:
        return required_fields_missing(context.intent)

    def has_required_fields(self, context: ConversationContext) -> bool:
        return not self.get_missing_fields(context)

    # Serialization

    def serialize_context(self, context: ConversationContext) -> str:
        return context.model_dump_json()

    def parse_context(self, serialized: str) -> Optional[ConversationContext]:
        """Parse a serialized context without storing it; None for a corrupt payload"""
        try:
            context = ConversationContext.model_validate_json(serialized)
        except (ValidationError, ValueError, TypeError) as e:
            logger.error("Failed to deserialize context", category="conversation_state", error=str(e))
            return None

        context.last_updated = _as_utc(context.last_updated)
        return context

    def install_context(self, context: ConversationContext) -> Optional[ConversationContext]:
        """
        Adopt a parsed context as the live one for its session.

        A stored context that has seen at least as many messages wins over
        the restored copy, so a stale payload cannot roll back a turn that
        already happened. Returns None when the restored context has expired.
        """
        current = self.get_context(context.session_id)
        if current is not None and current.message_count >= context.message_count:
            if current.message_count > context.message_count:
                logger.info("Ignoring stale serialized context", category="conversation_state",
                            session_id=context.session_id,
                            stored_messages=current.message_count,
                            restored_messages=context.message_count)
            return current

        if self._is_expired(context):
            logger.info("Restored context has expired", category="conversation_state", session_id=context.session_id)
            return None

        self.store.put(context)
        return context

    def deserialize_context(self, serialized: str) -> ConversationContext:
        """Restore a context; a corrupt payload yields a fresh context instead of an error"""
        context = self.parse_context(serialized)
        if context is None:
            return self.create_context()
        return self.install_context(context) or self.create_context(context.session_id)

    # Reporting

    def get_conversation_summary(self, context: ConversationContext) -> Dict[str, Any]:
        return {
            "session_id": context.session_id,
            "state": context.state.value,
            "destinations": context.intent.destination_list(),
            "duration": context.intent.duration or 0,
            "message_count": context.message_count,
            "missing_fields": self.get_missing_fields(context),
            "last_updated": context.last_updated.isoformat(),
        }

    def get_stats(self) -> Dict[str, Any]:
        contexts = list(self.store.values())
        total_messages = sum(context.message_count for context in contexts)
        oldest = min((_as_utc(context.last_updated) for context in contexts), default=None)
        return {
            "active_sessions": len(contexts),
            "total_messages": total_messages,
            "average_session_length": total_messages / len(contexts) if contexts else 0,
            "oldest_activity": oldest.isoformat() if oldest else None,
        }
