"""
Storage for conversation contexts.

The state manager talks to a SessionStore so that a shared store can be
plugged in for multi-instance deployments. The in-memory store is the default
and only lives as long as the process.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterator, List, Optional
import threading

from models.conversation_models import ConversationContext


class SessionStore(ABC):
    @abstractmethod
    def get(self, session_id: str) -> Optional[ConversationContext]:
        pass

    @abstractmethod
    def put(self, context: ConversationContext) -> None:
        pass

    @abstractmethod
    def delete(self, session_id: str) -> bool:
        pass

    @abstractmethod
    def expire(self, cutoff: datetime) -> List[str]:
        """Remove contexts last updated before ``cutoff``, returning their ids"""
        pass

    @abstractmethod
    def values(self) -> Iterator[ConversationContext]:
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass


class InMemorySessionStore(SessionStore):
    def __init__(self):
        self._contexts: Dict[str, ConversationContext] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> Optional[ConversationContext]:
        with self._lock:
            return self._contexts.get(session_id)

    def put(self, context: ConversationContext) -> None:
        with self._lock:
            self._contexts[context.session_id] = context

    def delete(self, session_id: str) -> bool:
        with self._lock:
            return self._contexts.pop(session_id, None) is not None

    def expire(self, cutoff: datetime) -> List[str]:
        with self._lock:
            expired = [sid for sid, context in self._contexts.items() if context.last_updated < cutoff]
            for sid in expired:
                del self._contexts[sid]
        return expired

    def values(self) -> Iterator[ConversationContext]:
        with self._lock:
            snapshot = list(self._contexts.values())
        return iter(snapshot)

    def __len__(self) -> int:
        with self._lock:
            return len(self._contexts)
