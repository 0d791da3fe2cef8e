# backend/app/services/session_reconciler.py

import sqlite3
from datetime import datetime
from typing import List, Optional

from app.core.exceptions import PersistenceError
from app.core.logger import get_logger
from app.db.sqlite_memory import SQLiteMemory
from app.models.itinerary_models import ConversationState, ConversationTurn
from app.services.completion_bridge import BridgeResult
from app.utils.time_utils import utc_now

logger = get_logger("reconciler")


class ChatReconciler:
    """
    Persists one chat exchange after its stream has ended.

    The user turn is always written together with the assistant turn, even
    when the provider failed or the client left, so the user's message is
    never lost; the assistant turn then holds whatever text arrived.
    """

    def __init__(self, db: SQLiteMemory):
        self.db = db

    def build_turns(
        self,
        user_message: str,
        received_at: datetime,
        assistant_text: str,
        completed_at: Optional[datetime] = None,
    ) -> List[ConversationTurn]:
        return [
            ConversationTurn(role="user", content=user_message, timestamp=received_at),
            ConversationTurn(role="assistant", content=assistant_text, timestamp=completed_at or utc_now()),
        ]

    def persist(self, state: ConversationState, turns: List[ConversationTurn]):
        try:
            self.db.append_chat_turns(state.id, [t.model_dump() for t in turns])
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not append chat turns to itinerary {state.id}: {e}") from e

    def reconcile(
        self,
        state: ConversationState,
        user_message: str,
        received_at: datetime,
        result: BridgeResult,
    ) -> bool:
        turns = self.build_turns(user_message, received_at, result.text)
        try:
            self.persist(state, turns)
        except PersistenceError as e:
            # The client-facing exchange is already settled; log only.
            logger.error(str(e), exc_info=True)
            return False

        logger.info(
            f"Itinerary {state.id}: stored exchange "
            f"({len(result.text)} chars, failed={result.failed}, disconnected={result.disconnected})"
        )
        return True


class GenerationReconciler:
    """Generation streams are saved later by an explicit save call; nothing is stored here."""

    def reconcile(self, destination: str, result: BridgeResult) -> bool:
        logger.info(
            f"Generated itinerary for {destination}: {result.fragments} fragments, "
            f"{len(result.text)} chars, completed={result.completed}"
        )
        return False
