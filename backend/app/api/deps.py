# backend/app/api/deps.py

from functools import lru_cache
from typing import Optional

from fastapi import Header

from app.agents.itinerary_agent import ItineraryAgent
from app.core.config_loader import settings
from app.core.exceptions import AuthorizationError
from app.core.llm import CompletionProvider, build_completion_provider
from app.core.security import user_id_from_authorization
from app.db.sqlite_memory import SQLiteMemory
from app.services.prelude_emitter import PreludeEmitter


@lru_cache
def get_db() -> SQLiteMemory:
    return SQLiteMemory(settings.DB_PATH)


@lru_cache
def get_completion_provider() -> CompletionProvider:
    return build_completion_provider(settings)


def get_agent() -> ItineraryAgent:
    return ItineraryAgent()


def get_prelude_emitter() -> PreludeEmitter:
    return PreludeEmitter(delay=settings.PRELUDE_STEP_DELAY_SECONDS)


def get_current_user_id(authorization: Optional[str] = Header(None)) -> str:
    user_id = user_id_from_authorization(authorization)
    if not user_id:
        raise AuthorizationError("Unauthorized")
    return user_id
