# backend/app/services/access.py

from typing import Union

from pydantic import BaseModel

from app.db.sqlite_memory import SQLiteMemory
from app.models.itinerary_models import ConversationState


class Allowed(BaseModel):
    state: ConversationState


class NotFound(BaseModel):
    itinerary_id: str


AccessResult = Union[Allowed, NotFound]


def authorize_itinerary(db: SQLiteMemory, itinerary_id: str, user_id: str) -> AccessResult:
    """
    Ownership check done before any stream resource exists. Someone else's
    itinerary is reported exactly like a missing one.
    """
    row = db.find_itinerary(itinerary_id, user_id)
    if row is None:
        return NotFound(itinerary_id=itinerary_id)
    return Allowed(state=ConversationState.model_validate(row))
