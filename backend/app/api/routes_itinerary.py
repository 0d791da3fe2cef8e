# backend/app/api/routes_itinerary.py

from fastapi import APIRouter, Depends
from typing import List

from app.api.deps import get_current_user_id, get_db
from app.core.exceptions import ResourceNotFoundError, ValidationError
from app.core.logger import get_logger
from app.db.sqlite_memory import SQLiteMemory
from app.models.itinerary_models import (
    ConversationState,
    SaveItineraryIn,
    SaveItineraryOut,
    UpdateItineraryIn,
)

router = APIRouter(prefix="/itineraries", tags=["itineraries"])
logger = get_logger("itineraries")


@router.post("/save", status_code=201, response_model=SaveItineraryOut)
def save_itinerary(
    data: SaveItineraryIn,
    user_id: str = Depends(get_current_user_id),
    db: SQLiteMemory = Depends(get_db),
):
    """Persist a generated itinerary; this creates its (empty) chat history."""
    if not data.destination or not data.content:
        raise ValidationError("Destination and content are required")

    fields = data.model_dump(exclude={"title"})
    fields["title"] = data.title or f"{data.destination} Trip"

    itinerary_id = db.insert_itinerary(user_id, fields)
    logger.info(f"Saved itinerary {itinerary_id} for user {user_id}")
    return SaveItineraryOut(itinerary_id=itinerary_id)


@router.get("", response_model=List[ConversationState])
def list_itineraries(
    user_id: str = Depends(get_current_user_id),
    db: SQLiteMemory = Depends(get_db),
):
    return db.list_itineraries(user_id)


@router.get("/{itinerary_id}", response_model=ConversationState)
def get_itinerary(
    itinerary_id: str,
    user_id: str = Depends(get_current_user_id),
    db: SQLiteMemory = Depends(get_db),
):
    item = db.find_itinerary(itinerary_id, user_id)
    if not item:
        raise ResourceNotFoundError("Itinerary not found")
    return item


@router.put("/{itinerary_id}")
def update_itinerary(
    itinerary_id: str,
    data: UpdateItineraryIn,
    user_id: str = Depends(get_current_user_id),
    db: SQLiteMemory = Depends(get_db),
):
    """Edit path: replaces the itinerary text and/or the whole chat history."""
    history = None
    if data.chat_history is not None:
        history = [turn.model_dump() for turn in data.chat_history]

    if not db.update_itinerary(itinerary_id, user_id, content=data.content, chat_history=history):
        raise ResourceNotFoundError("Itinerary not found")
    return {"message": "Itinerary updated successfully"}


@router.delete("/{itinerary_id}")
def delete_itinerary(
    itinerary_id: str,
    user_id: str = Depends(get_current_user_id),
    db: SQLiteMemory = Depends(get_db),
):
    if not db.delete_itinerary(itinerary_id, user_id):
        raise ResourceNotFoundError("Itinerary not found")
    logger.info(f"Deleted itinerary {itinerary_id}")
    return {"message": "Itinerary deleted successfully"}
