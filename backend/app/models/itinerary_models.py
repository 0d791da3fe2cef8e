# backend/app/models/itinerary_models.py

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Literal, Optional


class _CamelModel(BaseModel):
    # Browser payloads use camelCase (startDate, chatHistory, ...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -------------------------
# Chat history
# -------------------------
class ConversationTurn(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime


class ConversationState(_CamelModel):
    """A saved itinerary together with its chat history."""
    id: str
    user_id: str
    title: str
    destination: str
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    budget: Optional[str] = None
    travelers: Optional[str] = None
    interests: Optional[str] = None
    accommodation: Optional[str] = None
    pace: Optional[str] = None
    additional_notes: Optional[str] = None
    content: str
    chat_history: List[ConversationTurn] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


# -------------------------
# Requests
# -------------------------
class GenerateItineraryIn(_CamelModel):
    # Everything optional here; required fields are checked by the route so
    # that a missing field answers 400 {error} instead of a 422.
    destination: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    budget: Optional[str] = None
    travelers: Optional[str] = None
    interests: Optional[str] = None
    accommodation: Optional[str] = None
    pace: Optional[str] = None
    additional_notes: Optional[str] = None

    @field_validator("budget", "travelers", "interests", mode="before")
    @classmethod
    def _as_text(cls, value):
        if isinstance(value, list):
            return ", ".join(str(v) for v in value)
        if isinstance(value, (int, float)):
            return str(value)
        return value


class SaveItineraryIn(GenerateItineraryIn):
    title: Optional[str] = None
    content: Optional[str] = None


class UpdateItineraryIn(_CamelModel):
    content: Optional[str] = None
    chat_history: Optional[List[ConversationTurn]] = None


class ChatIn(BaseModel):
    message: Optional[str] = None


# -------------------------
# Responses
# -------------------------
class SaveItineraryOut(_CamelModel):
    message: str = "Itinerary saved successfully"
    itinerary_id: str
