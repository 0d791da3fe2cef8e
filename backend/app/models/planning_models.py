# backend/app/models/planning_models.py

from datetime import date
from pydantic import BaseModel
from typing import Optional


class TripRequest(BaseModel):
    """Validated generation input; duration is derived once from the dates."""
    destination: str
    start_date: date
    end_date: date
    duration_days: int

    budget: str = ""
    travelers: str = ""
    interests: str = ""
    accommodation: str = ""
    pace: str = ""
    additional_notes: Optional[str] = None
