# backend/app/api/routes_generate.py

from fastapi import APIRouter, Depends

from app.agents.itinerary_agent import ItineraryAgent
from app.api.deps import get_agent, get_completion_provider, get_prelude_emitter
from app.core.exceptions import AppException, ValidationError
from app.core.llm import GENERATION_PARAMS, CompletionProvider
from app.core.logger import get_logger
from app.models.itinerary_models import GenerateItineraryIn
from app.models.planning_models import TripRequest
from app.models.stream_models import DoneFrame
from app.services.completion_bridge import CompletionBridge
from app.services.prelude_emitter import PreludeEmitter, build_prelude_steps
from app.services.relay import FrameChannel, open_relay
from app.services.session_reconciler import GenerationReconciler
from app.utils.time_utils import parse_trip_date, trip_duration_days

router = APIRouter(tags=["generate"])
logger = get_logger("generate")

GENERATION_ERROR_MESSAGE = "An error occurred while generating your itinerary."


def build_trip_request(data: GenerateItineraryIn) -> TripRequest:
    """Validate the form and derive the trip duration once."""
    missing = [
        name for name, value in (
            ("destination", data.destination),
            ("startDate", data.start_date),
            ("endDate", data.end_date),
        )
        if not value or not value.strip()
    ]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    try:
        start = parse_trip_date(data.start_date)
        end = parse_trip_date(data.end_date)
    except ValueError:
        raise ValidationError("Dates must be valid calendar dates (YYYY-MM-DD)")

    duration = trip_duration_days(start, end)
    if duration < 0:
        raise ValidationError("End date must not be before start date")

    return TripRequest(
        destination=data.destination.strip(),
        start_date=start,
        end_date=end,
        duration_days=duration,
        budget=data.budget or "",
        travelers=data.travelers or "",
        interests=data.interests or "",
        accommodation=data.accommodation or "",
        pace=data.pace or "",
        additional_notes=data.additional_notes or None,
    )


# -----------------------------
# Generate an itinerary (SSE)
# -----------------------------
@router.post("/generate-itinerary", summary="Stream a generated itinerary")
async def generate_itinerary(
    data: GenerateItineraryIn,
    provider: CompletionProvider = Depends(get_completion_provider),
    agent: ItineraryAgent = Depends(get_agent),
    prelude: PreludeEmitter = Depends(get_prelude_emitter),
):
    trip = build_trip_request(data)

    try:
        messages = agent.build_generation_messages(trip)
        steps = build_prelude_steps(trip)
    except Exception as e:
        logger.error(f"Generation setup failed: {e}", exc_info=True)
        raise AppException(code=500, slug="generation_failed", msg="Failed to generate itinerary")

    bridge = CompletionBridge(provider)
    reconciler = GenerationReconciler()

    async def work(channel: FrameChannel):
        if not await prelude.emit(channel, steps):
            return
        result = await bridge.relay(channel, messages, GENERATION_PARAMS, error_message=GENERATION_ERROR_MESSAGE)
        reconciler.reconcile(trip.destination, result)
        if result.completed:
            await channel.write(DoneFrame())

    logger.info(f"Generating {trip.duration_days}-day itinerary for {trip.destination}")
    return open_relay(work, label=f"generate:{trip.destination}")
