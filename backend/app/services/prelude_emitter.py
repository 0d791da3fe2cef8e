# backend/app/services/prelude_emitter.py

import asyncio
from typing import Awaitable, Callable, List

from app.core.exceptions import ClientDisconnected
from app.core.logger import get_logger
from app.models.planning_models import TripRequest
from app.models.stream_models import ThoughtFrame
from app.services.relay import FrameChannel

logger = get_logger("prelude")

DEFAULT_STEP_DELAY = 0.5


def build_prelude_steps(trip: TripRequest) -> List[str]:
    return [
        f"Analyzing destination: {trip.destination}...",
        f"Considering {trip.duration_days} days with {trip.budget} budget...",
        f"Matching activities to interests: {trip.interests}...",
        f"Optimizing daily schedule for {trip.pace} pace...",
        f"Finding best {trip.accommodation} options...",
        "Adding hidden gems and local favorites...",
        "Creating detailed itinerary...",
    ]


class PreludeEmitter:
    """Writes the status steps as thought frames, pausing after each one."""

    def __init__(
        self,
        delay: float = DEFAULT_STEP_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.delay = delay
        self._sleep = sleep

    async def emit(self, channel: FrameChannel, steps: List[str]) -> bool:
        """False when the client is gone and nothing more should be produced."""
        for step in steps:
            try:
                await channel.write(ThoughtFrame(text=step))
            except ClientDisconnected:
                logger.info(f"{channel.label}: client gone during prelude")
                return False
            await self._sleep(self.delay)
        return True
