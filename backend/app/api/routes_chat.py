# backend/app/api/routes_chat.py

from fastapi import APIRouter, Depends

from app.agents.itinerary_agent import ItineraryAgent
from app.api.deps import get_agent, get_completion_provider, get_current_user_id, get_db
from app.core.exceptions import AppException, ResourceNotFoundError, ValidationError
from app.core.llm import CHAT_PARAMS, CompletionProvider
from app.core.logger import get_logger
from app.db.sqlite_memory import SQLiteMemory
from app.models.itinerary_models import ChatIn
from app.models.stream_models import DoneFrame
from app.services.access import NotFound, authorize_itinerary
from app.services.completion_bridge import CompletionBridge
from app.services.relay import FrameChannel, open_relay
from app.services.session_reconciler import ChatReconciler
from app.utils.time_utils import utc_now

router = APIRouter(prefix="/itineraries", tags=["chat"])
logger = get_logger("chat")

CHAT_ERROR_MESSAGE = "An error occurred while processing your message."


# -----------------------------
# Chat about a saved itinerary (SSE)
# -----------------------------
@router.post("/{itinerary_id}/chat", summary="Chat about a saved itinerary")
async def chat(
    itinerary_id: str,
    req: ChatIn,
    user_id: str = Depends(get_current_user_id),
    db: SQLiteMemory = Depends(get_db),
    provider: CompletionProvider = Depends(get_completion_provider),
    agent: ItineraryAgent = Depends(get_agent),
):
    """
    Streams the assistant reply as content frames, then stores the user
    message and the reply in the itinerary's chat history before [DONE].
    """
    received_at = utc_now()

    if not req.message:
        raise ValidationError("Message is required")

    try:
        access = authorize_itinerary(db, itinerary_id, user_id)
        if isinstance(access, NotFound):
            raise ResourceNotFoundError("Itinerary not found")

        state = access.state
        messages = agent.build_chat_messages(state, req.message)
    except AppException:
        raise
    except Exception as e:
        logger.error(f"Chat setup failed for itinerary {itinerary_id}: {e}", exc_info=True)
        raise AppException(code=500, slug="chat_failed", msg="Failed to process chat message")

    bridge = CompletionBridge(provider)
    reconciler = ChatReconciler(db)

    async def work(channel: FrameChannel):
        result = await bridge.relay(channel, messages, CHAT_PARAMS, error_message=CHAT_ERROR_MESSAGE)
        reconciler.reconcile(state, req.message, received_at, result)
        if result.completed:
            await channel.write(DoneFrame())

    logger.info(f"Chat on itinerary {itinerary_id}: {len(state.chat_history)} prior turns")
    return open_relay(work, label=f"chat:{itinerary_id}")
