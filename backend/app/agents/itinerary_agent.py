# backend/app/agents/itinerary_agent.py

from typing import Dict, List

from app.models.itinerary_models import ConversationState
from app.models.planning_models import TripRequest


GENERATION_SYSTEM_PROMPT = (
    "You are an expert travel planner with deep knowledge of destinations worldwide. "
    "Create detailed, personalized travel itineraries that are practical, exciting, and "
    "tailored to the user's preferences. Include specific recommendations for activities, "
    "restaurants, accommodations, and insider tips."
)

# Older turns are dropped past this many messages
MAX_HISTORY_MESSAGES = 100


class ItineraryAgent:
    """
    Builds the role-tagged message lists sent to the completion provider:
    - itinerary generation from trip parameters
    - follow-up chat grounded on a saved itinerary and its history
    """

    # -----------------------------
    # 1. Generation prompt
    # -----------------------------
    def build_generation_messages(self, trip: TripRequest) -> List[Dict[str, str]]:
        special = f"- Special Requests: {trip.additional_notes}\n" if trip.additional_notes else ""

        user_prompt = f"""Create a detailed {trip.duration_days}-day travel itinerary for {trip.destination}.

**Trip Details:**
- Dates: {trip.start_date.isoformat()} to {trip.end_date.isoformat()} ({trip.duration_days} days)
- Budget: {trip.budget}
- Travelers: {trip.travelers}
- Accommodation: {trip.accommodation}
- Travel Pace: {trip.pace}
- Interests: {trip.interests}
{special}
**Please provide:**

1. **Trip Overview**: Brief introduction about {trip.destination} and why it's perfect for this trip

2. **Day-by-Day Itinerary**: For each day, include:
   - Morning activities (with specific times and locations)
   - Lunch recommendations (restaurant names and cuisine types)
   - Afternoon activities
   - Dinner recommendations
   - Evening activities or entertainment
   - Estimated daily budget breakdown

3. **Must-Know Tips**:
   - Best way to get around
   - Money-saving tips
   - Local customs and etiquette
   - What to pack

4. **Hidden Gems**: 3-5 less touristy spots that match their interests

5. **Budget Summary**: Total estimated cost breakdown

Format the response in clean Markdown with clear headings and bullet points. Make it engaging and exciting!"""

        return [
            {"role": "system", "content": GENERATION_SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ]

    # -----------------------------
    # 2. Chat prompt
    # -----------------------------
    def build_chat_messages(self, state: ConversationState, message: str) -> List[Dict[str, str]]:
        system_message = (
            f"You are a helpful travel assistant. The user has a travel itinerary for "
            f"{state.destination}. Here's their itinerary:\n\n{state.content}\n\n"
            "Help them with questions about their trip, suggest modifications, recommend "
            "additional activities, or provide travel tips. Be specific and reference their "
            "itinerary when relevant."
        )

        messages = [{"role": "system", "content": system_message}]

        history = state.chat_history[-MAX_HISTORY_MESSAGES:]
        for turn in history:
            messages.append({"role": turn.role, "content": turn.content})

        messages.append({"role": "user", "content": message})
        return messages
