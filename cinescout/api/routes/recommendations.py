from __future__ import annotations

from uuid import uuid4

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from cinescout.agents.research_agent import ResearchSession
from cinescout.errors import InvalidRequest
from cinescout.llm_client import require_api_key
from cinescout.models.schemas import RecommendationRequest, validate_recommendation_request
from cinescout.services import logger as log_service
from cinescout.services.relay import relay_frames

router = APIRouter(prefix="/api/movie-recommendations", tags=["recommendations"])

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    # Disable nginx buffering for SSE
    "X-Accel-Buffering": "no",
}


def open_research_session(recommendation: RecommendationRequest) -> ResearchSession:
    return ResearchSession(
        recommendation.favorite_movies,
        recommendation.movie_preferences,
    )


@router.post("")
async def stream_recommendations(request: Request):
    """SSE endpoint that streams movie research progress and the final picks."""
    try:
        body = await request.json()
    except ValueError as e:
        raise InvalidRequest("Request body must be valid JSON") from e

    recommendation = validate_recommendation_request(body)
    require_api_key()

    session = open_research_session(recommendation)
    request_id = uuid4().hex[:12]
    log_service.log_event(
        event_type="recommendations_requested",
        message="Movie research requested",
        request_id=request_id,
        favorites=len(recommendation.favorite_movies),
        with_preferences=sum(1 for note in recommendation.movie_preferences.values() if note),
    )

    return StreamingResponse(
        relay_frames(session.messages(), request_id=request_id),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )
