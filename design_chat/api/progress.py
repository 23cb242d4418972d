"""GET /sse/progress/{client_id} endpoint"""

import asyncio
import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse

from design_chat.api.chat import session_store
from design_chat.models.schemas import ProgressEvent

logger = logging.getLogger(__name__)

router = APIRouter()

POLL_INTERVAL_SECONDS = 1.0
# Generation with retries and pacing can take several minutes
MAX_ITERATIONS = 1200


def _to_sse(session_id: str, event: dict) -> str:
    e = ProgressEvent(
        ts=event["ts"],
        session_id=session_id,
        phase=event["phase"],
        detail=event.get("detail", ""),
        progress=event.get("progress", 0.0)
    )
    return f"data: {e.model_dump_json()}\n\n"


@router.get("/progress/{client_id}")
async def stream_progress(client_id: str):
    """
    Stream generation progress as Server-Sent Events.

    Event format:
    {
      "ts": "2025-10-27T10:00:00+00:00",
      "session_id": "abc123",
      "phase": "GENERATING_SPECIFICATION",
      "detail": "Designing your page structure",
      "progress": 0.4
    }
    """
    logger.info(f"SSE ENDPOINT: /sse/progress/{client_id} - Request received")

    controller = session_store.get(client_id)
    if controller is None:
        logger.warning(f"SSE ENDPOINT: Session NOT FOUND: {client_id}")
        raise HTTPException(status_code=404, detail="Session not found")

    async def generate():
        last_event_id = 0
        last_progress = None
        iteration = 0

        while iteration < MAX_ITERATIONS:
            iteration += 1

            current = session_store.get(client_id)
            if current is None:
                logger.warning(f"SSE: Session {client_id} removed during streaming")
                break

            progress = current.progress
            if progress is not last_progress:
                # A new run restarts event ids
                last_progress = progress
                last_event_id = 0
            for event in progress.events_after(last_event_id):
                yield _to_sse(progress.session_id, event)
                last_event_id = event["id"]

            if progress.is_terminal() or not (current.state.is_busy or current.state.generation_pending):
                logger.info(f"SSE: Stream closing for client {client_id} - phase: {progress.phase.value}")
                break

            await asyncio.sleep(POLL_INTERVAL_SECONDS)

        if iteration >= MAX_ITERATIONS:
            logger.warning(f"SSE: Timeout for client {client_id}")

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no"
        }
    )
