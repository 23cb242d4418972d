"""Chat session endpoints"""

import logging
from typing import Dict, Set

from fastapi import APIRouter, BackgroundTasks, HTTPException

from design_chat.core.controller import ConversationController
from design_chat.core.storage import state_store
from design_chat.models.errors import ApplicationError, ErrorCode, SessionLimitError
from design_chat.models.schemas import (
    ChoiceRequest,
    EmailRequest,
    FeedbackRequest,
    RatingRequest,
    ReferencesRequest,
    SessionView,
    TextRequest,
)

router = APIRouter()
logger = logging.getLogger(__name__)

# In-memory controller cache keyed by client id; state itself lives in state_store
session_store: Dict[str, ConversationController] = {}
_running_generations: Set[str] = set()


def _raise_http(error: ApplicationError):
    raise HTTPException(status_code=error.http_status, detail=error.model_dump())


def _evict(client_id: str) -> None:
    """Drop a finished client from the cache; its state stays in state_store"""
    if client_id in _running_generations:
        return
    if session_store.pop(client_id, None) is not None:
        logger.info(f"Released session controller for client {client_id}")


def get_controller(client_id: str, create: bool = False) -> ConversationController:
    controller = session_store.get(client_id)
    if controller is not None:
        return controller

    try:
        if not create and state_store.load(client_id) is None:
            raise ApplicationError(ErrorCode.NOT_FOUND, f"Session not found for client {client_id}")
        controller = ConversationController(client_id, store=state_store)
    except ApplicationError as e:
        _raise_http(e)

    session_store[client_id] = controller
    return controller


async def _run_generation(client_id: str) -> None:
    controller = session_store.get(client_id)
    if controller is None or client_id in _running_generations:
        return

    _running_generations.add(client_id)
    try:
        logger.info(f"[BACKGROUND TASK] Starting generation for client {client_id}")
        result = await controller.run_pending_generation()
        if result is not None:
            logger.info(f"[BACKGROUND TASK] Generation for client {client_id} finished (success={result.success})")
    except Exception as e:
        logger.error(f"[BACKGROUND TASK] Generation error for client {client_id}: {e}", exc_info=True)
    finally:
        _running_generations.discard(client_id)


def _schedule_pending(client_id: str, controller: ConversationController, background_tasks: BackgroundTasks):
    if controller.state.generation_pending and client_id not in _running_generations:
        background_tasks.add_task(_run_generation, client_id)
        logger.info(f"Background generation scheduled for client {client_id}")


@router.post("/sessions/{client_id}", response_model=SessionView)
async def open_session(client_id: str, background_tasks: BackgroundTasks) -> SessionView:
    """Load the client's session, creating a new one when none is stored"""
    logger.info(f"POST /api/sessions/{client_id}")
    controller = get_controller(client_id, create=True)
    # Resume a generation that was pending when the process stopped
    _schedule_pending(client_id, controller, background_tasks)
    return controller.view()


@router.get("/sessions/{client_id}", response_model=SessionView)
async def get_session(client_id: str) -> SessionView:
    return get_controller(client_id).view()


@router.post("/sessions/{client_id}/text", response_model=SessionView)
async def submit_text(client_id: str, request: TextRequest, background_tasks: BackgroundTasks) -> SessionView:
    controller = get_controller(client_id)
    controller.submit_free_text(request.text)
    _schedule_pending(client_id, controller, background_tasks)
    return controller.view()


@router.post("/sessions/{client_id}/choice", response_model=SessionView)
async def submit_choice(client_id: str, request: ChoiceRequest, background_tasks: BackgroundTasks) -> SessionView:
    controller = get_controller(client_id)
    controller.submit_choice(request.label)
    _schedule_pending(client_id, controller, background_tasks)
    return controller.view()


@router.post("/sessions/{client_id}/references", response_model=SessionView)
async def submit_references(
    client_id: str,
    request: ReferencesRequest,
    background_tasks: BackgroundTasks
) -> SessionView:
    controller = get_controller(client_id)
    controller.submit_structured_entries(request.entries)
    _schedule_pending(client_id, controller, background_tasks)
    return controller.view()


@router.post("/sessions/{client_id}/continue", response_model=SessionView)
async def continue_generation(client_id: str, background_tasks: BackgroundTasks) -> SessionView:
    """Start the redesign after the "no URL" notice"""
    controller = get_controller(client_id)
    controller.continue_to_generation()
    _schedule_pending(client_id, controller, background_tasks)
    return controller.view()


@router.post("/sessions/{client_id}/rating", response_model=SessionView)
async def submit_rating(client_id: str, request: RatingRequest) -> SessionView:
    controller = get_controller(client_id)
    controller.submit_rating(request.score)
    return controller.view()


@router.post("/sessions/{client_id}/feedback", response_model=SessionView)
async def submit_feedback(client_id: str, request: FeedbackRequest) -> SessionView:
    controller = get_controller(client_id)
    controller.submit_feedback(request.text)
    return controller.view()


@router.post("/sessions/{client_id}/email", response_model=SessionView)
async def submit_email(client_id: str, request: EmailRequest) -> SessionView:
    controller = get_controller(client_id)
    controller.submit_email(request.email)
    view = controller.view()
    if controller.session_closed:
        _evict(client_id)
    return view


@router.post("/sessions/{client_id}/new-chat", response_model=SessionView)
async def start_new_chat(client_id: str) -> SessionView:
    controller = get_controller(client_id, create=True)
    try:
        controller.start_new_chat()
    except ApplicationError as e:
        logger.info(f"New chat refused for client {client_id}: {e.message}")
        if isinstance(e, SessionLimitError):
            _evict(client_id)
        _raise_http(e)
    return controller.view()
