"""Conversation controller - the interface the chat UI drives"""

import asyncio
import logging
from typing import List, Optional

from design_chat.models.errors import ApplicationError, ErrorCode, FlowIntegrityError, SessionLimitError
from design_chat.models.schemas import (
    Flow,
    GenerationResult,
    ReferenceEntry,
    SessionState,
    SessionView,
    WorkflowPhase,
)
from design_chat.core import session as lifecycle
from design_chat.core.answers import AnswerOutcome, OutcomeKind, handle_answer, handle_reference_entries
from design_chat.core.catalog import (
    COMPLETE_PHASES,
    AnswerRule,
    InputKind,
    QuestionCatalog,
    QuestionDefinition,
    question_catalog,
)
from design_chat.core.config import settings
from design_chat.core.messages import (
    BUSY_MESSAGE,
    CONTINUE_ACTION,
    DEFAULT_PLACEHOLDER,
    FLOW_ERROR_MESSAGE,
    INITIAL_CHOICE_HELP,
    NEW_WEBSITE_INTRO,
    QUICK_ACTIONS,
    REDESIGN_INTRO,
    SCREENSHOT_PROGRESS_MESSAGE,
    SESSION_LIMIT_MESSAGE,
    WELCOME_MESSAGES,
    loader_message,
)
from design_chat.core.navigator import COMPLETE, next_index
from design_chat.core.notifier import WebhookNotifier, webhook_notifier
from design_chat.core.orchestrator import GenerationOrchestrator, has_current_url, present_missing_url_notice
from design_chat.core.responses import normalize_for_display, parse_multi_select
from design_chat.core.state_machine import GenerationProgress
from design_chat.core.storage import StateStore, state_store
from design_chat.core.tasks import fire_and_forget
from design_chat.core.transcript import add_message, add_user_message

logger = logging.getLogger(__name__)

_FLOW_INTROS = {
    Flow.NEW_WEBSITE: NEW_WEBSITE_INTRO,
    Flow.REDESIGN: REDESIGN_INTRO,
}


def choose_flow(text: str) -> Optional[Flow]:
    """Map the opening answer to a flow by keyword"""
    normalized = text.strip().lower()
    if "redesign" in normalized:
        return Flow.REDESIGN
    if any(keyword in normalized for keyword in ("new webpage", "new website", "scratch")):
        return Flow.NEW_WEBSITE
    return None


class ConversationController:
    """
    One client's conversation.

    Input methods are synchronous and return True when the input was taken.
    Finishing the questionnaire only marks a generation as pending and the
    session busy; the caller then awaits run_pending_generation().
    """

    def __init__(
        self,
        client_id: str,
        store: Optional[StateStore] = None,
        orchestrator: Optional[GenerationOrchestrator] = None,
        notifier: Optional[WebhookNotifier] = None,
        catalog: Optional[QuestionCatalog] = None,
        max_sessions: Optional[int] = None,
        max_reference_entries: Optional[int] = None
    ):
        self.client_id = client_id
        self.store = store or state_store
        self.orchestrator = orchestrator or GenerationOrchestrator()
        self.notifier = notifier or webhook_notifier
        self.catalog = catalog or question_catalog
        self.max_sessions = max_sessions or settings.max_sessions_per_client
        self.max_reference_entries = max_reference_entries or settings.max_reference_entries

        self.state = self.store.load(client_id) or self._new_state()
        if self.state.is_busy and not self.state.generation_pending:
            # A run that was interrupted mid-flight cannot be resumed
            logger.warning(f"[CONTROLLER] Clearing stale busy flag for client {client_id}")
            self.state.is_busy = False
        self.progress = GenerationProgress(self.state.session_id)
        self._persist()

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------

    def _new_state(self) -> SessionState:
        state = SessionState()
        for text in WELCOME_MESSAGES:
            add_message(state, text)
        if self.session_limit_reached:
            add_message(state, SESSION_LIMIT_MESSAGE.format(limit=self.max_sessions))
            state.closed = True
        return state

    def _persist(self) -> None:
        self.store.save(self.client_id, self.state)

    def _accepts_input(self) -> bool:
        if self.state.closed:
            logger.debug(f"[CONTROLLER] Input ignored, session {self.state.session_id} is closed")
            return False
        if self.state.is_busy:
            logger.debug(f"[CONTROLLER] Input ignored, session {self.state.session_id} is busy")
            return False
        return True

    def _flow_error(self, error: FlowIntegrityError) -> None:
        logger.error(f"[CONTROLLER] Flow integrity error in session {self.state.session_id}: {error.message}")
        add_message(self.state, FLOW_ERROR_MESSAGE)

    def current_question(self) -> Optional[QuestionDefinition]:
        state = self.state
        if state.flow is None or state.phase in (WorkflowPhase.INITIAL, *COMPLETE_PHASES.values()):
            return None
        return self.catalog.get_question_at(state.flow, state.question_index)

    def _require_current_question(self) -> QuestionDefinition:
        question = self.current_question()
        if question is None:
            raise FlowIntegrityError(
                f"No question for phase {self.state.phase.value} at index {self.state.question_index}"
            )
        return question

    # ------------------------------------------------------------------
    # Flow control
    # ------------------------------------------------------------------

    def _start_flow(self, flow: Flow) -> None:
        state = self.state
        add_message(state, _FLOW_INTROS[flow])
        state.flow = flow
        state.question_index = -1
        self._advance()

    def _advance(self) -> None:
        """Ask the next question, or finish the questionnaire"""
        state = self.state
        index = next_index(state.flow, state.question_index, state.responses, self.catalog)

        if index == COMPLETE:
            state.phase = COMPLETE_PHASES[state.flow]
            state.question_index = self.catalog.question_count(state.flow)
            logger.info(f"[CONTROLLER] Questionnaire complete for session {state.session_id} ({state.flow.value})")
            self._on_questionnaire_complete()
            return

        question = self.catalog.require_question_at(state.flow, index)
        state.question_index = index
        state.phase = question.phase
        add_message(state, question.prompt_text, is_references_prompt=question.uses_references_widget)

    def _on_questionnaire_complete(self) -> None:
        if self.state.flow == Flow.REDESIGN and not has_current_url(self.state):
            present_missing_url_notice(self.state)
            return
        self._mark_generation_pending()

    def _mark_generation_pending(self) -> None:
        state = self.state
        state.is_busy = True
        state.generation_pending = True
        state.awaiting_generation_continue = False
        if state.flow == Flow.REDESIGN and has_current_url(state):
            state.is_capturing_screenshot = True
            state.screenshot_progress_message = SCREENSHOT_PROGRESS_MESSAGE
        else:
            state.generation_progress_message = loader_message("preparing_html")

    def _apply_outcome(self, outcome: AnswerOutcome) -> None:
        """Store update and advance happen together, or not at all"""
        if outcome.responses is not None:
            self.state.responses = outcome.responses
        for text in outcome.messages:
            add_message(self.state, text)
        if outcome.kind == OutcomeKind.ACCEPTED:
            self._advance()

    def _answer(self, text: str) -> bool:
        try:
            question = self._require_current_question()
            outcome = handle_answer(question, text, self.state.responses)
            if outcome.kind != OutcomeKind.TOGGLED and text.strip():
                add_user_message(self.state, text.strip())
            self._apply_outcome(outcome)
        except FlowIntegrityError as e:
            self._flow_error(e)
            return False
        return outcome.kind != OutcomeKind.REJECTED

    def _handle_input(self, text: str) -> bool:
        state = self.state

        if state.phase == WorkflowPhase.INITIAL:
            if not text.strip():
                return False
            add_user_message(state, text.strip())
            flow = choose_flow(text)
            if flow is None:
                add_message(state, INITIAL_CHOICE_HELP)
                return False
            self._start_flow(flow)
            return True

        if state.phase in COMPLETE_PHASES.values():
            if state.awaiting_generation_continue and text.strip().lower() == CONTINUE_ACTION.lower():
                return self._continue()
            if lifecycle.awaiting_feedback(state):
                return lifecycle.submit_feedback(state, text)
            if state.email_requested:
                return self._close_with_email(text)
            return False

        return self._answer(text)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def submit_free_text(self, text: str) -> bool:
        if not self._accepts_input():
            return False
        try:
            return self._handle_input(text or "")
        finally:
            self._persist()

    def submit_choice(self, label: str) -> bool:
        """Option button tapped; multi-select toggles are not echoed to the transcript"""
        if not self._accepts_input():
            return False
        try:
            return self._handle_input(label or "")
        finally:
            self._persist()

    def submit_structured_entries(self, entries: List[ReferenceEntry]) -> bool:
        """References widget submission; an empty list is "I don't have any" """
        if not self._accepts_input():
            return False
        try:
            question = self.current_question()
            if question is None or question.answer_rule != AnswerRule.REFERENCE_ENTRIES:
                logger.warning("[CONTROLLER] References submitted outside the references question")
                return False
            if self.state.responses.waiting_for_other_input:
                return False

            outcome = handle_reference_entries(
                question, entries, self.state.responses, max_entries=self.max_reference_entries
            )
            if outcome.echo_text is not None:
                add_user_message(self.state, outcome.echo_text)
            self._apply_outcome(outcome)
            return outcome.kind == OutcomeKind.ACCEPTED
        except FlowIntegrityError as e:
            self._flow_error(e)
            return False
        finally:
            self._persist()

    def _continue(self) -> bool:
        state = self.state
        if not state.awaiting_generation_continue:
            return False
        add_user_message(state, CONTINUE_ACTION)
        self._mark_generation_pending()
        return True

    def continue_to_generation(self) -> bool:
        """Start the redesign after the "no URL" notice"""
        if not self._accepts_input():
            return False
        try:
            return self._continue()
        finally:
            self._persist()

    async def run_pending_generation(self) -> Optional[GenerationResult]:
        """Run the generation marked pending by the last input, if any"""
        if not self.state.generation_pending:
            return None
        self.progress = GenerationProgress(self.state.session_id)
        return await self.orchestrator.run(self.state, self.progress, on_change=self._persist)

    def submit_rating(self, score: int) -> bool:
        if not self._accepts_input():
            return False
        try:
            return lifecycle.submit_rating(self.state, score)
        finally:
            self._persist()

    def submit_feedback(self, text: str) -> bool:
        if not self._accepts_input():
            return False
        try:
            return lifecycle.submit_feedback(self.state, text or "")
        finally:
            self._persist()

    def _close_with_email(self, text: str) -> bool:
        email = lifecycle.submit_email(self.state, text or "")
        if email is None:
            return False
        count = self.store.increment_session_count(self.client_id)
        logger.info(f"[CONTROLLER] Client {self.client_id} completed session {count}/{self.max_sessions}")
        self._send_session_record()
        return True

    def submit_email(self, text: str) -> bool:
        if not self._accepts_input():
            return False
        try:
            return self._close_with_email(text)
        finally:
            self._persist()

    def _send_session_record(self) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"[CONTROLLER] No running event loop, session record for {self.state.session_id} not sent")
            return
        snapshot = self.state.model_copy(deep=True)
        fire_and_forget(self.notifier.notify(self.client_id, snapshot), name=f"webhook-{snapshot.session_id}")

    def start_new_chat(self) -> None:
        """
        Reset to a fresh session.

        Raises:
            SessionLimitError: the client already completed the maximum number of sessions
            ApplicationError: a generation is running (SESSION_BUSY)
        """
        if self.session_limit_reached:
            raise SessionLimitError(SESSION_LIMIT_MESSAGE.format(limit=self.max_sessions))
        if self.state.is_busy:
            logger.warning(f"[CONTROLLER] New chat requested while session {self.state.session_id} is busy")
            raise ApplicationError(ErrorCode.SESSION_BUSY, BUSY_MESSAGE, retryable=True)
        self.store.clear(self.client_id)
        self.state = self._new_state()
        self.progress = GenerationProgress(self.state.session_id)
        self._persist()

    # ------------------------------------------------------------------
    # Derived view
    # ------------------------------------------------------------------

    def current_messages(self):
        return list(self.state.messages)

    def current_placeholder_text(self) -> str:
        question = self.current_question()
        if question is None or not question.placeholder:
            return DEFAULT_PLACEHOLDER
        return question.placeholder

    def current_choice_options(self) -> List[str]:
        state = self.state
        if state.closed or state.responses.waiting_for_other_input:
            return []
        if state.phase == WorkflowPhase.INITIAL:
            return list(QUICK_ACTIONS)
        if state.awaiting_generation_continue:
            return [CONTINUE_ACTION]
        question = self.current_question()
        if question is None or question.uses_references_widget:
            return []
        return list(question.choices)

    def should_show_choice_widget(self) -> bool:
        return not self.state.is_busy and len(self.current_choice_options()) > 0

    def should_show_references_widget(self) -> bool:
        state = self.state
        if state.closed or state.is_busy or state.responses.waiting_for_other_input:
            return False
        question = self.current_question()
        return question is not None and question.uses_references_widget

    def should_show_free_text_widget(self) -> bool:
        state = self.state
        if state.closed or state.is_busy or state.phase == WorkflowPhase.INITIAL:
            return False
        if state.responses.waiting_for_other_input:
            return True
        if state.phase in COMPLETE_PHASES.values():
            return lifecycle.awaiting_feedback(state) or state.email_requested
        question = self.current_question()
        if question is None or question.uses_references_widget:
            return False
        return question.input_kind == InputKind.FREE_TEXT

    def currently_selected_multi_choice_labels(self) -> List[str]:
        question = self.current_question()
        if question is None or question.answer_rule != AnswerRule.MULTI_SELECT:
            return []
        return normalize_for_display(parse_multi_select(getattr(self.state.responses, question.field)))

    @property
    def is_busy(self) -> bool:
        return self.state.is_busy

    @property
    def generation_progress_message(self) -> Optional[str]:
        return self.state.generation_progress_message

    @property
    def is_capturing_screenshot(self) -> bool:
        return self.state.is_capturing_screenshot

    @property
    def screenshot_progress_message(self) -> Optional[str]:
        return self.state.screenshot_progress_message

    @property
    def session_closed(self) -> bool:
        return self.state.closed

    @property
    def session_limit_reached(self) -> bool:
        return self.store.get_session_count(self.client_id) >= self.max_sessions

    def view(self) -> SessionView:
        state = self.state
        return SessionView(
            session_id=state.session_id,
            flow=state.flow,
            phase=state.phase,
            messages=self.current_messages(),
            placeholder_text=self.current_placeholder_text(),
            choice_options=self.current_choice_options(),
            show_choice_widget=self.should_show_choice_widget(),
            show_free_text_widget=self.should_show_free_text_widget(),
            show_references_widget=self.should_show_references_widget(),
            show_continue_action=state.awaiting_generation_continue and not state.is_busy,
            selected_choice_labels=self.currently_selected_multi_choice_labels(),
            is_busy=self.is_busy,
            generation_progress_message=self.generation_progress_message,
            is_capturing_screenshot=self.is_capturing_screenshot,
            screenshot_progress_message=self.screenshot_progress_message,
            session_closed=self.session_closed,
            session_limit_reached=self.session_limit_reached,
        )
