"""
Tests for the conversation controller

Walks both questionnaires end to end against a temporary state store. The
orchestrator and notifier are mocked; their own behavior is covered elsewhere.
"""
import asyncio

import pytest
from unittest.mock import AsyncMock, Mock

from design_chat.core import session as lifecycle
from design_chat.core.catalog import ISSUE_OPTIONS, ISSUES_DONE_LABEL, REFERENCES_QUESTION
from design_chat.core.controller import ConversationController, choose_flow
from design_chat.core.messages import (
    CONTINUE_ACTION,
    DEFAULT_PLACEHOLDER,
    FLOW_ERROR_MESSAGE,
    INITIAL_CHOICE_HELP,
    NEW_WEBSITE_ACTION,
    NO_URL_AUDIT_MESSAGE,
    QUICK_ACTIONS,
    REDESIGN_ACTION,
    SESSION_LIMIT_MESSAGE,
    VALIDATION_MESSAGES,
    WELCOME_MESSAGES,
)
from design_chat.core.storage import StateStore
from design_chat.models.errors import ApplicationError, ErrorCode, SessionLimitError
from design_chat.models.schemas import (
    Flow,
    GenerationResult,
    MessageSender,
    ReferenceEntry,
    WorkflowPhase,
)


@pytest.fixture
def store(tmp_path):
    return StateStore(str(tmp_path))


@pytest.fixture
def orchestrator():
    orchestrator = Mock()
    orchestrator.run = AsyncMock(return_value=GenerationResult(success=True, content="<html></html>"))
    return orchestrator


@pytest.fixture
def notifier():
    notifier = Mock()
    notifier.notify = AsyncMock(return_value=True)
    return notifier


@pytest.fixture
def controller(store, orchestrator, notifier):
    return ConversationController("client-1", store=store, orchestrator=orchestrator, notifier=notifier, max_sessions=2)


def _answer_new_website(controller):
    controller.submit_choice(NEW_WEBSITE_ACTION)
    controller.submit_free_text("We bake sourdough bread")
    controller.submit_free_text("Local families")
    controller.submit_free_text("Sell more cakes")
    controller.submit_choice("Landing Page")
    controller.submit_choice("I don't have any")


def _answer_redesign_until_references(controller, url=""):
    controller.submit_choice(REDESIGN_ACTION)
    controller.submit_free_text(url)
    controller.submit_choice("No")
    controller.submit_free_text("Busy parents")
    controller.submit_choice(ISSUE_OPTIONS[0])
    controller.submit_choice(ISSUES_DONE_LABEL)


def _close_with_rating(controller, email="owner@bakery.com"):
    state = controller.state
    state.flow = Flow.NEW_WEBSITE
    state.phase = WorkflowPhase.NEW_WEBSITE_COMPLETE
    lifecycle.enqueue_rating_prompt(state)
    controller.submit_rating(5)
    controller.submit_email(email)


class TestChooseFlow:
    @pytest.mark.parametrize("text,flow", [
        (REDESIGN_ACTION, Flow.REDESIGN),
        ("I want to redesign my site", Flow.REDESIGN),
        (NEW_WEBSITE_ACTION, Flow.NEW_WEBSITE),
        ("a new website please", Flow.NEW_WEBSITE),
        ("hello", None),
    ])
    def test_keywords(self, text, flow):
        assert choose_flow(text) == flow


class TestNewSession:
    def test_welcome_and_quick_actions(self, controller):
        assert [m.text for m in controller.current_messages()] == WELCOME_MESSAGES
        assert controller.state.phase == WorkflowPhase.INITIAL
        assert controller.current_choice_options() == QUICK_ACTIONS
        assert controller.should_show_choice_widget()
        assert not controller.should_show_free_text_widget()
        assert controller.current_placeholder_text() == DEFAULT_PLACEHOLDER

    def test_unrecognized_opening_gets_help(self, controller):
        assert not controller.submit_free_text("hello there")
        assert controller.state.phase == WorkflowPhase.INITIAL
        assert controller.current_messages()[-1].text == INITIAL_CHOICE_HELP

    def test_choosing_a_flow_asks_first_question(self, controller):
        assert controller.submit_choice(NEW_WEBSITE_ACTION)

        state = controller.state
        assert state.flow == Flow.NEW_WEBSITE
        assert state.phase == WorkflowPhase.NEW_WEBSITE_BUSINESS
        assert state.question_index == 0
        assert state.messages[len(WELCOME_MESSAGES)].sender == MessageSender.USER
        assert state.messages[-1].text.endswith("what does your business or project do?")
        assert controller.should_show_free_text_widget()
        assert controller.current_placeholder_text() == "Tell me about your business..."

    def test_message_ids_increase(self, controller):
        controller.submit_choice(NEW_WEBSITE_ACTION)
        ids = [m.id for m in controller.current_messages()]
        assert ids == list(range(1, len(ids) + 1))


class TestNewWebsiteFlow:
    def test_empty_answer_reprompts_without_echo(self, controller):
        controller.submit_choice(NEW_WEBSITE_ACTION)
        count = len(controller.current_messages())

        assert not controller.submit_free_text("   ")

        messages = controller.current_messages()
        assert len(messages) == count + 1
        assert messages[-1].text == VALIDATION_MESSAGES["business"]
        assert controller.state.phase == WorkflowPhase.NEW_WEBSITE_BUSINESS

    def test_other_page_type(self, controller):
        controller.submit_choice(NEW_WEBSITE_ACTION)
        controller.submit_free_text("Bakery")
        controller.submit_free_text("Families")
        controller.submit_free_text("Sell cakes")

        controller.submit_choice("Other")
        assert controller.state.responses.waiting_for_other_input == "page_type"
        assert controller.current_choice_options() == []
        assert controller.should_show_free_text_widget()

        controller.submit_free_text("FAQ Page")
        assert controller.state.responses.page_type == "Other: FAQ Page"
        assert controller.state.phase == WorkflowPhase.NEW_WEBSITE_BRAND

    def test_references_step_uses_widget(self, controller):
        _answer_new_website(controller)

        assert controller.state.phase == WorkflowPhase.NEW_WEBSITE_REFERENCES
        assert controller.state.responses.brand_details == ""
        last = controller.current_messages()[-1]
        assert last.text == REFERENCES_QUESTION
        assert last.is_references_prompt
        assert controller.should_show_references_widget()
        assert not controller.should_show_free_text_widget()
        assert not controller.should_show_choice_widget()

    def test_too_many_references_are_rejected(self, controller):
        _answer_new_website(controller)
        entries = [ReferenceEntry(url=f"https://site{i}.com", description="Layout") for i in range(4)]

        assert not controller.submit_structured_entries(entries)
        assert controller.state.phase == WorkflowPhase.NEW_WEBSITE_REFERENCES
        assert controller.current_messages()[-1].text == VALIDATION_MESSAGES["references_too_many"].format(limit=3)

    def test_completing_marks_generation_pending(self, controller):
        _answer_new_website(controller)
        entries = [ReferenceEntry(url="ref.com", description="Love the hero")]

        assert controller.submit_structured_entries(entries)

        state = controller.state
        assert state.phase == WorkflowPhase.NEW_WEBSITE_COMPLETE
        assert state.responses.references_and_competitors == "1. https://ref.com - Love the hero"
        assert state.is_busy
        assert state.generation_pending
        assert controller.current_messages()[-1].text == "1. https://ref.com - Love the hero"

    def test_input_is_rejected_while_busy(self, controller):
        _answer_new_website(controller)
        controller.submit_structured_entries([])
        count = len(controller.current_messages())

        assert not controller.submit_free_text("hello?")
        assert not controller.submit_choice("Landing Page")
        assert len(controller.current_messages()) == count
        assert not controller.should_show_free_text_widget()

    @pytest.mark.asyncio
    async def test_pending_generation_runs_once(self, controller, orchestrator):
        assert await controller.run_pending_generation() is None

        _answer_new_website(controller)
        controller.submit_structured_entries([])

        result = await controller.run_pending_generation()

        assert result.success
        orchestrator.run.assert_awaited_once()
        args = orchestrator.run.await_args
        assert args.args[0] is controller.state
        assert args.args[1] is controller.progress


class TestRedesignFlow:
    def test_multi_select_toggles_are_silent(self, controller):
        controller.submit_choice(REDESIGN_ACTION)
        controller.submit_free_text("")
        controller.submit_choice("Yes")
        controller.submit_free_text("Busy parents")
        count = len(controller.current_messages())

        controller.submit_choice(ISSUE_OPTIONS[0])
        controller.submit_choice(ISSUE_OPTIONS[2])

        assert len(controller.current_messages()) == count
        assert controller.currently_selected_multi_choice_labels() == [ISSUE_OPTIONS[0], ISSUE_OPTIONS[2]]

        controller.submit_choice(ISSUE_OPTIONS[0])
        assert controller.currently_selected_multi_choice_labels() == [ISSUE_OPTIONS[2]]

    def test_other_issue_shows_as_other_label(self, controller):
        controller.submit_choice(REDESIGN_ACTION)
        controller.submit_free_text("")
        controller.submit_choice("No")
        controller.submit_free_text("Busy parents")
        controller.submit_choice(ISSUE_OPTIONS[1])
        controller.submit_choice("Other")
        controller.submit_free_text("Popups everywhere")

        responses = controller.state.responses
        assert responses.redesign_issues == f"{ISSUE_OPTIONS[1]}|Other: Popups everywhere"
        assert controller.state.phase == WorkflowPhase.REDESIGN_REFERENCES

    def test_missing_url_waits_for_continue(self, controller):
        _answer_redesign_until_references(controller, url="")
        controller.submit_structured_entries([])

        state = controller.state
        assert state.phase == WorkflowPhase.REDESIGN_COMPLETE
        assert not state.is_busy
        assert state.awaiting_generation_continue
        notice = controller.current_messages()[-1]
        assert notice.text == NO_URL_AUDIT_MESSAGE
        assert notice.is_continue_prompt
        assert controller.current_choice_options() == [CONTINUE_ACTION]
        assert controller.view().show_continue_action

        assert controller.continue_to_generation()

        assert state.is_busy
        assert state.generation_pending
        assert not state.awaiting_generation_continue
        assert controller.current_messages()[-1].text == CONTINUE_ACTION

    def test_continue_by_choice(self, controller):
        _answer_redesign_until_references(controller, url="")
        controller.submit_structured_entries([])

        assert controller.submit_choice(CONTINUE_ACTION)
        assert controller.state.generation_pending

    def test_url_starts_generation_with_screenshot(self, controller):
        _answer_redesign_until_references(controller, url="mysite.com")

        assert controller.state.responses.redesign_current_url == "https://mysite.com"
        controller.submit_structured_entries([])

        state = controller.state
        assert state.is_busy
        assert state.generation_pending
        assert state.is_capturing_screenshot
        assert not state.awaiting_generation_continue
        assert not controller.continue_to_generation()


class TestFlowIntegrity:
    def test_missing_question_shows_error(self, controller):
        state = controller.state
        state.flow = Flow.NEW_WEBSITE
        state.phase = WorkflowPhase.NEW_WEBSITE_BUSINESS
        state.question_index = 42

        assert not controller.submit_free_text("Bakery")
        assert controller.current_messages()[-1].text == FLOW_ERROR_MESSAGE


class TestPersistence:
    def test_state_survives_reload(self, controller, store, orchestrator, notifier):
        controller.submit_choice(NEW_WEBSITE_ACTION)
        controller.submit_free_text("Bakery")

        reloaded = ConversationController("client-1", store=store, orchestrator=orchestrator, notifier=notifier)

        assert reloaded.state.session_id == controller.state.session_id
        assert reloaded.state.phase == WorkflowPhase.NEW_WEBSITE_AUDIENCE
        assert reloaded.state.responses.business == "Bakery"
        assert len(reloaded.current_messages()) == len(controller.current_messages())


class TestLifecycle:
    def test_low_rating_feedback_by_free_text(self, controller):
        state = controller.state
        state.flow = Flow.NEW_WEBSITE
        state.phase = WorkflowPhase.NEW_WEBSITE_COMPLETE
        lifecycle.enqueue_rating_prompt(state)

        assert controller.submit_rating(2)
        assert controller.should_show_free_text_widget()
        assert controller.submit_free_text("Too dark")

        assert state.feedback == "Too dark"
        assert state.email_requested

    @pytest.mark.asyncio
    async def test_email_closes_session_and_notifies(self, controller, store, notifier):
        _close_with_rating(controller)
        await asyncio.sleep(0)

        assert controller.session_closed
        assert store.get_session_count("client-1") == 1
        notifier.notify.assert_called_once()
        client_id, snapshot = notifier.notify.call_args.args
        assert client_id == "client-1"
        assert snapshot.email == "owner@bakery.com"
        assert not controller.submit_free_text("anything else?")

    @pytest.mark.asyncio
    async def test_invalid_email_does_not_close(self, controller, store, notifier):
        _close_with_rating(controller, email="nope")

        assert not controller.session_closed
        assert store.get_session_count("client-1") == 0
        notifier.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_new_chat_until_session_cap(self, controller, store):
        _close_with_rating(controller)
        await asyncio.sleep(0)
        first_session = controller.state.session_id

        controller.start_new_chat()

        assert controller.state.session_id != first_session
        assert controller.state.phase == WorkflowPhase.INITIAL
        assert not controller.session_closed
        assert not controller.session_limit_reached

        _close_with_rating(controller, email="second@bakery.com")
        await asyncio.sleep(0)

        assert store.get_session_count("client-1") == 2
        assert controller.session_limit_reached
        with pytest.raises(SessionLimitError):
            controller.start_new_chat()

    def test_fresh_controller_at_cap_is_closed(self, store, orchestrator, notifier):
        store.increment_session_count("client-2")
        store.increment_session_count("client-2")

        controller = ConversationController("client-2", store=store, orchestrator=orchestrator, notifier=notifier)

        assert controller.session_closed
        assert controller.current_messages()[-1].text == SESSION_LIMIT_MESSAGE.format(limit=2)
        assert controller.view().session_limit_reached
        assert not controller.submit_choice(NEW_WEBSITE_ACTION)

    def test_new_chat_refused_while_generating(self, controller):
        _answer_new_website(controller)
        controller.submit_structured_entries([])
        session_id = controller.state.session_id

        with pytest.raises(ApplicationError) as exc_info:
            controller.start_new_chat()

        assert exc_info.value.code == ErrorCode.SESSION_BUSY
        assert controller.state.session_id == session_id
