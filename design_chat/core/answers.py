"""Answer processor - validates and normalizes answers per question"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field
import logging

from design_chat.models.schemas import UserResponses, ReferenceEntry
from design_chat.models.errors import InputValidationError, FlowIntegrityError
from design_chat.core.catalog import AnswerRule, QuestionDefinition
from design_chat.core.messages import VALIDATION_MESSAGES
from design_chat.core.responses import (
    NONE_OPTION,
    append_multi_select_value,
    format_other_value,
    is_i_dont_have_any,
    is_other_option,
    is_yes_response,
    parse_multi_select,
    toggle_multi_select_option,
)
from design_chat.core.validation import (
    INPUT_LIMITS,
    has_urls,
    sanitize_text,
    validate_and_normalize_url,
    validate_and_sanitize_text,
)

logger = logging.getLogger(__name__)


class OutcomeKind(str, Enum):
    REJECTED = "rejected"
    SUSPENDED = "suspended"
    TOGGLED = "toggled"
    ACCEPTED = "accepted"


class AnswerOutcome(BaseModel):
    """
    Result of processing one answer.

    responses is the full updated store when the step changes it, None when
    it does not. Only ACCEPTED outcomes advance the flow.
    """
    kind: OutcomeKind
    messages: List[str] = Field(default_factory=list)
    responses: Optional[UserResponses] = None
    echo_text: Optional[str] = None

    @property
    def advance(self) -> bool:
        return self.kind == OutcomeKind.ACCEPTED


def _rejected(message: str) -> AnswerOutcome:
    return AnswerOutcome(kind=OutcomeKind.REJECTED, messages=[message])


def _updated(responses: UserResponses, **changes) -> UserResponses:
    return responses.model_copy(update=changes)


def _required_text(question: QuestionDefinition, text: str) -> str:
    if not text:
        raise InputValidationError(question.empty_message or VALIDATION_MESSAGES["business"], question.field)
    if len(text) > question.max_length:
        raise InputValidationError(
            VALIDATION_MESSAGES["text_too_long"].format(limit=question.max_length),
            question.field
        )
    return text


def _matching_choice(question: QuestionDefinition, text: str) -> Optional[str]:
    lowered = text.lower()
    for choice in question.choices:
        if choice.lower() == lowered:
            return choice
    return None


def _handle_other_input(question: QuestionDefinition, text: str, responses: UserResponses) -> AnswerOutcome:
    """Answer typed while waiting for the text behind an "Other" choice"""
    messages = question.other_messages
    if messages is None:
        raise FlowIntegrityError(f"Question {question.key} has no 'Other' handling")

    if is_other_option(text):
        return _rejected(messages.again)
    if not text:
        return _rejected(messages.empty)

    value = format_other_value(text)
    if question.answer_rule == AnswerRule.MULTI_SELECT:
        value = append_multi_select_value(getattr(responses, question.field), value)

    return AnswerOutcome(
        kind=OutcomeKind.ACCEPTED,
        responses=_updated(responses, **{question.field: value, "waiting_for_other_input": None})
    )


def _suspend_for_other(question: QuestionDefinition, responses: UserResponses) -> AnswerOutcome:
    return AnswerOutcome(
        kind=OutcomeKind.SUSPENDED,
        messages=[question.other_messages.prompt],
        responses=_updated(responses, waiting_for_other_input=question.field)
    )


def _handle_choice_with_other(question: QuestionDefinition, text: str, responses: UserResponses) -> AnswerOutcome:
    if not text:
        raise InputValidationError(question.empty_message, question.field)
    if is_other_option(text):
        return _suspend_for_other(question, responses)

    value = _matching_choice(question, text) or _required_text(question, text)
    return AnswerOutcome(
        kind=OutcomeKind.ACCEPTED,
        responses=_updated(responses, **{question.field: value, "waiting_for_other_input": None})
    )


def _handle_multi_select(question: QuestionDefinition, text: str, responses: UserResponses) -> AnswerOutcome:
    if not text:
        raise InputValidationError(question.empty_message, question.field)

    stored = getattr(responses, question.field)

    if question.done_label and text.lower() == question.done_label.lower():
        if not parse_multi_select(stored):
            raise InputValidationError(question.empty_message, question.field)
        return AnswerOutcome(kind=OutcomeKind.ACCEPTED, responses=responses.model_copy())

    if is_other_option(text):
        return _suspend_for_other(question, responses)

    option = _matching_choice(question, text)
    if option is not None:
        return AnswerOutcome(
            kind=OutcomeKind.TOGGLED,
            responses=_updated(responses, **{question.field: toggle_multi_select_option(stored, option)})
        )

    # Anything else is a free-text description of the problem
    return AnswerOutcome(
        kind=OutcomeKind.ACCEPTED,
        responses=_updated(responses, **{question.field: _required_text(question, text)})
    )


def _handle_optional_url(question: QuestionDefinition, text: str, responses: UserResponses) -> AnswerOutcome:
    if not text:
        return AnswerOutcome(kind=OutcomeKind.ACCEPTED, responses=_updated(responses, **{question.field: ""}))

    normalized = validate_and_normalize_url(text)
    if normalized is None or not has_urls(normalized):
        logger.info(f"[ANSWERS] Rejected URL for {question.key}")
        raise InputValidationError(question.empty_message, question.field)

    return AnswerOutcome(kind=OutcomeKind.ACCEPTED, responses=_updated(responses, **{question.field: normalized}))


def handle_answer(question: QuestionDefinition, raw_text: str, responses: UserResponses) -> AnswerOutcome:
    """
    Process a typed or tapped answer for the current question.

    Never raises for bad input: validation failures come back as a REJECTED
    outcome carrying the re-prompt. A stale "Other" sentinel for a different
    field is a FlowIntegrityError.
    """
    text = sanitize_text(raw_text)
    waiting = responses.waiting_for_other_input

    try:
        if waiting:
            if waiting != question.field:
                raise FlowIntegrityError(
                    f"Waiting for 'Other' input on {waiting} while answering {question.field}"
                )
            return _handle_other_input(question, text, responses)

        rule = question.answer_rule
        if rule == AnswerRule.REQUIRED_TEXT:
            value = _required_text(question, text)
            return AnswerOutcome(kind=OutcomeKind.ACCEPTED, responses=_updated(responses, **{question.field: value}))

        if rule == AnswerRule.TEXT_OR_NONE:
            value = "" if is_i_dont_have_any(text) else _required_text(question, text)
            return AnswerOutcome(kind=OutcomeKind.ACCEPTED, responses=_updated(responses, **{question.field: value}))

        if rule == AnswerRule.CHOICE_WITH_OTHER:
            return _handle_choice_with_other(question, text, responses)

        if rule == AnswerRule.MULTI_SELECT:
            return _handle_multi_select(question, text, responses)

        if rule == AnswerRule.YES_NO:
            return AnswerOutcome(
                kind=OutcomeKind.ACCEPTED,
                responses=_updated(responses, **{question.field: is_yes_response(text)})
            )

        if rule == AnswerRule.OPTIONAL_URL:
            return _handle_optional_url(question, text, responses)

        if rule == AnswerRule.REFERENCE_ENTRIES:
            # Typed text only counts as the explicit "I don't have any" action
            if is_i_dont_have_any(text):
                return handle_reference_entries(question, [], responses)
            raise InputValidationError(question.empty_message, question.field)

        raise FlowIntegrityError(f"Unknown answer rule {rule} for question {question.key}")

    except InputValidationError as e:
        return _rejected(e.message)


def format_reference_entries(entries: List[ReferenceEntry]) -> str:
    return "\n".join(
        f"{index}. {entry.url} - {entry.description}"
        for index, entry in enumerate(entries, start=1)
    )


def handle_reference_entries(
    question: QuestionDefinition,
    entries: List[ReferenceEntry],
    responses: UserResponses,
    max_entries: int = 3
) -> AnswerOutcome:
    """
    Process a structured references submission as a single unit.

    An empty list is the explicit "I don't have any" action. One bad entry
    rejects the whole submission.
    """
    if question.answer_rule != AnswerRule.REFERENCE_ENTRIES:
        raise FlowIntegrityError(f"Question {question.key} does not take reference entries")

    if not entries:
        return AnswerOutcome(
            kind=OutcomeKind.ACCEPTED,
            responses=_updated(responses, **{question.field: ""}),
            echo_text=NONE_OPTION
        )

    if len(entries) > max_entries:
        return _rejected(VALIDATION_MESSAGES["references_too_many"].format(limit=max_entries))

    cleaned: List[ReferenceEntry] = []
    for entry in entries:
        url = validate_and_normalize_url(entry.url)
        description = validate_and_sanitize_text(entry.description, INPUT_LIMITS["description"])
        if url is None or description is None:
            logger.info(f"[ANSWERS] Rejected reference entry for {question.key}")
            return _rejected(VALIDATION_MESSAGES["references_invalid"])
        # One line per entry in the stored form
        cleaned.append(ReferenceEntry(url=url, description=" ".join(description.split())))

    stored = format_reference_entries(cleaned)
    return AnswerOutcome(
        kind=OutcomeKind.ACCEPTED,
        responses=_updated(responses, **{question.field: stored}),
        echo_text=stored
    )
