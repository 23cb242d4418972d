"""Session lifecycle: rating, feedback, email capture and close"""

import logging
from typing import Optional

from design_chat.models.schemas import SessionState
from design_chat.core.messages import (
    EMAIL_INVALID_MESSAGE,
    EMAIL_PROMPT_AFTER_FEEDBACK,
    EMAIL_PROMPT_AFTER_RATING,
    FEEDBACK_EMPTY_MESSAGE,
    FEEDBACK_PROMPT,
    RATING_INVALID_MESSAGE,
    RATING_PROMPT,
    SESSION_CLOSED_MESSAGE,
)
from design_chat.core.transcript import add_message, add_user_message
from design_chat.core.validation import INPUT_LIMITS, validate_and_sanitize_text, validate_email

logger = logging.getLogger(__name__)

# Scores below this ask what the user didn't like before asking for the email
FEEDBACK_THRESHOLD = 4


def enqueue_rating_prompt(state: SessionState) -> bool:
    """Ask for a rating once per completed generation"""
    if state.closed or state.rating_requested:
        return False
    state.rating_requested = True
    add_message(state, RATING_PROMPT, is_rating_prompt=True)
    return True


def request_email(state: SessionState, text: str) -> None:
    state.email_requested = True
    add_message(state, text, is_email_prompt=True)


def awaiting_feedback(state: SessionState) -> bool:
    return (
        state.rating_completed
        and state.rating_score is not None
        and state.rating_score < FEEDBACK_THRESHOLD
        and state.feedback is None
        and not state.closed
    )


def submit_rating(state: SessionState, score: int) -> bool:
    """
    Record a 1-5 rating. Returns False when the rating is not accepted.

    Only one rating per session; out-of-range scores get a re-prompt.
    """
    if state.closed or not state.rating_requested or state.rating_completed:
        return False
    if not isinstance(score, int) or score < 1 or score > 5:
        add_message(state, RATING_INVALID_MESSAGE)
        return False

    state.rating_completed = True
    state.rating_score = score
    add_user_message(state, f"I rate this design {score}/5")

    if score < FEEDBACK_THRESHOLD:
        add_message(state, FEEDBACK_PROMPT, is_feedback_prompt=True)
    else:
        request_email(state, EMAIL_PROMPT_AFTER_RATING)
    return True


def submit_feedback(state: SessionState, text: str) -> bool:
    if not awaiting_feedback(state):
        return False

    feedback = validate_and_sanitize_text(text, INPUT_LIMITS["feedback"])
    if feedback is None:
        add_message(state, FEEDBACK_EMPTY_MESSAGE)
        return False

    state.feedback = feedback
    add_user_message(state, feedback)
    request_email(state, EMAIL_PROMPT_AFTER_FEEDBACK)
    return True


def submit_email(state: SessionState, text: str) -> Optional[str]:
    """Validated email when the session closes, otherwise None"""
    if state.closed or not state.email_requested:
        return None

    email = validate_email(text)
    if email is None:
        if text and text.strip():
            add_user_message(state, text.strip())
        add_message(state, EMAIL_INVALID_MESSAGE, is_email_prompt=True)
        return None

    state.email = email
    add_user_message(state, email)
    add_message(state, SESSION_CLOSED_MESSAGE)
    state.closed = True
    logger.info(f"[SESSION] Session {state.session_id} closed")
    return email
