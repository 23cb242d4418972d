"""Session record webhook (Google Chat card format)"""

import logging
from typing import Any, Dict, List, Optional, Set

import httpx
from pydantic import BaseModel, Field

from design_chat.core.config import settings
from design_chat.core.extraction import parse_references_string
from design_chat.core.responses import OTHER_PREFIX, parse_multi_select
from design_chat.core.storage import StateStore, state_store
from design_chat.core.validation import INPUT_LIMITS, sanitize_text
from design_chat.models.errors import NotificationError
from design_chat.models.schemas import Flow, SessionState

logger = logging.getLogger(__name__)


def sanitize_for_webhook(value: Optional[str]) -> str:
    return sanitize_text(value)[:INPUT_LIMITS["text_field"]]


class SessionRecord(BaseModel):
    """What the team receives when a session closes"""
    session_id: str
    route_type: str
    session_start: str
    email: str
    rating: int = 0
    feedback: Optional[str] = None
    details: Dict[str, str] = Field(default_factory=dict)
    references: List[Dict[str, str]] = Field(default_factory=list)
    audit_issues: List[str] = Field(default_factory=list)


def _audit_issues(state: SessionState) -> List[str]:
    issues: List[str] = []
    for message in state.messages:
        if message.is_audit_message and message.audit_issues and not message.is_continue_prompt:
            issues.extend(message.audit_issues)
    return issues


def build_session_record(state: SessionState) -> SessionRecord:
    responses = state.responses
    details: Dict[str, str] = {}

    if state.flow == Flow.REDESIGN:
        route_type = "Webpage Redesign"
        references = responses.redesign_references_and_competitors
        details["Current Webpage URL"] = responses.redesign_current_url or "Not provided"
        details["Reuse Existing Content"] = "Yes" if responses.redesign_reuse_content else "No"
        details["Target Audience"] = responses.redesign_audience or ""
        details["Redesign Reasons"] = ", ".join(parse_multi_select(responses.redesign_issues))
    else:
        route_type = "New Webpage from Scratch"
        references = responses.references_and_competitors
        details["Business Description"] = responses.business or ""
        details["Target Audience"] = responses.audience or ""
        details["Business Goals"] = responses.goals or ""
        page_type = responses.page_type or ""
        if page_type.startswith(OTHER_PREFIX):
            details["Page Type"] = "Other"
            details["Page Type (Other)"] = page_type[len(OTHER_PREFIX):]
        else:
            details["Page Type"] = page_type
        if responses.brand_details:
            details["Brand Guidelines"] = responses.brand_details

    return SessionRecord(
        session_id=state.session_id,
        route_type=route_type,
        session_start=state.started_at,
        email=sanitize_for_webhook(state.email),
        rating=state.rating_score or 0,
        feedback=sanitize_for_webhook(state.feedback) if state.feedback else None,
        details={label: sanitize_for_webhook(value) for label, value in details.items() if value},
        references=[
            {"url": entry.url, "description": entry.description}
            for entry in parse_references_string(references)
        ],
        audit_issues=_audit_issues(state),
    )


def _paragraph(label: str, content: str) -> Dict[str, Any]:
    return {"textParagraph": {"text": f"<b>{label}:</b> {content}"}}


def format_google_chat_card(record: SessionRecord) -> Dict[str, Any]:
    """cardsV2 payload with one section per part of the record"""
    sections = [
        {
            "header": "User Information",
            "widgets": [_paragraph("Email", record.email)],
        },
        {
            "header": record.route_type,
            "widgets": [_paragraph(label, value) for label, value in record.details.items()] or [
                _paragraph("Details", "None provided")
            ],
        },
    ]

    if record.references:
        sections.append({
            "header": "Reference Websites",
            "widgets": [
                _paragraph(f"Reference {index}", f"{entry['url']} - {entry['description']}")
                for index, entry in enumerate(record.references, start=1)
            ],
        })

    if record.audit_issues:
        sections.append({
            "header": "Audit Results",
            "widgets": [_paragraph(f"Issue {index}", issue) for index, issue in enumerate(record.audit_issues, start=1)],
        })

    feedback_widgets = [_paragraph("Rating", f"{record.rating}/5")]
    if record.feedback:
        feedback_widgets.append(_paragraph("Feedback", record.feedback))
    sections.append({"header": "User Feedback", "widgets": feedback_widgets})

    return {
        "cardsV2": [{
            "cardId": f"session-{record.session_id}",
            "card": {
                "header": {"title": "New Design Chat Session", "subtitle": record.session_start},
                "sections": sections,
            },
        }]
    }


class WebhookNotifier:
    """Posts one session record per session id; failures are logged, never raised"""

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        store: Optional[StateStore] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.webhook_url = settings.webhook_url if webhook_url is None else webhook_url
        self.store = store or state_store
        self.timeout = timeout or settings.webhook_timeout_seconds
        self._transport = transport
        self._in_flight: Set[str] = set()

    async def notify(self, client_id: str, state: SessionState) -> bool:
        """True when the record was delivered now or earlier"""
        if not self.webhook_url or not self.webhook_url.strip():
            logger.debug("[WEBHOOK] No webhook URL configured, skipping")
            return False

        session_id = state.session_id
        if session_id in self._in_flight or self.store.is_webhook_sent(client_id, session_id):
            logger.info(f"[WEBHOOK] Session {session_id} already reported")
            return True

        self._in_flight.add(session_id)
        try:
            payload = format_google_chat_card(build_session_record(state))
            await self._post(payload)
            self.store.mark_webhook_sent(client_id, session_id)
            logger.info(f"[WEBHOOK] Session {session_id} reported")
            return True
        except NotificationError as e:
            logger.error(f"[WEBHOOK] Failed to send session record for {session_id}: {e.message}")
            return False
        finally:
            self._in_flight.discard(session_id)

    async def _post(self, payload: Dict[str, Any]) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.webhook_url, json=payload)
        except httpx.HTTPError as e:
            raise NotificationError(f"Webhook request failed: {e}") from e

        if response.status_code >= 400:
            raise NotificationError(
                f"Webhook request failed: {response.status_code} {response.text[:200]}",
                retryable=response.status_code >= 500
            )


# Global notifier instance
webhook_notifier = WebhookNotifier()
