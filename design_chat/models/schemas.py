"""Session, transcript and API schemas"""

from enum import Enum
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from pydantic import BaseModel, Field
import uuid


class Flow(str, Enum):
    """Questionnaire flows"""
    NEW_WEBSITE = "newWebsite"
    REDESIGN = "redesign"


class WorkflowPhase(str, Enum):
    """Conversation phases

    Initial → NewWebsite* → NewWebsiteComplete
            ↘ Redesign*   → RedesignComplete
    """
    INITIAL = "Initial"
    NEW_WEBSITE_BUSINESS = "NewWebsiteBusiness"
    NEW_WEBSITE_AUDIENCE = "NewWebsiteAudience"
    NEW_WEBSITE_GOALS = "NewWebsiteGoals"
    NEW_WEBSITE_PAGE_TYPE = "NewWebsitePageType"
    NEW_WEBSITE_BRAND = "NewWebsiteBrand"
    NEW_WEBSITE_REFERENCES = "NewWebsiteReferencesAndCompetitors"
    NEW_WEBSITE_COMPLETE = "NewWebsiteComplete"
    REDESIGN_CURRENT_URL = "RedesignCurrentUrl"
    REDESIGN_REUSE_CONTENT = "RedesignReuseContent"
    REDESIGN_AUDIENCE = "RedesignAudience"
    REDESIGN_ISSUES = "RedesignIssues"
    REDESIGN_REFERENCES = "RedesignReferencesAndCompetitors"
    REDESIGN_COMPLETE = "RedesignComplete"


class MessageSender(str, Enum):
    USER = "user"
    BOT = "bot"


class Message(BaseModel):
    """Transcript entry (append-only)"""
    id: int
    text: str
    sender: MessageSender
    html_content: Optional[str] = None
    audit_issues: Optional[List[str]] = None
    is_html_message: bool = False
    is_audit_message: bool = False
    is_rating_prompt: bool = False
    is_feedback_prompt: bool = False
    is_email_prompt: bool = False
    is_references_prompt: bool = False
    is_continue_prompt: bool = False


class UserResponses(BaseModel):
    """Accumulated questionnaire answers"""
    business: Optional[str] = None
    audience: Optional[str] = None
    goals: Optional[str] = None
    page_type: Optional[str] = None
    brand_details: Optional[str] = None
    references_and_competitors: Optional[str] = None
    redesign_current_url: Optional[str] = None
    redesign_reuse_content: Optional[bool] = None
    redesign_extracted_text: Optional[str] = None
    redesign_audience: Optional[str] = None
    redesign_issues: Optional[str] = None
    redesign_references_and_competitors: Optional[str] = None
    # Field currently waiting for the free text after an "Other" choice
    waiting_for_other_input: Optional[str] = None


class ReferenceEntry(BaseModel):
    """One reference or competitor site submitted through the references widget"""
    url: str = ""
    description: str = ""


class ReferenceAnalysis(BaseModel):
    """Model analysis of a single reference site"""
    url: str
    description: str
    analysis: Dict[str, Any]


class GenerationResult(BaseModel):
    """Outcome of one generation run"""
    success: bool
    content: Optional[str] = None
    error_kind: Optional[str] = None


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SessionState(BaseModel):
    """Per-client conversation state, persisted after every mutation"""
    session_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    started_at: str = Field(default_factory=_utc_now)
    flow: Optional[Flow] = None
    phase: WorkflowPhase = WorkflowPhase.INITIAL
    question_index: int = -1
    responses: UserResponses = Field(default_factory=UserResponses)
    messages: List[Message] = Field(default_factory=list)
    next_message_id: int = 1

    # Generation
    is_busy: bool = False
    generation_pending: bool = False
    awaiting_generation_continue: bool = False
    generation_progress_message: Optional[str] = None
    is_capturing_screenshot: bool = False
    screenshot_progress_message: Optional[str] = None
    generation_completed: bool = False

    # Lifecycle
    rating_requested: bool = False
    rating_completed: bool = False
    rating_score: Optional[int] = None
    feedback: Optional[str] = None
    email_requested: bool = False
    email: Optional[str] = None
    closed: bool = False


# API request/response models

class TextRequest(BaseModel):
    """Free text typed into the input bar"""
    text: str = ""


class ChoiceRequest(BaseModel):
    """Quick-action or option button tapped"""
    label: str


class ReferencesRequest(BaseModel):
    """References widget submission; an empty list means "I don't have any" """
    entries: List[ReferenceEntry] = Field(default_factory=list)


class RatingRequest(BaseModel):
    score: int


class FeedbackRequest(BaseModel):
    text: str = ""


class EmailRequest(BaseModel):
    email: str = ""


class SessionView(BaseModel):
    """Everything the presentation layer renders for a session"""
    session_id: str
    flow: Optional[Flow] = None
    phase: WorkflowPhase
    messages: List[Message]
    placeholder_text: str
    choice_options: List[str]
    show_choice_widget: bool
    show_free_text_widget: bool
    show_references_widget: bool
    show_continue_action: bool
    selected_choice_labels: List[str]
    is_busy: bool
    generation_progress_message: Optional[str] = None
    is_capturing_screenshot: bool
    screenshot_progress_message: Optional[str] = None
    session_closed: bool
    session_limit_reached: bool


class ProgressEvent(BaseModel):
    """SSE progress event"""
    ts: str
    session_id: str
    phase: str
    detail: str
    progress: float = Field(..., ge=0.0, le=1.0)
