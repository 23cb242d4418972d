"""Question catalog for both flows"""

from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict
import logging

from design_chat.models.schemas import Flow, UserResponses, WorkflowPhase
from design_chat.models.errors import FlowIntegrityError
from design_chat.core.messages import VALIDATION_MESSAGES, OTHER_INPUT_MESSAGES
from design_chat.core.responses import NONE_OPTION, OTHER_OPTION

logger = logging.getLogger(__name__)


class InputKind(str, Enum):
    FREE_TEXT = "free-text"
    SINGLE_CHOICE = "single-choice"
    YES_NO = "yes-no"


class AnswerRule(str, Enum):
    """How the answer processor treats input for a question"""
    REQUIRED_TEXT = "required-text"
    TEXT_OR_NONE = "text-or-none"
    CHOICE_WITH_OTHER = "choice-with-other"
    MULTI_SELECT = "multi-select"
    YES_NO = "yes-no"
    OPTIONAL_URL = "optional-url"
    REFERENCE_ENTRIES = "reference-entries"


class OtherMessages(BaseModel):
    model_config = ConfigDict(frozen=True)

    prompt: str
    again: str
    empty: str


class QuestionDefinition(BaseModel):
    """Immutable question definition"""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: str
    phase: WorkflowPhase
    field: str
    prompt_text: str
    input_kind: InputKind
    answer_rule: AnswerRule
    choices: Tuple[str, ...] = ()
    placeholder: Optional[str] = None
    empty_message: Optional[str] = None
    other_messages: Optional[OtherMessages] = None
    done_label: Optional[str] = None
    none_label: Optional[str] = None
    max_length: int = 5000
    # Predicate over the responses so far; None means the question is always asked
    skip_when: Optional[Callable[[UserResponses], bool]] = None

    @property
    def uses_references_widget(self) -> bool:
        return self.answer_rule == AnswerRule.REFERENCE_ENTRIES

    def should_skip(self, responses: UserResponses) -> bool:
        return self.skip_when is not None and bool(self.skip_when(responses))


BUSINESS_QUESTION = "In one or two lines, what does your business or project do?"
BUSINESS_PLACEHOLDER = "Tell me about your business..."
AUDIENCE_QUESTION = (
    "Tell us about your main target audiences like their gender, where they're located, and their age group"
)
AUDIENCE_PLACEHOLDER = "Describe your target audience..."
REFERENCES_QUESTION = (
    "Could you share links to your top 3 reference or competitor websites, briefly explaining which "
    "design elements you would like us to review (e.g., layout, navigation, typography)?"
)
REFERENCES_PLACEHOLDER = "Paste webpage URLs here (e.g., https://example.com)..."

PAGE_TYPE_OPTIONS = (
    "Home Page",
    "Landing Page",
    "Product Page",
    "Service Page",
    "Portfolio Page",
    OTHER_OPTION,
)

ISSUES_DONE_LABEL = "Done selecting issues"
ISSUE_OPTIONS = (
    "It isn't generating enough leads or sales",
    "The design is outdated or doesn't fit our brand",
    "It provides a poor experience on mobile devices",
    "The site feels slow, clunky, or unresponsive",
    "It is too difficult for us to update content",
    OTHER_OPTION,
    ISSUES_DONE_LABEL,
)


NEW_WEBSITE_QUESTIONS: Tuple[QuestionDefinition, ...] = (
    QuestionDefinition(
        key="business",
        phase=WorkflowPhase.NEW_WEBSITE_BUSINESS,
        field="business",
        prompt_text=f"Great! {BUSINESS_QUESTION}",
        input_kind=InputKind.FREE_TEXT,
        answer_rule=AnswerRule.REQUIRED_TEXT,
        placeholder=BUSINESS_PLACEHOLDER,
        empty_message=VALIDATION_MESSAGES["business"],
        max_length=10000,
    ),
    QuestionDefinition(
        key="audience",
        phase=WorkflowPhase.NEW_WEBSITE_AUDIENCE,
        field="audience",
        prompt_text=AUDIENCE_QUESTION,
        input_kind=InputKind.FREE_TEXT,
        answer_rule=AnswerRule.REQUIRED_TEXT,
        placeholder=AUDIENCE_PLACEHOLDER,
        empty_message=VALIDATION_MESSAGES["audience"],
    ),
    QuestionDefinition(
        key="goals",
        phase=WorkflowPhase.NEW_WEBSITE_GOALS,
        field="goals",
        prompt_text="What are the top 3 goals for your new webpage?",
        input_kind=InputKind.FREE_TEXT,
        answer_rule=AnswerRule.REQUIRED_TEXT,
        placeholder="e.g., Generate leads, Showcase products, Build brand awareness...",
        empty_message=VALIDATION_MESSAGES["goals"],
    ),
    QuestionDefinition(
        key="pageType",
        phase=WorkflowPhase.NEW_WEBSITE_PAGE_TYPE,
        field="page_type",
        prompt_text="Which page do you want to create? (Landing page, Contact page, etc.)",
        input_kind=InputKind.SINGLE_CHOICE,
        answer_rule=AnswerRule.CHOICE_WITH_OTHER,
        choices=PAGE_TYPE_OPTIONS,
        empty_message=OTHER_INPUT_MESSAGES["page_type"]["empty"],
        other_messages=OtherMessages(**OTHER_INPUT_MESSAGES["page_type"]),
    ),
    QuestionDefinition(
        key="brand",
        phase=WorkflowPhase.NEW_WEBSITE_BRAND,
        field="brand_details",
        prompt_text="Do you have any existing design rules regarding colors, fonts, or styling?",
        input_kind=InputKind.FREE_TEXT,
        answer_rule=AnswerRule.TEXT_OR_NONE,
        choices=(NONE_OPTION,),
        placeholder="Enter color code (e.g., #FF5733), font name (e.g., Roboto), or styling notes...",
        empty_message=VALIDATION_MESSAGES["brand_details"],
        none_label=NONE_OPTION,
    ),
    QuestionDefinition(
        key="referencesAndCompetitors",
        phase=WorkflowPhase.NEW_WEBSITE_REFERENCES,
        field="references_and_competitors",
        prompt_text=REFERENCES_QUESTION,
        input_kind=InputKind.FREE_TEXT,
        answer_rule=AnswerRule.REFERENCE_ENTRIES,
        placeholder=REFERENCES_PLACEHOLDER,
        empty_message=VALIDATION_MESSAGES["references_free_text"],
        none_label=NONE_OPTION,
    ),
)


REDESIGN_QUESTIONS: Tuple[QuestionDefinition, ...] = (
    QuestionDefinition(
        key="currentUrl",
        phase=WorkflowPhase.REDESIGN_CURRENT_URL,
        field="redesign_current_url",
        prompt_text="What is your current webpage URL (if you have one)?",
        input_kind=InputKind.FREE_TEXT,
        answer_rule=AnswerRule.OPTIONAL_URL,
        placeholder="Paste your webpage URL here...",
        empty_message=VALIDATION_MESSAGES["redesign_current_url"],
        max_length=2048,
    ),
    QuestionDefinition(
        key="reuseContent",
        phase=WorkflowPhase.REDESIGN_REUSE_CONTENT,
        field="redesign_reuse_content",
        prompt_text="Would you like to reuse the existing content from your webpage?",
        input_kind=InputKind.YES_NO,
        answer_rule=AnswerRule.YES_NO,
        choices=("Yes", "No"),
    ),
    QuestionDefinition(
        key="redesignAudience",
        phase=WorkflowPhase.REDESIGN_AUDIENCE,
        field="redesign_audience",
        prompt_text=AUDIENCE_QUESTION,
        input_kind=InputKind.FREE_TEXT,
        answer_rule=AnswerRule.REQUIRED_TEXT,
        placeholder=AUDIENCE_PLACEHOLDER,
        empty_message=VALIDATION_MESSAGES["audience"],
    ),
    QuestionDefinition(
        key="issues",
        phase=WorkflowPhase.REDESIGN_ISSUES,
        field="redesign_issues",
        prompt_text=(
            "From your perspective, which of these best describes what is not working with your current "
            "webpage? You can select multiple options and then tap \"Done selecting issues\" when you're finished."
        ),
        input_kind=InputKind.SINGLE_CHOICE,
        answer_rule=AnswerRule.MULTI_SELECT,
        choices=ISSUE_OPTIONS,
        empty_message=VALIDATION_MESSAGES["redesign_issues"],
        other_messages=OtherMessages(**OTHER_INPUT_MESSAGES["redesign_issues"]),
        done_label=ISSUES_DONE_LABEL,
    ),
    QuestionDefinition(
        key="redesignReferencesAndCompetitors",
        phase=WorkflowPhase.REDESIGN_REFERENCES,
        field="redesign_references_and_competitors",
        prompt_text=REFERENCES_QUESTION,
        input_kind=InputKind.FREE_TEXT,
        answer_rule=AnswerRule.REFERENCE_ENTRIES,
        placeholder=REFERENCES_PLACEHOLDER,
        empty_message=VALIDATION_MESSAGES["references_free_text"],
        none_label=NONE_OPTION,
    ),
)


COMPLETE_PHASES = {
    Flow.NEW_WEBSITE: WorkflowPhase.NEW_WEBSITE_COMPLETE,
    Flow.REDESIGN: WorkflowPhase.REDESIGN_COMPLETE,
}


class QuestionCatalog:
    """Ordered question definitions per flow, loaded once"""

    def __init__(self, questions: Dict[Flow, Tuple[QuestionDefinition, ...]]):
        self._questions = dict(questions)

    def questions(self, flow: Flow) -> Tuple[QuestionDefinition, ...]:
        return self._questions.get(flow, ())

    def question_order(self, flow: Flow) -> List[str]:
        return [question.key for question in self.questions(flow)]

    def question_count(self, flow: Flow) -> int:
        return len(self.questions(flow))

    def get_question_at(self, flow: Flow, index: int) -> Optional[QuestionDefinition]:
        questions = self.questions(flow)
        if index < 0 or index >= len(questions):
            logger.warning(f"Invalid question index: {index} for flow: {flow.value}")
            return None
        return questions[index]

    def get_question(self, flow: Flow, phase: WorkflowPhase) -> Optional[QuestionDefinition]:
        for question in self.questions(flow):
            if question.phase == phase:
                return question
        logger.warning(f"Question not found for phase: {phase.value} in flow: {flow.value}")
        return None

    def require_question_at(self, flow: Flow, index: int) -> QuestionDefinition:
        """Like get_question_at, but a missing definition is a flow integrity error"""
        question = self.get_question_at(flow, index)
        if question is None:
            raise FlowIntegrityError(f"No question at index {index} for flow {flow.value}")
        return question


# Global catalog instance
question_catalog = QuestionCatalog({
    Flow.NEW_WEBSITE: NEW_WEBSITE_QUESTIONS,
    Flow.REDESIGN: REDESIGN_QUESTIONS,
})
