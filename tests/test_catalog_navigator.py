"""
Tests for the question catalog and flow navigation
"""
import pytest

from design_chat.core.catalog import (
    AnswerRule,
    InputKind,
    QuestionCatalog,
    QuestionDefinition,
    question_catalog,
)
from design_chat.core.navigator import COMPLETE, first_index, next_index
from design_chat.models.errors import FlowIntegrityError
from design_chat.models.schemas import Flow, UserResponses, WorkflowPhase


def _question(key, phase, skip_when=None):
    return QuestionDefinition(
        key=key,
        phase=phase,
        field=key,
        prompt_text=f"{key}?",
        input_kind=InputKind.FREE_TEXT,
        answer_rule=AnswerRule.REQUIRED_TEXT,
        skip_when=skip_when,
    )


class TestQuestionCatalog:
    """Catalog order and lookups"""

    def test_new_website_order(self):
        assert question_catalog.question_order(Flow.NEW_WEBSITE) == [
            "business",
            "audience",
            "goals",
            "pageType",
            "brand",
            "referencesAndCompetitors",
        ]

    def test_redesign_order(self):
        assert question_catalog.question_order(Flow.REDESIGN) == [
            "currentUrl",
            "reuseContent",
            "redesignAudience",
            "issues",
            "redesignReferencesAndCompetitors",
        ]

    def test_lookup_by_phase(self):
        question = question_catalog.get_question(Flow.REDESIGN, WorkflowPhase.REDESIGN_ISSUES)
        assert question.key == "issues"
        assert question.answer_rule == AnswerRule.MULTI_SELECT

    def test_lookup_outside_flow_returns_none(self):
        assert question_catalog.get_question(Flow.NEW_WEBSITE, WorkflowPhase.REDESIGN_ISSUES) is None
        assert question_catalog.get_question_at(Flow.NEW_WEBSITE, 99) is None
        assert question_catalog.get_question_at(Flow.NEW_WEBSITE, -1) is None

    def test_require_missing_question_raises(self):
        with pytest.raises(FlowIntegrityError):
            question_catalog.require_question_at(Flow.REDESIGN, 42)

    def test_references_questions_use_widget(self):
        references = [q for q in question_catalog.questions(Flow.NEW_WEBSITE) if q.uses_references_widget]
        assert [q.key for q in references] == ["referencesAndCompetitors"]

    def test_questions_are_immutable(self):
        question = question_catalog.get_question_at(Flow.NEW_WEBSITE, 0)
        with pytest.raises(Exception):
            question.prompt_text = "changed"


class TestNavigator:
    """next_index walks the catalog and honors skip predicates"""

    def test_first_question(self):
        assert first_index(Flow.NEW_WEBSITE, UserResponses()) == 0

    def test_advances_one_at_a_time(self):
        responses = UserResponses()
        assert next_index(Flow.NEW_WEBSITE, 0, responses) == 1
        assert next_index(Flow.REDESIGN, 3, responses) == 4

    def test_last_question_completes(self):
        assert next_index(Flow.NEW_WEBSITE, 5, UserResponses()) == COMPLETE
        assert next_index(Flow.REDESIGN, 4, UserResponses()) == COMPLETE

    def test_skip_predicate_is_honored(self):
        catalog = QuestionCatalog({
            Flow.REDESIGN: (
                _question("url", WorkflowPhase.REDESIGN_CURRENT_URL),
                _question(
                    "reuse",
                    WorkflowPhase.REDESIGN_REUSE_CONTENT,
                    skip_when=lambda r: not r.redesign_current_url,
                ),
                _question("audience", WorkflowPhase.REDESIGN_AUDIENCE),
            )
        })

        assert next_index(Flow.REDESIGN, 0, UserResponses(), catalog) == 2
        assert next_index(Flow.REDESIGN, 0, UserResponses(redesign_current_url="https://a.com"), catalog) == 1

    def test_skipping_past_the_end_completes(self):
        catalog = QuestionCatalog({
            Flow.NEW_WEBSITE: (
                _question("business", WorkflowPhase.NEW_WEBSITE_BUSINESS),
                _question("brand", WorkflowPhase.NEW_WEBSITE_BRAND, skip_when=lambda r: True),
            )
        })
        assert next_index(Flow.NEW_WEBSITE, 0, UserResponses(), catalog) == COMPLETE

    def test_navigation_does_not_touch_responses(self):
        responses = UserResponses(business="Bakery")
        before = responses.model_dump()
        next_index(Flow.NEW_WEBSITE, 0, responses)
        assert responses.model_dump() == before
