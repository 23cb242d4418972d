"""Flow navigation between questions"""

from typing import Optional

from design_chat.models.schemas import Flow, UserResponses
from design_chat.core.catalog import QuestionCatalog, question_catalog

# Returned by next_index once every remaining question has been answered or skipped
COMPLETE = -1


def next_index(
    flow: Flow,
    current_index: int,
    responses: UserResponses,
    catalog: Optional[QuestionCatalog] = None
) -> int:
    """
    Index of the next question to ask, or COMPLETE.

    Questions whose skip predicate holds for the given responses are passed
    over. Pure: reads the catalog and the responses, changes nothing.
    """
    catalog = catalog or question_catalog
    questions = catalog.questions(flow)

    index = current_index + 1
    while index < len(questions):
        if not questions[index].should_skip(responses):
            return index
        index += 1
    return COMPLETE


def first_index(flow: Flow, responses: UserResponses, catalog: Optional[QuestionCatalog] = None) -> int:
    return next_index(flow, -1, responses, catalog)
