"""Practice session orchestration.

Tracks, for one user session, the current search results, the answers the
user has already submitted, and a single open detail panel. A question's
panel is ``closed``, ``viewing_model_answer``, ``drafting_answer`` or
``submitted``; opening a panel closes whichever one was open before.

Searches are tagged with increasing tokens and only the result of the most
recently issued search is applied, so a slow response to an older search
cannot overwrite newer results.
"""
import itertools
from enum import Enum
from typing import Dict, List, Optional

from fastapi import Depends

from upsc_pyq.core.auth import get_optional_user
from upsc_pyq.core.exceptions import AuthenticationRequired, InvalidAnswer, QuestionNotFound
from upsc_pyq.core.logging_config import logger
from upsc_pyq.schemas.answers import QuestionAnswer, SubmissionResult
from upsc_pyq.schemas.questions import ExamQuestion, SearchParams, SearchResult
from upsc_pyq.services.answers import AnswerService, get_answer_service
from upsc_pyq.services.search import QuestionSearchService, get_search_service


class PanelState(str, Enum):
    CLOSED = "closed"
    VIEWING_MODEL_ANSWER = "viewing_model_answer"
    DRAFTING_ANSWER = "drafting_answer"
    SUBMITTED = "submitted"


class PracticeSession:
    def __init__(
        self,
        search_service: QuestionSearchService,
        answer_service: AnswerService,
        user_id: Optional[str] = None,
    ):
        self.search_service = search_service
        self.answer_service = answer_service
        self.user_id = user_id

        self._tokens = itertools.count(1)
        self._latest_token = 0

        self.questions: List[ExamQuestion] = []
        self.count = 0
        self.answers: Dict[str, QuestionAnswer] = {}
        self.feedback: Dict[str, str] = {}

        self.open_question_id: Optional[str] = None
        self.open_state = PanelState.CLOSED
        self.model_answer: Optional[str] = None
        self.draft_text = ""

    # searching

    def begin_search(self) -> int:
        self._latest_token = next(self._tokens)
        return self._latest_token

    def apply_search_result(self, token: int, result: SearchResult) -> bool:
        """Apply a search result unless a newer search has been issued since."""
        if token != self._latest_token:
            logger.debug("Discarding stale search result", token=token, latest=self._latest_token)
            return False
        self.questions = result.questions
        self.count = result.count
        self.answers = self.answer_service.get_user_answers(
            [q.id for q in result.questions], self.user_id
        )
        return True

    def search(self, params: SearchParams) -> SearchResult:
        """Run a search and return it with the user's answers for the page."""
        token = self.begin_search()
        result = self.search_service.search(params, self.user_id)
        if not self.apply_search_result(token, result):
            return result
        return result.model_copy(update={"answers": dict(self.answers)})

    # detail panels

    def panel_state(self, question_id: str) -> PanelState:
        if question_id == self.open_question_id:
            return self.open_state
        if question_id in self.answers:
            return PanelState.SUBMITTED
        return PanelState.CLOSED

    def _question(self, question_id: str) -> ExamQuestion:
        for question in self.questions:
            if question.id == question_id:
                return question
        raise QuestionNotFound(f"Question {question_id} is not in the current results")

    def _open(self, question_id: str, state: PanelState) -> None:
        self.open_question_id = question_id
        self.open_state = state
        self.model_answer = None
        self.draft_text = ""

    def close_panel(self) -> None:
        self.open_question_id = None
        self.open_state = PanelState.CLOSED
        self.model_answer = None
        self.draft_text = ""

    def toggle_model_answer(self, question_id: str) -> Optional[str]:
        """Show the model answer for a question, or hide it if already shown."""
        if self.open_question_id == question_id and self.open_state == PanelState.VIEWING_MODEL_ANSWER:
            self.close_panel()
            return None

        question = self._question(question_id)
        self._open(question_id, PanelState.VIEWING_MODEL_ANSWER)
        try:
            self.model_answer = self.answer_service.model_answer(question)
        except Exception:
            self.close_panel()
            raise
        return self.model_answer

    def start_draft(self, question_id: str) -> str:
        """Open the answer editor, prefilled with the user's previous answer if any."""
        if not self.user_id:
            raise AuthenticationRequired("Sign in to submit answers")
        self._question(question_id)
        self._open(question_id, PanelState.DRAFTING_ANSWER)
        previous = self.answers.get(question_id)
        self.draft_text = previous.answer_text if previous else ""
        return self.draft_text

    def update_draft(self, text: str) -> None:
        if self.open_state != PanelState.DRAFTING_ANSWER:
            raise InvalidAnswer("No answer is being drafted")
        self.draft_text = text

    # submission

    def submit_draft(self) -> SubmissionResult:
        if self.open_state != PanelState.DRAFTING_ANSWER:
            raise InvalidAnswer("No answer is being drafted")
        return self.submit_answer(self.open_question_id, self.draft_text)

    def submit_answer(self, question_id: str, answer_text: str) -> SubmissionResult:
        result = self.answer_service.submit(question_id, self.user_id, answer_text)
        self.answers[question_id] = result.answer
        self.feedback[question_id] = result.feedback
        if self.open_question_id == question_id:
            self.close_panel()
        return result


def get_practice_session(
    current_user=Depends(get_optional_user),
    search_service: QuestionSearchService = Depends(get_search_service),
    answer_service: AnswerService = Depends(get_answer_service),
) -> PracticeSession:
    return PracticeSession(
        search_service,
        answer_service,
        user_id=current_user.id if current_user is not None else None,
    )
