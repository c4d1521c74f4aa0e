from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import Depends
from supabase import Client

from upsc_pyq.config import Settings, get_settings
from upsc_pyq.core.ai_client import AIClient, get_ai_client
from upsc_pyq.core.exceptions import AuthenticationRequired, InvalidAnswer, SearchFailed, StorageError
from upsc_pyq.core.logging_config import OperationLogger, logger
from upsc_pyq.db import get_supabase
from upsc_pyq.schemas.answers import QuestionAnswer, ScoreStatus, SubmissionResult
from upsc_pyq.schemas.questions import ExamQuestion
from upsc_pyq.services.prompts import PromptTemplates, descriptive_feedback, mcq_feedback
from upsc_pyq.services.questions import QuestionCatalogue
from upsc_pyq.services.scoring import AnswerScorer, option_letter_of


class AnswerService:
    """Model answers, answer submission and the user's stored answers."""

    def __init__(
        self,
        supabase: Client,
        ai_client: AIClient,
        catalogue: QuestionCatalogue = None,
        scorer: AnswerScorer = None,
        settings: Settings = None,
    ):
        self.supabase = supabase
        self.ai_client = ai_client
        self.settings = settings or get_settings()
        self.catalogue = catalogue or QuestionCatalogue(supabase, self.settings)
        self.scorer = scorer or AnswerScorer(ai_client.semantic_similarity)

    @property
    def table(self):
        return self.supabase.table(self.settings.ANSWERS_TABLE)

    def model_answer(self, question: ExamQuestion) -> str:
        return self.ai_client.generate_model_answer(question.subject, question.question_text)

    def reference_answer(self, question: ExamQuestion) -> str:
        """One generator call: the option letter for MCQs, a model answer otherwise."""
        if question.is_mcq:
            prompt = PromptTemplates.mcq_key_prompt(question.question_text, question.options)
            return self.ai_client.generate_model_answer(question.subject, prompt)
        return self.model_answer(question)

    def submit(self, question_id: str, user_id: Optional[str], answer_text: str) -> SubmissionResult:
        """Score an answer against a generated reference and upsert it.

        A second submission for the same question replaces the first.
        """
        if not user_id:
            raise AuthenticationRequired("Sign in to submit answers")
        if not answer_text or not answer_text.strip():
            raise InvalidAnswer("Answer text cannot be empty")

        with OperationLogger("answer_submission", question_id=question_id, user_id=user_id) as op:
            question = self.catalogue.get_question(question_id, user_id)
            reference = self.reference_answer(question)
            score = self.scorer.score(answer_text, reference, question.marks, question.question_type)
            op.bind(similarity=score.similarity, awarded_marks=score.awarded_marks, score_status=score.status.value)

            record = {
                "question_id": question.id,
                "user_id": user_id,
                "answer_text": answer_text,
                "similarity_score": score.similarity,
                "awarded_marks": score.awarded_marks,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }
            try:
                response = self.table.upsert(record, on_conflict="question_id,user_id").execute()
            except Exception as e:
                raise StorageError("Failed to save answer") from e
            answer = QuestionAnswer.model_validate(response.data[0])

        if score.status == ScoreStatus.UNAVAILABLE:
            logger.warning("Answer saved with unavailable score", question_id=question_id, user_id=user_id)

        return SubmissionResult(
            answer=answer,
            score=score,
            reference_answer=reference,
            feedback=self._feedback(question, answer_text, reference, score),
        )

    def get_user_answer(self, question_id: str, user_id: Optional[str]) -> Optional[QuestionAnswer]:
        if not user_id:
            return None
        return self.get_user_answers([question_id], user_id).get(question_id)

    def get_user_answers(self, question_ids: List[str], user_id: Optional[str]) -> Dict[str, QuestionAnswer]:
        """The user's answers for the given questions, keyed by question id."""
        if not user_id or not question_ids:
            return {}
        try:
            response = (
                self.table.select("*")
                .eq("user_id", user_id)
                .in_("question_id", list(question_ids))
                .execute()
            )
        except Exception as e:
            raise SearchFailed(f"Failed to load answers: {e}") from e
        answers = (QuestionAnswer.model_validate(row) for row in response.data)
        return {a.question_id: a for a in answers}

    @staticmethod
    def _feedback(question: ExamQuestion, answer_text: str, reference: str, score) -> str:
        if question.is_mcq:
            correct = option_letter_of(reference)
            return mcq_feedback(
                is_correct=score.similarity == 1.0,
                selected=option_letter_of(answer_text),
                correct=correct,
                correct_text=question.option_text(correct),
                marks=question.marks,
            )
        return descriptive_feedback(score.awarded_marks, question.marks, score.similarity, reference)


def get_answer_service(
    supabase: Client = Depends(get_supabase),
    ai_client: AIClient = Depends(get_ai_client),
) -> AnswerService:
    return AnswerService(supabase, ai_client)
