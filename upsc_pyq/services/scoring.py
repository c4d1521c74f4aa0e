"""Answer scoring.

MCQs are scored by comparing option letters. Descriptive answers longer than
``SEMANTIC_MIN_LENGTH`` on both sides are scored by an external similarity
function; shorter ones must match exactly after normalization.

A failing similarity function never fails the caller: the answer is scored
zero and the result is marked ``unavailable`` so it can be told apart from a
genuine zero.
"""
import re
from typing import Callable, Tuple

from upsc_pyq.core.exceptions import ScoringUnavailable
from upsc_pyq.core.logging_config import logger
from upsc_pyq.schemas.answers import ScoreResult, ScoreStatus
from upsc_pyq.schemas.questions import QuestionType

SEMANTIC_MIN_LENGTH = 30

PUNCTUATION = re.compile(r"[.,/#!$%^&*;:{}=\-_`~()]")

SimilarityFn = Callable[[str, str, float], Tuple[float, float]]


def normalize_answer(text: str) -> str:
    return PUNCTUATION.sub("", (text or "").lower()).strip()


def option_letter_of(text: str) -> str:
    """Uppercase first non-blank character, or '' for an empty answer."""
    text = (text or "").strip()
    return text[:1].upper()


class AnswerScorer:
    def __init__(self, similarity_fn: SimilarityFn):
        self.similarity_fn = similarity_fn

    def score(self, user_answer: str, reference_answer: str, max_marks: float, question_type) -> ScoreResult:
        if QuestionType(question_type) == QuestionType.MCQ:
            return self._score_mcq(user_answer, reference_answer, max_marks)
        return self._score_text(user_answer, reference_answer, max_marks)

    def _score_mcq(self, user_answer: str, reference_answer: str, max_marks: float) -> ScoreResult:
        selected = option_letter_of(user_answer)
        expected = option_letter_of(reference_answer)
        similarity = 1.0 if selected and selected == expected else 0.0
        return ScoreResult(similarity=similarity, awarded_marks=similarity * max_marks)

    def _score_text(self, user_answer: str, reference_answer: str, max_marks: float) -> ScoreResult:
        user_answer = user_answer or ""
        reference_answer = reference_answer or ""

        if len(user_answer) > SEMANTIC_MIN_LENGTH and len(reference_answer) > SEMANTIC_MIN_LENGTH:
            try:
                similarity = self._semantic_similarity(user_answer, reference_answer, max_marks)
            except ScoringUnavailable as e:
                logger.warning(
                    "Scoring unavailable, awarding zero",
                    error=str(e.__cause__ or e),
                    max_marks=max_marks,
                )
                return ScoreResult(similarity=0.0, awarded_marks=0.0, status=ScoreStatus.UNAVAILABLE)
            return ScoreResult(similarity=similarity, awarded_marks=similarity * max_marks)

        similarity = 1.0 if normalize_answer(user_answer) == normalize_answer(reference_answer) else 0.0
        return ScoreResult(similarity=similarity, awarded_marks=similarity * max_marks)

    def _semantic_similarity(self, user_answer: str, reference_answer: str, max_marks: float) -> float:
        try:
            similarity, _ = self.similarity_fn(user_answer, reference_answer, max_marks)
            similarity = float(similarity)
        except Exception as e:
            raise ScoringUnavailable("Semantic similarity failed") from e
        if not 0.0 <= similarity <= 1.0:
            raise ScoringUnavailable(f"Similarity out of range: {similarity}")
        return similarity
