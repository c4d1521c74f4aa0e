import unittest

from upsc_pyq.core.exceptions import AIIntegrationError
from upsc_pyq.schemas.answers import ScoreStatus
from upsc_pyq.services.scoring import AnswerScorer, normalize_answer, option_letter_of

LONG_REFERENCE = "Federalism in India combines a strong union with autonomous states."
LONG_ANSWER = "India is a union of states with a quasi-federal constitutional design."


class FakeSimilarity:
    def __init__(self, result=(0.5, 5.0), error=None):
        self.result = result
        self.error = error
        self.calls = 0

    def __call__(self, user_answer, correct_answer, max_marks):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


class McqScoringTests(unittest.TestCase):
    def setUp(self):
        self.similarity = FakeSimilarity()
        self.scorer = AnswerScorer(self.similarity)

    def test_matching_letter_awards_full_marks(self):
        result = self.scorer.score("b", "B. Option B is correct", 2, "mcq")
        self.assertEqual(result.similarity, 1.0)
        self.assertEqual(result.awarded_marks, 2)

    def test_different_letter_awards_nothing(self):
        result = self.scorer.score("A", "B", 4, "mcq")
        self.assertEqual(result.similarity, 0.0)
        self.assertEqual(result.awarded_marks, 0)

    def test_blank_answer_never_matches(self):
        result = self.scorer.score("   ", "", 1, "mcq")
        self.assertEqual(result.similarity, 0.0)

    def test_mcq_never_calls_similarity(self):
        self.scorer.score("A" * 40, "A" * 40, 1, "mcq")
        self.assertEqual(self.similarity.calls, 0)


class TextScoringTests(unittest.TestCase):
    def test_long_answers_use_semantic_similarity(self):
        similarity = FakeSimilarity(result=(0.75, 99))
        result = AnswerScorer(similarity).score(LONG_ANSWER, LONG_REFERENCE, 10, "descriptive")
        self.assertEqual(similarity.calls, 1)
        self.assertEqual(result.similarity, 0.75)
        # marks follow the similarity, not the function's own mark figure
        self.assertEqual(result.awarded_marks, 7.5)
        self.assertEqual(result.status, ScoreStatus.SCORED)

    def test_short_answers_equal_after_normalization(self):
        similarity = FakeSimilarity()
        result = AnswerScorer(similarity).score("Article 370!", "article 370", 3, "short_answer")
        self.assertEqual(result.similarity, 1.0)
        self.assertEqual(result.awarded_marks, 3)
        self.assertEqual(similarity.calls, 0)

    def test_short_answers_with_different_words_score_zero(self):
        result = AnswerScorer(FakeSimilarity()).score("Article 371", "Article 370", 3, "short_answer")
        self.assertEqual(result.similarity, 0.0)
        self.assertEqual(result.awarded_marks, 0)

    def test_one_short_side_uses_exact_comparison(self):
        similarity = FakeSimilarity()
        AnswerScorer(similarity).score("Yes", LONG_REFERENCE, 5, "descriptive")
        self.assertEqual(similarity.calls, 0)

    def test_similarity_failure_scores_zero_and_is_flagged(self):
        similarity = FakeSimilarity(error=AIIntegrationError("provider down"))
        result = AnswerScorer(similarity).score(LONG_ANSWER, LONG_REFERENCE, 10, "descriptive")
        self.assertEqual(result.similarity, 0.0)
        self.assertEqual(result.awarded_marks, 0.0)
        self.assertEqual(result.status, ScoreStatus.UNAVAILABLE)

    def test_out_of_range_similarity_counts_as_unavailable(self):
        similarity = FakeSimilarity(result=(7, 7))
        result = AnswerScorer(similarity).score(LONG_ANSWER, LONG_REFERENCE, 10, "case_study")
        self.assertEqual(result.status, ScoreStatus.UNAVAILABLE)
        self.assertEqual(result.awarded_marks, 0.0)


class NormalizationTests(unittest.TestCase):
    def test_strips_punctuation_and_case(self):
        self.assertEqual(normalize_answer("Hello, (World)!"), "hello world")
        self.assertEqual(normalize_answer("a-b_c`d~e{f}g=h"), "abcdefgh")

    def test_keeps_other_characters(self):
        self.assertEqual(normalize_answer("it's 50?"), "it's 50?")

    def test_option_letter(self):
        self.assertEqual(option_letter_of("  c) Option C"), "C")
        self.assertEqual(option_letter_of(""), "")


if __name__ == "__main__":
    unittest.main()
