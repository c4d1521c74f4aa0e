import unittest

from upsc_pyq.config import Settings
from upsc_pyq.core.exceptions import AIIntegrationError, AuthenticationRequired, InvalidAnswer
from upsc_pyq.schemas.questions import SearchParams
from upsc_pyq.services.answers import AnswerService
from upsc_pyq.services.practice import PanelState, PracticeSession
from upsc_pyq.services.search import QuestionSearchService

from tests.fakes import FakeAIClient, FakeSupabase, make_mcq, make_question


def build_session(user_id="alice", ai=None):
    supabase = FakeSupabase(tables={
        "exam_questions": [
            make_mcq("mcq-1", year=2023),
            make_mcq("mcq-2", year=2022),
            make_question("desc-1", year=2021, subject="History"),
        ],
    })
    settings = Settings()
    ai = ai or FakeAIClient(model_answer="B")
    session = PracticeSession(
        QuestionSearchService(supabase, settings),
        AnswerService(supabase, ai, settings=settings),
        user_id=user_id,
    )
    return session, supabase, ai


class SearchTokenTests(unittest.TestCase):
    def test_search_populates_results(self):
        session, _, _ = build_session()
        session.search(SearchParams())
        self.assertEqual([q.id for q in session.questions], ["mcq-1", "mcq-2", "desc-1"])
        self.assertEqual(session.count, 3)

    def test_search_result_carries_answers(self):
        session, _, _ = build_session()
        session.search(SearchParams())
        session.submit_answer("mcq-2", "A")

        result = session.search(SearchParams())
        self.assertEqual(list(result.answers), ["mcq-2"])
        self.assertEqual(result.answers["mcq-2"].answer_text, "A")

    def test_stale_result_is_discarded(self):
        session, _, _ = build_session()
        search = session.search_service

        first = session.begin_search()
        second = session.begin_search()
        newer = search.search(SearchParams(subject="History"), "alice")
        older = search.search(SearchParams(), "alice")

        self.assertTrue(session.apply_search_result(second, newer))
        self.assertFalse(session.apply_search_result(first, older))
        self.assertEqual([q.id for q in session.questions], ["desc-1"])

    def test_search_loads_existing_answers(self):
        session, _, _ = build_session()
        session.search(SearchParams())
        session.submit_answer("mcq-1", "B")

        fresh, _, _ = build_session()
        fresh.answer_service = session.answer_service
        fresh.search_service = session.search_service
        fresh.search(SearchParams())
        self.assertEqual(fresh.panel_state("mcq-1"), PanelState.SUBMITTED)
        self.assertEqual(fresh.panel_state("mcq-2"), PanelState.CLOSED)


class PanelTests(unittest.TestCase):
    def setUp(self):
        self.session, self.supabase, self.ai = build_session()
        self.session.search(SearchParams())

    def test_model_answer_toggles(self):
        answer = self.session.toggle_model_answer("desc-1")
        self.assertEqual(answer, "B")
        self.assertEqual(self.session.panel_state("desc-1"), PanelState.VIEWING_MODEL_ANSWER)

        self.assertIsNone(self.session.toggle_model_answer("desc-1"))
        self.assertEqual(self.session.panel_state("desc-1"), PanelState.CLOSED)
        self.assertEqual(len(self.ai.prompts), 1)

    def test_opening_a_second_panel_closes_the_first(self):
        self.session.toggle_model_answer("mcq-1")
        self.session.start_draft("mcq-2")
        self.assertEqual(self.session.panel_state("mcq-1"), PanelState.CLOSED)
        self.assertEqual(self.session.panel_state("mcq-2"), PanelState.DRAFTING_ANSWER)
        self.assertIsNone(self.session.model_answer)

        self.session.toggle_model_answer("mcq-1")
        self.assertEqual(self.session.panel_state("mcq-2"), PanelState.CLOSED)

    def test_draft_then_submit(self):
        self.session.start_draft("mcq-1")
        self.session.update_draft("B")
        result = self.session.submit_draft()

        self.assertEqual(result.answer.awarded_marks, 2)
        self.assertEqual(self.session.panel_state("mcq-1"), PanelState.SUBMITTED)
        self.assertIsNone(self.session.open_question_id)
        self.assertIn("mcq-1", self.session.feedback)

    def test_reopening_a_submitted_answer_prefills_it(self):
        self.session.submit_answer("mcq-1", "C")
        self.assertEqual(self.session.start_draft("mcq-1"), "C")

    def test_submissions_for_different_questions_are_independent(self):
        self.session.submit_answer("mcq-1", "B")
        self.session.submit_answer("mcq-2", "A")
        self.assertEqual(self.session.answers["mcq-1"].awarded_marks, 2)
        self.assertEqual(self.session.answers["mcq-2"].awarded_marks, 0)
        self.assertEqual(len(self.supabase.rows("question_answers")), 2)

    def test_submit_without_draft_is_rejected(self):
        with self.assertRaises(InvalidAnswer):
            self.session.submit_draft()

    def test_failed_model_answer_closes_panel(self):
        self.ai.fail_generation = True
        with self.assertRaises(AIIntegrationError):
            self.session.toggle_model_answer("desc-1")
        self.assertEqual(self.session.panel_state("desc-1"), PanelState.CLOSED)


class AnonymousSessionTests(unittest.TestCase):
    def test_anonymous_cannot_draft_or_submit(self):
        session, supabase, _ = build_session(user_id=None)
        session.search(SearchParams())
        with self.assertRaises(AuthenticationRequired):
            session.start_draft("mcq-1")
        with self.assertRaises(AuthenticationRequired):
            session.submit_answer("mcq-1", "B")
        self.assertEqual(supabase.rows("question_answers"), [])

    def test_anonymous_can_view_model_answers(self):
        session, _, _ = build_session(user_id=None)
        session.search(SearchParams())
        self.assertEqual(session.toggle_model_answer("mcq-1"), "B")


if __name__ == "__main__":
    unittest.main()
