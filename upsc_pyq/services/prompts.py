from typing import List, Optional

from upsc_pyq.schemas.questions import option_letter


class PromptTemplates:
    """Prompt templates for the model-answer generator and the similarity scorer"""

    MODEL_ANSWER_SYSTEM = "You are an expert UPSC coach who creates model answers for UPSC aspirants."

    SIMILARITY_SYSTEM = "You are a strict but fair UPSC examiner. Reply with JSON only."

    @staticmethod
    def model_answer_prompt(subject: str, question: str) -> str:
        """Wraps a question (or a caller supplied instruction) in the coaching template"""
        return f"""
As an expert UPSC coach, provide a comprehensive model answer for the following UPSC question:

Topic: {subject}
Question: {question}

Your answer should:
1. Have a clear introduction that frames the issue
2. Include relevant facts, data points, and historical context
3. Present multiple perspectives on the issue
4. Incorporate case studies or real-world examples
5. Conclude with a balanced viewpoint
6. Follow UPSC answer writing best practices (structure, precision, balance)
7. Be around 250-300 words (Mains standard)
"""

    @staticmethod
    def mcq_key_prompt(question_text: str, options: Optional[List[str]]) -> str:
        """Asks for the answer key of a multiple choice question"""
        lines = "\n".join(
            f"{option_letter(idx)}. {opt}" for idx, opt in enumerate(options or [])
        )
        return f"""This is a multiple choice question. Please provide ONLY the correct option letter (A, B, C, or D) without any explanation.

Question: {question_text}
Options:
{lines}
"""

    @staticmethod
    def similarity_prompt(user_answer: str, correct_answer: str, max_marks: float) -> str:
        return f"""Compare the student's answer with the reference answer and judge how much of the reference content it covers.

Reference Answer:
{correct_answer}

Student's Answer:
{user_answer}

The question carries {max_marks} marks.

Return JSON only, in exactly this shape:
{{"similarity_score": <number between 0 and 1>, "awarded_marks": <number between 0 and {max_marks}>}}
"""


def mcq_feedback(is_correct: bool, selected: str, correct: str, correct_text: Optional[str], marks: int) -> str:
    """Evaluation text shown after an MCQ submission"""
    if is_correct:
        key_points = "• Selected the correct option\n• Demonstrated understanding of the concept"
        improvement = "• Continue practicing similar questions to maintain understanding"
    else:
        key_points = "• Selected incorrect option\n• Review the concept carefully"
        improvement = (
            f"• Review why option {correct} is the correct answer\n"
            "• Understand the key concepts related to this question"
        )
    verdict = "Correct! " if is_correct else "Incorrect. "
    return f"""Score: {marks if is_correct else 0}
Explanation: {verdict}You selected option {selected}.
The correct answer is option {correct}: {correct_text or ""}

Key Points Covered:
{key_points}

Areas for Improvement:
{improvement}"""


def descriptive_feedback(awarded: float, marks: int, similarity: float, reference: str) -> str:
    return f"""Score: {awarded:.2f}/{marks} ({round(similarity * 100)}% match)

Model Answer:
{reference}"""
