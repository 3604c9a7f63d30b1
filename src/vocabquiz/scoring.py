from typing import Mapping, Sequence

from .models import Question, ScoreResult


def score(questions: Sequence[Question], answers: Mapping[int, str]) -> ScoreResult:
    """Grades a round. Unanswered questions count as wrong.

    ``percent`` rounds halves up, so 1 of 8 correct is 13.
    """
    wrong = [q for i, q in enumerate(questions) if answers.get(i) != q.answer]
    total = len(questions)
    correct = total - len(wrong)
    return ScoreResult(
        correct_count=correct,
        total=total,
        percent=(200 * correct + total) // (2 * total) if total > 0 else 0,
        wrong_questions=wrong,
    )


def should_celebrate(percent: int, threshold: int) -> bool:
    return percent >= threshold


def format_time(seconds: int) -> str:
    return f"{seconds // 60}:{seconds % 60:02d}"
