from pydantic import BaseModel, Field
from typing import List


def unique_options(answer: str, distractors: List[str]) -> List[str]:
    """Answer first, then distractors, blanks dropped and duplicates removed."""
    options: List[str] = []
    for value in [answer, *distractors]:
        if value and value not in options:
            options.append(value)
    return options


class RawEntry(BaseModel):
    word: str
    type: str = ""
    topic: str = ""
    answer: str
    distractors: List[str] = Field(default_factory=list)
    example: str = ""

    @property
    def options(self) -> List[str]:
        return unique_options(self.answer, self.distractors)

    def is_valid(self) -> bool:
        return bool(self.word) and bool(self.answer) and len(self.options) >= 2


class Question(BaseModel):
    word: str
    type: str = ""
    example: str = ""
    answer: str
    options: List[str]


class ScoreResult(BaseModel):
    correct_count: int
    total: int
    percent: int
    wrong_questions: List[Question]


class Topic(BaseModel):
    id: str
    name: str
    count: int
