import math
import random
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence, TypeVar

from .errors import InvalidCountError
from .models import Question, RawEntry

T = TypeVar("T")


def shuffled(items: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """Returns a uniformly permuted copy; ``items`` is left as it was."""
    result = list(items)
    (rng or random).shuffle(result)
    return result


def parse_count(value: Any) -> int:
    """Accepts whole numbers > 0 given as int, integral float or numeric text."""
    if isinstance(value, bool):
        raise InvalidCountError(value)
    if isinstance(value, int):
        number = value
    elif isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise InvalidCountError(value)
        number = int(value)
    elif isinstance(value, str):
        text = value.strip()
        if "_" in text:
            raise InvalidCountError(value)
        try:
            number = int(text)
        except ValueError:
            try:
                as_float = float(text)
            except ValueError:
                raise InvalidCountError(value) from None
            if not math.isfinite(as_float) or not as_float.is_integer():
                raise InvalidCountError(value)
            number = int(as_float)
    else:
        raise InvalidCountError(value)

    if number <= 0:
        raise InvalidCountError(value)
    return number


def to_question(entry: RawEntry, rng: Optional[random.Random] = None) -> Question:
    return Question(
        word=entry.word,
        type=entry.type,
        example=entry.example,
        answer=entry.answer,
        options=shuffled(entry.options, rng),
    )


def reshuffle(question: Question, rng: Optional[random.Random] = None) -> Question:
    return question.model_copy(update={"options": shuffled(question.options, rng)})


class QuizGenerator(ABC):
    """Abstract Base Class for different quiz generation strategies."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng

    @abstractmethod
    def generate(
        self, corpus: Sequence[RawEntry], topic: str, count: Any
    ) -> List[Question]:
        pass

    @staticmethod
    def filter_topic(corpus: Sequence[RawEntry], topic: str) -> List[RawEntry]:
        if topic == "all":
            return list(corpus)
        return [entry for entry in corpus if entry.topic == topic]


class RandomQuizGenerator(QuizGenerator):
    """Standard mode: a uniform sample of N entries of the topic."""

    def generate(
        self, corpus: Sequence[RawEntry], topic: str, count: Any
    ) -> List[Question]:
        n = parse_count(count)
        selected = shuffled(self.filter_topic(corpus, topic), self.rng)[:n]
        return [to_question(entry, self.rng) for entry in selected]


class QuizFactory:
    """Factory to select the appropriate generator."""

    @staticmethod
    def create(mode: str = "standard", rng: Optional[random.Random] = None) -> QuizGenerator:
        if mode == "standard":
            return RandomQuizGenerator(rng)
        # Fallback
        return RandomQuizGenerator(rng)
