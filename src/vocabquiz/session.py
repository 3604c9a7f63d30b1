import logging
import random
import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from .errors import NothingToRetry, TransitionError
from .generator import QuizFactory, QuizGenerator, parse_count, reshuffle
from .models import Question, RawEntry, ScoreResult
from .scoring import score
from .timer import Clock, ManualClock

logger = logging.getLogger(__name__)

CorpusProvider = Callable[[], Sequence[RawEntry]]


class Phase(str, Enum):
    SETUP = "setup"
    TESTING = "testing"


class QuizSession:
    """One visitor's quiz: setup, answering, submission and retry of misses.

    The running clock is kept in step with the state after every transition:
    it ticks only while ``phase`` is TESTING and the round is not submitted.
    """

    def __init__(
        self,
        corpus_provider: CorpusProvider,
        clock: Optional[Clock] = None,
        generator: Optional[QuizGenerator] = None,
        rng: Optional[random.Random] = None,
    ):
        self.corpus_provider = corpus_provider
        self.clock = clock or ManualClock()
        self.rng = rng
        self.generator = generator or QuizFactory.create("standard", rng)
        self.phase = Phase.SETUP
        self.questions: List[Question] = []
        self.answers: Dict[int, str] = {}
        self.submitted = False
        self.pending_celebration = False
        self.elapsed_seconds = 0
        self.selected_topic = "all"
        self.requested_count: Optional[int] = None

    # --- Derived views ---

    @property
    def answered_count(self) -> int:
        return len(self.answers)

    @property
    def is_complete(self) -> bool:
        return len(self.answers) == len(self.questions)

    @property
    def empty_selection(self) -> bool:
        return self.phase == Phase.TESTING and not self.questions

    @property
    def ticking(self) -> bool:
        return self.phase == Phase.TESTING and not self.submitted

    def result(self) -> Optional[ScoreResult]:
        if self.phase != Phase.TESTING or not self.submitted:
            return None
        return score(self.questions, self.answers)

    def consume_celebration(self) -> bool:
        """True once after each submission, then False until the next one."""
        value = self.pending_celebration
        self.pending_celebration = False
        return value

    # --- Transitions ---

    def start(self, count: Any, topic: str = "all") -> int:
        """Builds a new round. Raises InvalidCountError and leaves state alone."""
        n = parse_count(count)
        questions = self.generator.generate(self.corpus_provider(), topic, n)

        self.phase = Phase.TESTING
        self.questions = questions
        self.answers = {}
        self.submitted = False
        self.pending_celebration = False
        self.elapsed_seconds = 0
        self.selected_topic = topic
        self.requested_count = n
        self._sync_clock(restart=True)
        logger.info(f"Round started [Topic: {topic}, Requested: {n}, Built: {len(questions)}]")
        return len(questions)

    def restart(self) -> int:
        if self.requested_count is None:
            raise TransitionError("No previous round to restart")
        return self.start(self.requested_count, self.selected_topic)

    def select_option(self, index: int, value: str) -> bool:
        if not self.ticking:
            return False
        if not 0 <= index < len(self.questions):
            return False
        self.answers[index] = value
        return True

    def submit(self) -> Optional[ScoreResult]:
        if not self.ticking:
            return None
        self.submitted = True
        self.pending_celebration = True
        self._sync_clock()
        result = score(self.questions, self.answers)
        logger.info(
            f"Round submitted [{result.correct_count}/{result.total}, "
            f"{result.percent}%, {self.elapsed_seconds}s]"
        )
        return result

    def retry_wrong(self) -> int:
        if self.phase != Phase.TESTING or not self.submitted:
            raise TransitionError("Only a submitted round can be retried")
        wrong = score(self.questions, self.answers).wrong_questions
        if not wrong:
            raise NothingToRetry("Every answer was correct")

        self.questions = [reshuffle(q, self.rng) for q in wrong]
        self.answers = {}
        self.submitted = False
        self.pending_celebration = False
        self.elapsed_seconds = 0
        self._sync_clock(restart=True)
        logger.info(f"Retrying {len(wrong)} missed questions")
        return len(wrong)

    def back_to_setup(self) -> None:
        self.phase = Phase.SETUP
        self.questions = []
        self.answers = {}
        self.submitted = False
        self.pending_celebration = False
        self.elapsed_seconds = 0
        self._sync_clock()

    def tick(self) -> None:
        if self.ticking:
            self.elapsed_seconds += 1

    def close(self) -> None:
        self.clock.stop()

    def _sync_clock(self, restart: bool = False) -> None:
        if not self.ticking:
            self.clock.stop()
        elif restart or not self.clock.running:
            self.clock.start(self.tick)


class SessionStore:
    """Cookie-keyed sessions that expire after a period without use."""

    def __init__(
        self,
        corpus_provider: CorpusProvider,
        clock_factory: Callable[[], Clock] = ManualClock,
        timeout_minutes: int = 120,
    ):
        self.corpus_provider = corpus_provider
        self.clock_factory = clock_factory
        self.timeout = timedelta(minutes=timeout_minutes)
        self.sessions: Dict[str, QuizSession] = {}
        self.last_seen: Dict[str, datetime] = {}

    def create(self) -> str:
        self.purge_expired()
        session_id = str(uuid.uuid4())
        self.sessions[session_id] = QuizSession(
            self.corpus_provider, clock=self.clock_factory()
        )
        self.last_seen[session_id] = datetime.now()
        logger.info(f"New session: {session_id}")
        return session_id

    def get(self, session_id: Optional[str]) -> Optional[QuizSession]:
        if not session_id or session_id not in self.sessions:
            return None
        if datetime.now() - self.last_seen[session_id] > self.timeout:
            logger.info(f"Session expired: {session_id}")
            self.discard(session_id)
            return None
        self.last_seen[session_id] = datetime.now()
        return self.sessions[session_id]

    def discard(self, session_id: Optional[str]) -> None:
        session = self.sessions.pop(session_id, None)
        self.last_seen.pop(session_id, None)
        if session is not None:
            session.close()

    def purge_expired(self) -> int:
        now = datetime.now()
        expired = [
            sid for sid, seen in self.last_seen.items() if now - seen > self.timeout
        ]
        if expired:
            logger.info(f"Purged {len(expired)} expired sessions")
        for sid in expired:
            self.discard(sid)
        return len(expired)
