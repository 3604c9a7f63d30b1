from __future__ import annotations

import json
import os
import tempfile

_tmp = tempfile.mkdtemp(prefix="vocabquiz-tests-")
os.environ.setdefault("VOCABQUIZ_LOG_DIR", os.path.join(_tmp, "log"))
os.environ.setdefault("VOCABQUIZ_VOCAB_DIR", os.path.join(_tmp, "vocabulary"))
os.environ.setdefault("VOCABQUIZ_SHEET_URL", "")

import pytest  # noqa: E402

from vocabquiz.models import RawEntry  # noqa: E402
from vocabquiz.vocabulary import VocabularySource  # noqa: E402

SHEET_PREFIX = "/*O_o*/\ngoogle.visualization.Query.setResponse("
SHEET_SUFFIX = ");"


class StaticSource(VocabularySource):
    name = "static"

    def __init__(self, entries=None, error: Exception | None = None):
        self.entries = list(entries or [])
        self.error = error

    def load(self):
        if self.error is not None:
            raise self.error
        return list(self.entries)


def make_entry(word: str, topic: str = "animals", answer: str | None = None) -> RawEntry:
    answer = answer or f"{word}-meaning"
    return RawEntry(
        word=word,
        type="noun",
        topic=topic,
        answer=answer,
        distractors=[f"{word}-x", f"{word}-y", f"{word}-z"],
        example=f"The {word} is here.",
    )


def build_corpus() -> list[RawEntry]:
    animals = [make_entry(w) for w in ("cat", "dog", "bird", "fish", "horse")]
    food = [make_entry(w, topic="food") for w in ("rice", "bread", "soup")]
    return animals + food


def sheet_text(rows: list[list]) -> str:
    """Wraps cell values the way the gviz endpoint does."""
    payload = {
        "version": "0.6",
        "status": "ok",
        "table": {
            "cols": [],
            "rows": [
                {"c": [None if v is None else {"v": v} for v in row]} for row in rows
            ],
        },
    }
    return SHEET_PREFIX + json.dumps(payload) + SHEET_SUFFIX


@pytest.fixture
def corpus() -> list[RawEntry]:
    return build_corpus()
