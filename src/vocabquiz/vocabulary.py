import glob
import json
import logging
import math
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List

import pandas as pd
import requests

from .errors import SourceFormatError
from .models import RawEntry, Topic

logger = logging.getLogger(__name__)

FIELDS = [
    "word",
    "type",
    "answer",
    "example",
    "distractor_1",
    "distractor_2",
    "distractor_3",
    "topic",
]
DISTRACTOR_FIELDS = ["distractor_1", "distractor_2", "distractor_3"]

# Spreadsheet convention: column 1 is unused.
SHEET_COLUMNS = {
    0: "word",
    2: "type",
    3: "answer",
    4: "example",
    5: "distractor_1",
    6: "distractor_2",
    7: "distractor_3",
    8: "topic",
}
SHEET_WIDTH = 9


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value)


def frame_to_entries(df: pd.DataFrame) -> List[RawEntry]:
    """Turns a frame with FIELDS columns into validated entries, dropping the rest."""
    df = df.reindex(columns=FIELDS).map(_cell_text)
    entries = []
    for record in df.to_dict("records"):
        entry = RawEntry(
            word=record["word"],
            type=record["type"],
            topic=record["topic"],
            answer=record["answer"],
            distractors=[record[f] for f in DISTRACTOR_FIELDS],
            example=record["example"],
        )
        if entry.is_valid():
            entries.append(entry)
    dropped = len(df) - len(entries)
    if dropped:
        logger.debug(f"Discarded {dropped} incomplete rows")
    return entries


def unwrap_payload(text: str, prefix_len: int = 47, suffix_len: int = 2) -> Dict:
    """Strips the fixed-length callback wrapper around the feed's JSON body."""
    if not isinstance(text, str) or len(text) < prefix_len + suffix_len:
        raise SourceFormatError("Feed payload is shorter than its wrapper")
    body = text[prefix_len : len(text) - suffix_len]
    try:
        payload = json.loads(body)
    except ValueError as e:
        raise SourceFormatError(f"Feed body is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise SourceFormatError("Feed body is not a JSON object")
    return payload


def sheet_rows(payload: Dict) -> List[List[Any]]:
    """Extracts the cell values of ``table.rows``; absent cells become None."""
    table = payload.get("table")
    rows = table.get("rows") if isinstance(table, dict) else None
    if not isinstance(rows, list):
        raise SourceFormatError("Feed has no table.rows list")

    values = []
    for row in rows:
        if not isinstance(row, dict):
            raise SourceFormatError(f"Row is not an object: {row!r}")
        cells = row.get("c") or []
        if not isinstance(cells, list):
            raise SourceFormatError(f"Row cells are not a list: {cells!r}")
        values.append([c.get("v") if isinstance(c, dict) else None for c in cells])
    return values


def parse_sheet_payload(
    text: str, prefix_len: int = 47, suffix_len: int = 2
) -> List[RawEntry]:
    values = sheet_rows(unwrap_payload(text, prefix_len, suffix_len))
    df = pd.DataFrame(values, dtype=object).reindex(columns=range(SHEET_WIDTH))
    return frame_to_entries(df.rename(columns=SHEET_COLUMNS))


class VocabularySource(ABC):
    """Somewhere a full corpus of entries can be loaded from."""

    name = "source"

    @abstractmethod
    def load(self) -> List[RawEntry]:
        pass


class SheetSource(VocabularySource):
    """Public spreadsheet published through the gviz JSON endpoint."""

    name = "sheet"

    def __init__(
        self, url: str, timeout: float = 10, prefix_len: int = 47, suffix_len: int = 2
    ):
        self.url = url
        self.timeout = timeout
        self.prefix_len = prefix_len
        self.suffix_len = suffix_len

    def load(self) -> List[RawEntry]:
        response = requests.get(self.url, timeout=self.timeout)
        response.raise_for_status()
        return parse_sheet_payload(response.text, self.prefix_len, self.suffix_len)


class CsvDirectorySource(VocabularySource):
    """Every ``*.csv`` file of a directory; the file stem is the default topic."""

    name = "csv"

    def __init__(self, directory: str):
        self.directory = directory

    def load(self) -> List[RawEntry]:
        if not os.path.exists(self.directory):
            os.makedirs(self.directory)
            logger.warning(f"Created directory {self.directory}. Please add CSV files.")
            return []

        entries: List[RawEntry] = []
        for file_path in sorted(glob.glob(os.path.join(self.directory, "*.csv"))):
            file_name = os.path.splitext(os.path.basename(file_path))[0]
            try:
                df = pd.read_csv(
                    file_path, encoding="utf-8", dtype=str, keep_default_na=False
                )
                if "word" not in df.columns or "answer" not in df.columns:
                    logger.error(f"Skipping {file_name}: Missing columns.")
                    continue
                if "topic" not in df.columns:
                    df["topic"] = file_name
                loaded = frame_to_entries(df)
            except Exception as e:
                logger.error(f"Failed to load {file_path}: {e}")
                continue
            logger.info(f"Loaded {len(loaded)} words from {file_name}")
            entries.extend(loaded)
        return entries


def default_source(settings) -> VocabularySource:
    if settings.SHEET_URL:
        return SheetSource(
            settings.SHEET_URL,
            timeout=settings.FETCH_TIMEOUT,
            prefix_len=settings.SHEET_PREFIX_LEN,
            suffix_len=settings.SHEET_SUFFIX_LEN,
        )
    return CsvDirectorySource(settings.VOCAB_DIR)


class VocabularyManager:
    """Holds the loaded corpus and answers topic questions about it."""

    def __init__(self, source: VocabularySource):
        self.source = source
        self.entries: List[RawEntry] = []
        self.last_error: str = ""

    def load_all(self) -> int:
        """Replaces the corpus in one step. A failed load leaves it empty."""
        try:
            entries = self.source.load()
        except (SourceFormatError, requests.RequestException) as e:
            logger.error(f"Failed to load vocabulary from {self.source.name}: {e}")
            self.entries = []
            self.last_error = str(e)
            return 0

        self.entries = entries
        self.last_error = ""
        logger.info(f"Loaded {len(entries)} entries from {self.source.name}")
        return len(entries)

    def topic_index(self) -> Dict[str, int]:
        index: Dict[str, int] = {}
        for entry in self.entries:
            if entry.topic:
                index[entry.topic] = index.get(entry.topic, 0) + 1
        return index

    def get_topics(self) -> List[Topic]:
        topics = [
            Topic(id=key, name=key, count=count)
            for key, count in self.topic_index().items()
        ]
        topics.sort(key=lambda x: x.name)
        return topics
