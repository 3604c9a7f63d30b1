import os

DEFAULT_SHEET_URL = (
    "https://docs.google.com/spreadsheets/d/"
    "1NdwXWfig1nRRvAcrt6IHwYrjMuLvAcxRIPzeLMxOn9Q/gviz/tq?tqx=out:json"
)


def _flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


class Settings:
    PROJECT_NAME: str = "vocabquiz"
    DEBUG: bool = _flag("VOCABQUIZ_DEBUG")
    ROOT_PATH: str = os.environ.get("ROOT_PATH", "")
    LOG_DIR: str = os.environ.get("VOCABQUIZ_LOG_DIR", "log")
    LOG_FILE: str = "vocabquiz.log"
    LOG_TO_DB: bool = _flag("VOCABQUIZ_LOG_TO_DB")
    DB_DIR: str = os.environ.get("VOCABQUIZ_DB_DIR", "db")
    DB_FILE: str = "vocabquiz.db"
    SHEET_URL: str = os.environ.get("VOCABQUIZ_SHEET_URL", DEFAULT_SHEET_URL)
    SHEET_PREFIX_LEN: int = 47
    SHEET_SUFFIX_LEN: int = 2
    FETCH_TIMEOUT: float = float(os.environ.get("VOCABQUIZ_FETCH_TIMEOUT", "10"))
    VOCAB_DIR: str = os.environ.get("VOCABQUIZ_VOCAB_DIR", "vocabulary")
    DEFAULT_COUNT: int = 10
    TICK_SECONDS: float = 1.0
    CELEBRATION_THRESHOLD: int = int(
        os.environ.get("VOCABQUIZ_CELEBRATION_THRESHOLD", "80")
    )
    SESSION_COOKIE_NAME: str = "quiz_session_id"
    SESSION_TIMEOUT_MINUTES: int = 120
    PURGE_INTERVAL_SECONDS: float = 60.0


settings = Settings()
