import asyncio
import logging
import os
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool

from .config import settings
from .database import init_db
from .globals import session_store, vocab_manager
from .log_handler import SQLiteHandler
from .router import router
from .session import SessionStore

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


# --- Logging Setup ---
def setup_logging():
    logger = logging.getLogger("vocabquiz")
    logger.setLevel(logging.INFO)
    if logger.handlers:
        return

    os.makedirs(settings.LOG_DIR, exist_ok=True)
    log_path = os.path.join(settings.LOG_DIR, settings.LOG_FILE)
    file_handler = RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=3)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(file_handler)

    if settings.LOG_TO_DB:
        init_db()
        db_handler = SQLiteHandler()
        db_handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(db_handler)

    # Also configure root logger to see logs from other libraries
    logging.basicConfig(level=logging.INFO)


# --- Lifecycle ---
async def purge_sessions(store: SessionStore, interval: float):
    """Drops idle sessions and stops their clocks, every ``interval`` seconds."""
    while True:
        await asyncio.sleep(interval)
        store.purge_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await run_in_threadpool(vocab_manager.load_all)
    purger = asyncio.create_task(
        purge_sessions(session_store, settings.PURGE_INTERVAL_SECONDS)
    )
    yield
    purger.cancel()
    for session_id in list(session_store.sessions):
        session_store.discard(session_id)


# --- App Factory ---
def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(
        title=settings.PROJECT_NAME,
        debug=settings.DEBUG,
        lifespan=lifespan,
        root_path=settings.ROOT_PATH,
    )
    app.include_router(router)
    return app
